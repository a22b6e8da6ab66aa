"""
CrowdWatch Spike Detector Lambda - Main Handler

Scheduled aggregation of recent disaster events into location alerts.
"""

import json
import time
from datetime import datetime, timezone
from typing import Dict, List

import boto3
from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from crowdwatch.config import Settings
from crowdwatch.clients.alert_manager import AlertManager
from crowdwatch.clients.event_store import EventStore
from crowdwatch.core.spike_detector import SpikeDetector
from crowdwatch.pipeline import AlertPipeline

logger = Logger()
tracer = Tracer()

settings = Settings()

# Initialize clients
dynamodb = boto3.resource("dynamodb", region_name=settings.region)
sns = boto3.client("sns", region_name=settings.region)

event_store = EventStore(dynamodb, settings.events_table)
alert_manager = AlertManager(dynamodb, settings.alerts_table, sns, settings.sns_topic_arn)
spike_detector = SpikeDetector(
    window_seconds=settings.spike_window_seconds,
    spike_threshold=settings.spike_threshold,
    location_threshold=settings.location_threshold,
    trend_window_seconds=settings.trend_window_seconds,
    trend_threshold=settings.trend_threshold,
)
alert_pipeline = AlertPipeline(spike_detector, alert_manager)


@tracer.capture_method
def fetch_recent_events(now: int) -> List[Dict]:
    """
    Fetch events covering the longest detection window.
    """
    lookback = max(settings.spike_window_seconds, settings.trend_window_seconds)
    return event_store.fetch_recent(now - lookback, now)


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def lambda_handler(event: Dict, context: LambdaContext) -> Dict:
    """
    Main Lambda handler for scheduled spike detection runs.

    Args:
        event: EventBridge scheduled event
        context: Lambda context

    Returns:
        Execution summary
    """
    logger.info(
        "Starting spike detection",
        extra={
            "window_minutes": settings.spike_window_minutes,
            "spike_threshold": settings.spike_threshold,
            "location_threshold": settings.location_threshold,
        },
    )

    start_time = time.time()

    try:
        now = int(time.time())
        events = fetch_recent_events(now)

        if not events:
            logger.warning("No recent events found")
            resolved = alert_manager.resolve_stale_alerts(settings.alert_max_age_hours * 3600, now)
            return {
                "statusCode": 200,
                "body": json.dumps(
                    {"status": "no_data", "message": "No recent events", "alerts_resolved": len(resolved)}
                ),
            }

        result = alert_pipeline.run(events, now)
        resolved = alert_manager.resolve_stale_alerts(settings.alert_max_age_hours * 3600, now)

        execution_time = time.time() - start_time
        actions = result["actions"]

        logger.info(
            "Detection complete",
            extra={
                "events_considered": len(events),
                "spikes_detected": len(result["spikes"]),
                "alerts_processed": len(actions),
                "execution_time_seconds": execution_time,
            },
        )

        return {
            "statusCode": 200,
            "body": json.dumps(
                {
                    "status": "success",
                    "events_considered": len(events),
                    "spikes_detected": len(result["spikes"]),
                    "spike_regions": [s["region"] for s in result["spikes"]],
                    "trends": result["trends"],
                    "alerts_created": sum(1 for a in actions if a.get("action") == "created"),
                    "alerts_escalated": sum(1 for a in actions if a.get("action") == "escalated"),
                    "alerts_resolved": len(resolved),
                    "execution_time": execution_time,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            ),
        }

    except Exception as e:
        logger.exception("Error in spike detector lambda")
        return {
            "statusCode": 500,
            "body": json.dumps({"status": "error", "error": str(e)}),
        }
