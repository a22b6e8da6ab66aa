"""
CrowdWatch Verifier Lambda

Scheduled (or manually invoked) matching of official bulletins against
recent events and active alerts.

Manual verifications can be passed in the invocation payload:
    {"verifications": [{"source": "NADMA", "location": "Kuantan", "text": "..."}]}
"""

import json
import time
from typing import Dict, List

import boto3
from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from crowdwatch.config import Settings
from crowdwatch.clients.alert_manager import AlertManager
from crowdwatch.clients.event_store import EventStore
from crowdwatch.clients.met_client import MetClient
from crowdwatch.core.verification import VerificationEngine
from crowdwatch.pipeline import VerificationRun

logger = Logger()
tracer = Tracer()

settings = Settings()

dynamodb = boto3.resource("dynamodb", region_name=settings.region)
sns = boto3.client("sns", region_name=settings.region)

event_store = EventStore(dynamodb, settings.events_table)
alert_manager = AlertManager(dynamodb, settings.alerts_table, sns, settings.sns_topic_arn)
verification_engine = VerificationEngine(window_seconds=settings.verification_window_seconds)
met_client = MetClient(
    settings.met_api_base_url,
    settings.http_timeout_sec,
    settings.user_agent,
    verifier=verification_engine,
)


@tracer.capture_method
def collect_verifications(event: Dict, now: int) -> List[Dict]:
    verifications: List[Dict] = []

    for item in event.get("verifications") or []:
        if not item.get("location"):
            logger.warning("Manual verification without location ignored", extra={"item": item})
            continue
        verifications.append(
            verification_engine.manual(
                item.get("source", "manual"),
                item["location"],
                timestamp=now,
                text=item.get("text", ""),
            )
        )

    if event.get("skip_official_sources"):
        return verifications

    try:
        verifications.extend(met_client.warning_verifications(now))
    except Exception:
        logger.exception("Failed to read official weather warnings")

    return verifications


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def lambda_handler(event: Dict, context: LambdaContext) -> Dict:
    """
    Main Lambda handler for verification runs.

    Args:
        event: EventBridge scheduled event or manual payload
        context: Lambda context

    Returns:
        Verification summary
    """
    try:
        now = int(time.time())
        verifications = collect_verifications(event or {}, now)

        if not verifications:
            logger.info("No verifications to apply")
            return {
                "statusCode": 200,
                "body": json.dumps({"status": "no_verifications", "verified_events": 0, "verified_alerts": 0}),
            }

        events = event_store.fetch_recent(now - settings.verification_window_seconds, now)
        alerts = alert_manager.list_active_alerts()

        run = VerificationRun(verification_engine, event_store, alert_manager)
        result = run.apply(verifications, events, alerts)

        return {
            "statusCode": 200,
            "body": json.dumps(
                {
                    "status": "success",
                    "verifications": len(verifications),
                    "verified_events": len(result["verified_events"]),
                    "verified_alerts": len(result["verified_alerts"]),
                    "stats": result["stats"],
                }
            ),
        }

    except Exception as e:
        logger.exception("Error in verifier lambda")
        return {
            "statusCode": 500,
            "body": json.dumps({"status": "error", "error": str(e)}),
        }
