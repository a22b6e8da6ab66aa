"""
CrowdWatch Events API Lambda - GET /events

Returns the most recent verified events.
"""

import json
from typing import Dict

import boto3
from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from crowdwatch.config import Settings
from crowdwatch.clients.event_store import EventStore

logger = Logger()
tracer = Tracer()

settings = Settings()

dynamodb = boto3.resource("dynamodb", region_name=settings.region)
event_store = EventStore(dynamodb, settings.events_table)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

# Fields safe to expose publicly
PUBLIC_FIELDS = [
    "event_id", "text", "source", "url", "timestamp", "location", "region",
    "disaster_type", "severity", "confidence", "language", "verified",
    "verification_source", "verification_timestamp", "images",
]


def _limit(event: Dict) -> int:
    params = event.get("queryStringParameters") or {}
    try:
        return max(1, min(MAX_LIMIT, int(params.get("limit", DEFAULT_LIMIT))))
    except (TypeError, ValueError):
        return DEFAULT_LIMIT


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def lambda_handler(event: Dict, context: LambdaContext) -> Dict:
    try:
        events = event_store.get_verified_events(_limit(event or {}))
        items = [{k: e.get(k) for k in PUBLIC_FIELDS if k in e} for e in events]

        return {
            "statusCode": 200,
            "headers": {"Content-Type": "application/json", "Access-Control-Allow-Origin": "*"},
            "body": json.dumps({"items": items, "count": len(items)}, default=str),
        }

    except Exception as e:
        logger.exception("Error in events api lambda")
        return {
            "statusCode": 500,
            "body": json.dumps({"message": "Internal server error", "error": str(e)}),
        }
