"""
CrowdWatch Subscribe Lambda - POST /subscribe

Body: {"kind": "email"|"sms", "value": "<address or E.164 number>"}
"""

import json
from typing import Dict

import boto3
from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from crowdwatch.config import Settings
from crowdwatch.clients.subscription_manager import SubscriptionError, SubscriptionManager

logger = Logger()
tracer = Tracer()

settings = Settings()

dynamodb = boto3.resource("dynamodb", region_name=settings.region)
sns = boto3.client("sns", region_name=settings.region)

subscription_manager = SubscriptionManager(dynamodb, settings.subscribers_table, sns, settings.sns_topic_arn)


def _response(status_code: int, body: Dict) -> Dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json", "Access-Control-Allow-Origin": "*"},
        "body": json.dumps(body, default=str),
    }


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def lambda_handler(event: Dict, context: LambdaContext) -> Dict:
    try:
        raw = event.get("body") or "{}"
        body = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError:
        return _response(400, {"message": "Invalid JSON body"})

    if not isinstance(body, dict):
        return _response(400, {"message": "Request body must be a JSON object"})

    try:
        record = subscription_manager.subscribe(body.get("kind"), body.get("value"), body.get("preferences"))
    except SubscriptionError as e:
        return _response(400, {"message": "Validation failed", "errors": str(e).split("; ")})
    except Exception as e:
        logger.exception("Error in subscribe lambda")
        return _response(500, {"message": "Internal server error", "error": str(e)})

    return _response(
        200,
        {
            "message": "Subscription created. Confirm via the message sent to you.",
            "subscriber_id": record["subscriber_id"],
            "kind": record["kind"],
            "active": record["active"],
        },
    )
