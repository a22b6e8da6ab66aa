"""
CrowdWatch Ingest Lambda - POST /posts

Synchronous single-post ingestion behind API Gateway:
validate -> deduplicate -> classify -> corroborate -> store -> notify.
"""

import json
from typing import Dict

import boto3
from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from crowdwatch.config import Settings
from crowdwatch.clients.bedrock_client import BedrockClient
from crowdwatch.clients.event_store import EventStore
from crowdwatch.clients.met_client import MetClient
from crowdwatch.clients.notifier import EventNotifier
from crowdwatch.core.deduplicator import Deduplicator
from crowdwatch.core.post_analyzer import PostAnalyzer
from crowdwatch.pipeline import PostPipeline
from crowdwatch.utils.dynamodb import to_native
from crowdwatch.utils.request_validator import validate_ingest_request

logger = Logger()
tracer = Tracer()

settings = Settings()

# Initialize clients
dynamodb = boto3.resource("dynamodb", region_name=settings.region)
sns = boto3.client("sns", region_name=settings.region)

event_store = EventStore(dynamodb, settings.events_table)
bedrock_client = (
    BedrockClient(
        settings.bedrock_model_id,
        settings.bedrock_region,
        min_interval_sec=settings.bedrock_min_interval_sec,
        max_attempts=settings.bedrock_max_attempts,
        backoff_base_sec=settings.bedrock_backoff_base_sec,
        backoff_max_sec=settings.bedrock_backoff_max_sec,
    )
    if settings.bedrock_enabled
    else None
)

pipeline = PostPipeline(
    analyzer=PostAnalyzer(llm_client=bedrock_client),
    deduplicator=Deduplicator(settings.dedup_window_seconds, event_store=event_store),
    event_store=event_store,
    notifier=EventNotifier(sns, settings.sns_topic_arn),
    met_client=MetClient(settings.met_api_base_url, settings.http_timeout_sec, settings.user_agent),
    met_verify_threshold=settings.met_verify_threshold,
)


def _response(status_code: int, body: Dict) -> Dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json", "Access-Control-Allow-Origin": "*"},
        "body": json.dumps(to_native(body), default=str),
    }


@tracer.capture_method
def ingest_post(post: Dict) -> Dict:
    return pipeline.process(post)


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def lambda_handler(event: Dict, context: LambdaContext) -> Dict:
    """
    Main Lambda handler for API Gateway post ingestion.

    Args:
        event: API Gateway proxy event
        context: Lambda context

    Returns:
        API Gateway proxy response
    """
    try:
        raw = event.get("body") or "{}"
        body = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError:
        return _response(400, {"message": "Invalid JSON body", "errors": ["body must be valid JSON"]})

    post, errors = validate_ingest_request(body)
    if errors:
        logger.info("Rejected invalid ingest request", extra={"errors": errors})
        return _response(400, {"message": "Validation failed", "errors": errors})

    try:
        result = ingest_post(post)
    except Exception as e:
        logger.exception("Error in ingest lambda")
        return _response(500, {"message": "Internal server error", "error": str(e)})

    if result["status"] == "duplicate":
        return _response(200, {"message": "Duplicate post ignored", "duplicate": True})

    if result["status"] == "ignored":
        return _response(200, {"message": "Post is not disaster related", "is_disaster": False})

    stored = result["event"]
    return _response(
        202,
        {
            "message": "Event verified and alert sent" if result["notified"] else "Event processed and stored",
            "event_id": stored["event_id"],
            "is_disaster": True,
            "verified": result["verified"],
            "severity": stored["severity"],
            "location": stored["location"],
            "region": stored["region"],
            "disaster_type": stored["disaster_type"],
            "met_source": stored.get("met_source"),
        },
    )
