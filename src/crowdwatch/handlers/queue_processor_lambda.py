"""
CrowdWatch Queue Processor Lambda - SQS event source

Processes scraped posts queued by the scraper. Failed records are reported
back as partial batch failures so SQS retries only those, and the queue's
redrive policy moves repeat offenders to the dead-letter queue.
"""

import json
from typing import Dict

import boto3
from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.batch import (
    BatchProcessor,
    EventType,
    process_partial_response,
)
from aws_lambda_powertools.utilities.data_classes.sqs_event import SQSRecord
from aws_lambda_powertools.utilities.typing import LambdaContext

from crowdwatch.config import Settings
from crowdwatch.clients.bedrock_client import BedrockClient
from crowdwatch.clients.event_store import EventStore
from crowdwatch.clients.notifier import EventNotifier
from crowdwatch.core.deduplicator import Deduplicator
from crowdwatch.core.post_analyzer import PostAnalyzer
from crowdwatch.pipeline import PostPipeline
from crowdwatch.utils.request_validator import validate_ingest_request

logger = Logger()
tracer = Tracer()
processor = BatchProcessor(event_type=EventType.SQS)

settings = Settings()

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

# Queue posts are already filtered by the scraper; no weather lookup per post
pipeline = PostPipeline(
    analyzer=PostAnalyzer(llm_client=bedrock_client),
    deduplicator=Deduplicator(settings.dedup_window_seconds, event_store=event_store),
    event_store=event_store,
    notifier=EventNotifier(sns, settings.sns_topic_arn),
)


class InvalidPostError(ValueError):
    pass


@tracer.capture_method
def record_handler(record: SQSRecord) -> Dict:
    """
    Process one queued post. Raising marks the record as failed.
    """
    body = json.loads(record.body)
    post, errors = validate_ingest_request(body)
    if errors:
        # Redelivery will not fix a malformed post; the redrive policy parks it
        raise InvalidPostError("; ".join(errors))

    # Keep the scraper's id/source so event ids stay stable across retries
    post["post_id"] = body.get("post_id") or post.get("post_id")
    post["source"] = body.get("source") or post["source"]

    result = pipeline.process(post)
    logger.info(
        "Queued post processed",
        extra={
            "message_id": record.message_id,
            "status": result["status"],
            "verified": result["verified"],
            "receive_count": record.attributes.approximate_receive_count,
        },
    )
    return {"status": result["status"]}


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def lambda_handler(event: Dict, context: LambdaContext) -> Dict:
    return process_partial_response(
        event=event,
        record_handler=record_handler,
        processor=processor,
        context=context,
    )
