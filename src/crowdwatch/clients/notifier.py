"""
Event notifications.

Single-event notices (an individual post that is verified on arrival) go to
the same SNS topic as spike alerts, tagged so subscribers can filter.
"""

import json
from typing import Dict

from aws_lambda_powertools import Logger

from crowdwatch.utils.dynamodb import to_native

logger = Logger(child=True)


class EventNotifier:

    HIGH_SEVERITY = 0.8

    def __init__(self, sns_client, sns_topic_arn: str):
        self.sns = sns_client
        self.sns_topic_arn = sns_topic_arn

    def publish_event(self, event: Dict) -> bool:
        if not self.sns_topic_arn:
            logger.warning("SNS_TOPIC_ARN not set - skipping SNS publish")
            return False

        event = to_native(event)
        severity = float(event.get("severity", 0) or 0)
        verified = bool(event.get("verified"))

        payload = {
            "kind": "event",
            "event_id": event.get("event_id"),
            "text": (event.get("text") or "")[:500],
            "location": event.get("location"),
            "region": event.get("region"),
            "disaster_type": event.get("disaster_type"),
            "severity": severity,
            "confidence": event.get("confidence"),
            "source": event.get("source"),
            "url": event.get("url"),
            "verified": verified,
            "timestamp": event.get("timestamp"),
        }

        try:
            self.sns.publish(
                TopicArn=self.sns_topic_arn,
                Subject=f"CrowdWatch {event.get('disaster_type', 'event')} report - {event.get('location', 'unknown')}"[:100],
                Message=json.dumps(payload, ensure_ascii=False, indent=2),
                MessageAttributes={
                    "platform": {"DataType": "String", "StringValue": str(event.get("source", "unknown"))},
                    "severity": {
                        "DataType": "String",
                        "StringValue": "HIGH" if severity > self.HIGH_SEVERITY else "MEDIUM",
                    },
                    "verified": {"DataType": "String", "StringValue": "true" if verified else "false"},
                    "kind": {"DataType": "String", "StringValue": "event"},
                },
            )
            logger.info("SNS publish succeeded", extra={"event_id": event.get("event_id")})
            return True
        except Exception:
            logger.exception("SNS publish failed", extra={"event_id": event.get("event_id")})
            return False
