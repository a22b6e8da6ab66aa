"""
Subscription Manager

Subscribes an email address or phone number to the alerts SNS topic and
keeps a subscriber record in DynamoDB.
"""

import re
import time
import uuid
from typing import Dict, List, Optional

from boto3.dynamodb.conditions import Attr
from aws_lambda_powertools import Logger

from crowdwatch.utils.dynamodb import dynamodb_sanitise, to_native

logger = Logger(child=True)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
# E.164
PHONE_RE = re.compile(r"^\+[1-9]\d{7,14}$")


class SubscriptionError(ValueError):
    pass


class SubscriptionManager:

    SUBSCRIBER_TTL_SECONDS = 365 * 24 * 3600
    PROTOCOLS = {"email": "email", "sms": "sms"}
    DEFAULT_PREFERENCES = {
        "disaster_alerts": True,
        "emergency_alerts": True,
        "verifications": True,
        "system_status": False,
    }

    def __init__(self, dynamodb_resource, table_name: str, sns_client, sns_topic_arn: str):
        self.table = dynamodb_resource.Table(table_name)
        self.sns = sns_client
        self.sns_topic_arn = sns_topic_arn

    @staticmethod
    def validate(kind: Optional[str], value: Optional[str]) -> List[str]:
        errors = []
        if kind not in SubscriptionManager.PROTOCOLS:
            errors.append("kind must be 'email' or 'sms'")
            return errors
        if not isinstance(value, str) or not value.strip():
            errors.append("value is required")
        elif kind == "email" and not EMAIL_RE.match(value.strip()):
            errors.append("value is not a valid email address")
        elif kind == "sms" and not PHONE_RE.match(value.strip()):
            errors.append("value must be an E.164 phone number, e.g. +60123456789")
        return errors

    def subscribe(self, kind: str, value: str, preferences: Optional[Dict] = None) -> Dict:
        errors = self.validate(kind, value)
        if errors:
            raise SubscriptionError("; ".join(errors))

        value = value.strip()
        if kind == "email":
            value = value.lower()

        resp = self.sns.subscribe(
            TopicArn=self.sns_topic_arn,
            Protocol=self.PROTOCOLS[kind],
            Endpoint=value,
            ReturnSubscriptionArn=True,
        )
        subscription_arn = resp.get("SubscriptionArn")

        record = self._upsert(kind, value, subscription_arn, preferences)
        logger.info(
            "Subscriber registered",
            extra={"subscriber_id": record["subscriber_id"], "kind": kind},
        )
        return record

    def find_subscriber(self, kind: str, value: str) -> Optional[Dict]:
        attr = "email" if kind == "email" else "phone"
        response = self.table.scan(FilterExpression=Attr(attr).eq(value))
        items = response.get("Items", [])
        while not items and "LastEvaluatedKey" in response:
            response = self.table.scan(
                FilterExpression=Attr(attr).eq(value),
                ExclusiveStartKey=response["LastEvaluatedKey"],
            )
            items = response.get("Items", [])
        return to_native(items[0]) if items else None

    def _upsert(self, kind: str, value: str, subscription_arn: Optional[str], preferences: Optional[Dict]) -> Dict:
        now = int(time.time())
        existing = self.find_subscriber(kind, value)

        if existing:
            record = dict(existing)
            record.update(
                {
                    "active": True,
                    "subscription_arn": subscription_arn or existing.get("subscription_arn"),
                    "updated_at": now,
                    "ttl": now + self.SUBSCRIBER_TTL_SECONDS,
                }
            )
            if preferences:
                record["preferences"] = {**record.get("preferences", {}), **preferences}
        else:
            record = {
                "subscriber_id": f"sub_{uuid.uuid4().hex[:16]}",
                "kind": kind,
                "email": value if kind == "email" else None,
                "phone": value if kind == "sms" else None,
                "subscription_arn": subscription_arn,
                "preferences": {**self.DEFAULT_PREFERENCES, **(preferences or {})},
                "active": True,
                "subscribed_at": now,
                "last_notified": None,
                "created_at": now,
                "updated_at": now,
                "ttl": now + self.SUBSCRIBER_TTL_SECONDS,
            }

        self.table.put_item(Item=dynamodb_sanitise(record))
        return record
