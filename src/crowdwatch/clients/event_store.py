"""
Event Store
Persists and fetches disaster events in DynamoDB.
"""

from __future__ import annotations

import time
from typing import Dict, List, Optional

from boto3.dynamodb.conditions import Attr, Key
from aws_lambda_powertools import Logger

from crowdwatch.utils.dynamodb import dynamodb_sanitise, to_native

logger = Logger(child=True)


class EventStore:
    """
    DynamoDB access for events.

    Table key: event_id (HASH). Optional GSIs:
      - VerifiedIndex: verified (N) + timestamp
      - FingerprintIndex: fingerprint (S) + timestamp
    Scans are the fallback when an index is missing.
    """

    VERIFIED_INDEX = "VerifiedIndex"
    FINGERPRINT_INDEX = "FingerprintIndex"
    EVENT_TTL_SECONDS = 30 * 24 * 3600

    def __init__(self, dynamodb_resource, table_name: str):
        self.table = dynamodb_resource.Table(table_name)
        self.table_name = table_name
        logger.info(f"Initialized EventStore for table: {table_name}")

    def put_event(self, event: Dict) -> Dict:
        item = dict(event)
        item.setdefault("created_at", int(time.time()))
        item.setdefault("ttl", int(item["created_at"]) + self.EVENT_TTL_SECONDS)
        item["verified"] = 1 if item.get("verified") else 0
        item = dynamodb_sanitise(item)
        self.table.put_item(Item=item)
        logger.info("Stored event", extra={"event_id": item.get("event_id")})
        return item

    def fetch_recent(self, start_time: int, end_time: Optional[int] = None) -> List[Dict]:
        """
        Events whose timestamp is in [start_time, end_time].
        """
        end_time = end_time or int(time.time())
        items: List[Dict] = []

        response = self.table.scan(FilterExpression=Attr("timestamp").between(start_time, end_time))
        items.extend(response.get("Items", []))

        while "LastEvaluatedKey" in response:
            response = self.table.scan(
                FilterExpression=Attr("timestamp").between(start_time, end_time),
                ExclusiveStartKey=response["LastEvaluatedKey"],
            )
            items.extend(response.get("Items", []))

        logger.info(f"Fetched {len(items)} events from {start_time} to {end_time}")
        return [to_native(i) for i in items]

    def is_duplicate(self, fingerprint: str, since: int) -> bool:
        try:
            response = self.table.query(
                IndexName=self.FINGERPRINT_INDEX,
                KeyConditionExpression=Key("fingerprint").eq(fingerprint) & Key("timestamp").gte(since),
                Limit=1,
            )
            return bool(response.get("Items"))
        except Exception as e:
            logger.warning(f"FingerprintIndex query failed, scanning instead: {e}")

        response = self.table.scan(
            FilterExpression=Attr("fingerprint").eq(fingerprint) & Attr("timestamp").gte(since),
            ProjectionExpression="event_id",
        )
        if response.get("Items"):
            return True
        while "LastEvaluatedKey" in response:
            response = self.table.scan(
                FilterExpression=Attr("fingerprint").eq(fingerprint) & Attr("timestamp").gte(since),
                ProjectionExpression="event_id",
                ExclusiveStartKey=response["LastEvaluatedKey"],
            )
            if response.get("Items"):
                return True
        return False

    def get_verified_events(self, limit: int = 50) -> List[Dict]:
        """
        Most recent verified events, newest first.
        """
        try:
            response = self.table.query(
                IndexName=self.VERIFIED_INDEX,
                KeyConditionExpression=Key("verified").eq(1),
                ScanIndexForward=False,
                Limit=limit,
            )
            items = response.get("Items", [])
        except Exception as e:
            logger.warning(f"VerifiedIndex query failed, scanning instead: {e}")
            items = []
            response = self.table.scan(FilterExpression=Attr("verified").eq(1))
            items.extend(response.get("Items", []))
            while "LastEvaluatedKey" in response:
                response = self.table.scan(
                    FilterExpression=Attr("verified").eq(1),
                    ExclusiveStartKey=response["LastEvaluatedKey"],
                )
                items.extend(response.get("Items", []))

        events = [to_native(i) for i in items]
        events.sort(key=lambda e: e.get("timestamp", 0), reverse=True)
        return events[:limit]

    def mark_verified(self, event: Dict, verification: Dict) -> None:
        self.table.update_item(
            Key={"event_id": event["event_id"]},
            UpdateExpression="""
                SET verified = :verified,
                    verification_source = :source,
                    verification_type = :vtype,
                    verification_timestamp = :vts
            """,
            ExpressionAttributeValues=dynamodb_sanitise(
                {
                    ":verified": 1,
                    ":source": verification["source"],
                    ":vtype": verification["type"],
                    ":vts": verification["timestamp"],
                }
            ),
        )
        logger.info(
            "Event verified",
            extra={"event_id": event["event_id"], "source": verification["source"]},
        )
