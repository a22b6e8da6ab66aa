"""
Alert Manager

Handles alert lifecycle:
- Creation of new alerts from location spikes
- Deduplication (one active alert per region)
- Escalation (Yellow → Orange → Red, or a clear severity jump)
- Official-source verification
- Resolution of stale alerts
- SNS notification publishing
"""

import json
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

from boto3.dynamodb.conditions import Attr, Key
from aws_lambda_powertools import Logger

from crowdwatch.utils.dynamodb import dynamodb_sanitise, to_native

logger = Logger(child=True)


class AlertManager:
    """
    Manages alert creation, deduplication, escalation and verification.
    """

    RISK_HIERARCHY = {"Yellow": 1, "Orange": 2, "Red": 3}
    ALERT_TTL_SECONDS = 30 * 24 * 3600
    SEVERITY_ESCALATION_DELTA = 0.15
    HIGH_SEVERITY = 0.8
    STATUS_INDEX = "StatusIndex"

    def __init__(self, dynamodb_resource, alerts_table_name: str, sns_client, sns_topic_arn: str):
        self.table = dynamodb_resource.Table(alerts_table_name)
        self.sns = sns_client
        self.sns_topic_arn = sns_topic_arn
        logger.info("Initialized AlertManager", extra={"table": alerts_table_name})

    def list_active_alerts(self) -> List[Dict]:
        items: List[Dict] = []
        try:
            response = self.table.query(
                IndexName=self.STATUS_INDEX,
                KeyConditionExpression=Key("status").eq("active"),
            )
            items.extend(response.get("Items", []))
            while "LastEvaluatedKey" in response:
                response = self.table.query(
                    IndexName=self.STATUS_INDEX,
                    KeyConditionExpression=Key("status").eq("active"),
                    ExclusiveStartKey=response["LastEvaluatedKey"],
                )
                items.extend(response.get("Items", []))
        except Exception:
            logger.exception("Failed to query active alerts")
        return [to_native(i) for i in items]

    def get_active_alert(self, region: str) -> Optional[Dict]:
        try:
            items: List[Dict] = []
            response = self.table.query(
                IndexName=self.STATUS_INDEX,
                KeyConditionExpression=Key("status").eq("active"),
                FilterExpression=Attr("region").eq(region),
            )
            items.extend(response.get("Items", []))
            while "LastEvaluatedKey" in response:
                response = self.table.query(
                    IndexName=self.STATUS_INDEX,
                    KeyConditionExpression=Key("status").eq("active"),
                    FilterExpression=Attr("region").eq(region),
                    ExclusiveStartKey=response["LastEvaluatedKey"],
                )
                items.extend(response.get("Items", []))

            if items:
                alert = max(items, key=lambda a: a.get("created_at", 0))
                logger.info("Found active alert", extra={"alert_id": alert.get("alert_id")})
                return to_native(alert)
            return None
        except Exception:
            logger.exception("Failed to query active alerts", extra={"region": region})
            return None

    def should_escalate(self, existing_alert: Dict, spike: Dict) -> bool:
        """
        Escalate when the level rises, or the severity jumps at the same level.
        """
        current_level = existing_alert["risk_level"]
        new_level = spike["risk_level"]

        if self.RISK_HIERARCHY[new_level] > self.RISK_HIERARCHY[current_level]:
            return True

        if (
            new_level == current_level
            and float(spike["severity"]) > float(existing_alert.get("severity", 0)) + self.SEVERITY_ESCALATION_DELTA
        ):
            return True

        return False

    def create_alert(self, spike: Dict) -> Dict:
        timestamp = int(time.time())
        alert_id = self._generate_alert_id(spike["region"], timestamp)

        logger.info(
            "Creating new alert",
            extra={
                "alert_id": alert_id,
                "region": spike["region"],
                "risk_level": spike["risk_level"],
                "severity": spike["severity"],
                "event_count": spike["count"],
            },
        )

        alert = {
            "alert_id": alert_id,
            "created_at": timestamp,
            "updated_at": timestamp,
            "status": "active",
            "region": spike["region"],
            "location": spike.get("location", spike["region"]),
            "risk_level": spike["risk_level"],
            "severity": spike["severity"],
            "avg_severity": spike.get("avg_severity"),
            "event_count": spike["count"],
            "event_ids": spike.get("event_ids", []),
            "disaster_types": spike.get("disaster_types", []),
            "window_start": spike.get("window_start"),
            "window_end": spike.get("window_end"),
            "sample_posts": [e.get("text", "")[:280] for e in spike.get("events", [])[:3]],
            "verified": 0,
            "escalation_history": [
                {"timestamp": timestamp, "from_level": "NONE", "to_level": spike["risk_level"], "reason": "Initial alert"}
            ],
            "ttl": timestamp + self.ALERT_TTL_SECONDS,
        }

        item = dynamodb_sanitise(alert)
        self.table.put_item(Item=item)

        self._publish_to_sns(alert, kind="new_alert")
        return {"action": "created", "alert_id": alert_id, "region": spike["region"], "risk_level": alert["risk_level"]}

    def escalate_alert(self, existing_alert: Dict, spike: Dict) -> Dict:
        alert_id = existing_alert["alert_id"]
        timestamp = int(time.time())

        old_level = existing_alert["risk_level"]
        new_level = spike["risk_level"]

        logger.info("Escalating alert", extra={"alert_id": alert_id, "from": old_level, "to": new_level})

        escalation_entry = {
            "timestamp": timestamp,
            "from_level": old_level,
            "to_level": new_level,
            "reason": f"{spike['count']} events in window. New severity: {float(spike['severity']):.2f}",
        }

        escalation_history = list(existing_alert.get("escalation_history", []))
        escalation_history.append(escalation_entry)

        event_ids = list(existing_alert.get("event_ids", []))
        for eid in spike.get("event_ids", []):
            if eid not in event_ids:
                event_ids.append(eid)

        self.table.update_item(
            Key={"alert_id": alert_id, "created_at": existing_alert["created_at"]},
            UpdateExpression="""
                SET updated_at = :timestamp,
                    risk_level = :new_level,
                    severity = :severity,
                    event_count = :count,
                    event_ids = :event_ids,
                    escalation_history = :history
            """,
            ExpressionAttributeValues=dynamodb_sanitise(
                {
                    ":timestamp": timestamp,
                    ":new_level": new_level,
                    ":severity": float(spike["severity"]),
                    ":count": len(event_ids),
                    ":event_ids": event_ids,
                    ":history": escalation_history,
                }
            ),
        )

        updated_alert = existing_alert.copy()
        updated_alert.update(
            {
                "updated_at": timestamp,
                "risk_level": new_level,
                "severity": spike["severity"],
                "event_count": len(event_ids),
                "event_ids": event_ids,
                "escalation_history": escalation_history,
            }
        )

        self._publish_to_sns(updated_alert, kind="escalation")
        return {"action": "escalated", "alert_id": alert_id, "from_level": old_level, "to_level": new_level}

    def mark_verified(self, alert: Dict, verification: Dict) -> Dict:
        timestamp = int(time.time())
        self.table.update_item(
            Key={"alert_id": alert["alert_id"], "created_at": alert["created_at"]},
            UpdateExpression="""
                SET updated_at = :timestamp,
                    verified = :verified,
                    verification_source = :source,
                    verification_type = :vtype,
                    verification_timestamp = :vts
            """,
            ExpressionAttributeValues=dynamodb_sanitise(
                {
                    ":timestamp": timestamp,
                    ":verified": 1,
                    ":source": verification["source"],
                    ":vtype": verification["type"],
                    ":vts": verification["timestamp"],
                }
            ),
        )

        updated_alert = alert.copy()
        updated_alert.update(
            {
                "updated_at": timestamp,
                "verified": 1,
                "verification_source": verification["source"],
                "verification_type": verification["type"],
                "verification_timestamp": verification["timestamp"],
            }
        )

        logger.info(
            "Alert verified",
            extra={"alert_id": alert["alert_id"], "source": verification["source"]},
        )
        self._publish_to_sns(updated_alert, kind="verification")
        return {"action": "verified", "alert_id": alert["alert_id"], "source": verification["source"]}

    def resolve_stale_alerts(self, max_age_seconds: int, now: Optional[int] = None) -> List[str]:
        """
        Resolve active alerts with no update for max_age_seconds.
        """
        now = now or int(time.time())
        resolved = []
        for alert in self.list_active_alerts():
            if now - int(alert.get("updated_at", alert.get("created_at", now))) < max_age_seconds:
                continue
            try:
                self.table.update_item(
                    Key={"alert_id": alert["alert_id"], "created_at": alert["created_at"]},
                    UpdateExpression="SET #status = :resolved, updated_at = :timestamp",
                    ExpressionAttributeNames={"#status": "status"},
                    ExpressionAttributeValues={":resolved": "resolved", ":timestamp": now},
                )
                resolved.append(alert["alert_id"])
            except Exception:
                logger.exception("Failed to resolve alert", extra={"alert_id": alert.get("alert_id")})

        if resolved:
            logger.info(f"Resolved {len(resolved)} stale alerts", extra={"alert_ids": resolved})
        return resolved

    def _generate_alert_id(self, region: str, timestamp: int) -> str:
        date_str = datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y%m%d_%H%M%S")
        slug = "_".join(region.upper().split())
        return f"ALERT_{date_str}_{slug}"

    def _publish_to_sns(self, alert: Dict, kind: str) -> None:
        if not self.sns_topic_arn:
            logger.warning("SNS_TOPIC_ARN not set - skipping SNS publish")
            return

        try:
            alert = to_native(alert)
            severity = float(alert.get("severity", 0) or 0)
            verified = bool(alert.get("verified"))

            prefix = {"new_alert": "ALERT", "escalation": "ESCALATED", "verification": "VERIFIED"}.get(kind, "ALERT")
            subject = f"CrowdWatch {prefix} {alert.get('risk_level', '')} - {alert.get('location', alert.get('region', ''))}"

            payload = {
                "kind": kind,
                "alert_id": alert.get("alert_id"),
                "status": alert.get("status"),
                "region": alert.get("region"),
                "location": alert.get("location"),
                "risk_level": alert.get("risk_level"),
                "severity": severity,
                "event_count": alert.get("event_count"),
                "disaster_types": alert.get("disaster_types"),
                "sample_posts": alert.get("sample_posts"),
                "verified": verified,
                "verification_source": alert.get("verification_source"),
                "created_at": alert.get("created_at"),
                "updated_at": alert.get("updated_at"),
            }

            self.sns.publish(
                TopicArn=self.sns_topic_arn,
                Subject=subject[:100],
                Message=json.dumps(payload, ensure_ascii=False, indent=2),
                MessageAttributes={
                    "severity": {
                        "DataType": "String",
                        "StringValue": "HIGH" if severity > self.HIGH_SEVERITY else "MEDIUM",
                    },
                    "region": {"DataType": "String", "StringValue": str(alert.get("region", "unknown"))},
                    "verified": {"DataType": "String", "StringValue": "true" if verified else "false"},
                    "kind": {"DataType": "String", "StringValue": kind},
                },
            )

            logger.info("SNS publish succeeded", extra={"alert_id": alert.get("alert_id"), "kind": kind})
        except Exception:
            logger.exception("SNS publish failed", extra={"alert_id": alert.get("alert_id")})
