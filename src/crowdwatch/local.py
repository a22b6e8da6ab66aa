"""
In-memory stand-ins for the DynamoDB/SNS backed stores.

Used by the local replay script and scenario tests to drive the full
pipeline without AWS. Same method surface as EventStore / AlertManager.
"""

import time
from typing import Dict, List, Optional

from crowdwatch.clients.alert_manager import AlertManager


class InMemoryEventStore:

    def __init__(self):
        self.events: Dict[str, Dict] = {}

    def put_event(self, event: Dict) -> Dict:
        item = dict(event)
        item["verified"] = 1 if item.get("verified") else 0
        self.events[item["event_id"]] = item
        return item

    def fetch_recent(self, start_time: int, end_time: Optional[int] = None) -> List[Dict]:
        end_time = end_time or int(time.time())
        return [e for e in self.events.values() if start_time <= e.get("timestamp", 0) <= end_time]

    def is_duplicate(self, fingerprint: str, since: int) -> bool:
        return any(
            e.get("fingerprint") == fingerprint and e.get("timestamp", 0) >= since
            for e in self.events.values()
        )

    def get_verified_events(self, limit: int = 50) -> List[Dict]:
        verified = [e for e in self.events.values() if e.get("verified")]
        verified.sort(key=lambda e: e.get("timestamp", 0), reverse=True)
        return verified[:limit]

    def mark_verified(self, event: Dict, verification: Dict) -> None:
        stored = self.events.get(event["event_id"])
        if stored is not None:
            stored.update(
                {
                    "verified": 1,
                    "verification_source": verification["source"],
                    "verification_type": verification["type"],
                    "verification_timestamp": verification["timestamp"],
                }
            )


class InMemoryAlertManager(AlertManager):
    """
    AlertManager with a dict for a table and a list for a topic.
    Escalation rules and alert ids are inherited unchanged.
    """

    def __init__(self, clock=time.time):
        self.alerts: Dict[str, Dict] = {}
        self.notifications: List[Dict] = []
        self.clock = clock

    def list_active_alerts(self) -> List[Dict]:
        return [a for a in self.alerts.values() if a["status"] == "active"]

    def get_active_alert(self, region: str) -> Optional[Dict]:
        active = [a for a in self.list_active_alerts() if a["region"] == region]
        return max(active, key=lambda a: a["created_at"]) if active else None

    def create_alert(self, spike: Dict) -> Dict:
        timestamp = int(self.clock())
        alert_id = self._generate_alert_id(spike["region"], timestamp)
        alert = {
            "alert_id": alert_id,
            "created_at": timestamp,
            "updated_at": timestamp,
            "status": "active",
            "region": spike["region"],
            "location": spike.get("location", spike["region"]),
            "risk_level": spike["risk_level"],
            "severity": spike["severity"],
            "event_count": spike["count"],
            "event_ids": list(spike.get("event_ids", [])),
            "disaster_types": spike.get("disaster_types", []),
            "window_start": spike.get("window_start"),
            "verified": 0,
            "escalation_history": [
                {"timestamp": timestamp, "from_level": "NONE", "to_level": spike["risk_level"], "reason": "Initial alert"}
            ],
        }
        self.alerts[alert_id] = alert
        self.notifications.append({"kind": "new_alert", "alert_id": alert_id, "risk_level": alert["risk_level"]})
        return {"action": "created", "alert_id": alert_id, "region": spike["region"], "risk_level": alert["risk_level"]}

    def escalate_alert(self, existing_alert: Dict, spike: Dict) -> Dict:
        alert = self.alerts[existing_alert["alert_id"]]
        timestamp = int(self.clock())
        old_level = alert["risk_level"]

        for eid in spike.get("event_ids", []):
            if eid not in alert["event_ids"]:
                alert["event_ids"].append(eid)

        alert["escalation_history"].append(
            {"timestamp": timestamp, "from_level": old_level, "to_level": spike["risk_level"], "reason": "Spike update"}
        )
        alert.update(
            {
                "updated_at": timestamp,
                "risk_level": spike["risk_level"],
                "severity": spike["severity"],
                "event_count": len(alert["event_ids"]),
            }
        )
        self.notifications.append({"kind": "escalation", "alert_id": alert["alert_id"], "risk_level": alert["risk_level"]})
        return {"action": "escalated", "alert_id": alert["alert_id"], "from_level": old_level, "to_level": spike["risk_level"]}

    def mark_verified(self, alert: Dict, verification: Dict) -> Dict:
        stored = self.alerts[alert["alert_id"]]
        stored.update(
            {
                "verified": 1,
                "verification_source": verification["source"],
                "verification_timestamp": verification["timestamp"],
                "updated_at": int(self.clock()),
            }
        )
        self.notifications.append({"kind": "verification", "alert_id": alert["alert_id"]})
        return {"action": "verified", "alert_id": alert["alert_id"], "source": verification["source"]}

    def resolve_stale_alerts(self, max_age_seconds: int, now: Optional[int] = None) -> List[str]:
        now = now or int(self.clock())
        resolved = []
        for alert in self.list_active_alerts():
            if now - alert["updated_at"] >= max_age_seconds:
                alert["status"] = "resolved"
                alert["updated_at"] = now
                resolved.append(alert["alert_id"])
        return resolved
