"""
Pipeline stages shared by the Lambda handlers and the local replay script.

- PostPipeline:     dedup -> analyze -> corroborate -> store -> notify
- AlertPipeline:    recent events -> spikes -> create/escalate alerts
- VerificationRun:  official verifications -> matching events/alerts
"""

import time
from typing import Dict, List, Optional

from aws_lambda_powertools import Logger

from crowdwatch.core.deduplicator import Deduplicator
from crowdwatch.core.heuristic_classifier import HeuristicClassifier
from crowdwatch.core.post_analyzer import PostAnalyzer
from crowdwatch.core.spike_detector import SpikeDetector
from crowdwatch.core.verification import VerificationEngine, VerificationLedger

logger = Logger(child=True)

# Signals that carry no real corroboration
NON_CORROBORATING_SOURCES = {"stub-malaysia-weather", "malaysia-weather-error"}


class PostPipeline:
    """
    Single-post processing used by both the API ingest path and the queue.
    """

    AUTO_VERIFY_SEVERITY = 0.6
    NOTIFY_SEVERITY = 0.7

    def __init__(
        self,
        analyzer: PostAnalyzer,
        deduplicator: Deduplicator,
        event_store=None,
        notifier=None,
        met_client=None,
        met_verify_threshold: float = 0.5,
        heuristics: Optional[HeuristicClassifier] = None,
    ):
        self.analyzer = analyzer
        self.deduplicator = deduplicator
        self.event_store = event_store
        self.notifier = notifier
        self.met_client = met_client
        self.met_verify_threshold = met_verify_threshold
        self.heuristics = heuristics or analyzer.heuristics

    def process(self, post: Dict, now: Optional[float] = None) -> Dict:
        """
        Returns:
            {"status": "duplicate"|"ignored"|"stored", "event": Event|None,
             "verified": bool, "notified": bool}
        """
        now = time.time() if now is None else now
        author, text = post.get("author"), post.get("text", "")

        if self.deduplicator.seen(author, text, now):
            logger.info("Duplicate post skipped", extra={"post_id": post.get("post_id")})
            return {"status": "duplicate", "event": None, "verified": False, "notified": False}

        event = self.analyzer.analyze(post, now=now)

        if event is None:
            self.deduplicator.remember(author, text, now)
            return {"status": "ignored", "event": None, "verified": False, "notified": False}

        self._corroborate(event, post)

        if self.event_store is not None:
            self.event_store.put_event(event)
        # Remembered only once stored so a failed write can be redelivered
        self.deduplicator.remember(author, text, now)

        notified = False
        if event["verified"] and float(event["severity"]) > self.NOTIFY_SEVERITY and self.notifier is not None:
            notified = self.notifier.publish_event(event)

        return {"status": "stored", "event": event, "verified": bool(event["verified"]), "notified": notified}

    def _corroborate(self, event: Dict, post: Dict) -> None:
        """
        Mark an event verified on arrival when either:
        - the text carries a strict disaster signal and severity is high, or
        - the weather feeds corroborate it (real signal above threshold)
        """
        if float(event["severity"]) > self.AUTO_VERIFY_SEVERITY and self.heuristics.has_strict_disaster_signal(
            event["text"]
        ):
            event["verified"] = 1
            event["verification_source"] = "crowd-heuristic"

        if self.met_client is None:
            return

        met = self.met_client.meteorological_signal(post.get("coordinates"))
        event["met_severity"] = met["severity"]
        event["met_source"] = met["source"]

        if met["source"] not in NON_CORROBORATING_SOURCES and met["severity"] > self.met_verify_threshold:
            event["verified"] = 1
            event["verification_source"] = met["source"]


class AlertPipeline:
    """
    Spike detection over recent events, feeding the alert manager.
    """

    def __init__(self, detector: SpikeDetector, alert_manager):
        self.detector = detector
        self.alert_manager = alert_manager

    def run(self, events: List[Dict], now: Optional[float] = None) -> Dict:
        now = time.time() if now is None else now
        spikes = self.detector.detect_spikes(events, now)
        actions: List[Dict] = []

        for spike in spikes:
            existing = self.alert_manager.get_active_alert(spike["region"])
            if existing:
                if self.alert_manager.should_escalate(existing, spike):
                    logger.info(f"Escalating alert for {spike['region']}")
                    actions.append(self.alert_manager.escalate_alert(existing, spike))
                else:
                    logger.info(f"Alert already active for {spike['region']}, no escalation needed")
            else:
                logger.info(f"Creating new alert for {spike['region']}")
                actions.append(self.alert_manager.create_alert(spike))

        return {
            "spikes": spikes,
            "trends": self.detector.location_trends(events, now),
            "actions": actions,
        }


class VerificationRun:
    """
    Applies official verifications to matching events and alerts.
    """

    def __init__(self, engine: VerificationEngine, event_store=None, alert_manager=None):
        self.engine = engine
        self.event_store = event_store
        self.alert_manager = alert_manager
        self.ledger = VerificationLedger()

    def apply(self, verifications: List[Dict], events: List[Dict], alerts: List[Dict]) -> Dict:
        verified_events = []
        verified_alerts = []

        for verification in verifications:
            for event in self.engine.find_matching(verification, events):
                self.engine.apply(event, verification)
                self.ledger.record(event["event_id"], verification)
                if self.event_store is not None:
                    self.event_store.mark_verified(event, verification)
                verified_events.append(event["event_id"])

            for alert in self.engine.find_matching(verification, [self._alert_view(a) for a in alerts]):
                original = next(a for a in alerts if a["alert_id"] == alert["alert_id"])
                self.engine.apply(original, verification)
                self.ledger.record(original["alert_id"], verification)
                if self.alert_manager is not None:
                    self.alert_manager.mark_verified(original, verification)
                verified_alerts.append(original["alert_id"])

        stats = self.ledger.stats(total_records=len(events) + len(alerts))
        logger.info(
            "Verification run complete",
            extra={"verified_events": len(verified_events), "verified_alerts": len(verified_alerts)},
        )
        return {"verified_events": verified_events, "verified_alerts": verified_alerts, "stats": stats}

    @staticmethod
    def _alert_view(alert: Dict) -> Dict:
        # Alerts are matched on their first report, not their last update
        return {**alert, "timestamp": alert.get("window_start") or alert.get("created_at", 0)}
