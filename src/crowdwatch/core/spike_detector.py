"""
Spike Detection Algorithm

Aggregates recent disaster events into location spikes:
1. Keep events inside the sliding window
2. Require a global spike (enough events overall) before looking closer
3. Group by region and keep groups at or above the location threshold
4. Score each group with the alert severity formula

Single isolated posts never alert on their own; several people in the same
place reporting within minutes is the signal.
"""

from typing import Dict, List, Optional

from aws_lambda_powertools import Logger

from crowdwatch.core.severity_scorer import SeverityScorer

logger = Logger(child=True)

UNKNOWN_REGION = "unknown"


class SpikeDetector:
    """
    Sliding-window event density detector.
    """

    def __init__(
        self,
        window_seconds: int = 600,
        spike_threshold: int = 3,
        location_threshold: int = 2,
        trend_window_seconds: int = 3600,
        trend_threshold: int = 3,
        scorer: Optional[SeverityScorer] = None,
    ):
        self.window_seconds = window_seconds
        self.spike_threshold = spike_threshold
        self.location_threshold = location_threshold
        self.trend_window_seconds = trend_window_seconds
        self.trend_threshold = trend_threshold
        self.scorer = scorer or SeverityScorer()

        logger.info(
            "Initializing SpikeDetector",
            extra={
                "window_seconds": window_seconds,
                "spike_threshold": spike_threshold,
                "location_threshold": location_threshold,
            },
        )

    @staticmethod
    def recent_events(events: List[Dict], now: float, window_seconds: int) -> List[Dict]:
        start = now - window_seconds
        return [e for e in events if start <= float(e.get("timestamp", 0)) <= now]

    @staticmethod
    def group_by_region(events: List[Dict]) -> Dict[str, List[Dict]]:
        groups: Dict[str, List[Dict]] = {}
        for event in events:
            key = event.get("region") or event.get("location") or UNKNOWN_REGION
            groups.setdefault(key, []).append(event)
        return groups

    def detect_spikes(self, events: List[Dict], now: float) -> List[Dict]:
        """
        Detect location spikes in the current window.

        Args:
            events: Disaster events (any time range)
            now: Window end (epoch seconds)

        Returns:
            List of spike descriptions, most severe first
        """
        recent = self.recent_events(events, now, self.window_seconds)

        if len(recent) < self.spike_threshold:
            logger.debug(
                "No global spike",
                extra={"recent_events": len(recent), "threshold": self.spike_threshold},
            )
            return []

        spikes = []
        for region, group in self.group_by_region(recent).items():
            if region == UNKNOWN_REGION:
                continue
            if len(group) < self.location_threshold:
                continue

            spike = self._build_spike(region, group, now)
            spikes.append(spike)

            logger.info(
                f"Spike detected: {region}",
                extra={
                    "count": spike["count"],
                    "severity": spike["severity"],
                    "risk_level": spike["risk_level"],
                },
            )

        spikes.sort(key=lambda s: (s["severity"], s["count"]), reverse=True)
        return spikes

    def location_trends(self, events: List[Dict], now: float) -> List[Dict]:
        """
        Regions with sustained activity over the longer trend window.
        """
        recent = self.recent_events(events, now, self.trend_window_seconds)
        trends = []
        for region, group in self.group_by_region(recent).items():
            if region == UNKNOWN_REGION or len(group) < self.trend_threshold:
                continue
            severities = [float(e.get("severity", 0)) for e in group]
            trends.append(
                {
                    "region": region,
                    "count": len(group),
                    "avg_severity": round(sum(severities) / len(severities), 4),
                    "disaster_types": _distinct(e.get("disaster_type") for e in group),
                }
            )
        trends.sort(key=lambda t: t["count"], reverse=True)
        return trends

    def _build_spike(self, region: str, group: List[Dict], now: float) -> Dict:
        ordered = sorted(group, key=lambda e: float(e.get("timestamp", 0)))
        severities = [float(e.get("severity", 0)) for e in ordered]
        severity = round(self.scorer.alert_severity(severities), 4)

        # Most mentioned place inside the region labels the alert
        places: Dict[str, int] = {}
        for e in ordered:
            loc = e.get("location") or region
            places[loc] = places.get(loc, 0) + 1
        location = max(places.items(), key=lambda kv: kv[1])[0]

        return {
            "region": region,
            "location": location,
            "events": ordered,
            "event_ids": [e.get("event_id") for e in ordered],
            "count": len(ordered),
            "avg_severity": round(sum(severities) / len(severities), 4),
            "max_severity": max(severities),
            "severity": severity,
            "risk_level": self.scorer.risk_level(severity),
            "disaster_types": _distinct(e.get("disaster_type") for e in ordered),
            "window_start": int(now - self.window_seconds),
            "window_end": int(now),
        }


def _distinct(values) -> List[str]:
    out: List[str] = []
    for v in values:
        if v and v != "none" and v not in out:
            out.append(v)
    return out
