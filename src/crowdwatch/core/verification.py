"""
Official-source Verification

Matches crowd-sourced events and alerts against bulletins from official
agencies. A record is verified when an official bulletin names the same
region within two hours after the record was reported.
"""

import time
from typing import Dict, List, Optional

from aws_lambda_powertools import Logger

from crowdwatch.core import lexicon
from crowdwatch.core.location_extractor import LocationExtractor
from crowdwatch.utils.text_match import contains_any

logger = Logger(child=True)

OFFICIAL_SOURCES: List[Dict] = [
    {"name": "Malaysian Meteorological Department", "short": "MetMalaysia", "url": "https://www.met.gov.my"},
    {"name": "Malaysia Civil Defence Force", "short": "APM", "url": "https://www.civildefence.gov.my"},
    {"name": "National Disaster Management Agency", "short": "NADMA", "url": "https://www.nadma.gov.my"},
    {"name": "Fire and Rescue Department Malaysia", "short": "BOMBA", "url": "https://www.bomba.gov.my"},
]


class VerificationEngine:
    """
    Official-source matching for events and alerts.
    """

    TYPE_CONFIDENCE = {
        "official_alert": 0.9,
        "official_news": 0.8,
        "news_article": 0.7,
        "manual": 1.0,
    }

    DEFAULT_WINDOW_SECONDS = 2 * 3600

    def __init__(
        self,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        locations: Optional[LocationExtractor] = None,
    ):
        self.window_seconds = window_seconds
        self.locations = locations or LocationExtractor()

    @staticmethod
    def official_sources() -> List[Dict]:
        return [dict(s) for s in OFFICIAL_SOURCES]

    def extract_verification(
        self,
        source: str,
        text: str,
        verification_type: str = "official_alert",
        timestamp: Optional[int] = None,
        url: Optional[str] = None,
    ) -> Optional[Dict]:
        """
        Build a Verification from bulletin text.

        Returns None when the bulletin names no disaster or no known place.
        """
        if verification_type not in self.TYPE_CONFIDENCE:
            raise ValueError(f"Unknown verification type: {verification_type}")

        if not contains_any(text, lexicon.DISASTER_KEYWORDS + lexicon.STRICT_DISASTER_KEYWORDS):
            return None

        place = self.locations.extract(text)
        if not place:
            return None

        return {
            "source": source,
            "type": verification_type,
            "location": place["location"],
            "region": place["region"],
            "text": text[:500],
            "timestamp": int(timestamp if timestamp is not None else time.time()),
            "url": url,
            "confidence": self.TYPE_CONFIDENCE[verification_type],
        }

    def extract_verifications(
        self,
        source: str,
        text: str,
        verification_type: str = "official_alert",
        timestamp: Optional[int] = None,
        url: Optional[str] = None,
    ) -> List[Dict]:
        """
        One Verification per region named in a bulletin (warnings often list
        several states).
        """
        first = self.extract_verification(source, text, verification_type, timestamp, url)
        if first is None:
            return []

        verifications = []
        for place in self.locations.extract_all(text):
            verifications.append({**first, "location": place["location"], "region": place["region"]})
        return verifications

    def manual(self, source: str, location: str, timestamp: Optional[int] = None, text: str = "") -> Dict:
        place = self.locations.resolve_name(location) or {"location": location, "region": None}
        return {
            "source": source,
            "type": "manual",
            "location": place["location"],
            "region": place.get("region") or place["location"],
            "text": text,
            "timestamp": int(timestamp if timestamp is not None else time.time()),
            "url": None,
            "confidence": self.TYPE_CONFIDENCE["manual"],
        }

    def find_matching(self, verification: Dict, records: List[Dict]) -> List[Dict]:
        """
        Unverified events/alerts in the verification's region, reported no
        more than the window before it.
        """
        v_ts = float(verification["timestamp"])
        v_region = verification.get("region") or verification.get("location")

        matches = []
        for record in records:
            if record.get("verified"):
                continue
            if (record.get("region") or record.get("location")) != v_region:
                continue
            r_ts = float(record.get("timestamp", record.get("created_at", 0)))
            if 0 <= v_ts - r_ts <= self.window_seconds:
                matches.append(record)
        return matches

    @staticmethod
    def apply(record: Dict, verification: Dict) -> Dict:
        record.update(
            {
                "verified": 1,
                "verification_source": verification["source"],
                "verification_type": verification["type"],
                "verification_confidence": verification["confidence"],
                "verification_timestamp": verification["timestamp"],
            }
        )
        return record


class VerificationLedger:
    """In-run history of applied verifications."""

    def __init__(self):
        self.history: List[Dict] = []
        self.verified_ids: set = set()

    def record(self, record_id: str, verification: Dict) -> None:
        self.verified_ids.add(record_id)
        self.history.append({"record_id": record_id, **verification})

    def is_verified(self, record_id: str) -> bool:
        return record_id in self.verified_ids

    def stats(self, total_records: int = 0) -> Dict:
        source_stats: Dict[str, int] = {}
        for entry in self.history:
            source_stats[entry["source"]] = source_stats.get(entry["source"], 0) + 1

        return {
            "verified": len(self.verified_ids),
            "total": total_records,
            "verification_rate": round(len(self.verified_ids) / total_records, 4) if total_records else 0.0,
            "source_stats": source_stats,
            "last_verification": self.history[-1]["timestamp"] if self.history else None,
        }
