"""
Malaysian Weather Client (data.gov.my)

Reads the public MetMalaysia feeds on api.data.gov.my:
- /weather/warning            active weather warnings
- /weather/warning/earthquake recent earthquakes
- /weather/forecast           7-day general forecasts

Used two ways:
1. Meteorological signal: a 0-1 severity that corroborates a crowd report
2. Verification source: active warnings become official_alert verifications
"""

import time
from typing import Dict, List, Optional

import requests
from aws_lambda_powertools import Logger

from crowdwatch.core.verification import VerificationEngine
from crowdwatch.utils.text_match import contains_any
from crowdwatch.utils.timestamps import parse_timestamp

logger = Logger(child=True)

# Earthquake feed reports Malaysian local time when utcdatetime is absent
MYT_OFFSET_SECONDS = 8 * 3600


class MetClient:

    SOURCE_NAME = "Malaysian Meteorological Department"

    BASE_SEVERITY = 0.3
    WARNING_BOOST = 0.4
    EARTHQUAKE_BOOST = 0.3
    STORM_BOOST = 0.2
    NO_COORDS_SEVERITY = 0.6
    ERROR_SEVERITY = 0.5

    EARTHQUAKE_MIN_MAGNITUDE = 4.0
    EARTHQUAKE_LOOKBACK_SECONDS = 24 * 3600

    STORM_TERMS = ["ribut petir", "ribut", "hujan lebat", "angin kencang"]

    def __init__(
        self,
        base_url: str = "https://api.data.gov.my",
        timeout_sec: float = 10.0,
        user_agent: str = "DisasterAlertBot/1.0",
        verifier: Optional[VerificationEngine] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.verifier = verifier or VerificationEngine()
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})

    # Feeds
    def fetch_warnings(self, limit: int = 10) -> List[Dict]:
        return self._get_list("/weather/warning", limit)

    def fetch_earthquakes(self, limit: int = 5) -> List[Dict]:
        return self._get_list("/weather/warning/earthquake", limit)

    def fetch_forecasts(self, limit: int = 5) -> List[Dict]:
        return self._get_list("/weather/forecast", limit)

    # Filters
    @staticmethod
    def active_warnings(warnings: List[Dict], now: Optional[float] = None) -> List[Dict]:
        now = time.time() if now is None else now
        active = []
        for warning in warnings:
            valid_from = parse_timestamp(warning.get("valid_from"))
            valid_to = parse_timestamp(warning.get("valid_to"))
            if valid_from is None or valid_to is None:
                continue
            if valid_from <= now <= valid_to:
                active.append(warning)
        return active

    def recent_earthquakes(self, quakes: List[Dict], now: Optional[float] = None) -> List[Dict]:
        now = time.time() if now is None else now
        recent = []
        for quake in quakes:
            when = parse_timestamp(quake.get("utcdatetime"))
            if when is None:
                local = parse_timestamp(quake.get("localdatetime"))
                when = local - MYT_OFFSET_SECONDS if local is not None else None
            if when is None:
                continue
            try:
                magnitude = float(quake.get("magdefault", 0))
            except (TypeError, ValueError):
                continue
            if 0 <= now - when <= self.EARTHQUAKE_LOOKBACK_SECONDS and magnitude >= self.EARTHQUAKE_MIN_MAGNITUDE:
                recent.append(quake)
        return recent

    def has_storm_forecast(self, forecasts: List[Dict]) -> bool:
        for forecast in forecasts:
            text = " ".join(
                str(forecast.get(k) or "")
                for k in ("morning_forecast", "afternoon_forecast", "night_forecast", "summary_forecast")
            )
            if contains_any(text, self.STORM_TERMS, inflect=False):
                return True
        return False

    # Signal
    def meteorological_signal(self, coordinates: Optional[Dict] = None, now: Optional[float] = None) -> Dict:
        """
        Corroborating weather severity for a report.

        Returns:
            {"severity": float, "source": str}
        """
        if not coordinates:
            return {"severity": self.NO_COORDS_SEVERITY, "source": "stub-malaysia-weather"}

        severity = self.BASE_SEVERITY
        source = "malaysia-weather"

        try:
            if self.active_warnings(self._safe_fetch(self.fetch_warnings), now):
                severity += self.WARNING_BOOST
                source = "malaysia-warnings"

            if self.recent_earthquakes(self._safe_fetch(self.fetch_earthquakes), now):
                severity += self.EARTHQUAKE_BOOST
                source = "malaysia-earthquake"

            if self.has_storm_forecast(self._safe_fetch(self.fetch_forecasts)):
                severity += self.STORM_BOOST
                source = "malaysia-storms"
        except Exception:
            logger.exception("Meteorological signal failed")
            return {"severity": self.ERROR_SEVERITY, "source": "malaysia-weather-error"}

        return {"severity": round(min(1.0, severity), 4), "source": source}

    def warning_verifications(self, now: Optional[float] = None) -> List[Dict]:
        """
        Active warnings that name a known place, as official_alert verifications.
        """
        now = time.time() if now is None else now
        verifications = []
        for warning in self.active_warnings(self.fetch_warnings(limit=50), now):
            text = " ".join(
                str(warning.get(k) or "")
                for k in ("heading_en", "text_en", "heading_bm", "text_bm")
            )
            issued = parse_timestamp((warning.get("warning_issue") or {}).get("issued"))
            # Stamped at observation time: a warning still in force confirms
            # reports made up to the verification window before now
            for verification in self.verifier.extract_verifications(
                self.SOURCE_NAME,
                text,
                verification_type="official_alert",
                timestamp=int(now),
                url=f"{self.base_url}/weather/warning",
            ):
                verification["issued_at"] = issued
                verifications.append(verification)

        logger.info(f"Built {len(verifications)} verifications from weather warnings")
        return verifications

    def _safe_fetch(self, fetch) -> List[Dict]:
        # One failed feed must not hide the others
        try:
            return fetch()
        except requests.exceptions.RequestException as e:
            logger.warning(f"Weather feed unavailable: {e}")
            return []

    def _get_list(self, path: str, limit: int) -> List[Dict]:
        resp = self.session.get(
            f"{self.base_url}{path}", params={"limit": limit}, timeout=self.timeout_sec
        )
        resp.raise_for_status()
        data = resp.json()
        return data if isinstance(data, list) else []
