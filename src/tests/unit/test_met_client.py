"""
Unit Tests for the Malaysian weather client

The requests session is mocked; responses mirror the api.data.gov.my
weather payloads.
"""

import pytest
import sys
import os
from unittest.mock import MagicMock

import requests

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from crowdwatch.clients.met_client import MetClient

BASE = "https://api.data.gov.my"

# 2023-11-14T22:13:20Z
NOW = 1_700_000_000

WARNING = {
    "warning_issue": {"issued": "2023-11-14T10:00:00", "title_en": "Continuous Rain Warning"},
    "valid_from": "2023-11-14T12:00:00",
    "valid_to": "2023-11-15T12:00:00",
    "heading_en": "Continuous Rain Warning",
    "text_en": "Continuous heavy rain expected, flood risk in Kelantan and Terengganu.",
    "heading_bm": "Amaran Hujan Berterusan",
    "text_bm": "",
}

EXPIRED_WARNING = {**WARNING, "valid_from": "2023-11-01T00:00:00", "valid_to": "2023-11-02T00:00:00"}

QUAKE = {"utcdatetime": "2023-11-14T20:00:00Z", "magdefault": 4.5, "location": "Ranau, Sabah"}

FORECAST = {
    "location": {"location_name": "Kota Bharu"},
    "morning_forecast": "Tiada hujan",
    "afternoon_forecast": "Ribut petir di beberapa tempat",
    "night_forecast": "Tiada hujan",
    "summary_forecast": "Ribut petir",
}


def fake_session(payloads, failing=()):
    session = MagicMock()

    def get(url, params=None, timeout=None):
        path = url[len(BASE):]
        if path in failing:
            raise requests.exceptions.ConnectionError("connection refused")
        resp = MagicMock()
        resp.json.return_value = payloads.get(path, [])
        resp.raise_for_status.return_value = None
        return resp

    session.get.side_effect = get
    return session


class TestMetClient:

    def test_active_warnings(self):
        active = MetClient.active_warnings([WARNING, EXPIRED_WARNING, {"valid_from": None}], now=NOW)
        assert active == [WARNING]

    def test_recent_earthquakes(self):
        client = MetClient(session=fake_session({}))
        small = {**QUAKE, "magdefault": 2.1}
        old = {**QUAKE, "utcdatetime": "2023-11-10T00:00:00Z"}
        assert client.recent_earthquakes([QUAKE, small, old], now=NOW) == [QUAKE]

    def test_earthquake_local_time_fallback(self):
        client = MetClient(session=fake_session({}))
        quake = {"localdatetime": "2023-11-15T04:00:00", "magdefault": "5.0"}
        assert client.recent_earthquakes([quake], now=NOW) == [quake]

    def test_storm_forecast(self):
        client = MetClient(session=fake_session({}))
        assert client.has_storm_forecast([FORECAST])
        assert not client.has_storm_forecast([{"summary_forecast": "Tiada hujan"}])

    def test_signal_without_coordinates(self):
        client = MetClient(session=fake_session({}))
        assert client.meteorological_signal(None) == {"severity": 0.6, "source": "stub-malaysia-weather"}

    def test_signal_all_feeds(self):
        session = fake_session(
            {
                "/weather/warning": [WARNING],
                "/weather/warning/earthquake": [QUAKE],
                "/weather/forecast": [FORECAST],
            }
        )
        client = MetClient(session=session)

        signal = client.meteorological_signal({"lat": 6.12, "lng": 102.24}, now=NOW)

        assert signal == {"severity": 1.0, "source": "malaysia-storms"}
        assert session.get.call_count == 3

    def test_signal_warning_only(self):
        client = MetClient(session=fake_session({"/weather/warning": [WARNING]}))
        signal = client.meteorological_signal({"lat": 6.12, "lng": 102.24}, now=NOW)
        assert signal["severity"] == pytest.approx(0.7)
        assert signal["source"] == "malaysia-warnings"

    def test_failed_feed_does_not_hide_others(self):
        client = MetClient(
            session=fake_session({"/weather/forecast": [FORECAST]}, failing=("/weather/warning",))
        )
        signal = client.meteorological_signal({"lat": 6.12, "lng": 102.24}, now=NOW)
        assert signal["severity"] == pytest.approx(0.5)
        assert signal["source"] == "malaysia-storms"

    def test_non_list_payload_is_empty(self):
        client = MetClient(session=fake_session({"/weather/warning": {"error": "bad request"}}))
        assert client.fetch_warnings() == []

    def test_warning_verifications(self):
        client = MetClient(session=fake_session({"/weather/warning": [WARNING, EXPIRED_WARNING]}))

        verifications = client.warning_verifications(now=NOW)

        assert [v["region"] for v in verifications] == ["kelantan", "terengganu"]
        first = verifications[0]
        assert first["source"] == "Malaysian Meteorological Department"
        assert first["type"] == "official_alert"
        assert first["timestamp"] == NOW
        assert first["issued_at"] == 1_699_956_000


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
