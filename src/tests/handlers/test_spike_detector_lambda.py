"""
Handler Tests for the scheduled spike detector
"""

import json
import os
import sys
import time
from dataclasses import dataclass

import pytest

os.environ.setdefault("AWS_DEFAULT_REGION", "ap-southeast-1")
os.environ.setdefault("AWS_REGION", "ap-southeast-1")
os.environ.setdefault("BEDROCK_ENABLED", "false")
os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "true")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "crowdwatch-test")

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from crowdwatch.core.spike_detector import SpikeDetector
from crowdwatch.handlers import spike_detector_lambda
from crowdwatch.local import InMemoryAlertManager, InMemoryEventStore
from crowdwatch.pipeline import AlertPipeline


@dataclass
class FakeContext:
    function_name: str = "crowdwatch-test-spike-detector"
    memory_limit_in_mb: int = 256
    invoked_function_arn: str = "arn:aws:lambda:ap-southeast-1:123456789012:function:crowdwatch-test-spike-detector"
    aws_request_id: str = "11111111-2222-3333-4444-555555555555"


class TestSpikeDetectorLambda:

    @pytest.fixture(autouse=True)
    def in_memory_stores(self, monkeypatch):
        self.store = InMemoryEventStore()
        self.manager = InMemoryAlertManager()
        monkeypatch.setattr(spike_detector_lambda, "event_store", self.store)
        monkeypatch.setattr(spike_detector_lambda, "alert_manager", self.manager)
        monkeypatch.setattr(spike_detector_lambda, "alert_pipeline", AlertPipeline(SpikeDetector(), self.manager))

    def invoke(self):
        response = spike_detector_lambda.lambda_handler({"source": "aws.events"}, FakeContext())
        return response["statusCode"], json.loads(response["body"])

    def test_no_data(self):
        status, body = self.invoke()

        assert status == 200
        assert body["status"] == "no_data"

    def test_spike_creates_alert(self):
        now = int(time.time())
        for i in range(3):
            self.store.put_event(
                {"event_id": f"e{i}", "region": "pahang", "location": "kuantan",
                 "timestamp": now - 60 * (i + 1), "severity": 0.5, "disaster_type": "flood"}
            )

        status, body = self.invoke()

        assert status == 200
        assert body["status"] == "success"
        assert body["spike_regions"] == ["pahang"]
        assert body["alerts_created"] == 1
        assert body["trends"][0]["region"] == "pahang"
        assert len(self.manager.list_active_alerts()) == 1

    def test_failure_returns_500(self, monkeypatch):
        def boom(start_time, end_time=None):
            raise RuntimeError("scan failed")

        monkeypatch.setattr(self.store, "fetch_recent", boom)

        status, body = self.invoke()

        assert status == 500
        assert body["error"] == "scan failed"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
