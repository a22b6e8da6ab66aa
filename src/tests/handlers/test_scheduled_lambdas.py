"""
Handler Tests for the scraper and verifier Lambdas
"""

import json
import os
import sys
import time
from dataclasses import dataclass
from unittest.mock import MagicMock

import pytest

os.environ.setdefault("AWS_DEFAULT_REGION", "ap-southeast-1")
os.environ.setdefault("AWS_REGION", "ap-southeast-1")
os.environ.setdefault("BEDROCK_ENABLED", "false")
os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "true")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "crowdwatch-test")

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from crowdwatch.handlers import scraper_lambda, verifier_lambda
from crowdwatch.local import InMemoryAlertManager, InMemoryEventStore


@dataclass
class FakeContext:
    function_name: str = "crowdwatch-test-scheduled"
    memory_limit_in_mb: int = 256
    invoked_function_arn: str = "arn:aws:lambda:ap-southeast-1:123456789012:function:crowdwatch-test-scheduled"
    aws_request_id: str = "11111111-2222-3333-4444-555555555555"


def body_of(response):
    return json.loads(response["body"])


class TestScraperLambda:

    @pytest.fixture(autouse=True)
    def mocked_sources(self, monkeypatch):
        def fetch(name, limit):
            if name == "broken":
                raise RuntimeError("403 Forbidden")
            return [
                {"post_id": "shared", "text": "Banjir di Kuantan", "source": "reddit"},
                {"post_id": f"{name}-1", "text": "Flood in Klang", "source": "reddit"},
            ]

        self.reddit = MagicMock()
        self.reddit.fetch_disaster_posts.side_effect = fetch
        self.publisher = MagicMock()
        self.publisher.enqueue_posts.side_effect = lambda posts: {"queued": len(posts), "failed": 0}

        monkeypatch.setattr(scraper_lambda, "reddit_client", self.reddit)
        monkeypatch.setattr(scraper_lambda, "queue_publisher", self.publisher)

    def test_sources_fail_independently(self):
        response = scraper_lambda.lambda_handler({"subreddits": ["malaysia", "broken", "penang"]}, FakeContext())
        body = body_of(response)

        assert response["statusCode"] == 200
        assert body["sources"]["broken"]["status"] == "failed"
        assert body["sources"]["malaysia"] == {"status": "ok", "count": 2}
        # "shared" appears in both healthy subreddits but is queued once
        assert body["posts_found"] == 3
        assert body["queued"] == 3

    def test_nothing_found(self):
        self.reddit.fetch_disaster_posts.side_effect = lambda name, limit: []

        body = body_of(scraper_lambda.lambda_handler({"subreddits": ["malaysia"]}, FakeContext()))

        assert body["posts_found"] == 0
        self.publisher.enqueue_posts.assert_not_called()


class TestVerifierLambda:

    @pytest.fixture(autouse=True)
    def in_memory_stores(self, monkeypatch):
        self.store = InMemoryEventStore()
        self.manager = InMemoryAlertManager()
        self.met = MagicMock()
        self.met.warning_verifications.return_value = []

        monkeypatch.setattr(verifier_lambda, "event_store", self.store)
        monkeypatch.setattr(verifier_lambda, "alert_manager", self.manager)
        monkeypatch.setattr(verifier_lambda, "met_client", self.met)

    def test_no_verifications(self):
        body = body_of(verifier_lambda.lambda_handler({}, FakeContext()))
        assert body["status"] == "no_verifications"

    def test_manual_verification(self):
        now = int(time.time())
        self.store.put_event({"event_id": "e1", "region": "pahang", "location": "kuantan", "timestamp": now - 300})
        self.store.put_event({"event_id": "e2", "region": "sabah", "location": "ranau", "timestamp": now - 300})

        response = verifier_lambda.lambda_handler(
            {"verifications": [{"source": "NADMA", "location": "Kuantan"}, {"source": "NADMA"}],
             "skip_official_sources": True},
            FakeContext(),
        )
        body = body_of(response)

        assert response["statusCode"] == 200
        assert body["verifications"] == 1
        assert body["verified_events"] == 1
        assert self.store.events["e1"]["verified"] == 1
        self.met.warning_verifications.assert_not_called()

    def test_weather_feed_failure_is_tolerated(self):
        self.met.warning_verifications.side_effect = RuntimeError("feed down")

        response = verifier_lambda.lambda_handler({}, FakeContext())

        assert response["statusCode"] == 200
        assert body_of(response)["status"] == "no_verifications"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
