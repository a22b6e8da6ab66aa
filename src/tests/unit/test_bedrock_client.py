"""
Unit Tests for Bedrock Client

The boto3 client is replaced with a MagicMock; no AWS calls are made.
"""

import json
import pytest
import sys
import os
from unittest.mock import MagicMock

from botocore.exceptions import ClientError

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from crowdwatch.clients.bedrock_client import BedrockClient


def converse_reply(text):
    return {
        "output": {"message": {"role": "assistant", "content": [{"text": text}]}},
        "usage": {"inputTokens": 10, "outputTokens": 20},
        "stopReason": "end_turn",
    }


def client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "Converse")


class TestBedrockClient:

    def setup_method(self):
        self.mock_client = MagicMock()
        self.bedrock = BedrockClient(
            model_id="test-model",
            region_name="ap-southeast-1",
            min_interval_sec=0,
            max_attempts=3,
            backoff_base_sec=0,
            backoff_max_sec=0,
            client=self.mock_client,
        )

    def test_classify_post(self):
        self.mock_client.converse.return_value = converse_reply(
            json.dumps(
                {
                    "isDisaster": True,
                    "disasterType": "Flood",
                    "severity": 0.85,
                    "confidence": 0.9,
                    "entities": [{"text": "Kuantan", "type": "location", "confidence": 0.95}],
                    "sentiment": {"sentiment": "negative", "confidence": 0.8},
                    "keyPhrases": ["flash flood"],
                    "location": "Kuantan",
                    "reasoning": "Reports rising water.",
                }
            )
        )

        result = self.bedrock.classify_post("Flash flood in Kuantan")

        assert result["is_disaster"] is True
        assert result["disaster_type"] == "flood"
        assert result["severity"] == pytest.approx(0.85)
        assert result["location"] == "Kuantan"
        assert result["entities"][0]["type"] == "LOCATION"
        assert result["sentiment"]["sentiment"] == "NEGATIVE"
        assert result["analysis_source"] == "bedrock"

        kwargs = self.mock_client.converse.call_args.kwargs
        assert kwargs["modelId"] == "test-model"
        assert "Flash flood in Kuantan" in kwargs["messages"][0]["content"][0]["text"]

    def test_fenced_reply_is_parsed(self):
        self.mock_client.converse.return_value = converse_reply(
            'Here you go:\n```json\n{"isDisaster": false, "severity": 0.1, "location": "null"}\n```'
        )

        result = self.bedrock.classify_post("Nice weather")

        assert result["is_disaster"] is False
        assert result["location"] is None

    def test_out_of_range_values_are_clamped(self):
        self.mock_client.converse.return_value = converse_reply(
            '{"isDisaster": "true", "severity": 7, "confidence": "high"}'
        )

        result = self.bedrock.classify_post("Flood")

        assert result["is_disaster"] is True
        assert result["severity"] == pytest.approx(1.0)
        assert result["confidence"] == pytest.approx(0.5)

    def test_unparseable_reply_uses_safe_response(self):
        self.mock_client.converse.return_value = converse_reply("I think this describes a flood.")

        result = self.bedrock.classify_post("Flood in Kuantan")

        assert result["analysis_source"] == "bedrock_safe_response"
        assert result["is_disaster"] is True

    @pytest.mark.parametrize(
        "reply",
        [
            {"isDisaster": True, "severity": 0.8, "sentiment": ["NEGATIVE"]},
            {"isDisaster": True, "severity": 0.8, "sentiment": 0.4},
            {"isDisaster": True, "severity": 0.8, "entities": 5},
            {"isDisaster": True, "severity": 0.8, "keyPhrases": 3},
            {"isDisaster": True, "severity": 0.8, "reasoning": {"why": "water"}},
        ],
    )
    def test_malformed_fields_are_tolerated(self, reply):
        self.mock_client.converse.return_value = converse_reply(json.dumps(reply))

        result = self.bedrock.classify_post("Banjir di Kuantan")

        assert result["is_disaster"] is True
        assert result["severity"] == pytest.approx(0.8)
        assert result["sentiment"]["sentiment"] == "NEUTRAL"
        assert result["entities"] == []
        assert result["key_phrases"] == []
        assert result["reasoning"] == ""

    def test_string_key_phrases_kept_whole(self):
        self.mock_client.converse.return_value = converse_reply(
            '{"isDisaster": true, "severity": 0.7, "keyPhrases": "flash flood"}'
        )

        result = self.bedrock.classify_post("Flash flood")

        assert result["key_phrases"] == ["flash flood"]

    def test_unusable_fields_fall_back_to_safe_response(self, monkeypatch):
        def broken(raw):
            raise ValueError("bad field")

        monkeypatch.setattr(self.bedrock, "_normalise", broken)
        self.mock_client.converse.return_value = converse_reply('{"isDisaster": true}')

        result = self.bedrock.classify_post("Flood in Kuantan")

        assert result["analysis_source"] == "bedrock_safe_response"

    def test_throttling_is_retried(self):
        self.mock_client.converse.side_effect = [
            client_error("ThrottlingException"),
            converse_reply('{"isDisaster": true, "severity": 0.6, "confidence": 0.7}'),
        ]

        result = self.bedrock.classify_post("Flood in Kuantan")

        assert result["analysis_source"] == "bedrock"
        assert self.mock_client.converse.call_count == 2

    def test_retry_budget_exhausted_falls_back(self):
        self.mock_client.converse.side_effect = client_error("ThrottlingException")

        result = self.bedrock.classify_post("Flood in Kuantan")

        assert result["analysis_source"] == "heuristic_fallback"
        assert self.mock_client.converse.call_count == 3

    def test_non_retryable_error_is_not_retried(self):
        self.mock_client.converse.side_effect = client_error("AccessDeniedException")

        result = self.bedrock.classify_post("Flood in Kuantan")

        assert result["analysis_source"] == "heuristic_fallback"
        assert self.mock_client.converse.call_count == 1

    def test_parse_reply(self):
        assert BedrockClient.parse_reply("") is None
        assert BedrockClient.parse_reply("no json here") is None
        assert BedrockClient.parse_reply("{broken") is None
        assert BedrockClient.parse_reply('{"a": 1}') == {"a": 1}

    def test_backoff_is_capped(self):
        client = BedrockClient(
            model_id="m", region_name="r", backoff_base_sec=5.0, backoff_max_sec=20.0, client=MagicMock()
        )
        assert 5.0 <= client._backoff_seconds(1) <= 5.25
        assert client._backoff_seconds(5) == pytest.approx(20.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
