"""
Unit Tests for Heuristic Classifier

Covers the degraded classification paths used when the LLM is unavailable
or replies with something other than JSON.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from crowdwatch.core.heuristic_classifier import HeuristicClassifier


class TestHeuristicClassifier:

    def setup_method(self):
        self.classifier = HeuristicClassifier()

    def test_detect_language(self):
        assert self.classifier.detect_language("Banjir di Kuantan") == "ms"
        assert self.classifier.detect_language("Tanah runtuh dekat Cameron Highlands") == "ms"
        assert self.classifier.detect_language("Flood in town") == "en"

    def test_fallback_disaster(self):
        result = self.classifier.fallback("Flood in Kuantan, water everywhere")

        assert result["is_disaster"] is True
        assert result["disaster_type"] == "flood"
        assert result["confidence"] == pytest.approx(0.3)
        assert result["severity"] == pytest.approx(0.5)
        assert result["analysis_source"] == "heuristic_fallback"
        assert "flood" in result["key_phrases"]

    def test_fallback_non_disaster_context(self):
        """Food chatter is vetoed even with no disaster words at all."""
        result = self.classifier.fallback("Best croissant in town, so flaky")

        assert result["is_disaster"] is False
        assert result["confidence"] == pytest.approx(0.9)
        assert result["severity"] == pytest.approx(0.1)

    def test_fallback_no_keywords(self):
        result = self.classifier.fallback("Nice sunny afternoon")

        assert result["is_disaster"] is False
        assert result["confidence"] == pytest.approx(0.3)
        assert result["severity"] == pytest.approx(0.1)

    def test_safe_response_model_declined(self):
        result = self.classifier.safe_response("Flood in Klang", "This post is not a disaster.")

        assert result["is_disaster"] is False
        assert result["confidence"] == pytest.approx(0.8)
        assert result["analysis_source"] == "bedrock_safe_response"

    def test_safe_response_keyword_check(self):
        result = self.classifier.safe_response("Massive fire near Ipoh", "<<garbled>>")

        assert result["is_disaster"] is True
        assert result["severity"] == pytest.approx(0.5)
        assert result["confidence"] == pytest.approx(0.4)

    def test_safe_response_traffic(self):
        result = self.classifier.safe_response("Stuck in traffic jam again", "<<garbled>>")

        assert result["is_disaster"] is False
        assert result["confidence"] == pytest.approx(0.9)

    def test_strict_signal(self):
        assert self.classifier.has_strict_disaster_signal("Landslide hit houses in Cameron Highlands")
        assert not self.classifier.has_strict_disaster_signal("Flood of orders at the office today")
        assert self.classifier.has_strict_disaster_signal("State of emergency declared, office closed")

    def test_extract_entities(self):
        entities = self.classifier.extract_entities("Bomba rescue flood victims")
        types = {(e["text"], e["type"]) for e in entities}

        assert ("flood", "DISASTER") in types
        assert ("rescue", "EMERGENCY") in types
        assert ("bomba", "ORGANIZATION") in types

    def test_disaster_type(self):
        assert self.classifier.disaster_type("Gempa dirasai di Ranau") == "earthquake"
        assert self.classifier.disaster_type("Ribut petir malam ini") == "storm"
        assert self.classifier.disaster_type("Quiet day") == "none"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
