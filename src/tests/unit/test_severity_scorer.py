"""
Unit Tests for Severity Scorer

Tests keyword boosts, sentiment adjustment, clamping and alert levels.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from crowdwatch.core.severity_scorer import SeverityScorer


class TestSeverityScorer:

    def setup_method(self):
        self.scorer = SeverityScorer()

    def test_high_tier_keywords_saturate(self):
        """Several high-tier keywords push the score to the ceiling."""
        score = self.scorer.score("Earthquake! Building collapse, evacuate now")
        assert score == 1.0, f"Expected 1.0, got {score}"

    def test_low_tier_only(self):
        score = self.scorer.basic_score("Light rain this morning")
        assert score == pytest.approx(0.4)

    def test_no_keywords_is_base(self):
        assert self.scorer.basic_score("Lovely sunset over the bay") == pytest.approx(0.3)

    def test_negative_sentiment_and_confidence(self):
        """base 0.3 + flood 0.2 + warning 0.2 + negative 0.2, halved by confidence."""
        score = self.scorer.score("flood warning", sentiment="NEGATIVE", confidence=0.5)
        assert score == pytest.approx(0.45)

    def test_positive_sentiment_penalty(self):
        score = self.scorer.score("flood", sentiment="POSITIVE")
        assert score == pytest.approx(0.4)

    def test_clamped_to_minimum(self):
        assert self.scorer.score("", confidence=0.0) == pytest.approx(0.1)

    def test_keyword_matching_respects_word_boundaries(self):
        """'hot' must not match inside 'shot' or 'photos'."""
        assert self.scorer.basic_score("shot some photos") == pytest.approx(0.3)

    def test_inflected_keywords_count(self):
        breakdown = self.scorer.keyword_breakdown("Streets flooded after storms")
        assert "flood" in breakdown["medium"]
        assert "storm" in breakdown["medium"]

    def test_malay_keywords(self):
        breakdown = self.scorer.keyword_breakdown("Amaran ribut petir di Kelantan")
        assert "amaran" in breakdown["medium"]
        assert "ribut petir" in breakdown["medium"]

    def test_analyze_sentiment_negative(self):
        sentiment = self.scorer.analyze_sentiment("Help! We are trapped and injured")
        assert sentiment["sentiment"] == "NEGATIVE"
        assert sentiment["confidence"] == pytest.approx(0.8)

    def test_analyze_sentiment_neutral(self):
        sentiment = self.scorer.analyze_sentiment("Water level at the river today")
        assert sentiment == {"sentiment": "NEUTRAL", "confidence": 0.5}

    def test_alert_severity(self):
        assert self.scorer.alert_severity([0.5, 0.7]) == pytest.approx(0.8)
        assert self.scorer.alert_severity([0.9] * 5) == pytest.approx(1.0)
        assert self.scorer.alert_severity([]) == 0.0

    def test_risk_levels(self):
        assert self.scorer.risk_level(0.49) == "Yellow"
        assert self.scorer.risk_level(0.5) == "Orange"
        assert self.scorer.risk_level(0.79) == "Orange"
        assert self.scorer.risk_level(0.8) == "Red"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
