"""
Severity Scoring Engine

Keyword-presence severity for a single post:
- Base score 0.3
- +0.4 per high-tier keyword, +0.2 per medium, +0.1 per low
- Sentiment adjustment (+0.2 negative, -0.1 positive)
- Scaled by classification confidence
- Clamped to [0.1, 1.0]

Also maps aggregate severity to the Yellow/Orange/Red alert levels.
"""

from typing import Dict, Iterable, List

from aws_lambda_powertools import Logger

from crowdwatch.core import lexicon
from crowdwatch.utils.text_match import find_terms

logger = Logger(child=True)


class SeverityScorer:
    """
    Calculate post and alert severity scores.
    """

    BASE_SCORE = 0.3
    MIN_SCORE = 0.1
    MAX_SCORE = 1.0

    NEGATIVE_BOOST = 0.2
    POSITIVE_PENALTY = 0.1

    # Each event in a spike adds to the alert severity
    COUNT_BOOST = 0.1

    # Alert level thresholds
    ORANGE_THRESHOLD = 0.5
    RED_THRESHOLD = 0.8

    def score(self, text: str, sentiment: str = "NEUTRAL", confidence: float = 1.0) -> float:
        """
        Calculate the severity of a post.

        Args:
            text: Post text
            sentiment: POSITIVE, NEGATIVE, NEUTRAL or MIXED
            confidence: Classification confidence (0.0 to 1.0)

        Returns:
            Severity score (0.1 to 1.0)
        """
        score = self.BASE_SCORE + self._keyword_boost(text)

        sentiment = (sentiment or "NEUTRAL").upper()
        if sentiment == "NEGATIVE":
            score += self.NEGATIVE_BOOST
        elif sentiment == "POSITIVE":
            score -= self.POSITIVE_PENALTY

        score *= max(0.0, min(1.0, float(confidence)))

        return self._clamp(score)

    def basic_score(self, text: str) -> float:
        """Keyword-only severity with no sentiment or confidence adjustment."""
        return self._clamp(self.BASE_SCORE + self._keyword_boost(text))

    def keyword_breakdown(self, text: str) -> Dict[str, List[str]]:
        return {tier: find_terms(text, terms) for tier, terms in lexicon.SEVERITY_KEYWORDS.items()}

    def analyze_sentiment(self, text: str) -> Dict:
        """
        Word-count sentiment.

        Returns:
            {"sentiment": POSITIVE|NEGATIVE|NEUTRAL, "confidence": float}
        """
        positive = len(find_terms(text, lexicon.POSITIVE_WORDS))
        negative = len(find_terms(text, lexicon.NEGATIVE_WORDS))

        if negative > positive:
            return {"sentiment": "NEGATIVE", "confidence": min(0.9, 0.5 + 0.1 * negative)}
        if positive > negative:
            return {"sentiment": "POSITIVE", "confidence": min(0.9, 0.5 + 0.1 * positive)}
        return {"sentiment": "NEUTRAL", "confidence": 0.5}

    def alert_severity(self, severities: Iterable[float]) -> float:
        """
        Aggregate severity for a group of events: mean + 0.1 per event, capped at 1.0.
        """
        values = [float(s) for s in severities]
        if not values:
            return 0.0
        avg = sum(values) / len(values)
        return min(self.MAX_SCORE, avg + self.COUNT_BOOST * len(values))

    def risk_level(self, severity: float) -> str:
        if severity >= self.RED_THRESHOLD:
            return "Red"
        if severity >= self.ORANGE_THRESHOLD:
            return "Orange"
        return "Yellow"

    def _keyword_boost(self, text: str) -> float:
        boost = 0.0
        for tier, found in self.keyword_breakdown(text).items():
            boost += lexicon.SEVERITY_BOOSTS[tier] * len(found)
        return boost

    def _clamp(self, score: float) -> float:
        return round(max(self.MIN_SCORE, min(self.MAX_SCORE, score)), 4)
