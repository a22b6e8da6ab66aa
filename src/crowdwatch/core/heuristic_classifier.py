"""
Heuristic Classifier

Degraded classification path used when Bedrock is unavailable, throttled
past its retry budget, or returns something that is not JSON. Produces the
same Classification shape as the LLM path so downstream code never needs to
know which one answered.
"""

from typing import Dict, List, Optional

from aws_lambda_powertools import Logger

from crowdwatch.core import lexicon
from crowdwatch.core.severity_scorer import SeverityScorer
from crowdwatch.utils.text_match import contains_any, find_terms

logger = Logger(child=True)


class HeuristicClassifier:

    FALLBACK_CONFIDENCE = 0.3
    SAFE_RESPONSE_CONFIDENCE = 0.4
    NON_DISASTER_CONFIDENCE = 0.9
    DECLINED_CONFIDENCE = 0.8

    NON_DISASTER_SEVERITY = 0.1
    SAFE_DISASTER_SEVERITY = 0.5

    MAX_KEY_PHRASES = 5

    def __init__(self, scorer: Optional[SeverityScorer] = None):
        self.scorer = scorer or SeverityScorer()

    # Signals
    def detect_language(self, text: str) -> str:
        return "ms" if contains_any(text, lexicon.MALAY_MARKERS) else "en"

    def contains_disaster_keywords(self, text: str) -> bool:
        return contains_any(text, lexicon.DISASTER_KEYWORDS)

    def has_non_disaster_context(self, text: str) -> bool:
        return contains_any(text, lexicon.NON_DISASTER_CONTEXTS)

    def has_strict_disaster_signal(self, text: str) -> bool:
        """
        Stricter gate than contains_disaster_keywords: used before an event is
        auto-verified without an official source.
        """
        if contains_any(text, lexicon.STRICT_DISASTER_PHRASES):
            return True
        if self.has_non_disaster_context(text):
            return False
        return contains_any(text, lexicon.STRICT_DISASTER_KEYWORDS)

    def disaster_type(self, text: str) -> str:
        for dtype, terms in lexicon.DISASTER_TYPES:
            if contains_any(text, terms):
                return dtype
        return "none"

    def extract_entities(self, text: str) -> List[Dict]:
        entities = []
        for etype, terms in lexicon.ENTITY_TYPES.items():
            for term in find_terms(text, terms):
                entities.append({"text": term, "type": etype, "confidence": 0.6})
        return entities

    def extract_key_phrases(self, text: str) -> List[str]:
        phrases: List[str] = []
        for terms in lexicon.SEVERITY_KEYWORDS.values():
            for term in find_terms(text, terms):
                if term not in phrases:
                    phrases.append(term)
        return phrases[: self.MAX_KEY_PHRASES]

    # Classifications
    def fallback(self, text: str) -> Dict:
        """
        Keyword classification used when the LLM call itself failed.
        """
        if self.has_non_disaster_context(text):
            return self._not_disaster(
                text,
                confidence=self.NON_DISASTER_CONFIDENCE,
                reasoning="Everyday context detected (food, traffic, work)",
                source="heuristic_fallback",
            )

        is_disaster = self.contains_disaster_keywords(text)
        severity = self.scorer.basic_score(text) if is_disaster else self.NON_DISASTER_SEVERITY

        return {
            "is_disaster": is_disaster,
            "disaster_type": self.disaster_type(text) if is_disaster else "none",
            "severity": severity,
            "confidence": self.FALLBACK_CONFIDENCE,
            "entities": self.extract_entities(text),
            "sentiment": self.scorer.analyze_sentiment(text),
            "key_phrases": self.extract_key_phrases(text),
            "location": None,
            "reasoning": "Keyword fallback analysis",
            "analysis_source": "heuristic_fallback",
        }

    def safe_response(self, text: str, raw_reply: str = "") -> Dict:
        """
        Classification for an LLM reply that could not be parsed as JSON.
        """
        if contains_any(raw_reply or "", lexicon.NOT_DISASTER_REPLIES, inflect=False):
            return self._not_disaster(
                text,
                confidence=self.DECLINED_CONFIDENCE,
                reasoning="Model reply declined the disaster label",
                source="bedrock_safe_response",
            )

        if self.has_non_disaster_context(text):
            return self._not_disaster(
                text,
                confidence=self.NON_DISASTER_CONFIDENCE,
                reasoning="Everyday context detected (food, traffic, work)",
                source="bedrock_safe_response",
            )

        is_disaster = contains_any(text, lexicon.CLEAR_DISASTER_KEYWORDS)
        return {
            "is_disaster": is_disaster,
            "disaster_type": self.disaster_type(text) if is_disaster else "none",
            "severity": self.SAFE_DISASTER_SEVERITY if is_disaster else self.NON_DISASTER_SEVERITY,
            "confidence": self.SAFE_RESPONSE_CONFIDENCE,
            "entities": [],
            "sentiment": {"sentiment": "NEUTRAL", "confidence": 0.5},
            "key_phrases": [],
            "location": None,
            "reasoning": "Unparseable model reply, keyword check applied",
            "analysis_source": "bedrock_safe_response",
        }

    def _not_disaster(self, text: str, confidence: float, reasoning: str, source: str) -> Dict:
        return {
            "is_disaster": False,
            "disaster_type": "none",
            "severity": self.NON_DISASTER_SEVERITY,
            "confidence": confidence,
            "entities": [],
            "sentiment": self.scorer.analyze_sentiment(text),
            "key_phrases": [],
            "location": None,
            "reasoning": reasoning,
            "analysis_source": source,
        }
