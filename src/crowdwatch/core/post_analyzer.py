"""
Post Analyzer

Turns a raw Post into an Event:
1. Classify (Bedrock, or keyword heuristics when no LLM is configured)
2. Drop non-disaster posts
3. Pick severity (LLM score when the LLM answered, keyword score otherwise)
4. Resolve location and region
"""

import hashlib
import time
from typing import Dict, Optional

from aws_lambda_powertools import Logger

from crowdwatch.core.deduplicator import Deduplicator
from crowdwatch.core.heuristic_classifier import HeuristicClassifier
from crowdwatch.core.location_extractor import LocationExtractor
from crowdwatch.core.severity_scorer import SeverityScorer

logger = Logger(child=True)


class PostAnalyzer:
    """
    Classify, score and locate a single post.
    """

    EVENT_TTL_SECONDS = 30 * 24 * 3600

    def __init__(
        self,
        llm_client=None,
        scorer: Optional[SeverityScorer] = None,
        heuristics: Optional[HeuristicClassifier] = None,
        locations: Optional[LocationExtractor] = None,
    ):
        self.llm_client = llm_client
        self.scorer = scorer or SeverityScorer()
        self.heuristics = heuristics or HeuristicClassifier(self.scorer)
        self.locations = locations or LocationExtractor()

    def classify(self, text: str) -> Dict:
        if self.llm_client is not None:
            return self.llm_client.classify_post(text)
        return self.heuristics.fallback(text)

    def analyze(self, post: Dict, now: Optional[float] = None) -> Optional[Dict]:
        """
        Analyze a post.

        Args:
            post: Post record (text, author, source, timestamp, ...)
            now: Processing time (epoch seconds), defaults to the wall clock

        Returns:
            Event dict, or None when the post is not disaster related
        """
        text = post.get("text", "")
        classification = self.classify(text)

        if not classification.get("is_disaster"):
            logger.debug(
                "Post is not disaster related",
                extra={"post_id": post.get("post_id"), "source": classification.get("analysis_source")},
            )
            return None

        sentiment = (classification.get("sentiment") or {}).get("sentiment", "NEUTRAL")
        if classification.get("analysis_source") == "bedrock":
            severity = classification["severity"]
        else:
            heuristic_sentiment = self.scorer.analyze_sentiment(text)["sentiment"]
            severity = self.scorer.score(text, heuristic_sentiment, 1.0)

        place = self.locations.resolve(post, classification.get("location"))
        now = int(time.time() if now is None else now)
        timestamp = int(post.get("timestamp") or now)

        event = {
            "event_id": self.build_event_id(post),
            "post_id": post.get("post_id"),
            "text": text,
            "author": post.get("author"),
            "source": post.get("source", "unknown"),
            "url": post.get("url"),
            "timestamp": timestamp,
            "location": place["location"],
            "region": place["region"],
            "location_resolved_by": place.get("resolved_by"),
            "coordinates": post.get("coordinates"),
            "images": post.get("images") or [],
            "disaster_type": classification.get("disaster_type", "none"),
            "severity": severity,
            "confidence": classification.get("confidence", 0.0),
            "sentiment": sentiment,
            "key_phrases": classification.get("key_phrases", []),
            "entities": classification.get("entities", []),
            "analysis_source": classification.get("analysis_source"),
            "reasoning": classification.get("reasoning"),
            "language": self.heuristics.detect_language(text),
            "fingerprint": Deduplicator.fingerprint(post.get("author"), text),
            "verified": 0,
            "created_at": now,
            "ttl": now + self.EVENT_TTL_SECONDS,
        }

        logger.info(
            "Disaster event detected",
            extra={
                "event_id": event["event_id"],
                "region": event["region"],
                "severity": event["severity"],
                "disaster_type": event["disaster_type"],
            },
        )
        return event

    @staticmethod
    def build_event_id(post: Dict) -> str:
        if post.get("post_id"):
            return f"EVT_{post.get('source', 'post')}_{post['post_id']}"
        digest = hashlib.sha1(
            f"{post.get('author')}|{post.get('text')}|{post.get('timestamp')}".encode("utf-8")
        ).hexdigest()[:16]
        return f"EVT_{digest}"
