"""
Post deduplication.

The same author re-posting the same text (cross-posts, scraper overlap
between runs) inside the window counts once.
"""

import hashlib
import time
from typing import Dict, Optional

from aws_lambda_powertools import Logger

from crowdwatch.utils.text_match import normalise_text

logger = Logger(child=True)


class Deduplicator:

    DEFAULT_WINDOW_SECONDS = 24 * 3600

    def __init__(self, window_seconds: int = DEFAULT_WINDOW_SECONDS, event_store=None):
        self.window_seconds = window_seconds
        self.event_store = event_store
        # fingerprint -> last accepted (epoch seconds); survives warm invocations
        self._seen: Dict[str, float] = {}

    @staticmethod
    def fingerprint(author: Optional[str], text: str) -> str:
        key = f"{normalise_text(author or 'anonymous')}|{normalise_text(text)}"
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    def seen(self, author: Optional[str], text: str, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        fp = self.fingerprint(author, text)

        first_seen = self._seen.get(fp)
        if first_seen is not None and now - first_seen <= self.window_seconds:
            return True

        if self.event_store is not None:
            try:
                return self.event_store.is_duplicate(fp, int(now - self.window_seconds))
            except Exception:
                logger.exception("Duplicate lookup failed - treating post as new")

        return False

    def remember(self, author: Optional[str], text: str, now: Optional[float] = None) -> str:
        now = time.time() if now is None else now
        fp = self.fingerprint(author, text)
        self.prune(now)
        self._seen[fp] = now
        return fp

    def prune(self, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        expired = [fp for fp, ts in self._seen.items() if now - ts > self.window_seconds]
        for fp in expired:
            del self._seen[fp]
        return len(expired)
