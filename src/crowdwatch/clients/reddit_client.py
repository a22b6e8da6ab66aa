"""
Reddit Client

Reads the public JSON listing of Malaysian subreddits and turns submissions
into Post records. No OAuth: the unauthenticated listing endpoint is enough
for /new at this volume, as long as requests are spaced out.
"""

import html
import threading
import time
from typing import Dict, List, Optional

import requests
from aws_lambda_powertools import Logger

from crowdwatch.core import lexicon
from crowdwatch.utils.text_match import contains_any

logger = Logger(child=True)


class RedditClient:

    BASE_URL = "https://www.reddit.com"
    NON_USER_MARKERS = ("bot", "official", "news", "admin")
    RETRY_STATUS = {429, 500, 502, 503, 504}

    def __init__(
        self,
        user_agent: str = "DisasterAlertBot/1.0",
        delay_sec: float = 2.0,
        timeout_sec: float = 10.0,
        max_attempts: int = 3,
        session: Optional[requests.Session] = None,
    ):
        self.delay_sec = delay_sec
        self.timeout_sec = timeout_sec
        self.max_attempts = max(1, max_attempts)
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": user_agent})
        self._last_request_at: Optional[float] = None
        self._slot_lock = threading.Lock()

    def fetch_subreddit(self, name: str, limit: int = 50) -> List[Dict]:
        """
        Fetch the newest submissions of a subreddit as raw listing children.
        """
        url = f"{self.BASE_URL}/r/{name}/new.json"

        for attempt in range(1, self.max_attempts + 1):
            self._wait_for_slot()
            try:
                resp = self.session.get(url, params={"limit": limit}, timeout=self.timeout_sec)
            except requests.exceptions.Timeout:
                logger.warning(f"Timeout fetching r/{name}", extra={"attempt": attempt})
                if attempt == self.max_attempts:
                    raise
                time.sleep(min(attempt * 5, 20))
                continue

            if resp.status_code in self.RETRY_STATUS and attempt < self.max_attempts:
                logger.warning(
                    f"r/{name} returned {resp.status_code}, backing off",
                    extra={"attempt": attempt},
                )
                time.sleep(min(attempt * 5, 20))
                continue

            resp.raise_for_status()
            children = (resp.json().get("data") or {}).get("children") or []
            logger.info(f"Fetched {len(children)} posts from r/{name}")
            return children

        return []

    def fetch_disaster_posts(self, subreddit: str, limit: int = 50) -> List[Dict]:
        posts = []
        for child in self.fetch_subreddit(subreddit, limit):
            if not self.is_regular_user(child):
                continue
            post = self.to_post(child, subreddit)
            if contains_any(post["text"], lexicon.DISASTER_KEYWORDS):
                posts.append(post)

        logger.info(f"r/{subreddit}: {len(posts)} disaster candidate posts")
        return posts

    def is_regular_user(self, child: Dict) -> bool:
        data = child.get("data") or {}
        author = (data.get("author") or "").lower()
        if not author or author == "[deleted]":
            return False
        if any(marker in author for marker in self.NON_USER_MARKERS):
            return False
        return (data.get("ups") or 0) > 0

    def to_post(self, child: Dict, subreddit: str) -> Dict:
        data = child.get("data") or {}
        title = data.get("title") or ""
        body = data.get("selftext") or ""
        text = f"{title}\n\n{body}".strip() if body else title

        return {
            "post_id": data.get("id") or data.get("name"),
            "text": text,
            "author": data.get("author"),
            "source": "reddit",
            "subreddit": subreddit,
            "url": f"{self.BASE_URL}{data['permalink']}" if data.get("permalink") else data.get("url"),
            "timestamp": int(data.get("created_utc") or time.time()),
            "location": None,
            "images": self.extract_image_urls(data),
            "score": data.get("ups", 0),
            "num_comments": data.get("num_comments", 0),
        }

    @staticmethod
    def extract_image_urls(data: Dict) -> List[str]:
        urls: List[str] = []

        for image in (data.get("preview") or {}).get("images") or []:
            url = (image.get("source") or {}).get("url")
            if url:
                urls.append(html.unescape(url))

        for media in (data.get("media_metadata") or {}).values():
            url = (media.get("s") or {}).get("u")
            if url:
                urls.append(html.unescape(url))

        deduped: List[str] = []
        for url in urls:
            if url not in deduped:
                deduped.append(url)
        return deduped

    def _wait_for_slot(self) -> None:
        # Shared across scraper threads
        with self._slot_lock:
            if self._last_request_at is not None and self.delay_sec > 0:
                elapsed = time.monotonic() - self._last_request_at
                if elapsed < self.delay_sec:
                    time.sleep(self.delay_sec - elapsed)
            self._last_request_at = time.monotonic()
