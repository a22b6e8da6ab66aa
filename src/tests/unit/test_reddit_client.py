"""
Unit Tests for Reddit Client
"""

import pytest
import sys
import os
from unittest.mock import MagicMock

import requests

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from crowdwatch.clients.reddit_client import RedditClient


def child(post_id, title, author="farid88", ups=5, selftext="", **extra):
    data = {
        "id": post_id,
        "title": title,
        "selftext": selftext,
        "author": author,
        "ups": ups,
        "created_utc": 1_700_000_000.0,
        "permalink": f"/r/malaysia/comments/{post_id}/",
        "num_comments": 2,
    }
    data.update(extra)
    return {"kind": "t3", "data": data}


def listing(children, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = {"data": {"children": children}}
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} error")
    else:
        resp.raise_for_status.return_value = None
    return resp


class TestRedditClient:

    def setup_method(self):
        self.session = MagicMock()
        self.client = RedditClient(delay_sec=0, session=self.session)

    def test_fetch_subreddit(self):
        self.session.get.return_value = listing([child("a1", "Banjir")])

        children = self.client.fetch_subreddit("malaysia", limit=25)

        assert len(children) == 1
        args, kwargs = self.session.get.call_args
        assert args[0] == "https://www.reddit.com/r/malaysia/new.json"
        assert kwargs["params"] == {"limit": 25}

    def test_retry_on_rate_limit(self, monkeypatch):
        monkeypatch.setattr("crowdwatch.clients.reddit_client.time.sleep", lambda s: None)
        self.session.get.side_effect = [listing([], status=429), listing([child("a1", "Banjir")])]

        children = self.client.fetch_subreddit("malaysia")

        assert len(children) == 1
        assert self.session.get.call_count == 2

    def test_persistent_error_raises(self, monkeypatch):
        monkeypatch.setattr("crowdwatch.clients.reddit_client.time.sleep", lambda s: None)
        self.session.get.return_value = listing([], status=503)

        with pytest.raises(requests.exceptions.HTTPError):
            self.client.fetch_subreddit("malaysia")
        assert self.session.get.call_count == 3

    def test_fetch_disaster_posts_filters(self):
        self.session.get.return_value = listing(
            [
                child("a1", "Banjir kilat di Kuantan"),
                child("a2", "Best nasi lemak in town"),
                child("a3", "Flood in Klang", author="[deleted]"),
                child("a4", "Flood warning", author="news_bot"),
                child("a5", "Flood near Shah Alam", ups=0),
            ]
        )

        posts = self.client.fetch_disaster_posts("malaysia")

        assert [p["post_id"] for p in posts] == ["a1"]
        post = posts[0]
        assert post["source"] == "reddit"
        assert post["subreddit"] == "malaysia"
        assert post["url"] == "https://www.reddit.com/r/malaysia/comments/a1/"
        assert post["timestamp"] == 1_700_000_000

    def test_to_post_joins_body(self):
        post = self.client.to_post(child("a1", "Flood", selftext="Water at knee level"), "malaysia")
        assert post["text"] == "Flood\n\nWater at knee level"

    def test_extract_image_urls(self):
        data = {
            "preview": {"images": [{"source": {"url": "https://i.redd.it/x.jpg?a=1&amp;b=2"}}]},
            "media_metadata": {
                "m1": {"s": {"u": "https://i.redd.it/x.jpg?a=1&amp;b=2"}},
                "m2": {"s": {"u": "https://i.redd.it/y.jpg"}},
            },
        }
        assert RedditClient.extract_image_urls(data) == [
            "https://i.redd.it/x.jpg?a=1&b=2",
            "https://i.redd.it/y.jpg",
        ]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
