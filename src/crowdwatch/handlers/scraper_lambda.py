"""
CrowdWatch Scraper Lambda

Scheduled fan-out over subreddits. Each source is fetched concurrently and
fails independently; disaster candidate posts are queued for processing.
"""

import asyncio
import json
import time
from typing import Dict, List

import boto3
from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext

from crowdwatch.config import Settings
from crowdwatch.clients.queue_publisher import QueuePublisher
from crowdwatch.clients.reddit_client import RedditClient

logger = Logger()
tracer = Tracer()

settings = Settings()

sqs = boto3.client("sqs", region_name=settings.region)

reddit_client = RedditClient(
    user_agent=settings.user_agent,
    delay_sec=settings.reddit_delay_sec,
    timeout_sec=settings.http_timeout_sec,
)
queue_publisher = QueuePublisher(sqs, settings.queue_url)


async def scrape_sources(subreddits: List[str], limit: int) -> Dict:
    """
    Fetch all subreddits concurrently; one failing source never sinks the run.

    Returns:
        {"posts": [...], "sources": {name: {"status": ..., "count"|"error": ...}}}
    """
    results = await asyncio.gather(
        *(asyncio.to_thread(reddit_client.fetch_disaster_posts, name, limit) for name in subreddits),
        return_exceptions=True,
    )

    posts: List[Dict] = []
    seen_ids = set()
    sources: Dict[str, Dict] = {}

    for name, result in zip(subreddits, results):
        if isinstance(result, Exception):
            logger.warning(f"Source r/{name} failed", extra={"error": str(result)})
            sources[name] = {"status": "failed", "error": str(result)}
            continue

        sources[name] = {"status": "ok", "count": len(result)}
        for post in result:
            # Cross-posts show up in several subreddits
            if post["post_id"] in seen_ids:
                continue
            seen_ids.add(post["post_id"])
            posts.append(post)

    return {"posts": posts, "sources": sources}


@logger.inject_lambda_context
@tracer.capture_lambda_handler
def lambda_handler(event: Dict, context: LambdaContext) -> Dict:
    """
    Main Lambda handler for scheduled scraping.

    Args:
        event: EventBridge scheduled event (optional "subreddits" override)
        context: Lambda context

    Returns:
        Scrape summary
    """
    start_time = time.time()
    subreddits = (event or {}).get("subreddits") or settings.subreddits

    try:
        scraped = asyncio.run(scrape_sources(subreddits, settings.reddit_limit))
        posts = scraped["posts"]

        queued = {"queued": 0, "failed": 0}
        if posts:
            queued = queue_publisher.enqueue_posts(posts)

        logger.info(
            "Scrape complete",
            extra={
                "sources": len(subreddits),
                "posts_found": len(posts),
                "queued": queued["queued"],
                "execution_time_seconds": time.time() - start_time,
            },
        )

        return {
            "statusCode": 200,
            "body": json.dumps(
                {
                    "status": "success",
                    "posts_found": len(posts),
                    "queued": queued["queued"],
                    "queue_failures": queued["failed"],
                    "sources": scraped["sources"],
                }
            ),
        }

    except Exception as e:
        logger.exception("Error in scraper lambda")
        return {
            "statusCode": 500,
            "body": json.dumps({"status": "error", "error": str(e)}),
        }
