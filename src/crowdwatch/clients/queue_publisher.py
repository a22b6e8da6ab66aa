"""
SQS publisher for scraped posts.
"""

import json
from typing import Dict, List

from aws_lambda_powertools import Logger

logger = Logger(child=True)


class QueuePublisher:

    MAX_BATCH = 10

    def __init__(self, sqs_client, queue_url: str):
        self.sqs = sqs_client
        self.queue_url = queue_url

    def enqueue_posts(self, posts: List[Dict]) -> Dict:
        """
        Send posts in batches of 10.

        Returns:
            {"queued": int, "failed": int}
        """
        queued = failed = 0

        for start in range(0, len(posts), self.MAX_BATCH):
            batch = posts[start:start + self.MAX_BATCH]
            entries = [
                {
                    "Id": str(i),
                    "MessageBody": json.dumps(post, ensure_ascii=False, default=str),
                    "MessageAttributes": {
                        "platform": {"DataType": "String", "StringValue": str(post.get("source", "unknown"))},
                    },
                }
                for i, post in enumerate(batch)
            ]

            try:
                resp = self.sqs.send_message_batch(QueueUrl=self.queue_url, Entries=entries)
            except Exception:
                logger.exception("SQS batch send failed", extra={"batch_size": len(batch)})
                failed += len(batch)
                continue

            queued += len(resp.get("Successful", []))
            batch_failed = resp.get("Failed", [])
            failed += len(batch_failed)
            for failure in batch_failed:
                logger.warning(
                    "SQS message rejected",
                    extra={"id": failure.get("Id"), "code": failure.get("Code"), "message": failure.get("Message")},
                )

        logger.info("Posts enqueued", extra={"queued": queued, "failed": failed})
        return {"queued": queued, "failed": failed}
