"""
Amazon Bedrock Client for Post Classification

Functions:
- Uses Bedrock Converse API (model-agnostic messages interface).
- Defaults to cost-saving + generous limits: Claude 3 Haiku.
- Spaces requests by a minimum interval (shared account quota).
- Adds throttling backoff + retries.
- Never raises to the caller: unparseable replies and failed calls degrade
  to the heuristic classifier.
"""

import json
import os
import random
import re
import time
from typing import Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from aws_lambda_powertools import Logger

from crowdwatch.core.heuristic_classifier import HeuristicClassifier

logger = Logger(child=True)


class BedrockClient:
    """
    Client for Amazon Bedrock LLM classification.
    """

    DEFAULT_MODEL_ID = "anthropic.claude-3-haiku-20240307-v1:0"

    RETRYABLE_CODES = {
        "ThrottlingException",
        "TooManyRequestsException",
        "ServiceUnavailableException",
        "ModelTimeoutException",
        "InternalServerException",
    }

    SYSTEM_PROMPT = """You are an emergency-operations analyst for Malaysia's National Disaster Management Agency (NADMA), triaging public social media posts.

Your role:
1. Decide whether a post reports a real, current disaster or emergency
2. Estimate severity and your confidence
3. Extract the place the post is about

Guidelines:
- Posts may be in English, Bahasa Malaysia or a mix of both
- Everyday chatter (food, traffic jams, work, weather small talk) is NOT a disaster
- Figurative use ("this queue is a disaster", "the food is fire") is NOT a disaster
- Prefer Malaysian place names exactly as written in the post
- Output ONLY valid JSON (no markdown, no code blocks)"""

    CLASSIFICATION_TEMPLATE = """POST CLASSIFICATION REQUEST

POST TEXT:
\"\"\"{text}\"\"\"

OUTPUT FORMAT (JSON only, no markdown):
{{
  "isDisaster": true|false,
  "disasterType": "flood|earthquake|landslide|fire|storm|tsunami|haze|other|none",
  "severity": 0.0-1.0,
  "confidence": 0.0-1.0,
  "entities": [{{"text": "...", "type": "LOCATION|DISASTER|ORGANIZATION|EMERGENCY", "confidence": 0.0-1.0}}],
  "sentiment": {{"sentiment": "POSITIVE|NEGATIVE|NEUTRAL|MIXED", "confidence": 0.0-1.0}},
  "keyPhrases": ["phrase1", "phrase2"],
  "location": "place name or null",
  "reasoning": "One or two sentences"
}}"""

    _FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
    _OBJECT_RE = re.compile(r"\{[\s\S]*\}")

    def __init__(
        self,
        model_id: Optional[str] = None,
        region_name: Optional[str] = None,
        min_interval_sec: float = 2.0,
        max_attempts: int = 3,
        backoff_base_sec: float = 5.0,
        backoff_max_sec: float = 20.0,
        heuristics: Optional[HeuristicClassifier] = None,
        client=None,
    ):
        self.model_id = model_id or os.environ.get("BEDROCK_MODEL_ID", self.DEFAULT_MODEL_ID)
        self.region_name = region_name or os.environ.get(
            "BEDROCK_REGION", os.environ.get("AWS_REGION", "ap-southeast-1")
        )
        self.min_interval_sec = min_interval_sec
        self.max_attempts = max(1, max_attempts)
        self.backoff_base_sec = backoff_base_sec
        self.backoff_max_sec = backoff_max_sec
        self.heuristics = heuristics or HeuristicClassifier()
        self._last_request_at: Optional[float] = None

        if client is None:
            # Standard retry config (covers some transient errors)
            cfg = Config(
                region_name=self.region_name,
                retries={
                    "max_attempts": int(os.environ.get("BEDROCK_BOTO_RETRIES", "2")),
                    "mode": "standard",
                },
            )
            client = boto3.client("bedrock-runtime", region_name=self.region_name, config=cfg)

        self.client = client
        logger.info(
            "Initialized BedrockClient",
            extra={"model_id": self.model_id, "region": self.region_name},
        )

    def classify_post(self, text: str) -> Dict:
        """
        Classify a post as disaster-related or not.

        Args:
            text: Post text

        Returns:
            Classification dict (see HeuristicClassifier for the shape)
        """
        prompt = self.CLASSIFICATION_TEMPLATE.format(text=(text or "")[:2000])

        try:
            reply = self._invoke_bedrock(prompt)
        except Exception as e:
            logger.warning(
                "Bedrock classification failed - using keyword fallback",
                extra={"error": str(e)},
            )
            return self.heuristics.fallback(text)

        parsed = self.parse_reply(reply)
        if parsed is None:
            logger.warning(
                "Bedrock reply was not valid JSON - using safe response",
                extra={"raw": reply[:500]},
            )
            return self.heuristics.safe_response(text, reply)

        try:
            classification = self._normalise(parsed)
        except Exception:
            logger.exception("Bedrock reply had unusable fields - using safe response", extra={"raw": reply[:500]})
            return self.heuristics.safe_response(text, reply)

        logger.info(
            "Bedrock classification received",
            extra={
                "is_disaster": classification["is_disaster"],
                "disaster_type": classification["disaster_type"],
                "severity": classification["severity"],
                "confidence": classification["confidence"],
            },
        )
        return classification

    @classmethod
    def parse_reply(cls, reply: str) -> Optional[Dict]:
        """
        Pull the JSON object out of a model reply, tolerating markdown fences
        and prose around it.
        """
        if not reply:
            return None
        cleaned = cls._FENCE_RE.sub("", reply).strip()
        match = cls._OBJECT_RE.search(cleaned)
        if not match:
            return None
        try:
            value = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
        return value if isinstance(value, dict) else None

    def _normalise(self, raw: Dict) -> Dict:
        sentiment = raw.get("sentiment")
        if isinstance(sentiment, str):
            sentiment = {"sentiment": sentiment, "confidence": 0.5}
        elif not isinstance(sentiment, dict):
            sentiment = {}

        entities = []
        raw_entities = raw.get("entities")
        for ent in raw_entities if isinstance(raw_entities, list) else []:
            if isinstance(ent, dict) and ent.get("text"):
                entities.append(
                    {
                        "text": str(ent["text"]),
                        "type": str(ent.get("type", "OTHER")).upper(),
                        "confidence": _clamp01(ent.get("confidence"), 0.5),
                    }
                )

        key_phrases = raw.get("keyPhrases", raw.get("key_phrases"))
        if isinstance(key_phrases, str):
            key_phrases = [key_phrases]
        elif not isinstance(key_phrases, list):
            key_phrases = []

        location = raw.get("location")
        if not isinstance(location, str) or location.strip().lower() in ("", "null", "none", "unknown"):
            location = None

        is_disaster = raw.get("isDisaster", raw.get("is_disaster", False))
        if isinstance(is_disaster, str):
            is_disaster = is_disaster.strip().lower() == "true"

        reasoning = raw.get("reasoning")

        return {
            "is_disaster": bool(is_disaster),
            "disaster_type": str(raw.get("disasterType") or raw.get("disaster_type") or "none").lower(),
            "severity": _clamp01(raw.get("severity"), 0.1),
            "confidence": _clamp01(raw.get("confidence"), 0.5),
            "entities": entities,
            "sentiment": {
                "sentiment": str(sentiment.get("sentiment", "NEUTRAL")).upper(),
                "confidence": _clamp01(sentiment.get("confidence"), 0.5),
            },
            "key_phrases": [str(p) for p in key_phrases if isinstance(p, (str, int, float))],
            "location": location,
            "reasoning": reasoning if isinstance(reasoning, str) else "",
            "analysis_source": "bedrock",
        }

    def _wait_for_slot(self) -> None:
        if self._last_request_at is not None and self.min_interval_sec > 0:
            elapsed = time.monotonic() - self._last_request_at
            if elapsed < self.min_interval_sec:
                time.sleep(self.min_interval_sec - elapsed)
        self._last_request_at = time.monotonic()

    def _backoff_seconds(self, attempt: int) -> float:
        sleep_s = self.backoff_base_sec * (2 ** (attempt - 1)) + random.uniform(0, 0.25)
        return min(sleep_s, self.backoff_max_sec)

    def _invoke_bedrock(self, user_prompt: str) -> str:
        """
        Calls Bedrock using the Converse API.
        Adds retry/backoff for throttling.
        """
        max_tokens = int(os.environ.get("BEDROCK_MAX_TOKENS", "1000"))
        temperature = float(os.environ.get("BEDROCK_TEMPERATURE", "0.1"))

        messages = [{"role": "user", "content": [{"text": user_prompt}]}]
        system_prompts = [{"text": self.SYSTEM_PROMPT}]
        inference_cfg = {"maxTokens": max_tokens, "temperature": temperature}

        last_err: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            self._wait_for_slot()
            try:
                resp = self.client.converse(
                    modelId=self.model_id,
                    messages=messages,
                    system=system_prompts,
                    inferenceConfig=inference_cfg,
                )

                usage = resp.get("usage", {})
                logger.debug(
                    "Bedrock converse complete",
                    extra={
                        "inputTokens": usage.get("inputTokens", 0),
                        "outputTokens": usage.get("outputTokens", 0),
                        "stopReason": resp.get("stopReason"),
                    },
                )

                out_msg = resp["output"]["message"]
                parts: List[str] = []
                for block in out_msg.get("content", []):
                    if "text" in block:
                        parts.append(block["text"])
                return "".join(parts).strip()

            except ClientError as e:
                last_err = e
                code = e.response.get("Error", {}).get("Code", "Unknown")
                msg = e.response.get("Error", {}).get("Message", str(e))

                logger.warning(
                    "Bedrock call failed",
                    extra={"attempt": attempt, "code": code, "message": msg},
                )

                if code not in self.RETRYABLE_CODES or attempt == self.max_attempts:
                    raise

                time.sleep(self._backoff_seconds(attempt))

        raise RuntimeError(
            f"Bedrock invocation failed after {self.max_attempts} attempts: {last_err}"
        )


def _clamp01(value, default: float) -> float:
    try:
        return max(0.0, min(1.0, float(value)))
    except (TypeError, ValueError):
        return default
