"""
Validation of POST /posts payloads.
"""

import time
from typing import Any, Dict, List, Optional, Tuple

from crowdwatch.utils.timestamps import parse_timestamp


class PostValidator:

    MAX_TEXT_LENGTH = 1000

    VALIDATION_RULES = {
        "lat": (-90, 90),
        "lng": (-180, 180),
    }

    STRING_FIELDS = ["source", "author", "url"]

    @classmethod
    def validate(cls, body: Any) -> List[str]:
        """
        Returns a list of human-readable errors; empty when valid.
        """
        if not isinstance(body, dict):
            return ["Request body must be a JSON object"]

        errors: List[str] = []

        text = body.get("text")
        if text is None:
            errors.append("text is required")
        elif not isinstance(text, str):
            errors.append("text must be a string")
        elif not text.strip():
            errors.append("text must not be empty")
        elif len(text) > cls.MAX_TEXT_LENGTH:
            errors.append(f"text must be at most {cls.MAX_TEXT_LENGTH} characters")

        for field in cls.STRING_FIELDS:
            if field in body and body[field] is not None and not isinstance(body[field], str):
                errors.append(f"{field} must be a string")

        location = body.get("location")
        if location is not None and not isinstance(location, (str, dict)):
            errors.append("location must be a place name or an object with lat and lng")

        coords = cls._coordinates(body)
        if coords is not None:
            if not isinstance(coords, dict):
                errors.append("coordinates must be an object with lat and lng")
            else:
                for field, (min_val, max_val) in cls.VALIDATION_RULES.items():
                    value = coords.get(field)
                    if isinstance(value, bool) or not isinstance(value, (int, float)):
                        errors.append(f"coordinates.{field} must be numeric")
                    elif not min_val <= value <= max_val:
                        errors.append(f"coordinates.{field}={value} out of range [{min_val}, {max_val}]")

        if "timestamp" in body and body["timestamp"] is not None:
            if parse_timestamp(body["timestamp"]) is None:
                errors.append("timestamp must be an ISO 8601 string or Unix epoch number")

        return errors

    @classmethod
    def to_post(cls, body: Dict) -> Dict:
        """Normalise a validated body into a Post record."""
        ts = parse_timestamp(body.get("timestamp"))
        coords = cls._coordinates(body)
        location = body.get("location")
        return {
            "post_id": body.get("id") or body.get("post_id"),
            "text": body["text"].strip(),
            "author": body.get("author") or "anonymous",
            "source": body.get("source") or "api",
            "url": body.get("url"),
            "timestamp": ts if ts is not None else int(time.time()),
            "location": location if isinstance(location, str) else None,
            "coordinates": {"lat": coords["lat"], "lng": coords["lng"]} if coords else None,
            "images": body.get("images") or [],
        }

    @staticmethod
    def _coordinates(body: Dict) -> Any:
        # {"location": {"lat": .., "lng": ..}} is accepted as coordinates
        coords = body.get("coordinates")
        if coords is None and isinstance(body.get("location"), dict):
            coords = body["location"]
        return coords


def validate_ingest_request(body: Any) -> Tuple[Optional[Dict], List[str]]:
    errors = PostValidator.validate(body)
    if errors:
        return None, errors
    return PostValidator.to_post(body), []
