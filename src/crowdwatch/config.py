"""
Runtime configuration.

Every knob reads from the environment at construction time so Lambda
deployments, tests and the local replay script can each override values
without touching code.
"""

import os
from dataclasses import dataclass, field
from typing import List


def _env_float(name: str, default: str) -> float:
    return float(os.getenv(name, default))


def _env_int(name: str, default: str) -> int:
    return int(os.getenv(name, default))


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Pipeline configuration with defaults from environment."""

    region: str = field(default_factory=lambda: os.getenv("AWS_REGION", "ap-southeast-1"))

    # Storage / messaging
    events_table: str = field(default_factory=lambda: os.getenv("EVENTS_TABLE_NAME", "crowdwatch-dev-events"))
    alerts_table: str = field(default_factory=lambda: os.getenv("ALERTS_TABLE_NAME", "crowdwatch-dev-alerts"))
    subscribers_table: str = field(default_factory=lambda: os.getenv("SUBSCRIBERS_TABLE_NAME", "crowdwatch-dev-subscribers"))
    sns_topic_arn: str = field(default_factory=lambda: os.getenv("SNS_TOPIC_ARN", ""))
    queue_url: str = field(default_factory=lambda: os.getenv("POSTS_QUEUE_URL", ""))

    # Bedrock
    bedrock_model_id: str = field(default_factory=lambda: os.getenv("BEDROCK_MODEL_ID", "anthropic.claude-3-haiku-20240307-v1:0"))
    bedrock_region: str = field(default_factory=lambda: os.getenv("BEDROCK_REGION", os.getenv("AWS_REGION", "ap-southeast-1")))
    bedrock_enabled: bool = field(default_factory=lambda: os.getenv("BEDROCK_ENABLED", "true").lower() == "true")
    bedrock_min_interval_sec: float = field(default_factory=lambda: _env_float("BEDROCK_MIN_INTERVAL_SEC", "2.0"))
    bedrock_max_attempts: int = field(default_factory=lambda: _env_int("BEDROCK_MAX_ATTEMPTS", "3"))
    bedrock_backoff_base_sec: float = field(default_factory=lambda: _env_float("BEDROCK_BACKOFF_BASE_SEC", "5.0"))
    bedrock_backoff_max_sec: float = field(default_factory=lambda: _env_float("BEDROCK_BACKOFF_MAX_SEC", "20.0"))

    # Detection windows and thresholds
    spike_window_minutes: int = field(default_factory=lambda: _env_int("SPIKE_WINDOW_MINUTES", "10"))
    spike_threshold: int = field(default_factory=lambda: _env_int("SPIKE_THRESHOLD", "3"))
    location_threshold: int = field(default_factory=lambda: _env_int("LOCATION_THRESHOLD", "2"))
    trend_window_minutes: int = field(default_factory=lambda: _env_int("TREND_WINDOW_MINUTES", "60"))
    trend_threshold: int = field(default_factory=lambda: _env_int("TREND_THRESHOLD", "3"))
    dedup_window_hours: int = field(default_factory=lambda: _env_int("DEDUP_WINDOW_HOURS", "24"))
    verification_window_hours: int = field(default_factory=lambda: _env_int("VERIFICATION_WINDOW_HOURS", "2"))
    alert_max_age_hours: int = field(default_factory=lambda: _env_int("ALERT_MAX_AGE_HOURS", "6"))
    met_verify_threshold: float = field(default_factory=lambda: _env_float("MET_VERIFY_THRESHOLD", "0.5"))

    # Sources
    subreddits: List[str] = field(default_factory=lambda: _env_list(
        "SUBREDDITS", "malaysia,malaysians,kl,kualalumpur,penang,sabah,sarawak"
    ))
    reddit_limit: int = field(default_factory=lambda: _env_int("REDDIT_LIMIT", "50"))
    reddit_delay_sec: float = field(default_factory=lambda: _env_float("REDDIT_DELAY_SEC", "2.0"))
    user_agent: str = field(default_factory=lambda: os.getenv("HTTP_USER_AGENT", "DisasterAlertBot/1.0"))
    met_api_base_url: str = field(default_factory=lambda: os.getenv("MET_API_BASE_URL", "https://api.data.gov.my"))
    http_timeout_sec: float = field(default_factory=lambda: _env_float("HTTP_TIMEOUT_SEC", "10"))

    @property
    def spike_window_seconds(self) -> int:
        return self.spike_window_minutes * 60

    @property
    def trend_window_seconds(self) -> int:
        return self.trend_window_minutes * 60

    @property
    def dedup_window_seconds(self) -> int:
        return self.dedup_window_hours * 3600

    @property
    def verification_window_seconds(self) -> int:
        return self.verification_window_hours * 3600
