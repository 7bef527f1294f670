"""Configuration for the analytics client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields


DEFAULT_BASE_URL = "https://analytics.core.ai"
DEFAULT_POST_INTERVAL_SECONDS = 600.0  # 10 minutes
DEFAULT_GRANULARITY_SECONDS = 3.0
DEFAULT_RETRY_BASE_SECONDS = 30.0
DEFAULT_LARGE_PAYLOAD_THRESHOLD_BYTES = 10000


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value else default


def _env_int(name: str, default: int | None) -> int | None:
    value = os.environ.get(name)
    return int(value) if value else default


@dataclass
class AnalyticsConfig:
    """
    Configuration for an analytics session.

    Can be set via:
    - Constructor arguments
    - Environment variables (USAGE_ANALYTICS_*)
    - Config file (YAML or JSON)

    Values passed to AnalyticsSession.init() take precedence over these
    defaults; the remote config served by the collector sits in between
    (see telemetry.remote_config.resolve_settings).
    """
    # Collector base URL (no trailing slash)
    base_url: str = field(
        default_factory=lambda: os.environ.get("USAGE_ANALYTICS_BASE_URL", DEFAULT_BASE_URL)
    )

    # Seconds between flushes of the aggregated session record
    post_interval_seconds: float = field(
        default_factory=lambda: _env_float("USAGE_ANALYTICS_POST_INTERVAL", DEFAULT_POST_INTERVAL_SECONDS)
    )

    # Smallest distinguishable time period; events inside one tick are merged
    granularity_seconds: float = field(
        default_factory=lambda: _env_float("USAGE_ANALYTICS_GRANULARITY", DEFAULT_GRANULARITY_SECONDS)
    )

    # Linear backoff: attempt N waits retry_base_seconds * N
    retry_base_seconds: float = field(
        default_factory=lambda: _env_float("USAGE_ANALYTICS_RETRY_BASE", DEFAULT_RETRY_BASE_SECONDS)
    )

    # None = retry until success or a 400
    max_retry_attempts: int | None = field(
        default_factory=lambda: _env_int("USAGE_ANALYTICS_MAX_RETRY_ATTEMPTS", None)
    )

    # Payloads above this size log a warning
    large_payload_threshold_bytes: int = field(
        default_factory=lambda: _env_int(
            "USAGE_ANALYTICS_LARGE_PAYLOAD_BYTES", DEFAULT_LARGE_PAYLOAD_THRESHOLD_BYTES
        )
    )

    # HTTP request timeout (seconds)
    timeout_seconds: float = field(
        default_factory=lambda: _env_float("USAGE_ANALYTICS_TIMEOUT", 30.0)
    )

    def __post_init__(self):
        self.base_url = strip_trailing_slash(self.base_url)

    @classmethod
    def from_dict(cls, data: dict) -> AnalyticsConfig:
        """Create config from dictionary (unknown keys are ignored)."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: str) -> AnalyticsConfig:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str) -> AnalyticsConfig:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)


def strip_trailing_slash(url: str) -> str:
    return url[:-1] if url.endswith("/") else url
