"""Tests for client configuration."""

import json

from usage_analytics.config import AnalyticsConfig


class TestAnalyticsConfig:
    def test_defaults(self, monkeypatch):
        for name in (
            "USAGE_ANALYTICS_BASE_URL",
            "USAGE_ANALYTICS_POST_INTERVAL",
            "USAGE_ANALYTICS_GRANULARITY",
            "USAGE_ANALYTICS_RETRY_BASE",
            "USAGE_ANALYTICS_MAX_RETRY_ATTEMPTS",
        ):
            monkeypatch.delenv(name, raising=False)

        config = AnalyticsConfig()

        assert config.base_url == "https://analytics.core.ai"
        assert config.post_interval_seconds == 600
        assert config.granularity_seconds == 3
        assert config.retry_base_seconds == 30
        assert config.max_retry_attempts is None
        assert config.large_payload_threshold_bytes == 10000

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("USAGE_ANALYTICS_BASE_URL", "https://self-hosted.example/")
        monkeypatch.setenv("USAGE_ANALYTICS_GRANULARITY", "0.5")
        monkeypatch.setenv("USAGE_ANALYTICS_MAX_RETRY_ATTEMPTS", "12")

        config = AnalyticsConfig()

        assert config.base_url == "https://self-hosted.example"
        assert config.granularity_seconds == 0.5
        assert config.max_retry_attempts == 12

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "analytics.yaml"
        path.write_text(
            "base_url: https://collector.internal\n"
            "post_interval_seconds: 60\n"
            "max_retry_attempts: 5\n"
            "unknown_key: ignored\n"
        )

        config = AnalyticsConfig.from_yaml(str(path))

        assert config.base_url == "https://collector.internal"
        assert config.post_interval_seconds == 60
        assert config.max_retry_attempts == 5

    def test_from_json(self, tmp_path):
        path = tmp_path / "analytics.json"
        path.write_text(json.dumps({"retry_base_seconds": 2, "granularity_seconds": 1}))

        config = AnalyticsConfig.from_json(str(path))

        assert config.retry_base_seconds == 2
        assert config.granularity_seconds == 1

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert isinstance(AnalyticsConfig.from_yaml(str(path)), AnalyticsConfig)
