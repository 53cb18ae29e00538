"""Tests for client configuration."""

import pytest
from ffms.config import FFMSConfig
from ffms.errors import ConfigurationError
from ffms.retry import ReconnectPolicy

REQUIRED = {
    "base_url": "https://ffms.example.com/api",
    "api_key": "key",
    "project_id": "project-1",
    "toggle_id": "toggle-1",
}


class TestFFMSConfig:
    """Tests for FFMSConfig."""

    def test_defaults(self):
        config = FFMSConfig(**REQUIRED)

        assert config.reconnect is True
        assert config.timeout_ms == 5000
        assert config.timeout == pytest.approx(5.0)
        assert config.reconnect_policy == ReconnectPolicy()

    @pytest.mark.parametrize("missing", sorted(REQUIRED))
    @pytest.mark.parametrize("value", ["", None])
    def test_required_fields(self, missing, value):
        options = dict(REQUIRED, **{missing: value})

        with pytest.raises(ConfigurationError, match=missing):
            FFMSConfig(**options)

    def test_reports_every_missing_field(self):
        with pytest.raises(ConfigurationError, match="api_key, project_id are required"):
            FFMSConfig(base_url="https://ffms.example.com", api_key="", project_id="", toggle_id="t")

    def test_strips_trailing_slash(self):
        config = FFMSConfig(**dict(REQUIRED, base_url="http://localhost:3000/"))

        assert config.base_url == "http://localhost:3000"

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ConfigurationError):
            FFMSConfig(timeout_ms=0, **REQUIRED)


class TestFromOptions:
    """Tests for FFMSConfig.from_options."""

    def test_camel_case_options(self):
        config = FFMSConfig.from_options(
            {
                "baseUrl": "https://ffms.example.com/api",
                "apiKey": "key",
                "projectId": "project-1",
                "toggleId": "toggle-1",
                "reconnect": False,
                "timeout": 2000,
            }
        )

        assert config.base_url == "https://ffms.example.com/api"
        assert config.api_key == "key"
        assert config.project_id == "project-1"
        assert config.toggle_id == "toggle-1"
        assert config.reconnect is False
        assert config.timeout_ms == 2000

    def test_snake_case_options(self):
        config = FFMSConfig.from_options(**REQUIRED)

        assert config.toggle_id == "toggle-1"
        assert config.reconnect is True

    def test_reconnect_options(self):
        config = FFMSConfig.from_options(REQUIRED, reconnectDelay=250, maxReconnectAttempts=4)

        assert config.reconnect_policy.delay_ms == 250
        assert config.reconnect_policy.max_attempts == 4

    def test_reconnect_options_leave_shared_policy_untouched(self):
        shared = ReconnectPolicy()

        config = FFMSConfig.from_options(REQUIRED, reconnect_policy=shared, reconnectDelay=100)

        assert config.reconnect_policy.delay_ms == 100
        assert shared.delay_ms == 5000

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError, match="refreshInterval"):
            FFMSConfig.from_options(REQUIRED, refreshInterval=30000)

    def test_empty_options(self):
        with pytest.raises(ConfigurationError, match="base_url, api_key, project_id, toggle_id"):
            FFMSConfig.from_options({})
