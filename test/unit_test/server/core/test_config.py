"""Unit tests for server configuration settings model.

Tests verify that the Settings model binds environment variables through its
aliases and that the grouped configuration models are derived correctly.
"""

import pytest

from seoaudit_ai.server.core.config import CrawlerConfig, OpenAIConfig, Settings


class TestSettingsBinding:
    """Test Settings model environment variable binding."""

    def test_defaults(self, monkeypatch):
        for name in ("SEOAUDIT_AI_SERVER_PORT", "SEOAUDIT_AI_CAPABILITY_TIMEOUT", "SEOAUDIT_AI_MAX_SITEMAP_URLS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings()
        assert settings.server_port == 8000
        assert settings.capability_timeout_seconds == 120.0
        assert settings.max_sitemap_urls == 50

    def test_server_binding(self, monkeypatch):
        monkeypatch.setenv("SEOAUDIT_AI_SERVER_HOST", "127.0.0.1")
        monkeypatch.setenv("SEOAUDIT_AI_SERVER_PORT", "9000")

        settings = Settings()
        assert settings.server_host == "127.0.0.1"
        assert settings.server_port == 9000

    @pytest.mark.parametrize("log_level", ["DEBUG", "warning"])
    def test_log_level_binding(self, log_level, monkeypatch):
        monkeypatch.setenv("SEOAUDIT_AI_LOG_LEVEL", log_level)

        settings = Settings()
        assert settings.log_level.upper() == log_level.upper()

    def test_file_logging_binding(self, monkeypatch):
        monkeypatch.setenv("ENABLE_FILE_LOGGING", "true")
        monkeypatch.setenv("LOG_FILE_DIR", "/tmp/seoaudit-logs")

        settings = Settings()
        assert settings.enable_file_logging is True
        assert settings.log_file_dir == "/tmp/seoaudit-logs"

    def test_capability_timeout_binding(self, monkeypatch):
        monkeypatch.setenv("SEOAUDIT_AI_CAPABILITY_TIMEOUT", "2.5")
        assert Settings().capability_timeout_seconds == 2.5


class TestOpenAIConfigBinding:
    """Test OpenAI configuration derived from settings."""

    def test_openai_binding(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")

        openai = Settings().openai
        assert isinstance(openai, OpenAIConfig)
        assert openai.api_key == "sk-test"
        assert openai.model == "gpt-4o"
        assert openai.enabled is True

    def test_openai_disabled_without_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert Settings().openai.enabled is False


class TestCrawlerConfigBinding:
    """Test crawler configuration derived from settings."""

    def test_crawler_binding(self, monkeypatch):
        monkeypatch.setenv("SEOAUDIT_AI_USER_AGENT", "TestBot/2.0")
        monkeypatch.setenv("SEOAUDIT_AI_FETCH_TIMEOUT", "5")
        monkeypatch.setenv("SEOAUDIT_AI_MAX_SITEMAP_URLS", "10")
        monkeypatch.setenv("SEOAUDIT_AI_MAX_SITEMAP_DEPTH", "1")

        crawler = Settings().crawler
        assert crawler == CrawlerConfig(
            user_agent="TestBot/2.0",
            fetch_timeout_seconds=5.0,
            max_sitemap_urls=10,
            max_sitemap_depth=1,
        )
