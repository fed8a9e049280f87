"""
Configuration Settings.

This module defines the application configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class OpenAIConfig(BaseModel):
    """OpenAI API configuration used by the generative text service."""

    api_key: Optional[str] = Field(default=None, description="OpenAI API key for authentication")
    model: str = Field(default="gpt-4o-mini", description="Default OpenAI model to use")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


class CrawlerConfig(BaseModel):
    """HTTP fetch configuration for page crawling and sitemap expansion."""

    user_agent: str = Field(description="User-Agent header sent with every request")
    fetch_timeout_seconds: float = Field(description="Timeout for a single HTTP request")
    max_sitemap_urls: int = Field(description="Maximum number of URLs taken from a sitemap")
    max_sitemap_depth: int = Field(description="Maximum nesting depth of sitemap indexes")


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Server Configuration
    # =====================================================================
    server_host: str = Field(
        default="0.0.0.0",
        description="SEOAudit-AI server host address to bind to",
        alias="SEOAUDIT_AI_SERVER_HOST",
    )
    server_port: int = Field(
        default=8000,
        description="SEOAudit-AI server port number",
        alias="SEOAUDIT_AI_SERVER_PORT",
    )

    # =====================================================================
    # Logging Configuration
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="SEOAUDIT_AI_LOG_LEVEL",
    )
    log_format: str = Field(default="detailed", description="Log format (simple, detailed)", alias="LOG_FORMAT")
    log_file_dir: str = Field(default="logs", description="Directory for log files", alias="LOG_FILE_DIR")
    enable_file_logging: bool = Field(
        default=False, description="Also write logs to a file", alias="ENABLE_FILE_LOGGING"
    )

    # =====================================================================
    # Orchestration Configuration
    # =====================================================================
    capability_timeout_seconds: float = Field(
        default=120.0,
        description="Upper bound on a single capability execution",
        alias="SEOAUDIT_AI_CAPABILITY_TIMEOUT",
    )

    # =====================================================================
    # Crawler Configuration
    # =====================================================================
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; SEOAuditAI/1.0)",
        description="User-Agent header for outbound requests",
        alias="SEOAUDIT_AI_USER_AGENT",
    )
    fetch_timeout_seconds: float = Field(
        default=30.0, description="HTTP timeout for page and sitemap fetches", alias="SEOAUDIT_AI_FETCH_TIMEOUT"
    )
    max_sitemap_urls: int = Field(
        default=50, description="Maximum number of URLs audited from one sitemap", alias="SEOAUDIT_AI_MAX_SITEMAP_URLS"
    )
    max_sitemap_depth: int = Field(
        default=3, description="Maximum nesting depth of sitemap indexes", alias="SEOAUDIT_AI_MAX_SITEMAP_DEPTH"
    )

    # =====================================================================
    # Generative Text Service
    # =====================================================================
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def openai(self) -> OpenAIConfig:
        """Get OpenAI configuration from environment variables."""
        return OpenAIConfig(api_key=self.openai_api_key, model=self.openai_model)

    @property
    def crawler(self) -> CrawlerConfig:
        """Get crawler configuration from environment variables."""
        return CrawlerConfig(
            user_agent=self.user_agent,
            fetch_timeout_seconds=self.fetch_timeout_seconds,
            max_sitemap_urls=self.max_sitemap_urls,
            max_sitemap_depth=self.max_sitemap_depth,
        )


settings = Settings()
