"""Configuration management for webguard using Pydantic settings.

This module handles all configuration for the web access layer, loading from
environment variables and .env files with sensible defaults. Search provider
keys are read under the same names the deployment already exports
(TAVILY_API_KEY, BING_SEARCH_KEY, WEB_SEARCH_KEY, SERP_API_KEY).
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main configuration settings for webguard.

    Settings are loaded from environment variables and .env files.
    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Search Provider Credentials (checked in this order)
    tavily_api_key: str | None = Field(
        default=None,
        description="Tavily API key (preferred provider)",
    )
    bing_search_key: str | None = Field(
        default=None,
        description="Bing Web Search subscription key",
    )
    web_search_key: str | None = Field(
        default=None,
        description="Legacy alias for the Bing subscription key",
    )
    serp_api_key: str | None = Field(
        default=None,
        description="SerpAPI key",
    )
    search_duckduckgo_enabled: bool = Field(
        default=False,
        description="Fall back to key-less DuckDuckGo search when no key is configured",
    )

    # Search Settings
    search_cache_ttl: int = Field(
        default=20 * 60,
        description="Search result cache TTL in seconds",
        ge=0,
    )
    search_rate_limit: int = Field(
        default=30,
        description="Maximum searches per identity per window",
        ge=1,
    )
    search_rate_window: float = Field(
        default=60.0,
        description="Rate limit window length in seconds",
        gt=0,
    )
    search_max_query_length: int = Field(
        default=500,
        description="Maximum accepted query length in characters",
        ge=1,
        le=10000,
    )
    search_provider_timeout: float = Field(
        default=15.0,
        description="Timeout for search provider API calls in seconds",
        gt=0,
        le=120,
    )

    # Fetch Settings
    fetch_max_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum response body size in bytes",
        ge=1,
    )
    fetch_timeout: float = Field(
        default=10.0,
        description="Total timeout for one fetch (all hops and body) in seconds",
        gt=0,
        le=300,
    )
    fetch_connect_timeout: float = Field(
        default=5.0,
        description="Timeout for DNS resolution and connection setup in seconds",
        gt=0,
        le=60,
    )
    fetch_max_redirects: int = Field(
        default=2,
        description="Maximum number of redirects followed per fetch",
        ge=0,
        le=10,
    )
    fetch_user_agent: str = Field(
        default="Mozilla/5.0 (compatible; webguard/0.1)",
        description="User-Agent header sent with fetch requests",
    )

    # Application Settings
    webguard_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level for the library",
    )
    webguard_log_file: Path | None = Field(
        default=None,
        description="Optional file path to write logs (defaults to console only)",
    )

    @field_validator("webguard_log_file", mode="before")
    @classmethod
    def expand_paths(cls, v: str | Path | None) -> Path | None:
        """Expand relative paths to absolute paths."""
        if v is None:
            return None
        path = Path(v)
        return path.expanduser().resolve()

    @field_validator(
        "tavily_api_key", "bing_search_key", "web_search_key", "serp_api_key", mode="before"
    )
    @classmethod
    def blank_key_is_unset(cls, v: str | None) -> str | None:
        """Treat empty or whitespace-only keys as not configured."""
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @property
    def bing_key(self) -> str | None:
        """Get the Bing key, preferring BING_SEARCH_KEY over WEB_SEARCH_KEY."""
        return self.bing_search_key or self.web_search_key

    @property
    def api_keys(self) -> list[str]:
        """All provider keys that are set, for scrubbing from log output."""
        keys = [self.tavily_api_key, self.bing_search_key, self.web_search_key, self.serp_api_key]
        return [key for key in keys if key]

    def model_dump_safe(self) -> dict[str, str | int | float | bool | None]:
        """Dump settings as a dictionary with safe string representations.

        Useful for logging configuration without exposing API keys.
        """
        return {
            "tavily_configured": self.tavily_api_key is not None,
            "bing_configured": self.bing_key is not None,
            "serpapi_configured": self.serp_api_key is not None,
            "duckduckgo_enabled": self.search_duckduckgo_enabled,
            "search_cache_ttl": self.search_cache_ttl,
            "search_rate_limit": self.search_rate_limit,
            "search_rate_window": self.search_rate_window,
            "fetch_max_bytes": self.fetch_max_bytes,
            "fetch_timeout": self.fetch_timeout,
            "fetch_connect_timeout": self.fetch_connect_timeout,
            "fetch_max_redirects": self.fetch_max_redirects,
            "log_level": self.webguard_log_level,
        }


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance.

    Creates and caches the settings on first call.

    Returns:
        Settings: The global settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment/files.

    Useful for testing or when configuration changes at runtime.

    Returns:
        Settings: The newly loaded settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
