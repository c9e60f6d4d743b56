"""Application configuration using Pydantic v2.

Centralized settings for manhwa-hub including:
- Plugin directory, load timeout and watcher settings
- HTTP timeouts used by extractors and the dispatcher
- Server bind address
- Webtoon reference extractor constants
- OS-specific data paths

Configuration can be overridden via environment variables:
    MANHWA_HUB__PLUGINS__DIRECTORY=/srv/plugins
    MANHWA_HUB__HTTP__TIMEOUT_SECONDS=30
    MANHWA_HUB__SERVER__PORT=8080
"""

import os
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_data_path() -> Path:
    """Get OS-specific data directory for manhwa-hub.

    Returns:
        Path: ~/.local/state/manhwa-hub (Linux/macOS) or %LOCALAPPDATA%\\manhwa-hub (Windows)
    """
    if os.name == "nt":
        return Path(os.environ.get("LOCALAPPDATA", Path.home())) / "manhwa-hub"
    return Path.home() / ".local" / "state" / "manhwa-hub"


def get_default_plugin_dir() -> Path:
    """Directory holding the bundled extractor plugins."""
    return Path(__file__).resolve().parent.parent / "extractors" / "plugins"


class PluginSettings(BaseModel):
    """Plugin discovery and hot-reload settings."""

    directory: Path = Field(
        default_factory=get_default_plugin_dir,
        description="Directory scanned and watched for extractor source files",
    )
    extensions: list[str] = Field(
        default_factory=lambda: [".py"],
        description="Recognized extractor source file extensions",
    )
    load_timeout_seconds: float = Field(
        10.0,
        gt=0,
        le=300,
        description="Maximum time a plugin may take to execute and construct",
    )
    watch: bool = Field(
        True,
        description="Watch the plugin directory and hot-reload changed files",
    )
    watch_interval_seconds: float = Field(
        1.0,
        gt=0,
        le=60,
        description="Polling interval of the directory watcher",
    )


class HttpSettings(BaseModel):
    """Outbound HTTP settings shared by all extractors."""

    timeout_seconds: float = Field(
        15.0,
        gt=0,
        le=120,
        description="Per-request timeout against external sites",
    )
    operation_timeout_seconds: float = Field(
        120.0,
        gt=0,
        le=900,
        description="Deadline for a whole extractor operation (search, fetch, chapter)",
    )
    user_agent: str = Field(
        "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) Gecko/20100101 Firefox/128.0",
        min_length=1,
        description="User-Agent header sent to external sites",
    )


class ServerSettings(BaseModel):
    """HTTP gateway bind address."""

    host: str = Field("127.0.0.1", description="Interface to bind")
    port: int = Field(3000, ge=1, le=65535, description="Port to bind")


class WebtoonSettings(BaseModel):
    """Webtoon reference extractor constants."""

    base_url: str = Field(
        "https://www.webtoons.com",
        description="Webtoon site root",
    )
    page_size: int = Field(
        10,
        ge=1,
        le=100,
        description="Chapters rendered per chapter-index page",
    )


class AppSettings(BaseSettings):
    """Root application settings with environment variable support.

    Environment variables use the prefix MANHWA_HUB__ with nested delimiters:
    - MANHWA_HUB__PLUGINS__LOAD_TIMEOUT_SECONDS=5
    - MANHWA_HUB__HTTP__TIMEOUT_SECONDS=30
    - MANHWA_HUB__WEBTOON__PAGE_SIZE=10

    Can also be configured via .env file in project root.
    """

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",  # MANHWA_HUB__HTTP__TIMEOUT_SECONDS
        env_prefix="MANHWA_HUB__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )

    plugins: PluginSettings = Field(default_factory=PluginSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    webtoon: WebtoonSettings = Field(default_factory=WebtoonSettings)


# Singleton instance - import and use throughout the app
settings = AppSettings()
