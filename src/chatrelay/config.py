"""Configuration management for chatrelay.

Loads from environment variables, .env files, and config/default.toml.
Secrets (shared control phrase, AI endpoint credentials) come from env vars;
structural config from TOML.

Default base directory: ~/.chatrelay/
  auth/     — transport credential state (pairing)
  media/    — persisted inbound images
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CHATRELAY_HOME = Path.home() / ".chatrelay"


class AIConfig(BaseSettings):
    """Downstream AI completion service."""

    provider: Literal["http", "echo"] = "http"
    endpoint_url: str = "https://hpersona.vercel.app/api/chat"
    mode: str = "gpt"
    timeout_seconds: float = 60.0
    user_id_prefix: str = "whatsapp_"
    display_name: str = "WhatsApp User"


class CacheConfig(BaseSettings):
    """Response cache for non-personalized rate/price lookups."""

    ttl_seconds: float = 300.0
    max_entries: int = 100


class SessionConfig(BaseSettings):
    """Per-conversation rolling history."""

    history_cap: int = 20
    complex_history_cap: int = 40
    idle_ttl_seconds: float = 24 * 3600  # 0 = never evict


class PauseConfig(BaseSettings):
    """Operator pause/resume control."""

    default_minutes: int = 60
    pause_command: str = "!pause"
    resume_command: str = "!resume"
    shared_secret: str = Field(
        default="",
        description="Phrase authorizing control commands from anyone. Empty = own account only.",
    )


class SupervisorConfig(BaseSettings):
    """Connection supervisor backoff and liveness reporting."""

    short_delay_seconds: float = 5.0
    long_delay_seconds: float = 60.0
    short_delay_max_attempts: int = 50
    health_interval_seconds: float = 300.0


class TransportConfig(BaseSettings):
    """Messaging transport selection."""

    kind: Literal["console", "factory"] = "console"
    factory: str = ""  # "package.module:callable" returning a Transport
    auth_dir: Path = Field(default_factory=lambda: CHATRELAY_HOME / "auth")
    media_dir: Path = Field(default_factory=lambda: CHATRELAY_HOME / "media")

    @field_validator("auth_dir", "media_dir")
    @classmethod
    def expand_dir(cls, v: Path) -> Path:
        return v.expanduser()


class ReplyConfig(BaseSettings):
    """Fixed reply texts."""

    apology: str = "❌ Sorry, I encountered an error. Please try again."
    signature: str = ""  # Appended to AI-produced replies when set


class Settings(BaseSettings):
    """Root configuration — aggregates all sub-configs."""

    model_config = SettingsConfigDict(
        env_prefix="CHATRELAY_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ai: AIConfig = Field(default_factory=AIConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    pause: PauseConfig = Field(default_factory=PauseConfig)
    supervisor: SupervisorConfig = Field(default_factory=SupervisorConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    reply: ReplyConfig = Field(default_factory=ReplyConfig)

    # Bearer token for the AI endpoint, always from env vars
    ai_api_key: str = ""

    @classmethod
    def from_toml(cls, path: Path | None = None) -> Settings:
        """Load settings from TOML file, with env var overrides."""
        config_path = path or Path("config/default.toml")
        if config_path.exists():
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
            return cls(**data)
        return cls()


def load_settings(config_path: Path | None = None) -> Settings:
    """Load and validate settings. Entry point for all config access."""
    return Settings.from_toml(config_path)
