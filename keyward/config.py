"""Keyward configuration management.

Configuration sources (in priority order):
1. Environment variables (KEYWARD_ prefix, ``__`` for nesting)
2. Config file (config.yaml)
3. Defaults
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 3001


class DatabaseConfig(BaseModel):
    """Credential store configuration."""

    url: str = "sqlite+aiosqlite:///./keyward.db"
    echo: bool = False

    # Issued as PRAGMA key on every connection. Requires a SQLCipher-enabled
    # SQLite build to actually encrypt; plain SQLite ignores the pragma.
    encryption_key: str | None = None


class EmailConfig(BaseModel):
    """Outbound activation email configuration.

    Registration answers 503 while ``resend_api_key`` is unset.
    """

    resend_api_key: str | None = None
    api_url: str = "https://api.resend.com/emails"
    sender: str = "Keyward <noreply@keyward.local>"
    subject: str = "Your activation code"

    # HTML file with a {{code}} placeholder; None = built-in template
    template_path: str | None = None

    timeout: float = 10.0

    @property
    def is_configured(self) -> bool:
        return bool(self.resend_api_key)


class RateLimitConfig(BaseModel):
    """Token bucket admission control for the public endpoints."""

    enabled: bool = True
    burst: int = 5
    per_second: float = 1.0


class IdentityConfig(BaseModel):
    """Where dependent services find the validation endpoint."""

    base_url: str = "http://localhost:3001"
    timeout: float = 5.0
    max_retries: int = 1


class Settings(BaseSettings):
    """Keyward application settings."""

    model_config = SettingsConfigDict(
        env_prefix="KEYWARD_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: tuple[PydanticBaseSettingsSource, ...] = (init_settings, env_settings)
        config_file = find_config_file()
        if config_file is not None:
            sources += (YamlConfigSettingsSource(settings_cls, yaml_file=config_file),)
        return sources


def find_config_file() -> Path | None:
    """Locate the YAML config file, if any.

    Looks for config file in order:
    1. KEYWARD_CONFIG_FILE environment variable
    2. ./config.yaml
    3. /etc/keyward/config.yaml
    """
    config_paths = [
        os.environ.get("KEYWARD_CONFIG_FILE"),
        Path("config.yaml"),
        Path("/etc/keyward/config.yaml"),
    ]

    for path in config_paths:
        if path is None:
            continue
        path = Path(path)
        if path.exists():
            return path

    return None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
