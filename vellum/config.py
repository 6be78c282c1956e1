import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env early so env vars are available for YAML interpolation
load_dotenv(Path.cwd() / ".env")

# Pattern to match $VAR_NAME environment variable references
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")

CONFIG_FILENAME = "app.yaml"


def interpolate_env_vars(value):
    """Recursively replace $VAR_NAME with os.environ values."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def get_config_path() -> Path:
    """Return the app.yaml path, overridable with VELLUM_CONFIG."""
    override = os.environ.get("VELLUM_CONFIG")
    if override:
        return Path(override)
    return Path.cwd() / CONFIG_FILENAME


def load_app_config() -> dict:
    """Load and parse app.yaml with environment variable interpolation."""
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(f"{CONFIG_FILENAME} not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    return interpolate_env_vars(config)


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = "sqlite+aiosqlite:///./vellum.db"
    pool_size: int = 5
    pool_overflow: int = 10
    pool_timeout: int = 30
    pool_pre_ping: bool = True
    echo: bool = False
    # Create missing tables on startup instead of running migrations
    create_all: bool = False


class LogfireConfig(BaseModel):
    """Logfire tracing configuration."""

    enabled: bool = False
    service_name: str = "vellum"
    environment: str | None = None
    console: bool = False


class PagesConfig(BaseModel):
    """Page tree behaviour."""

    duplicate_title_suffix: str = " (Copy)"
    slug_max_length: int = 255


class VersioningConfig(BaseModel):
    """Version snapshot behaviour."""

    default_bump: Literal["major", "minor", "patch"] = "minor"
    # Snapshot every page instead of only published ones
    snapshot_unpublished: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VELLUM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False
    log_level: str = "INFO"

    # Sections (loaded from app.yaml)
    db: DatabaseConfig = DatabaseConfig()
    logfire: LogfireConfig = LogfireConfig()
    pages: PagesConfig = PagesConfig()
    versioning: VersioningConfig = VersioningConfig()


_SECTIONS = {
    "db": DatabaseConfig,
    "logfire": LogfireConfig,
    "pages": PagesConfig,
    "versioning": VersioningConfig,
}


@lru_cache
def get_settings() -> Settings:
    """Load settings from .env and app.yaml."""
    base_settings = Settings()

    try:
        app_config = load_app_config()
    except FileNotFoundError:
        return base_settings

    updates = {
        name: model(**app_config[name])
        for name, model in _SECTIONS.items()
        if name in app_config
    }
    for key in ("debug", "log_level"):
        if key in app_config:
            updates[key] = app_config[key]

    if updates:
        return base_settings.model_copy(update=updates)

    return base_settings
