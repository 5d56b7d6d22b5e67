"""Pydantic Settings with YAML file support.

Priority (highest first): env vars > .env > config.yaml > config.default.yaml
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict, YamlConfigSettingsSource
from sqlalchemy.engine import URL, make_url


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------

class DatabaseConfig(BaseModel):
    """Catalog database connection.

    ``url`` wins when set; otherwise the URL is assembled from the parts.
    Empty credentials fall back to the DB_USER / DB_PASSWORD variables of
    the old deployment.
    """

    url: str | None = None
    driver: str = "mysql+pymysql"
    host: str = "db"
    port: int = 3306
    name: str = "ikm"
    user: str = ""
    password: str = ""

    @model_validator(mode="after")
    def _legacy_credentials(self) -> DatabaseConfig:
        if not self.user:
            self.user = os.environ.get("DB_USER", "")
        if not self.password:
            self.password = os.environ.get("DB_PASSWORD", "")
        return self

    def sqlalchemy_url(self) -> URL:
        if self.url:
            return make_url(self.url)
        return URL.create(
            self.driver,
            username=self.user or None,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.name,
        )


class StorageConfig(BaseModel):
    root: str = "/data"


class SchedulerConfig(BaseModel):
    interval: float = 3600.0  # seconds between scan ticks
    settle_delay: float = 10.0  # wait for the database container to come up


class DispatcherConfig(BaseModel):
    concurrency: int = 10  # also the database pool size


class TimeoutsConfig(BaseModel):
    """Per-call timeouts in seconds."""

    database: float = 30.0
    filesystem: float = 60.0
    extraction: float = 300.0


class ImagesConfig(BaseModel):
    prefix: str = "auto_"


class LoggingConfig(BaseModel):
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Main settings
# ---------------------------------------------------------------------------

def _yaml_files() -> list[Path]:
    """Return YAML config file paths relative to the project root."""
    root = Path(os.environ.get("BEISETZER_ROOT", "."))
    files = [root / "config.default.yaml"]
    user_cfg = root / "config.yaml"
    if user_cfg.exists():
        files.append(user_cfg)
    return files


class Settings(BaseSettings):
    """Application settings loaded from YAML + env vars."""

    model_config = SettingsConfigDict(
        env_prefix="BEISETZER_",
        env_nested_delimiter="__",
    )

    database: DatabaseConfig = DatabaseConfig()
    storage: StorageConfig = StorageConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    dispatcher: DispatcherConfig = DispatcherConfig()
    timeouts: TimeoutsConfig = TimeoutsConfig()
    images: ImagesConfig = ImagesConfig()
    logging: LoggingConfig = LoggingConfig()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(
                settings_cls,
                yaml_file=_yaml_files(),
            ),
        )


# ---------------------------------------------------------------------------
# Singleton accessor
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings(**kwargs: Any) -> Settings:
    """Lazy singleton for settings. Call reset_settings() to reload."""
    root = Path(os.environ.get("BEISETZER_ROOT", "."))
    load_dotenv(root / ".env", override=False)
    return Settings(**kwargs)


def reset_settings() -> None:
    """Clear the settings cache so the next get_settings() reloads from disk."""
    get_settings.cache_clear()
