"""Application configuration."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from presence.models import ServiceName

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "st" / "config.toml"


def config_path() -> Path:
    """Location of the TOML config file; ST_CONFIG overrides the default."""

    override = os.environ.get("ST_CONFIG")
    return Path(override).expanduser() if override else DEFAULT_CONFIG_PATH


class Settings(BaseSettings):
    """Credentials from the environment plus ids from ~/.config/st/config.toml."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    slack_pat: str = Field(default="", alias="SLACK_PAT")
    github_pat: str = Field(default="", alias="GITHUB_PAT")
    asana_pat: str = Field(default="", alias="ASANA_PAT")
    # Scopes the GitHub busy status to one organization.
    github_org_id: str | None = None
    asana_user_gid: str | None = None
    request_timeout_seconds: float = Field(default=15.0, alias="REQUEST_TIMEOUT_SECONDS")
    log_level: str = Field(default="ERROR", alias="LOG_LEVEL")

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
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=config_path()),
            file_secret_settings,
        )


def load_settings() -> Settings:
    """Load and validate settings."""

    return Settings()


def skip_reasons(settings: Settings) -> dict[ServiceName, str]:
    """Explain why each unusable service will be skipped.

    A service is usable when its token is set; Asana also needs the user gid
    to look up out-of-office dates.
    """
    reasons: dict[ServiceName, str] = {}
    if not settings.slack_pat:
        reasons[ServiceName.SLACK] = "SLACK_PAT not set"
    if not settings.github_pat:
        reasons[ServiceName.GITHUB] = "GITHUB_PAT not set"
    if not settings.asana_pat:
        reasons[ServiceName.ASANA] = "ASANA_PAT not set"
    elif not settings.asana_user_gid:
        reasons[ServiceName.ASANA] = f"asana_user_gid not set in {config_path()}"
    return reasons


def configured_services(settings: Settings) -> frozenset[ServiceName]:
    """Return the services that have usable credentials."""

    missing = skip_reasons(settings)
    return frozenset(service for service in ServiceName if service not in missing)
