"""Tests for settings loading and service availability."""

from __future__ import annotations

import pytest

from presence.config import config_path, configured_services, load_settings, skip_reasons
from presence.models import ServiceName

_ENV_VARS = [
    "SLACK_PAT",
    "GITHUB_PAT",
    "ASANA_PAT",
    "GITHUB_ORG_ID",
    "ASANA_USER_GID",
    "REQUEST_TIMEOUT_SECONDS",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(tmp_path, monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ST_CONFIG", str(tmp_path / "config.toml"))
    return tmp_path


def test_config_path_override(clean_env):
    assert config_path() == clean_env / "config.toml"


def test_defaults_without_file_or_env(clean_env):
    settings = load_settings()
    assert settings.slack_pat == ""
    assert settings.github_org_id is None
    assert settings.asana_user_gid is None
    assert settings.request_timeout_seconds == 15.0
    assert settings.log_level == "ERROR"


def test_tokens_from_environment(clean_env, monkeypatch):
    monkeypatch.setenv("SLACK_PAT", "xoxp-1")
    monkeypatch.setenv("GITHUB_PAT", "ghp-1")
    monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "3.5")
    settings = load_settings()
    assert settings.slack_pat == "xoxp-1"
    assert settings.github_pat == "ghp-1"
    assert settings.request_timeout_seconds == 3.5


def test_ids_from_toml_file(clean_env):
    (clean_env / "config.toml").write_text(
        'github_org_id = "O_kgDO"\nasana_user_gid = "1201"\n', encoding="utf-8"
    )
    settings = load_settings()
    assert settings.github_org_id == "O_kgDO"
    assert settings.asana_user_gid == "1201"


def test_environment_overrides_toml_file(clean_env, monkeypatch):
    (clean_env / "config.toml").write_text('github_org_id = "from-file"\n', encoding="utf-8")
    monkeypatch.setenv("GITHUB_ORG_ID", "from-env")
    assert load_settings().github_org_id == "from-env"


def test_nothing_configured(clean_env):
    settings = load_settings()
    assert configured_services(settings) == frozenset()
    assert skip_reasons(settings) == {
        ServiceName.SLACK: "SLACK_PAT not set",
        ServiceName.GITHUB: "GITHUB_PAT not set",
        ServiceName.ASANA: "ASANA_PAT not set",
    }


def test_asana_needs_user_gid(clean_env, monkeypatch):
    monkeypatch.setenv("ASANA_PAT", "asana-1")
    settings = load_settings()
    assert ServiceName.ASANA not in configured_services(settings)
    assert "asana_user_gid" in skip_reasons(settings)[ServiceName.ASANA]


def test_everything_configured(clean_env, monkeypatch):
    (clean_env / "config.toml").write_text('asana_user_gid = "1201"\n', encoding="utf-8")
    for name in ("SLACK_PAT", "GITHUB_PAT", "ASANA_PAT"):
        monkeypatch.setenv(name, "token")
    settings = load_settings()
    assert configured_services(settings) == frozenset(ServiceName)
    assert skip_reasons(settings) == {}
