"""Tests for beisetzer.config."""

from __future__ import annotations

from beisetzer.config import (
    DatabaseConfig,
    DispatcherConfig,
    SchedulerConfig,
    TimeoutsConfig,
    get_settings,
    reset_settings,
)


def test_settings_loads_default_yaml():
    """config.default.yaml should load into Settings without error."""
    settings = get_settings()
    assert settings.scheduler.interval == 3600
    assert settings.scheduler.settle_delay == 10
    assert settings.images.prefix == "auto_"


def test_env_overrides_yaml(monkeypatch):
    monkeypatch.setenv("BEISETZER_DISPATCHER__CONCURRENCY", "3")
    reset_settings()
    assert get_settings().dispatcher.concurrency == 3


def test_storage_root_from_env(tmp_path):
    assert get_settings().storage.root == str(tmp_path / "data")


def test_database_url_assembled_from_parts():
    cfg = DatabaseConfig(user="ikm", password="s3cret", host="db", port=3306, name="ikm")
    url = cfg.sqlalchemy_url()
    assert url.drivername == "mysql+pymysql"
    assert url.username == "ikm"
    assert url.password == "s3cret"
    assert url.host == "db"
    assert url.database == "ikm"


def test_database_url_override_wins():
    cfg = DatabaseConfig(url="sqlite:///tmp/x.db", host="ignored")
    assert cfg.sqlalchemy_url().get_backend_name() == "sqlite"


def test_database_url_from_env(tmp_path):
    url = get_settings().database.sqlalchemy_url()
    assert url.database == str(tmp_path / "catalog.db")


def test_defaults():
    assert DispatcherConfig().concurrency == 10
    assert SchedulerConfig().interval == 3600.0
    t = TimeoutsConfig()
    assert t.database > 0 and t.filesystem > 0 and t.extraction > 0


def test_legacy_db_credentials_used_when_unset(monkeypatch):
    monkeypatch.setenv("DB_USER", "legacy")
    monkeypatch.setenv("DB_PASSWORD", "hunter2")
    reset_settings()
    db = get_settings().database
    assert db.user == "legacy"
    assert db.password == "hunter2"
    assert DatabaseConfig(url=None).sqlalchemy_url().username == "legacy"


def test_prefixed_credentials_win_over_legacy(monkeypatch):
    monkeypatch.setenv("DB_USER", "legacy")
    monkeypatch.setenv("DB_PASSWORD", "old")
    monkeypatch.setenv("BEISETZER_DATABASE__USER", "svc")
    monkeypatch.setenv("BEISETZER_DATABASE__PASSWORD", "new")
    reset_settings()
    db = get_settings().database
    assert (db.user, db.password) == ("svc", "new")
