from datetime import timedelta
from pathlib import Path

import pytest

from backlink_checker.config import Settings


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    for name in (
        "BACKLINK_DB_PATH",
        "BACKLINK_REQUEST_TIMEOUT",
        "BACKLINK_MAX_RETRIES",
        "BACKLINK_WORKERS",
        "CRON_SECRET",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_environment():
    settings = Settings.from_env()

    assert settings.db_path == Path("data/backlinks.db")
    assert settings.request_timeout == 15.0
    assert settings.max_retries == 3
    assert settings.cron_secret == ""


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("BACKLINK_DB_PATH", "/tmp/other.db")
    monkeypatch.setenv("BACKLINK_REQUEST_TIMEOUT", "5")
    monkeypatch.setenv("BACKLINK_MAX_RETRIES", "5")
    monkeypatch.setenv("CRON_SECRET", "s3cret")

    settings = Settings.from_env()

    assert settings.db_path == Path("/tmp/other.db")
    assert settings.request_timeout == 5.0
    assert settings.max_retries == 5
    assert settings.cron_secret == "s3cret"
    assert settings.build_fetcher().timeout == 5.0


def test_invalid_numbers_name_the_variable(monkeypatch):
    monkeypatch.setenv("BACKLINK_WORKERS", "many")

    with pytest.raises(ValueError, match="BACKLINK_WORKERS"):
        Settings.from_env()


def test_recheck_policy_uses_hour_settings():
    policy = Settings(retry_cooldown_hours=1, recheck_interval_hours=12).recheck_policy()

    assert policy.retry_cooldown == timedelta(hours=1)
    assert policy.recheck_interval == timedelta(days=0.5)
