from __future__ import annotations

import pytest

from inviteboard.config import load_settings

REQUIRED = {
    "DISCORD_TOKEN": "token",
    "DISCORD_APPLICATION_ID": "42",
    "POSTGRES_DSN": "postgresql://localhost/invites",
    "REDIS_URL": "redis://localhost:6379/0",
}


@pytest.fixture
def env(monkeypatch):
    for name in (
        "LOG_LEVEL",
        "LEADERBOARD_DEFAULT_LIMIT",
        "LEADERBOARD_MAX_LIMIT",
        "LEADERBOARD_TREND_WINDOW_HOURS",
        "LEADERBOARD_READ_TIMEOUT_SECONDS",
        "API_HOST",
        "API_PORT",
    ):
        monkeypatch.delenv(name, raising=False)
    for name, value in REQUIRED.items():
        monkeypatch.setenv(name, value)
    return monkeypatch


def test_defaults(env):
    settings = load_settings()
    assert settings.application_id == 42
    assert settings.leaderboard_default_limit == 50
    assert settings.leaderboard_max_limit == 100
    assert settings.leaderboard_trend_window_hours == 24
    assert settings.log_level == "INFO"


def test_missing_token_is_fatal(env):
    env.delenv("DISCORD_TOKEN")
    with pytest.raises(RuntimeError):
        load_settings()


def test_default_limit_above_max_is_fatal(env):
    env.setenv("LEADERBOARD_DEFAULT_LIMIT", "200")
    with pytest.raises(RuntimeError):
        load_settings()


@pytest.mark.parametrize("value", ["0", "-1", "soon"])
def test_bad_read_timeout_is_fatal(env, value):
    env.setenv("LEADERBOARD_READ_TIMEOUT_SECONDS", value)
    with pytest.raises(RuntimeError):
        load_settings()


def test_fractional_read_timeout_is_accepted(env):
    env.setenv("LEADERBOARD_READ_TIMEOUT_SECONDS", "2.5")
    assert load_settings().leaderboard_read_timeout_seconds == 2.5


@pytest.mark.parametrize("value", ["0", "http"])
def test_bad_api_port_is_fatal(env, value):
    env.setenv("API_PORT", value)
    with pytest.raises(RuntimeError):
        load_settings()
