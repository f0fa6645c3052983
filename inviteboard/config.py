from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    discord_token: str
    application_id: int
    postgres_dsn: str
    redis_url: str
    log_level: str
    leaderboard_default_limit: int
    leaderboard_max_limit: int
    leaderboard_trend_window_hours: int
    leaderboard_read_timeout_seconds: float
    api_host: str
    api_port: int



def _as_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default)).strip()
    if not raw.isdigit() or int(raw) < 1:
        raise RuntimeError(f"{name} must be a positive integer")
    return int(raw)



def _as_positive_float(name: str, default: float) -> float:
    raw = os.getenv(name, str(default)).strip()
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a positive number") from exc
    if not value > 0:
        raise RuntimeError(f"{name} must be a positive number")
    return value



def load_settings() -> Settings:
    token = os.getenv("DISCORD_TOKEN", "").strip()
    app_id = os.getenv("DISCORD_APPLICATION_ID", "").strip()
    if not token:
        raise RuntimeError("DISCORD_TOKEN is required")
    if not app_id.isdigit():
        raise RuntimeError("DISCORD_APPLICATION_ID must be set to an integer")

    postgres_dsn = os.getenv("POSTGRES_DSN", "").strip()
    if not postgres_dsn:
        raise RuntimeError("POSTGRES_DSN is required")

    redis_url = os.getenv("REDIS_URL", "").strip()
    if not redis_url:
        raise RuntimeError("REDIS_URL is required")

    default_limit = _as_positive_int("LEADERBOARD_DEFAULT_LIMIT", 50)
    max_limit = _as_positive_int("LEADERBOARD_MAX_LIMIT", 100)
    if default_limit > max_limit:
        raise RuntimeError("LEADERBOARD_DEFAULT_LIMIT cannot exceed LEADERBOARD_MAX_LIMIT")

    return Settings(
        discord_token=token,
        application_id=int(app_id),
        postgres_dsn=postgres_dsn,
        redis_url=redis_url,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        leaderboard_default_limit=default_limit,
        leaderboard_max_limit=max_limit,
        leaderboard_trend_window_hours=_as_positive_int("LEADERBOARD_TREND_WINDOW_HOURS", 24),
        leaderboard_read_timeout_seconds=_as_positive_float("LEADERBOARD_READ_TIMEOUT_SECONDS", 10.0),
        api_host=os.getenv("API_HOST", "0.0.0.0"),
        api_port=_as_positive_int("API_PORT", 8080),
    )
