"""
Application settings.

Values come from environment variables, with `.env` in the project root
loaded first. Supabase credentials are read by `repositories.client` when the
client is first used, not here.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from domain.time import DEFAULT_BUSINESS_TIMEZONE

env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid value for {name}: {value!r} (expected a number)") from e


@dataclass(frozen=True, slots=True)
class Settings:
    telegram_bot_token: Optional[str] = None
    telegram_webhook_secret: Optional[str] = None
    business_timezone: str = DEFAULT_BUSINESS_TIMEZONE
    snapshot_refresh_seconds: float = 30
    rts_check_seconds: float = 60
    reminder_check_seconds: float = 60
    reminder_sweep_seconds: float = 24 * 60 * 60
    completed_reminder_retention_days: int = 7
    enable_scheduler: bool = True
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN") or None,
            telegram_webhook_secret=os.getenv("TELEGRAM_WEBHOOK_SECRET") or None,
            business_timezone=os.getenv("BUSINESS_TIMEZONE") or DEFAULT_BUSINESS_TIMEZONE,
            snapshot_refresh_seconds=_env_float("SNAPSHOT_REFRESH_SECONDS", 30),
            rts_check_seconds=_env_float("RTS_CHECK_SECONDS", 60),
            reminder_check_seconds=_env_float("REMINDER_CHECK_SECONDS", 60),
            reminder_sweep_seconds=_env_float("REMINDER_SWEEP_SECONDS", 24 * 60 * 60),
            completed_reminder_retention_days=int(_env_float("COMPLETED_REMINDER_RETENTION_DAYS", 7)),
            enable_scheduler=_env_bool("ENABLE_SCHEDULER", True),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) or ("*",),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )


__all__ = ["Settings"]
