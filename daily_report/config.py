"""Configuration helpers for the daily report service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(slots=True)
class Settings:
    """Runtime configuration values loaded from environment variables."""

    api_key: str
    database_path: Path
    team_roster_path: Path
    cleanup_interval_seconds: int = 0
    missed_report_lookback_days: int = 30


def load_settings(env_file: str | None = None) -> Settings:
    """Load settings from the environment, optionally from a specific file."""

    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    db_path = Path(os.getenv("DATABASE_PATH", "daily_report.db")).expanduser()
    roster_path = Path(
        os.getenv("TEAM_ROSTER_PATH", "team_roster.csv")
    ).expanduser()

    api_key = os.getenv("API_KEY")
    if not api_key:
        raise RuntimeError("API_KEY must be configured")

    return Settings(
        api_key=api_key,
        database_path=db_path,
        team_roster_path=roster_path,
        cleanup_interval_seconds=int(os.getenv("CLEANUP_INTERVAL_SECONDS", "0")),
        missed_report_lookback_days=int(os.getenv("MISSED_REPORT_LOOKBACK_DAYS", "30")),
    )


__all__ = ["Settings", "load_settings"]
