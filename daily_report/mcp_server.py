"""MCP server exposing daily report notification tools."""

from __future__ import annotations

from datetime import date
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .config import load_settings
from .db import Database
from .service import DailyReportService
from .workdays import parse_date

mcp = FastMCP("daily-report")

_settings = load_settings()
_database = Database(_settings.database_path)
_service = DailyReportService(_settings, _database)


def _ensure_date(day_str: Optional[str] = None) -> date:
    if not day_str:
        return date.today()
    return parse_date(day_str)


@mcp.tool()
async def get_notifications(tenant_id: str, user_id: str) -> dict:
    """Return the stored notifications for a user, newest first."""

    notifications = _service.list_notifications(tenant_id, user_id)
    return {
        "notifications": [n.to_dict() for n in notifications],
        "unread_count": _service.unread_count(tenant_id, user_id),
    }


@mcp.tool()
async def check_missed_reports(tenant_id: str, user_id: str, date: Optional[str] = None) -> dict:
    """Compute and store missed-report notifications for a user as of the date."""

    day = _ensure_date(date)
    notifications = await _service.check_notifications(tenant_id, user_id, day)
    return {"date": day.isoformat(), "notifications": [n.to_dict() for n in notifications]}


@mcp.tool()
async def get_missed_report_dates(
    tenant_id: str, user_id: str, days: Optional[int] = None, date: Optional[str] = None
) -> dict:
    """Return working days without a report in the lookback window."""

    return _service.missed_report_dates(tenant_id, user_id, _ensure_date(date), days)


@mcp.tool()
async def get_daily_progress(tenant_id: str, date: Optional[str] = None) -> dict:
    """Return submitted and pending counts for a tenant on the date."""

    return _service.get_daily_progress(tenant_id, _ensure_date(date))


@mcp.tool()
async def cleanup_notifications(tenant_id: Optional[str] = None, user_id: Optional[str] = None) -> dict:
    """Delete duplicate notifications, keeping the newest per user, type and date."""

    deleted = _service.cleanup_notifications(tenant_id=tenant_id, user_id=user_id)
    return {"deleted_count": deleted}


__all__ = [
    "mcp",
    "get_notifications",
    "check_missed_reports",
    "get_missed_report_dates",
    "get_daily_progress",
    "cleanup_notifications",
]
