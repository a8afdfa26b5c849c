"""Core orchestration logic for daily reports and missed-report notifications."""

from __future__ import annotations

import asyncio
import csv
import logging
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .cleanup import cleanup_duplicate_notifications
from .config import Settings
from .db import Database
from .models import Notification, Report, User
from .notifier import ReportExists, compute_notifications
from .workdays import (
    allowed_dates_message,
    format_date,
    is_date_allowed_for_report,
    parse_date,
    working_days_between,
)

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_REASON = "Submitted by admin on behalf of employee"
MAX_LOOKBACK_DAYS = 365


class DailyReportError(Exception):
    """Base class for errors raised by the service layer."""


class ReportValidationError(DailyReportError, ValueError):
    pass


class ReportConflictError(DailyReportError):
    pass


class UserNotFoundError(DailyReportError, LookupError):
    pass


class NotificationNotFoundError(DailyReportError, LookupError):
    pass


class DailyReportService:
    """Report submission, notification and admin progress queries for one database."""

    def __init__(self, settings: Settings, database: Database) -> None:
        self.settings = settings
        self.database = database

    # region Roster
    def sync_roster(self) -> int:
        roster_path = self.settings.team_roster_path
        if not roster_path.exists():
            logger.debug("Roster file %s not found; skipping", roster_path)
            return 0
        count = 0
        for user in load_roster_csv(roster_path):
            self.database.upsert_user(user)
            count += 1
        logger.info("Loaded %s users from roster %s", count, roster_path)
        return count

    def add_user(self, user: User) -> User:
        self.database.upsert_user(user)
        return user

    def list_users(self, tenant_id: str) -> List[User]:
        return self.database.get_users(tenant_id)

    def toggle_user_active(self, tenant_id: str, user_id: str) -> User:
        """Flip whether the user is counted as an active employee."""

        user = self.database.get_user(tenant_id, user_id)
        if user is None:
            raise UserNotFoundError("User not found in this company")
        user.is_active = not user.is_active
        self.database.set_user_active(tenant_id, user_id, user.is_active)
        logger.info("User %s %s", user_id, "enabled" if user.is_active else "disabled")
        return user

    # endregion

    # region Reports
    def submit_report(
        self, tenant_id: str, user_id: str, day: str, content: str, today: date
    ) -> Tuple[Report, bool]:
        """Create or update the caller's report for ``day``."""

        if not content or not content.strip():
            raise ReportValidationError("Missing required fields: date or content")
        _validate_date(day)
        if not is_date_allowed_for_report(day, today):
            raise ReportValidationError(allowed_dates_message(today))

        report, created = self.database.upsert_report(
            Report(tenant_id=tenant_id, user_id=user_id, date=day, content=content)
        )
        logger.info(
            "%s report for user %s on %s", "Created" if created else "Updated", user_id, day
        )
        return report, created

    def submit_report_for_user(
        self,
        tenant_id: str,
        user_id: str,
        day: str,
        content: str,
        reason: Optional[str] = None,
    ) -> Report:
        """Admin submission on behalf of an employee, for any date."""

        if not content or not content.strip():
            raise ReportValidationError("User ID, date, and content are required")
        _validate_date(day)

        user = self.database.get_user(tenant_id, user_id)
        if user is None:
            raise UserNotFoundError("User not found")
        if user.is_admin:
            raise ReportValidationError("Cannot submit reports for admin users")
        if self.report_exists(tenant_id, user_id, day):
            raise ReportConflictError("A report already exists for this user on this date")

        report, _ = self.database.upsert_report(
            Report(
                tenant_id=tenant_id,
                user_id=user_id,
                date=day,
                content=content,
                submitted_by_admin=True,
                admin_reason=reason or DEFAULT_ADMIN_REASON,
            )
        )
        logger.info("Admin submitted report for user %s on %s", user_id, day)
        return report

    def report_exists(self, tenant_id: str, user_id: str, day: str) -> bool:
        return self.database.report_exists(tenant_id, user_id, day)

    def get_report(self, tenant_id: str, user_id: str, day: str) -> Optional[Report]:
        return self.database.get_report(tenant_id, user_id, day)

    def get_user_reports(self, tenant_id: str, user_id: str) -> List[Report]:
        return self.database.get_reports_for_user(tenant_id, user_id)

    def get_reports_for_date(self, tenant_id: str, day: date) -> List[Report]:
        return self.database.get_reports_by_date(tenant_id, format_date(day))

    def missed_report_dates(
        self, tenant_id: str, user_id: str, today: date, days: Optional[int] = None
    ) -> Dict[str, Any]:
        """Working days from ``days`` ago through yesterday that have no report."""

        lookback = self.settings.missed_report_lookback_days if days is None else days
        if not 1 <= lookback <= MAX_LOOKBACK_DAYS:
            raise ReportValidationError(f"days must be between 1 and {MAX_LOOKBACK_DAYS}")
        start = today - timedelta(days=lookback)
        end = today - timedelta(days=1)
        working_days = [format_date(d) for d in working_days_between(start, end)]
        submitted = self.database.get_report_dates(tenant_id, user_id, working_days)
        missed = sorted((d for d in working_days if d not in submitted), reverse=True)
        return {
            "missed_dates": missed,
            "total_working_days": len(working_days),
            "total_submitted_days": len(submitted),
            "total_missed_days": len(missed),
        }

    def get_daily_progress(self, tenant_id: str, day: date) -> Dict[str, Any]:
        employees = [
            user for user in self.list_users(tenant_id) if user.is_active and not user.is_admin
        ]
        submitted_ids = {report.user_id for report in self.get_reports_for_date(tenant_id, day)}
        submitted = [user for user in employees if user.id in submitted_ids]
        pending = [user for user in employees if user.id not in submitted_ids]

        total = len(employees)
        percentage = round(len(submitted) / total * 100) if total else 0
        if total and len(submitted) == total:
            status = "All reports submitted"
        elif submitted:
            status = "Reports submitted"
        else:
            status = "No reports yet"
        return {
            "date": format_date(day),
            "total_users": total,
            "submitted_count": len(submitted),
            "pending_count": len(pending),
            "progress_percentage": percentage,
            "status": status,
            "pending_users": [
                {"user_id": user.id, "username": user.username, "real_name": user.real_name}
                for user in pending
            ],
        }

    # endregion

    # region Notifications
    def report_lookup(self, tenant_id: str) -> ReportExists:
        """Bind ``tenant_id`` into the report-existence check used by the notifier."""

        async def report_exists(user_id: str, day: str) -> bool:
            return await asyncio.to_thread(self.report_exists, tenant_id, user_id, day)

        return report_exists

    async def check_notifications(
        self, tenant_id: str, user_id: str, today: date
    ) -> List[Notification]:
        notifications = await compute_notifications(user_id, today, self.report_lookup(tenant_id))
        for notification in notifications:
            notification.tenant_id = tenant_id
            notification.id, _ = self.database.upsert_notification(notification)
        return notifications

    def list_notifications(self, tenant_id: str, user_id: str) -> List[Notification]:
        return self.database.get_notifications(tenant_id, user_id)

    def unread_count(self, tenant_id: str, user_id: str) -> int:
        return sum(1 for n in self.list_notifications(tenant_id, user_id) if not n.is_seen)

    def mark_seen(self, tenant_id: str, notification_id: int) -> None:
        if not self.database.mark_notification_seen(tenant_id, notification_id):
            raise NotificationNotFoundError("Notification not found in this company")

    def mark_all_seen(self, tenant_id: str, user_id: str) -> int:
        return self.database.mark_all_notifications_seen(tenant_id, user_id)

    def cleanup_notifications(
        self, tenant_id: Optional[str] = None, user_id: Optional[str] = None
    ) -> int:
        return cleanup_duplicate_notifications(self.database, user_id=user_id, tenant_id=tenant_id)

    # endregion


def _validate_date(day: str) -> None:
    try:
        parse_date(day)
    except ValueError as exc:
        raise ReportValidationError("Invalid date format. Use YYYY-MM-DD") from exc


def load_roster_csv(path: Path) -> Iterable[User]:
    with path.open(newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        for row in reader:
            if not row.get("user_id") or not row.get("tenant_id"):
                continue
            yield User(
                id=row["user_id"],
                tenant_id=row["tenant_id"],
                username=row.get("username") or row["user_id"],
                real_name=row.get("real_name") or row["user_id"],
                email=row.get("email") or None,
                is_admin=(row.get("is_admin") or "").strip().lower() in {"1", "true", "yes"},
            )


__all__ = [
    "DailyReportError",
    "DailyReportService",
    "NotificationNotFoundError",
    "ReportConflictError",
    "ReportValidationError",
    "UserNotFoundError",
    "load_roster_csv",
]
