"""Missed-report notification rules."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date
from typing import List, Tuple

from .models import Notification, NotificationType
from .workdays import format_date, is_working_day, previous_working_day, two_working_days_ago

logger = logging.getLogger(__name__)

ReportExists = Callable[[str, str], Awaitable[bool]]

MESSAGES = {
    NotificationType.CONVERTED_TO_LEAVE: (
        "Report for {date} has been converted to leave. Submit today to avoid more leaves."
    ),
    NotificationType.MISSED_REPORT: (
        "Missed report for {date}. If not submitted today, it will be marked as leave."
    ),
}


def notification_message(kind: NotificationType, day: str) -> str:
    return MESSAGES[kind].format(date=day)


def notification_targets(today: date) -> List[Tuple[NotificationType, str]]:
    """Return the (type, date) pairs to look up for ``today``, in output order."""

    if not is_working_day(today):
        return []

    targets = [(NotificationType.CONVERTED_TO_LEAVE, format_date(two_working_days_ago(today)))]
    yesterday = previous_working_day(today)
    if is_working_day(yesterday):
        targets.append((NotificationType.MISSED_REPORT, format_date(yesterday)))
    return targets


async def compute_notifications(
    user_id: str,
    today: date,
    report_exists: ReportExists,
) -> List[Notification]:
    """Work out which missed-report notifications ``user_id`` should see on ``today``.

    At most two notifications come back, converted-to-leave before missed-report.
    A lookup that fails is logged and produces nothing for its date.
    """

    if not user_id:
        raise ValueError("user_id is required")

    targets = notification_targets(today)
    if not targets:
        return []

    outcomes = await asyncio.gather(
        *(report_exists(user_id, day) for _, day in targets),
        return_exceptions=True,
    )

    notifications: List[Notification] = []
    for (kind, day), outcome in zip(targets, outcomes):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            logger.warning(
                "Report lookup failed for user %s on %s; skipping %s: %s",
                user_id,
                day,
                kind.value,
                outcome,
            )
            continue
        if outcome:
            continue
        notifications.append(
            Notification(
                user_id=user_id,
                type=kind,
                date=day,
                message=notification_message(kind, day),
            )
        )
    return notifications


__all__ = ["ReportExists", "compute_notifications", "notification_message", "notification_targets"]
