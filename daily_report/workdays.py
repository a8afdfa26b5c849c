"""Working-day calendar helpers used by reports and notifications."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional

SATURDAY = 5
SUNDAY = 6
DATE_FORMAT = "%Y-%m-%d"


def is_saturday(day: date) -> bool:
    return day.weekday() == SATURDAY


def is_working_day(day: date) -> bool:
    """Monday through Friday."""

    return day.weekday() < SATURDAY


def previous_working_day(day: date) -> date:
    """Step back one day, and one more if that lands on a Saturday.

    Sunday is not skipped: the day before a Monday is returned as that Sunday.
    """

    prev_day = day - timedelta(days=1)
    if is_saturday(prev_day):
        prev_day -= timedelta(days=1)
    return prev_day


def two_working_days_ago(day: date) -> date:
    """Walk back counting every non-Saturday day until two have been seen."""

    counted = 0
    current = day
    while counted < 2:
        current -= timedelta(days=1)
        if not is_saturday(current):
            counted += 1
    return current


def working_days_between(start: date, end: date) -> List[date]:
    days: List[date] = []
    current = start
    while current <= end:
        if is_working_day(current):
            days.append(current)
        current += timedelta(days=1)
    return days


def format_date(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def parse_date(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string, raising ``ValueError`` otherwise."""

    if len(value) != 10:
        raise ValueError(f"invalid date: {value!r}")
    return datetime.strptime(value, DATE_FORMAT).date()


@dataclass(slots=True)
class AllowedReportDates:
    today: str
    yesterday: str
    friday: Optional[str] = None

    def as_set(self) -> set[str]:
        return {value for value in (self.today, self.yesterday, self.friday) if value}


def allowed_report_dates(today: date) -> AllowedReportDates:
    """Dates a report may be submitted for on ``today``.

    Today and the previous working day are always open. On a Sunday the
    Friday before the Saturday holiday is open as well.
    """

    friday: Optional[str] = None
    if today.weekday() == SUNDAY:
        friday = format_date(today - timedelta(days=2))
    return AllowedReportDates(
        today=format_date(today),
        yesterday=format_date(previous_working_day(today)),
        friday=friday,
    )


def is_date_allowed_for_report(value: str, today: date) -> bool:
    return value in allowed_report_dates(today).as_set()


def allowed_dates_message(today: date) -> str:
    allowed = allowed_report_dates(today)
    if allowed.friday:
        return (
            f"You can submit reports for: Today ({allowed.today}), Yesterday ({allowed.yesterday}), "
            f"and Friday ({allowed.friday}) since Saturday was a holiday."
        )
    return f"You can submit reports for: Today ({allowed.today}) and Yesterday ({allowed.yesterday})."


__all__ = [
    "AllowedReportDates",
    "allowed_dates_message",
    "allowed_report_dates",
    "format_date",
    "is_date_allowed_for_report",
    "is_saturday",
    "is_working_day",
    "parse_date",
    "previous_working_day",
    "two_working_days_ago",
    "working_days_between",
]
