"""Dataclasses representing daily report domain models."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class NotificationType(str, Enum):
    MISSED_REPORT = "missed_report"
    CONVERTED_TO_LEAVE = "converted_to_leave"


@dataclass(slots=True)
class User:
    id: str
    tenant_id: str
    username: str
    real_name: str
    email: str | None = None
    is_admin: bool = False
    is_active: bool = True


@dataclass(slots=True)
class Report:
    tenant_id: str
    user_id: str
    date: str
    content: str
    id: int | None = None
    submitted_by_admin: bool = False
    admin_reason: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(slots=True)
class Notification:
    user_id: str
    type: NotificationType
    date: str
    message: str
    is_seen: bool = False
    id: int | None = None
    tenant_id: str | None = None
    created_at: Optional[datetime | str] = None
    updated_at: Optional[datetime | str] = None

    @property
    def key(self) -> tuple[str | None, str, str, str]:
        return (self.tenant_id, self.user_id, NotificationType(self.type).value, self.date)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = NotificationType(self.type).value
        for field in ("created_at", "updated_at"):
            if isinstance(data[field], datetime):
                data[field] = data[field].isoformat()
        return data


__all__ = ["NotificationType", "User", "Report", "Notification"]
