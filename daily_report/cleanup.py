"""Maintenance pass that removes duplicate persisted notifications."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from .models import Notification

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class NotificationStore(Protocol):
    def find_notifications(
        self, user_id: Optional[str] = None, tenant_id: Optional[str] = None
    ) -> List[Notification]: ...

    def delete_notifications(self, ids: Sequence[int]) -> int: ...


def _as_datetime(value: datetime | str | None) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def recency(notification: Notification) -> datetime:
    """created_at, falling back to updated_at, then the epoch."""

    return (
        _as_datetime(notification.created_at)
        or _as_datetime(notification.updated_at)
        or EPOCH
    )


def select_duplicates(notifications: Iterable[Notification]) -> List[int]:
    """Ids to delete so that each (tenant, user, type, date) keeps only its newest entry."""

    groups: Dict[tuple[str | None, str, str, str], List[Notification]] = defaultdict(list)
    for notification in notifications:
        groups[notification.key].append(notification)

    to_delete: List[int] = []
    for key, group in groups.items():
        if len(group) < 2:
            continue
        ordered = sorted(group, key=recency, reverse=True)
        stale = [n.id for n in ordered[1:] if n.id is not None]
        logger.debug("Duplicate notifications for %s: keeping %s, dropping %s", key, ordered[0].id, stale)
        to_delete.extend(stale)
    return to_delete


def cleanup_duplicate_notifications(
    store: NotificationStore,
    user_id: Optional[str] = None,
    tenant_id: Optional[str] = None,
) -> int:
    """Delete duplicate notifications and return how many were removed."""

    ids = select_duplicates(store.find_notifications(user_id=user_id, tenant_id=tenant_id))
    if not ids:
        return 0
    deleted = store.delete_notifications(ids)
    logger.info("Cleaned up %s duplicate notifications", deleted)
    return deleted


__all__ = ["NotificationStore", "cleanup_duplicate_notifications", "recency", "select_duplicates"]
