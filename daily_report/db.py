"""SQLite persistence layer for daily reports and notifications."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple

from .models import Notification, NotificationType, Report, User

Connection = sqlite3.Connection
Row = sqlite3.Row


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _user_from_row(row: Row) -> User:
    return User(
        id=row["id"],
        tenant_id=row["tenant_id"],
        username=row["username"],
        real_name=row["real_name"],
        email=row["email"],
        is_admin=bool(row["is_admin"]),
        is_active=bool(row["is_active"]),
    )


def _report_from_row(row: Row) -> Report:
    return Report(
        id=row["id"],
        tenant_id=row["tenant_id"],
        user_id=row["user_id"],
        date=row["date"],
        content=row["content"],
        submitted_by_admin=bool(row["submitted_by_admin"]),
        admin_reason=row["admin_reason"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _notification_from_row(row: Row) -> Notification:
    return Notification(
        id=row["id"],
        tenant_id=row["tenant_id"],
        user_id=row["user_id"],
        type=NotificationType(row["type"]),
        date=row["date"],
        message=row["message"],
        is_seen=bool(row["is_seen"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class Database:
    """Lightweight wrapper around SQLite operations."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize()

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _initialize(self) -> None:
        with self.connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT NOT NULL,
                    tenant_id TEXT NOT NULL,
                    username TEXT NOT NULL,
                    real_name TEXT NOT NULL,
                    email TEXT,
                    is_admin INTEGER NOT NULL DEFAULT 0,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    updated_at TEXT,
                    PRIMARY KEY(tenant_id, id)
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS reports (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    tenant_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    content TEXT NOT NULL,
                    submitted_by_admin INTEGER NOT NULL DEFAULT 0,
                    admin_reason TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE(tenant_id, user_id, date)
                )
                """
            )
            # No unique index: duplicates are removed by the cleanup pass.
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS notifications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    tenant_id TEXT,
                    user_id TEXT NOT NULL,
                    type TEXT NOT NULL,
                    date TEXT NOT NULL,
                    message TEXT NOT NULL,
                    is_seen INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT,
                    updated_at TEXT
                )
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_notifications_user
                ON notifications (tenant_id, user_id, type, date)
                """
            )
            conn.commit()

    # region Users
    def upsert_user(self, user: User) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO users (id, tenant_id, username, real_name, email, is_admin, is_active, updated_at)
                VALUES (:id, :tenant_id, :username, :real_name, :email, :is_admin, :is_active, :updated_at)
                ON CONFLICT(tenant_id, id) DO UPDATE SET
                    username=excluded.username,
                    real_name=excluded.real_name,
                    email=excluded.email,
                    is_admin=excluded.is_admin,
                    is_active=excluded.is_active,
                    updated_at=excluded.updated_at
                """,
                {
                    "id": user.id,
                    "tenant_id": user.tenant_id,
                    "username": user.username,
                    "real_name": user.real_name,
                    "email": user.email,
                    "is_admin": int(user.is_admin),
                    "is_active": int(user.is_active),
                    "updated_at": utcnow(),
                },
            )
            conn.commit()

    def get_user(self, tenant_id: str, user_id: str) -> Optional[User]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM users WHERE tenant_id = ? AND id = ?",
                (tenant_id, user_id),
            )
            row = cursor.fetchone()
            return _user_from_row(row) if row else None

    def get_users(self, tenant_id: str) -> List[User]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM users WHERE tenant_id = ? ORDER BY real_name",
                (tenant_id,),
            )
            return [_user_from_row(row) for row in cursor.fetchall()]

    def set_user_active(self, tenant_id: str, user_id: str, is_active: bool) -> bool:
        with self.connect() as conn:
            cursor = conn.execute(
                "UPDATE users SET is_active = ?, updated_at = ? WHERE tenant_id = ? AND id = ?",
                (int(is_active), utcnow(), tenant_id, user_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    # endregion

    # region Reports
    def upsert_report(self, report: Report) -> Tuple[Report, bool]:
        """Insert the report or replace the content of the existing one.

        Returns the stored report and whether it was newly created.
        """

        now = utcnow()
        with self.connect() as conn:
            existing = conn.execute(
                "SELECT id FROM reports WHERE tenant_id = ? AND user_id = ? AND date = ?",
                (report.tenant_id, report.user_id, report.date),
            ).fetchone()
            if existing:
                conn.execute(
                    "UPDATE reports SET content = ?, updated_at = ? WHERE id = ?",
                    (report.content, now, existing["id"]),
                )
                created = False
            else:
                conn.execute(
                    """
                    INSERT INTO reports (tenant_id, user_id, date, content, submitted_by_admin,
                                         admin_reason, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        report.tenant_id,
                        report.user_id,
                        report.date,
                        report.content,
                        int(report.submitted_by_admin),
                        report.admin_reason,
                        now,
                        now,
                    ),
                )
                created = True
            conn.commit()
            row = conn.execute(
                "SELECT * FROM reports WHERE tenant_id = ? AND user_id = ? AND date = ?",
                (report.tenant_id, report.user_id, report.date),
            ).fetchone()
            return _report_from_row(row), created

    def get_report(self, tenant_id: str, user_id: str, day: str) -> Optional[Report]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM reports WHERE tenant_id = ? AND user_id = ? AND date = ?",
                (tenant_id, user_id, day),
            )
            row = cursor.fetchone()
            return _report_from_row(row) if row else None

    def report_exists(self, tenant_id: str, user_id: str, day: str) -> bool:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT 1 FROM reports WHERE tenant_id = ? AND user_id = ? AND date = ? LIMIT 1",
                (tenant_id, user_id, day),
            )
            return cursor.fetchone() is not None

    def get_reports_for_user(self, tenant_id: str, user_id: str) -> List[Report]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM reports WHERE tenant_id = ? AND user_id = ? ORDER BY date DESC",
                (tenant_id, user_id),
            )
            return [_report_from_row(row) for row in cursor.fetchall()]

    def get_reports_by_date(self, tenant_id: str, day: str) -> List[Report]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM reports WHERE tenant_id = ? AND date = ? ORDER BY created_at",
                (tenant_id, day),
            )
            return [_report_from_row(row) for row in cursor.fetchall()]

    def get_report_dates(self, tenant_id: str, user_id: str, days: Iterable[str]) -> set[str]:
        days = list(days)
        if not days:
            return set()
        placeholders = ", ".join("?" for _ in days)
        with self.connect() as conn:
            cursor = conn.execute(
                f"""
                SELECT date FROM reports
                WHERE tenant_id = ? AND user_id = ? AND date IN ({placeholders})
                """,
                (tenant_id, user_id, *days),
            )
            return {row["date"] for row in cursor.fetchall()}

    # endregion

    # region Notifications
    def insert_notification(self, notification: Notification) -> int:
        now = utcnow()
        created_at = notification.created_at
        if isinstance(created_at, datetime):
            created_at = created_at.isoformat()
        updated_at = notification.updated_at
        if isinstance(updated_at, datetime):
            updated_at = updated_at.isoformat()
        with self.connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO notifications (tenant_id, user_id, type, date, message, is_seen,
                                           created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    notification.tenant_id,
                    notification.user_id,
                    NotificationType(notification.type).value,
                    notification.date,
                    notification.message,
                    int(notification.is_seen),
                    created_at if created_at is not None else now,
                    updated_at if updated_at is not None else now,
                ),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def upsert_notification(self, notification: Notification) -> Tuple[int, bool]:
        """Store keyed by (tenant, user, type, date); refresh the message if present.

        The seen flag of an existing notification is left alone.
        """

        with self.connect() as conn:
            existing = conn.execute(
                """
                SELECT id FROM notifications
                WHERE tenant_id IS ? AND user_id = ? AND type = ? AND date = ?
                ORDER BY id
                LIMIT 1
                """,
                (
                    notification.tenant_id,
                    notification.user_id,
                    NotificationType(notification.type).value,
                    notification.date,
                ),
            ).fetchone()
            if existing:
                conn.execute(
                    "UPDATE notifications SET message = ?, updated_at = ? WHERE id = ?",
                    (notification.message, utcnow(), existing["id"]),
                )
                conn.commit()
                return int(existing["id"]), False
        return self.insert_notification(notification), True

    def get_notification(self, notification_id: int) -> Optional[Notification]:
        with self.connect() as conn:
            cursor = conn.execute("SELECT * FROM notifications WHERE id = ?", (notification_id,))
            row = cursor.fetchone()
            return _notification_from_row(row) if row else None

    def get_notifications(self, tenant_id: str, user_id: str) -> List[Notification]:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT * FROM notifications
                WHERE tenant_id = ? AND user_id = ?
                ORDER BY created_at DESC, id DESC
                """,
                (tenant_id, user_id),
            )
            return [_notification_from_row(row) for row in cursor.fetchall()]

    def mark_notification_seen(self, tenant_id: str, notification_id: int) -> bool:
        """Returns False when no such notification exists in the tenant."""

        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT is_seen FROM notifications WHERE id = ? AND tenant_id = ?",
                (notification_id, tenant_id),
            )
            row = cursor.fetchone()
            if row is None:
                return False
            if not row["is_seen"]:
                conn.execute(
                    "UPDATE notifications SET is_seen = 1, updated_at = ? WHERE id = ?",
                    (utcnow(), notification_id),
                )
                conn.commit()
            return True

    def mark_all_notifications_seen(self, tenant_id: str, user_id: str) -> int:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                UPDATE notifications SET is_seen = 1, updated_at = ?
                WHERE tenant_id = ? AND user_id = ? AND is_seen = 0
                """,
                (utcnow(), tenant_id, user_id),
            )
            conn.commit()
            return cursor.rowcount

    def find_notifications(
        self, user_id: Optional[str] = None, tenant_id: Optional[str] = None
    ) -> List[Notification]:
        clauses: List[str] = []
        params: List[Any] = []
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)
        if tenant_id is not None:
            clauses.append("tenant_id = ?")
            params.append(tenant_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self.connect() as conn:
            cursor = conn.execute(f"SELECT * FROM notifications {where} ORDER BY id", params)
            return [_notification_from_row(row) for row in cursor.fetchall()]

    def delete_notifications(self, ids: Sequence[int]) -> int:
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        with self.connect() as conn:
            cursor = conn.execute(f"DELETE FROM notifications WHERE id IN ({placeholders})", list(ids))
            conn.commit()
            return cursor.rowcount

    # endregion


__all__ = ["Database", "utcnow"]
