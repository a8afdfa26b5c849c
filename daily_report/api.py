"""FastAPI application exposing the daily report REST API."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .config import Settings, load_settings
from .db import Database
from .models import User
from .service import (
    MAX_LOOKBACK_DAYS,
    DailyReportService,
    NotificationNotFoundError,
    ReportConflictError,
    ReportValidationError,
    UserNotFoundError,
)
from .workdays import allowed_dates_message, allowed_report_dates, parse_date

logger = logging.getLogger(__name__)


class ReportSubmission(BaseModel):
    user_id: str
    date: str
    content: str


class AdminReportSubmission(ReportSubmission):
    reason: Optional[str] = None


class UserPayload(BaseModel):
    id: str
    username: str
    real_name: str
    email: Optional[str] = None
    is_admin: bool = False
    is_active: bool = True


class UserRef(BaseModel):
    user_id: str


class CleanupRequest(BaseModel):
    user_id: Optional[str] = None


def _parse_day(value: str) -> date:
    try:
        return parse_date(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD") from exc


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or load_settings()
    database = database or Database(settings.database_path)
    service = DailyReportService(settings, database)
    background: dict[str, asyncio.Task] = {}

    async def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> None:
        if x_api_key != settings.api_key:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid api key")

    async def tenant_dependency(x_tenant_id: str = Header(..., alias="X-Tenant-ID")) -> str:
        if not x_tenant_id.strip():
            raise HTTPException(status_code=400, detail="Tenant information not found")
        return x_tenant_id

    def today_dependency(today: Optional[str] = None) -> date:
        if not today:
            return date.today()
        return _parse_day(today)

    async def periodic_cleanup() -> None:
        while True:
            await asyncio.sleep(settings.cleanup_interval_seconds)
            try:
                service.cleanup_notifications()
            except Exception as exc:  # noqa: BLE001
                logger.error("Notification cleanup failed: %s", exc)

    app = FastAPI(title="Daily Report API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def startup_event() -> None:
        service.sync_roster()
        if settings.cleanup_interval_seconds > 0:
            background["cleanup"] = asyncio.create_task(periodic_cleanup())

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        task = background.pop("cleanup", None)
        if task:
            task.cancel()

    def get_service() -> DailyReportService:
        return service

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    # region Reports
    @app.get("/api/reports/allowed-dates", dependencies=[Depends(verify_api_key)])
    async def get_allowed_dates(today: date = Depends(today_dependency)) -> dict[str, object]:
        allowed = allowed_report_dates(today)
        return {**asdict(allowed), "message": allowed_dates_message(today)}

    @app.post("/api/reports", dependencies=[Depends(verify_api_key)])
    async def submit_report(
        payload: ReportSubmission,
        tenant_id: str = Depends(tenant_dependency),
        today: date = Depends(today_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        try:
            report, created = svc.submit_report(tenant_id, payload.user_id, payload.date, payload.content, today)
        except ReportValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"success": True, "id": report.id, "created": created, "updated": not created}

    @app.get("/api/reports/check", dependencies=[Depends(verify_api_key)])
    async def check_report(
        user_id: str,
        date: str,
        tenant_id: str = Depends(tenant_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        day = _parse_day(date)
        report = svc.get_report(tenant_id, user_id, day.isoformat())
        return {"exists": report is not None, "report": asdict(report) if report else None}

    @app.get("/api/reports/user/{user_id}", dependencies=[Depends(verify_api_key)])
    async def get_user_reports(
        user_id: str,
        tenant_id: str = Depends(tenant_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        return {"reports": [asdict(report) for report in svc.get_user_reports(tenant_id, user_id)]}

    # endregion

    # region Admin
    @app.get("/api/admin/users", dependencies=[Depends(verify_api_key)])
    async def list_users(
        tenant_id: str = Depends(tenant_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        return {"users": [asdict(user) for user in svc.list_users(tenant_id)]}

    @app.patch("/api/admin/users/{user_id}/toggle", dependencies=[Depends(verify_api_key)])
    async def toggle_user(
        user_id: str,
        tenant_id: str = Depends(tenant_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        try:
            user = svc.toggle_user_active(tenant_id, user_id)
        except UserNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {
            "success": True,
            "message": f"User {'enabled' if user.is_active else 'disabled'} successfully",
            "user": {"id": user.id, "is_active": user.is_active},
        }

    @app.get("/api/admin/reports", dependencies=[Depends(verify_api_key)])
    async def list_reports(
        date: Optional[str] = None,
        tenant_id: str = Depends(tenant_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        day = today_dependency(date)
        return {
            "date": day.isoformat(),
            "reports": [asdict(report) for report in svc.get_reports_for_date(tenant_id, day)],
        }

    @app.post("/api/admin/users", dependencies=[Depends(verify_api_key)])
    async def add_user(
        payload: UserPayload,
        tenant_id: str = Depends(tenant_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        user = svc.add_user(User(tenant_id=tenant_id, **payload.model_dump()))
        return {"success": True, "user": asdict(user)}

    @app.post("/api/admin/reports", dependencies=[Depends(verify_api_key)])
    async def admin_submit_report(
        payload: AdminReportSubmission,
        tenant_id: str = Depends(tenant_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        try:
            report = svc.submit_report_for_user(
                tenant_id, payload.user_id, payload.date, payload.content, payload.reason
            )
        except UserNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ReportConflictError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except ReportValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"success": True, "report": asdict(report)}

    @app.get("/api/admin/progress", dependencies=[Depends(verify_api_key)])
    async def get_progress(
        date: Optional[str] = None,
        tenant_id: str = Depends(tenant_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        day = today_dependency(date)
        return svc.get_daily_progress(tenant_id, day)

    # endregion

    # region Notifications
    @app.get("/api/notifications", dependencies=[Depends(verify_api_key)])
    async def get_notifications(
        user_id: str,
        tenant_id: str = Depends(tenant_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        notifications = svc.list_notifications(tenant_id, user_id)
        return {
            "notifications": [n.to_dict() for n in notifications],
            "unread_count": svc.unread_count(tenant_id, user_id),
        }

    @app.post("/api/notifications/check", dependencies=[Depends(verify_api_key)])
    async def check_notifications(
        payload: UserRef,
        tenant_id: str = Depends(tenant_dependency),
        today: date = Depends(today_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        notifications = await svc.check_notifications(tenant_id, payload.user_id, today)
        return {"notifications": [n.to_dict() for n in notifications]}

    @app.put("/api/notifications/seen", dependencies=[Depends(verify_api_key)])
    async def mark_all_seen(
        payload: UserRef,
        tenant_id: str = Depends(tenant_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        return {"success": True, "updated": svc.mark_all_seen(tenant_id, payload.user_id)}

    @app.put("/api/notifications/{notification_id}/seen", dependencies=[Depends(verify_api_key)])
    async def mark_seen(
        notification_id: int,
        tenant_id: str = Depends(tenant_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        try:
            svc.mark_seen(tenant_id, notification_id)
        except NotificationNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return {"success": True}

    @app.post("/api/notifications/cleanup", dependencies=[Depends(verify_api_key)])
    async def cleanup_notifications(
        payload: CleanupRequest,
        tenant_id: str = Depends(tenant_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        deleted = svc.cleanup_notifications(tenant_id=tenant_id, user_id=payload.user_id)
        return {
            "success": True,
            "message": f"Cleaned up {deleted} duplicate notifications",
            "deleted_count": deleted,
        }

    @app.get("/api/notifications/missed-reports", dependencies=[Depends(verify_api_key)])
    async def get_missed_reports(
        user_id: str,
        days: Optional[int] = Query(None, ge=1, le=MAX_LOOKBACK_DAYS),
        tenant_id: str = Depends(tenant_dependency),
        today: date = Depends(today_dependency),
        svc: DailyReportService = Depends(get_service),
    ) -> dict[str, object]:
        try:
            result = svc.missed_report_dates(tenant_id, user_id, today, days)
        except ReportValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"success": True, **result}

    # endregion

    return app


__all__ = ["create_app"]
