from datetime import date

import pytest

from daily_report.config import Settings
from daily_report.db import Database
from daily_report.models import User
from daily_report.service import DailyReportService

TENANT = "acme"

# 2024-03-04 is a Monday.
MONDAY = date(2024, 3, 4)
TUESDAY = date(2024, 3, 5)
WEDNESDAY = date(2024, 3, 6)
SATURDAY = date(2024, 3, 9)
SUNDAY = date(2024, 3, 10)
NEXT_MONDAY = date(2024, 3, 11)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        api_key="test-key",
        database_path=tmp_path / "daily_report.db",
        team_roster_path=tmp_path / "team_roster.csv",
    )


@pytest.fixture
def database(settings):
    return Database(settings.database_path)


@pytest.fixture
def service(settings, database):
    return DailyReportService(settings, database)


@pytest.fixture
def employees(database):
    users = [
        User(id="u1", tenant_id=TENANT, username="ana", real_name="Ana Lima"),
        User(id="u2", tenant_id=TENANT, username="ben", real_name="Ben Ode"),
        User(id="boss", tenant_id=TENANT, username="boss", real_name="Cara Boss", is_admin=True),
    ]
    for user in users:
        database.upsert_user(user)
    return users
