"""
Shared fixtures for the StaffTrak unit tests.

Everything runs against tests/fakes.py; no Supabase project, Postgres
database or Streamlit server is required.
"""
from datetime import datetime, timezone

import pytest

from tests.fakes import FakeClient

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def now():
    return NOW


@pytest.fixture(autouse=True)
def _no_ambient_secrets(monkeypatch):
    for key in ("ALLOWED_EMAIL_DOMAINS", "EVALUATIONS_TABLE", "SCHOOL_NAME", "SCHOOL_YEAR", "APP_URL"):
        monkeypatch.delenv(key, raising=False)
