"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import MagicMock
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "gpt-4o-mini")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("LOG_FORMAT", "text")


@pytest.fixture
def weekly_sunday_market():
    """Sunday market running March through November 2026."""
    return {
        "id": "mkt-sunday",
        "type": "MARKET",
        "title": "Riverside Sunday Flea",
        "latitude": "40.7128",
        "longitude": "-74.0060",
        "season_start_date": "2026-03-01",
        "season_end_date": "2026-11-30",
        "is_recurring": True,
        "recurring_pattern": "Weekly on Sunday",
        "is_schedule_tba": False,
    }


@pytest.fixture
def third_saturday_market():
    """Monthly market on the 3rd Saturday, whole of 2026."""
    return {
        "id": "mkt-third-sat",
        "type": "MARKET",
        "title": "Third Saturday Vintage",
        "latitude": 41.0,
        "longitude": -73.5,
        "season_start_date": "2026-01-01",
        "season_end_date": "2026-12-31",
        "is_recurring": True,
        "recurring_pattern": "Monthly on the 3rd Saturday",
    }


@pytest.fixture
def tba_market():
    """Market whose schedule has not been announced."""
    return {
        "id": "mkt-tba",
        "type": "MARKET",
        "title": "Pop-up Market (dates TBA)",
        "season_start_date": "2026-03-01",
        "season_end_date": "2026-11-30",
        "recurring_pattern": "Daily",
        "is_schedule_tba": True,
    }


@pytest.fixture
def consignment_shop():
    """Consignment shop open Friday through Sunday."""
    return {
        "id": "con-weekend",
        "type": "CONSIGNMENT",
        "title": "Second Look Consignment",
        "latitude": 40.73,
        "longitude": -73.99,
        "open_days": [5, 6, "0"],
    }


@pytest.fixture
def supabase_query_mock():
    """Chainable Supabase query builder mock; set ``execute.return_value`` per test."""
    query = MagicMock()
    for method in ("select", "eq", "order", "range", "is_", "limit"):
        getattr(query, method).return_value = query
    return query


@pytest.fixture
def freeze_time_fixture():
    """Freeze "today" at Saturday 2026-10-17."""
    with freeze_time("2026-10-17 12:00:00") as frozen_time:
        yield frozen_time

