"""End-to-end tests: paged Supabase rows to calendar and date views."""

import pytest
import sys
import os
from datetime import date
from unittest.mock import Mock, patch

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../../..')))

from tenbyten.services.market_schedule import next_occurrence_on_or_after

from tests.utils.assertions import assert_valid_response
from tests.utils.factories import create_consignment_data, create_market_data
from tests.utils.helpers import create_vercel_request, month_dates


def _paged_client(query, rows, page_size):
    """Supabase client whose query returns ``rows`` in pages of ``page_size``."""
    pages = [rows[i:i + page_size] for i in range(0, len(rows), page_size)] or [[]]
    query.execute.side_effect = [Mock(data=page, count=len(rows)) for page in pages]
    client = Mock()
    client.table = Mock(return_value=query)
    return client


@pytest.fixture
def season_rows(weekly_sunday_market, third_saturday_market, tba_market):
    return [
        weekly_sunday_market,
        third_saturday_market,
        tba_market,
        create_market_data(
            recurring_pattern="Monthly on the Last Friday",
            season_start_date="2026-01-01",
            season_end_date="2026-12-31",
        ),
        create_market_data(season_start_date="2026-05-16", is_recurring=False),
        create_consignment_data(open_days=[1, 2, 3]),
    ]


@pytest.mark.integration
def test_calendar_counts_over_pages(supabase_query_mock, season_rows, monkeypatch):
    """Rows spread across pages are all counted."""
    from api.market_calendar.counts import handler

    monkeypatch.setenv("OPPORTUNITIES_PAGE_SIZE", "2")
    client = _paged_client(supabase_query_mock, season_rows, 2)

    with patch('tenbyten.services.supabase_client.get_supabase_client', return_value=client):
        response = handler(create_vercel_request(query={"year": "2026", "month": "5"}))

    body = assert_valid_response(response)
    assert supabase_query_mock.execute.call_count == 3
    counts = body["counts"]
    assert len(counts) == len(month_dates(2026, 5))
    # May 16 is both the 3rd Saturday and the one-day event.
    assert counts["2026-05-16"] == 2
    assert counts["2026-05-29"] == 1
    assert counts["2026-05-31"] == 1
    assert sum(counts.values()) == 5 + 1 + 1 + 1


@pytest.mark.integration
def test_on_date_agrees_with_next_occurrence(supabase_query_mock, season_rows):
    """Every listing shown on a date has that date as its next occurrence."""
    from api.opportunities.on_date import handler

    client = _paged_client(supabase_query_mock, season_rows, 200)

    with patch('tenbyten.services.supabase_client.get_supabase_client', return_value=client):
        response = handler(create_vercel_request(query={"date": "2026-05-16", "type": "MARKET"}))

    body = assert_valid_response(response)
    assert len(body["data"]) == 2
    for item in body["data"]:
        assert item["next_occurrence"] == "2026-05-16"
        assert next_occurrence_on_or_after(item, date(2026, 5, 16)) == date(2026, 5, 16)
