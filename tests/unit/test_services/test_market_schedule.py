"""Tests for the market schedule predicate."""

import pytest
from datetime import date, datetime, timedelta

from tenbyten.models.listing import SalesOpportunity
from tenbyten.services.market_schedule import (
    as_listing,
    is_active_on,
    is_consignment_open_on,
    is_listing_on_date,
    is_market_on_date,
    next_occurrence_on_or_after,
)

from tests.utils.helpers import daterange, month_dates


@pytest.mark.unit
def test_weekly_market_example(weekly_sunday_market):
    """Sunday inside the season matches; Monday and out-of-season Sundays do not."""
    assert is_active_on(weekly_sunday_market, date(2026, 3, 1)) is True
    assert is_active_on(weekly_sunday_market, date(2026, 3, 2)) is False
    assert is_active_on(weekly_sunday_market, date(2026, 12, 1)) is False
    assert is_active_on(weekly_sunday_market, date(2026, 12, 6)) is False
    assert is_active_on(weekly_sunday_market, date(2026, 2, 22)) is False


@pytest.mark.unit
def test_time_of_day_is_ignored(weekly_sunday_market):
    assert is_active_on(weekly_sunday_market, datetime(2026, 3, 1, 23, 59)) is True
    assert is_active_on(weekly_sunday_market, datetime(2026, 11, 29, 0, 0)) is True


@pytest.mark.unit
def test_tba_listing_never_matches(tba_market):
    for day in daterange(date(2026, 1, 1), date(2026, 12, 31)):
        assert is_active_on(tba_market, day) is False


@pytest.mark.unit
@pytest.mark.parametrize("is_recurring", [None, True])
def test_no_pattern_matches_whole_season(is_recurring):
    listing = {
        "season_start_date": "2026-06-10",
        "season_end_date": "2026-06-20",
        "is_recurring": is_recurring,
    }

    for day in daterange(date(2026, 6, 1), date(2026, 6, 30)):
        assert is_active_on(listing, day) is (date(2026, 6, 10) <= day <= date(2026, 6, 20))


@pytest.mark.unit
def test_non_recurring_with_both_bounds_matches_range():
    listing = {"season_start_date": "2026-07-03", "season_end_date": "2026-07-05", "is_recurring": False}

    assert [d.day for d in month_dates(2026, 7) if is_active_on(listing, d)] == [3, 4, 5]


@pytest.mark.unit
def test_non_recurring_with_only_start_is_single_day():
    listing = {"season_start_date": "2026-06-13", "is_recurring": False}

    assert is_active_on(listing, date(2026, 6, 13)) is True
    assert is_active_on(listing, date(2026, 6, 14)) is False
    assert is_active_on(listing, date(2026, 6, 12)) is False


@pytest.mark.unit
def test_start_without_end_and_recurring_unknown_runs_indefinitely():
    listing = {"season_start_date": "2026-06-13"}

    assert is_active_on(listing, date(2026, 6, 13)) is True
    assert is_active_on(listing, date(2030, 1, 1)) is True


@pytest.mark.unit
def test_non_recurring_with_only_end_runs_until_end():
    listing = {"season_end_date": "2026-06-13", "is_recurring": False}

    assert is_active_on(listing, date(2020, 1, 1)) is True
    assert is_active_on(listing, date(2026, 6, 13)) is True
    assert is_active_on(listing, date(2026, 6, 14)) is False


@pytest.mark.unit
def test_no_bounds_no_pattern_always_active():
    assert is_active_on({}, date(2026, 1, 1)) is True


@pytest.mark.unit
def test_legacy_dates_bound_the_season():
    listing = {"start_date": "2026-05-01", "end_date": "2026-05-31", "recurring_pattern": "Weekly on Saturday"}

    assert is_active_on(listing, date(2026, 5, 2)) is True
    assert is_active_on(listing, date(2026, 6, 6)) is False
    assert is_active_on(listing, date(2026, 4, 25)) is False


@pytest.mark.unit
def test_unparseable_bounds_impose_no_constraint():
    listing = {
        "season_start_date": "spring-ish",
        "season_end_date": "2026-13-45",
        "recurring_pattern": "Weekly on Sunday",
    }

    assert is_active_on(listing, date(1999, 1, 3)) is True
    assert is_active_on(listing, date(2040, 1, 1)) is True


@pytest.mark.unit
def test_unparseable_season_start_ignores_legacy_start():
    """A bad season start leaves the season open; the legacy start is not used."""
    listing = {"season_start_date": "TBD", "start_date": "2026-06-01", "recurring_pattern": "Weekly on Sunday"}

    assert is_active_on(listing, date(2026, 5, 3)) is True
    assert next_occurrence_on_or_after(listing, date(2026, 5, 1)) is None


@pytest.mark.unit
def test_weekly_two_days_without_season():
    listing = {"recurring_pattern": "Weekly on Sunday, Wednesday"}

    for day in daterange(date(2026, 1, 1), date(2026, 3, 31)):
        assert is_active_on(listing, day) is (day.weekday() in (6, 2))


@pytest.mark.unit
@pytest.mark.parametrize("pattern", ["null", "  ", "NULL"])
def test_null_like_pattern_falls_back_to_flag(pattern):
    listing = {"season_start_date": "2026-06-13", "is_recurring": False, "recurring_pattern": pattern}

    assert is_active_on(listing, date(2026, 6, 13)) is True
    assert is_active_on(listing, date(2026, 6, 20)) is False


@pytest.mark.unit
def test_unparseable_pattern_is_permissive():
    listing = {"season_start_date": "2026-06-01", "season_end_date": "2026-06-30", "recurring_pattern": "Call ahead"}

    assert all(is_active_on(listing, d) for d in month_dates(2026, 6))


@pytest.mark.unit
@pytest.mark.parametrize("pattern", ["Daily", "Every day", "open DAILY 9-5"])
def test_daily_pattern(pattern):
    listing = {"season_start_date": "2026-06-01", "season_end_date": "2026-06-03", "recurring_pattern": pattern}

    assert [d.day for d in month_dates(2026, 6) if is_active_on(listing, d)] == [1, 2, 3]


@pytest.mark.unit
@pytest.mark.parametrize("month", range(1, 13))
def test_third_saturday_matches_exactly_once_per_month(month):
    """2026 starts its months on every weekday, so this covers all alignments."""
    listing = {"recurring_pattern": "Monthly on the 3rd Saturday"}

    matches = [d for d in month_dates(2026, month) if is_active_on(listing, d)]

    assert len(matches) == 1
    assert matches[0].weekday() == 5
    assert 15 <= matches[0].day <= 21


@pytest.mark.unit
def test_months_of_2026_start_on_every_weekday():
    assert {date(2026, m, 1).weekday() for m in range(1, 13)} == set(range(7))


@pytest.mark.unit
@pytest.mark.parametrize("ordinal,expected_day", [("1st", 7), ("2nd", 14), ("3rd", 21), ("4th", 28)])
def test_ordinal_saturdays_in_march_2026(ordinal, expected_day):
    listing = {"recurring_pattern": f"Monthly on the {ordinal} Saturday"}

    assert [d.day for d in month_dates(2026, 3) if is_active_on(listing, d)] == [expected_day]


@pytest.mark.unit
def test_last_friday_in_month_with_five_fridays():
    listing = {"recurring_pattern": "Monthly on the Last Friday"}

    assert [d for d in month_dates(2026, 5) if is_active_on(listing, d)] == [date(2026, 5, 29)]


@pytest.mark.unit
def test_last_friday_in_month_with_four_fridays():
    listing = {"recurring_pattern": "Monthly on the Last Friday"}

    assert [d for d in month_dates(2026, 6) if is_active_on(listing, d)] == [date(2026, 6, 26)]


@pytest.mark.unit
def test_monthly_without_weekday_never_matches():
    listing = {"recurring_pattern": "Monthly on the Last"}

    assert not any(is_active_on(listing, d) for d in month_dates(2026, 7))


@pytest.mark.unit
def test_monthly_respects_season(third_saturday_market):
    third_saturday_market["season_end_date"] = "2026-03-20"

    assert is_active_on(third_saturday_market, date(2026, 2, 21)) is True
    assert is_active_on(third_saturday_market, date(2026, 3, 21)) is False


@pytest.mark.unit
def test_model_and_row_give_same_answer(third_saturday_market):
    model = SalesOpportunity.model_validate(third_saturday_market)

    for day in month_dates(2026, 9):
        assert is_active_on(model, day) == is_active_on(third_saturday_market, day)


@pytest.mark.unit
def test_row_with_bad_display_fields_still_evaluates(weekly_sunday_market):
    weekly_sunday_market["title"] = {"en": "Riverside"}
    weekly_sunday_market["start_time"] = 900

    listing = as_listing(weekly_sunday_market)

    assert listing.title is None
    assert is_active_on(weekly_sunday_market, date(2026, 3, 8)) is True


@pytest.mark.unit
def test_additional_schedules_do_not_affect_matching(weekly_sunday_market):
    weekly_sunday_market["additional_schedules"] = [
        {"label": "Holiday market", "start_date": "2026-12-01", "end_date": "2026-12-24", "days": ["Saturday"]},
    ]

    assert is_active_on(weekly_sunday_market, date(2026, 12, 5)) is False


@pytest.mark.unit
def test_is_market_on_date_alias(weekly_sunday_market):
    assert is_market_on_date is is_active_on
    assert is_market_on_date(weekly_sunday_market, date(2026, 3, 1)) is True


@pytest.mark.unit
def test_consignment_open_days(consignment_shop):
    friday = date(2026, 3, 6)

    assert is_consignment_open_on(consignment_shop, friday) is True
    assert is_consignment_open_on(consignment_shop, friday + timedelta(days=1)) is True
    assert is_consignment_open_on(consignment_shop, friday + timedelta(days=2)) is True
    assert is_consignment_open_on(consignment_shop, friday + timedelta(days=3)) is False


@pytest.mark.unit
def test_consignment_without_open_days_is_always_open():
    assert is_consignment_open_on({"type": "CONSIGNMENT", "open_days": []}, date(2026, 3, 2)) is True
    assert is_consignment_open_on({"type": "CONSIGNMENT"}, date(2026, 3, 2)) is True


@pytest.mark.unit
def test_consignment_with_only_junk_open_days_is_closed():
    assert is_consignment_open_on({"open_days": ["weekends", None]}, date(2026, 3, 1)) is False


@pytest.mark.unit
def test_is_listing_on_date_dispatches_on_type(weekly_sunday_market, consignment_shop):
    monday = date(2026, 3, 2)

    assert is_listing_on_date(weekly_sunday_market, monday) is False
    assert is_listing_on_date(consignment_shop, monday) is False
    assert is_listing_on_date({"type": None, "recurring_pattern": "Weekly on Sunday"}, monday) is True
