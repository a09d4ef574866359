"""Schedule views shared by the calendar grid, map pins and listing cards."""

import calendar
from datetime import date
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from tenbyten.models.listing import ListingType, SalesOpportunity
from tenbyten.models.recurrence import Weekday
from tenbyten.services.market_schedule import (
    DayLike,
    ListingLike,
    as_calendar_date,
    as_listing,
    is_active_on,
    is_listing_on_date,
    next_occurrence_on_or_after,
)


class MonthGrid(BaseModel):
    """Month laid out Sunday-first, as the calendar renders it."""
    year: int
    month: int
    leading_blanks: int = Field(..., ge=0, le=6, description="Empty cells before day 1")
    days: list[date]


def month_days(year: int, month: int) -> list[date]:
    """Every date in the month. Raises ValueError for an invalid month."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month}")
    total = calendar.monthrange(year, month)[1]
    return [date(year, month, day) for day in range(1, total + 1)]


def month_grid(year: int, month: int) -> MonthGrid:
    days = month_days(year, month)
    return MonthGrid(
        year=year,
        month=month,
        leading_blanks=Weekday.of(days[0]).js_index,
        days=days,
    )


def count_markets_by_day(listings: Iterable[ListingLike], year: int, month: int) -> dict[date, int]:
    """Number of markets running on each day of the month.

    Consignment shops are not counted.
    """
    markets = [m for m in (as_listing(item) for item in listings) if m.type == ListingType.MARKET]
    return {
        day: sum(1 for market in markets if is_active_on(market, day))
        for day in month_days(year, month)
    }


def listings_on_date(
    listings: Iterable[ListingLike],
    day: DayLike,
    listing_type: Optional[ListingType] = None,
    require_coordinates: bool = False,
) -> list[SalesOpportunity]:
    """Listings to show for a selected date, in input order."""
    day = as_calendar_date(day)
    shown = []
    for item in listings:
        listing = as_listing(item)
        if listing_type is not None and listing.type != listing_type:
            continue
        if require_coordinates and not listing.has_coordinates:
            continue
        if is_listing_on_date(listing, day):
            shown.append(listing)
    return shown


def annotate_next_occurrences(
    listings: Iterable[ListingLike],
    anchor: Optional[DayLike] = None,
) -> list[tuple[SalesOpportunity, Optional[date]]]:
    """Pair each listing with its next market day for list and detail views."""
    anchor = as_calendar_date(anchor) if anchor is not None else date.today()
    return [
        (listing, next_occurrence_on_or_after(listing, anchor))
        for listing in (as_listing(item) for item in listings)
    ]
