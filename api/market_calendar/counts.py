"""Calendar counts endpoint: how many markets run on each day of a month."""

import asyncio
from datetime import date

from tenbyten.services.schedule_views import count_markets_by_day, month_grid
from tenbyten.services.supabase_client import fetch_all_opportunities
from tenbyten.utils.errors import TenbytenError
from tenbyten.utils.http import error_response, get_query, json_response
from tenbyten.utils.logging import correlation_context, get_structured_logger
from tenbyten.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


def _parse_month(query: dict) -> tuple[int, int]:
    today = date.today()
    year = int(query.get("year") or today.year)
    month = int(query.get("month") or today.month)
    if not 1 <= year <= 9999 or not 1 <= month <= 12:
        raise ValueError(f"Invalid year/month: {year}-{month}")
    return year, month


def handler(request):
    """
    Return per-day market counts for ``?year=YYYY&month=M`` (default: this month).

    Response body: year, month, leading_blanks (Sunday-first grid) and counts
    keyed by ISO date.
    """
    with correlation_context() as correlation_id:
        try:
            try:
                year, month = _parse_month(get_query(request))
            except (TypeError, ValueError) as e:
                logger.warning("Invalid calendar query", correlation_id=correlation_id, error=str(e))
                return error_response(400, "year and month must be valid integers")

            listings = asyncio.run(fetch_all_opportunities())
            counts = count_markets_by_day(listings, year, month)
            grid = month_grid(year, month)

            logger.info(
                "Calendar counts computed",
                correlation_id=correlation_id,
                year=year,
                month=month,
                listings=len(listings),
                busiest_count=max(counts.values(), default=0),
            )

            return json_response(200, {
                "year": year,
                "month": month,
                "leading_blanks": grid.leading_blanks,
                "counts": {day.isoformat(): count for day, count in counts.items()},
            })

        except TenbytenError as e:
            logger.error("Calendar counts failed", correlation_id=correlation_id, error=str(e), exc_info=True)
            return error_response(500, str(e))
        except Exception as e:
            logger.error("Unexpected error in calendar counts", correlation_id=correlation_id, error=str(e), exc_info=True)
            return error_response(500, "Internal server error")
