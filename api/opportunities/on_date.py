"""Listings running on a date, each with its next market day."""

import asyncio
from datetime import date

from tenbyten.models.listing import ListingType
from tenbyten.services.schedule_views import annotate_next_occurrences, listings_on_date
from tenbyten.services.supabase_client import fetch_all_opportunities
from tenbyten.utils.errors import TenbytenError
from tenbyten.utils.http import error_response, get_query, json_response
from tenbyten.utils.logging import correlation_context, get_structured_logger
from tenbyten.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


def handler(request):
    """``?date=YYYY-MM-DD`` (default today), optional ``type=MARKET|CONSIGNMENT``."""
    with correlation_context() as correlation_id:
        query = get_query(request)

        raw_date = query.get("date")
        try:
            day = date.fromisoformat(raw_date) if raw_date else date.today()
        except (TypeError, ValueError):
            return error_response(400, "date must be YYYY-MM-DD")

        raw_type = query.get("type")
        listing_type = None
        if raw_type:
            try:
                listing_type = ListingType(str(raw_type).upper())
            except ValueError:
                return error_response(400, "type must be MARKET or CONSIGNMENT")

        try:
            rows = asyncio.run(fetch_all_opportunities())
            shown = listings_on_date(rows, day, listing_type=listing_type, require_coordinates=True)
            data = []
            for listing, next_date in annotate_next_occurrences(shown, anchor=day):
                item = listing.model_dump(mode="json")
                item["next_occurrence"] = next_date.isoformat() if next_date else None
                data.append(item)

        except TenbytenError as e:
            logger.error("Listing lookup failed", correlation_id=correlation_id, error=str(e), exc_info=True)
            return error_response(500, str(e))
        except Exception as e:
            logger.error("Unexpected error in listing lookup", correlation_id=correlation_id, error=str(e), exc_info=True)
            return error_response(500, "Internal server error")

        logger.info(
            "Listings on date resolved",
            correlation_id=correlation_id,
            day=day.isoformat(),
            listing_type=listing_type.value if listing_type else None,
            fetched=len(rows),
            shown=len(data),
        )

        return json_response(200, {"date": day.isoformat(), "data": data})
