"""Supabase client wrapper with async context manager support."""

import math
import re
from typing import Any, Optional

from supabase import create_client, Client
from supabase.client import ClientOptions

from tenbyten.models.listing import ListingType
from tenbyten.utils.errors import SupabaseError
from tenbyten.utils.logging import get_structured_logger, timed
from tenbyten.utils.settings import settings

logger = get_structured_logger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None

DETAIL_TABLES = {
    ListingType.MARKET.value: "market_details",
    ListingType.CONSIGNMENT.value: "consignment_details",
}


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = settings.supabase_url
        key = settings.supabase_key

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", url=url)

    return _client


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                error=str(exc_val),
                error_type=exc_type.__name__
            )
        return False


async def fetch_opportunities_page(page: int = 1, limit: Optional[int] = None) -> tuple[list[dict], dict]:
    """Fetch one page of listings, newest first.

    Returns ``(rows, meta)`` where meta has page, limit, total and totalPages.
    """
    if page < 1:
        raise SupabaseError(f"Invalid page: {page}")
    limit = limit or settings.opportunities_page_size
    offset = (page - 1) * limit

    async with SupabaseClient() as client:
        try:
            result = (
                client.table(settings.opportunities_table)
                .select("*", count="exact")
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as e:
            raise SupabaseError(f"Failed to fetch opportunities page {page}: {e}")

    rows = result.data if result.data else []
    total = result.count if result.count is not None else offset + len(rows)
    meta = {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": max(1, math.ceil(total / limit)),
    }
    return rows, meta


@timed("fetch_all_opportunities", logger=logger)
async def fetch_all_opportunities(page_size: Optional[int] = None) -> list[dict]:
    """Fetch every listing, page by page."""
    rows, meta = await fetch_opportunities_page(1, page_size)
    all_rows = list(rows)
    for page in range(2, meta["totalPages"] + 1):
        page_rows, _ = await fetch_opportunities_page(page, meta["limit"])
        all_rows.extend(page_rows)

    logger.debug(
        "Fetched opportunities",
        total=len(all_rows),
        pages=meta["totalPages"]
    )
    return all_rows


async def get_opportunity(opportunity_id: str) -> Optional[dict[str, Any]]:
    """Get a listing merged with its market or consignment detail row."""
    async with SupabaseClient() as client:
        try:
            result = client.table(settings.opportunities_table).select("*").eq("id", opportunity_id).execute()
            if not result.data:
                return None
            opportunity = result.data[0]

            detail_table = DETAIL_TABLES.get(opportunity.get("type"))
            details: dict[str, Any] = {}
            if detail_table:
                detail_result = client.table(detail_table).select("*").eq("opportunity_id", opportunity_id).execute()
                if detail_result.data:
                    details = detail_result.data[0]
        except Exception as e:
            raise SupabaseError(f"Failed to get opportunity {opportunity_id}: {e}")

    # Detail rows carry their own id; the listing id wins.
    return {**opportunity, **details, "id": opportunity.get("id")}


BASE_FIELDS = ("title", "description", "address", "latitude", "longitude", "tags")

DETAIL_FIELDS = {
    ListingType.MARKET: (
        "season_start_date",
        "season_end_date",
        "start_date",
        "end_date",
        "start_time",
        "end_time",
        "is_recurring",
        "recurring_pattern",
        "is_schedule_tba",
        "additional_schedules",
        "is_indoors",
        "electricity_access",
        "booth_size",
        "vendor_count",
        "admission_fee",
        "admission_fees",
        "application_deadline",
        "website",
        "organizer_name",
    ),
    ListingType.CONSIGNMENT: (
        "accepted_items",
        "excluded_brands",
        "consignment_split",
        "contract_duration_days",
        "intake_hours",
        "open_days",
    ),
}

# Blank form values are stored as NULL.
BLANK_AS_NULL = frozenset({
    "season_start_date",
    "season_end_date",
    "start_date",
    "end_date",
    "start_time",
    "end_time",
    "recurring_pattern",
})

WHOLE_NUMBER_FIELDS = frozenset({"vendor_count", "contract_duration_days"})


def _whole_number(value: Any) -> Optional[int]:
    """Leading integer of a form value; zero and junk become None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = int(value) if math.isfinite(value) else 0
    else:
        match = re.match(r"\s*([+-]?\d+)", str(value))
        number = int(match.group(1)) if match else 0
    return number or None


def split_opportunity_fields(listing_type: ListingType, data: dict[str, Any]) -> tuple[dict, dict]:
    """Split form data into base-row and detail-row columns.

    Only keys present in ``data`` are returned, so updates leave other
    columns alone.
    """
    base = {key: data[key] for key in BASE_FIELDS if key in data}
    details = {}
    for key in DETAIL_FIELDS[listing_type]:
        if key not in data:
            continue
        value = data[key]
        if key in BLANK_AS_NULL:
            value = value or None
        elif key in WHOLE_NUMBER_FIELDS:
            value = _whole_number(value)
        details[key] = value
    return base, details


async def create_opportunity(listing_type: ListingType, data: dict[str, Any]) -> str:
    """Insert a listing and its detail row; returns the new listing id.

    If the detail insert fails the base row is removed again.
    """
    base, details = split_opportunity_fields(listing_type, data)

    async with SupabaseClient() as client:
        try:
            result = client.table(settings.opportunities_table).insert(
                {"type": listing_type.value, **base}
            ).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to create opportunity: {e}")
        if not result.data:
            raise SupabaseError("Failed to create opportunity: no row returned")
        opportunity_id = result.data[0]["id"]

        try:
            client.table(DETAIL_TABLES[listing_type.value]).insert(
                {"opportunity_id": opportunity_id, **details}
            ).execute()
        except Exception as e:
            logger.error(
                "Detail insert failed, removing listing",
                opportunity_id=opportunity_id,
                error=str(e)
            )
            try:
                client.table(settings.opportunities_table).delete().eq("id", opportunity_id).execute()
            except Exception as rollback_error:
                logger.error(
                    "Rollback of listing failed",
                    opportunity_id=opportunity_id,
                    error=str(rollback_error)
                )
            raise SupabaseError(f"Failed to create {listing_type.value.lower()} details: {e}")

    logger.info("Opportunity created", opportunity_id=opportunity_id, type=listing_type.value)
    return opportunity_id


async def update_opportunity(opportunity_id: str, listing_type: ListingType, data: dict[str, Any]) -> None:
    """Update the base row and the detail row with the fields present in ``data``."""
    base, details = split_opportunity_fields(listing_type, data)

    async with SupabaseClient() as client:
        try:
            if base:
                client.table(settings.opportunities_table).update(base).eq("id", opportunity_id).execute()
            if details:
                client.table(DETAIL_TABLES[listing_type.value]).update(details).eq(
                    "opportunity_id", opportunity_id
                ).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to update opportunity {opportunity_id}: {e}")

    logger.info(
        "Opportunity updated",
        opportunity_id=opportunity_id,
        type=listing_type.value,
        fields=sorted(base) + sorted(details)
    )


async def delete_opportunity(opportunity_id: str) -> None:
    """Delete a listing; detail rows go with it through the foreign key."""
    async with SupabaseClient() as client:
        try:
            client.table(settings.opportunities_table).delete().eq("id", opportunity_id).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to delete opportunity {opportunity_id}: {e}")

    logger.info("Opportunity deleted", opportunity_id=opportunity_id)
