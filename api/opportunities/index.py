"""Listings endpoint: read, create, update and delete sales opportunities."""

import asyncio

from tenbyten.models.listing import ListingType
from tenbyten.services.supabase_client import (
    create_opportunity,
    delete_opportunity,
    fetch_opportunities_page,
    get_opportunity,
    update_opportunity,
)
from tenbyten.utils.errors import TenbytenError
from tenbyten.utils.http import error_response, get_json_body, get_query, json_response
from tenbyten.utils.logging import correlation_context, get_structured_logger
from tenbyten.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


def _listing_type(value) -> ListingType:
    return ListingType(str(value).strip().upper())


def _get(request):
    query = get_query(request)
    opportunity_id = query.get("id")
    if opportunity_id:
        opportunity = asyncio.run(get_opportunity(opportunity_id))
        if opportunity is None:
            return error_response(404, "Opportunity not found")
        return json_response(200, opportunity)

    try:
        page = int(query.get("page") or 1)
        limit = int(query["limit"]) if query.get("limit") else None
    except ValueError:
        return error_response(400, "page and limit must be integers")
    if page < 1 or (limit is not None and limit < 1):
        return error_response(400, "page and limit must be positive")

    rows, meta = asyncio.run(fetch_opportunities_page(page, limit))
    return json_response(200, {"data": rows, "meta": meta})


def _post(request):
    data = get_json_body(request)
    try:
        listing_type = _listing_type(data.pop("type", ""))
    except ValueError:
        return error_response(400, "type must be MARKET or CONSIGNMENT")

    opportunity_id = asyncio.run(create_opportunity(listing_type, data))
    return json_response(200, {"success": True, "id": opportunity_id})


def _put(request):
    data = get_json_body(request)
    opportunity_id = data.pop("id", None)
    raw_type = data.pop("type", None)
    if not opportunity_id or not raw_type:
        return error_response(400, "ID and Type required")
    try:
        listing_type = _listing_type(raw_type)
    except ValueError:
        return error_response(400, "type must be MARKET or CONSIGNMENT")

    asyncio.run(update_opportunity(str(opportunity_id), listing_type, data))
    return json_response(200, {"success": True, "message": "Updated successfully"})


def _delete(request):
    opportunity_id = get_query(request).get("id")
    if not opportunity_id:
        return error_response(400, "ID required")

    asyncio.run(delete_opportunity(opportunity_id))
    return json_response(200, {"success": True})


ROUTES = {
    "GET": _get,
    "POST": _post,
    "PUT": _put,
    "DELETE": _delete,
}


def handler(request):
    """
    ``GET ?id=`` one listing with its details, ``GET ?page=&limit=`` a page;
    ``POST`` / ``PUT`` a JSON listing with ``type`` (and ``id`` for PUT);
    ``DELETE ?id=``.
    """
    method = str(request.get("method", "GET")).upper()
    route = ROUTES.get(method)
    if route is None:
        return error_response(405, f"Method {method} not allowed")

    with correlation_context() as correlation_id:
        try:
            return route(request)
        except TenbytenError as e:
            logger.error(
                "Opportunity request failed",
                correlation_id=correlation_id,
                method=method,
                error=str(e),
                exc_info=True,
            )
            return error_response(500, str(e))
        except Exception as e:
            logger.error(
                "Unexpected error in opportunity request",
                correlation_id=correlation_id,
                method=method,
                error=str(e),
                exc_info=True,
            )
            return error_response(500, "Internal server error")
