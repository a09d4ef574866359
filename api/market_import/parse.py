"""Admin market import endpoint: pasted text or screenshot -> market draft."""

import asyncio

from tenbyten.services.market_import import build_prefill, extract_market_details
from tenbyten.utils.errors import ConfigurationError, MarketImportError
from tenbyten.utils.http import data_url_size, error_response, get_json_body, json_response
from tenbyten.utils.logging import correlation_context, get_structured_logger
from tenbyten.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)


def handler(request):
    """
    Parse a market from ``{"text", "source_url", "screenshot"}``.

    ``screenshot`` is an optional ``data:`` URL.
    """
    with correlation_context() as correlation_id:
        body = get_json_body(request)
        text = body.get("text") if isinstance(body.get("text"), str) else ""
        source_url = body.get("source_url") if isinstance(body.get("source_url"), str) else ""
        screenshot = body.get("screenshot") if isinstance(body.get("screenshot"), str) else None

        try:
            parsed = asyncio.run(extract_market_details(
                text,
                source_url=source_url,
                screenshot_data_url=screenshot,
                screenshot_size=data_url_size(screenshot),
            ))
        except MarketImportError as e:
            logger.warning(
                "Market import rejected",
                correlation_id=correlation_id,
                status_code=e.status_code,
                error=str(e),
            )
            return error_response(e.status_code, str(e))
        except ConfigurationError as e:
            logger.error("Market import not configured", correlation_id=correlation_id, error=str(e))
            return error_response(500, str(e))
        except Exception as e:
            logger.error("Unexpected error in market import", correlation_id=correlation_id, error=str(e), exc_info=True)
            return error_response(500, "Internal server error")

        return json_response(200, {
            "success": True,
            "data": parsed.model_dump(),
            "prefill": build_prefill(parsed),
        })
