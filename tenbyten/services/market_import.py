"""Market import - turn pasted market copy or a screenshot into a market draft."""

import json
import math
import re
from typing import Any, Optional

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, Field

from tenbyten.models.listing import AdmissionFee
from tenbyten.models.recurrence import Weekday
from tenbyten.utils.errors import ConfigurationError, MarketImportError
from tenbyten.utils.logging import (
    get_correlation_id,
    get_structured_logger,
    log_timing,
    sanitize_text_preview,
)
from tenbyten.utils.settings import settings

logger = get_structured_logger(__name__)

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^\d{2}:\d{2}$")
VALID_DAYS = frozenset(day.label for day in Weekday)

SYSTEM_PROMPT = """You extract structured vintage market details from messy text or screenshots.
Return ONLY a JSON object with exactly these keys:
- title (string or null)
- description (string or null)
- address (string or null)
- latitude (number or null)
- longitude (number or null)
- season_start_date (YYYY-MM-DD or null)
- season_end_date (YYYY-MM-DD or null)
- start_time (HH:MM 24h or null)
- end_time (HH:MM 24h or null)
- application_start_date (YYYY-MM-DD or null)
- application_end_date (YYYY-MM-DD or null)
- additional_schedules (array of { label, start_date, end_date, start_time, end_time, days } or [])
- is_indoors (boolean or null)
- electricity_access (boolean or null)
- booth_size (string or null)
- is_schedule_tba (boolean or null)
- application_deadline (YYYY-MM-DD or null)
- vendor_count (number or null)
- admission_fee (number or null)
- admission_fees (array of { label, price } or [])
- website (string URL or null)
- is_trending (boolean or null)
- tags (string array or [])
- categories (string array or [])
- is_recurring (boolean or null)
- recurring_pattern (string or null, format: "Weekly on Sunday" or "Monthly on the 1st Saturday")
- organizer_name (string or null)
Rules:
- Do not guess missing details; use null or [] if not explicitly stated.
- Normalize dates to YYYY-MM-DD and times to HH:MM (24-hour).
- If a single event date is explicitly given, set both season_start_date and season_end_date to that date.
- If a date range is explicitly given, set season_start_date and season_end_date to the range.
- If the schedule is explicitly "TBA", "TBD", or "not announced", set is_schedule_tba true and leave date/time fields null.
- If recurring is explicitly stated, set is_recurring true and recurring_pattern accordingly.
- For admission fees like "$5", return 5 (number).
- For days, use full names (Sunday, Monday, Tuesday, Wednesday, Thursday, Friday, Saturday)."""


class ImportedSchedule(BaseModel):
    """Additional schedule segment as extracted (dates kept as YYYY-MM-DD text)."""
    label: str = "Schedule"
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    days: list[str] = Field(default_factory=list)


class ParsedMarket(BaseModel):
    """Normalised market draft handed to the admin form."""
    title: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    season_start_date: Optional[str] = None
    season_end_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    application_start_date: Optional[str] = None
    application_end_date: Optional[str] = None
    additional_schedules: list[ImportedSchedule] = Field(default_factory=list)
    is_indoors: Optional[bool] = None
    electricity_access: Optional[bool] = None
    booth_size: Optional[str] = None
    is_schedule_tba: Optional[bool] = None
    application_deadline: Optional[str] = None
    vendor_count: Optional[float] = None
    admission_fee: Optional[float] = None
    admission_fees: list[AdmissionFee] = Field(default_factory=list)
    website: Optional[str] = None
    is_trending: Optional[bool] = None
    tags: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    is_recurring: Optional[bool] = None
    recurring_pattern: Optional[str] = None
    organizer_name: Optional[str] = None


def to_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def to_date(value: Any) -> Optional[str]:
    text = to_text(value)
    if not text:
        return None
    return text if DATE_RE.match(text) else None


def to_time(value: Any) -> Optional[str]:
    text = to_text(value)
    if not text:
        return None
    return text if TIME_RE.match(text) else None


def to_number(value: Any) -> Optional[float]:
    """Numbers pass through; strings like '$5' keep only digits and dots."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        cleaned = re.sub(r"[^0-9.]", "", value).strip()
        if not cleaned:
            return None
        try:
            parsed = float(cleaned)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def to_boolean(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in ("true", "yes", "y"):
            return True
        if normalized in ("false", "no", "n"):
            return False
    return None


def to_string_array(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def normalize_admission_fees(value: Any) -> list[AdmissionFee]:
    if not isinstance(value, list):
        return []
    fees = []
    for item in value:
        if not isinstance(item, dict):
            continue
        label = to_text(item.get("label"))
        price = to_number(item.get("price"))
        if not label and price is None:
            continue
        fees.append(AdmissionFee(label=label or "General", price=price))
    return fees


def normalize_schedules(value: Any) -> list[ImportedSchedule]:
    if not isinstance(value, list):
        return []
    schedules = []
    for item in value:
        if not isinstance(item, dict):
            continue
        schedules.append(ImportedSchedule(
            label=to_text(item.get("label")) or "Schedule",
            start_date=to_date(item.get("start_date")),
            end_date=to_date(item.get("end_date")),
            start_time=to_time(item.get("start_time")),
            end_time=to_time(item.get("end_time")),
            days=[day for day in to_string_array(item.get("days")) if day in VALID_DAYS],
        ))
    return schedules


def normalize_market_payload(raw: Any) -> ParsedMarket:
    """Coerce every extracted field; TBA markets lose all schedule fields."""
    if not isinstance(raw, dict):
        raw = {}

    parsed = ParsedMarket(
        title=to_text(raw.get("title")),
        description=to_text(raw.get("description")),
        address=to_text(raw.get("address")),
        latitude=to_number(raw.get("latitude")),
        longitude=to_number(raw.get("longitude")),
        season_start_date=to_date(raw.get("season_start_date")),
        season_end_date=to_date(raw.get("season_end_date")),
        start_time=to_time(raw.get("start_time")),
        end_time=to_time(raw.get("end_time")),
        application_start_date=to_date(raw.get("application_start_date")),
        application_end_date=to_date(raw.get("application_end_date")),
        additional_schedules=normalize_schedules(raw.get("additional_schedules")),
        is_indoors=to_boolean(raw.get("is_indoors")),
        electricity_access=to_boolean(raw.get("electricity_access")),
        booth_size=to_text(raw.get("booth_size")),
        is_schedule_tba=to_boolean(raw.get("is_schedule_tba")),
        application_deadline=to_date(raw.get("application_deadline")),
        vendor_count=to_number(raw.get("vendor_count")),
        admission_fee=to_number(raw.get("admission_fee")),
        admission_fees=normalize_admission_fees(raw.get("admission_fees")),
        website=to_text(raw.get("website")),
        is_trending=to_boolean(raw.get("is_trending")),
        tags=to_string_array(raw.get("tags")),
        categories=to_string_array(raw.get("categories")),
        is_recurring=to_boolean(raw.get("is_recurring")),
        recurring_pattern=to_text(raw.get("recurring_pattern")),
        organizer_name=to_text(raw.get("organizer_name")),
    )

    if parsed.is_schedule_tba:
        parsed.season_start_date = None
        parsed.season_end_date = None
        parsed.start_time = None
        parsed.end_time = None
        parsed.is_recurring = False
        parsed.recurring_pattern = None
        parsed.additional_schedules = []

    return parsed


def _number_field(value: Optional[float]) -> str:
    if value is None:
        return ""
    return str(int(value)) if float(value).is_integer() else str(value)


def build_prefill(parsed: ParsedMarket) -> dict[str, Any]:
    """Admin form values for a parsed market; blanks are empty strings."""
    recurring_pattern = parsed.recurring_pattern or ""
    is_schedule_tba = parsed.is_schedule_tba is True
    is_recurring = not is_schedule_tba and (parsed.is_recurring is True or bool(recurring_pattern))

    prefill: dict[str, Any] = {
        "title": parsed.title or "",
        "description": parsed.description or "",
        "address": parsed.address or "",
        "latitude": parsed.latitude if parsed.latitude is not None else "",
        "longitude": parsed.longitude if parsed.longitude is not None else "",
        "season_start_date": parsed.season_start_date or "",
        "season_end_date": parsed.season_end_date or "",
        "start_time": parsed.start_time or "",
        "end_time": parsed.end_time or "",
        "application_start_date": parsed.application_start_date or "",
        "application_end_date": parsed.application_end_date or "",
        "additional_schedules": [s.model_dump() for s in parsed.additional_schedules],
        "is_indoors": parsed.is_indoors is True,
        "electricity_access": parsed.electricity_access is True,
        "booth_size": parsed.booth_size or "",
        "is_schedule_tba": is_schedule_tba,
        "application_deadline": parsed.application_deadline or "",
        "vendor_count": _number_field(parsed.vendor_count),
        "admission_fee": _number_field(parsed.admission_fee),
        "website": parsed.website or "",
        "is_trending": parsed.is_trending is True,
        "tags": list(parsed.tags),
        "categories": list(parsed.categories),
        "is_recurring": is_recurring,
        "recurring_pattern": recurring_pattern or None,
        "organizer_name": parsed.organizer_name or "",
    }

    if parsed.admission_fees:
        prefill["admission_fees"] = [
            {"label": fee.label, "price": _number_field(fee.price)}
            for fee in parsed.admission_fees
        ]

    return prefill


def get_llm_model():
    """Get the configured chat model."""
    provider = settings.llm_provider
    model_name = settings.llm_model

    if provider == "openai":
        api_key = settings.openai_api_key
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY not set")
        return ChatOpenAI(model=model_name, api_key=api_key, temperature=0)
    if provider == "anthropic":
        api_key = settings.anthropic_api_key
        if not api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY not set")
        return ChatAnthropic(model=model_name, api_key=api_key, temperature=0)
    raise ConfigurationError(f"Unsupported LLM provider: {provider}")


def build_import_messages(
    text: str,
    source_url: Optional[str] = None,
    screenshot_data_url: Optional[str] = None,
) -> list:
    content: list[dict[str, Any]] = [
        {
            "type": "text",
            "text": f"Source URL: {source_url or 'N/A'}\n\nRaw Text:\n{text or '(none)'}",
        }
    ]
    if screenshot_data_url:
        content.append({"type": "image_url", "image_url": {"url": screenshot_data_url}})
    return [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=content)]


def parse_model_json(content: Any) -> dict:
    """Pull the JSON object out of a model reply."""
    if isinstance(content, list):
        content = "".join(
            part.get("text", "") if isinstance(part, dict) else str(part)
            for part in content
        )
    if not isinstance(content, str) or not content.strip():
        raise MarketImportError("No content returned from model.")

    start_idx = content.find("{")
    end_idx = content.rfind("}") + 1
    if start_idx < 0 or end_idx <= start_idx:
        raise MarketImportError("No JSON found in model response.")
    try:
        parsed = json.loads(content[start_idx:end_idx])
    except json.JSONDecodeError as e:
        raise MarketImportError(f"Failed to parse model response: {e}")
    if not isinstance(parsed, dict):
        raise MarketImportError("Model response is not a JSON object.")
    return parsed


async def extract_market_details(
    text: Optional[str],
    source_url: Optional[str] = None,
    screenshot_data_url: Optional[str] = None,
    screenshot_size: int = 0,
) -> ParsedMarket:
    """Extract a market draft from pasted text and/or a screenshot data URL.

    Raises MarketImportError (status 400 for missing input, 413 for an
    oversized screenshot, 500 for model failures).
    """
    correlation_id = get_correlation_id()
    text = text or ""

    if not text.strip() and not screenshot_data_url:
        raise MarketImportError("Text or screenshot required.", status_code=400)

    if screenshot_size > settings.market_import_max_screenshot_bytes:
        raise MarketImportError("Screenshot is too large.", status_code=413)

    logger.info(
        "Market import started",
        correlation_id=correlation_id,
        source_url=source_url,
        text_length=len(text),
        text_preview=sanitize_text_preview(text, max_length=100),
        has_screenshot=bool(screenshot_data_url),
    )

    model = get_llm_model()
    messages = build_import_messages(text, source_url, screenshot_data_url)

    try:
        with log_timing("market_import_llm", logger=logger, llm_model=settings.llm_model):
            response = await model.ainvoke(messages)
    except Exception as e:
        logger.error(
            "Market import model call failed",
            correlation_id=correlation_id,
            error=str(e),
            exc_info=True,
        )
        raise MarketImportError(f"Failed to parse market data: {e}") from e

    raw = parse_model_json(getattr(response, "content", response))
    parsed = normalize_market_payload(raw)

    logger.info(
        "Market import parsed",
        correlation_id=correlation_id,
        has_title=bool(parsed.title),
        has_season=bool(parsed.season_start_date),
        is_schedule_tba=parsed.is_schedule_tba,
        recurring_pattern=parsed.recurring_pattern,
        additional_schedules=len(parsed.additional_schedules),
    )
    return parsed
