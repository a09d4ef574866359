"""Environment-driven application settings."""

import os
from typing import Optional


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    """Application settings read from the environment.

    Values are resolved on access so tests can monkeypatch the environment.
    """

    @property
    def supabase_url(self) -> Optional[str]:
        return os.environ.get("SUPABASE_URL")

    @property
    def supabase_key(self) -> Optional[str]:
        return os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

    @property
    def opportunities_table(self) -> str:
        return os.environ.get("OPPORTUNITIES_TABLE", "sales_opportunities")

    @property
    def opportunities_page_size(self) -> int:
        return max(1, _int_env("OPPORTUNITIES_PAGE_SIZE", 200))

    @property
    def monthly_lookahead_months(self) -> int:
        return max(1, _int_env("MONTHLY_LOOKAHEAD_MONTHS", 12))

    @property
    def llm_provider(self) -> str:
        return os.environ.get("LLM_PROVIDER", "openai").lower()

    @property
    def llm_model(self) -> str:
        return os.environ.get("LLM_MODEL", "gpt-4o-mini")

    @property
    def openai_api_key(self) -> Optional[str]:
        return os.environ.get("OPENAI_API_KEY")

    @property
    def anthropic_api_key(self) -> Optional[str]:
        return os.environ.get("ANTHROPIC_API_KEY")

    @property
    def market_import_max_screenshot_bytes(self) -> int:
        return _int_env("MARKET_IMPORT_MAX_SCREENSHOT_BYTES", 6_000_000)


settings = Settings()
