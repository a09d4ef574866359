"""Error handling utilities."""


class TenbytenError(Exception):
    """Base exception for the Tenbyten backend."""
    pass


class ConfigurationError(TenbytenError):
    """Required configuration is missing or invalid."""
    pass


class MarketImportError(TenbytenError):
    """Market import parsing error."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class SupabaseError(TenbytenError):
    """Supabase operation error."""
    pass
