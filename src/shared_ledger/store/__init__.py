"""Ledger store adapters."""

from ..config import Settings
from ..exceptions import ConfigurationError
from ..identity import PartyDirectory
from .base import LedgerStore
from .sqlite import SqliteLedgerStore
from .supabase import SupabaseLedgerStore


def open_store(settings: Settings, directory: PartyDirectory | None = None) -> LedgerStore:
    """
    Open the ledger store selected in settings.

    Args:
        settings: Application settings
        directory: Party directory (built from settings if omitted)

    Returns:
        An open ledger store; close it when done

    Raises:
        ConfigurationError: If the Supabase backend is missing its URL or key
    """
    if settings.store_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_api_key:
            raise ConfigurationError(
                "SUPABASE_URL and SUPABASE_API_KEY are required for the supabase backend"
            )
        return SupabaseLedgerStore(
            base_url=settings.supabase_url,
            api_key=settings.supabase_api_key,
            directory=directory or PartyDirectory.from_settings(settings),
            table=settings.supabase_table,
            profiles_table=settings.supabase_profiles_table,
            timeout=settings.store_timeout,
            retries=settings.store_retries,
            party_a_owes_column=settings.supabase_party_a_owes_column,
            party_b_owes_column=settings.supabase_party_b_owes_column,
        )

    return SqliteLedgerStore(settings.database_path)


__all__ = ["LedgerStore", "SqliteLedgerStore", "SupabaseLedgerStore", "open_store"]
