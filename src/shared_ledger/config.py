"""Configuration management for Shared Ledger."""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .models import Party


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Ledger store
    store_backend: Literal["sqlite", "supabase"] = "sqlite"
    database_path: Path = Path.home() / ".shared_ledger" / "shared_ledger.db"

    # Supabase (PostgREST) store
    supabase_url: str | None = None
    supabase_api_key: str | None = None
    supabase_table: str = "expenses"
    supabase_profiles_table: str = "profiles"
    # Share columns; party A is the profile matched by the provisioning marker
    supabase_party_a_owes_column: str = "steph_owes_cents"
    supabase_party_b_owes_column: str = "sam_owes_cents"
    store_timeout: float = 30.0  # seconds per request
    store_retries: int = 2  # connection retries, handled by the transport

    # Parties
    party_a_name: str = "Party A"
    party_b_name: str = "Party B"
    party_a_user_id: str | None = None
    party_b_user_id: str | None = None
    fallback_party: Party = Party.B  # for user ids missing from the directory
    current_user_id: str | None = None  # who is running the CLI

    # Policy
    allow_settled_edits: bool = False

    def __init__(self, **kwargs):
        """Initialize settings and create the database directory if needed."""
        super().__init__(**kwargs)
        if self.store_backend == "sqlite":
            self.database_path.parent.mkdir(parents=True, exist_ok=True)

    def party_name(self, party: Party) -> str:
        """Get the display name for a party."""
        return self.party_a_name if party is Party.A else self.party_b_name


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check your environment and .env file.\n"
            f"Error: {e}"
        ) from e
