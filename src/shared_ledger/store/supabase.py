"""Supabase (PostgREST) ledger store."""

import logging
from datetime import date, datetime
from typing import Any

import httpx

from ..exceptions import EntryNotFoundError, LedgerStoreError
from ..identity import PartyDirectory
from ..models import (
    EntryPatch,
    LedgerEntry,
    LedgerSnapshot,
    NewLedgerEntry,
    Party,
    SplitMode,
)
from .base import LedgerStore

logger = logging.getLogger(__name__)

# Columns holding external user ids rather than parties
_USER_COLUMNS = ("created_by", "paid_by")

# split_type values used by the expenses table
_SPLIT_TYPES = {SplitMode.EVEN: "50/50", SplitMode.CUSTOM: "custom"}
_SPLIT_MODES = {value: mode for mode, value in _SPLIT_TYPES.items()}

# Entry field -> expenses table column, where the names differ
DEFAULT_COLUMNS = {
    "split_mode": "split_type",
    "party_a_owes_cents": "steph_owes_cents",
    "party_b_owes_cents": "sam_owes_cents",
    "settled": "reimbursed",
    "settled_at": "reimbursed_date",
}


class SupabaseLedgerStore(LedgerStore):
    """Ledger store backed by a Supabase table, through its PostgREST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        directory: PartyDirectory,
        table: str = "expenses",
        profiles_table: str = "profiles",
        timeout: float = 30.0,
        retries: int = 2,
        party_a_owes_column: str = "steph_owes_cents",
        party_b_owes_column: str = "sam_owes_cents",
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the Supabase store.

        Args:
            base_url: Project URL, e.g. https://xyz.supabase.co
            api_key: Supabase API key (anon or service role)
            directory: Maps the table's user id columns to parties
            table: Expenses table name
            profiles_table: Profiles table name (id, display_name)
            timeout: Per-request timeout in seconds
            retries: Connection retries performed by the transport
            party_a_owes_column: Column holding party A's share
            party_b_owes_column: Column holding party B's share
            transport: Optional transport override (used by tests)
        """
        self.directory = directory
        self.table = table
        self.profiles_table = profiles_table
        self.columns = dict(
            DEFAULT_COLUMNS,
            party_a_owes_cents=party_a_owes_column,
            party_b_owes_cents=party_b_owes_column,
        )
        self.client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport or httpx.HTTPTransport(retries=retries),
        )

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a request, translating HTTP failures into LedgerStoreError."""
        try:
            response = self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise LedgerStoreError(
                f"Supabase {method} {path} failed with "
                f"{e.response.status_code}: {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise LedgerStoreError(f"Supabase {method} {path} failed: {e}") from e
        return response

    # ========================================================================
    # Ledger store operations
    # ========================================================================

    def fetch_snapshot(self) -> LedgerSnapshot:
        """Fetch every entry, newest expense first."""
        response = self._request(
            "GET",
            f"/{self.table}",
            params={"select": "*", "order": "expense_date.desc,created_at.desc"},
        )
        return LedgerSnapshot(
            entries=tuple(self._row_to_entry(row) for row in response.json())
        )

    def insert(self, entry: NewLedgerEntry) -> str:
        """Insert an entry and return the id Supabase assigned."""
        row = self._to_row(
            {**entry.model_dump(mode="json"), "settled": False, "settled_at": None}
        )

        response = self._request(
            "POST",
            f"/{self.table}",
            json=row,
            headers={"Prefer": "return=representation"},
        )
        try:
            entry_id = str(response.json()[0]["id"])
        except (IndexError, KeyError, TypeError, ValueError) as e:
            raise LedgerStoreError(
                f"Supabase insert into {self.table} returned no id: {response.text}"
            ) from e

        logger.info(f"Inserted entry {entry_id}: {entry.description}")
        return entry_id

    def update(self, entry_id: str, patch: EntryPatch) -> None:
        """Apply a patch to an entry."""
        response = self._request(
            "PATCH",
            f"/{self.table}",
            params={"id": f"eq.{entry_id}"},
            json=self._to_row(patch.changes()),
            headers={"Prefer": "return=representation"},
        )

        # PostgREST answers an unmatched filter with an empty list
        if not response.json():
            raise EntryNotFoundError(entry_id)

        logger.info(f"Updated entry {entry_id}")

    def delete(self, entry_id: str) -> None:
        """Delete an entry if it exists."""
        self._request("DELETE", f"/{self.table}", params={"id": f"eq.{entry_id}"})
        logger.info(f"Deleted entry {entry_id}")

    def fetch_profiles(self) -> list[tuple[str, str]]:
        """
        Fetch user profiles for party provisioning.

        Returns:
            List of (user_id, display_name); falls back to the email when a
            profile has no display name
        """
        response = self._request(
            "GET",
            f"/{self.profiles_table}",
            params={"select": "id,email,display_name"},
        )
        return [
            (str(row["id"]), row.get("display_name") or row.get("email") or "")
            for row in response.json()
        ]

    # ========================================================================
    # Row mapping
    # ========================================================================

    def _to_row(self, data: dict[str, Any]) -> dict[str, Any]:
        """Translate entry fields into the table's column names and values."""
        row = {}
        for name, value in data.items():
            if name in _USER_COLUMNS and value is not None:
                value = self.directory.user_id_for(Party(value))
            elif name == "split_mode" and value is not None:
                value = _SPLIT_TYPES[SplitMode(value)]
            row[self.columns.get(name, name)] = value
        return row

    def _row_to_entry(self, row: dict[str, Any]) -> LedgerEntry:
        """
        Convert a table row into a ledger entry.

        Raises:
            LedgerStoreError: If the row is missing columns or holds values
                that don't form a valid entry
        """
        column = self.columns
        try:
            settled_at = row.get(column["settled_at"])
            return LedgerEntry(
                id=str(row["id"]),
                created_by=self.directory.resolve(row.get("created_by")),
                paid_by=self.directory.resolve(row.get("paid_by")),
                description=row["description"],
                amount_cents=row["amount_cents"],
                expense_date=date.fromisoformat(row["expense_date"]),
                created_at=datetime.fromisoformat(row["created_at"]),
                category=row["category"],
                split_mode=_SPLIT_MODES[row[column["split_mode"]]],
                party_a_owes_cents=row[column["party_a_owes_cents"]],
                party_b_owes_cents=row[column["party_b_owes_cents"]],
                settled=bool(row.get(column["settled"])),
                settled_at=datetime.fromisoformat(settled_at) if settled_at else None,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerStoreError(
                f"Unexpected row in {self.table} (id {row.get('id')!r}): {e!r}"
            ) from e
