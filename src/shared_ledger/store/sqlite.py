"""SQLite ledger store."""

import logging
import sqlite3
import uuid
from datetime import UTC, date, datetime
from pathlib import Path

from ..exceptions import EntryNotFoundError, LedgerStoreError
from ..models import EntryPatch, LedgerEntry, LedgerSnapshot, NewLedgerEntry
from .base import LedgerStore

logger = logging.getLogger(__name__)

_SELECT_ENTRIES = """
    SELECT id, created_by, paid_by, description, amount_cents, expense_date,
           created_at, category, split_mode, party_a_owes_cents,
           party_b_owes_cents, settled, settled_at
    FROM ledger_entries
"""


class SqliteLedgerStore(LedgerStore):
    """Ledger store backed by a local SQLite database."""

    def __init__(self, db_path: Path | str):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS ledger_entries (
                id TEXT PRIMARY KEY,
                created_by TEXT NOT NULL,
                paid_by TEXT NOT NULL,
                description TEXT NOT NULL,
                amount_cents INTEGER NOT NULL CHECK (amount_cents > 0),
                expense_date DATE NOT NULL,
                created_at TIMESTAMP NOT NULL,
                category TEXT NOT NULL,
                split_mode TEXT NOT NULL,
                party_a_owes_cents INTEGER NOT NULL CHECK (party_a_owes_cents >= 0),
                party_b_owes_cents INTEGER NOT NULL CHECK (party_b_owes_cents >= 0),
                settled INTEGER NOT NULL DEFAULT 0,
                settled_at TIMESTAMP
            )
        """
        )

        cursor.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_ledger_entries_order
            ON ledger_entries (expense_date DESC, created_at DESC)
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Reads
    # ========================================================================

    def fetch_snapshot(self) -> LedgerSnapshot:
        """Fetch every entry, newest expense first."""
        try:
            cursor = self.conn.cursor()
            cursor.execute(
                _SELECT_ENTRIES
                + " ORDER BY expense_date DESC, created_at DESC, rowid DESC"
            )
            rows = cursor.fetchall()
        except sqlite3.Error as e:
            raise LedgerStoreError(f"Failed to read ledger entries: {e}") from e

        return LedgerSnapshot(entries=tuple(_row_to_entry(row) for row in rows))

    # ========================================================================
    # Writes
    # ========================================================================

    def insert(self, entry: NewLedgerEntry) -> str:
        """Insert an entry and return its new id."""
        entry_id = uuid.uuid4().hex
        data = entry.model_dump(mode="json")

        try:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                INSERT INTO ledger_entries (
                    id, created_by, paid_by, description, amount_cents,
                    expense_date, created_at, category, split_mode,
                    party_a_owes_cents, party_b_owes_cents, settled, settled_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, NULL)
                """,
                (
                    entry_id,
                    data["created_by"],
                    data["paid_by"],
                    data["description"],
                    data["amount_cents"],
                    data["expense_date"],
                    datetime.now(UTC).isoformat(timespec="microseconds"),
                    data["category"],
                    data["split_mode"],
                    data["party_a_owes_cents"],
                    data["party_b_owes_cents"],
                ),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise LedgerStoreError(f"Failed to insert entry: {e}") from e

        logger.info(f"Inserted entry {entry_id}: {entry.description}")
        return entry_id

    def update(self, entry_id: str, patch: EntryPatch) -> None:
        """Apply a patch to an entry."""
        changes = patch.changes()
        if not changes:
            if not self._exists(entry_id):
                raise EntryNotFoundError(entry_id)
            return

        if "settled" in changes:
            changes["settled"] = int(changes["settled"])

        # Column names come from EntryPatch fields, never from user input
        assignments = ", ".join(f"{column} = ?" for column in changes)
        try:
            cursor = self.conn.cursor()
            cursor.execute(
                f"UPDATE ledger_entries SET {assignments} WHERE id = ?",
                (*changes.values(), entry_id),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise LedgerStoreError(f"Failed to update entry {entry_id}: {e}") from e

        if cursor.rowcount == 0:
            raise EntryNotFoundError(entry_id)

        logger.info(f"Updated entry {entry_id}: {', '.join(changes)}")

    def delete(self, entry_id: str) -> None:
        """Delete an entry if it exists."""
        try:
            cursor = self.conn.cursor()
            cursor.execute("DELETE FROM ledger_entries WHERE id = ?", (entry_id,))
            self.conn.commit()
        except sqlite3.Error as e:
            raise LedgerStoreError(f"Failed to delete entry {entry_id}: {e}") from e

        if cursor.rowcount:
            logger.info(f"Deleted entry {entry_id}")

    def _exists(self, entry_id: str) -> bool:
        cursor = self.conn.cursor()
        cursor.execute("SELECT 1 FROM ledger_entries WHERE id = ?", (entry_id,))
        return cursor.fetchone() is not None


def _row_to_entry(row: sqlite3.Row) -> LedgerEntry:
    """Convert a database row into a ledger entry."""
    return LedgerEntry(
        id=row["id"],
        created_by=row["created_by"],
        paid_by=row["paid_by"],
        description=row["description"],
        amount_cents=row["amount_cents"],
        expense_date=date.fromisoformat(row["expense_date"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        category=row["category"],
        split_mode=row["split_mode"],
        party_a_owes_cents=row["party_a_owes_cents"],
        party_b_owes_cents=row["party_b_owes_cents"],
        settled=bool(row["settled"]),
        settled_at=(
            datetime.fromisoformat(row["settled_at"]) if row["settled_at"] else None
        ),
    )
