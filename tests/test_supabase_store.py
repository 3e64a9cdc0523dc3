"""Tests for the Supabase ledger store, against a mocked PostgREST API."""

import json
from datetime import UTC, date, datetime

import httpx
import pytest

from shared_ledger.exceptions import EntryNotFoundError, LedgerStoreError
from shared_ledger.identity import PartyDirectory
from shared_ledger.models import (
    Category,
    EntryPatch,
    NewLedgerEntry,
    Party,
    SplitMode,
)
from shared_ledger.store import SupabaseLedgerStore

ENTRY_ID = "7d9c0a52-3f0e-4c1b-9a51-2f6f1c0f8e11"

ROW = {
    "id": ENTRY_ID,
    "created_by": "uid-alex",
    "paid_by": "uid-sam",
    "description": "Internet",
    "amount_cents": 6000,
    "expense_date": "2026-02-01",
    "created_at": "2026-02-01T18:04:11.123456+00:00",
    "category": "WiFi",
    "split_type": "50/50",
    "steph_owes_cents": 3000,
    "sam_owes_cents": 3000,
    "reimbursed": False,
    "reimbursed_date": None,
}


@pytest.fixture
def directory():
    return PartyDirectory({"uid-alex": Party.A, "uid-sam": Party.B})


@pytest.fixture
def requests():
    """Requests seen by the mock transport."""
    return []


def make_store(directory, requests, handler, **kwargs):
    def recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    return SupabaseLedgerStore(
        base_url="https://example.supabase.co/",
        api_key="test-key",
        directory=directory,
        transport=httpx.MockTransport(recording_handler),
        **kwargs,
    )


class TestFetchSnapshot:
    def test_rows_become_entries(self, directory, requests):
        store = make_store(directory, requests, lambda r: httpx.Response(200, json=[ROW]))

        snapshot = store.fetch_snapshot()

        entry = snapshot.get(ENTRY_ID)
        assert entry.created_by is Party.A
        assert entry.paid_by is Party.B
        assert entry.category is Category.WIFI
        assert entry.expense_date == date(2026, 2, 1)

        request = requests[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/expenses"
        assert request.url.params["order"] == "expense_date.desc,created_at.desc"
        assert request.headers["apikey"] == "test-key"
        assert request.headers["authorization"] == "Bearer test-key"

    def test_unknown_user_uses_fallback_party(self, directory, requests):
        row = dict(ROW, paid_by="uid-someone-else")
        store = make_store(directory, requests, lambda r: httpx.Response(200, json=[row]))

        assert store.fetch_snapshot().get(ENTRY_ID).paid_by is Party.B

    def test_settled_row(self, directory, requests):
        row = dict(ROW, reimbursed=True, reimbursed_date="2026-02-10T08:00:00+00:00")
        store = make_store(directory, requests, lambda r: httpx.Response(200, json=[row]))

        entry = store.fetch_snapshot().get(ENTRY_ID)
        assert entry.settled
        assert entry.settled_at.day == 10

    def test_custom_split_row(self, directory, requests):
        row = dict(ROW, split_type="custom", steph_owes_cents=4000, sam_owes_cents=2000)
        store = make_store(directory, requests, lambda r: httpx.Response(200, json=[row]))

        entry = store.fetch_snapshot().get(ENTRY_ID)

        assert entry.split_mode is SplitMode.CUSTOM
        assert (entry.party_a_owes_cents, entry.party_b_owes_cents) == (4000, 2000)

    def test_share_columns_are_configurable(self, directory, requests):
        row = dict(ROW, steph_owes_cents=2000, sam_owes_cents=4000)
        store = make_store(
            directory,
            requests,
            lambda r: httpx.Response(200, json=[row]),
            party_a_owes_column="sam_owes_cents",
            party_b_owes_column="steph_owes_cents",
        )

        entry = store.fetch_snapshot().get(ENTRY_ID)

        assert (entry.party_a_owes_cents, entry.party_b_owes_cents) == (4000, 2000)

    @pytest.mark.parametrize(
        "row",
        [
            {key: value for key, value in ROW.items() if key != "split_type"},
            dict(ROW, split_type="thirds"),
            dict(ROW, expense_date="not a date"),
            dict(ROW, reimbursed=True, reimbursed_date=None),
        ],
        ids=["missing-column", "unknown-split-type", "bad-date", "reimbursed-without-date"],
    )
    def test_malformed_row_is_a_store_error(self, directory, requests, row):
        store = make_store(directory, requests, lambda r: httpx.Response(200, json=[row]))

        with pytest.raises(LedgerStoreError, match="Unexpected row"):
            store.fetch_snapshot()

    def test_http_error(self, directory, requests):
        store = make_store(
            directory, requests, lambda r: httpx.Response(401, text="JWT expired")
        )

        with pytest.raises(LedgerStoreError, match="401"):
            store.fetch_snapshot()

    def test_network_error(self, directory, requests):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        store = make_store(directory, requests, handler)

        with pytest.raises(LedgerStoreError, match="connection refused"):
            store.fetch_snapshot()


class TestWrites:
    def test_insert_maps_parties_to_user_ids(self, directory, requests):
        store = make_store(directory, requests, lambda r: httpx.Response(201, json=[ROW]))
        entry = NewLedgerEntry(
            created_by=Party.A,
            paid_by=Party.B,
            description="Internet",
            amount_cents=6000,
            expense_date=date(2026, 2, 1),
            category=Category.WIFI,
            split_mode=SplitMode.EVEN,
            party_a_owes_cents=3000,
            party_b_owes_cents=3000,
        )

        entry_id = store.insert(entry)

        assert entry_id == ENTRY_ID
        request = requests[0]
        body = json.loads(request.content)
        assert request.method == "POST"
        assert request.headers["prefer"] == "return=representation"
        assert body["created_by"] == "uid-alex"
        assert body["paid_by"] == "uid-sam"
        assert body["category"] == "WiFi"
        assert body["expense_date"] == "2026-02-01"
        assert body["split_type"] == "50/50"
        assert body["steph_owes_cents"] == 3000
        assert body["sam_owes_cents"] == 3000
        assert body["reimbursed"] is False
        assert body["reimbursed_date"] is None
        assert "split_mode" not in body
        assert "settled" not in body

    def test_update_sends_only_changes(self, directory, requests):
        store = make_store(directory, requests, lambda r: httpx.Response(200, json=[ROW]))

        store.update(ENTRY_ID, EntryPatch(paid_by=Party.A, description="Fiber"))

        request = requests[0]
        assert request.method == "PATCH"
        assert request.url.params["id"] == f"eq.{ENTRY_ID}"
        assert json.loads(request.content) == {
            "paid_by": "uid-alex",
            "description": "Fiber",
        }

    def test_settlement_patch_uses_reimbursed_columns(self, directory, requests):
        store = make_store(directory, requests, lambda r: httpx.Response(200, json=[ROW]))
        settled_at = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)

        store.update(ENTRY_ID, EntryPatch(settled=True, settled_at=settled_at))

        body = json.loads(requests[0].content)
        assert body["reimbursed"] is True
        assert datetime.fromisoformat(body["reimbursed_date"]) == settled_at
        assert set(body) == {"reimbursed", "reimbursed_date"}

    def test_edit_patch_maps_split_columns(self, directory, requests):
        store = make_store(directory, requests, lambda r: httpx.Response(200, json=[ROW]))

        store.update(
            ENTRY_ID,
            EntryPatch(
                split_mode=SplitMode.CUSTOM,
                party_a_owes_cents=1000,
                party_b_owes_cents=5000,
            ),
        )

        assert json.loads(requests[0].content) == {
            "split_type": "custom",
            "steph_owes_cents": 1000,
            "sam_owes_cents": 5000,
        }

    def test_insert_without_id_in_response(self, directory, requests):
        store = make_store(directory, requests, lambda r: httpx.Response(201, json=[]))
        entry = NewLedgerEntry(
            created_by=Party.A,
            paid_by=Party.A,
            description="Rent",
            amount_cents=100,
            expense_date=date(2026, 2, 1),
            category=Category.HOUSEHOLD,
            split_mode=SplitMode.EVEN,
            party_a_owes_cents=50,
            party_b_owes_cents=50,
        )

        with pytest.raises(LedgerStoreError, match="returned no id"):
            store.insert(entry)

    def test_update_missing_entry(self, directory, requests):
        store = make_store(directory, requests, lambda r: httpx.Response(200, json=[]))

        with pytest.raises(EntryNotFoundError):
            store.update("404", EntryPatch(description="x"))

    def test_delete(self, directory, requests):
        store = make_store(directory, requests, lambda r: httpx.Response(204))

        store.delete(ENTRY_ID)

        assert requests[0].method == "DELETE"
        assert requests[0].url.params["id"] == f"eq.{ENTRY_ID}"


class TestFetchProfiles:
    def test_display_name_or_email(self, directory, requests):
        profiles = [
            {"id": "uid-alex", "email": "alex@example.com", "display_name": "Alex"},
            {"id": "uid-sam", "email": "sam@example.com", "display_name": None},
        ]
        store = make_store(
            directory, requests, lambda r: httpx.Response(200, json=profiles)
        )

        assert store.fetch_profiles() == [
            ("uid-alex", "Alex"),
            ("uid-sam", "sam@example.com"),
        ]
        assert requests[0].url.path == "/rest/v1/profiles"
