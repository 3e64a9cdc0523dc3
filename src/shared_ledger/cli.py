"""CLI for Shared Ledger using Typer."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from enum import Enum

import typer

from .config import Settings, load_settings
from .exceptions import ConfigurationError, SharedLedgerError
from .identity import PartyDirectory, provision_from_display_names
from .models import Category, EntryDraft, LedgerSnapshot, Party, SplitMode
from .notifier import ChangeNotifier, SnapshotFeed
from .query import (
    DateRangePreset,
    EntryFilter,
    SettlementState,
    aggregate_by_category,
    aggregate_by_month,
    filter_entries,
    parse_sort_option,
    preset_range,
    total_cents,
)
from .reconciler import unsettled_ids
from .service import LedgerService
from .store import SupabaseLedgerStore, open_store
from .ui import (
    confirm,
    console,
    display_balance,
    display_category_totals,
    display_entries,
    display_month_totals,
    display_settlement_result,
    format_money,
    select_category_interactive,
)
from .validation import draft_from_entry

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="shared-ledger",
    help="Track shared expenses between two people and who owes whom",
)


class SummaryKind(str, Enum):
    CATEGORY = "category"
    MONTH = "month"


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def _log_snapshot(snapshot: LedgerSnapshot) -> None:
    logger.debug(
        f"Ledger changed: {len(snapshot)} entries, "
        f"{len(unsettled_ids(snapshot))} unsettled"
    )


@contextmanager
def _session(verbose: bool) -> Iterator[tuple[Settings, LedgerService]]:
    """Open settings, store and service; report errors the way every command does."""
    setup_logging(verbose)
    store = None
    try:
        settings = load_settings()
        store = open_store(settings)
        notifier = ChangeNotifier()
        if verbose:
            feed = SnapshotFeed(store.fetch_snapshot, notifier)
            feed.add_listener(_log_snapshot)
        yield settings, LedgerService(
            store, notifier=notifier, allow_settled_edits=settings.allow_settled_edits
        )
    except SharedLedgerError as e:
        # User-correctable: bad input, missing entry, configuration
        console.print(f"\n[bold yellow]⚠️  {e}[/bold yellow]\n")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if store is not None:
            store.close()


def _resolve_id(snapshot: LedgerSnapshot, entry_id: str) -> str:
    """Expand a unique id prefix (as shown in tables) to the full id."""
    if snapshot.get(entry_id) is not None:
        return entry_id
    matches = [full_id for full_id in snapshot.ids() if full_id.startswith(entry_id)]
    if len(matches) == 1:
        return matches[0]
    return entry_id


def _build_filter(
    search: str,
    category: Category | None,
    status: SettlementState,
    start: datetime | None,
    end: datetime | None,
    preset: DateRangePreset,
) -> EntryFilter:
    """Combine filter options; explicit dates override the preset's bounds."""
    preset_start, preset_end = preset_range(preset)
    return EntryFilter(
        search=search,
        category=category,
        settlement=status,
        start=start.date() if start else preset_start,
        end=end.date() if end else preset_end,
    )


# Shared option definitions
_VERBOSE = typer.Option(False, "--verbose", "-v", help="Verbose output")
_SEARCH = typer.Option("", "--search", "-s", help="Text to find in descriptions")
_CATEGORY_FILTER = typer.Option(
    None, "--category", "-c", case_sensitive=False, help="Only this category"
)
_STATUS = typer.Option(
    SettlementState.ANY, "--status", case_sensitive=False, help="Settlement state"
)
_FROM = typer.Option(None, "--from", formats=["%Y-%m-%d"], help="First expense date")
_TO = typer.Option(None, "--to", formats=["%Y-%m-%d"], help="Last expense date")
_PRESET = typer.Option(
    DateRangePreset.ALL, "--preset", case_sensitive=False, help="Date range preset"
)


@app.command()
def add(
    description: str = typer.Argument(..., help="What the expense was for"),
    amount: str = typer.Argument(..., help="Total amount, e.g. 42.50"),
    paid_by: Party = typer.Option(
        ..., "--paid-by", "-p", case_sensitive=False, help="Who paid (a or b)"
    ),
    category: Category | None = typer.Option(
        None, "--category", "-c", case_sensitive=False, help="Expense category"
    ),
    expense_date: datetime | None = typer.Option(
        None, "--date", "-d", formats=["%Y-%m-%d"], help="Expense date (default today)"
    ),
    split: SplitMode = typer.Option(
        SplitMode.EVEN, "--split", case_sensitive=False, help="even or custom"
    ),
    a_share: str | None = typer.Option(None, "--a-share", help="Party A's share (custom)"),
    b_share: str | None = typer.Option(None, "--b-share", help="Party B's share (custom)"),
    by: Party | None = typer.Option(
        None, "--by", case_sensitive=False, help="Who is recording it (default: you)"
    ),
    verbose: bool = _VERBOSE,
):
    """
    Record a shared expense.

    Without --category on an interactive terminal, a fuzzy picker asks for it.
    """
    with _session(verbose) as (settings, service):
        if category is None:
            category = (
                select_category_interactive() if sys.stdin.isatty() else Category.MISC
            )

        if by is None and settings.current_user_id:
            by = PartyDirectory.from_settings(settings).resolve(settings.current_user_id)

        draft = EntryDraft(
            description=description,
            amount=amount,
            paid_by=paid_by,
            created_by=by or paid_by,
            category=category,
            split_mode=split,
            party_a_share=a_share,
            party_b_share=b_share,
            **({"expense_date": expense_date.date()} if expense_date else {}),
        )
        entry_id = service.add_entry(draft)

        console.print(f"\n[bold green]✓ Expense recorded[/bold green] [dim]({entry_id})[/dim]")
        display_balance(service.balance(), settings.party_name)


@app.command()
def edit(
    entry_id: str = typer.Argument(..., help="Entry id (or unique prefix)"),
    description: str | None = typer.Option(None, "--description"),
    amount: str | None = typer.Option(None, "--amount"),
    paid_by: Party | None = typer.Option(None, "--paid-by", "-p", case_sensitive=False),
    category: Category | None = typer.Option(
        None, "--category", "-c", case_sensitive=False
    ),
    expense_date: datetime | None = typer.Option(
        None, "--date", "-d", formats=["%Y-%m-%d"]
    ),
    split: SplitMode | None = typer.Option(None, "--split", case_sensitive=False),
    a_share: str | None = typer.Option(None, "--a-share"),
    b_share: str | None = typer.Option(None, "--b-share"),
    verbose: bool = _VERBOSE,
):
    """Edit an unsettled expense; omitted options keep their current values."""
    with _session(verbose) as (settings, service):
        snapshot = service.snapshot()
        entry_id = _resolve_id(snapshot, entry_id)
        entry = snapshot.get(entry_id)
        if entry is None:
            console.print(f"[yellow]No expense with id {entry_id}.[/yellow]")
            sys.exit(1)

        changes = {
            "description": description,
            "amount": amount,
            "paid_by": paid_by,
            "category": category,
            "expense_date": expense_date.date() if expense_date else None,
            "split_mode": split,
            "party_a_share": a_share,
            "party_b_share": b_share,
        }
        draft = draft_from_entry(entry).model_copy(
            update={key: value for key, value in changes.items() if value is not None}
        )
        service.edit_entry(entry_id, draft)

        console.print(f"\n[bold green]✓ Expense {entry_id[:8]} updated[/bold green]")
        display_balance(service.balance(), settings.party_name)


@app.command()
def delete(
    entry_id: str = typer.Argument(..., help="Entry id (or unique prefix)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = _VERBOSE,
):
    """Delete an expense. This cannot be undone."""
    with _session(verbose) as (_settings, service):
        entry_id = _resolve_id(service.snapshot(), entry_id)
        if not yes and not confirm(f"Delete expense {entry_id[:8]}?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return

        service.delete_entry(entry_id)
        console.print(f"\n[bold green]✓ Expense {entry_id[:8]} deleted[/bold green]")


@app.command()
def settle(
    entry_ids: list[str] | None = typer.Argument(None, help="Entry ids (or prefixes)"),
    all_unsettled: bool = typer.Option(
        False, "--all-unsettled", "-a", help="Settle every unsettled expense"
    ),
    verbose: bool = _VERBOSE,
):
    """Mark expenses as paid back."""
    with _session(verbose) as (settings, service):
        if all_unsettled:
            result = service.settle_all_unsettled()
        elif entry_ids:
            snapshot = service.snapshot()
            result = service.settle_selected(
                [_resolve_id(snapshot, entry_id) for entry_id in entry_ids]
            )
        else:
            console.print("[yellow]Pass entry ids or --all-unsettled.[/yellow]")
            sys.exit(1)

        display_settlement_result(result)
        display_balance(service.balance(), settings.party_name)


@app.command()
def balance(verbose: bool = _VERBOSE):
    """Show who owes whom."""
    with _session(verbose) as (settings, service):
        display_balance(service.balance(), settings.party_name)


@app.command(name="list")
def list_entries(
    search: str = _SEARCH,
    category: Category | None = _CATEGORY_FILTER,
    status: SettlementState = _STATUS,
    start: datetime | None = _FROM,
    end: datetime | None = _TO,
    preset: DateRangePreset = _PRESET,
    sort: str = typer.Option(
        "date-desc", "--sort", help="date|amount|category, then -asc or -desc"
    ),
    verbose: bool = _VERBOSE,
):
    """List expenses with filters and sorting."""
    try:
        sort_option = parse_sort_option(sort)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--sort") from e

    with _session(verbose) as (settings, service):
        criteria = _build_filter(search, category, status, start, end, preset)
        entries = service.view(criteria, sort_option)

        if not entries:
            console.print("[yellow]No expenses found.[/yellow]")
            return

        display_entries(entries, settings.party_name)
        console.print(f"  Total: {format_money(total_cents(entries))}")


@app.command()
def summary(
    by: SummaryKind = typer.Option(
        SummaryKind.CATEGORY, "--by", case_sensitive=False, help="category or month"
    ),
    search: str = _SEARCH,
    category: Category | None = _CATEGORY_FILTER,
    status: SettlementState = _STATUS,
    start: datetime | None = _FROM,
    end: datetime | None = _TO,
    preset: DateRangePreset = _PRESET,
    verbose: bool = _VERBOSE,
):
    """Show spending totals per category or per month."""
    with _session(verbose) as (_settings, service):
        criteria = _build_filter(search, category, status, start, end, preset)
        entries = filter_entries(service.snapshot(), criteria)

        if by is SummaryKind.MONTH:
            display_month_totals(aggregate_by_month(entries))
        else:
            display_category_totals(aggregate_by_category(entries))
        console.print(f"  Total: {format_money(total_cents(entries))}")


@app.command()
def provision(
    marker: str = typer.Option(
        ..., "--marker", "-m", help="Text found only in party A's display name"
    ),
    verbose: bool = _VERBOSE,
):
    """
    Assign parties to the two Supabase accounts, once.

    Prints the PARTY_*_USER_ID settings to add to your .env file.
    """
    with _session(verbose) as (_settings, service):
        if not isinstance(service.store, SupabaseLedgerStore):
            raise ConfigurationError("provision requires STORE_BACKEND=supabase")

        mapping = provision_from_display_names(service.store.fetch_profiles(), marker)

        console.print("\n[bold]Add these lines to your .env file:[/bold]\n")
        for user_id, party in sorted(mapping.items(), key=lambda item: item[1].value):
            console.print(f"  PARTY_{party.value.upper()}_USER_ID={user_id}")
        console.print()


if __name__ == "__main__":
    app()
