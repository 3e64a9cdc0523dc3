"""Terminal rendering and interactive prompts."""

import logging
from collections.abc import Callable, Sequence
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .models import (
    Category,
    CategoryTotal,
    LedgerEntry,
    MonthTotal,
    NetBalance,
    Party,
    SettlementResult,
)
from .money import format_cents
from .reconciler import outstanding_debt

logger = logging.getLogger(__name__)

console = Console()

PartyNamer = Callable[[Party], str]


def format_money(cents: int, use_color: bool = True) -> str:
    """
    Format cents in accounting style with alignment.

    Negative amounts use parentheses: ($85.02)
    Positive amounts have spaces:      $85.02
    """
    formatted = format_cents(abs(cents))
    if cents < 0:
        return f"([red]{formatted}[/red])" if use_color else f"({formatted})"
    return f" [green]{formatted}[/green] " if use_color else f" {formatted} "


def display_entries(entries: Sequence[LedgerEntry], party_name: PartyNamer):
    """Display ledger entries in a table."""
    table = Table(title="Expenses", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", width=10)
    table.add_column("Date", width=10)
    table.add_column("Description", style="cyan", width=32)
    table.add_column("Category", style="yellow")
    table.add_column("Amount", justify="right", width=12)
    table.add_column("Paid by")
    table.add_column("Owed", justify="right")
    table.add_column("Status", justify="center")

    for entry in entries:
        debt = outstanding_debt(entry)
        if entry.settled:
            owed = "[dim]—[/dim]"
            status = f"[green]✓ {entry.settled_at:%Y-%m-%d}[/green]"
        elif debt is None:
            owed = "[dim]—[/dim]"
            status = "[yellow]open[/yellow]"
        else:
            debtor, cents = debt
            owed = f"{party_name(debtor)}: {format_cents(cents)}"
            status = "[yellow]open[/yellow]"

        desc = entry.description
        table.add_row(
            entry.id[:8],
            entry.expense_date.isoformat(),
            escape(desc[:32] + "..." if len(desc) > 32 else desc),
            entry.category.value,
            format_money(entry.amount_cents),
            party_name(entry.paid_by),
            owed,
            status,
        )

    console.print(table)
    console.print(f"  {len(entries)} expense(s)")


def display_balance(balance: NetBalance, party_name: PartyNamer):
    """Display who owes whom."""
    if balance.is_settled:
        console.print("\n[bold green]✓ All settled up![/bold green]\n")
        return

    console.print(
        f"\n[bold]{party_name(balance.owing_party)}[/bold] owes "
        f"[bold]{party_name(balance.owed_party)}[/bold] "
        f"[bold green]{format_cents(balance.amount_cents)}[/bold green]\n"
    )


def display_category_totals(totals: Sequence[CategoryTotal]):
    """Display spending per category."""
    table = Table(title="By Category", show_header=True, header_style="bold magenta")
    table.add_column("Category", style="yellow")
    table.add_column("Total", justify="right", width=14)

    for row in totals:
        table.add_row(row.category.value, format_money(row.total_cents))

    console.print(table)


def display_month_totals(totals: Sequence[MonthTotal]):
    """Display spending per month."""
    table = Table(title="By Month", show_header=True, header_style="bold magenta")
    table.add_column("Month")
    table.add_column("Total", justify="right", width=14)

    for row in totals:
        table.add_row(row.year_month, format_money(row.total_cents))

    console.print(table)


def display_settlement_result(result: SettlementResult):
    """Summarize a batch settlement, including partial completion."""
    console.print(f"\n[bold green]✓ Settled {len(result.settled)} entries[/bold green]")
    if result.skipped:
        console.print(
            f"[yellow]⚠️  Skipped {len(result.skipped)} missing entries: "
            f"{', '.join(result.skipped)}[/yellow]"
        )
    for entry_id, error in result.failed.items():
        console.print(f"[red]✗ {entry_id}: {error}[/red]")


class CategoryCompleter(Completer):
    """Fuzzy search completer for expense categories."""

    def __init__(self, categories: Sequence[Category]):
        """Initialize the completer with available categories."""
        self.categories = list(categories)
        self.by_name = {category.value: category for category in self.categories}

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for category in self.categories:
            if not query or self._fuzzy_match(query, category.value.lower()):
                yield Completion(
                    text=category.value,
                    start_position=-len(document.text),
                    display=category.value,
                )

    def _fuzzy_match(self, query: str, text: str) -> bool:
        """
        Fuzzy match: all characters in query must appear in order in text.

        Example:
            query="gel" matches "Gas & Electric"
        """
        query_idx = 0
        for char in text:
            if query_idx < len(query) and char == query[query_idx]:
                query_idx += 1
        return query_idx == len(query)


def select_category_interactive(default: Category = Category.MISC) -> Category:
    """
    Interactive category selection with fuzzy search.

    Returns:
        The selected category; the default on empty input or Ctrl+C
    """
    completer = CategoryCompleter(list(Category))
    session: PromptSession[str] = PromptSession(completer=completer)

    print("   Type to search, press Enter to confirm, Ctrl+C for the default\n")

    try:
        while True:
            result = session.prompt(
                "Category: ", default=default.value, complete_while_typing=True
            ).strip()

            if not result:
                return default

            category = completer.by_name.get(result)
            if category is None:
                # Accept case-insensitive exact names too
                matches = [c for c in Category if c.value.lower() == result.lower()]
                category = matches[0] if matches else None
            if category is not None:
                logger.info(f"User selected category: {category.value}")
                return category

            print("❌ Invalid category. Please select from the list or press Tab to complete.")

    except (KeyboardInterrupt, EOFError):
        return default


def confirm(prompt: str) -> bool:
    """Simple yes/no confirmation, defaulting to no."""
    response = input(f"{prompt} [y/N] ").strip().lower()
    return response in ("y", "yes")
