"""CLI for inspecting ledger snapshots."""

import logging
import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .balances import (
    calculate_balances,
    calculate_net_worth,
    calculate_total_payables,
    calculate_total_receivables,
    check_data_consistency,
)
from .config import load_settings
from .exceptions import LedgerError
from .precision import format_currency
from .recurrence import process_recurring_transactions
from .settlement import calculate_trip_debts, describe_plan
from .snapshot import load_snapshot, save_snapshot

app = typer.Typer(
    name="ledger",
    help="Derive balances, settlements and recurring entries from a ledger snapshot",
)

console = Console()

DATE_FORMATS = ["%Y-%m-%d"]


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def format_money(amount: Decimal, currency: str, use_color: bool = True) -> str:
    """Format money for tables: red when negative, green otherwise."""
    formatted = format_currency(amount, currency)
    if not use_color:
        return formatted
    color = "red" if amount < 0 else "green"
    return f"[{color}]{formatted}[/{color}]"


def _fail(e: Exception, verbose: bool):
    console.print(f"\n[bold red]Error:[/bold red] {e}")
    if verbose:
        raise e
    sys.exit(1)


@app.command()
def balances(
    snapshot_path: Path = typer.Argument(..., help="Ledger snapshot (JSON)"),
    as_of: datetime | None = typer.Option(
        None, "--as-of", formats=DATE_FORMATS, help="Show balances as of this day"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Show derived account balances.

    Use --as-of to reconstruct balances at the end of a past day.
    """
    setup_logging(verbose)

    try:
        settings = load_settings()
        snapshot = load_snapshot(snapshot_path)
        cutoff = as_of.date() if as_of else None

        accounts = calculate_balances(
            snapshot.accounts, snapshot.transactions, cutoff_date=cutoff
        )
    except LedgerError as e:
        _fail(e, verbose)

    title = f"Balances as of {cutoff}" if cutoff else "Current Balances"
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Account", style="cyan")
    table.add_column("Currency", style="dim", width=8)
    table.add_column("Balance", justify="right")

    for account in accounts:
        table.add_row(
            account.name or account.id,
            account.currency,
            format_money(account.balance, account.currency),
        )

    console.print(table)

    base = settings.base_currency
    receivables = calculate_total_receivables(snapshot.transactions, base)
    payables = calculate_total_payables(snapshot.transactions, base)
    net_worth = calculate_net_worth(accounts, snapshot.transactions, base)

    console.print()
    console.print("[bold]Summary:[/bold]")
    console.print(f"  Receivables: {format_money(receivables, base)}")
    console.print(f"  Payables:    {format_money(payables, base)}")
    console.print(f"  Net worth:   {format_money(net_worth, base)}")


@app.command()
def settle(
    snapshot_path: Path = typer.Argument(..., help="Ledger snapshot (JSON)"),
    trip: str | None = typer.Option(
        None, "--trip", "-t", help="Only consider expenses of this trip"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show the payments that settle shared expenses."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        snapshot = load_snapshot(snapshot_path)
    except LedgerError as e:
        _fail(e, verbose)

    transactions = snapshot.transactions
    if trip:
        transactions = [t for t in transactions if t.trip_id == trip]

    plan = calculate_trip_debts(
        transactions,
        snapshot.participants,
        owner_name=settings.owner_name,
        currency=settings.base_currency,
    )

    if plan.is_settled:
        console.print(f"\n[green]✓ {describe_plan(plan)[0]}[/green]")
        return

    console.print("\n[bold]Settlement:[/bold]")
    for line in describe_plan(plan):
        console.print(f"  • {line}")


@app.command()
def recur(
    snapshot_path: Path = typer.Argument(..., help="Ledger snapshot (JSON)"),
    today: datetime | None = typer.Option(
        None, "--today", formats=DATE_FORMATS, help="Reference date (default: today)"
    ),
    write: bool = typer.Option(
        False, "--write", "-w", help="Fold generated entries back into the snapshot"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Generate overdue occurrences of recurring transactions.

    Dry-run by default; use --write to append the new entries and update
    the templates' last generated marker in the snapshot file.
    """
    setup_logging(verbose)

    try:
        settings = load_settings()
        snapshot = load_snapshot(snapshot_path)
    except LedgerError as e:
        _fail(e, verbose)

    result = process_recurring_transactions(
        snapshot.transactions,
        today=today.date() if today else None,
        max_periods=settings.max_catchup_periods,
    )

    if not result.new_transactions:
        console.print("\n[green]✓ Recurring transactions are up to date.[/green]")
        return

    table = Table(
        title="Generated Transactions", show_header=True, header_style="bold magenta"
    )
    table.add_column("Date", style="dim", width=10)
    table.add_column("Description", style="cyan")
    table.add_column("Type", width=8)
    table.add_column("Amount", justify="right")

    for t in result.new_transactions:
        currency = t.currency or settings.base_currency
        table.add_row(
            str(t.date), t.description, t.type.value, format_money(t.amount, currency)
        )

    console.print(table)

    if not write:
        console.print("\n[dim]Dry run. Use --write to save these entries.[/dim]")
        return

    updated = {t.id: t for t in result.updated_templates}
    snapshot.transactions = [
        updated.get(t.id, t) if t.id is not None else t for t in snapshot.transactions
    ] + result.new_transactions
    save_snapshot(snapshot, snapshot_path)

    console.print(
        f"\n[bold green]✓ Saved {len(result.new_transactions)} new "
        f"transaction(s) to {snapshot_path}[/bold green]"
    )


@app.command()
def check(
    snapshot_path: Path = typer.Argument(..., help="Ledger snapshot (JSON)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Report data consistency issues in a snapshot."""
    setup_logging(verbose)

    try:
        snapshot = load_snapshot(snapshot_path)
    except LedgerError as e:
        _fail(e, verbose)

    issues = check_data_consistency(snapshot.accounts, snapshot.transactions)

    if not issues:
        console.print("\n[green]✓ No consistency issues found.[/green]")
        return

    console.print(f"\n[bold yellow]Found {len(issues)} issue(s):[/bold yellow]")
    for issue in issues:
        console.print(f"  ⚠️  {issue}")
    sys.exit(1)


if __name__ == "__main__":
    app()
