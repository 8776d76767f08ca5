"""CLI for FairShare using Typer."""

import logging
import sys
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path

import typer
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .clients.exchange_rates import ExchangeRateClient
from .config import Settings, load_settings
from .exceptions import (
    FairShareError,
    ValidationError,
    ValidationErrorCode,
)
from .exchange import ExchangeRateCache
from .models import Ledger, Settlement, SimplificationStep
from .money import format_currency, from_scaled, to_scaled
from .service import SettlementService
from .splits import EqualSplit, ExactSplit, PercentageSplit, split_amount
from .validation import assert_non_negative_number, assert_percentages

app = typer.Typer(
    name="fairshare",
    help="Compute balances and settle-up transfers for shared expenses",
)

console = Console()


def setup_logging(settings: Settings, verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else settings.log_level.upper()
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Network requests are too noisy at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def load_ledger(path: Path) -> Ledger:
    """Read a ledger JSON document."""
    return Ledger.model_validate_json(path.read_text(encoding="utf-8"))


def _parse_amount(raw: str, field_name: str) -> Decimal:
    try:
        value = Decimal(raw)
    except InvalidOperation as e:
        raise ValidationError(
            f"{field_name} must be a number, got {raw!r}",
            ValidationErrorCode.INVALID_TYPE,
            field_name,
        ) from e
    assert_non_negative_number(value, field_name)
    return value


def _report_error(e: Exception, verbose: bool):
    if isinstance(e, ValidationError):
        console.print(
            f"\n[bold red]Invalid input:[/bold red] {escape(str(e))} "
            f"[dim](code={e.code}, field={e.field})[/dim]"
        )
    else:
        console.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}")
    if verbose:
        raise e
    sys.exit(1)


def display_settlements(
    settlements: list[Settlement], currency_symbol: str, title: str
) -> None:
    """Display settlements as a table."""
    if not settlements:
        console.print("[green]✓ Everyone is settled up.[/green]")
        return

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("From", style="cyan")
    table.add_column("To", style="cyan")
    table.add_column("Amount", justify="right")

    for s in settlements:
        table.add_row(
            s.from_member.name,
            s.to_member.name,
            format_currency(s.amount_scaled, currency_symbol),
        )

    console.print(table)


def display_steps(steps: list[SimplificationStep], currency_symbol: str) -> None:
    """Print a simplification trace, marking highlighted and produced rows."""
    if len(steps) <= 1:
        console.print("[dim]Nothing to simplify.[/dim]")
        return

    for number, step in enumerate(steps):
        console.print(f"\n[bold]Step {number}[/bold]")
        if not step.settlements:
            console.print("  [green](no transfers)[/green]")
        for idx, s in enumerate(step.settlements):
            marker = "  "
            if idx in step.highlighted_indices:
                marker = "[yellow]→[/yellow] "
            elif idx in step.result_indices:
                marker = "[green]+[/green] "
            console.print(
                f"  {marker}{s.from_member.name} pays {s.to_member.name} "
                f"{format_currency(s.amount_scaled, currency_symbol)}"
            )


@app.command()
def balances(
    ledger_path: Path = typer.Argument(..., exists=True, help="Ledger JSON file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show each member's net balance in the group's main currency."""
    try:
        settings = load_settings()
        setup_logging(settings, verbose)

        ledger = load_ledger(ledger_path)
        service = SettlementService(settings)
        member_balances = service.balances(ledger)

        table = Table(
            title=f"Balances ({ledger.main_currency_code})",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Member", style="cyan")
        table.add_column("Balance", justify="right")

        for member in ledger.members:
            balance = member_balances.get(member.id, 0)
            color = "green" if balance > 0 else "red" if balance < 0 else "dim"
            table.add_row(
                member.name,
                f"[{color}]{format_currency(balance, settings.currency_symbol)}[/{color}]",
            )

        console.print(table)

    except (FairShareError, PydanticValidationError, OSError) as e:
        _report_error(e, verbose)


@app.command()
def settle(
    ledger_path: Path = typer.Argument(..., exists=True, help="Ledger JSON file"),
    simplify: bool | None = typer.Option(
        None,
        "--simplify/--no-simplify",
        help="Net debts greedily (defaults to FAIRSHARE_PREFER_SIMPLIFIED)",
    ),
    steps: bool = typer.Option(
        False, "--steps", "-s", help="Show how debts simplify step by step"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show who should pay whom to settle the group."""
    try:
        settings = load_settings()
        setup_logging(settings, verbose)

        ledger = load_ledger(ledger_path)
        service = SettlementService(settings)

        settlements = service.settle(ledger, simplify=simplify)
        use_simplified = settings.prefer_simplified if simplify is None else simplify
        display_settlements(
            settlements,
            settings.currency_symbol,
            title="Simplified settlements" if use_simplified else "Settlements",
        )

        if steps:
            display_steps(service.explain(ledger), settings.currency_symbol)

    except (FairShareError, PydanticValidationError, OSError) as e:
        _report_error(e, verbose)


@app.command()
def split(
    total: str = typer.Argument(..., help="Total amount, e.g. 45.60"),
    people: int | None = typer.Option(
        None, "--people", "-n", help="Split equally among N people"
    ),
    percent: list[str] | None = typer.Option(
        None, "--percent", "-p", help="Percentage per participant (repeat)"
    ),
    exact: list[str] | None = typer.Option(
        None, "--exact", "-e", help="Exact amount per participant (repeat)"
    ),
):
    """Preview how a total splits into shares."""
    try:
        settings = load_settings()
        total_scaled = to_scaled(_parse_amount(total, "total"))

        if percent:
            percentages = [_parse_amount(p, "percent") for p in percent]
            assert_percentages(percentages)
            spec = PercentageSplit(percentages=tuple(percentages))
            count = len(percentages)
        elif exact:
            amounts = tuple(to_scaled(_parse_amount(a, "exact")) for a in exact)
            spec = ExactSplit(amounts_scaled=amounts)
            count = len(amounts)
        else:
            spec = EqualSplit()
            count = 1 if people is None else people
            if count <= 0:
                raise ValidationError(
                    "--people must be at least 1",
                    ValidationErrorCode.INVALID_LENGTH,
                    "people",
                )

        shares = split_amount(total_scaled, spec, count)

        table = Table(
            title=f"{spec.kind.capitalize()} split of "
            f"{format_currency(total_scaled, settings.currency_symbol)}",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("#", style="dim")
        table.add_column("Share", justify="right")
        table.add_column("Exact", justify="right", style="dim")

        for i, share in enumerate(shares, start=1):
            table.add_row(
                str(i),
                format_currency(share, settings.currency_symbol),
                str(from_scaled(share)),
            )

        console.print(table)

    except FairShareError as e:
        _report_error(e, verbose=False)


@app.command()
def rate(
    base: str = typer.Argument(..., help="Currency to convert from, e.g. EUR"),
    quote: str = typer.Argument(..., help="Currency to convert to, e.g. USD"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Fetch the current exchange rate between two currencies."""
    try:
        settings = load_settings()
        setup_logging(settings, verbose)

        with ExchangeRateClient(
            settings.exchange_rate_api_url, timeout=settings.exchange_rate_timeout
        ) as client:
            cache = ExchangeRateCache(
                client, ttl=timedelta(hours=settings.exchange_rate_ttl_hours)
            )
            fetched = cache.get_rate(base, quote)

        console.print(
            f"1 {fetched.base_currency_code} = "
            f"{from_scaled(fetched.rate_scaled)} {fetched.quote_currency_code} "
            f"[dim](scaled {fetched.rate_scaled})[/dim]"
        )

    except FairShareError as e:
        _report_error(e, verbose)


if __name__ == "__main__":
    app()
