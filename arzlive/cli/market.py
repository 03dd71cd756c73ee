"""Typer CLI for the live price board.

Commands:
    - poll: run one cycle and print the catalog
    - watch: keep polling on the configured cadence
    - history: inspect the persisted price history of one instrument
    - digest: print the plain-text digest handed to the summary service
    - reset-history: delete the persisted price history
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from arzlive.config.settings import MarketSettings, get_settings
from arzlive.core.exceptions import StorageError
from arzlive.core.logger import setup_logger
from arzlive.history.store import HISTORY_KEY, parse_history_payload
from arzlive.market.catalog import DEFAULT_CATALOG, get_spec
from arzlive.market.scheduler import PollingScheduler
from arzlive.market.snapshot import MarketSnapshotBuilder
from arzlive.models.analysis import build_market_digest
from arzlive.models.asset import AssetType, CurrencyMode, PollResult
from arzlive.persistence.database import Database
from arzlive.persistence.state_store import StateStore

console = Console()

app = typer.Typer(
    name="market",
    help="Live currency, gold and crypto prices",
    no_args_is_help=True,
)

_TYPE_COLORS: dict[AssetType, str] = {
    AssetType.CURRENCY: "cyan",
    AssetType.GOLD: "yellow",
    AssetType.CRYPTO: "magenta",
}


def _setup(verbose: bool) -> MarketSettings:
    settings = get_settings()
    setup_logger(
        log_dir=settings.log_dir,
        console_level="DEBUG" if verbose else "WARNING",
    )
    if not settings.has_api_key():
        console.print("[yellow]ARZLIVE_API_KEY is not set; the feed may reject requests.[/yellow]")
    return settings


def _render(result: PollResult, mode: CurrencyMode) -> Table:
    unit = "Rial" if mode is CurrencyMode.RIAL else "Toman"
    table = Table(
        show_header=True,
        header_style="bold",
        title=f"Market @ {result.polled_at:%Y-%m-%d %H:%M:%S} UTC",
    )
    table.add_column("ID", style="bold", min_width=10)
    table.add_column("Name", min_width=14)
    table.add_column("Type", width=9)
    table.add_column(f"Price ({unit})", justify="right", min_width=16)
    table.add_column("24h %", justify="right", width=8)
    table.add_column("Points", justify="right", width=6)
    table.add_column("Updated", width=8)

    for asset in result.assets:
        color = _TYPE_COLORS.get(asset.asset_type, "white")
        change_color = "green" if asset.change_percent >= 0 else "red"
        table.add_row(
            asset.id,
            f"{asset.name_fa} ({asset.name_en})",
            f"[{color}]{asset.asset_type}[/{color}]",
            f"{asset.price_in(mode):,.0f}",
            f"[{change_color}]{asset.change_percent:+.2f}[/{change_color}]",
            str(len(asset.history)),
            "[green]yes[/green]" if asset.id in result.updated_ids else "-",
        )
    return table


def _print_result(result: PollResult, mode: CurrencyMode) -> None:
    console.print(_render(result, mode))
    if result.error:
        console.print(Panel(result.error, title="Feed error", border_style="red"))


async def _poll(settings: MarketSettings) -> PollResult:
    async with await MarketSnapshotBuilder.create(settings) as builder:
        return await builder.poll_once()


@app.command()
def poll(
    rial: Annotated[bool, typer.Option("--rial", help="Show prices in Rial")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Run one poll cycle and print the catalog."""
    settings = _setup(verbose)
    result = asyncio.run(_poll(settings))
    _print_result(result, CurrencyMode.RIAL if rial else CurrencyMode.TOMAN)
    if result.error and not result.updated_ids:
        raise typer.Exit(code=1)


@app.command()
def watch(
    interval: Annotated[
        float | None, typer.Option("--interval", "-i", help="Seconds between cycles")
    ] = None,
    cycles: Annotated[
        int | None, typer.Option("--cycles", "-n", help="Stop after N cycles")
    ] = None,
    rial: Annotated[bool, typer.Option("--rial", help="Show prices in Rial")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Poll continuously on the configured cadence (Ctrl+C to stop)."""
    settings = _setup(verbose)
    mode = CurrencyMode.RIAL if rial else CurrencyMode.TOMAN

    async def _watch() -> None:
        async with await MarketSnapshotBuilder.create(settings) as builder:
            scheduler = PollingScheduler(
                builder,
                interval=interval or settings.poll_interval_seconds,
                on_result=lambda result: _print_result(result, mode),
            )
            await scheduler.run(max_cycles=cycles)

    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")


@app.command()
def history(
    asset_id: Annotated[str, typer.Argument(help="Instrument id (e.g., usd, btc)")],
    last: Annotated[int, typer.Option("--last", "-l", help="Points to list")] = 10,
) -> None:
    """Persisted price history of one instrument."""
    settings = _setup(verbose=False)
    try:
        spec = get_spec(asset_id)
    except KeyError:
        console.print(f"[red]Unknown instrument: {asset_id}[/red]")
        console.print(f"Valid: {', '.join(s.id for s in DEFAULT_CATALOG)}")
        raise typer.Exit(code=1) from None

    async def _load() -> tuple[str | None, datetime | None]:
        async with Database(settings.db_path) as database:
            store = StateStore(database)
            return await store.load_key(HISTORY_KEY), await store.get_updated_at(HISTORY_KEY)

    try:
        raw, saved_at = asyncio.run(_load())
    except StorageError as e:
        console.print(f"[red]Could not read history: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None
    points = parse_history_payload(raw).get(spec.id, []) if raw else []
    if not points:
        console.print(f"[yellow]No persisted history for {spec.id}.[/yellow]")
        return

    prices = [p.price for p in points]
    saved = f"{saved_at:%Y-%m-%d %H:%M:%S} UTC" if saved_at else "-"
    console.print(
        Panel(
            "\n".join(
                [
                    f"[bold]Points:[/bold] {len(points)}",
                    f"[bold]From:[/bold] {points[0].timestamp:%Y-%m-%d %H:%M}",
                    f"[bold]To:[/bold] {points[-1].timestamp:%Y-%m-%d %H:%M}",
                    f"[bold]Min / Max:[/bold] {min(prices):,.0f} / {max(prices):,.0f}",
                    f"[bold]Saved:[/bold] {saved}",
                ]
            ),
            title=f"{spec.name_fa} ({spec.name_en})",
        )
    )

    table = Table(show_header=True, header_style="bold")
    table.add_column("Time (UTC)")
    table.add_column("Price (Toman)", justify="right")
    for point in points[-last:]:
        table.add_row(f"{point.timestamp:%Y-%m-%d %H:%M:%S}", f"{point.price:,.0f}")
    console.print(table)


@app.command()
def digest(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Print the market digest sent to the summary service."""
    settings = _setup(verbose)
    result = asyncio.run(_poll(settings))
    console.print(build_market_digest(result.assets), markup=False)
    if result.error:
        console.print(f"[red]{result.error}[/red]")


@app.command("reset-history")
def reset_history(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete the persisted price history (next start backfills)."""
    settings = _setup(verbose=False)
    if not yes:
        typer.confirm(f"Delete persisted history in {settings.db_path}?", abort=True)

    async def _reset() -> None:
        async with Database(settings.db_path) as database:
            await StateStore(database).delete_key(HISTORY_KEY)

    try:
        asyncio.run(_reset())
    except StorageError as e:
        console.print(f"[red]Could not clear history: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None
    console.print("[green]Price history cleared.[/green]")
