"""Command-line interface for Deck Scanner."""

import asyncio
import time
from typing import Optional

import cv2
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .capture.camera import CameraCapture
from .core.types import RecognitionResult, SessionSummary
from .recognize.engine import RecognitionEngine
from .session.aggregator import ScanSession
from .session.summary import summarize_records
from .store.catalog import load_initial_data
from .store.db import DeckStore
from .store.export import EXPORT_FORMATS, write_export
from .sync.client import HttpSyncClient
from .sync.processor import SyncQueueProcessor
from .utils.config import settings
from .utils.error_handler import DeckScannerError
from .utils.log import bind_log_context, clear_log_context, configure_logging, get_logger
from .utils.validation import validate_enum_value

configure_logging()
logger = get_logger(__name__)

console = Console()

app = typer.Typer(
    name="deck-scanner",
    help="Deck Scanner - identify, price and tally playing-card decks offline",
    add_completion=False
)

DbOption = typer.Option(None, "--db", help="Path to the SQLite store (defaults to STORE_DB_PATH)")


def _open_store(db: Optional[str]) -> DeckStore:
    try:
        return DeckStore(db)
    except DeckScannerError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        raise typer.Exit(1)


def _summary_panel(summary: SessionSummary) -> Panel:
    lines = [
        f"[bold]Session:[/bold] {summary.session_id}",
        f"[bold]Decks:[/bold] {summary.total_decks}",
        f"[bold]Buy value:[/bold] ${summary.total_buy_value}",
        f"[bold]Sell value:[/bold] ${summary.total_sell_value}",
        f"[bold]Profit:[/bold] ${summary.total_profit}",
        f"[bold]Average margin:[/bold] {summary.average_margin}",
    ]
    best = summary.most_profitable
    if best is not None:
        label = getattr(best, "name", None) or best.catalog_id
        lines.append(
            f"[bold]Most profitable:[/bold] {label} "
            f"(buy ${best.pricing.buy_price:.2f}, sell ${best.pricing.sell_price:.2f}, "
            f"profit ${best.pricing.profit:.2f})"
        )
    return Panel("\n".join(lines), title="Scan Summary", border_style="green")


def _results_table(summary: SessionSummary) -> Table:
    table = Table(title="Accepted Decks")
    table.add_column("Deck", style="cyan")
    table.add_column("Buy", justify="right")
    table.add_column("Sell", justify="right")
    table.add_column("Profit", justify="right", style="green")
    table.add_column("Margin", justify="right")
    table.add_column("Confidence", justify="right")

    for item in summary.results:
        pricing = item.pricing
        table.add_row(
            getattr(item, "name", None) or item.catalog_id,
            f"${pricing.buy_price:.2f}",
            f"${pricing.sell_price:.2f}",
            f"${pricing.profit:.2f}",
            f"{pricing.margin_pct:.1f}%",
            f"{item.classification_confidence * 100:.1f}%",
        )
    return table


@app.command("load-catalog")
def load_catalog(
    path: str = typer.Argument(None, help="initial_data.json with decks and pricing"),
    db: Optional[str] = DbOption,
):
    """Import decks and their pricing into the local store."""
    store = _open_store(db)
    try:
        counts = load_initial_data(store, path or settings.INITIAL_DATA_PATH)
    except DeckScannerError as e:
        console.print(f"[red]❌ Catalog import failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ Imported {counts['decks']} decks and {counts['pricing']} pricing records[/green]")


@app.command()
def scan(
    db: Optional[str] = DbOption,
    export: Optional[str] = typer.Option(None, "--export", "-e", help="Export format when the session ends (csv or json)"),
    output_dir: str = typer.Option(None, "--output", "-o", help="Directory for exports"),
    interval_ms: int = typer.Option(None, "--interval", help="Milliseconds between submitted frames"),
    max_decks: int = typer.Option(0, "--max-decks", "-m", help="Stop after this many accepted decks (0 = no limit)"),
    preview: bool = typer.Option(True, "--preview/--no-preview", help="Show the camera preview window"),
):
    """Scan decks from the camera until ESC/q (or Ctrl-C)."""
    if export:
        try:
            validate_enum_value(export.lower(), EXPORT_FORMATS, "export format")
        except DeckScannerError as e:
            console.print(f"[red]❌ {e.message}[/red]")
            raise typer.Exit(1)

    console.print(Panel.fit(
        "[bold blue]Deck Scanner - SCAN Mode[/bold blue]\n"
        "[dim]frame → classify → verify → price → session[/dim]",
        border_style="blue"
    ))

    store = _open_store(db)
    with console.status("[bold green]Initializing components...", spinner="dots"):
        try:
            engine = RecognitionEngine.from_settings(store)
            camera = CameraCapture()
            camera.initialize()
        except DeckScannerError as e:
            console.print(f"[red]❌ {e}[/red]")
            raise typer.Exit(1)
    console.print("[green]✓ Components initialized successfully[/green]")

    session = ScanSession(engine, store)
    interval_s = (interval_ms if interval_ms is not None else settings.FRAME_INTERVAL_MS) / 1000.0

    def on_result(result: RecognitionResult) -> None:
        count, total_sell = session.running_totals()
        console.print(
            f"[green]✓[/green] {result.name} ({result.manufacturer}"
            f"{', ' + result.casino if result.casino else ''}) "
            f"conf {result.classification_confidence * 100:.1f}% "
            f"verify {result.text_verification.verification_score:.1f} "
            f"sell ${result.pricing.sell_price:.2f} | {count} decks, ${total_sell}"
        )

    session_id = session.start()
    bind_log_context(session_id=session_id)
    console.print(f"\n[bold]Session {session_id}[/bold] - press [bold]ESC[/bold] or [bold]q[/bold] to finish\n")

    try:
        while True:
            frame = camera.read_frame()
            if frame is None:
                time.sleep(interval_s)
                continue

            try:
                session.submit_frame(frame, on_result=on_result)
            except DeckScannerError as e:
                logger.error("Frame could not be recorded", error=e.message)
                console.print(f"[red]✗ {e.message}[/red]")

            if preview:
                count, total_sell = session.running_totals()
                cv2.putText(frame, f"{count} decks | ${total_sell} | ESC to finish", (10, 30),
                            cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2)
                cv2.imshow("Deck Scanner", frame)
                key = cv2.waitKey(max(1, int(interval_s * 1000))) & 0xFF
                if key in (27, ord("q")):
                    break
            else:
                time.sleep(interval_s)

            if max_decks and session.running_totals()[0] >= max_decks:
                break
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
    finally:
        camera.release()
        if preview:
            cv2.destroyAllWindows()

    summary = session.stop()
    clear_log_context()
    console.print(_summary_panel(summary))
    if summary.results:
        console.print(_results_table(summary))

    if export:
        path = write_export(summary, export, output_dir or settings.OUTPUT_DIR)
        console.print(f"[green]✓ Exported to {path}[/green]")


@app.command()
def sync(
    db: Optional[str] = DbOption,
    prune: bool = typer.Option(False, "--prune", help="Delete completed tasks after draining"),
):
    """Push pending history and refresh stale pricing against the remote service."""
    if not settings.SYNC_API_URL:
        console.print("[red]❌ SYNC_API_URL is not configured[/red]")
        raise typer.Exit(1)

    store = _open_store(db)

    async def _drain() -> int:
        async with HttpSyncClient(settings.SYNC_API_URL, settings.SYNC_API_KEY) as client:
            return await SyncQueueProcessor(store, client).drain()

    processed = asyncio.run(_drain())
    remaining = len(store.list_pending_sync_tasks())
    console.print(f"[green]✓ Synced {processed} tasks[/green] ({remaining} still pending)")

    if prune:
        removed = store.delete_done_sync_tasks()
        console.print(f"[dim]Removed {removed} completed tasks[/dim]")


@app.command()
def pending(db: Optional[str] = DbOption):
    """List sync tasks waiting for connectivity."""
    store = _open_store(db)
    tasks = store.list_pending_sync_tasks()

    table = Table(title=f"Pending Sync Tasks ({len(tasks)})")
    table.add_column("ID", justify="right")
    table.add_column("Kind", style="cyan")
    table.add_column("Key")
    table.add_column("Enqueued")
    for task in tasks:
        table.add_row(str(task.id), task.kind.value, task.payload_key, task.enqueued_at.isoformat())
    console.print(table)


@app.command()
def history(
    session_id: str = typer.Argument(..., help="Session ID printed by the scan command"),
    db: Optional[str] = DbOption,
):
    """Rebuild a past session's summary from the scan history."""
    store = _open_store(db)
    records = store.get_scan_records_by_session(session_id)
    if not records:
        console.print(f"[yellow]⚠ No scan records for session {session_id}[/yellow]")
        raise typer.Exit(1)

    summary = summarize_records(session_id, records)
    console.print(_summary_panel(summary))
    console.print(_results_table(summary))


if __name__ == "__main__":
    app()
