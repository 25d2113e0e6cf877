"""docview CLI - inspect transcriptions, hit-test, render and review suggestions."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from docview.config import settings
from docview.exceptions import DocViewError
from docview.models import SortMode, page_key_to_number
from docview.sources import load_transcription
from docview.viewer import AsyncioFrameScheduler, RegionIndex, RenderPipeline, normalize_page

app = typer.Typer(
    name="docview",
    help="Scanned page / transcript viewer core",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, help="Logging level"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load(json_path: Path):
    try:
        return load_transcription(json_path)
    except DocViewError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command()
def pages(
    json_path: Path = typer.Argument(..., help="Transcription JSON"),
) -> None:
    """List transcribed pages with line and hit-box counts."""
    doc = _load(json_path)

    table = Table(title=json_path.name)
    table.add_column("Page key")
    table.add_column("Page", justify="right")
    table.add_column("Size")
    table.add_column("Lines", justify="right")
    table.add_column("Boxes", justify="right")
    table.add_column("Rejected", justify="right")

    for key in doc.page_keys:
        page = doc[key]
        result = normalize_page(page, page_key=key)
        number = page_key_to_number(key)
        table.add_row(
            key,
            str(number) if number is not None else "-",
            f"{page.width:g}x{page.height:g}",
            str(len(page.lines())),
            str(len(result.boxes)),
            str(len(result.rejections)),
        )
    console.print(table)


@app.command()
def boxes(
    json_path: Path = typer.Argument(..., help="Transcription JSON"),
    page_key: str = typer.Argument(..., help="Page key, e.g. doc_page_1"),
) -> None:
    """Show the normalized hit-boxes and rejections of one page."""
    doc = _load(json_path)
    page = doc.get(page_key)
    if page is None:
        console.print(f"[red]No transcription for page {page_key}[/red]")
        raise typer.Exit(1)

    result = normalize_page(page, page_key=page_key)
    index = RegionIndex.from_result(result)

    table = Table(title=f"{page_key}: {len(index)} boxes (smallest first)")
    for column in ("uid", "x", "y", "w", "h", "area"):
        table.add_column(column, justify="right" if column != "uid" else "left")
    for box in index.boxes:
        table.add_row(
            box.uid,
            f"{box.x:.4f}",
            f"{box.y:.4f}",
            f"{box.w:.4f}",
            f"{box.h:.4f}",
            f"{box.area:.5f}",
        )
    console.print(table)

    if result.rejections:
        rejected = Table(title="Rejected")
        rejected.add_column("uid")
        rejected.add_column("reason")
        rejected.add_column("bbox")
        for r in result.rejections:
            rejected.add_row(r.uid, r.reason, str(r.bbox))
        console.print(rejected)


@app.command()
def pick(
    json_path: Path = typer.Argument(..., help="Transcription JSON"),
    page_key: str = typer.Argument(..., help="Page key"),
    u: float = typer.Argument(..., help="Horizontal position (0-1)"),
    v: float = typer.Argument(..., help="Vertical position (0-1)"),
) -> None:
    """Hit-test a point on a page and print the matching line."""
    doc = _load(json_path)
    page = doc.get(page_key)
    index = RegionIndex.build(page, page_key=page_key)

    uid = index.pick(u, v)
    if uid is None:
        console.print("[yellow]No line at that point[/yellow]")
        raise typer.Exit(1)
    line = page.line(uid)
    console.print(f"[bold blue]{uid}[/bold blue] {line.transcription if line else ''}")


@app.command()
def render(
    pdf_path: Path = typer.Argument(..., help="Scanned document PDF"),
    page_number: int = typer.Argument(..., help="1-indexed page number"),
    output: Path = typer.Option(Path("page.png"), help="Output PNG"),
    width: int = typer.Option(0, help="Viewport width in CSS pixels (0 = default)"),
    zoom: float = typer.Option(1.0, help="Zoom factor"),
    dpr: float = typer.Option(settings.device_pixel_ratio, help="Device pixel ratio"),
) -> None:
    """Render one page the way the viewer would and save it as PNG."""
    from docview.sources.raster import PyMuPDFRasterSource

    async def _render():
        source = PyMuPDFRasterSource(pdf_path)
        try:
            pipeline = RenderPipeline(source, AsyncioFrameScheduler(), device_pixel_ratio=dpr)
            return await pipeline.render(page_number, width or None, zoom)
        finally:
            source.close()

    try:
        result = asyncio.run(_render())
    except (DocViewError, FileNotFoundError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    if result is None:
        console.print("[yellow]Render was cancelled[/yellow]")
        raise typer.Exit(1)

    result.raster.save(str(output))
    console.print(
        f"[bold blue]Rendered page {page_number}[/bold blue] "
        f"{result.css_width}x{result.css_height} css, "
        f"{result.bitmap_width}x{result.bitmap_height} bitmap -> {output}"
    )


@app.command()
def ingest(
    json_path: Path = typer.Argument(..., help="Local transcription JSON"),
    pdf_url: str = typer.Argument(..., help="PDF path in storage, e.g. 1M17_B23-A-1.pdf"),
) -> None:
    """Insert a document and its lines into the database."""
    from docview.storage import close_db, get_session, ingest_document

    async def _ingest():
        try:
            async with get_session() as session:
                return await ingest_document(session, json_path, pdf_url)
        finally:
            await close_db()

    document_id = asyncio.run(_ingest())
    console.print(f"[bold blue]Done.[/bold blue] document_id: {document_id}")


@app.command()
def suggestions(
    document_id: str = typer.Argument(..., help="Document id"),
    page_key: str = typer.Argument(..., help="Page key"),
    sort: SortMode = typer.Option(SortMode.TOP, help="top or newest"),
    show_all: bool = typer.Option(False, "--all", help="Show every suggestion per line"),
) -> None:
    """List community suggestions of a page, ranked per line."""
    from docview.storage import SqlSuggestionStore, close_db
    from docview.viewer import SuggestionBoard, resolve_display_name

    async def _list():
        try:
            return await SqlSuggestionStore().list(document_id, page_key)
        finally:
            await close_db()

    try:
        rows = asyncio.run(_list())
    except DocViewError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    board = SuggestionBoard(page_key, rows)
    for uid in sorted(board.by_uid):
        board.set_sort_mode(uid, sort)
        shown = board.ranked(uid) if show_all else board.visible(uid)
        console.print(f"[bold]{uid}[/bold]")
        for s in shown:
            author = resolve_display_name(s.author_id, snapshot=s.author_username)
            console.print(f"  [{s.vote_count}] {s.suggested_text} [dim]by {author}[/dim]")
        hidden = 0 if show_all else board.hidden_count(uid)
        if hidden:
            console.print(f"  [dim]... {hidden} more[/dim]")


@app.command()
def leaderboard() -> None:
    """Show the top contributors by upvotes received."""
    from docview.storage import SqlSuggestionStore, close_db
    from docview.viewer import build_leaderboard

    async def _load_rows():
        store = SqlSuggestionStore()
        try:
            votes = await store.list_votes(settings.leaderboard_vote_limit)
            top = build_leaderboard(votes)
            profiles = await store.profile_usernames([r.author_id for r in top])
            return build_leaderboard(votes, profiles)
        finally:
            await close_db()

    try:
        rows = asyncio.run(_load_rows())
    except DocViewError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Community Leaderboard")
    table.add_column("#", justify="right")
    table.add_column("User")
    table.add_column("Upvotes", justify="right")
    for rank_no, row in enumerate(rows, start=1):
        table.add_row(str(rank_no), row.username, str(row.upvotes))
    console.print(table)


@app.command()
def status() -> None:
    """Show configuration and database status."""
    console.print("[bold blue]docview status[/bold blue]")
    console.print(f"[dim]Database: {settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}[/dim]")

    table = Table(title="Line-box thresholds")
    table.add_column("Setting")
    table.add_column("Value", justify="right")
    for name, value in settings.geometry.model_dump().items():
        table.add_row(name, f"{value:g}")
    console.print(table)

    from sqlalchemy.exc import SQLAlchemyError

    from docview.storage import DocumentRepository, close_db, get_session

    async def _count():
        try:
            async with get_session() as session:
                return await DocumentRepository(session).count_all()
        finally:
            await close_db()

    try:
        count = asyncio.run(_count())
    except (OSError, SQLAlchemyError) as e:
        console.print(f"[yellow]Database unavailable: {e}[/yellow]")
        return
    console.print(f"Documents: {count}")


if __name__ == "__main__":
    app()
