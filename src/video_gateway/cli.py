"""CLI interface for the video gateway."""

import asyncio
import logging
from typing import Optional

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import settings
from .exceptions import GatewayError
from .interfaces import VideoSummary
from .service import MetadataAggregator
from .streaming.resolver import StreamResolver
from .upstream.pool import ProviderPool

app = typer.Typer(help="Video Gateway - aggregated video metadata and streaming proxy")
console = Console()


def configure_logging(level: str | None = None) -> None:
    """Route standard logging through rich."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )
    for lib in ("httpx", "httpcore"):
        logging.getLogger(lib).setLevel(logging.WARNING)


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(headers={"User-Agent": settings.user_agent}, follow_redirects=True)


def _format_duration(seconds: int | None) -> str:
    if seconds is None:
        return "-"
    return f"{seconds // 60}:{seconds % 60:02d}"


def _print_videos(title: str, videos: list[VideoSummary]) -> None:
    table = Table(title=title)
    table.add_column("Video ID", style="cyan")
    table.add_column("Title")
    table.add_column("Author", style="magenta")
    table.add_column("Duration", style="green", justify="right")
    table.add_column("Views", justify="right")

    for v in videos:
        table.add_row(
            v.video_id,
            v.title or "-",
            v.author or "-",
            _format_duration(v.length_seconds),
            f"{v.view_count:,}" if v.view_count is not None else "-",
        )
    console.print(table)


async def _probe_all() -> list[tuple[str, bool]]:
    async with _client() as client:
        pool = ProviderPool.from_settings(client)
        results = await asyncio.gather(*(pool.probe(p) for p in pool.providers))
        return [(p.base_url, ok) for p, ok in zip(pool.providers, results)]


async def _run_aggregator(method: str, *args):
    async with _client() as client:
        pool = ProviderPool.from_settings(client)
        aggregator = MetadataAggregator(pool, client, StreamResolver(client))
        return await getattr(aggregator, method)(*args)


@app.command()
def providers():
    """Probe every configured provider and show which ones respond."""
    results = asyncio.run(_probe_all())

    table = Table(title="Provider Health")
    table.add_column("Provider", style="cyan")
    table.add_column("Status")
    for base_url, ok in results:
        table.add_row(base_url, "[green]up[/green]" if ok else "[red]down[/red]")
    console.print(table)

    up = sum(1 for _, ok in results if ok)
    console.print(f"\n{up} / {len(results)} providers reachable")
    if not up:
        raise typer.Exit(1)


@app.command()
def trending():
    """Show trending videos."""
    try:
        videos = asyncio.run(_run_aggregator("trending"))
    except GatewayError as e:
        console.print(f"[red]Error getting trending videos: {e}[/red]")
        raise typer.Exit(1)

    _print_videos(f"Trending ({len(videos)})", videos)


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    page: int = typer.Option(1, "--page", help="Result page"),
    sort: str = typer.Option("relevance", "--sort", help="relevance, rating, upload_date or view_count"),
):
    """Search videos across the provider pool."""
    try:
        videos = asyncio.run(_run_aggregator("search", query, page, sort))
    except GatewayError as e:
        console.print(f"[red]Search failed: {e}[/red]")
        raise typer.Exit(1)

    if not videos:
        console.print("[yellow]No results found.[/yellow]")
        return
    _print_videos(f"Results for '{query}'", videos)


@app.command()
def config():
    """Show current configuration."""
    console.print(f"\n[bold]Current Configuration[/bold]")
    console.print(f"Providers: {len(settings.providers)}")
    for url in settings.providers:
        console.print(f"  {url}")
    console.print(f"Probe: {settings.probe_path} ({settings.probe_timeout}s)")
    console.print(f"Region / language: {settings.region} / {settings.language}")
    console.print(f"Trending source: {settings.trending_url}")
    console.print(f"Stream origin: {settings.stream_origin}")
    console.print(f"yt-dlp binary: {settings.ytdlp_binary}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    """Start the API server."""
    import uvicorn

    configure_logging(log_level)
    console.print(f"Starting server at http://{host}:{port}")
    uvicorn.run(
        "video_gateway.api.routes:app",
        host=host,
        port=port,
        reload=reload,
        log_config=None,
    )


if __name__ == "__main__":
    app()
