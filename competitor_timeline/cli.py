"""
Command-line interface for competitor-timeline.

Provides one-shot commands; scheduling recurring scrapes is left to cron
or whatever runs these commands.

Usage:
    competitor-timeline serve               # Run the API server
    competitor-timeline init-db             # Create tables
    competitor-timeline create-board Nike   # Create a board
    competitor-timeline scrape nike         # Scrape one Instagram profile
    competitor-timeline scrape-all          # Scrape every configured handle
    competitor-timeline health              # Check dependencies
"""

import asyncio
import sys

import click

from competitor_timeline.config.settings import get_settings
from competitor_timeline.observability.logging import setup_logging
from competitor_timeline.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Competitor Timeline - social-media ingestion for tracked competitors."""
    if debug:
        import os

        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
def serve(host: str | None, port: int | None, reload: bool, metrics: bool) -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    if metrics:
        get_metrics().start_server()
        click.echo(f"Metrics available on http://localhost:{settings.metrics_port}/metrics")

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "competitor_timeline.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from competitor_timeline.boards.service import BoardsService
    from competitor_timeline.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            await BoardsService(db).init_schema()
            click.echo("Database initialized successfully")
        finally:
            await db.close()

    asyncio.run(run())


@main.command("create-board")
@click.argument("name")
@click.option("--avatar-url", default=None, help="Board avatar image URL")
@click.option("--instagram", "instagram_handle", default=None, help="Instagram handle to track")
def create_board(name: str, avatar_url: str | None, instagram_handle: str | None) -> None:
    """Create a board with the default channels."""
    from competitor_timeline.boards.schemas import SourceKind
    from competitor_timeline.boards.service import BoardsService
    from competitor_timeline.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            service = BoardsService(db)
            board = await service.create_board(name, avatar_url=avatar_url)
            click.echo(f"Created board {board.name!r} (slug={board.slug}, id={board.id})")

            if instagram_handle:
                channel = board.channel_for(SourceKind.INSTAGRAM)
                if channel is not None:
                    await service.set_channel_handle(channel.id, instagram_handle)
                    click.echo(f"  instagram handle: {instagram_handle.strip()}")
        finally:
            await db.close()

    asyncio.run(run())


def _print_outcome(outcome) -> None:
    from competitor_timeline.scraping.apify_client import estimate_cost

    stats = outcome.stats
    click.echo(f"\nRun {outcome.run_id}: {outcome.state.value} after {outcome.attempts} polls")
    if stats is None:
        click.echo("  No records returned")
        return

    click.echo(f"  records: {stats.total} total, {stats.valid} valid, {stats.invalid} invalid")
    for err in stats.errors:
        click.echo(f"    #{err['index']} ({err['id']}): {err['reason']}")

    cost = estimate_cost(stats.total)
    click.echo(f"  estimated cost: ${cost['usd']:.2f}")

    if outcome.ingest_result is not None:
        processed = outcome.ingest_result.get("processed", {})
        click.echo(
            f"  ingested: {processed.get('postsInserted', 0)} inserted, "
            f"{processed.get('postsUpdated', 0)} updated"
        )
        for error in outcome.ingest_result.get("errors") or []:
            click.echo(click.style(f"    {error}", fg="yellow"))
    elif outcome.batch is not None:
        click.echo(f"  batch {outcome.batch.batch_id} built, not sent")


@main.command()
@click.argument("handle")
@click.option("--limit", default=None, type=int, help="Posts to request")
@click.option(
    "--type",
    "results_type",
    default=None,
    type=click.Choice(["posts", "reels", "stories", "highlights"]),
    help="Actor result type",
)
@click.option("--dry-run", is_flag=True, help="Normalize and validate but do not ingest")
@click.option("--remote", is_flag=True, help="POST the batch to INGEST_API_URL instead of writing directly")
def scrape(
    handle: str,
    limit: int | None,
    results_type: str | None,
    dry_run: bool,
    remote: bool,
) -> None:
    """Scrape one Instagram profile and ingest the result.

    Example:
        competitor-timeline scrape nike --limit 20
        competitor-timeline scrape nike --dry-run
    """
    from competitor_timeline.boards.repository import BoardsRepository
    from competitor_timeline.ingestion.errors import BatchValidationError
    from competitor_timeline.ingestion.service import IngestionService
    from competitor_timeline.posts.repository import PostsRepository
    from competitor_timeline.scraping.apify_client import ApifyClient, ApifyClientError
    from competitor_timeline.scraping.errors import ScrapeError
    from competitor_timeline.scraping.http_client import HTTPClientError
    from competitor_timeline.scraping.orchestrator import ScrapeOrchestrator
    from competitor_timeline.scraping.sink import HttpIngestSink, LocalIngestSink
    from competitor_timeline.storage.database import Database

    if remote and not dry_run and not get_settings().ingest_configured:
        raise click.UsageError("--remote requires INGEST_API_KEY")

    async def run() -> int:
        db = None
        sink = None
        if not dry_run:
            if remote:
                sink = HttpIngestSink()
            else:
                db = Database()
                await db.connect()
                sink = LocalIngestSink(
                    IngestionService(BoardsRepository(db), PostsRepository(db))
                )

        try:
            async with ApifyClient() as apify:
                orchestrator = ScrapeOrchestrator(apify, sink=sink)
                click.echo(f"Scraping @{handle.lstrip('@')} ...")
                outcome = await orchestrator.run(
                    handle, results_limit=limit, results_type=results_type, dry_run=dry_run
                )
            _print_outcome(outcome)
            return 0
        except (ScrapeError, ApifyClientError, HTTPClientError, BatchValidationError) as e:
            click.echo(click.style(f"Scrape failed: {e}", fg="red"))
            return 1
        finally:
            if db is not None:
                await db.close()

    sys.exit(asyncio.run(run()))


@main.command("scrape-all")
@click.option("--limit", default=None, type=int, help="Posts to request per profile")
@click.option("--delay", default=None, type=float, help="Seconds between profiles")
def scrape_all(limit: int | None, delay: float | None) -> None:
    """Scrape every active Instagram channel that has a handle configured."""
    from competitor_timeline.boards.repository import BoardsRepository
    from competitor_timeline.boards.schemas import SourceKind
    from competitor_timeline.ingestion.errors import BatchValidationError
    from competitor_timeline.ingestion.service import IngestionService
    from competitor_timeline.posts.repository import PostsRepository
    from competitor_timeline.scraping.apify_client import ApifyClient, ApifyClientError
    from competitor_timeline.scraping.config import ScrapeConfig
    from competitor_timeline.scraping.errors import ScrapeError
    from competitor_timeline.scraping.http_client import HTTPClientError
    from competitor_timeline.scraping.orchestrator import ScrapeOrchestrator
    from competitor_timeline.scraping.sink import LocalIngestSink
    from competitor_timeline.storage.database import Database

    config = ScrapeConfig()
    pause = config.delay_between_seconds if delay is None else delay

    async def run() -> int:
        db = Database()
        await db.connect()
        failures = 0
        try:
            boards = BoardsRepository(db)
            targets = await boards.list_handle_channels(SourceKind.INSTAGRAM)
            if not targets:
                click.echo("No Instagram channels with a handle configured")
                return 0

            sink = LocalIngestSink(IngestionService(boards, PostsRepository(db)))
            async with ApifyClient(config=config) as apify:
                orchestrator = ScrapeOrchestrator(apify, sink=sink, config=config)
                for i, (board, channel) in enumerate(targets):
                    click.echo(f"\n[{i + 1}/{len(targets)}] {board.name}: @{channel.handle}")
                    try:
                        outcome = await orchestrator.run(channel.handle, results_limit=limit)
                        _print_outcome(outcome)
                    except (
                        ScrapeError,
                        ApifyClientError,
                        HTTPClientError,
                        BatchValidationError,
                    ) as e:
                        failures += 1
                        click.echo(click.style(f"  failed: {e}", fg="red"))

                    if i < len(targets) - 1 and pause > 0:
                        await asyncio.sleep(pause)
        finally:
            await db.close()

        click.echo(f"\nDone: {len(targets) - failures} succeeded, {failures} failed")
        return 1 if failures else 0

    sys.exit(asyncio.run(run()))


@main.command()
def health() -> None:
    """Check health of all dependencies."""
    import structlog

    logger = structlog.get_logger()

    async def check():
        results: dict[str, bool] = {}

        try:
            from competitor_timeline.storage.database import Database

            db = Database()
            await db.connect()
            results["postgres"] = await db.health_check()
            await db.close()
        except Exception as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))

        settings = get_settings()
        results["ingest_key_configured"] = settings.ingest_configured
        results["apify_configured"] = settings.apify_configured

        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)
        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))
        click.echo("-" * 40)

        if results["postgres"]:
            click.echo(click.style("All core services healthy!", fg="green"))
            sys.exit(0)
        click.echo(click.style("Some services unhealthy!", fg="red"))
        sys.exit(1)

    asyncio.run(check())


if __name__ == "__main__":
    main()
