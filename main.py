#!/usr/bin/env python3
"""
MiteFeed - Lightweight Feed Reader Core
======================================

Command line interface for discovering, reading and following feeds.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py discover URL              # Find feeds on a page
    python main.py parse FILE_OR_URL         # Parse and show a feed
    python main.py subscribe URL [--index N] # Follow a discovered feed
    python main.py list                      # Show subscriptions
    python main.py refresh                   # Poll all subscriptions
    python main.py remove ID                 # Unsubscribe
"""

import sys
import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from mitefeed.config.settings import get_settings
from mitefeed.ingestion.content_cleaner import format_date
from mitefeed.ingestion.feed_parser import parse_feed
from mitefeed.processing.feed_fetcher import FeedFetcher
from mitefeed.services.subscription_service import SubscriptionService
from mitefeed.storage.subscription_repository import JsonSubscriptionRepository
from mitefeed.utils.exceptions import (
    MiteFeedError,
    SubscriptionNotFoundError,
    get_user_friendly_message,
    handle_exception,
)
from mitefeed.utils.logging import configure_application_logging

console = Console()
logger = logging.getLogger(__name__)


def _shorten(text: str, limit: int = 50) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def _fail(error: Exception, operation: str) -> None:
    """Print a user-facing error and exit with status 1."""
    if not isinstance(error, MiteFeedError):
        error = handle_exception(error, logger, operation)
    console.print(f"[bold red]❌ {get_user_friendly_message(error)}[/bold red]")
    sys.exit(1)


def _build_service() -> SubscriptionService:
    settings = get_settings()
    repository = JsonSubscriptionRepository(settings.storage)
    repository.ensure_layout()
    return SubscriptionService(repository, FeedFetcher(settings=settings))


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """MiteFeed - discover, read and follow RSS and Atom feeds."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        # Show help if no subcommand provided
        click.echo(ctx.get_help())
        return

    if ctx.invoked_subcommand != 'check-config':
        try:
            settings = get_settings()
            configure_application_logging(
                log_level="DEBUG" if debug else settings.get_effective_log_level(),
                log_file=settings.logging.file_path,
                enable_console=settings.logging.console_logging,
                structured_logging=settings.logging.structured_logging,
                max_file_size_mb=settings.logging.max_file_size_mb,
                backup_count=settings.logging.backup_count,
            )
        except MiteFeedError as e:
            _fail(e, "load configuration")


@cli.command()
def check_config():
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking MiteFeed Configuration[/bold blue]")

    try:
        settings = get_settings(reload=True)
    except MiteFeedError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Details")

    table.add_row("HTTP", f"Timeout: {settings.http.request_timeout}s, verify SSL: {settings.http.verify_ssl}")
    table.add_row("User agent", settings.http.user_agent)
    table.add_row("Storage", f"{settings.storage.data_dir} ({settings.storage.subscriptions_file}, {settings.storage.contents_dir}/)")
    table.add_row("Logging", f"Level: {settings.get_effective_log_level()}, file: {settings.logging.file_path or 'none'}")

    console.print(table)
    console.print("[bold green]✅ All configuration checks passed![/bold green]")


@cli.command()
@click.argument('url')
def discover(url):
    """Find the feeds offered at URL."""
    console.print(f"[bold blue]🔍 Discovering feeds at {url}[/bold blue]")

    try:
        entries = asyncio.run(FeedFetcher().find_feeds(url))
    except Exception as e:
        _fail(e, "feed discovery")

    if not entries:
        console.print("[yellow]No feeds found[/yellow]")
        return

    table = Table(title="Discovered Feeds")
    table.add_column("#", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("URL", style="green")

    for index, entry in enumerate(entries):
        table.add_row(str(index), entry.title or "(untitled)", entry.url)

    console.print(table)


@cli.command()
@click.argument('source')
@click.option('--limit', default=10, show_default=True, help='Number of items to show')
def parse(source, limit):
    """Parse a feed from a local FILE or a URL and show its items."""
    try:
        path = Path(source)
        if path.is_file():
            text = path.read_text(encoding="utf-8")
        else:
            text = asyncio.run(FeedFetcher().fetch_url(source)).data
        feed = parse_feed(text)
    except Exception as e:
        _fail(e, "feed parsing")

    console.print(f"[bold blue]📰 {feed.title or '(untitled feed)'}[/bold blue]")
    if feed.link:
        console.print(f"🔗 {feed.link}")
    if feed.description:
        console.print(_shorten(feed.description, 200))

    table = Table(title=f"Items ({len(feed.items)} total)")
    table.add_column("Title", style="cyan")
    table.add_column("Published", style="yellow")
    table.add_column("Authors")
    table.add_column("Link", style="green")

    for item in feed.items[:limit]:
        table.add_row(
            _shorten(item.title),
            format_date(item.published) if item.published else "",
            ", ".join(item.authors),
            item.link,
        )

    console.print(table)


@cli.command()
@click.argument('url')
@click.option('--index', '-i', default=0, show_default=True, help='Which discovered feed to follow')
def subscribe(url, index):
    """Discover feeds at URL and subscribe to one of them."""
    async def run_subscribe():
        fetcher = FeedFetcher()
        entries = await fetcher.find_feeds(url)
        if not entries:
            return None, None
        if not 0 <= index < len(entries):
            raise click.BadParameter(f"must be between 0 and {len(entries) - 1}", param_hint="--index")

        entry = entries[index]
        entry.subscribe = True
        subscription_id = await _build_service().add_subscription_from_lookup(entry)
        return entry, subscription_id

    try:
        entry, subscription_id = asyncio.run(run_subscribe())
    except click.BadParameter:
        raise
    except Exception as e:
        _fail(e, "subscribe")

    if entry is None:
        console.print("[yellow]No feeds found to subscribe to[/yellow]")
        sys.exit(1)

    console.print(f"[bold green]✅ Subscribed to {entry.title or entry.url}[/bold green]")
    console.print(f"ID: {subscription_id}")


@cli.command(name='list')
def list_subscriptions():
    """List stored subscriptions."""
    try:
        subscriptions = _build_service().repository.list_subscriptions()
    except Exception as e:
        _fail(e, "list subscriptions")

    if not subscriptions:
        console.print("[yellow]No subscriptions yet[/yellow]")
        return

    table = Table(title="Subscriptions")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("URL", style="green")

    for subscription in subscriptions:
        table.add_row(subscription.id, subscription.title, subscription.url)

    console.print(table)


@cli.command()
def refresh():
    """Poll every subscription for new content."""
    console.print("[bold blue]🔄 Refreshing subscriptions[/bold blue]")

    try:
        results = asyncio.run(_build_service().refresh_all())
    except Exception as e:
        _fail(e, "refresh")

    status_labels = {
        "updated": "✅ Updated",
        "unchanged": "⏸️ Unchanged",
        "failed": "❌ Failed",
    }

    table = Table(title="Refresh Results")
    table.add_column("Feed", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    for result in results:
        if result.feed is not None:
            details = f"{len(result.feed.items)} items"
        else:
            details = result.error_message or ""
        table.add_row(
            _shorten(result.subscription.title or result.subscription.url),
            status_labels[result.status],
            _shorten(details),
        )

    console.print(table)

    failed = sum(1 for r in results if r.status == "failed")
    console.print(f"\n[bold blue]📊 Summary: {len(results) - failed} ok, {failed} failed[/bold blue]")
    if failed:
        sys.exit(1)


@cli.command()
@click.argument('subscription_id')
def remove(subscription_id):
    """Remove the subscription SUBSCRIPTION_ID and its stored content."""
    try:
        service = _build_service()
        subscription = service.repository.get_subscription(subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(subscription_id)
        service.remove_subscription(subscription)
    except Exception as e:
        _fail(e, "remove subscription")

    console.print(f"[bold green]✅ Removed {subscription.title or subscription.url}[/bold green]")


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 MiteFeed interrupted by user[/yellow]")
        sys.exit(130)
