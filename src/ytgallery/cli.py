"""Command-line interface for ytgallery.

Main entry point for the application.
"""
# Created: 2026-10-19

import sys
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .cache import PersistentCache, cache_key
from .config.settings import load_settings
from .engine import GalleryEngine
from .errors import ConfigError
from .models import Direction, EngineState
from .render import ConsoleSink


console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)]
    )


def _settings(ctx: click.Context):
    config_dir = ctx.obj.get('config_dir') if ctx.obj else None
    try:
        return load_settings(config_dir)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


def _store(ctx: click.Context) -> PersistentCache:
    directory = _settings(ctx).cache.directory
    return PersistentCache(Path(directory).expanduser() if directory else None)


@click.group()
@click.version_option(__version__, prog_name="ytgallery")
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose logging')
@click.option('--config-dir', type=click.Path(),
              default=None, help='Configuration directory')
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_dir: Optional[str]):
    """ytgallery - Paginated YouTube playlist gallery."""
    setup_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    if config_dir:
        ctx.obj['config_dir'] = Path(config_dir)


@cli.command()
@click.argument('playlist_id')
@click.option('--page', type=int, default=1, show_default=True, help='Page to show (1-based)')
@click.option('--search', 'query', default=None, help='Show videos whose title or date matches')
@click.option('--refresh', is_flag=True, help='Ignore the cache and rebuild')
@click.option('--max-results', type=int, default=None, help='Videos per page')
@click.option('--api-key', envvar='YOUTUBE_API_KEY', default=None, help='YouTube Data API key')
@click.option('--no-cache', is_flag=True, help='Do not persist the gallery')
@click.option('--urls', is_flag=True, help='Show video URLs')
@click.pass_context
def show(ctx: click.Context, playlist_id: str, page: int, query: Optional[str],
         refresh: bool, max_results: Optional[int], api_key: Optional[str],
         no_cache: bool, urls: bool):
    """Show one page of a playlist, or the videos matching a search."""
    settings = _settings(ctx)
    if api_key:
        settings.youtube.api_key = api_key
    if max_results is not None:
        settings.gallery.max_results = max_results
    if no_cache:
        settings.cache.enabled = False

    sink = ConsoleSink(console, show_urls=urls)
    try:
        engine = GalleryEngine.from_settings(playlist_id, sink, settings)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    async def run() -> None:
        if refresh:
            await engine.refresh()
        else:
            await engine.initialize()
        if engine.state is EngineState.FAILED:
            return

        if page > engine.page_count and engine.page_count:
            console.print(f"[yellow]Only {engine.page_count} pages available[/yellow]")
        for _ in range(page - 1):
            if not await engine.paginate(Direction.NEXT):
                break

        if query and await engine.search(query) is None:
            console.print(f"[yellow]Search for {query!r} gave no result to show "
                          f"(1-{engine.max_results} matches needed)[/yellow]")

    asyncio.run(run())

    sink.render(engine.playlist_info)
    if sink.error:
        sys.exit(1)


@cli.group()
def cache():
    """Inspect or clear the gallery cache."""


@cache.command()
@click.pass_context
def stats(ctx: click.Context):
    """Show cache statistics."""
    store = _store(ctx)
    data = store.get_stats()

    console.print(f"Cache: {data['cache_path']} ({data['cache_size_mb']:.2f} MB)")
    console.print(f"Playlists: {data['playlist_count']}, pages: {data['page_count']}, "
                  f"hits: {data['total_hits']}")
    if 'oldest_entry' in data:
        oldest = datetime.fromtimestamp(data['oldest_entry'] / 1000)
        newest = datetime.fromtimestamp(data['newest_entry'] / 1000)
        console.print(f"Oldest: {oldest:%Y-%m-%d %H:%M}, newest: {newest:%Y-%m-%d %H:%M}")
    for key in store.keys():
        console.print(f"  {key}")


@cache.command()
@click.argument('playlist_id', required=False)
@click.pass_context
def clear(ctx: click.Context, playlist_id: Optional[str]):
    """Clear one playlist, or the entire cache."""
    store = _store(ctx)
    if playlist_id:
        store.delete(cache_key(playlist_id))
        console.print(f"[green]✓[/green] Cleared cache for {playlist_id}")
    else:
        store.clear()
        console.print("[green]✓[/green] Cleared cache")


@cache.command()
@click.pass_context
def cleanup(ctx: click.Context):
    """Remove entries older than the configured cache life."""
    removed = _store(ctx).cleanup_expired(_settings(ctx).gallery.cache_life)
    console.print(f"Removed {removed} expired entries")


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == '__main__':
    main()
