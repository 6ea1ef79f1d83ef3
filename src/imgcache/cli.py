"""Click CLI for imgcache: fetch, seed and inspect cached images."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from imgcache.config.hierarchy import load_config_hierarchy
from imgcache.errors.exceptions import ImgCacheError

console = Console()
error_console = Console(stderr=True)


def _setup_logging(verbosity: int, default_level: str = "WARNING") -> None:
    """Configure logging based on verbosity level.

    Without -v flags the configured ``log_level`` applies.
    """
    level = logging.getLevelName(default_level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
    )


def _parse_headers(raw: tuple[str, ...]) -> dict[str, str] | None:
    if not raw:
        return None
    headers: dict[str, str] = {}
    for item in raw:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise click.BadParameter(f"expected NAME:VALUE, got {item!r}", param_hint="--header")
        headers[name.strip()] = value.strip()
    return headers


def _cache_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every command that touches the cache."""
    options = [
        click.option("--cache-root", type=click.Path(file_okay=False), default=None,
                     help="Root directory for cached files."),
        click.option("--index-path", type=click.Path(dir_okay=False), default=None,
                     help="SQLite index location."),
        click.option("--ttl", type=int, default=None, help="Entry lifetime in seconds."),
        click.option("--query-param", "query_params", multiple=True,
                     help="Query parameter that is part of the cache key (repeatable)."),
        click.option("--all-query", is_flag=True, default=False,
                     help="Use the whole query string in the cache key."),
        click.option("--header", "headers", multiple=True,
                     help="Request header NAME:VALUE (repeatable)."),
        click.option("-v", "--verbose", count=True,
                     help="Increase verbosity (-v info, -vv debug)."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _open_cache(
    cache_root: str | None,
    index_path: str | None,
    ttl: int | None,
    query_params: tuple[str, ...],
    all_query: bool,
    headers: tuple[str, ...],
    verbose: int = 0,
    **extra: Any,
) -> Any:
    from imgcache.core import ImageCache

    config = load_config_hierarchy(
        cache_root=cache_root,
        index_path=index_path,
        ttl_seconds=ttl,
        query_params=list(query_params) or None,
        query_policy=True if all_query else None,
        headers=_parse_headers(headers),
        **extra,
    )
    _setup_logging(verbose, str(config.get("log_level") or "WARNING"))
    return ImageCache(config)


def _run(image_cache: Any, action: Callable[[Any], Awaitable[Any]]) -> Any:
    """Run ``action(image_cache)``, closing the cache on the same event loop."""

    async def runner() -> Any:
        async with image_cache:
            return await action(image_cache)

    try:
        return asyncio.run(runner())
    except ImgCacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@click.group()
@click.version_option(package_name="imgcache")
def cli() -> None:
    """imgcache: local content-addressed cache for remote images."""


@cli.command()
@click.argument("urls", nargs=-1, required=True)
@click.option("--workers", type=int, default=None, help="Concurrent downloads.")
@click.option("--retries", type=int, default=None, help="Extra attempts after a failed download.")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for each URL.")
@_cache_options
def fetch(
    urls: tuple[str, ...],
    workers: int | None,
    retries: int | None,
    timeout: float | None,
    cache_root: str | None,
    index_path: str | None,
    ttl: int | None,
    query_params: tuple[str, ...],
    all_query: bool,
    headers: tuple[str, ...],
    verbose: int,
) -> None:
    """Download URL(s) into the cache and print the cached paths."""
    cache = _open_cache(
        cache_root, index_path, ttl, query_params, all_query, headers, verbose,
        max_workers=workers, retries=retries, timeout_seconds=timeout,
    )
    results = _run(cache, lambda c: c.prefetch(list(urls)))

    failed = False
    for result in results:
        if result.ok:
            console.print(result.path, soft_wrap=True, highlight=False)
        else:
            failed = True
            error_console.print(f"[red]Failed:[/red] {result.url}: {result.error}")
    if failed:
        sys.exit(1)


@cli.command()
@click.argument("url")
@click.argument("seed_path", type=click.Path(exists=True, dir_okay=False))
@_cache_options
def seed(
    url: str,
    seed_path: str,
    cache_root: str | None,
    index_path: str | None,
    ttl: int | None,
    query_params: tuple[str, ...],
    all_query: bool,
    headers: tuple[str, ...],
    verbose: int,
) -> None:
    """Register a local file as the cached copy of URL."""
    cache = _open_cache(cache_root, index_path, ttl, query_params, all_query, headers, verbose)
    path = _run(cache, lambda c: c.seed(url, seed_path))
    console.print(path, soft_wrap=True, highlight=False)


@cli.command()
@click.argument("url")
@_cache_options
def delete(
    url: str,
    cache_root: str | None,
    index_path: str | None,
    ttl: int | None,
    query_params: tuple[str, ...],
    all_query: bool,
    headers: tuple[str, ...],
    verbose: int,
) -> None:
    """Remove URL from the cache."""
    cache = _open_cache(cache_root, index_path, ttl, query_params, all_query, headers, verbose)
    _run(cache, lambda c: c.delete(url))
    console.print(f"[green]Deleted {url}[/green]")


@cli.group()
def cache() -> None:
    """Cache management commands."""


@cache.command("info")
@click.option("--cache-root", type=click.Path(file_okay=False), default=None)
@click.option("--index-path", type=click.Path(dir_okay=False), default=None)
def cache_info(cache_root: str | None, index_path: str | None) -> None:
    """Show what is stored in the cache."""
    image_cache = _open_cache(cache_root, index_path, None, (), False, ())
    info = _run(image_cache, lambda c: c.info())

    table = Table(title="Cache Info", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    table.add_row("Root", str(image_cache.manager.options.cache_root))
    table.add_row("Files", str(len(info.files)))
    table.add_row("Host buckets", str(sum(1 for e in info.entries if e.is_directory)))
    table.add_row("Total size (MB)", f"{info.total_size / (1024 * 1024):.2f}")

    console.print(table)


@cache.command("clear")
@click.option("--cache-root", type=click.Path(file_okay=False), default=None)
@click.option("--index-path", type=click.Path(dir_okay=False), default=None)
@click.confirmation_option(prompt="Are you sure you want to clear the cache?")
def cache_clear(cache_root: str | None, index_path: str | None) -> None:
    """Delete every cached file and index entry."""
    image_cache = _open_cache(cache_root, index_path, None, (), False, ())
    _run(image_cache, lambda c: c.clear())
    console.print("[green]Cache cleared.[/green]")


def main() -> None:
    """Entry point for the CLI."""
    cli()
