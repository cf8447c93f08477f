#!/usr/bin/env python3
"""Command-line interface for ytsource.

This CLI is primarily for debugging and development.
For production use, embed ytsource as a library.
"""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import click
from pydantic import BaseModel
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ytsource import create_source
from ytsource.config import SourceConfig
from ytsource.exceptions import YTSourceError
from ytsource.host import LocalHost
from ytsource.models.enums import Platform
from ytsource.models.media import (
    AudioPlaybackInfo,
    DownloadInfo,
    MediaCollection,
    MediaFeedSection,
    MediaItem,
    VideoPlaybackInfo,
)
from ytsource.source import YouTubeSource
from ytsource.utils.url import parse_browse_id, parse_content_id

logger = logging.getLogger("ytsource")

T = TypeVar("T")

DEFAULT_CACHE_DIR = Path(".ytsource-cache")


@dataclass(frozen=True)
class SourceOptions:
    """Options shared by every command."""

    platform: Platform
    cache_dir: Path
    cookies: Path | None


def setup_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Configure logging with Rich handler.

    Args:
        verbose: If True, set log level to DEBUG. Otherwise WARNING.
        console: Optional Console instance to use for RichHandler.
    """
    level = logging.DEBUG if verbose else logging.WARNING

    # Clear existing handlers to allow reconfiguration
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = RichHandler(
        rich_tracebacks=True,
        show_path=False,
        console=console,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    root_logger.setLevel(level)
    root_logger.addHandler(handler)


def run_with_source(
    options: SourceOptions, operation: Callable[[YouTubeSource], Awaitable[T]]
) -> T:
    """Run one source operation on a fresh event loop.

    Raises:
        click.ClickException: If the operation fails.
    """

    async def runner() -> T:
        host = LocalHost(options.cache_dir, platform=options.platform)
        config = SourceConfig(cookies_path=options.cookies)
        source = create_source(host, config, forward_logs=False)
        try:
            return await operation(source)
        finally:
            await source.dispose()
            await host.aclose()

    try:
        return asyncio.run(runner())
    except YTSourceError as e:
        logger.error(str(e))
        raise click.ClickException(str(e)) from e
    except Exception as e:
        logger.exception("Unexpected error")
        raise click.ClickException(f"Unexpected error: {e}") from e


def print_json(data: Any) -> None:
    """Dump models (or lists of them) as JSON to stdout."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    elif isinstance(data, list):
        data = [d.model_dump(mode="json") if isinstance(d, BaseModel) else d for d in data]
    json.dump(data, sys.stdout, indent=2, ensure_ascii=False, default=str)
    sys.stdout.write("\n")


def format_duration(seconds: int) -> str:
    """Format seconds as M:SS or H:MM:SS; empty for unknown durations."""
    if seconds <= 0:
        return ""
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def print_section_header(console: Console, title: str, subtitle: str = "") -> None:
    """Print a section header with optional subtitle."""
    header = f"  {title.upper()}"
    if subtitle:
        header += f"  [dim]│[/dim]  {subtitle}"
    console.print()
    console.rule(style="dim")
    console.print(header)
    console.rule(style="dim")


def print_items(console: Console, items: list[MediaItem], title: str) -> None:
    """Print tracks as a table."""
    if not items:
        console.print("[yellow]No results[/yellow]")
        return
    table = Table(title=title, title_justify="left", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", overflow="fold")
    table.add_column("Artist", overflow="fold")
    table.add_column("Duration", justify="right")
    for index, item in enumerate(items, 1):
        table.add_row(
            str(index),
            item.content_id,
            item.title,
            item.artist or "",
            format_duration(item.duration),
        )
    console.print(table)


def print_card(console: Console, title: str, rows: list[tuple[str, str]]) -> None:
    """Print key/value rows as a vertical card."""
    table = Table(
        show_header=False,
        padding=(0, 1),
        title=f"[bold yellow]{title}[/bold yellow]",
        title_justify="left",
    )
    table.add_column("Field", style="bold cyan", width=14)
    table.add_column("Value", overflow="fold")
    for field, value in rows:
        table.add_row(field, value)
    console.print()
    console.print(table)


def print_feed(console: Console, sections: list[MediaFeedSection]) -> None:
    if not sections:
        console.print("[yellow]Home feed is empty[/yellow]")
        return
    for section in sections:
        print_section_header(console, section.title, section.type)
        table = Table(show_header=True)
        table.add_column("Type", style="magenta", no_wrap=True)
        table.add_column("Title", overflow="fold")
        table.add_column("Subtitle", overflow="fold", style="dim")
        table.add_column("ID", style="cyan", no_wrap=True)
        for item in section.items:
            table.add_row(item.type, item.title, item.subtitle, item.track_id or item.id)
        console.print(table)


def print_collection(console: Console, collection: MediaCollection) -> None:
    kind = collection.collection_type or "collection"
    print_section_header(console, str(kind), collection.title)
    if collection.subtitle:
        console.print(f"[dim]{collection.subtitle}[/dim]")
    if collection.thumbnail:
        console.print(f"[dim]Cover: {collection.thumbnail}[/dim]")
    print_items(console, collection.items, f"{len(collection.items)} tracks")


def print_audio(console: Console, content_id: str, info: AudioPlaybackInfo | DownloadInfo) -> None:
    rows = [("URL", info.url)]
    rows += [(f"Header {name}", value) for name, value in info.headers.items()]
    if isinstance(info, DownloadInfo):
        rows.append(("Size", f"{info.content_length} bytes" if info.content_length else "unknown"))
    print_card(console, f"Audio {content_id}", rows)


def print_video(console: Console, content_id: str, info: VideoPlaybackInfo) -> None:
    if info.is_hls:
        mode = "HLS"
    elif info.is_dash:
        mode = "DASH"
    else:
        mode = "Progressive"
    print_card(
        console,
        f"Video {content_id}",
        [
            ("URL", info.url),
            ("Mode", mode),
            ("Has audio", "yes" if info.has_audio else "no"),
            ("Default", f"{info.default_height}p" if info.default_height else "auto"),
        ],
    )
    if not info.qualities:
        return
    table = Table(title="Qualities", title_justify="left")
    table.add_column("Label")
    table.add_column("Height", justify="right")
    table.add_column("Audio")
    table.add_column("Bitrate", justify="right")
    for quality in info.qualities:
        table.add_row(
            quality.label,
            str(quality.height),
            "yes" if quality.has_audio else "no",
            f"{quality.bitrate // 1000} kbps" if quality.bitrate else "",
        )
    console.print(table)


# ============================================================================
# COMMANDS
# ============================================================================


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "--platform",
    type=click.Choice([p.value for p in Platform]),
    default=Platform.ANDROID.value,
    show_default=True,
    help="Player platform to resolve streams for.",
)
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_CACHE_DIR,
    show_default=True,
    help="Directory for generated manifests.",
)
@click.option(
    "--cookies",
    type=click.Path(exists=True, path_type=Path),
    help="Path to cookies.txt for authenticated requests.",
)
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    platform: str,
    cache_dir: Path,
    cookies: Path | None,
) -> None:
    """Resolve and browse YouTube and YouTube Music content."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["options"] = SourceOptions(Platform(platform), cache_dir, cookies)
    setup_logging(verbose=verbose)


@main.command(name="search")
@click.argument("query")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def search_cmd(ctx: click.Context, query: str, as_json: bool) -> None:
    """Search for videos."""
    items = run_with_source(ctx.obj["options"], lambda source: source.search(query))
    if as_json:
        print_json(items)
    else:
        print_items(Console(), items, f"Results for '{query}'")


@main.command(name="suggest")
@click.argument("query")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def suggest_cmd(ctx: click.Context, query: str, as_json: bool) -> None:
    """Show search completions for a partial query."""
    suggestions = run_with_source(
        ctx.obj["options"], lambda source: source.get_search_suggestions(query)
    )
    if as_json:
        print_json(suggestions)
        return
    console = Console()
    if not suggestions:
        console.print("[yellow]No suggestions[/yellow]")
    for suggestion in suggestions:
        console.print(f"  {suggestion}")


@main.command(name="audio")
@click.argument("content", metavar="ID_OR_URL")
@click.option("--direct", is_flag=True, help="Skip HLS and resolve a direct stream.")
@click.option("--download", is_flag=True, help="Resolve for offline download.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def audio_cmd(
    ctx: click.Context, content: str, direct: bool, download: bool, as_json: bool
) -> None:
    """Resolve the audio stream of a video.

    \b
    Examples:
      ytsource audio dQw4w9WgXcQ
      ytsource --platform ios audio "https://music.youtube.com/watch?v=dQw4w9WgXcQ"
      ytsource audio --download dQw4w9WgXcQ
    """
    try:
        content_id = parse_content_id(content)
    except YTSourceError as e:
        raise click.ClickException(str(e)) from e

    async def operation(source: YouTubeSource) -> AudioPlaybackInfo | DownloadInfo:
        if download:
            return await source.get_download_info(content_id)
        if direct:
            return await source.get_direct_audio_url(content_id)
        return await source.get_audio_url(content_id)

    info = run_with_source(ctx.obj["options"], operation)
    if as_json:
        print_json(info)
    else:
        print_audio(Console(), content_id, info)


@main.command(name="video")
@click.argument("content", metavar="ID_OR_URL")
@click.option("--height", type=int, help="Resolve the stream of exactly this height.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def video_cmd(
    ctx: click.Context, content: str, height: int | None, as_json: bool
) -> None:
    """Resolve a video stream and its quality ladder.

    With --height on the ios platform, a single-resolution HLS manifest
    is written to the cache directory.
    """
    try:
        content_id = parse_content_id(content)
    except YTSourceError as e:
        raise click.ClickException(str(e)) from e

    async def operation(
        source: YouTubeSource,
    ) -> tuple[VideoPlaybackInfo | None, str | None]:
        info = await source.get_video_info(content_id)
        if height is None or info is None:
            return info, None
        if info.is_hls:
            return info, source.get_filtered_hls_url(height)
        quality = await source.get_video_url_for_quality(content_id, height)
        return info, quality.url if quality else None

    info, height_url = run_with_source(ctx.obj["options"], operation)
    if info is None:
        raise click.ClickException(f"Video {content_id} is not playable")

    if as_json:
        data = info.model_dump(mode="json")
        if height is not None:
            data["height_url"] = height_url
        print_json(data)
        return

    console = Console()
    print_video(console, content_id, info)
    if height is not None:
        if height_url:
            console.print(f"\n[green]{height}p:[/green] {height_url}")
        else:
            console.print(f"\n[yellow]No {height}p stream[/yellow]")


@main.command(name="feed")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def feed_cmd(ctx: click.Context, as_json: bool) -> None:
    """Show the YouTube Music home feed."""
    sections = run_with_source(ctx.obj["options"], lambda source: source.get_home_feed())
    if as_json:
        print_json(sections)
    else:
        print_feed(Console(), sections)


@main.command(name="collection")
@click.argument("browse", metavar="ID_OR_URL")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def collection_cmd(ctx: click.Context, browse: str, as_json: bool) -> None:
    """Show a playlist or album.

    \b
    Examples:
      ytsource collection MPREb_xxx
      ytsource collection "https://music.youtube.com/playlist?list=PLxxx"
    """
    try:
        browse_id = parse_browse_id(browse)
    except YTSourceError as e:
        raise click.ClickException(str(e)) from e

    collection = run_with_source(
        ctx.obj["options"], lambda source: source.get_collection(browse_id)
    )
    if as_json:
        print_json(collection)
    else:
        print_collection(Console(), collection)


@main.command(name="related")
@click.argument("content", metavar="ID_OR_URL")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def related_cmd(ctx: click.Context, content: str, as_json: bool) -> None:
    """Show tracks related to a video."""
    try:
        content_id = parse_content_id(content)
    except YTSourceError as e:
        raise click.ClickException(str(e)) from e

    items = run_with_source(
        ctx.obj["options"], lambda source: source.get_suggestions(content_id)
    )
    if as_json:
        print_json(items)
    else:
        print_items(Console(), items, f"Related to {content_id}")


if __name__ == "__main__":
    main()
