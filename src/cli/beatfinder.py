#!/usr/bin/env python3
"""Command-line access to beat search, MP3 resolution and the rankings.

Usage:
    # Resolve a beat to an MP3 URL (and optionally save it)
    python -m cli.beatfinder resolve dQw4w9WgXcQ --title "Dark Trap Beat" --save

    # Show the top of the leaderboard
    python -m cli.beatfinder rankings --limit 20

    # Search beats
    python -m cli.beatfinder search "drill"
"""

import argparse
import asyncio
import sys
import webbrowser
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

import httpx
from rich.console import Console
from rich.table import Table

from models.resolution import ManualHandoff, Resolved, TimedOut
from services.audio_downloader import AudioDownloader, DownloadError
from services.document_store import DocumentStore
from services.extraction_backends import build_default_backends
from services.ranking_ledger import RankingLedger
from services.resolver import Resolver
from services.youtube_search import SearchServiceError, YouTubeSearchService
from utils.config import load_config, setup_logging, validate_config

console = Console()


def open_download_tool(handoff: ManualHandoff) -> None:
    """Manual tier handoff: show the link to paste and open the tool."""
    console.print(f"[yellow]Paste this link into the download tool:[/yellow] {handoff.source_url}")
    webbrowser.open_new_tab(handoff.tool_url)


async def resolve_command(config: dict, video_id: str, title: str | None, save: bool) -> int:
    async with httpx.AsyncClient(follow_redirects=True, timeout=None) as client:
        resolver = Resolver(build_default_backends(config, client=client, handoff=open_download_tool))
        with console.status(f"Resolving {video_id}..."):
            result = await resolver.resolve(video_id, title=title)

    if isinstance(result, Resolved):
        console.print(f"[green]✓ {result.suggested_filename}[/green] via {result.backend_name}")
        console.print(result.audio_url)
        if save:
            try:
                path = await AudioDownloader(config["downloads_dir"]).download(result)
            except DownloadError as e:
                console.print(f"[red]✗ {e}[/red]")
                return 1
            console.print(f"[green]Saved to {path}[/green]")
        return 0

    label = "timed out" if isinstance(result, TimedOut) else "exhausted"
    console.print(f"[red]✗ Resolution {label}[/red]")
    for attempt in result.attempts:
        console.print(f"  [dim]{attempt.backend_name}: {attempt.outcome.value} {attempt.detail or ''}[/dim]")
    if result.hint:
        console.print(f"[yellow]Manual download:[/yellow] {result.hint.tool_url}")
    return 1


async def rankings_command(config: dict, limit: int) -> int:
    store = DocumentStore(config["database_path"])
    await store.connect()
    try:
        aggregates = await RankingLedger(store).get_leaderboard(limit)
    finally:
        await store.close()

    table = Table(title="Rankings")
    table.add_column("#", justify="right")
    table.add_column("Beat")
    table.add_column("Channel")
    table.add_column("👍", justify="right")
    table.add_column("👎", justify="right")
    table.add_column("Net", justify="right")
    for position, beat in enumerate(aggregates, start=1):
        table.add_row(
            str(position), beat.title, beat.channel_title, str(beat.likes), str(beat.dislikes), str(beat.net_votes)
        )
    console.print(table)
    return 0


async def search_command(config: dict, query: str) -> int:
    service = YouTubeSearchService(config.get("youtube_api_key") or "")
    try:
        page = await service.search_beats(query)
    except SearchServiceError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1

    table = Table(title=f"Beats for '{query}'")
    table.add_column("Video")
    table.add_column("Title")
    table.add_column("BPM", justify="right")
    table.add_column("Type")
    for beat in page.beats:
        table.add_row(beat.video_id, beat.title, str(beat.bpm or ""), beat.type_beat or "")
    console.print(table)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="BeatFinder command-line tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a video to an MP3 URL")
    resolve_parser.add_argument("video_id")
    resolve_parser.add_argument("--title", help="Title used for the file name")
    resolve_parser.add_argument("--save", action="store_true", help="Download the MP3 to the downloads folder")

    rankings_parser = subparsers.add_parser("rankings", help="Show the leaderboard")
    rankings_parser.add_argument("--limit", type=int, default=50)

    search_parser = subparsers.add_parser("search", help="Search beats on YouTube")
    search_parser.add_argument("query")

    args = parser.parse_args()
    config = load_config()
    setup_logging("DEBUG" if args.verbose else config["log_level"])

    if args.command == "search":
        errors = [e for e in validate_config(config) if "YOUTUBE_API_KEY" in e]
        if errors:
            for error in errors:
                console.print(f"[red]{error}[/red]")
            sys.exit(1)
        sys.exit(asyncio.run(search_command(config, args.query)))
    elif args.command == "resolve":
        sys.exit(asyncio.run(resolve_command(config, args.video_id, args.title, args.save)))
    elif args.command == "rankings":
        if args.limit <= 0:
            parser.error("--limit must be positive")
        sys.exit(asyncio.run(rankings_command(config, args.limit)))


if __name__ == "__main__":
    main()
