"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from pexels_cli import __version__
from pexels_cli.core.organizer import Organizer
from pexels_cli.core.session import MediaSession
from pexels_cli.exceptions import ConfigurationError, PexelsCliError
from pexels_cli.models.config import AppConfig
from pexels_cli.models.media import SearchParams
from pexels_cli.models.records import (
    BatchFetchOptions,
    FetchOptions,
    FilterCriteria,
    ListOptions,
    OrganizeOptions,
)
from pexels_cli.storage.config_manager import ConfigManager

from .formatters import (
    print_config,
    print_downloaded_table,
    print_fetch_results,
    print_organize_result,
    print_preview,
    print_schemes,
    print_search_results,
    print_usage_stats,
    print_validation_table,
    print_video_details,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("pexels_cli")

app = typer.Typer(
    name="pexels-cli",
    help=(
        "Fetch, deduplicate and organize stock videos from Pexels. Use"
        " 'pexels-cli <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "pexels-cli"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"

# Set by -v; stops the config file's log_level from lowering verbosity again
_verbosity_from_cli = False


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="Also write plain-text logs to this file."
    ),
):
    """Pexels Video CLI"""
    global _verbosity_from_cli

    if version:
        console.print(f"[bold]pexels-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    if verbose:
        _verbosity_from_cli = True
        logging.getLogger("pexels_cli").setLevel("DEBUG" if verbose >= 2 else "INFO")

    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logging.getLogger("pexels_cli").addHandler(handler)

    if show_config:
        config = _load_config()
        print_config(CONFIG_FILE, config)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


def _load_config(cli_options: dict[str, Any] | None = None) -> AppConfig:
    """Loads the configuration, exiting with a message when it is invalid."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config(cli_options)
    except ConfigurationError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e
    if not _verbosity_from_cli:
        logging.getLogger("pexels_cli").setLevel(config.log_level)
    return config


def _require_api_key(config: AppConfig) -> None:
    if not config.api_key:
        console.print(
            "[red]✗ No Pexels API key configured.[/] Run [cyan]pexels-cli init"
            " <API_KEY>[/cyan] or set PEXELS_API_KEY."
        )
        raise typer.Exit(code=1)


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, ensure_ascii=False))


def _load_custom_rules(rules_file: Optional[Path]) -> Optional[dict[str, list[str]]]:
    if rules_file is None:
        return None
    try:
        with open(rules_file, encoding="utf-8") as f:
            rules = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]✗ Could not read custom rules: {e}[/red]")
        raise typer.Exit(code=1) from e
    if not isinstance(rules, dict) or not all(
        isinstance(v, list) for v in rules.values()
    ):
        console.print(
            "[red]✗ Custom rules must map category names to keyword lists.[/red]"
        )
        raise typer.Exit(code=1)
    return rules


def _cli_options(**options: Any) -> dict[str, Any]:
    return {key: value for key, value in options.items() if value is not None}


@app.command()
def init(
    api_key: str = typer.Argument(..., help="Your Pexels API key."),
    download_path: Optional[str] = typer.Option(
        None, "--download-path", "-d", help="Where downloaded videos are stored."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration."
    ),
):
    """Initialize configuration with a Pexels API key."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = _cli_options(api_key=api_key, download_path=download_path)
    try:
        AppConfig(**settings)
        ConfigManager(CONFIG_FILE).save_new_config(settings)
    except (ValueError, ConfigurationError) as e:
        console.print(f"[red]✗ Could not save configuration: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready to go! Try: [cyan]pexels-cli search ocean[/cyan]")


@app.command()
def search(
    query: str = typer.Argument(..., help="What to search for."),
    orientation: Optional[str] = typer.Option(
        None, "--orientation", help="landscape, portrait or square."
    ),
    size: Optional[str] = typer.Option(None, "--size", help="large, medium or small."),
    min_duration: Optional[int] = typer.Option(
        None, "--min-duration", help="Minimum length in seconds."
    ),
    max_duration: Optional[int] = typer.Option(
        None, "--max-duration", help="Maximum length in seconds."
    ),
    per_page: int = typer.Option(15, "--per-page", "-n", help="Results per page (max 80)."),
    page: int = typer.Option(1, "--page", "-p", help="Results page."),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
):
    """Search Pexels for videos."""
    config = _load_config()
    _require_api_key(config)
    try:
        params = SearchParams(
            query=query,
            orientation=orientation,
            size=size,
            min_duration=min_duration,
            max_duration=max_duration,
            per_page=per_page,
            page=page,
        )
    except ValueError as e:
        console.print(f"[red]✗ Invalid search options: {e}[/red]")
        raise typer.Exit(code=1) from e

    async def _search():
        async with MediaSession(config) as session:
            return await session.search_videos(params)

    result = asyncio.run(_search())
    if as_json:
        _print_json(result.model_dump(mode="json"))
    else:
        print_search_results(result)


@app.command()
def details(
    video_id: int = typer.Argument(..., help="Pexels video ID."),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
):
    """Show a video's metadata and available renditions."""
    config = _load_config()
    _require_api_key(config)

    async def _details():
        async with MediaSession(config) as session:
            return await session.get_video_details(video_id)

    video = asyncio.run(_details())
    if as_json:
        _print_json(video.model_dump(mode="json"))
    else:
        print_video_details(video)


@app.command(name="download")
def download_command(
    video_ids: list[int] = typer.Argument(..., help="One or more Pexels video IDs."),  # noqa: B008
    quality: Optional[str] = typer.Option(
        None, "-q", "--quality", help="Preferred quality: hd, sd or mobile."
    ),
    filename: Optional[str] = typer.Option(
        None, "--filename", help="Custom filename (single video only)."
    ),
    category: Optional[str] = typer.Option(
        None, "--category", "-c", help="Store under this category folder."
    ),
    download_path: Optional[str] = typer.Option(
        None, "--download-path", "-d", help="Override the download folder."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
):
    """Download videos by ID."""
    if filename and len(video_ids) > 1:
        console.print("[red]✗ --filename can only be used with a single video.[/red]")
        raise typer.Exit(code=1)

    config = _load_config(
        _cli_options(default_quality=quality, download_path=download_path)
    )
    _require_api_key(config)
    options = FetchOptions(
        quality=config.default_quality, filename=filename, category=category
    )

    async def _download():
        async with MediaSession(config) as session:
            return await asyncio.gather(
                *(session.download_video(video_id, options) for video_id in video_ids)
            )

    console.print("[bold cyan]🎬 Starting download session...[/bold cyan]")
    start_time = time.monotonic()
    results = asyncio.run(_download())
    duration = time.monotonic() - start_time

    if as_json:
        _print_json([r.model_dump(mode="json") for r in results])
    else:
        print_fetch_results(list(results), duration)
    if any(r.status == "failed" for r in results):
        raise typer.Exit(code=1)


@app.command()
def batch(
    query: str = typer.Argument(..., help="Search query selecting the candidates."),
    max_videos: int = typer.Option(10, "--max", "-m", help="Maximum videos to download."),
    quality: Optional[str] = typer.Option(
        None, "-q", "--quality", help="Preferred quality: hd, sd or mobile."
    ),
    category: Optional[str] = typer.Option(
        None, "--category", "-c", help="Store under this category folder."
    ),
    orientation: Optional[str] = typer.Option(None, "--orientation"),
    per_page: int = typer.Option(15, "--per-page", "-n", help="Candidates to fetch."),
    min_width: Optional[int] = typer.Option(None, "--min-width"),
    min_height: Optional[int] = typer.Option(None, "--min-height"),
    preferred_fps: Optional[float] = typer.Option(None, "--fps"),
    exclude: Optional[list[int]] = typer.Option(  # noqa: B008
        None, "--exclude", help="Video IDs to skip; may be repeated."
    ),
    workers: Optional[int] = typer.Option(
        None, "-w", "--workers", help="Number of simultaneous downloads."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
):
    """Search and download several videos at once."""
    config = _load_config(
        _cli_options(default_quality=quality, max_concurrent_downloads=workers)
    )
    _require_api_key(config)

    filter_criteria = None
    if any(v is not None for v in (min_width, min_height, preferred_fps)) or exclude:
        filter_criteria = FilterCriteria(
            min_width=min_width,
            min_height=min_height,
            preferred_fps=preferred_fps,
            exclude_ids=exclude or [],
        )
    try:
        params = SearchParams(query=query, orientation=orientation, per_page=per_page)
        options = BatchFetchOptions(
            max_videos=max_videos,
            quality=config.default_quality,
            category=category,
            filter_criteria=filter_criteria,
        )
    except ValueError as e:
        console.print(f"[red]✗ Invalid batch options: {e}[/red]")
        raise typer.Exit(code=1) from e

    async def _batch():
        async with MediaSession(config) as session:
            return await session.batch_download(params, options)

    console.print("[bold cyan]🎬 Starting batch download...[/bold cyan]")
    start_time = time.monotonic()
    results = asyncio.run(_batch())
    duration = time.monotonic() - start_time

    if as_json:
        _print_json([r.model_dump(mode="json") for r in results])
    else:
        print_fetch_results(results, duration)


@app.command(name="list")
def list_command(
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    sort_by: str = typer.Option(
        "date", "--sort", "-s", help="date, size, duration or name."
    ),
    limit: int = typer.Option(50, "--limit", "-l"),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
):
    """List downloaded videos."""
    config = _load_config()
    try:
        options = ListOptions(category=category, sort_by=sort_by, limit=limit)
    except ValueError as e:
        console.print(f"[red]✗ Invalid list options: {e}[/red]")
        raise typer.Exit(code=1) from e

    async def _list():
        async with MediaSession(config) as session:
            return await session.list_downloaded(options)

    records = asyncio.run(_list())
    if as_json:
        _print_json([r.model_dump(mode="json") for r in records])
    else:
        print_downloaded_table(records)


@app.command()
def organize(
    scheme: str = typer.Option(
        "emotion", "--scheme", "-s", help="emotion, energy, color, duration or custom."
    ),
    rules_file: Optional[Path] = typer.Option(
        None, "--rules", help="JSON file mapping categories to keywords (custom)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
):
    """Move downloaded videos into category folders."""
    config = _load_config()
    options = OrganizeOptions(
        organization_scheme=scheme, custom_rules=_load_custom_rules(rules_file)
    )

    async def _organize():
        async with MediaSession(config) as session:
            return await session.organize(options)

    result = asyncio.run(_organize())
    if as_json:
        _print_json(result.model_dump(mode="json"))
    else:
        print_organize_result(result)
    if result.status == "failed":
        raise typer.Exit(code=1)


@app.command()
def preview(
    scheme: str = typer.Option(
        "emotion", "--scheme", "-s", help="emotion, energy, color, duration or custom."
    ),
    rules_file: Optional[Path] = typer.Option(
        None, "--rules", help="JSON file mapping categories to keywords (custom)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
):
    """Show how videos would be organized, without moving anything."""
    config = _load_config()
    options = OrganizeOptions(
        organization_scheme=scheme, custom_rules=_load_custom_rules(rules_file)
    )

    async def _preview():
        async with MediaSession(config) as session:
            return await session.preview(options)

    result = asyncio.run(_preview())
    if as_json:
        _print_json(
            {
                category: [r.model_dump(mode="json") for r in records]
                for category, records in result.items()
            }
        )
    else:
        print_preview(result)


@app.command()
def schemes(
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
):
    """List the built-in organization schemes and their keywords."""
    tables = {
        name: Organizer.scheme_details(name) or {}
        for name in Organizer.available_schemes()
    }
    if as_json:
        _print_json(tables)
    else:
        print_schemes(tables)


@app.command()
def stats(
    period: str = typer.Option("hour", "--period", "-p", help="hour, day or month."),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
):
    """Show API and download usage statistics."""
    if period not in ("hour", "day", "month"):
        console.print("[red]✗ Period must be one of: hour, day, month.[/red]")
        raise typer.Exit(code=1)
    config = _load_config()

    async def _stats():
        async with MediaSession(config) as session:
            return await session.usage_stats(period)

    stats_data = asyncio.run(_stats())
    if as_json:
        _print_json(stats_data)
    else:
        print_usage_stats(stats_data)


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        print_validation_table(config)
    except PexelsCliError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e
