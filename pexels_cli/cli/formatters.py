"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from pexels_cli.models.config import AppConfig, get_quality_info
from pexels_cli.models.media import SearchPage, Video
from pexels_cli.models.records import AssetRecord, FetchResult, OrganizeResult
from pexels_cli.utils.formatting import format_duration, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "AuthenticationError": [
            "• Check the API key in your configuration file.",
            "• Run `pexels-cli init <API_KEY>` to store a new key.",
            "• Or export PEXELS_API_KEY in your environment.",
        ],
        "RateLimitExceededError": [
            "• Pexels allows 200 requests per hour by default.",
            "• Wait for the quota to reset, then try again.",
        ],
        "VideoNotFoundError": [
            "• Double-check the video ID.",
            "• The video may have been removed from Pexels.",
        ],
        "ProviderUnavailableError": [
            "• A network connection issue occurred.",
            "• The Pexels API might be temporarily unavailable.",
            "• Please try again in a few minutes.",
        ],
        "InvalidSchemeError": [
            "• Use one of: emotion, energy, color, duration, custom.",
            "• The custom scheme needs --rules pointing at a JSON file.",
        ],
        "LedgerUnreadableError": [
            "• metadata.json in your download folder may be corrupt.",
            "• Restore it from a backup or move it aside to start fresh.",
        ],
        "ConfigurationError": [
            "• Run `pexels-cli validate` to see which setting is wrong.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config: AppConfig):
    """Displays the current configuration, hiding the API key."""
    console = Console()
    content = ""
    for key, value in config.model_dump(exclude={"config_path"}).items():
        if key == "api_key":
            value = "[hidden]" if value else "[not set]"
        content += f"{key} = {escape(str(value))}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: AppConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    quality_info = get_quality_info(config.default_quality)
    table.add_row(
        "API Key:", "[green]✓ Set[/green]" if config.api_key else "[red]✗ Missing[/red]"
    )
    table.add_row("Download Path:", f"[dim]{escape(config.download_path)}[/dim]")
    table.add_row(
        "Default Quality:",
        f"[{quality_info['color']}]{quality_info['name']}[/{quality_info['color']}]",
    )
    table.add_row("Max Concurrent:", str(config.max_concurrent_downloads))
    table.add_row("Cache Duration:", format_duration(config.cache_duration))
    table.add_row("Usage Tracking:", "✓ Enabled" if config.track_usage else "✗ Disabled")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_search_results(page: SearchPage):
    console = Console()
    table = Table(
        title=f"Results {len(page.videos)} of {page.total_results} (page {page.page})",
        box=box.ROUNDED,
    )
    table.add_column("ID", style="bold magenta", no_wrap=True)
    table.add_column("Size", justify="right")
    table.add_column("Length", justify="right")
    table.add_column("Renditions", style="dim")
    table.add_column("Tags", style="cyan")
    for video in page.videos:
        qualities = sorted({f.quality for f in video.video_files if f.quality})
        table.add_row(
            str(video.id),
            f"{video.width}x{video.height}",
            format_duration(video.duration),
            ", ".join(qualities),
            escape(", ".join(video.tags[:5])),
        )
    console.print(table)
    console.print(
        f"[dim]Rate limit: {page.rate_limit.remaining} requests left, "
        f"resets in {format_duration(page.rate_limit.reset_in)}[/dim]"
    )


def print_video_details(video: Video):
    console = Console()
    info = Table(show_header=False, box=None, padding=(0, 2))
    info.add_column(style="bold cyan")
    info.add_column()
    info.add_row("Dimensions:", f"{video.width}x{video.height}")
    info.add_row("Duration:", format_duration(video.duration))
    info.add_row("By:", escape(video.user.name or "Unknown"))
    info.add_row("Page:", f"[dim]{escape(video.url)}[/dim]")
    info.add_row("Tags:", escape(", ".join(video.tags)) or "[dim]none[/dim]")

    files = Table(box=box.SIMPLE)
    files.add_column("Quality", style="magenta")
    files.add_column("Type")
    files.add_column("Resolution", justify="right")
    files.add_column("FPS", justify="right")
    for f in video.video_files:
        files.add_row(
            f.quality or "?",
            f.file_type,
            f"{f.width or '?'}x{f.height or '?'}",
            f"{f.fps:g}" if f.fps else "?",
        )

    content = Table.grid(padding=(1, 0))
    content.add_row(info)
    content.add_row(files)
    console.print(
        Panel(content, title=f"[bold]Video {video.id}[/bold]", border_style="cyan")
    )


def print_fetch_results(results: list[FetchResult], duration_s: float):
    """Displays per-video outcomes and a summary of a download session."""
    console = Console()
    table = Table(box=box.ROUNDED)
    table.add_column("ID", style="bold magenta")
    table.add_column("Status")
    table.add_column("Size", justify="right")
    table.add_column("Details")
    for result in results:
        if result.status == "success":
            status = "[green]✓[/green]"
            details = f"[dim]{escape(result.local_path)}[/dim]"
        else:
            status = "[red]✗[/red]"
            details = f"[red]{escape(result.error or 'unknown error')}[/red]"
        table.add_row(str(result.video_id), status, format_size(result.file_size), details)
    console.print(table)

    succeeded = [r for r in results if r.status == "success"]
    failed = len(results) - len(succeeded)
    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column(style="bold cyan", justify="right")
    summary.add_column()
    summary.add_row("✓ Downloaded:", f"[bold green]{len(succeeded)}[/bold green]")
    if failed:
        summary.add_row("✗ Failed:", f"[bold red]{failed}[/bold red]")
    summary.add_row(
        "Total Size:",
        f"[cyan]{format_size(sum(r.file_size for r in succeeded))}[/cyan]",
    )
    summary.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")
    console.print(
        Panel(
            summary,
            title="🎬 [bold]Download Complete![/bold]",
            border_style="green" if not failed else "yellow",
            box=box.DOUBLE,
            expand=False,
        )
    )


def print_downloaded_table(records: list[AssetRecord]):
    console = Console()
    if not records:
        console.print("[dim]No downloaded videos yet.[/dim]")
        return
    table = Table(title=f"Downloaded Videos ({len(records)})", box=box.ROUNDED)
    table.add_column("ID", style="bold magenta")
    table.add_column("Filename")
    table.add_column("Category", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Length", justify="right")
    table.add_column("Downloaded", style="dim")
    for r in records:
        table.add_row(
            str(r.id),
            escape(r.filename),
            escape(r.category or "-"),
            format_size(r.file_size),
            format_duration(r.pexels_metadata.duration),
            r.download_date[:19].replace("T", " "),
        )
    console.print(table)


def print_organize_result(result: OrganizeResult):
    console = Console()
    ok = result.status == "success"
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column()
    table.add_row("Files Moved:", f"[green]{result.moved_files}[/green]")
    table.add_row(
        "Categories:",
        escape(", ".join(result.categories_created)) or "[dim]none[/dim]",
    )
    if result.errors:
        table.add_row("Errors:", f"[red]{len(result.errors)}[/red]")
        for error in result.errors:
            table.add_row("", f"[red]• {escape(error)}[/red]")
    console.print(
        Panel(
            table,
            title="[bold green]✓ Organized[/bold green]"
            if ok
            else "[bold red]✗ Organization Failed[/bold red]",
            border_style="green" if ok else "red",
            expand=False,
        )
    )


def print_preview(preview: dict[str, list[AssetRecord]]):
    console = Console()
    if not preview:
        console.print("[dim]No videos matched any category.[/dim]")
        return
    for category, records in preview.items():
        table = Table(
            title=f"[bold cyan]{escape(category)}[/bold cyan] ({len(records)})",
            box=box.SIMPLE,
        )
        table.add_column("ID", style="magenta")
        table.add_column("Filename")
        table.add_column("Tags", style="dim")
        for r in records:
            table.add_row(
                str(r.id), escape(r.filename), escape(", ".join(r.pexels_metadata.tags))
            )
        console.print(table)


def print_schemes(schemes: dict[str, dict[str, list[str]]]):
    console = Console()
    for name, rules in schemes.items():
        table = Table(title=f"[bold]{name}[/bold]", box=box.SIMPLE, show_header=False)
        table.add_column(style="bold cyan")
        table.add_column(style="dim")
        for category, keywords in rules.items():
            table.add_row(category, ", ".join(keywords))
        console.print(table)


def print_usage_stats(stats: dict[str, Any]):
    """Displays usage statistics for a period."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column()
    api, downloads = stats["api_calls"], stats["downloads"]
    storage, limits = stats["storage"], stats["rate_limits"]
    table.add_row(
        "API Calls:",
        f"{api['total']} ({api['search_videos']} searches, "
        f"{api['get_video_details']} lookups)",
    )
    table.add_row(
        "Downloads:",
        f"{downloads['total']} ({downloads['individual']} single, "
        f"{downloads['batch']} batched)",
    )
    table.add_row(
        "Storage:",
        f"{storage['total_files']} files, {format_size(storage['total_size_bytes'])}",
    )
    table.add_row(
        "Quota:",
        f"{limits['current_remaining']} left ({limits['hits_per_hour']} used this hour)",
    )
    console.print(
        Panel(
            table,
            title=f"[bold]Usage (last {stats['period']})[/bold]",
            border_style="cyan",
            expand=False,
        )
    )
