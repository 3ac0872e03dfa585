"""Command-line interface for xcommunity."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from xcommunity import Harvester, ScraperConfig, __version__
from xcommunity.config import UpdatePolicy
from xcommunity.core.browser import capture_session
from xcommunity.core.images import extension_for
from xcommunity.core.store import CollectionStore
from xcommunity.exceptions import ConfigError, PageLoadError, SessionError, StorageError
from xcommunity.logging import configure_logging
from xcommunity.models.result import HarvestResult

app = typer.Typer(
    name="xcommunity",
    help="X community member scraper",
    add_completion=False,
)
console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"xcommunity version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """xcommunity - X community member scraper."""
    pass


@app.command()
def login(
    session: Optional[Path] = typer.Option(
        None, "--session", "-s", help="Where to write the session cookies"
    ),
    timeout: Optional[int] = typer.Option(
        None, "--timeout", "-t", help="Seconds to wait for a manual login"
    ),
):
    """Open a browser, wait for a manual login and save the session cookies."""
    overrides = {}
    if timeout is not None:
        overrides["login_timeout_s"] = timeout
    if session:
        overrides["session_path"] = str(session)
    config = _load_config(**overrides)
    configure_logging(config)

    console.print("[bold]Log in to X in the browser window that opens.[/bold]")
    try:
        count = asyncio.run(capture_session(config))
    except (SessionError, StorageError) as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Saved {count} cookies to {config.session_path}")


@app.command()
def scrape(
    url: Optional[str] = typer.Option(
        None, "--url", "-u", help="Community members page to scrape"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Dataset JSON file (resumed if it exists)"
    ),
    session: Optional[Path] = typer.Option(
        None, "--session", "-s", help="Session cookies written by `login`"
    ),
    pfp_dir: Optional[Path] = typer.Option(
        None, "--pfp-dir", help="Directory for downloaded avatars"
    ),
    headless: Optional[bool] = typer.Option(
        None, "--headless/--no-headless", help="Run browser in headless mode"
    ),
    images: Optional[bool] = typer.Option(
        None, "--images/--no-images", help="Download avatar images"
    ),
    refresh: bool = typer.Option(
        False, "--refresh", "-r", help="Re-scrape handles already in the dataset"
    ),
):
    """Scrape the community member list, resuming from an existing dataset."""
    overrides = {}
    if headless is not None:
        overrides["headless"] = headless
    if images is not None:
        overrides["download_images"] = images
    if refresh:
        overrides["update_policy"] = UpdatePolicy.REPLACE
    if url:
        overrides["community_url"] = url
    if output:
        overrides["output_path"] = str(output)
    if session:
        overrides["session_path"] = str(session)
    if pfp_dir:
        overrides["pfp_dir"] = str(pfp_dir)
    config = _load_config(**overrides)
    configure_logging(config)

    async def run() -> HarvestResult:
        async with Harvester(config) as harvester:
            return await harvester.run()

    try:
        result = asyncio.run(run())
    except SessionError as e:
        console.print(f"[red]✗ Session error:[/red] {e}")
        console.print("Run [bold]xcommunity login[/bold] and try again.")
        raise typer.Exit(1)
    except PageLoadError as e:
        console.print(f"[red]✗ Page error:[/red] {e}")
        raise typer.Exit(1)
    except StorageError as e:
        console.print(f"[red]✗ Storage error:[/red] {e}")
        console.print("[dim]Earlier checkpoints on disk are still valid.[/dim]")
        raise typer.Exit(1)

    _print_result(result, config.output_path)


@app.command()
def stats(
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Dataset JSON file"
    ),
    pfp_dir: Optional[Path] = typer.Option(
        None, "--pfp-dir", help="Directory with downloaded avatars"
    ),
):
    """Summarize an existing dataset."""
    config = _load_config()
    dataset = output or Path(config.output_path)
    avatars = pfp_dir or Path(config.pfp_dir)

    store = CollectionStore(dataset)
    try:
        store.load()
    except StorageError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    if not store.size():
        console.print(f"No profiles in {dataset}")
        return

    _print_stats_table(store, avatars)


def _load_config(**overrides) -> ScraperConfig:
    """Build the config from env and CLI overrides, exiting on invalid values."""
    try:
        return ScraperConfig(**overrides)
    except (ConfigError, ValidationError) as e:
        console.print(f"[red]✗ Config error:[/red] {e}")
        raise typer.Exit(1)


def _print_result(result: HarvestResult, output_path: str):
    """Print harvest summary."""
    console.print(f"\n[bold]Collected {result.total_profiles} profiles[/bold] → {output_path}")
    console.print(
        f"  [green]{result.new_profiles}[/green] new"
        f" · {result.refreshed_profiles} refreshed"
        f" · {result.degraded_profiles} without hover card"
        f" · {result.skipped_rows} rows skipped"
    )
    console.print(
        f"  [dim]{result.images_downloaded} avatars saved, {result.images_failed} failed"
        f" · {result.scrolls} scrolls · {result.duration_ms / 1000:.1f}s[/dim]"
    )


def _print_stats_table(store: CollectionStore, avatars: Path):
    """Print dataset summary as table."""
    profiles = store.profiles()
    with_followers = [p for p in profiles if p.followers is not None]
    with_bio = sum(1 for p in profiles if p.bio)
    with_avatar = sum(
        1 for p in profiles
        if p.pfp_url and (avatars / f"{p.handle}.{extension_for(p.pfp_url)}").exists()
    )

    table = Table(title=str(store.path), show_header=False)
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Profiles", f"{len(profiles):,}")
    table.add_row("With followers", f"{len(with_followers):,}")
    table.add_row("With bio", f"{with_bio:,}")
    table.add_row("Avatars on disk", f"{with_avatar:,}")
    if with_followers:
        top = max(with_followers, key=lambda p: p.followers)
        table.add_row("Most followed", f"@{top.handle} ({top.followers:,})")

    console.print(table)


if __name__ == "__main__":
    app()
