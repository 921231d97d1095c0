"""CLI for modpack-sync."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from .config import SyncConfig, default_config_path, load_config, save_config
from .core import SyncOutcome, UpdateDecision, UpdateStatus
from .decision import check_status
from .errors import ConfigError, FileSystemError
from .logging_config import setup_logging
from .ops import sync_from_config
from .snapshot import DirectorySnapshot
from .utils import humanize_size


app = typer.Typer(help="""\
Keep a game's mod folder in sync with a remote reference archive.
Check whether the installed mods match the published set, and replace
them with the published set when they don't.""")

console = Console()

CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to config.yaml")


class ConsoleProgress:
    """Print per-file progress the way a launcher console would."""

    def __init__(self, out: Console):
        self.out = out
        self._last_percent = -1

    def on_download_progress(self, received: int, total: Optional[int]) -> None:
        if not total:
            return
        percent = received * 100 // total
        # Report in 10% steps
        if percent // 10 > self._last_percent // 10:
            self._last_percent = percent
            self.out.print(f"[dim]Download progress: {percent}%[/dim]")

    def on_file_deleted(self, path: str) -> None:
        self.out.print(f"  [red]-[/red] {path}")

    def on_file_copied(self, path: str, size: int) -> None:
        self.out.print(f"  [green]+[/green] {path} ({humanize_size(size)})")

    def on_file_error(self, path: str, error: str) -> None:
        self.out.print(f"  [yellow]⚠[/yellow] {path}: {error}")


def require_config(config_path: Optional[Path]) -> SyncConfig:
    """Load configuration or exit with a hint.

    Raises:
        typer.Exit: If the config is missing or invalid
    """
    path = config_path or default_config_path()
    try:
        return load_config(path)
    except FileNotFoundError:
        console.print(f"[red]✗[/red] No configuration found at {path}")
        console.print()
        console.print("To create one, run:")
        console.print("  [cyan]modpack-sync init --remote-url URL --target-dir DIR[/cyan]")
        raise typer.Exit(1)
    except ConfigError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log details to the console"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", envvar="MODPACK_SYNC_LOG", help="Write the log here"),
):
    """Global options."""
    setup_logging(verbose=verbose, log_file=log_file)


@app.command()
def init(
    remote_url: str = typer.Option(..., "--remote-url", help="URL (or path) of the published mod archive"),
    target_dir: Path = typer.Option(..., "--target-dir", help="Mod folder to keep in sync"),
    mode: str = typer.Option("in-place", "--mode", help="in-place or swap"),
    timeout: float = typer.Option(30.0, "--timeout", help="Network timeout in seconds"),
    workspace_dir: Optional[Path] = typer.Option(None, "--workspace-dir", help="Scratch directory for downloads"),
    no_confirm: bool = typer.Option(False, "--no-confirm", help="Never ask before replacing mods"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing configuration"),
    config_path: Optional[Path] = CONFIG_OPTION,
):
    """Write a configuration file.

    Examples:
        modpack-sync init --remote-url https://host/plugins.zip --target-dir ~/Valheim/BepInEx/plugins
        modpack-sync init --remote-url ./plugins.zip --target-dir ./plugins --mode swap
    """
    path = config_path or default_config_path()
    if path.exists() and not force:
        console.print(f"[red]✗[/red] Configuration already exists at {path}")
        console.print("[dim]Use --force to overwrite[/dim]")
        raise typer.Exit(1)

    try:
        config = SyncConfig(
            remote_url=remote_url,
            target_dir=target_dir.expanduser(),
            mode=mode,
            timeout=timeout,
            workspace_dir=workspace_dir.expanduser() if workspace_dir else None,
            confirm=not no_confirm,
        )
    except ValueError as e:
        console.print(f"[red]✗[/red] Invalid configuration:\n{e}")
        raise typer.Exit(1)

    written = save_config(config, path)
    console.print(f"[green]✓[/green] Configuration written to {written}")


@app.command()
def status(config_path: Optional[Path] = CONFIG_OPTION):
    """Check whether the installed mods match the remote archive.

    Exits with code 1 when the status cannot be determined.
    """
    config = require_config(config_path)

    console.print(f"[bold]Checking {config.target_dir}...[/bold]")
    report = check_status(
        config.remote_url,
        config.target_dir,
        workspace_root=config.workspace_dir,
        timeout=config.timeout,
    )

    if report.status == UpdateStatus.UP_TO_DATE:
        console.print(f"[green]✓[/green] Mods are up to date ({report.local.file_count} files)")
    elif report.status == UpdateStatus.UPDATE_AVAILABLE:
        console.print("[yellow]↓[/yellow] Mod update available")
        console.print(f"  Remote: [cyan]{report.remote.short}[/cyan] ({report.remote.file_count} files)")
        console.print(f"  Local:  [cyan]{report.local.short}[/cyan] ({report.local.file_count} files)")
    else:
        console.print(f"[red]?[/red] Update status unknown: {report.reason}")
        raise typer.Exit(1)


@app.command()
def sync(
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
    mode: Optional[str] = typer.Option(None, "--mode", help="Override mode: in-place or swap"),
    config_path: Optional[Path] = CONFIG_OPTION,
):
    """Update the mod folder if it differs from the remote archive.

    Examples:
        modpack-sync sync              # Ask before replacing mods
        modpack-sync sync --yes        # Replace without asking
        modpack-sync sync --mode swap  # Only replace if every file copies
    """
    config = require_config(config_path)
    if mode is not None and mode not in ("in-place", "swap"):
        console.print(f"[red]✗[/red] Invalid mode '{mode}' (expected in-place or swap)")
        raise typer.Exit(1)

    def confirm(decision: UpdateDecision) -> bool:
        console.print(f"[yellow]↓[/yellow] {decision.summary()}")
        if yes or not config.confirm:
            return True
        return typer.confirm(f"Update mods in {config.target_dir}?", default=False)

    console.print("[bold]Checking for mod updates...[/bold]")
    result = sync_from_config(config, confirm=confirm, mode=mode, progress=ConsoleProgress(console))

    if result.outcome == SyncOutcome.NO_UPDATE_NEEDED:
        console.print("[green]✓[/green] Mods are up to date")
        return
    if result.outcome == SyncOutcome.UPDATE_ABORTED_BY_CALLER:
        console.print("[red]✗[/red] Update aborted by user")
        return
    if result.outcome == SyncOutcome.UPDATE_FAILED:
        console.print(f"[red]✗[/red] Update failed: {result.reason}")
        _print_failures(result.failures)
        raise typer.Exit(1)

    console.print(f"[green]{result.summary()}[/green]")
    _print_failures(result.failures)


def _print_failures(failures) -> None:
    if not failures:
        return
    console.print("\n[yellow]Operations that failed:[/yellow]")
    for failure in failures:
        console.print(f"  [yellow]⚠[/yellow] {failure.operation} {failure.path}: {failure.error}")


@app.command()
def fingerprint(directory: Path = typer.Argument(..., help="Directory to fingerprint")):
    """Print the content fingerprint of a directory."""
    try:
        snapshot = DirectorySnapshot.scan(directory)
    except FileSystemError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)

    fp = snapshot.fingerprint()
    console.print(f"{fp}")
    console.print(f"[dim]{fp.file_count} files, {humanize_size(snapshot.total_size)}[/dim]")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
