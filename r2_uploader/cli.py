"""
Command-line interface for the R2 uploader.

Provides one-shot upload, profile management, and an interactive shell
using the Click framework.
"""

import sys
from typing import Dict, List, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt, Confirm
from rich.progress import (
    Progress,
    TaskID,
    BarColumn,
    DownloadColumn,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from shared.constants import MIB, DEFAULT_CONCURRENCY, MAX_CONCURRENCY, DEFAULT_PART_SIZE
from shared.exceptions import UploaderError, TransferError
from shared.models import BatchResult, CloudflareCredentials, FileDescriptor, UploadJob
from . import __version__
from .config import credentials_from_env, transfer_config_from_env
from .enumerator import summarize
from .logging_setup import configure_logging
from .profiles import ProfileManager
from .progress import ProgressObserver
from .uploader import UploadEngine

console = Console()


class RichProgressObserver(ProgressObserver):
    """Shows one rich progress bar per file."""

    def __init__(self, progress: Progress):
        self.progress = progress
        self.tasks: Dict[str, TaskID] = {}
        self.totals: Dict[str, int] = {}

    def on_start(self, job: UploadJob) -> None:
        self.totals[job.job_id] = max(job.size, 1)
        self.tasks[job.job_id] = self.progress.add_task(
            f"[cyan]{escape(job.destination_key)}", total=self.totals[job.job_id]
        )

    def on_progress(self, job_id: str, percent: int, bytes_read: int, total_bytes: int) -> None:
        task = self.tasks.get(job_id)
        if task is not None:
            self.progress.update(task, completed=bytes_read)

    def on_complete(self, job_id: str) -> None:
        task = self.tasks.get(job_id)
        if task is not None:
            self.progress.update(task, completed=self.totals[job_id])


def _clean_input(value: str) -> str:
    """Strip whitespace and surrounding quotes (pasted paths often carry them)."""
    return value.strip().strip("'").strip('"')


def _ask(prompt: str, password: bool = False) -> str:
    value = ""
    while not value:
        value = _clean_input(Prompt.ask(prompt, password=password, console=console))
    return value


def prompt_credentials() -> CloudflareCredentials:
    """Ask for every credential field until each one is non-empty."""
    return CloudflareCredentials(
        api_token=_ask("Cloudflare API Token", password=True),
        account_id=_ask("Cloudflare Account ID"),
        access_key=_ask("Access Key"),
        secret_key=_ask("Secret Key", password=True),
        bucket_name=_ask("R2 Bucket Name"),
    )


def choose_credentials(manager: ProfileManager) -> CloudflareCredentials:
    """Menu: pick a saved profile, enter one-off credentials, or save a new profile."""
    profiles = manager.list()
    if not profiles:
        console.print("\nNo saved profiles found.")

    console.print("\n[bold]Available options:[/bold]")
    for i, profile in enumerate(profiles, 1):
        console.print(f"{i}. Use profile: [cyan]{profile.name}[/cyan]")
    console.print(f"{len(profiles) + 1}. New upload (don't save)")
    console.print(f"{len(profiles) + 2}. Create new profile")

    choices = [str(i) for i in range(1, len(profiles) + 3)]
    choice = int(Prompt.ask("Select an option", choices=choices, console=console))

    if choice <= len(profiles):
        return profiles[choice - 1].credentials
    if choice == len(profiles) + 1:
        return prompt_credentials()

    name = _ask("Profile name")
    creds = prompt_credentials()
    manager.add(name, creds)
    console.print(f"[green]✓[/green] Profile '{name}' saved")
    return creds


def resolve_credentials(profile: Optional[str], bucket: Optional[str]) -> CloudflareCredentials:
    """--profile first, then R2_* environment variables, then the interactive menu."""
    if profile:
        creds = ProfileManager().get(profile).credentials
    else:
        creds = credentials_from_env(bucket)
        if creds is None:
            creds = choose_credentials(ProfileManager())
    if bucket:
        creds = CloudflareCredentials(
            account_id=creds.account_id,
            access_key=creds.access_key,
            secret_key=creds.secret_key,
            bucket_name=bucket,
            api_token=creds.api_token,
        )
    return creds


def show_files(files: List[FileDescriptor]) -> None:
    count, total = summarize(files)
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("File", style="cyan")
    table.add_column("Size (MB)", justify="right", style="yellow")
    for f in files:
        table.add_row(escape(f.absolute_path), f"{f.size / MIB:.2f}")
    console.print(f"\nFound [bold]{count}[/bold] files to upload:")
    console.print(table)
    console.print(f"Total size: [bold]{total / MIB:.2f} MB[/bold]")


def show_links(result: BatchResult, expiry_hours: float) -> None:
    console.print(f"\n[bold green]Presigned URLs (valid for {expiry_hours:g} hours):[/bold green]")
    for i, link in enumerate(result.links, 1):
        console.print(f"{i}. [cyan]{escape(link.ref.key)}[/cyan]")
        console.print(f"   URL: {link.url}", soft_wrap=True)
    for failure in result.link_failures:
        console.print(f"[yellow]Warning: Couldn't generate URL for {escape(failure.ref.key)}: "
                      f"{escape(str(failure.error))}[/yellow]")


def run_upload(engine: UploadEngine, path: str, assume_yes: bool = False) -> Optional[BatchResult]:
    """Scan, confirm, upload and print links for one path. Errors propagate."""
    files = engine.scan(path)

    def confirm(found: List[FileDescriptor]) -> bool:
        show_files(found)
        if assume_yes:
            return True
        return Confirm.ask("\nDo you want to proceed with the upload?", default=True, console=console)

    # Confirm before the live progress display takes over the terminal
    if not confirm(files):
        console.print("Upload cancelled.")
        return None

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        engine.transfer.observer = RichProgressObserver(progress)
        result = engine.run(path, files=files)

    console.print(f"\n[green]✅ Uploaded {result.total_files} file(s) to "
                  f"[cyan]{engine.bucket}[/cyan][/green]")
    show_links(result, engine.config.link_expiry_seconds / 3600)
    return result


def _report_error(e: UploaderError) -> None:
    console.print(f"[red]❌ Error: {escape(str(e))}[/red]")
    if isinstance(e, TransferError) and e.completed:
        console.print(f"[yellow]{len(e.completed)} file(s) were stored before the failure; "
                      f"remaining files were not attempted.[/yellow]")


@click.group()
@click.version_option(version=__version__)
@click.option('-v', '--verbose', is_flag=True, help='Log progress and transfer steps')
@click.option('--debug', is_flag=True, help='Log everything, including botocore requests')
def cli(verbose, debug):
    """
    Cloudflare R2 File Uploader

    Upload files or whole directories to an R2 bucket and get
    presigned download links valid for 24 hours.
    """
    configure_logging(console, verbose=verbose, debug=debug)


@cli.command()
@click.argument('path', type=click.Path(exists=False))
@click.option('--profile', help='Use a saved credential profile')
@click.option('--bucket', help='Override the bucket from the profile or environment')
@click.option('-y', '--yes', 'assume_yes', is_flag=True, help='Skip the confirmation prompt')
@click.option('--part-size-mb', type=click.IntRange(5, 5 * 1024),
              help=f'Multipart chunk size in MB (default {DEFAULT_PART_SIZE // MIB})')
@click.option('--concurrency', type=click.IntRange(1, MAX_CONCURRENCY),
              help=f'Parallel part uploads per file (default {DEFAULT_CONCURRENCY})')
@click.option('--preserve-structure/--flatten', default=False,
              help='Keep subdirectory paths in object keys instead of flattening')
def upload(path, profile, bucket, assume_yes, part_size_mb, concurrency, preserve_structure):
    """
    Upload a file or directory.

    Lists what will be sent, asks for confirmation, uploads each file in
    order and prints presigned URLs for everything that was stored.
    """
    try:
        config = transfer_config_from_env(part_size_mb=part_size_mb, concurrency=concurrency)
        creds = resolve_credentials(profile, bucket)
        engine = UploadEngine.from_credentials(creds, config, preserve_structure=preserve_structure)
        engine.verify_bucket()
        run_upload(engine, path, assume_yes=assume_yes)
    except UploaderError as e:
        _report_error(e)
        sys.exit(1)


@cli.command()
@click.option('--profile', help='Use a saved credential profile')
@click.option('--preserve-structure/--flatten', default=False,
              help='Keep subdirectory paths in object keys instead of flattening')
def shell(profile, preserve_structure):
    """
    Interactive upload loop.

    Choose credentials once, then enter paths to upload until 'q'.
    """
    console.print("[bold cyan]Cloudflare R2 File Uploader[/bold cyan]")
    console.print("==========================")
    try:
        creds = resolve_credentials(profile, None)
        engine = UploadEngine.from_credentials(
            creds, transfer_config_from_env(), preserve_structure=preserve_structure
        )
        engine.verify_bucket()
    except UploaderError as e:
        _report_error(e)
        sys.exit(1)

    while True:
        path = _clean_input(Prompt.ask("\nEnter file or directory path (or 'q' to quit)",
                                       console=console))
        if path.lower() == 'q':
            console.print("Goodbye!")
            return
        if not path:
            continue
        try:
            if run_upload(engine, path):
                console.print("\n[bold green]Upload completed successfully![/bold green]")
        except UploaderError as e:
            _report_error(e)


@cli.group()
def profiles():
    """Manage saved credential profiles."""
    pass


@profiles.command('list')
def list_profiles():
    """Show saved profiles."""
    try:
        saved = ProfileManager().list()
    except UploaderError as e:
        _report_error(e)
        sys.exit(1)
    if not saved:
        console.print("[yellow]No saved profiles found.[/yellow]")
        return
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Account ID")
    table.add_column("Bucket", style="green")
    for p in saved:
        table.add_row(p.name, p.credentials.account_id, p.credentials.bucket_name)
    console.print(table)


@profiles.command('add')
@click.argument('name')
def add_profile(name):
    """Prompt for credentials and save them as NAME."""
    try:
        manager = ProfileManager()
        manager.add(name, prompt_credentials())
    except UploaderError as e:
        _report_error(e)
        sys.exit(1)
    console.print(f"[green]✓[/green] Profile '{name}' saved to {manager.path}")


@profiles.command('remove')
@click.argument('name')
def remove_profile(name):
    """Delete the profile NAME."""
    try:
        ProfileManager().remove(name)
    except UploaderError as e:
        _report_error(e)
        sys.exit(1)
    console.print(f"[green]✓[/green] Profile '{name}' removed")


if __name__ == '__main__':
    cli()
