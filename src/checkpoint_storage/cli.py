"""Command-line interface for checkpoint storage using Typer."""

import asyncio
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlsplit

import typer
from rich.console import Console
from rich.table import Table

from checkpoint_storage import __version__
from checkpoint_storage.config import Settings, get_settings, load_settings, reset_settings
from checkpoint_storage.exceptions import CheckpointStorageError, ConfigurationError
from checkpoint_storage.factory import create_storage
from checkpoint_storage.logging_config import get_logger, setup_logging
from checkpoint_storage.persistence.base import CheckpointProvider

app = typer.Typer(
    name="checkpoint-storage",
    help="Inspect agent checkpoints stored in SQLite, MySQL or PostgreSQL",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

# Quoted values may contain spaces and backslash-escaped quotes.
_DSN_PASSWORD = re.compile(r"\b((?:ssl)?password)\s*=\s*(?:'(?:[^'\\]|\\.)*'|\S*)")


def _env_file_option() -> Any:
    return typer.Option(
        None,
        "--env-file",
        "-e",
        help="Path to .env file",
    )


def _load(env_file: Optional[Path]) -> Settings:
    if env_file:
        reset_settings()
        settings = load_settings(env_file)
    else:
        settings = get_settings()
    setup_logging(settings.logging)
    return settings


def _provider(settings: Settings) -> CheckpointProvider:
    if settings.checkpoint is None:
        raise ConfigurationError(
            "No checkpoint provider configured; set CHECKPOINT__PROVIDER__TYPE"
        )
    return create_storage(settings.checkpoint.provider)


def _format_timestamp(created_at: int) -> str:
    return datetime.fromtimestamp(created_at / 1000, tz=timezone.utc).isoformat(
        timespec="seconds"
    )


def _fail(error: Exception) -> typer.Exit:
    if isinstance(error, ConfigurationError):
        console.print(f"[bold red]Configuration Error:[/bold red] {error}", style="red")
        logger.error("Configuration error", error=str(error))
    else:
        console.print(f"[bold red]Error:[/bold red] {error}", style="red")
        logger.error("Storage error", error=str(error), error_type=type(error).__name__)
    return typer.Exit(code=1)


@app.command()
def init(env_file: Optional[Path] = _env_file_option()) -> None:
    """Create the checkpoint table if it does not exist."""

    async def _run(provider: CheckpointProvider) -> None:
        async with provider:
            pass

    try:
        settings = _load(env_file)
        provider = _provider(settings)
        asyncio.run(_run(provider))
    except CheckpointStorageError as e:
        raise _fail(e)

    console.print(f"[bold green]✓[/bold green] Checkpoint table ready ({provider.backend})")


@app.command("list")
def list_command(
    env_file: Optional[Path] = _env_file_option(),
    agent_id: Optional[str] = typer.Option(
        None,
        "--agent",
        "-a",
        help="Only show checkpoints of this agent",
    ),
) -> None:
    """List stored checkpoints, newest first."""

    async def _run(provider: CheckpointProvider):
        async with provider:
            return await provider.list_checkpoints()

    try:
        settings = _load(env_file)
        items = asyncio.run(_run(_provider(settings)))
    except CheckpointStorageError as e:
        raise _fail(e)

    if agent_id is not None:
        items = [item for item in items if item.agent_id == agent_id]

    if not items:
        console.print("[dim]No checkpoints stored[/dim]")
        return

    table = Table(title="Checkpoints", show_header=True, header_style="bold")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Agent", style="magenta")
    table.add_column("Name", style="green")
    table.add_column("Created", style="dim")
    for item in items:
        table.add_row(item.id, item.agent_id, item.name, _format_timestamp(item.created_at))
    console.print(table)


@app.command()
def show(
    checkpoint_id: str = typer.Argument(
        ...,
        help="Identifier of the checkpoint to display",
    ),
    env_file: Optional[Path] = _env_file_option(),
) -> None:
    """Print a stored checkpoint as JSON."""

    async def _run(provider: CheckpointProvider):
        async with provider:
            return await provider.retrieve_checkpoint(checkpoint_id)

    try:
        settings = _load(env_file)
        checkpoint = asyncio.run(_run(_provider(settings)))
    except CheckpointStorageError as e:
        raise _fail(e)

    if checkpoint is None:
        console.print(f"[yellow]Checkpoint {checkpoint_id} not found[/yellow]")
        raise typer.Exit(code=1)

    console.print_json(json.dumps(checkpoint.model_dump(by_alias=True)))


@app.command()
def config(env_file: Optional[Path] = _env_file_option()) -> None:
    """Display the resolved configuration."""
    try:
        settings = _load(env_file)
    except CheckpointStorageError as e:
        raise _fail(e)

    table = Table(title="Checkpoint Storage Configuration", show_header=True, header_style="bold")
    table.add_column("Category", style="cyan", no_wrap=True)
    table.add_column("Setting", style="magenta")
    table.add_column("Value", style="green")

    provider = settings.checkpoint.provider if settings.checkpoint else None
    if provider is None:
        table.add_row("Storage", "Backend", "[dim]not configured[/dim]")
    elif provider.type == "sqlite":
        table.add_row("Storage", "Backend", provider.type)
        table.add_row("Storage", "Database Path", str(provider.database_path))
    else:
        table.add_row("Storage", "Backend", provider.type)
        table.add_row("Storage", "Connection", _redacted_connection(str(provider.connection_string)))

    table.add_row("Logging", "Level", settings.logging.level.value)
    table.add_row("Logging", "Format", settings.logging.format)

    console.print(table)


def _redacted_connection(connection_string: str) -> str:
    """Strip credentials from a connection URL or libpq keyword DSN for display."""
    if "://" in connection_string:
        parts = urlsplit(connection_string)
        # Userinfo and query parameters may both carry a password.
        _, _, host = parts.netloc.rpartition("@")
        return f"{parts.scheme}://{host}{parts.path}"
    return _DSN_PASSWORD.sub(r"\1=***", connection_string)


@app.command()
def version() -> None:
    """Display version information."""
    console.print(f"[bold cyan]checkpoint-storage[/bold cyan] {__version__}")


if __name__ == "__main__":
    app()
