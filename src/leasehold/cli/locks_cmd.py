"""CLI commands for inspecting and releasing locks.

Usage:
    leasehold locks list
    leasehold locks list --format json
    leasehold locks show orders
    leasehold locks release orders --owner worker-1-3f2a...
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

import typer
from rich.console import Console
from rich.table import Table

from leasehold.errors import LockError
from leasehold.manager import LockManager, ManagerConfig
from leasehold.store.base import LockRecord
from leasehold.store.runtime import open_lease_store

app = typer.Typer(help="Inspect and release locks", no_args_is_help=True)

BACKEND_OPTION = typer.Option(
    None,
    "--backend",
    "-b",
    help="Lease store backend: memory, redis (defaults to configuration)",
)


def _format_expiry(expires_at: float) -> str:
    return datetime.fromtimestamp(expires_at, tz=timezone.utc).isoformat()


@app.command("list")
def list_locks(
    backend: str | None = BACKEND_OPTION,
    all_records: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Include expired leases not yet reclaimed",
    ),
    output_format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: text, json",
    ),
) -> None:
    """List locks held in the lease store."""

    async def _list() -> list[LockRecord]:
        async with open_lease_store(backend) as store:
            return await store.list_records(include_expired=all_records)

    records = asyncio.run(_list())
    console = Console()

    if output_format == "json":
        console.print_json(json.dumps([r.to_dict() for r in records]))
        return

    if not records:
        console.print("[yellow]No locks held[/yellow]")
        return

    table = Table(title="Locks")
    table.add_column("Resource")
    table.add_column("Owner")
    table.add_column("Token", justify="right")
    table.add_column("Expires at")
    for record in records:
        table.add_row(
            record.resource,
            record.owner,
            str(record.fencing_token),
            _format_expiry(record.expires_at),
        )
    console.print(table)


@app.command("show")
def show_lock(
    resource: str = typer.Argument(..., help="Resource name"),
    backend: str | None = BACKEND_OPTION,
) -> None:
    """Show the live lock on a resource."""

    async def _get() -> LockRecord | None:
        async with open_lease_store(backend) as store:
            return await store.get(resource)

    record = asyncio.run(_get())
    console = Console()

    if record is None:
        console.print(f"[yellow]'{resource}' is not locked[/yellow]")
        raise typer.Exit(1)

    console.print(f"[bold]{record.resource}[/bold]")
    console.print(f"  Owner:      {record.owner}")
    console.print(f"  Token:      {record.fencing_token}")
    console.print(f"  Expires at: {_format_expiry(record.expires_at)}")


@app.command("release")
def release_lock(
    resource: str = typer.Argument(..., help="Resource name"),
    owner: str = typer.Option(..., "--owner", "-o", help="Owner token holding the lock"),
    backend: str | None = BACKEND_OPTION,
) -> None:
    """Release a lock on behalf of its owner."""

    async def _release() -> None:
        async with open_lease_store(backend) as store:
            manager = LockManager(store, ManagerConfig.from_settings())
            await manager.release(resource, owner)

    console = Console()
    try:
        asyncio.run(_release())
    except LockError as e:
        console.print(f"[red]{e.code}:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]Released[/green] {resource}")
