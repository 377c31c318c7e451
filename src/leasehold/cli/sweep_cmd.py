"""CLI command for reclaiming expired leases.

Usage:
    leasehold sweep
    leasehold sweep --batch-size 500 --backend redis
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from leasehold.config import settings
from leasehold.store.runtime import open_lease_store
from leasehold.sweeper import ExpirySweeper

app = typer.Typer(help="Reclaim expired leases")


@app.callback(invoke_without_command=True)
def sweep(
    backend: str | None = typer.Option(
        None,
        "--backend",
        "-b",
        help="Lease store backend: memory, redis (defaults to configuration)",
    ),
    batch_size: int = typer.Option(
        settings.sweep_batch_size,
        "--batch-size",
        "-n",
        min=1,
        help="Maximum leases reclaimed in this pass",
    ),
) -> None:
    """Run one sweep pass over the lease store."""

    async def _sweep() -> list[str]:
        async with open_lease_store(backend) as store:
            return await ExpirySweeper(store, batch_size=batch_size).run_once()

    reclaimed = asyncio.run(_sweep())
    console = Console()

    console.print(f"[blue]Reclaimed {len(reclaimed)} expired lease(s)[/blue]")
    for resource in reclaimed:
        console.print(f"  {resource}")
