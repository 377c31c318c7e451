"""CLI commands for leasehold.

Provides command-line interface using Typer:
- leasehold serve: Run the API server
- leasehold locks: List, show and release locks
- leasehold sweep: Reclaim expired leases once

Usage:
    leasehold --help
    leasehold serve --port 8080
    leasehold locks list --backend redis
    leasehold sweep
"""

import typer

from leasehold.cli.locks_cmd import app as locks_app
from leasehold.cli.serve import app as serve_app
from leasehold.cli.sweep_cmd import app as sweep_app

# Main CLI application
app = typer.Typer(
    name="leasehold",
    help="leasehold: lease-based distributed locks with fencing tokens",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")
app.add_typer(locks_app, name="locks")
app.add_typer(sweep_app, name="sweep")


@app.callback()
def callback() -> None:
    """leasehold: lease-based distributed locks with fencing tokens."""
    pass


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
