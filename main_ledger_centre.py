"""Mini README: Entry point CLI for the tenderbooks ledger centre.

This script exposes a Typer CLI that starts the FastAPI application with
configurable host, port and production flags, previews MFS fees, and prints
a person's ledger as JSON for quick checks from a terminal. Settings come from
``TENDERBOOKS_*`` environment variables when available.
"""

from __future__ import annotations

import json

import typer
import uvicorn

from tenderbooks.configuration import get_settings
from tenderbooks.finance import InvalidAmount, PersistenceFailure
from tenderbooks.finance.service import LedgerService
from tenderbooks.logging_utils import configure_root_logger

cli = typer.Typer(help="Launch and query the tenderbooks ledger centre.")


@cli.command()
def run(
    host: str = typer.Option(None, help="Host interface to bind."),
    port: int = typer.Option(None, help="Port to listen on."),
    production: bool = typer.Option(
        False, help="Use production server settings (disable auto-reload)."
    ),
) -> None:
    """Start the FastAPI application using uvicorn."""

    settings = get_settings()
    effective_host = host or settings.interface_host
    effective_port = port or settings.interface_port
    configure_root_logger(settings.log_level)

    # Browsers cannot open 0.0.0.0, so point at localhost instead.
    browser_host = "127.0.0.1" if effective_host in {"0.0.0.0", "::"} else effective_host
    typer.echo(
        f"Starting tenderbooks on {effective_host}:{effective_port}.\n"
        f"Open your browser at http://{browser_host}:{effective_port}"
    )
    uvicorn.run(
        "tenderbooks.interface.web_app:create_application",
        host=effective_host,
        port=effective_port,
        factory=True,
        reload=not production,
    )


@cli.command()
def charge(
    amount: str = typer.Argument(..., help="Amount sent, in taka."),
    method: str = typer.Option("mfs", "--method", help="Payment method (cash, bank, mfs, due, advance)."),
) -> None:
    """Print the MFS fee and total outlay for a transfer."""

    settings = get_settings()
    configure_root_logger(settings.log_level)
    service = LedgerService.from_settings(settings)
    try:
        breakdown = service.charge_breakdown(amount, method)
    except (InvalidAmount, ValueError) as error:
        typer.echo(f"Error: {error}", err=True)
        raise typer.Exit(code=1) from error
    typer.echo(f"Base:   {breakdown.base}")
    typer.echo(f"Charge: {breakdown.charge} ({service.tariff.describe()})")
    typer.echo(f"Total:  {breakdown.total}")


@cli.command()
def ledger(
    tender_id: str = typer.Argument(..., help="Tender identifier."),
    person_id: str = typer.Argument(..., help="User or person identifier."),
) -> None:
    """Print a person's ledger, totals and implied MFS charges as JSON."""

    settings = get_settings()
    configure_root_logger(settings.log_level)
    service = LedgerService.from_settings(settings)
    try:
        view = service.load_person_ledger(tender_id, service.resolve_scope(person_id))
    except PersistenceFailure as error:
        typer.echo(f"Error: {error}", err=True)
        raise typer.Exit(code=2) from error
    typer.echo(json.dumps(view.as_dict(), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    cli()
