"""Typer CLI entrypoint."""

from __future__ import annotations

import json
import logging

import typer

from podstat.core.errors import PodstatError
from podstat.core.model import DeviceStatus, ScanState
from podstat.core.service import StatusService

app = typer.Typer(help="Battery status of Apple earbuds and headphones from BLE advertisements")

_NOT_FOUND = "No supported device found"


def _build_service(adapter: str | None = None) -> StatusService:
    service = StatusService(adapter=adapter)
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    for warning in getattr(service, "runtime_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _fail(message: str, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps({"error": message}))
    else:
        typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


def _print_status(status: DeviceStatus, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(status.to_dict(), indent=2))
        return
    typer.echo(status.model.name)
    for component in status.components:
        if not component.battery.is_known:
            continue
        line = f"{component.name.capitalize()}: {component.battery}"
        if component.charging:
            line += " (charging)"
        typer.echo(line)


@app.command("status")
def status(
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of text"),
    timeout: float = typer.Option(3.0, "--timeout", min=0.01, help="Maximum scan time in seconds"),
    interval: float = typer.Option(0.1, "--interval", min=0.01, help="Poll interval in seconds"),
    layout: str | None = typer.Option(None, "--layout", help="Layout profile ID"),
    adapter: str | None = typer.Option(None, "--adapter", help="Bluetooth adapter, e.g. hci0"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Scan for a nearby device and print its battery state."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    try:
        service = _build_service(adapter)
        outcome = service.scan(timeout_s=timeout, interval_s=interval, layout_id=layout)
    except PodstatError as exc:
        _fail(str(exc), as_json)
        return

    if outcome.state is not ScanState.FOUND or outcome.status is None:
        _fail(_NOT_FOUND, as_json)
        return
    _print_status(outcome.status, as_json)


@app.command("models")
def list_models(
    layout: str | None = typer.Option(None, "--layout", help="Layout profile ID"),
) -> None:
    """List model codes known to the loaded layout profiles."""
    try:
        service = _build_service()
        catalog = service.model_catalog(layout)
        for profile_id, models in catalog.items():
            typer.echo(f"{profile_id}:")
            for model in models:
                typer.echo(f"  {model.code.hex()}: {model.name} ({model.form_factor.value})")
    except PodstatError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("layouts")
def list_layouts() -> None:
    """List loaded layout profiles in the order they are tried."""
    try:
        service = _build_service()
        profiles = service.list_profiles()
        if not profiles:
            typer.echo("No layout profiles loaded")
            raise typer.Exit(code=1)
        for profile in profiles:
            typer.echo(
                f"{profile.id}: {profile.name} (priority {profile.priority}, {len(profile.models)} codes)"
            )
    except PodstatError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("decode")
def decode_payload(
    payload: str = typer.Argument(..., help="Manufacturer data payload as hex"),
    manufacturer: str = typer.Option("0x004c", "--manufacturer", help="Manufacturer ID"),
    layout: str | None = typer.Option(None, "--layout", help="Layout profile ID"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of text"),
) -> None:
    """Decode a captured advertisement payload without scanning."""
    try:
        manufacturer_id = int(manufacturer, 0)
    except ValueError:
        _fail(f"Invalid manufacturer ID '{manufacturer}'", as_json)
        return

    try:
        service = _build_service()
        result = service.decode_payload(payload, manufacturer_id=manufacturer_id, layout_id=layout)
    except PodstatError as exc:
        _fail(str(exc), as_json)
        return

    if result is None:
        _fail("Payload is not a recognised device advertisement", as_json)
        return
    _print_status(result, as_json)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
