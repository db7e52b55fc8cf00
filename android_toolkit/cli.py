# CLI for Android device discovery and platform-tools setup
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from android_toolkit import __version__, device, errors, models, platform_tools, utils

app = typer.Typer(help="Discover Android devices and manage adb/fastboot platform-tools")
tools_app = typer.Typer(help="Platform-tools installation")
app.add_typer(tools_app, name="tools")
console = Console()


@app.callback()
def _main_callback(
    ctx: typer.Context,
    log_dir: Path = typer.Option(Path("logs"), "--log-dir", help="Directory for log files"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    utils.configure_logging(log_dir=log_dir, verbose=verbose)
    ctx.ensure_object(dict)
    ctx.obj["log_dir"] = str(log_dir) if log_dir else None


def echo_json(data):
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2))


def _emit_error(exc: errors.ToolkitError, json_out: bool) -> None:
    if json_out:
        payload = {"error": str(exc), "hint": exc.hint}
        if exc.payload:
            payload.update(exc.payload)
        echo_json(payload)
    else:
        typer.echo(str(exc), err=True)
        if exc.hint:
            typer.echo(f"Hint: {exc.hint}", err=True)
    raise typer.Exit(exc.exit_code)


def _registry() -> device.DeviceRegistry:
    return device.DeviceRegistry()


@app.command()
def version(json_out: bool = typer.Option(False, "--json", help="JSON output")):
    if json_out:
        echo_json({"version": __version__})
    else:
        typer.echo(f"android-toolkit v{__version__}")


@app.command(name="list")
def list_cmd(
    refresh: bool = typer.Option(False, "--refresh", help="Ignore the device cache"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
):
    devices = _registry().list_devices(force_refresh=refresh)

    if json_out:
        echo_json([d.model_dump(mode="json") for d in devices])
        raise typer.Exit(0)

    if not devices:
        typer.echo("No Android devices found. Ensure USB debugging is enabled and device is connected.")
        raise typer.Exit(0)

    table = Table(title="Connected Android devices")
    table.add_column("ID")
    table.add_column("Mode")
    table.add_column("Model")
    table.add_column("Product")
    table.add_column("Transport")
    for d in devices:
        table.add_row(d.id, d.mode, d.model or "?", d.product or "?", d.transport or "?")
    console.print(table)


@app.command()
def check(
    device_id: str = typer.Argument(..., help="Device ID from 'list'"),
    mode: Optional[str] = typer.Option(None, "--mode", help="Required mode: device | bootloader"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
):
    registry = _registry()
    try:
        if mode:
            found = registry.require_mode(device_id, mode)  # type: ignore[arg-type]
        else:
            found = registry.validate_device(device_id)
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(2)
    except errors.DeviceError as exc:
        _emit_error(exc, json_out)
        return

    if json_out:
        echo_json(found.model_dump(mode="json"))
    else:
        typer.echo(f"{found.id}: {found.mode}")


def _status_dict(status: models.InstallStatus) -> dict:
    return status.model_dump(mode="json", exclude_none=True)


@tools_app.command("status")
def tools_status_cmd(json_out: bool = typer.Option(False, "--json", help="JSON output")):
    status = platform_tools.PlatformTools().get_status()
    if json_out:
        echo_json(_status_dict(status))
        raise typer.Exit(0)

    if not status.installed:
        typer.echo("Platform tools are not installed. Run 'android-toolkit tools install'.")
        raise typer.Exit(1)

    typer.echo(f"Installation path: {status.path}")
    typer.echo(f"ADB: {status.adb_path} ({status.adb_version})")
    typer.echo(f"Fastboot: {status.fastboot_path} ({status.fastboot_version})")


@tools_app.command("install")
def tools_install_cmd(
    force: bool = typer.Option(False, "--force", help="Re-download even if already installed"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
):
    manager = platform_tools.PlatformTools()
    try:
        message = manager.download_and_install(force=force)
    except errors.ProvisioningError as exc:
        _emit_error(exc, json_out)
        return

    if json_out:
        payload = {"message": message}
        payload.update(_status_dict(manager.get_status()))
        echo_json(payload)
    else:
        typer.echo(message)


def main():
    app()


if __name__ == "__main__":
    main()
