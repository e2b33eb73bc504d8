"""Settings commands: show and edit the ESI flags and custom headers."""

from __future__ import annotations

import json

import typer

from esi_preview.engine.models import SETTING_KEYS, EngineSettings

from cli.context import open_storage

settings_app = typer.Typer(help="Show and edit ESI settings.", no_args_is_help=True)


@settings_app.command("show")
def settings_show() -> None:
    """Print the current settings."""
    with open_storage() as storage:
        flags = EngineSettings.from_storage(storage.get(SETTING_KEYS))

    typer.echo(f"enabled          : {flags.enabled}")
    typer.echo(f"forward headers  : {flags.forward_headers}")
    typer.echo(f"forward cookies  : {flags.forward_cookies}")
    typer.echo(f"execute scripts  : {flags.execute_scripts}")
    typer.echo(f"debug logging    : {flags.debug_logging}")
    if not flags.custom_headers:
        typer.echo("custom headers   : (none)")
        return
    typer.echo("custom headers   :")
    for header in flags.custom_headers:
        typer.echo(f"  {header.name}: {header.value}")


@settings_app.command("set")
def settings_set(
    key: str = typer.Argument(..., help=f"One of: {', '.join(SETTING_KEYS)}."),
    value: str = typer.Argument(..., help="JSON value, e.g. true, false or [...]."),
) -> None:
    """Set a settings key to a JSON value."""
    if key not in SETTING_KEYS:
        typer.echo(f"❌ Unknown setting {key!r}. Use one of: {', '.join(SETTING_KEYS)}")
        raise typer.Exit(code=1)
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        typer.echo(f"❌ {value!r} is not valid JSON.")
        raise typer.Exit(code=1)

    with open_storage() as storage:
        storage.set({key: parsed})
    typer.echo(f"✅ {key} = {json.dumps(parsed)}")


@settings_app.command("add-header")
def settings_add_header(
    name: str = typer.Argument(..., help="Header name."),
    value: str = typer.Argument(..., help="Header value."),
) -> None:
    """Append a custom header sent with every fragment request."""
    with open_storage() as storage:
        headers = storage.get(["customHeaders"]).get("customHeaders") or []
        headers.append({"name": name, "value": value})
        storage.set({"customHeaders": headers})
    typer.echo(f"✅ Added header {name}: {value}")


@settings_app.command("remove-header")
def settings_remove_header(
    name: str = typer.Argument(..., help="Header name (case-insensitive)."),
) -> None:
    """Remove every custom header with the given name."""
    with open_storage() as storage:
        headers = storage.get(["customHeaders"]).get("customHeaders") or []
        kept = [h for h in headers if str(h.get("name", "")).lower() != name.lower()]
        if len(kept) == len(headers):
            typer.echo(f"❌ No custom header named {name!r}.")
            raise typer.Exit(code=1)
        storage.set({"customHeaders": kept})
    typer.echo(f"✅ Removed header {name}")
