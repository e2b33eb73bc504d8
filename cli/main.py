"""ESI Preview CLI - entry-point for previewing pages with ESI resolved.

Usage:
    python cli/main.py --help

Commands:
    render       → fetch (or read) a page and print it with ESI resolved
    stats        → show stored fragment stats of a page
    clear-stats  → reset stored fragment stats of a page
    settings     → show / edit the ESI settings flags
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from esi_preview.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any working directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
from typing import List, Optional

import httpx
import typer

from esi_preview.db.stats import load_stats, save_stats
from esi_preview.engine.models import Stats
from esi_preview.engine.runner import preview_html, preview_url

from cli.commands.settings import settings_app
from cli.context import open_storage, parse_cookies

app = typer.Typer(
    name="esi-preview",
    help="Resolve Edge-Side-Include directives for local previews.",
    no_args_is_help=True,
)
app.add_typer(settings_app, name="settings")


# ---------------------------------------------------------------------------
# Render
# ---------------------------------------------------------------------------
@app.command("render")
def render(
    url: Optional[str] = typer.Option(None, help="Page URL to fetch and resolve."),
    file: Optional[Path] = typer.Option(None, help="Local HTML file to resolve instead."),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="URL the local file is served from (required with --file)."
    ),
    cookie: List[str] = typer.Option([], help="Page cookie NAME=VALUE (repeatable)."),
    output: Optional[Path] = typer.Option(None, help="Write the HTML here instead of stdout."),
) -> None:
    """Resolve the ESI directives of a page and output the resulting HTML."""
    if (url is None) == (file is None):
        typer.echo("❌ Pass exactly one of --url or --file.", err=True)
        raise typer.Exit(code=1)
    if file is not None and not base_url:
        typer.echo("❌ --base-url is required with --file.", err=True)
        raise typer.Exit(code=1)

    try:
        cookies = parse_cookies(cookie)
    except ValueError as exc:
        typer.echo(f"❌ {exc}", err=True)
        raise typer.Exit(code=1)

    with open_storage() as storage:
        try:
            if file is not None:
                html = file.read_text(encoding="utf-8")
                engine = asyncio.run(preview_html(storage, html, base_url, cookies=cookies))
            else:
                engine = asyncio.run(preview_url(storage, url, cookies=cookies))
        except OSError as exc:
            typer.echo(f"❌ Cannot read {file}: {exc}", err=True)
            raise typer.Exit(code=1)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            typer.echo(f"❌ Page fetch failed: {exc}", err=True)
            raise typer.Exit(code=1)
        engine.stop()

    html_out = str(engine.document)
    if output is not None:
        output.write_text(html_out, encoding="utf-8")
    else:
        typer.echo(html_out)

    stats = engine.stats
    typer.echo(
        f"[render] {stats.total} fragment(s): "
        f"{stats.successful} ok, {stats.failed} failed",
        err=True,
    )


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------
@app.command("stats")
def stats(
    url: str = typer.Option(..., help="Page URL the stats are stored under."),
) -> None:
    """Show the stored fragment stats of a page."""
    with open_storage() as storage:
        stored = load_stats(storage, url)

    if stored is None:
        typer.echo(f"[stats] No stats for {url!r}.")
        return

    current = Stats.from_dict(stored)
    typer.echo(
        f"[stats] total={current.total}  successful={current.successful}  "
        f"failed={current.failed}"
    )
    for fragment in current.fragments:
        mark = "✓" if fragment.success else "✗"
        line = f"  {mark} #{fragment.id}  {fragment.url}  -> {fragment.resolved_url}"
        if fragment.error:
            line += f"  ({fragment.error})"
        typer.echo(line)


@app.command("clear-stats")
def clear_stats(
    url: str = typer.Option(..., help="Page URL the stats are stored under."),
) -> None:
    """Reset the stored fragment stats of a page."""
    with open_storage() as storage:
        save_stats(storage, url, Stats().to_dict())
    typer.echo(f"[clear-stats] Stats cleared for {url!r}.")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
