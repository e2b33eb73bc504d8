"""Tests for the render / stats / clear-stats CLI commands."""

from __future__ import annotations

import httpx
import pytest
import respx
from typer.testing import CliRunner

from cli.context import open_storage, parse_cookies
from cli.main import app
from esi_preview.db.stats import load_stats, save_stats

runner = CliRunner()

BASE = "https://site.test/shop/"


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Point the storage DB at a temporary workspace."""
    monkeypatch.setattr("esi_preview.config.settings.workspace_dir", tmp_path)
    return tmp_path


@pytest.fixture
def page_file(tmp_path):
    path = tmp_path / "page.html"
    path.write_text(
        "<html><body>"
        '<esi:include src="cart.html"></esi:include>'
        '<!-- <esi:include src="/promo.html"> -->'
        "</body></html>",
        encoding="utf-8",
    )
    return path


# ---------------------------------------------------------------------------
# parse_cookies
# ---------------------------------------------------------------------------

def test_parse_cookies():
    assert parse_cookies(["a=1", " b = two=2 "]) == {"a": "1", "b": "two=2"}


def test_parse_cookies_rejects_missing_equals():
    with pytest.raises(ValueError):
        parse_cookies(["session"])


# ---------------------------------------------------------------------------
# render
# ---------------------------------------------------------------------------

def test_render_file(workspace, page_file):
    out = workspace / "out.html"
    with respx.mock:
        respx.get("https://site.test/shop/cart.html").mock(
            return_value=httpx.Response(200, text="<ul id='cart'></ul>")
        )
        respx.get("https://site.test/promo.html").mock(return_value=httpx.Response(503))
        result = runner.invoke(
            app,
            ["render", "--file", str(page_file), "--base-url", BASE, "--output", str(out)],
        )

    assert result.exit_code == 0
    assert "2 fragment(s): 1 ok, 1 failed" in result.output
    html = out.read_text(encoding="utf-8")
    assert "<ul id=\"cart\"></ul>" in html
    assert "HTTP 503" in html

    with open_storage() as storage:
        stored = load_stats(storage, BASE)
    assert stored["total"] == 2


def test_render_url_to_stdout(workspace):
    with respx.mock:
        respx.get("https://site.test/").mock(
            return_value=httpx.Response(200, text='<p>x</p><esi:include src="/f"></esi:include>')
        )
        respx.get("https://site.test/f").mock(return_value=httpx.Response(200, text="FRAG"))
        result = runner.invoke(app, ["render", "--url", "https://site.test/"])

    assert result.exit_code == 0
    assert "FRAG" in result.output
    assert "esi-fragment-1" in result.output


def test_render_page_fetch_failure(workspace):
    with respx.mock:
        respx.get("https://site.test/").mock(return_value=httpx.Response(404))
        result = runner.invoke(app, ["render", "--url", "https://site.test/"])

    assert result.exit_code == 1
    assert "❌ Page fetch failed" in result.output


def test_render_requires_one_source(workspace):
    result = runner.invoke(app, ["render"])
    assert result.exit_code == 1
    assert "exactly one of --url or --file" in result.output


def test_render_file_requires_base_url(workspace, page_file):
    result = runner.invoke(app, ["render", "--file", str(page_file)])
    assert result.exit_code == 1
    assert "--base-url" in result.output


def test_render_rejects_bad_cookie(workspace):
    result = runner.invoke(app, ["render", "--url", BASE, "--cookie", "nope"])
    assert result.exit_code == 1
    assert "Invalid cookie" in result.output


def test_render_missing_file(workspace, tmp_path):
    result = runner.invoke(
        app, ["render", "--file", str(tmp_path / "absent.html"), "--base-url", BASE]
    )
    assert result.exit_code == 1
    assert "Cannot read" in result.output


def test_render_disabled_leaves_directives(workspace, page_file):
    with open_storage() as storage:
        storage.set({"esiEnabled": False})

    result = runner.invoke(app, ["render", "--file", str(page_file), "--base-url", BASE])

    assert result.exit_code == 0
    assert "<esi:include" in result.output
    assert "0 fragment(s)" in result.output


# ---------------------------------------------------------------------------
# stats / clear-stats
# ---------------------------------------------------------------------------

def _seed_stats():
    with open_storage() as storage:
        save_stats(
            storage,
            BASE,
            {
                "total": 2,
                "successful": 1,
                "failed": 1,
                "fragments": [
                    {
                        "id": 1,
                        "url": "cart.html",
                        "resolvedUrl": "https://site.test/shop/cart.html",
                        "success": True,
                        "timestamp": 1,
                    },
                    {
                        "id": 2,
                        "url": "/promo.html",
                        "resolvedUrl": "https://site.test/promo.html",
                        "success": False,
                        "timestamp": 2,
                        "error": "HTTP 503: Service Unavailable",
                    },
                ],
            },
        )


def test_stats_shows_fragments(workspace):
    _seed_stats()
    result = runner.invoke(app, ["stats", "--url", BASE])

    assert result.exit_code == 0
    assert "total=2  successful=1  failed=1" in result.output
    assert "✓ #1  cart.html" in result.output
    assert "✗ #2  /promo.html" in result.output
    assert "HTTP 503" in result.output


def test_stats_for_unknown_page(workspace):
    result = runner.invoke(app, ["stats", "--url", "https://other.test/"])
    assert result.exit_code == 0
    assert "No stats" in result.output


def test_clear_stats(workspace):
    _seed_stats()
    result = runner.invoke(app, ["clear-stats", "--url", BASE])

    assert result.exit_code == 0
    assert "Stats cleared" in result.output
    with open_storage() as storage:
        assert load_stats(storage, BASE) == {
            "total": 0,
            "successful": 0,
            "failed": 0,
            "fragments": [],
        }
