"""Tests for ``resolve_url``."""

from __future__ import annotations

from esi_preview.engine.urls import resolve_url

PAGE = "https://h/a/b/"


class TestResolveUrl:
    def test_absolute_http_unchanged(self) -> None:
        assert resolve_url("http://other/x.html", PAGE) == "http://other/x.html"

    def test_absolute_https_unchanged(self) -> None:
        assert resolve_url("https://other/x.html", PAGE) == "https://other/x.html"

    def test_protocol_relative_gets_base_scheme(self) -> None:
        assert resolve_url("//cdn.example.com/f.html", PAGE) == "https://cdn.example.com/f.html"
        assert (
            resolve_url("//cdn.example.com/f.html", "http://h/")
            == "http://cdn.example.com/f.html"
        )

    def test_parent_relative(self) -> None:
        assert resolve_url("../x.html", PAGE) == "https://h/a/x.html"

    def test_root_relative(self) -> None:
        assert resolve_url("/frag/header.html", PAGE) == "https://h/frag/header.html"

    def test_sibling_relative(self) -> None:
        assert resolve_url("x.html", "https://h/a/page.html") == "https://h/a/x.html"

    def test_query_is_kept(self) -> None:
        assert resolve_url("/f?lang=en", PAGE) == "https://h/f?lang=en"

    def test_broken_base_falls_back_to_directory_prefix(self) -> None:
        # urljoin rejects the bracketed host; the raw value is appended instead.
        base = "http://[broken/dir/page.html"
        assert resolve_url("x.html", base) == "http://[broken/dir/x.html"
