"""Shared fixtures: fake portal sites built from real ``requests.Response`` objects.

No test opens a network connection; sessions are ``MagicMock`` objects whose
``get`` is routed to an in-memory page table.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable
from unittest.mock import MagicMock

import pytest
import requests

from ingest.crawler import FileContentStore, FileJobLog, SourceRegistry


BASE = "https://gmina.example.pl"

LONG_TEXT = "Rada gminy przyjęła budżet na kolejny rok i omówiła plan inwestycji. " * 4
VERY_LONG_TEXT = "Sesja rady miasta dotyczyła dotacji oraz ochrony środowiska w gminie. " * 12


def make_response(
    url: str,
    body: str = "",
    *,
    status: int = 200,
    content_type: str = "text/html; charset=utf-8",
) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = body.encode("utf-8")
    response.headers["Content-Type"] = content_type
    response.url = url
    response.encoding = "utf-8"
    return response


def html_page(
    title: str,
    text: str,
    links: Iterable[str] = (),
    *,
    extra: str = "",
    nav_links: Iterable[str] = (),
) -> str:
    # Anchors carry no text so they never change page content or its hash.
    anchors = "".join(f'<a href="{href}"></a>' for href in links)
    menu = "".join(f'<a href="{href}">{href}</a>' for href in nav_links)
    return (
        "<html><head>"
        f"<title>{title} | Gmina</title>"
        "</head><body>"
        f"<nav>{menu}</nav>"
        f"<article><h1>{title}</h1><p>{text}</p></article>"
        f'<div class="odnosniki">{anchors}</div>'
        f"{extra}"
        "</body></html>"
    )


class FakeSite:
    """Route ``session.get(url, ...)`` to canned responses or exceptions."""

    def __init__(self) -> None:
        self.routes: dict[str, requests.Response | Exception] = {}
        self.calls: list[str] = []
        self.session = MagicMock(spec=requests.Session)
        self.session.get.side_effect = self._get

    def add_page(self, path: str, title: str, text: str, links: Iterable[str] = (), **kwargs) -> str:
        url = BASE + path
        self.routes[url] = make_response(url, html_page(title, text, links, **kwargs))
        return url

    def add_redirect(self, url: str, final_url: str, body: str) -> str:
        """Serve ``body`` at ``url`` as if the server redirected to ``final_url``."""

        self.routes[url] = make_response(final_url, body)
        return url

    def add_response(self, path: str, **kwargs) -> str:
        url = BASE + path
        self.routes[url] = make_response(url, kwargs.pop("body", ""), **kwargs)
        return url

    def add_error(self, path: str, exc: Exception) -> str:
        url = BASE + path
        self.routes[url] = exc
        return url

    def _get(self, url: str, **kwargs) -> requests.Response:
        self.calls.append(url)
        route = self.routes.get(url)
        if route is None:
            return make_response(url, "not found", status=404)
        if isinstance(route, Exception):
            raise route
        return route

    def fetch_counts(self) -> Counter:
        return Counter(self.calls)


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def store(tmp_path) -> FileContentStore:
    return FileContentStore(tmp_path)


@pytest.fixture
def job_log(tmp_path) -> FileJobLog:
    return FileJobLog(tmp_path)


def source_entry(**overrides) -> dict:
    entry = {
        "source_id": "gmina",
        "name": "Gmina Przykładowa",
        "seed_url": BASE + "/",
        "max_pages": 20,
        "max_depth": 3,
        "delay_ms": 0,
    }
    entry.update(overrides)
    return entry


def registry_for(*entries: dict) -> SourceRegistry:
    return SourceRegistry.from_list(list(entries) or [source_entry()])
