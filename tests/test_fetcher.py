"""Tests for ingest.crawler.fetcher outcome classification."""

from __future__ import annotations

from unittest.mock import MagicMock

import requests

from conftest import make_response
from ingest.crawler.constants import DEFAULT_HTTP_HEADERS, FETCH_TIMEOUT_SECONDS
from ingest.crawler.fetcher import Fetcher, is_html_content_type
from ingest.crawler.types import FetchStatus


URL = "https://gmina.example.pl/aktualnosci"


def _session_returning(response_or_exc) -> MagicMock:
    session = MagicMock(spec=requests.Session)
    if isinstance(response_or_exc, Exception):
        session.get.side_effect = response_or_exc
    else:
        session.get.return_value = response_or_exc
    return session


def test_html_response_is_ok():
    html = "<html><body><p>Zażółć gęślą jaźń</p></body></html>"
    fetcher = Fetcher(session=_session_returning(make_response(URL, html)))

    outcome = fetcher.fetch(URL)

    assert outcome.status == FetchStatus.OK
    assert outcome.ok
    assert outcome.status_code == 200
    assert "Zażółć" in outcome.html
    assert outcome.final_url == URL


def test_redirect_target_is_recorded_as_final_url():
    final = "https://gmina.example.pl/aktualnosci/2024"
    fetcher = Fetcher(session=_session_returning(make_response(final, "<p>x</p>")))

    outcome = fetcher.fetch(URL)

    assert outcome.url == URL
    assert outcome.final_url == final


def test_sends_browser_headers_and_timeout_once():
    session = _session_returning(make_response(URL, "<p>x</p>"))
    Fetcher(session=session).fetch(URL)

    session.get.assert_called_once()
    _, kwargs = session.get.call_args
    assert kwargs["timeout"] == FETCH_TIMEOUT_SECONDS
    assert kwargs["allow_redirects"] is True
    assert kwargs["headers"]["User-Agent"] == DEFAULT_HTTP_HEADERS["User-Agent"]
    assert kwargs["headers"]["Accept-Language"].startswith("pl-PL")


def test_non_2xx_is_failed_with_status_reason():
    fetcher = Fetcher(session=_session_returning(make_response(URL, "gone", status=404)))

    outcome = fetcher.fetch(URL)

    assert outcome.status == FetchStatus.FAILED
    assert outcome.reason == "http-status:404"
    assert outcome.status_code == 404
    assert not outcome.ok


def test_non_html_is_skipped_not_failed():
    response = make_response(URL, "%PDF-1.4", content_type="application/pdf")
    outcome = Fetcher(session=_session_returning(response)).fetch(URL)

    assert outcome.status == FetchStatus.SKIPPED_NON_HTML
    assert outcome.reason is None
    assert outcome.html is None


def test_network_errors_become_failed_outcomes():
    session = _session_returning(requests.Timeout("read timed out"))
    outcome = Fetcher(session=session).fetch(URL)

    assert outcome.status == FetchStatus.FAILED
    assert outcome.reason == "Timeout: read timed out"
    session.get.assert_called_once()


def test_connection_error_is_not_raised():
    session = _session_returning(requests.ConnectionError("refused"))
    outcome = Fetcher(session=session).fetch(URL)

    assert outcome.status == FetchStatus.FAILED
    assert outcome.reason.startswith("ConnectionError")


def test_close_leaves_injected_session_open_and_rejects_further_fetches():
    session = _session_returning(make_response(URL, "<p>x</p>"))
    fetcher = Fetcher(session=session)

    fetcher.close()
    outcome = fetcher.fetch(URL)

    session.close.assert_not_called()
    session.get.assert_not_called()
    assert outcome.status == FetchStatus.FAILED


def test_is_html_content_type():
    assert is_html_content_type("text/html; charset=UTF-8")
    assert is_html_content_type("application/xhtml+xml")
    assert not is_html_content_type("application/json")
    assert not is_html_content_type(None)
