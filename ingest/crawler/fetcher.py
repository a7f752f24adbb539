"""Single-attempt HTTP page fetching with a fixed browser-like header set."""

from __future__ import annotations

import logging
import time
from typing import Mapping

import requests

from .constants import DEFAULT_HTTP_HEADERS, FETCH_TIMEOUT_SECONDS, HTML_CONTENT_TYPES
from .types import FetchOutcome


LOGGER = logging.getLogger(__name__)


def is_html_content_type(content_type: str | None) -> bool:
    normalized = (content_type or "").split(";", maxsplit=1)[0].strip().lower()
    return any(normalized.startswith(kind) for kind in HTML_CONTENT_TYPES)


class Fetcher:
    """Fetch one URL per call and classify the outcome.

    - Non-2xx status codes become `FAILED` with reason `http-status:<code>`.
    - Non-HTML responses become `SKIPPED_NON_HTML`; they are not errors.
    - Network errors and timeouts become `FAILED`; nothing is raised or retried.

    One fetcher belongs to one crawl job. It owns its `requests.Session` unless a
    session is injected.
    """

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        headers: Mapping[str, str] | None = None,
        timeout_seconds: float = FETCH_TIMEOUT_SECONDS,
    ) -> None:
        self.headers = dict(DEFAULT_HTTP_HEADERS)
        if headers:
            self.headers.update(headers)
        self.timeout_seconds = timeout_seconds

        self._session = session
        self._owns_session = session is None
        self._closed = False

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def fetch(self, url: str) -> FetchOutcome:
        """Issue one bounded GET for `url`."""

        if self._closed:
            return FetchOutcome.failed(url, "Fetcher is closed")

        started = time.perf_counter()
        try:
            response = self.session.get(
                url,
                headers=self.headers,
                timeout=self.timeout_seconds,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            LOGGER.warning("Fetch failed for %s: %s", url, exc)
            return FetchOutcome.failed(
                url,
                f"{exc.__class__.__name__}: {exc}",
                elapsed_ms=elapsed_ms,
            )

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        status_code = response.status_code
        content_type = response.headers.get("Content-Type")

        if not 200 <= status_code < 300:
            LOGGER.warning("HTTP %s for %s", status_code, url)
            return FetchOutcome.failed(
                url,
                f"http-status:{status_code}",
                status_code=status_code,
                elapsed_ms=elapsed_ms,
            )

        if not is_html_content_type(content_type):
            LOGGER.debug("Skipping non-HTML %s (%s)", url, content_type)
            return FetchOutcome.skipped_non_html(
                url,
                status_code=status_code,
                content_type=content_type,
                elapsed_ms=elapsed_ms,
            )

        # Servers often omit the charset; requests then assumes ISO-8859-1.
        if "charset" not in (content_type or "").lower():
            response.encoding = response.apparent_encoding or "utf-8"

        return FetchOutcome.success(
            url,
            response.text,
            status_code,
            content_type=content_type,
            final_url=response.url or url,
            elapsed_ms=elapsed_ms,
        )

    def close(self) -> None:
        """Close the underlying session when the fetcher created it."""

        self._closed = True
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["Fetcher", "is_html_content_type"]
