"""HTML page parser: selector-driven extraction with ordered fallbacks."""

from __future__ import annotations

import re
from datetime import date
from typing import Callable, Sequence

from bs4 import BeautifulSoup
from bs4.element import Tag
from soupsieve import SelectorSyntaxError

from ..config import Selectors
from ..constants import MAX_CONTENT_CHARS, NOISE_SELECTOR
from ..dedup import content_hash
from ..types import ParsedPage
from ..url import UrlFilter, resolve_url


ExtractionStrategy = Callable[[BeautifulSoup], str]

DATE_PATTERNS: tuple[tuple[re.Pattern[str], tuple[str, str, str]], ...] = (
    (re.compile(r"(?<!\d)(\d{1,2})\.(\d{1,2})\.(\d{4})(?!\d)"), ("day", "month", "year")),
    (re.compile(r"(?<!\d)(\d{4})-(\d{2})-(\d{2})(?!\d)"), ("year", "month", "day")),
)

_INLINE_SPACE_RE = re.compile(r"[^\S\n]+")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


def clean_text(text: str, *, limit: int = MAX_CONTENT_CHARS) -> str:
    """Collapse whitespace, normalize newlines, and cap the length."""

    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [_INLINE_SPACE_RE.sub(" ", line).strip() for line in normalized.split("\n")]
    collapsed = _BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip()
    return collapsed[:limit]


def parse_publish_date(text: str | None) -> str | None:
    """Return an ISO date for the first pattern that yields a valid date."""

    if not text:
        return None

    for pattern, order in DATE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        parts = dict(zip(order, (int(group) for group in match.groups())))
        try:
            return date(parts["year"], parts["month"], parts["day"]).isoformat()
        except ValueError:
            continue
    return None


def _select(soup: BeautifulSoup, selector: str | None) -> list[Tag]:
    if not selector:
        return []
    try:
        return list(soup.select(selector))
    except (SelectorSyntaxError, ValueError):
        return []


def _text_of(element: Tag) -> str:
    return element.get_text(" ", strip=True)


def _outermost(elements: Sequence[Tag]) -> list[Tag]:
    """Drop elements nested inside another matched element."""

    chosen: list[Tag] = []
    chosen_ids: set[int] = set()
    for element in elements:
        if any(id(parent) in chosen_ids for parent in element.parents):
            continue
        chosen.append(element)
        chosen_ids.add(id(element))
    return chosen


def first_non_empty(soup: BeautifulSoup, strategies: Sequence[ExtractionStrategy]) -> str:
    """Try strategies in order and return the first non-empty result."""

    for strategy in strategies:
        value = strategy(soup).strip()
        if value:
            return value
    return ""


def selector_first_text(selector: str | None) -> ExtractionStrategy:
    def strategy(soup: BeautifulSoup) -> str:
        for element in _select(soup, selector):
            text = _text_of(element)
            if text:
                return text
        return ""

    return strategy


def selector_joined_text(selector: str | None) -> ExtractionStrategy:
    def strategy(soup: BeautifulSoup) -> str:
        chunks = [_text_of(element) for element in _outermost(_select(soup, selector))]
        return "\n\n".join(chunk for chunk in chunks if chunk)

    return strategy


def document_title(soup: BeautifulSoup) -> str:
    if soup.title is None:
        return ""
    return soup.title.get_text(" ", strip=True)


def body_text(soup: BeautifulSoup) -> str:
    if soup.body is None:
        return ""
    return _text_of(soup.body)


def whole_document_text(soup: BeautifulSoup) -> str:
    return soup.get_text(" ", strip=True)


class PageParser:
    """Turn raw HTML into a `ParsedPage` for one crawl job.

    Extraction order is part of the contract:

    - title: configured title selector, then the document `<title>`, then "".
    - content: text of every element matching the configured content selector
      (outermost matches only, joined by blank lines), then the `<body>` text,
      then the whole document text.

    Noise elements (scripts, styles, navigation, headers, footers, menus, cookie
    banners) are removed before anything is extracted, links included, so site
    menus never feed the frontier.
    """

    def __init__(self, url_filter: UrlFilter, selectors: Selectors | None = None) -> None:
        self.url_filter = url_filter
        self.selectors = selectors or Selectors()

        self.title_strategies: tuple[ExtractionStrategy, ...] = (
            selector_first_text(self.selectors.title),
            document_title,
        )
        self.content_strategies: tuple[ExtractionStrategy, ...] = (
            selector_joined_text(self.selectors.content),
            body_text,
            whole_document_text,
        )

    def parse(self, html: str, source_url: str) -> ParsedPage:
        soup = BeautifulSoup(html, "lxml")

        for element in _select(soup, NOISE_SELECTOR):
            element.decompose()

        pdf_links = self._extract_pdf_links(soup, source_url)
        links = self._extract_links(soup, source_url, exclude=set(pdf_links))

        title = first_non_empty(soup, self.title_strategies)
        content = clean_text(first_non_empty(soup, self.content_strategies))
        publish_date = self._extract_publish_date(soup)

        return ParsedPage(
            source_url=source_url,
            title=title,
            content=content,
            content_hash=content_hash(content),
            links=links,
            pdf_links=pdf_links,
            publish_date=publish_date,
        )

    def _extract_links(self, soup: BeautifulSoup, page_url: str, *, exclude: set[str]) -> list[str]:
        out: list[str] = []
        seen: set[str] = set()

        for element in _select(soup, self.selectors.links or "a[href]"):
            href = element.get("href")
            if not isinstance(href, str):
                continue

            normalized = self.url_filter.normalize(href, page_url)
            if normalized is None or normalized in seen or normalized in exclude:
                continue

            seen.add(normalized)
            out.append(normalized)

        return out

    def _extract_pdf_links(self, soup: BeautifulSoup, page_url: str) -> list[str]:
        # Attachments may live off-origin; they are recorded, never crawled.
        out: list[str] = []
        seen: set[str] = set()

        for element in _select(soup, self.selectors.pdf_links):
            href = element.get("href")
            if not isinstance(href, str):
                continue

            resolved = resolve_url(page_url, href)
            if resolved is None or resolved in seen:
                continue

            seen.add(resolved)
            out.append(resolved)

        return out

    def _extract_publish_date(self, soup: BeautifulSoup) -> str | None:
        for element in _select(soup, self.selectors.date):
            machine_value = element.get("datetime")
            if isinstance(machine_value, str):
                parsed = parse_publish_date(machine_value)
                if parsed:
                    return parsed
            return parse_publish_date(_text_of(element))
        return None


__all__ = [
    "DATE_PATTERNS",
    "PageParser",
    "clean_text",
    "first_non_empty",
    "parse_publish_date",
]
