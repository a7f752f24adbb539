"""URL normalization and the per-job same-origin link filter."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Iterable, Sequence
from urllib.parse import (
    parse_qsl,
    quote,
    urlencode,
    urljoin,
    urlsplit,
    urlunsplit,
)

from .constants import SKIP_EXTENSIONS


DEFAULT_ALLOWED_SCHEMES = ("http", "https")
SKIP_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "data:")
TRACKING_QUERY_PARAM_PREFIXES = ("utm_",)
TRACKING_QUERY_PARAMS = {
    "fbclid",
    "gclid",
    "mc_cid",
    "mc_eid",
    "mkt_tok",
    "igshid",
    "ref_src",
}


def _has_default_port(scheme: str, port: int | None) -> bool:
    if port is None:
        return False
    return (scheme == "http" and port == 80) or (scheme == "https" and port == 443)


def _normalize_netloc(parsed_url) -> str:  # urllib.parse.SplitResult
    host = (parsed_url.hostname or "").lower()
    if not host:
        return parsed_url.netloc.lower()

    userinfo = ""
    if parsed_url.username:
        userinfo = quote(parsed_url.username, safe="")
        if parsed_url.password:
            userinfo += ":" + quote(parsed_url.password, safe="")
        userinfo += "@"

    port: int | None
    try:
        port = parsed_url.port
    except ValueError:
        port = None

    if port is not None and not _has_default_port(parsed_url.scheme.lower(), port):
        return f"{userinfo}{host}:{port}"
    return f"{userinfo}{host}"


def _normalize_path(path: str) -> str:
    if not path:
        return "/"

    collapsed = re.sub(r"/{2,}", "/", path)
    normalized = posixpath.normpath(collapsed)

    if collapsed.startswith("/") and not normalized.startswith("/"):
        normalized = "/" + normalized

    if normalized in {"", "."}:
        normalized = "/"

    if collapsed.endswith("/") and not normalized.endswith("/"):
        normalized += "/"

    return normalized or "/"


def _is_tracking_query_key(key: str) -> bool:
    normalized = key.strip().lower()
    if not normalized:
        return False

    if normalized in TRACKING_QUERY_PARAMS:
        return True

    return any(normalized.startswith(prefix) for prefix in TRACKING_QUERY_PARAM_PREFIXES)


def _normalize_query(query: str) -> str:
    if not query:
        return ""

    pairs = parse_qsl(query, keep_blank_values=True)
    pairs = [(key, value) for key, value in pairs if not _is_tracking_query_key(key)]
    pairs = sorted(pairs, key=lambda item: (item[0], item[1]))
    if not pairs:
        return ""

    return urlencode(pairs, doseq=True)


def normalize_url(
    url: str,
    *,
    allowed_schemes: Sequence[str] = DEFAULT_ALLOWED_SCHEMES,
) -> str | None:
    """Canonicalize an absolute URL for visited-set and frontier consistency.

    Lowercases scheme and host, drops default ports, fragments, tracking query
    parameters and dot segments, and sorts the query string. A trailing slash is
    kept because relative links on the page resolve against it. Returns `None`
    for URLs that are invalid or outside allowed schemes. Idempotent.
    """

    if not url:
        return None

    raw = url.strip()
    if not raw:
        return None

    parsed = urlsplit(raw)
    if not parsed.scheme or not parsed.netloc:
        return None

    scheme = parsed.scheme.lower()
    if scheme not in {item.lower() for item in allowed_schemes}:
        return None

    netloc = _normalize_netloc(parsed)
    if not netloc:
        return None

    return urlunsplit((scheme, netloc, _normalize_path(parsed.path), _normalize_query(parsed.query), ""))


def resolve_url(base_url: str, href: str | None) -> str | None:
    """Resolve a possibly relative href against `base_url` and canonicalize it."""

    if href is None:
        return None

    candidate = href.strip()
    if not candidate or candidate.startswith("#"):
        return None

    lowered = candidate.lower()
    if any(lowered.startswith(prefix) for prefix in SKIP_HREF_PREFIXES):
        return None

    try:
        absolute = urljoin(base_url, candidate)
    except ValueError:
        return None
    return normalize_url(absolute)


def origin_of(url: str) -> str:
    """Return `scheme://host[:port]` of a canonical URL."""

    parsed = urlsplit(url)
    return f"{parsed.scheme}://{parsed.netloc}"


@dataclass(frozen=True, slots=True)
class FilteredUrl:
    """A link that passed the filter, tagged for frontier tier placement."""

    url: str
    priority: bool = False


class UrlFilter:
    """Canonicalize and validate candidate links for one crawl job.

    A link is accepted when, after resolution against the page it was found on,
    it shares the job origin, does not end with a denylisted extension, and
    contains none of the exclude patterns. Include patterns only tag a link as
    priority; they never reject.
    """

    def __init__(
        self,
        seed_url: str,
        *,
        include: Iterable[str] = (),
        exclude: Iterable[str] = (),
        skip_extensions: Iterable[str] = SKIP_EXTENSIONS,
    ) -> None:
        normalized_seed = normalize_url(seed_url)
        if normalized_seed is None:
            raise ValueError(f"Invalid seed URL: {seed_url!r}")

        self.seed_url = normalized_seed
        self.origin = origin_of(normalized_seed)
        self.include = tuple(pattern.lower() for pattern in include if pattern)
        self.exclude = tuple(pattern.lower() for pattern in exclude if pattern)
        self.skip_extensions = tuple(ext.lower() for ext in skip_extensions)

    def normalize(self, raw_url: str | None, base_url: str) -> str | None:
        """Return the canonical URL, or `None` when the link is rejected."""

        resolved = resolve_url(base_url, raw_url)
        if resolved is None:
            return None

        if origin_of(resolved) != self.origin:
            return None

        path = urlsplit(resolved).path.lower()
        if any(path.endswith(ext) for ext in self.skip_extensions):
            return None

        lowered = resolved.lower()
        if any(pattern in lowered for pattern in self.exclude):
            return None

        return resolved

    def is_priority(self, url: str) -> bool:
        lowered = url.lower()
        return any(pattern in lowered for pattern in self.include)

    def accept(self, raw_url: str | None, base_url: str) -> FilteredUrl | None:
        """Normalize, filter, and tag one link."""

        normalized = self.normalize(raw_url, base_url)
        if normalized is None:
            return None
        return FilteredUrl(url=normalized, priority=self.is_priority(normalized))


__all__ = [
    "DEFAULT_ALLOWED_SCHEMES",
    "FilteredUrl",
    "SKIP_HREF_PREFIXES",
    "TRACKING_QUERY_PARAMS",
    "UrlFilter",
    "normalize_url",
    "origin_of",
    "resolve_url",
]
