"""Best-effort summary and embedding enrichment with per-call failure isolation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from .constants import EMBEDDING_INPUT_CHARS, SUMMARY_INPUT_CHARS, SUMMARY_MIN_CHARS
from .types import ParsedPage


LOGGER = logging.getLogger(__name__)


class Summarizer(Protocol):
    def summarize(self, text: str) -> str | None: ...


class Embedder(Protocol):
    def embed(self, text: str) -> Sequence[float] | None: ...


@dataclass(frozen=True, slots=True)
class EnrichmentResult:
    summary: str | None = None
    embedding: list[float] | None = None
    summary_error: str | None = None
    embedding_error: str | None = None


class Enricher:
    """Call the optional summarizer and embedder for one document.

    The two calls are independent and issued sequentially. Any exception or
    unusable response leaves the corresponding field `None` and is logged;
    nothing propagates to the caller.
    """

    def __init__(
        self,
        summarizer: Summarizer | None = None,
        embedder: Embedder | None = None,
    ) -> None:
        self.summarizer = summarizer
        self.embedder = embedder

    @property
    def enabled(self) -> bool:
        return self.summarizer is not None or self.embedder is not None

    def enrich(self, page: ParsedPage) -> EnrichmentResult:
        return self.enrich_text(page.title, page.content)

    def enrich_text(self, title: str, content: str) -> EnrichmentResult:
        summary, summary_error = self._summarize(content)
        embedding, embedding_error = self._embed(title, content)
        return EnrichmentResult(
            summary=summary,
            embedding=embedding,
            summary_error=summary_error,
            embedding_error=embedding_error,
        )

    def _summarize(self, content: str) -> tuple[str | None, str | None]:
        if self.summarizer is None or len(content) <= SUMMARY_MIN_CHARS:
            return None, None

        try:
            summary = self.summarizer.summarize(content[:SUMMARY_INPUT_CHARS])
        except Exception as exc:
            LOGGER.warning("Summary generation failed: %s: %s", exc.__class__.__name__, exc)
            return None, f"{exc.__class__.__name__}: {exc}"

        if summary is None:
            return None, None
        if not isinstance(summary, str) or not summary.strip():
            LOGGER.warning("Summary response malformed: %r", summary)
            return None, "Malformed summary response"
        return summary.strip(), None

    def _embed(self, title: str, content: str) -> tuple[list[float] | None, str | None]:
        if self.embedder is None:
            return None, None

        text = f"{title}\n\n{content}"[:EMBEDDING_INPUT_CHARS]
        try:
            vector = self.embedder.embed(text)
        except Exception as exc:
            LOGGER.warning("Embedding generation failed: %s: %s", exc.__class__.__name__, exc)
            return None, f"{exc.__class__.__name__}: {exc}"

        if vector is None:
            return None, None
        try:
            values = [float(value) for value in vector]
        except (TypeError, ValueError) as exc:
            LOGGER.warning("Embedding response malformed: %s", exc)
            return None, "Malformed embedding response"
        if not values:
            return None, "Malformed embedding response"
        return values, None


__all__ = [
    "Embedder",
    "Enricher",
    "EnrichmentResult",
    "Summarizer",
]
