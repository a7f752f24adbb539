"""Core type definitions for the crawl-and-ingest pipeline.

This module is intentionally dependency-light so other crawler modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for records and job logs."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class DocumentType(str, Enum):
    """Closed set of document types assigned by the classifier."""

    RESOLUTION = "resolution"
    PROTOCOL = "protocol"
    ANNOUNCEMENT = "announcement"
    LEGAL_ACT = "legal_act"
    NEWS = "news"
    ARTICLE = "article"


class FetchStatus(str, Enum):
    """Outcome tag of one fetch attempt."""

    OK = "ok"
    SKIPPED_NON_HTML = "skipped_non_html"
    FAILED = "failed"


class JobStatus(str, Enum):
    """Job-log row states."""

    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class FrontierEntry:
    """A crawl candidate waiting in one of the frontier tiers."""

    url: str
    depth: int
    priority: bool = False
    referrer: str | None = None
    discovered_at: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class FetchOutcome:
    """Result of attempting to download one URL."""

    url: str
    status: FetchStatus
    html: str | None = None
    status_code: int | None = None
    content_type: str | None = None
    final_url: str | None = None
    reason: str | None = None
    elapsed_ms: int | None = None
    fetched_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def success(
        cls,
        url: str,
        html: str,
        status_code: int,
        *,
        content_type: str | None = None,
        final_url: str | None = None,
        elapsed_ms: int | None = None,
    ) -> "FetchOutcome":
        return cls(
            url=url,
            status=FetchStatus.OK,
            html=html,
            status_code=status_code,
            content_type=content_type,
            final_url=final_url,
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def skipped_non_html(
        cls,
        url: str,
        *,
        status_code: int | None = None,
        content_type: str | None = None,
        elapsed_ms: int | None = None,
    ) -> "FetchOutcome":
        return cls(
            url=url,
            status=FetchStatus.SKIPPED_NON_HTML,
            status_code=status_code,
            content_type=content_type,
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def failed(
        cls,
        url: str,
        reason: str,
        *,
        status_code: int | None = None,
        elapsed_ms: int | None = None,
    ) -> "FetchOutcome":
        return cls(
            url=url,
            status=FetchStatus.FAILED,
            status_code=status_code,
            reason=reason,
            elapsed_ms=elapsed_ms,
        )

    @property
    def ok(self) -> bool:
        return self.status == FetchStatus.OK and self.html is not None


@dataclass(slots=True)
class ParsedPage:
    """Structured view of one fetched HTML page."""

    source_url: str
    title: str
    content: str
    content_hash: str
    links: list[str] = field(default_factory=list)
    pdf_links: list[str] = field(default_factory=list)
    publish_date: str | None = None

    @property
    def content_length(self) -> int:
        return len(self.content)


@dataclass(frozen=True, slots=True)
class StoredContentRecord:
    """Raw page content persisted once per (source_id, content_hash)."""

    content_id: str
    source_id: str
    url: str
    title: str
    content_hash: str
    raw_content: str
    fetched_at: str
    metadata: dict[str, JSONValue] = field(default_factory=dict)

    def to_json(self) -> JSONDict:
        return {
            "content_id": self.content_id,
            "source_id": self.source_id,
            "url": self.url,
            "title": self.title,
            "content_hash": self.content_hash,
            "raw_content": self.raw_content,
            "fetched_at": self.fetched_at,
            "metadata": self.metadata,
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> "StoredContentRecord":
        return cls(
            content_id=str(payload["content_id"]),
            source_id=str(payload["source_id"]),
            url=str(payload.get("url") or ""),
            title=str(payload.get("title") or ""),
            content_hash=str(payload["content_hash"]),
            raw_content=str(payload.get("raw_content") or ""),
            fetched_at=str(payload.get("fetched_at") or ""),
            metadata=dict(payload.get("metadata") or {}),
        )


@dataclass(frozen=True, slots=True)
class ProcessedDocument:
    """Classified and optionally enriched document handed to the knowledge store."""

    document_id: str
    source_id: str
    source_content_id: str
    document_type: DocumentType
    title: str
    content: str
    source_url: str
    summary: str | None = None
    keywords: list[str] = field(default_factory=list)
    embedding: list[float] | None = None
    publish_date: str | None = None
    processed_at: str = field(default_factory=utc_now_iso)

    def to_json(self) -> JSONDict:
        return {
            "document_id": self.document_id,
            "source_id": self.source_id,
            "source_content_id": self.source_content_id,
            "document_type": self.document_type.value,
            "title": self.title,
            "content": self.content,
            "source_url": self.source_url,
            "summary": self.summary,
            "keywords": list(self.keywords),
            "embedding": None if self.embedding is None else list(self.embedding),
            "publish_date": self.publish_date,
            "processed_at": self.processed_at,
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> "ProcessedDocument":
        embedding = payload.get("embedding")
        return cls(
            document_id=str(payload["document_id"]),
            source_id=str(payload["source_id"]),
            source_content_id=str(payload["source_content_id"]),
            document_type=DocumentType(payload.get("document_type", DocumentType.ARTICLE.value)),
            title=str(payload.get("title") or ""),
            content=str(payload.get("content") or ""),
            source_url=str(payload.get("source_url") or ""),
            summary=payload.get("summary"),
            keywords=[str(item) for item in payload.get("keywords") or []],
            embedding=None if embedding is None else [float(value) for value in embedding],
            publish_date=payload.get("publish_date"),
            processed_at=str(payload.get("processed_at") or ""),
        )


@dataclass(slots=True)
class CrawlJobResult:
    """Mutable accumulator for one crawl job, finalized into the job log."""

    source_id: str
    success: bool = False
    items_scraped: int = 0
    items_processed: int = 0
    errors: list[str] = field(default_factory=list)
    job_log_id: str | None = None
    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def finish(self, *, success: bool) -> None:
        self.success = success
        self.finished_at = utc_now_iso()

    @property
    def status(self) -> JobStatus:
        if self.finished_at is None:
            return JobStatus.RUNNING
        return JobStatus.SUCCESS if self.success else JobStatus.ERROR

    def to_json(self) -> JSONDict:
        return {
            "source_id": self.source_id,
            "success": self.success,
            "items_scraped": self.items_scraped,
            "items_processed": self.items_processed,
            "errors": list(self.errors),
            "job_log_id": self.job_log_id,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


__all__ = [
    "CrawlJobResult",
    "DocumentType",
    "FetchOutcome",
    "FetchStatus",
    "FrontierEntry",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "JobStatus",
    "ParsedPage",
    "ProcessedDocument",
    "StoredContentRecord",
    "utc_now_iso",
]
