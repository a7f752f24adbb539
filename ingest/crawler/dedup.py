"""Content hashing and per-source deduplication against the content store."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .types import ParsedPage, StoredContentRecord, utc_now_iso

if TYPE_CHECKING:
    from .storage import ContentStore


_FNV64_OFFSET = 0xCBF29CE484222325
_FNV64_PRIME = 0x100000001B3
_MASK64 = 0xFFFFFFFFFFFFFFFF


def content_hash(content: str) -> str:
    """Return a stable 64-bit FNV-1a digest of cleaned page text.

    Used only to recognize unchanged content on re-crawl; not a security hash.
    """

    value = _FNV64_OFFSET
    for byte in (content or "").encode("utf-8"):
        value ^= byte
        value = (value * _FNV64_PRIME) & _MASK64
    return f"{value:016x}"


def make_content_id(source_id: str, digest: str) -> str:
    payload = f"{source_id}\n{digest}".encode("utf-8")
    return hashlib.sha1(payload).hexdigest()


def make_document_id(content_id: str) -> str:
    return hashlib.sha1(f"processed\n{content_id}".encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class DedupResult:
    is_new: bool
    record: StoredContentRecord


class ContentDeduplicator:
    """Check-then-insert raw content keyed by (source_id, content_hash).

    Jobs for different sources never share a source_id and each job processes
    pages sequentially, so the two store calls need no extra locking.
    """

    def __init__(self, store: "ContentStore") -> None:
        self.store = store

    def check_and_record(
        self,
        source_id: str,
        page: ParsedPage,
        *,
        fetched_at: str | None = None,
    ) -> DedupResult:
        existing = self.store.find_by_hash(source_id, page.content_hash)
        if existing is not None:
            return DedupResult(is_new=False, record=existing)

        record = StoredContentRecord(
            content_id=make_content_id(source_id, page.content_hash),
            source_id=source_id,
            url=page.source_url,
            title=page.title,
            content_hash=page.content_hash,
            raw_content=page.content,
            fetched_at=fetched_at or utc_now_iso(),
            metadata={
                "publish_date": page.publish_date,
                "pdf_links": list(page.pdf_links),
                "links_count": len(page.links),
                "content_length": page.content_length,
            },
        )
        return DedupResult(is_new=True, record=self.store.insert_raw(record))


__all__ = [
    "ContentDeduplicator",
    "DedupResult",
    "content_hash",
    "make_content_id",
    "make_document_id",
]
