"""Content store and job-log interfaces plus their filesystem implementations.

The crawl job only talks to `ContentStore` and `JobLogSink`. `FileContentStore`
and `FileJobLog` own the on-disk layout under one `output_dir`; other modules
should use this API instead of building paths manually.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Any, Iterator, Mapping, Protocol

from .constants import JSON_INDENT
from .types import (
    CrawlJobResult,
    JobStatus,
    JSONDict,
    ProcessedDocument,
    StoredContentRecord,
    utc_now_iso,
)


LOGGER = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Store write failed or would break a uniqueness contract."""


class ContentStore(Protocol):
    def find_by_hash(self, source_id: str, content_hash: str) -> StoredContentRecord | None: ...

    def insert_raw(self, record: StoredContentRecord) -> StoredContentRecord: ...

    def find_processed(self, content_id: str) -> ProcessedDocument | None: ...

    def insert_processed(self, document: ProcessedDocument) -> ProcessedDocument: ...

    def list_unprocessed(self, source_id: str, limit: int) -> list[StoredContentRecord]: ...

    def mark_source_crawled(self, source_id: str, timestamp: str) -> None: ...


class JobLogSink(Protocol):
    def record_job_start(self, source_id: str) -> str: ...

    def record_job_end(
        self,
        job_log_id: str,
        result: CrawlJobResult,
        stats: Mapping[str, Any] | None = None,
    ) -> None: ...


def _iter_jsonl(path: Path) -> Iterator[dict[str, Any]]:
    if not path.exists():
        return
    with path.open("r", encoding="utf-8") as handle:
        for line_no, line in enumerate(handle, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                payload = json.loads(line)
            except json.JSONDecodeError:
                LOGGER.warning("Skipping unreadable line %d in %s", line_no, path)
                continue
            if isinstance(payload, dict):
                yield payload


def _append_jsonl(path: Path, payload: Mapping[str, Any], lock: threading.Lock) -> None:
    line = json.dumps(payload, ensure_ascii=False, sort_keys=True)
    try:
        with lock:
            with path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
    except OSError as exc:
        raise StorageError(f"Cannot append to {path}: {exc}") from exc


def _atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
    content = json.dumps(payload, ensure_ascii=False, indent=JSON_INDENT, sort_keys=True) + "\n"
    tmp_fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=path.name + ".",
        suffix=".tmp",
    )
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise


class FileContentStore:
    """JSONL-backed content store, safe for use by several concurrent jobs."""

    def __init__(self, output_dir: str | Path, *, load_existing: bool = True) -> None:
        self.output_dir = Path(output_dir)

        self.content_dir = self.output_dir / "content"
        self.manifests_dir = self.output_dir / "manifests"

        self.raw_path = self.content_dir / "raw.jsonl"
        self.processed_path = self.content_dir / "processed.jsonl"
        self.sources_path = self.manifests_dir / "sources.json"

        self._jsonl_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._manifest_lock = threading.Lock()

        self._raw_by_key: dict[tuple[str, str], StoredContentRecord] = {}
        self._raw_order: dict[str, list[str]] = {}
        self._raw_by_id: dict[str, StoredContentRecord] = {}
        self._processed: dict[str, ProcessedDocument] = {}
        self._sources: dict[str, str] = {}

        self._ensure_layout()
        if load_existing:
            self._load_state()

    @property
    def paths(self) -> JSONDict:
        """Return important output paths for logging/CLI status messages."""

        return {
            "output_dir": str(self.output_dir),
            "raw_content": str(self.raw_path),
            "processed_documents": str(self.processed_path),
            "sources_manifest": str(self.sources_path),
        }

    def _ensure_layout(self) -> None:
        self.content_dir.mkdir(parents=True, exist_ok=True)
        self.manifests_dir.mkdir(parents=True, exist_ok=True)

    def _load_state(self) -> None:
        for payload in _iter_jsonl(self.raw_path):
            try:
                record = StoredContentRecord.from_json(payload)
            except (KeyError, TypeError, ValueError):
                LOGGER.warning("Skipping malformed raw record in %s", self.raw_path)
                continue
            self._remember_raw(record)

        for payload in _iter_jsonl(self.processed_path):
            try:
                document = ProcessedDocument.from_json(payload)
            except (KeyError, TypeError, ValueError):
                LOGGER.warning("Skipping malformed processed record in %s", self.processed_path)
                continue
            self._processed[document.source_content_id] = document

        if self.sources_path.exists():
            try:
                payload = json.loads(self.sources_path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                LOGGER.warning("Ignoring unreadable %s: %s", self.sources_path, exc)
            else:
                if isinstance(payload, dict):
                    self._sources = {str(key): str(value) for key, value in payload.items()}

        LOGGER.debug(
            "Loaded %d raw and %d processed records from %s",
            len(self._raw_by_id),
            len(self._processed),
            self.output_dir,
        )

    def _remember_raw(self, record: StoredContentRecord) -> None:
        key = (record.source_id, record.content_hash)
        if key in self._raw_by_key:
            return
        self._raw_by_key[key] = record
        self._raw_by_id[record.content_id] = record
        self._raw_order.setdefault(record.source_id, []).append(record.content_id)

    def find_by_hash(self, source_id: str, content_hash: str) -> StoredContentRecord | None:
        with self._state_lock:
            return self._raw_by_key.get((source_id, content_hash))

    def insert_raw(self, record: StoredContentRecord) -> StoredContentRecord:
        """Persist a new raw record; duplicates of (source_id, content_hash) are refused."""

        key = (record.source_id, record.content_hash)
        with self._state_lock:
            if key in self._raw_by_key:
                raise StorageError(
                    f"Raw content already stored for source {record.source_id!r} "
                    f"and hash {record.content_hash}"
                )
            _append_jsonl(self.raw_path, record.to_json(), self._jsonl_lock)
            self._remember_raw(record)
        return record

    def get_raw(self, content_id: str) -> StoredContentRecord | None:
        with self._state_lock:
            return self._raw_by_id.get(content_id)

    def find_processed(self, content_id: str) -> ProcessedDocument | None:
        with self._state_lock:
            return self._processed.get(content_id)

    def insert_processed(self, document: ProcessedDocument) -> ProcessedDocument:
        """Persist a processed document; one per raw record at most."""

        with self._state_lock:
            if document.source_content_id in self._processed:
                raise StorageError(
                    f"Content {document.source_content_id} is already processed"
                )
            _append_jsonl(self.processed_path, document.to_json(), self._jsonl_lock)
            self._processed[document.source_content_id] = document
        return document

    def list_unprocessed(self, source_id: str, limit: int) -> list[StoredContentRecord]:
        """Return up to `limit` raw records of a source without a processed document, newest first."""

        if limit <= 0:
            return []
        with self._state_lock:
            order = self._raw_order.get(source_id, [])
            candidates = [
                (index, self._raw_by_id[content_id])
                for index, content_id in enumerate(order)
                if content_id not in self._processed
            ]
        candidates.sort(key=lambda item: (item[1].fetched_at, item[0]), reverse=True)
        return [record for _, record in candidates[:limit]]

    def processed_documents(self, source_id: str | None = None) -> list[ProcessedDocument]:
        """Return snapshot of processed documents, optionally for one source."""

        with self._state_lock:
            documents = list(self._processed.values())
        if source_id is None:
            return documents
        return [doc for doc in documents if doc.source_id == source_id]

    def raw_records(self, source_id: str | None = None) -> list[StoredContentRecord]:
        with self._state_lock:
            records = list(self._raw_by_id.values())
        if source_id is None:
            return records
        return [record for record in records if record.source_id == source_id]

    def mark_source_crawled(self, source_id: str, timestamp: str) -> None:
        with self._manifest_lock:
            self._sources[source_id] = timestamp
            try:
                _atomic_write_json(self.sources_path, dict(self._sources))
            except OSError as exc:
                raise StorageError(f"Cannot write {self.sources_path}: {exc}") from exc

    def last_crawled(self, source_id: str) -> str | None:
        with self._manifest_lock:
            return self._sources.get(source_id)


class FileJobLog:
    """Append job start/end rows to `logs/jobs.jsonl`."""

    def __init__(self, output_dir: str | Path) -> None:
        self.logs_dir = Path(output_dir) / "logs"
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.logs_dir / "jobs.jsonl"
        self._lock = threading.Lock()

    def record_job_start(self, source_id: str) -> str:
        job_log_id = uuid.uuid4().hex
        _append_jsonl(
            self.path,
            {
                "job_log_id": job_log_id,
                "source_id": source_id,
                "status": JobStatus.RUNNING.value,
                "started_at": utc_now_iso(),
            },
            self._lock,
        )
        return job_log_id

    def record_job_end(
        self,
        job_log_id: str,
        result: CrawlJobResult,
        stats: Mapping[str, Any] | None = None,
    ) -> None:
        payload: dict[str, Any] = {
            **result.to_json(),
            "job_log_id": job_log_id,
            "status": (JobStatus.SUCCESS if result.success else JobStatus.ERROR).value,
            "finished_at": result.finished_at or utc_now_iso(),
        }
        if stats is not None:
            payload["stats"] = dict(stats)
        _append_jsonl(self.path, payload, self._lock)

    def rows(self, job_log_id: str | None = None) -> list[dict[str, Any]]:
        """Return persisted job rows, optionally for one job id."""

        with self._lock:
            rows = list(_iter_jsonl(self.path))
        if job_log_id is None:
            return rows
        return [row for row in rows if row.get("job_log_id") == job_log_id]


__all__ = [
    "ContentStore",
    "FileContentStore",
    "FileJobLog",
    "JobLogSink",
    "StorageError",
]
