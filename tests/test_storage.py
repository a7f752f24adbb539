"""Tests for ingest.crawler.storage file-backed store and job log."""

from __future__ import annotations

import json

import pytest

from ingest.crawler.dedup import content_hash, make_content_id, make_document_id
from ingest.crawler.storage import FileContentStore, FileJobLog, StorageError
from ingest.crawler.types import CrawlJobResult, DocumentType, ProcessedDocument, StoredContentRecord


def _record(content: str, *, source_id: str = "gmina", fetched_at: str = "2024-05-01T10:00:00+00:00"):
    digest = content_hash(content)
    return StoredContentRecord(
        content_id=make_content_id(source_id, digest),
        source_id=source_id,
        url=f"https://{source_id}.example.pl/{digest}",
        title="Tytuł",
        content_hash=digest,
        raw_content=content,
        fetched_at=fetched_at,
        metadata={"publish_date": None},
    )


def _processed(record: StoredContentRecord) -> ProcessedDocument:
    return ProcessedDocument(
        document_id=make_document_id(record.content_id),
        source_id=record.source_id,
        source_content_id=record.content_id,
        document_type=DocumentType.NEWS,
        title=record.title,
        content=record.raw_content,
        source_url=record.url,
        keywords=["gmina"],
        embedding=[0.25, 0.5],
    )


class TestFileContentStore:
    def test_insert_and_find_by_hash(self, store):
        record = store.insert_raw(_record("pierwszy"))

        assert store.find_by_hash("gmina", record.content_hash) == record
        assert store.find_by_hash("powiat", record.content_hash) is None
        assert store.get_raw(record.content_id) == record

    def test_duplicate_raw_insert_is_refused(self, store):
        store.insert_raw(_record("pierwszy"))

        with pytest.raises(StorageError):
            store.insert_raw(_record("pierwszy"))
        assert len(store.raw_records()) == 1

    def test_processed_documents_are_unique_per_raw_record(self, store):
        record = store.insert_raw(_record("pierwszy"))
        document = store.insert_processed(_processed(record))

        assert store.find_processed(record.content_id) == document
        with pytest.raises(StorageError):
            store.insert_processed(_processed(record))

    def test_state_survives_restart(self, tmp_path):
        first = FileContentStore(tmp_path)
        record = first.insert_raw(_record("pierwszy"))
        first.insert_processed(_processed(record))
        first.mark_source_crawled("gmina", "2024-05-02T00:00:00+00:00")

        reopened = FileContentStore(tmp_path)

        assert reopened.find_by_hash("gmina", record.content_hash) == record
        restored = reopened.find_processed(record.content_id)
        assert restored is not None
        assert restored.document_type == DocumentType.NEWS
        assert restored.embedding == [0.25, 0.5]
        assert reopened.last_crawled("gmina") == "2024-05-02T00:00:00+00:00"

    def test_unreadable_lines_are_skipped_on_load(self, tmp_path):
        store = FileContentStore(tmp_path)
        store.insert_raw(_record("pierwszy"))
        with store.raw_path.open("a", encoding="utf-8") as handle:
            handle.write("{not json\n")

        assert len(FileContentStore(tmp_path).raw_records()) == 1

    def test_list_unprocessed_newest_first_with_limit(self, store):
        old = store.insert_raw(_record("stary", fetched_at="2024-01-01T00:00:00+00:00"))
        new = store.insert_raw(_record("nowy", fetched_at="2024-03-01T00:00:00+00:00"))
        mid = store.insert_raw(_record("środkowy", fetched_at="2024-02-01T00:00:00+00:00"))
        done = store.insert_raw(_record("gotowy", fetched_at="2024-04-01T00:00:00+00:00"))
        store.insert_raw(_record("obcy", source_id="powiat"))
        store.insert_processed(_processed(done))

        assert store.list_unprocessed("gmina", 10) == [new, mid, old]
        assert store.list_unprocessed("gmina", 2) == [new, mid]
        assert store.list_unprocessed("gmina", 0) == []

    def test_mark_source_crawled_writes_manifest(self, store):
        store.mark_source_crawled("gmina", "2024-05-02T00:00:00+00:00")
        store.mark_source_crawled("powiat", "2024-05-03T00:00:00+00:00")

        payload = json.loads(store.sources_path.read_text(encoding="utf-8"))
        assert payload == {
            "gmina": "2024-05-02T00:00:00+00:00",
            "powiat": "2024-05-03T00:00:00+00:00",
        }


class TestFileJobLog:
    def test_start_and_end_rows(self, tmp_path):
        job_log = FileJobLog(tmp_path)
        job_id = job_log.record_job_start("gmina")

        result = CrawlJobResult(source_id="gmina", items_scraped=3, items_processed=2, job_log_id=job_id)
        result.add_error("Fetch error for https://gmina.example.pl/x: http-status:500")
        result.finish(success=True)
        job_log.record_job_end(job_id, result, {"counters": {"pages_parsed": 4}})

        rows = job_log.rows(job_id)
        assert [row["status"] for row in rows] == ["running", "success"]
        end = rows[-1]
        assert end["items_scraped"] == 3
        assert end["items_processed"] == 2
        assert end["errors"] == ["Fetch error for https://gmina.example.pl/x: http-status:500"]
        assert end["stats"] == {"counters": {"pages_parsed": 4}}

    def test_failed_job_row_has_error_status(self, tmp_path):
        job_log = FileJobLog(tmp_path)
        job_id = job_log.record_job_start("gmina")
        result = CrawlJobResult(source_id="gmina")
        result.finish(success=False)

        job_log.record_job_end(job_id, result)

        assert job_log.rows(job_id)[-1]["status"] == "error"
        assert "stats" not in job_log.rows(job_id)[-1]

    def test_job_ids_are_unique(self, tmp_path):
        job_log = FileJobLog(tmp_path)
        assert job_log.record_job_start("a") != job_log.record_job_start("a")
