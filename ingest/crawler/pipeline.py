"""Crawl job orchestration: frontier loop, dedup, classification, enrichment."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
import json
import logging
import threading
import time
from typing import Callable, Iterable, Protocol

from .classifier import classify, extract_keywords
from .config import ConfigError, SourceConfig
from .constants import (
    BACKLOG_LIMIT,
    DEFAULT_MAX_CONCURRENT_JOBS,
    MIN_CONTENT_CHARS,
    UNTITLED_DOCUMENT,
)
from .dedup import ContentDeduplicator, make_document_id
from .enrichment import Enricher
from .fetcher import Fetcher
from .frontier import Frontier
from .parsers import PageParser
from .stats import StatsCollector
from .storage import ContentStore, JobLogSink
from .types import (
    CrawlJobResult,
    FetchOutcome,
    FetchStatus,
    FrontierEntry,
    ParsedPage,
    ProcessedDocument,
    StoredContentRecord,
    utc_now_iso,
)
from .url import FilteredUrl, UrlFilter, normalize_url


LOGGER = logging.getLogger(__name__)


class SourceConfigProvider(Protocol):
    def get_source_config(self, source_id: str) -> SourceConfig: ...


@dataclass(slots=True)
class JobContext:
    """Everything one crawl invocation owns; nothing here is shared between jobs."""

    source: SourceConfig
    url_filter: UrlFilter
    frontier: Frontier
    fetcher: Fetcher
    parser: PageParser
    deduplicator: ContentDeduplicator
    result: CrawlJobResult
    stats: StatsCollector
    handled_content_ids: set[str] = field(default_factory=set)


class CrawlJob:
    """Run one bounded crawl against a single source.

    Each iteration pops the next frontier entry, fetches it, parses accepted
    HTML, deduplicates against the store, classifies, enriches, persists, and
    enqueues discovered links. Recoverable failures are collected in
    `CrawlJobResult.errors`; the job-log end row is always written.
    """

    def __init__(
        self,
        source_id: str,
        *,
        config_provider: SourceConfigProvider,
        store: ContentStore,
        job_log: JobLogSink,
        enricher: Enricher | None = None,
        fetcher: Fetcher | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.source_id = source_id
        self.config_provider = config_provider
        self.store = store
        self.job_log = job_log
        self.enricher = enricher or Enricher()
        self.fetcher = fetcher
        self._owns_fetcher = fetcher is None
        self._sleep = sleep
        self._stop_event = threading.Event()

        self.result = CrawlJobResult(source_id=source_id)
        self.stats = StatsCollector()

    def stop(self) -> None:
        """Ask the job to finish after the current iteration."""

        self._stop_event.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> CrawlJobResult:
        result = self.result
        context: JobContext | None = None

        try:
            result.job_log_id = self.job_log.record_job_start(self.source_id)
            context = self._build_context()
            LOGGER.info(
                "Starting crawl of %s (%s): max_pages=%d max_depth=%d delay_ms=%d",
                context.source.display_name,
                context.url_filter.seed_url,
                context.source.max_pages,
                context.source.max_depth,
                context.source.delay_ms,
            )

            self._crawl(context)
            if context.source.reprocess_backlog:
                self._reprocess_backlog(context)
            self._mark_source_crawled(context)
            result.finish(success=True)
        except ConfigError as exc:
            LOGGER.error("Config error for source %s: %s", self.source_id, exc)
            result.add_error(f"Config error: {exc}")
            result.finish(success=False)
            raise
        except Exception as exc:
            LOGGER.exception("Crawl job for %s failed", self.source_id)
            result.add_error(f"{exc.__class__.__name__}: {exc}")
            result.finish(success=False)
        finally:
            if context is not None:
                self.stats.record_frontier_snapshot(context.frontier.snapshot())
            if self._owns_fetcher and self.fetcher is not None:
                self.fetcher.close()
            self._record_job_end()

        return result

    def _build_context(self) -> JobContext:
        source = self.config_provider.get_source_config(self.source_id)
        try:
            url_filter = UrlFilter(
                source.seed_url,
                include=source.url_patterns.include,
                exclude=source.url_patterns.exclude,
            )
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

        if self.fetcher is None:
            self.fetcher = Fetcher()

        return JobContext(
            source=source,
            url_filter=url_filter,
            frontier=Frontier(max_pages=source.max_pages, max_depth=source.max_depth),
            fetcher=self.fetcher,
            parser=PageParser(url_filter, source.selectors),
            deduplicator=ContentDeduplicator(self.store),
            result=self.result,
            stats=self.stats,
        )

    def _crawl(self, context: JobContext) -> None:
        frontier = context.frontier
        self.stats.record_enqueue(frontier.seed(context.url_filter.seed_url))

        fetched_any = False
        while not self.stop_requested:
            entry = frontier.pop()
            if entry is None:
                break

            if fetched_any and context.source.delay_ms > 0:
                self._sleep(context.source.delay_seconds)
            fetched_any = True

            self._visit(context, entry)

        if self.stop_requested:
            LOGGER.info("Stop requested for %s; leaving frontier loop", self.source_id)

    def _visit(self, context: JobContext, entry: FrontierEntry) -> None:
        LOGGER.debug("Fetching %s (depth %d)", entry.url, entry.depth)
        outcome = context.fetcher.fetch(entry.url)
        self.stats.record_fetch(outcome)
        self._mark_redirect_visited(context, entry, outcome)

        if outcome.status == FetchStatus.FAILED:
            context.result.add_error(f"Fetch error for {entry.url}: {outcome.reason}")
            return
        if not outcome.ok:
            return

        page = context.parser.parse(outcome.html or "", entry.url)
        self.stats.increment("pages_parsed")

        if page.content_length > MIN_CONTENT_CHARS:
            context.frontier.record_accepted()
            context.result.items_scraped += 1
            LOGGER.info(
                "Accepted %s (%d chars, %d links)",
                entry.url,
                page.content_length,
                len(page.links),
            )
            self._ingest_page(context, page)
        else:
            self.stats.increment("pages_too_short")
            LOGGER.debug("Dropping %s: only %d chars of content", entry.url, page.content_length)

        links = [
            FilteredUrl(url=link, priority=context.url_filter.is_priority(link))
            for link in page.links
        ]
        self.stats.record_enqueue_many(
            context.frontier.push_many(links, depth=entry.depth + 1, referrer=entry.url)
        )

    def _mark_redirect_visited(
        self,
        context: JobContext,
        entry: FrontierEntry,
        outcome: FetchOutcome,
    ) -> None:
        # Links still resolve against entry.url; the target only joins the visited set.
        if not outcome.final_url:
            return
        final_url = normalize_url(outcome.final_url)
        if final_url is not None and final_url != entry.url:
            LOGGER.debug("%s redirected to %s", entry.url, final_url)
            context.frontier.mark_visited(final_url)

    def _ingest_page(self, context: JobContext, page: ParsedPage) -> None:
        try:
            dedup = context.deduplicator.check_and_record(self.source_id, page)
        except Exception as exc:
            self._record_persistence_error(context, page.source_url, exc)
            return

        if not dedup.is_new:
            self.stats.increment("duplicates")
            LOGGER.debug("Unchanged content at %s; skipping", page.source_url)
            return

        context.handled_content_ids.add(dedup.record.content_id)
        self._process_record(context, dedup.record)

    def _process_record(self, context: JobContext, record: StoredContentRecord) -> None:
        """Classify, enrich, and persist one raw record unless already processed."""

        try:
            if self.store.find_processed(record.content_id) is not None:
                return

            enrichment = self.enricher.enrich_text(record.title, record.raw_content)
            self._count_enrichment(enrichment.summary, enrichment.summary_error, "summary")
            self._count_enrichment(enrichment.embedding, enrichment.embedding_error, "embedding")

            publish_date = record.metadata.get("publish_date")
            document = ProcessedDocument(
                document_id=make_document_id(record.content_id),
                source_id=record.source_id,
                source_content_id=record.content_id,
                document_type=classify(record.title, record.raw_content),
                title=record.title or UNTITLED_DOCUMENT,
                content=record.raw_content,
                source_url=record.url,
                summary=enrichment.summary,
                keywords=extract_keywords(record.title, record.raw_content),
                embedding=enrichment.embedding,
                publish_date=publish_date if isinstance(publish_date, str) else None,
            )
            self.store.insert_processed(document)
        except Exception as exc:
            self._record_persistence_error(context, record.url, exc)
            return

        context.result.items_processed += 1
        self.stats.increment("documents_processed")
        LOGGER.debug("Stored %s document for %s", document.document_type.value, record.url)

    def _count_enrichment(self, value: object, error: str | None, name: str) -> None:
        if error:
            self.stats.increment(f"{name}_failed")
        elif value is not None:
            self.stats.increment(f"{name}_ok")

    def _reprocess_backlog(self, context: JobContext) -> None:
        if self.stop_requested:
            return

        handled = context.handled_content_ids
        try:
            candidates = self.store.list_unprocessed(self.source_id, BACKLOG_LIMIT + len(handled))
        except Exception as exc:
            self._record_persistence_error(context, context.source.seed_url, exc)
            return

        backlog = [record for record in candidates if record.content_id not in handled]
        backlog = backlog[:BACKLOG_LIMIT]
        if not backlog:
            return

        LOGGER.info("Reprocessing %d stored records for %s", len(backlog), self.source_id)
        for record in backlog:
            before = context.result.items_processed
            self._process_record(context, record)
            if context.result.items_processed > before:
                self.stats.increment("backlog_processed")

    def _mark_source_crawled(self, context: JobContext) -> None:
        try:
            self.store.mark_source_crawled(self.source_id, utc_now_iso())
        except Exception as exc:
            self._record_persistence_error(context, context.source.seed_url, exc)

    def _record_persistence_error(self, context: JobContext, url: str, exc: Exception) -> None:
        LOGGER.warning("Persistence failed for %s: %s: %s", url, exc.__class__.__name__, exc)
        context.result.add_error(f"Persistence error for {url}: {exc}")
        self.stats.increment("persistence_errors")

    def _record_job_end(self) -> None:
        self.stats.finish()
        summary = self.stats.to_json()
        result = self.result

        LOGGER.info(
            "Finished %s: success=%s scraped=%d processed=%d errors=%d",
            self.source_id,
            result.success,
            result.items_scraped,
            result.items_processed,
            len(result.errors),
        )
        LOGGER.debug("Stats for %s: %s", self.source_id, json.dumps(summary, sort_keys=True))

        if result.job_log_id is None:
            return
        try:
            self.job_log.record_job_end(result.job_log_id, result, summary)
        except Exception:
            LOGGER.exception("Could not write job-log end row for %s", self.source_id)


def run_jobs(
    source_ids: Iterable[str],
    *,
    config_provider: SourceConfigProvider,
    store: ContentStore,
    job_log: JobLogSink,
    enricher: Enricher | None = None,
    fetcher_factory: Callable[[], Fetcher] | None = None,
    max_concurrent: int = DEFAULT_MAX_CONCURRENT_JOBS,
    sleep: Callable[[float], None] = time.sleep,
) -> dict[str, CrawlJobResult]:
    """Run independent crawl jobs concurrently and return results by source id."""

    if max_concurrent <= 0:
        raise ValueError("max_concurrent must be > 0")

    ordered_ids = list(dict.fromkeys(source_ids))
    if not ordered_ids:
        return {}

    def run_one(source_id: str) -> CrawlJobResult:
        fetcher = fetcher_factory() if fetcher_factory is not None else None
        job = CrawlJob(
            source_id,
            config_provider=config_provider,
            store=store,
            job_log=job_log,
            enricher=enricher,
            fetcher=fetcher,
            sleep=sleep,
        )
        try:
            return job.run()
        except ConfigError:
            return job.result
        finally:
            if fetcher is not None:
                fetcher.close()

    results: dict[str, CrawlJobResult] = {}
    with ThreadPoolExecutor(
        max_workers=min(max_concurrent, len(ordered_ids)),
        thread_name_prefix="crawl-job",
    ) as pool:
        futures = {pool.submit(run_one, source_id): source_id for source_id in ordered_ids}
        for future in as_completed(futures):
            results[futures[future]] = future.result()

    return {source_id: results[source_id] for source_id in ordered_ids}


__all__ = [
    "CrawlJob",
    "JobContext",
    "SourceConfigProvider",
    "run_jobs",
]
