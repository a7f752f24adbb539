"""Crawler package: config, shared types, and crawl job components."""

from .ai_clients import ChatCompletionSummarizer, OpenAIEmbedder, build_enricher
from .classifier import classify, extract_keywords
from .config import (
    ConfigError,
    EnrichmentConfig,
    IngestConfig,
    Selectors,
    SourceConfig,
    SourceRegistry,
    UrlPatterns,
    load_config,
)
from .dedup import ContentDeduplicator, DedupResult, content_hash
from .enrichment import Enricher, EnrichmentResult
from .fetcher import Fetcher
from .frontier import EnqueueResult, EnqueueStatus, Frontier
from .parsers import PageParser
from .pipeline import CrawlJob, JobContext, run_jobs
from .stats import StatsCollector
from .storage import ContentStore, FileContentStore, FileJobLog, JobLogSink, StorageError
from .types import (
    CrawlJobResult,
    DocumentType,
    FetchOutcome,
    FetchStatus,
    FrontierEntry,
    JobStatus,
    ParsedPage,
    ProcessedDocument,
    StoredContentRecord,
    utc_now_iso,
)
from .url import FilteredUrl, UrlFilter, normalize_url, resolve_url

__all__ = [
    "ChatCompletionSummarizer",
    "ConfigError",
    "ContentDeduplicator",
    "ContentStore",
    "CrawlJob",
    "CrawlJobResult",
    "DedupResult",
    "DocumentType",
    "EnqueueResult",
    "EnqueueStatus",
    "Enricher",
    "EnrichmentConfig",
    "EnrichmentResult",
    "FetchOutcome",
    "FetchStatus",
    "Fetcher",
    "FileContentStore",
    "FileJobLog",
    "FilteredUrl",
    "Frontier",
    "FrontierEntry",
    "IngestConfig",
    "JobContext",
    "JobLogSink",
    "JobStatus",
    "OpenAIEmbedder",
    "PageParser",
    "ParsedPage",
    "ProcessedDocument",
    "Selectors",
    "SourceConfig",
    "SourceRegistry",
    "StatsCollector",
    "StorageError",
    "StoredContentRecord",
    "UrlFilter",
    "UrlPatterns",
    "build_enricher",
    "classify",
    "content_hash",
    "extract_keywords",
    "load_config",
    "normalize_url",
    "resolve_url",
    "run_jobs",
    "utc_now_iso",
]
