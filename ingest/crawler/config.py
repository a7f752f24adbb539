"""Typed source configuration with JSON/YAML load helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlsplit

import yaml  # type: ignore

from .constants import (
    DEFAULT_AI_API_KEY_ENV,
    DEFAULT_AI_BASE_URL,
    DEFAULT_AI_TIMEOUT_SECONDS,
    DEFAULT_CONTENT_SELECTOR,
    DEFAULT_DATE_SELECTOR,
    DEFAULT_DELAY_MS,
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_INCLUDE_PATTERNS,
    DEFAULT_LINKS_SELECTOR,
    DEFAULT_MAX_CONCURRENT_JOBS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_PDF_LINKS_SELECTOR,
    DEFAULT_REPROCESS_BACKLOG,
    DEFAULT_SUMMARY_MODEL,
    DEFAULT_TITLE_SELECTOR,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .types import JSONDict


class ConfigError(ValueError):
    """Raised when a source or run configuration cannot be resolved."""


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid int for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigError(f"Invalid bool for '{key}': {value!r}")


def _as_str_list(value: Any, key: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"Invalid list for '{key}': {value!r}")
    return tuple(str(item).strip() for item in value if str(item).strip())


def _is_http_url(url: str) -> bool:
    parsed = urlsplit(url)
    return parsed.scheme.lower() in {"http", "https"} and bool(parsed.netloc)


@dataclass(frozen=True, slots=True)
class Selectors:
    """CSS selectors used as extraction rules by the page parser."""

    title: str | None = DEFAULT_TITLE_SELECTOR
    content: str | None = DEFAULT_CONTENT_SELECTOR
    links: str | None = DEFAULT_LINKS_SELECTOR
    date: str | None = DEFAULT_DATE_SELECTOR
    pdf_links: str | None = DEFAULT_PDF_LINKS_SELECTOR

    def to_json(self) -> JSONDict:
        return {
            "title": self.title,
            "content": self.content,
            "links": self.links,
            "date": self.date,
            "pdf_links": self.pdf_links,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "Selectors":
        """Merge a partial selector mapping over the defaults."""

        if not payload:
            return cls()
        if not isinstance(payload, Mapping):
            raise ConfigError(f"Invalid selectors mapping: {payload!r}")

        defaults = cls()
        overrides: dict[str, str | None] = {}
        aliases = {"pdfLinks": "pdf_links"}
        for raw_key, raw_value in payload.items():
            key = aliases.get(str(raw_key), str(raw_key))
            if key not in {"title", "content", "links", "date", "pdf_links"}:
                continue
            overrides[key] = None if raw_value is None else str(raw_value).strip() or None
        return replace(defaults, **overrides)


@dataclass(frozen=True, slots=True)
class UrlPatterns:
    """Case-insensitive substring patterns for link prioritization and exclusion."""

    include: tuple[str, ...] = DEFAULT_INCLUDE_PATTERNS
    exclude: tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS

    def to_json(self) -> JSONDict:
        return {"include": list(self.include), "exclude": list(self.exclude)}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "UrlPatterns":
        if not payload:
            return cls()
        if not isinstance(payload, Mapping):
            raise ConfigError(f"Invalid url_patterns mapping: {payload!r}")

        include = (
            _as_str_list(payload["include"], "url_patterns.include")
            if "include" in payload
            else DEFAULT_INCLUDE_PATTERNS
        )
        exclude = (
            _as_str_list(payload["exclude"], "url_patterns.exclude")
            if "exclude" in payload
            else DEFAULT_EXCLUDE_PATTERNS
        )
        return cls(include=include, exclude=exclude)


@dataclass(frozen=True, slots=True)
class SourceConfig:
    """Per-source crawl parameters. Immutable for the duration of one job."""

    source_id: str
    seed_url: str
    name: str = ""
    max_pages: int = DEFAULT_MAX_PAGES
    max_depth: int = DEFAULT_MAX_DEPTH
    delay_ms: int = DEFAULT_DELAY_MS
    selectors: Selectors = field(default_factory=Selectors)
    url_patterns: UrlPatterns = field(default_factory=UrlPatterns)
    reprocess_backlog: bool = DEFAULT_REPROCESS_BACKLOG

    def __post_init__(self) -> None:
        if not self.source_id:
            raise ConfigError("Source config requires a non-empty 'source_id'")
        if not self.seed_url or not _is_http_url(self.seed_url):
            raise ConfigError(
                f"Cannot determine seed URL for source '{self.source_id}': {self.seed_url!r}"
            )
        if self.max_pages <= 0:
            raise ConfigError("max_pages must be > 0")
        if self.max_depth < 0:
            raise ConfigError("max_depth must be >= 0")
        if self.delay_ms < 0:
            raise ConfigError("delay_ms must be >= 0")

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0

    @property
    def display_name(self) -> str:
        return self.name or self.source_id

    def to_dict(self) -> JSONDict:
        return {
            "source_id": self.source_id,
            "name": self.name,
            "seed_url": self.seed_url,
            "max_pages": self.max_pages,
            "max_depth": self.max_depth,
            "delay_ms": self.delay_ms,
            "selectors": self.selectors.to_json(),
            "url_patterns": self.url_patterns.to_json(),
            "reprocess_backlog": self.reprocess_backlog,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SourceConfig":
        """Build a source config from a parsed mapping."""

        if not isinstance(payload, Mapping):
            raise ConfigError(f"Source config must be a mapping: {payload!r}")

        source_id = str(payload.get("source_id") or payload.get("id") or "").strip()
        seed_url = str(payload.get("seed_url") or payload.get("url") or "").strip()

        return cls(
            source_id=source_id,
            seed_url=seed_url,
            name=str(payload.get("name") or ""),
            max_pages=_as_int(payload.get("max_pages", DEFAULT_MAX_PAGES), "max_pages"),
            max_depth=_as_int(payload.get("max_depth", DEFAULT_MAX_DEPTH), "max_depth"),
            delay_ms=_as_int(payload.get("delay_ms", DEFAULT_DELAY_MS), "delay_ms"),
            selectors=Selectors.from_dict(payload.get("selectors")),
            url_patterns=UrlPatterns.from_dict(payload.get("url_patterns")),
            reprocess_backlog=_as_bool(
                payload.get("reprocess_backlog", DEFAULT_REPROCESS_BACKLOG),
                "reprocess_backlog",
            ),
        )


@dataclass(frozen=True, slots=True)
class EnrichmentConfig:
    """Settings for the optional summarization and embedding services."""

    enabled: bool = True
    base_url: str = DEFAULT_AI_BASE_URL
    api_key_env: str = DEFAULT_AI_API_KEY_ENV
    summary_model: str = DEFAULT_SUMMARY_MODEL
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    timeout_seconds: float = DEFAULT_AI_TIMEOUT_SECONDS

    @property
    def api_key(self) -> str | None:
        """API key read from the environment; never stored in config files."""

        value = os.environ.get(self.api_key_env, "").strip()
        return value or None

    def to_dict(self) -> JSONDict:
        return {
            "enabled": self.enabled,
            "base_url": self.base_url,
            "api_key_env": self.api_key_env,
            "summary_model": self.summary_model,
            "embedding_model": self.embedding_model,
            "timeout_seconds": self.timeout_seconds,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "EnrichmentConfig":
        if not payload:
            return cls()
        if not isinstance(payload, Mapping):
            raise ConfigError(f"Invalid enrichment mapping: {payload!r}")

        timeout = _as_float(
            payload.get("timeout_seconds", DEFAULT_AI_TIMEOUT_SECONDS),
            "timeout_seconds",
        )
        if timeout <= 0:
            raise ConfigError("enrichment.timeout_seconds must be > 0")

        return cls(
            enabled=_as_bool(payload.get("enabled", True), "enabled"),
            base_url=str(payload.get("base_url", DEFAULT_AI_BASE_URL)).rstrip("/"),
            api_key_env=str(payload.get("api_key_env", DEFAULT_AI_API_KEY_ENV)),
            summary_model=str(payload.get("summary_model", DEFAULT_SUMMARY_MODEL)),
            embedding_model=str(payload.get("embedding_model", DEFAULT_EMBEDDING_MODEL)),
            timeout_seconds=timeout,
        )


class SourceRegistry:
    """Configuration provider resolving source ids to `SourceConfig` objects.

    Raw source mappings are validated lazily so one broken source does not
    prevent the others from running.
    """

    def __init__(self, sources: Mapping[str, Mapping[str, Any] | SourceConfig] | None = None) -> None:
        self._sources: dict[str, Mapping[str, Any] | SourceConfig] = dict(sources or {})

    @classmethod
    def from_list(cls, entries: list[Any]) -> "SourceRegistry":
        sources: dict[str, Mapping[str, Any] | SourceConfig] = {}
        for entry in entries:
            if isinstance(entry, SourceConfig):
                sources[entry.source_id] = entry
                continue
            if not isinstance(entry, Mapping):
                raise ConfigError(f"Source entry must be a mapping: {entry!r}")
            source_id = str(entry.get("source_id") or entry.get("id") or "").strip()
            if not source_id:
                raise ConfigError(f"Source entry missing 'source_id': {entry!r}")
            if source_id in sources:
                raise ConfigError(f"Duplicate source_id: {source_id!r}")
            sources[source_id] = entry
        return cls(sources)

    @property
    def source_ids(self) -> list[str]:
        return list(self._sources)

    def add(self, config: SourceConfig) -> None:
        self._sources[config.source_id] = config

    def get_source_config(self, source_id: str) -> SourceConfig:
        """Return the validated config for `source_id` or raise `ConfigError`."""

        entry = self._sources.get(source_id)
        if entry is None:
            raise ConfigError(f"Unknown source: {source_id!r}")
        if isinstance(entry, SourceConfig):
            return entry
        return SourceConfig.from_dict(entry)


@dataclass(slots=True)
class IngestConfig:
    """Top-level run configuration loaded from one file."""

    sources: SourceRegistry
    enrichment: EnrichmentConfig = field(default_factory=EnrichmentConfig)
    output_dir: str = DEFAULT_OUTPUT_DIR
    max_concurrent_jobs: int = DEFAULT_MAX_CONCURRENT_JOBS

    def __post_init__(self) -> None:
        if self.max_concurrent_jobs <= 0:
            raise ConfigError("max_concurrent_jobs must be > 0")

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "IngestConfig":
        if "sources" not in payload:
            raise ConfigError("Config missing required key: 'sources'")
        raw_sources = payload.get("sources") or []
        if not isinstance(raw_sources, list):
            raise ConfigError("'sources' must be a list")

        return cls(
            sources=SourceRegistry.from_list(raw_sources),
            enrichment=EnrichmentConfig.from_dict(payload.get("enrichment")),
            output_dir=str(payload.get("output_dir", DEFAULT_OUTPUT_DIR)),
            max_concurrent_jobs=_as_int(
                payload.get("max_concurrent_jobs", DEFAULT_MAX_CONCURRENT_JOBS),
                "max_concurrent_jobs",
            ),
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config(path: str | Path) -> IngestConfig:
    """Load IngestConfig from a JSON/YAML path."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    try:
        if suffix == ".json":
            payload = json.loads(config_path.read_text(encoding="utf-8"))
        else:
            payload = _load_yaml(config_path)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config at {config_path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError(f"Config at {config_path} must be a mapping")

    return IngestConfig.from_dict(payload)


__all__ = [
    "ConfigError",
    "EnrichmentConfig",
    "IngestConfig",
    "Selectors",
    "SourceConfig",
    "SourceRegistry",
    "UrlPatterns",
    "load_config",
]
