"""CLI entrypoint for running crawl jobs from a sources config file."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

from ingest.crawler import (
    ConfigError,
    CrawlJobResult,
    Enricher,
    FileContentStore,
    FileJobLog,
    IngestConfig,
    build_enricher,
    load_config,
    run_jobs,
)
from ingest.crawler.constants import DEFAULT_OUTPUT_DIR


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl configured portal sources and ingest their documents.",
    )

    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to JSON/YAML sources config.",
    )
    parser.add_argument(
        "--source",
        action="append",
        default=[],
        help="Source id to crawl (repeatable). Defaults to every configured source.",
    )
    parser.add_argument(
        "--output_dir",
        type=Path,
        default=None,
        help="Root output directory for content/manifests/logs. Overrides config.",
    )
    parser.add_argument(
        "--no_enrichment",
        action="store_true",
        help="Skip summaries and embeddings even when an API key is available.",
    )
    parser.add_argument(
        "--print_stats_json",
        action="store_true",
        help="Print per-job stats JSON in stdout after run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def setup_logging(output_dir: Path, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    log_dir = output_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "crawl.log"

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    # urllib3 logs every connection at DEBUG; keep verbose crawl logs readable.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def resolve_output_dir(args: argparse.Namespace, config: IngestConfig | None) -> Path:
    if args.output_dir is not None:
        return args.output_dir
    if config is not None:
        return Path(config.output_dir)
    return Path(DEFAULT_OUTPUT_DIR)


def print_summary(
    results: dict[str, CrawlJobResult],
    job_log: FileJobLog,
    store: FileContentStore,
    *,
    print_stats_json: bool,
) -> None:
    paths = store.paths

    print("\n=== Crawl Complete ===")
    print(f"output_dir: {paths.get('output_dir')}")
    print(f"raw_content: {paths.get('raw_content')}")
    print(f"processed_documents: {paths.get('processed_documents')}")
    print(f"job_log: {job_log.path}")

    print("\n--- Jobs ---")
    for source_id, result in results.items():
        state = "ok" if result.success else "FAILED"
        print(
            f"{source_id}: {state} scraped={result.items_scraped} "
            f"processed={result.items_processed} errors={len(result.errors)}"
        )
        for error in result.errors:
            print(f"  - {error}")

    if print_stats_json:
        stats: dict[str, Any] = {}
        for source_id, result in results.items():
            rows = job_log.rows(result.job_log_id) if result.job_log_id else []
            end_rows = [row for row in rows if "stats" in row]
            stats[source_id] = end_rows[-1]["stats"] if end_rows else {}
        print("\n--- Full Stats JSON ---")
        print(json.dumps(stats, indent=2, sort_keys=True))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    config: IngestConfig | None = None
    config_error: ConfigError | None = None
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        config_error = exc

    output_dir = resolve_output_dir(args, config)
    setup_logging(output_dir, verbose=args.verbose)

    if config is None:
        logging.error("Failed to load config: %s", config_error)
        return 2

    source_ids = list(args.source) or config.sources.source_ids
    if not source_ids:
        logging.error("No sources configured in %s", args.config)
        return 2

    enricher = Enricher() if args.no_enrichment else build_enricher(config.enrichment)

    logging.info(
        "Starting crawl: output_dir=%s, sources=%d, max_concurrent_jobs=%d, enrichment=%s",
        output_dir,
        len(source_ids),
        config.max_concurrent_jobs,
        enricher.enabled,
    )

    try:
        store = FileContentStore(output_dir)
        job_log = FileJobLog(output_dir)
        results = run_jobs(
            source_ids,
            config_provider=config.sources,
            store=store,
            job_log=job_log,
            enricher=enricher,
            max_concurrent=config.max_concurrent_jobs,
        )
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 130
    except Exception:
        logging.exception("Crawl execution failed")
        return 1

    print_summary(results, job_log, store, print_stats_json=args.print_stats_json)
    return 0 if all(result.success for result in results.values()) else 1


if __name__ == "__main__":
    raise SystemExit(main())
