"""Tests for ingest.crawler.config loading and validation."""

from __future__ import annotations

import json

import pytest

from ingest.crawler.config import (
    ConfigError,
    EnrichmentConfig,
    Selectors,
    SourceConfig,
    SourceRegistry,
    UrlPatterns,
    load_config,
)
from ingest.crawler.constants import (
    DEFAULT_CONTENT_SELECTOR,
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_INCLUDE_PATTERNS,
)


YAML_CONFIG = """
output_dir: out
max_concurrent_jobs: 2
enrichment:
  enabled: true
  summary_model: tiny-model
sources:
  - source_id: gmina
    name: Gmina Przykładowa
    seed_url: https://gmina.example.pl/
    max_pages: 5
    delay_ms: 250
    selectors:
      title: ".naglowek"
      pdfLinks: "a.zalacznik"
    url_patterns:
      include: [ogloszenia]
  - source_id: bez-adresu
    name: Źródło bez adresu
"""


def test_load_yaml_config(tmp_path):
    path = tmp_path / "sources.yaml"
    path.write_text(YAML_CONFIG, encoding="utf-8")

    config = load_config(path)

    assert config.output_dir == "out"
    assert config.max_concurrent_jobs == 2
    assert config.enrichment.summary_model == "tiny-model"
    assert config.sources.source_ids == ["gmina", "bez-adresu"]

    source = config.sources.get_source_config("gmina")
    assert source.max_pages == 5
    assert source.max_depth == 2
    assert source.delay_ms == 250
    assert source.delay_seconds == 0.25
    assert source.reprocess_backlog is True


def test_selectors_merge_over_defaults(tmp_path):
    path = tmp_path / "sources.yaml"
    path.write_text(YAML_CONFIG, encoding="utf-8")

    selectors = load_config(path).sources.get_source_config("gmina").selectors

    assert selectors.title == ".naglowek"
    assert selectors.pdf_links == "a.zalacznik"
    assert selectors.content == DEFAULT_CONTENT_SELECTOR


def test_url_patterns_replace_only_given_lists():
    patterns = UrlPatterns.from_dict({"include": ["ogloszenia"]})

    assert patterns.include == ("ogloszenia",)
    assert patterns.exclude == DEFAULT_EXCLUDE_PATTERNS
    assert UrlPatterns.from_dict(None).include == DEFAULT_INCLUDE_PATTERNS
    assert UrlPatterns.from_dict({"exclude": []}).exclude == ()


def test_missing_seed_is_config_error_only_for_that_source(tmp_path):
    path = tmp_path / "sources.yaml"
    path.write_text(YAML_CONFIG, encoding="utf-8")
    registry = load_config(path).sources

    with pytest.raises(ConfigError, match="seed URL"):
        registry.get_source_config("bez-adresu")
    assert registry.get_source_config("gmina").source_id == "gmina"


def test_unknown_source_is_config_error():
    with pytest.raises(ConfigError, match="Unknown source"):
        SourceRegistry().get_source_config("nieznane")


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_pages": 0},
        {"max_depth": -1},
        {"delay_ms": -5},
        {"max_pages": "dużo"},
        {"seed_url": "ftp://gmina.example.pl/"},
        {"reprocess_backlog": "tak"},
    ],
)
def test_invalid_source_values(overrides):
    payload = {"source_id": "gmina", "seed_url": "https://gmina.example.pl/", **overrides}
    with pytest.raises(ConfigError):
        SourceConfig.from_dict(payload)


def test_source_config_round_trips_through_dict():
    source = SourceConfig(
        source_id="gmina",
        seed_url="https://gmina.example.pl/",
        selectors=Selectors(title="h1"),
    )
    assert SourceConfig.from_dict(source.to_dict()) == source


def test_duplicate_source_ids_rejected():
    entries = [
        {"source_id": "gmina", "seed_url": "https://a.example.pl/"},
        {"source_id": "gmina", "seed_url": "https://b.example.pl/"},
    ]
    with pytest.raises(ConfigError, match="Duplicate"):
        SourceRegistry.from_list(entries)


def test_json_config(tmp_path):
    path = tmp_path / "sources.json"
    path.write_text(
        json.dumps({"sources": [{"id": "bip", "url": "https://bip.example.pl/"}]}),
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.output_dir == "crawled_output"
    assert config.max_concurrent_jobs == 3
    assert config.sources.get_source_config("bip").seed_url == "https://bip.example.pl/"


def test_unreadable_configs_raise_config_error(tmp_path):
    bad_yaml = tmp_path / "bad.yaml"
    bad_yaml.write_text("sources: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(bad_yaml)

    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml")

    with pytest.raises(ConfigError, match="Unsupported config suffix"):
        load_config(tmp_path / "sources.toml")

    no_sources = tmp_path / "empty.yaml"
    no_sources.write_text("output_dir: x\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="sources"):
        load_config(no_sources)


def test_enrichment_api_key_comes_from_environment(monkeypatch):
    config = EnrichmentConfig.from_dict({"api_key_env": "PORTAL_TEST_KEY"})

    monkeypatch.delenv("PORTAL_TEST_KEY", raising=False)
    assert config.api_key is None

    monkeypatch.setenv("PORTAL_TEST_KEY", " sk-123 ")
    assert config.api_key == "sk-123"


def test_enrichment_defaults():
    config = EnrichmentConfig.from_dict(None)

    assert config.enabled
    assert config.base_url == "https://api.openai.com/v1"
    assert config.summary_model == "gpt-4o-mini"
    assert config.embedding_model == "text-embedding-3-small"
