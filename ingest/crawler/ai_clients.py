"""OpenAI-compatible summarization and embedding clients.

Both clients talk to any server exposing ``/chat/completions`` and
``/embeddings`` (OpenAI, Ollama's OpenAI endpoint, vLLM, ...). They raise on
transport errors and malformed payloads; `Enricher` isolates those failures.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from .config import EnrichmentConfig
from .constants import SUMMARY_MAX_TOKENS
from .enrichment import Enricher


LOGGER = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "You write concise summaries of local-government documents. "
    "Answer with the summary only, in the language of the document, without any preamble."
)
SUMMARY_USER_TEMPLATE = "Summarize this document in 2-3 sentences:\n\n{text}"


class _OpenAICompatibleClient:
    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        model: str,
        timeout_seconds: float,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_seconds = timeout_seconds
        self._api_key = api_key
        self._session = session or requests.Session()

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        response = self._session.post(
            f"{self.base_url}{path}",
            headers={"Authorization": f"Bearer {self._api_key}"},
            json=payload,
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected response payload type: {type(data).__name__}")
        return data


class ChatCompletionSummarizer(_OpenAICompatibleClient):
    """Summarize text with a chat-completions model."""

    def __init__(self, *, max_tokens: int = SUMMARY_MAX_TOKENS, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.max_tokens = max_tokens

    def summarize(self, text: str) -> str | None:
        data = self._post(
            "/chat/completions",
            {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                    {"role": "user", "content": SUMMARY_USER_TEMPLATE.format(text=text)},
                ],
                "temperature": 0,
                "max_tokens": self.max_tokens,
            },
        )
        choices = data.get("choices") or []
        if not choices:
            return None
        content = (choices[0].get("message") or {}).get("content")
        if content is None:
            return None
        return str(content).strip() or None


class OpenAIEmbedder(_OpenAICompatibleClient):
    """Embed text with an embeddings model."""

    def embed(self, text: str) -> list[float] | None:
        data = self._post("/embeddings", {"model": self.model, "input": text})
        rows = data.get("data") or []
        if not rows:
            return None
        return [float(value) for value in rows[0]["embedding"]]


def build_enricher(config: EnrichmentConfig, *, session: requests.Session | None = None) -> Enricher:
    """Create an `Enricher` from config; disabled when no API key is available."""

    if not config.enabled:
        LOGGER.info("Enrichment disabled by config")
        return Enricher()

    api_key = config.api_key
    if not api_key:
        LOGGER.warning(
            "No API key in $%s; summaries and embeddings will be skipped",
            config.api_key_env,
        )
        return Enricher()

    shared = {
        "base_url": config.base_url,
        "api_key": api_key,
        "timeout_seconds": config.timeout_seconds,
        "session": session,
    }
    return Enricher(
        summarizer=ChatCompletionSummarizer(model=config.summary_model, **shared),
        embedder=OpenAIEmbedder(model=config.embedding_model, **shared),
    )


__all__ = [
    "ChatCompletionSummarizer",
    "OpenAIEmbedder",
    "SUMMARY_SYSTEM_PROMPT",
    "build_enricher",
]
