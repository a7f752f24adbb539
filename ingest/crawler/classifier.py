"""Rule-based document type classification and keyword extraction.

Rules are evaluated top-to-bottom against the lower-cased title and the first
characters of the content; the first match wins and `ARTICLE` is the fallback.
The vocabularies target Polish local-government publications.
"""

from __future__ import annotations

from dataclasses import dataclass

from .constants import CLASSIFY_HEAD_CHARS, MAX_KEYWORDS
from .types import DocumentType


@dataclass(frozen=True, slots=True)
class ClassificationRule:
    """Match when any title term or any content term occurs."""

    result: DocumentType
    title_terms: tuple[str, ...] = ()
    content_terms: tuple[str, ...] = ()

    def matches(self, title: str, head: str) -> bool:
        return any(term in title for term in self.title_terms) or any(
            term in head for term in self.content_terms
        )


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(DocumentType.RESOLUTION, ("uchwał",), ("uchwała nr",)),
    ClassificationRule(DocumentType.PROTOCOL, ("protokół",), ("protokół z",)),
    ClassificationRule(DocumentType.ANNOUNCEMENT, ("ogłoszeni", "obwieszczeni")),
    ClassificationRule(DocumentType.LEGAL_ACT, ("ustaw", "rozporządz")),
    ClassificationRule(DocumentType.NEWS, ("aktualnoś", "news")),
)

DEFAULT_DOCUMENT_TYPE = DocumentType.ARTICLE

KEYWORD_VOCABULARY: tuple[str, ...] = (
    "uchwała",
    "budżet",
    "sesja",
    "rada",
    "gmina",
    "miasto",
    "wójt",
    "burmistrz",
    "prezydent",
    "podatek",
    "opłata",
    "inwestycja",
    "projekt",
    "dotacja",
    "fundusz",
    "plan",
    "zagospodarowanie",
    "przestrzenne",
    "ochrona",
    "środowisko",
)


def classify(title: str | None, content: str | None) -> DocumentType:
    """Return the document type of the first matching rule. Never raises."""

    lower_title = (title or "").lower()
    head = (content or "")[:CLASSIFY_HEAD_CHARS].lower()

    for rule in CLASSIFICATION_RULES:
        if rule.matches(lower_title, head):
            return rule.result
    return DEFAULT_DOCUMENT_TYPE


def extract_keywords(
    title: str | None,
    content: str | None,
    *,
    vocabulary: tuple[str, ...] = KEYWORD_VOCABULARY,
    limit: int = MAX_KEYWORDS,
) -> list[str]:
    """Return vocabulary terms present in the text, in vocabulary order."""

    text = f"{title or ''} {content or ''}".lower()
    found: list[str] = []
    for word in vocabulary:
        if len(found) >= limit:
            break
        if word in text:
            found.append(word)
    return found


__all__ = [
    "CLASSIFICATION_RULES",
    "ClassificationRule",
    "DEFAULT_DOCUMENT_TYPE",
    "DocumentType",
    "KEYWORD_VOCABULARY",
    "classify",
    "extract_keywords",
]
