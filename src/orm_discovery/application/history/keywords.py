"""Keyword derivation for the research history index."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

STOP_WORDS = frozenset(
    {
        "a", "an", "the", "and", "or", "is", "are", "was", "were", "be",
        "to", "of", "in", "for", "on", "with", "at", "by", "from", "as",
        "how", "what", "why", "when", "where", "which", "who", "that", "this", "it",
        "i", "you", "we", "they", "he", "she",
        "do", "does", "did", "can", "could", "will", "would", "should", "have", "has",
    }
)

MIN_KEYWORD_LENGTH = 2

_SPLIT_PATTERN = re.compile(r"[^a-z0-9]+")


def extract_keywords(query: str) -> list[str]:
    """
    Lowercase tokens of ``query`` without stop words or one-character
    tokens, deduplicated in first-seen order.

    >>> extract_keywords("How do I use Docker with Kubernetes?")
    ['use', 'docker', 'kubernetes']
    """
    seen: set[str] = set()
    keywords: list[str] = []
    for token in _SPLIT_PATTERN.split(query.lower()):
        if len(token) < MIN_KEYWORD_LENGTH or token in STOP_WORDS or token in seen:
            continue
        seen.add(token)
        keywords.append(token)
    return keywords


def normalize_keywords(keywords: Iterable[str]) -> list[str]:
    """Lowercase caller-supplied keywords, dropping blanks and repeats in first-seen order."""
    seen: set[str] = set()
    normalized: list[str] = []
    for keyword in keywords:
        token = keyword.strip().lower()
        if not token or token in seen:
            continue
        seen.add(token)
        normalized.append(token)
    return normalized
