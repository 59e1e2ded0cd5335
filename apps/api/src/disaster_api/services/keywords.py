from __future__ import annotations

import re

from disaster_api.repositories.disaster_repository import Disaster

MAX_KEYWORDS = 5
_WORD = re.compile(r"[A-Za-z][A-Za-z'-]{3,}")
_STOPWORDS = frozenset({"with", "from", "near", "area", "after", "over", "this", "that", "into"})


def disaster_keywords(disaster: Disaster, limit: int = MAX_KEYWORDS) -> list[str]:
    """Tags first, then distinctive title words, de-duplicated case-insensitively."""
    keywords: list[str] = []
    candidates = [*disaster.tags, *(match.group(0) for match in _WORD.finditer(disaster.title))]
    for candidate in candidates:
        value = candidate.strip().lower()
        if not value or value in _STOPWORDS or value in keywords:
            continue
        keywords.append(value)
        if len(keywords) >= limit:
            break
    return keywords
