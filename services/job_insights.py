"""Catalog-level statistics: most demanded terms and autocomplete suggestions."""

from __future__ import annotations

import math
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping, Optional

from rapidfuzz import fuzz, process

from services.taxonomy import MATCH_CATEGORIES, Taxonomy, TermNormalizer, canonical_field

MAX_TOP_LIMIT = 50
SUGGESTION_CATEGORIES = MATCH_CATEGORIES + ("degree",)


def _field(job: Mapping[str, Any], category: str) -> Any:
    for key, value in job.items():
        if canonical_field(key) == category:
            return value
    return None


def top_demanded_terms(
    jobs: Iterable[Mapping[str, Any]],
    category: str,
    normalizer: Optional[TermNormalizer] = None,
    limit: int = 10,
) -> List[Dict[str, Any]]:
    """Canonical terms of ``category`` ranked by the share of jobs that list them."""

    jobs = [job for job in (jobs or []) if isinstance(job, Mapping)]
    if not jobs:
        return []
    normalizer = normalizer or TermNormalizer()
    category = canonical_field(category)
    limit = max(1, min(int(limit or 10), MAX_TOP_LIMIT))

    counts: Counter = Counter()
    for job in jobs:
        values = _field(job, category)
        if not isinstance(values, (list, tuple)):
            continue
        # Each job counts once per term.
        counts.update(normalizer.normalize_array(category, [v for v in values if isinstance(v, str)]))

    total = len(jobs)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [
        {"term": term, "count": count, "percentage": int(math.floor(count / total * 100 + 0.5))}
        for term, count in ranked[:limit]
    ]


def catalog_suggestions(jobs: Iterable[Mapping[str, Any]]) -> Dict[str, List[str]]:
    """Sorted unique raw values per category, for input autocomplete."""

    buckets: Dict[str, set] = {category: set() for category in SUGGESTION_CATEGORIES}
    for job in jobs or []:
        if not isinstance(job, Mapping):
            continue
        for category in SUGGESTION_CATEGORIES:
            values = _field(job, category)
            if not isinstance(values, (list, tuple)):
                continue
            for value in values:
                if value is None:
                    continue
                text = str(value).strip()
                if text:
                    buckets[category].add(text)
    return {category: sorted(values, key=str.lower) for category, values in buckets.items()}


def suggest_terms(
    query: str,
    category: str,
    taxonomy: Taxonomy,
    limit: int = 5,
    threshold: int = 70,
) -> List[str]:
    """Fuzzy-complete ``query`` against canonical terms and aliases of ``category``.

    Alias hits are reported as their canonical term.
    """

    text = (query or "").strip().lower()
    if not text:
        return []
    choices: Dict[str, str] = {}
    for entry in taxonomy.entries(category):
        choices.setdefault(entry.canonical, entry.canonical)
        for alias in entry.aliases + entry.subskills:
            choices.setdefault(alias, entry.canonical)
    if not choices:
        return []

    suggestions: List[str] = []
    hits = process.extract(text, list(choices.keys()), scorer=fuzz.WRatio, limit=max(limit * 3, limit))
    for choice, score, _ in hits:
        if score < threshold:
            continue
        canonical = choices[choice]
        if canonical not in suggestions:
            suggestions.append(canonical)
        if len(suggestions) >= limit:
            break
    return suggestions


__all__ = ["catalog_suggestions", "suggest_terms", "top_demanded_terms"]
