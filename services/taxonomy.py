"""Skill taxonomy store and term normalization.

The taxonomy document maps, per attribute category, a canonical term to its
known aliases and subskills::

    {
        "tools": {
            "burp suite": {"aliases": ["burp", "burpsuite"], "subskills": ["burp intruder"]}
        }
    }

:class:`Taxonomy` holds that document in an immutable form and
:class:`TermNormalizer` resolves arbitrary raw strings against it. Resolution
is always scoped to a single category, so an alias shared by two categories
never leaks from one into the other.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

logger = logging.getLogger(__name__)

MATCH_CATEGORIES: Tuple[str, ...] = (
    "skills",
    "certifications",
    "tools",
    "databases",
    "operating_systems",
    "coding_languages",
)
TAXONOMY_CATEGORIES: Tuple[str, ...] = MATCH_CATEGORIES + ("degree",)

# camelCase spellings used by upstream JSON documents.
_FIELD_ALIASES: Dict[str, str] = {
    "operatingSystems": "operating_systems",
    "codingLanguages": "coding_languages",
    "programming_languages": "coding_languages",
    "programmingLanguages": "coding_languages",
    "yearsOfExperience": "years_of_experience",
}


def canonical_field(name: Any) -> str:
    """Return the snake_case field name for ``name`` (camelCase accepted)."""

    text = str(name or "").strip()
    return _FIELD_ALIASES.get(text, text)


def _term_key(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip().lower()
    return str(value).strip().lower()


@dataclass(frozen=True)
class TaxonomyEntry:
    canonical: str
    aliases: Tuple[str, ...] = ()
    subskills: Tuple[str, ...] = ()


def _as_terms(values: Any) -> Tuple[str, ...]:
    if not isinstance(values, (list, tuple)):
        return ()
    terms: List[str] = []
    for value in values:
        key = _term_key(value)
        if key and key not in terms:
            terms.append(key)
    return tuple(terms)


class Taxonomy:
    """Read-only mapping of category -> ordered canonical entries."""

    def __init__(self, entries: Optional[Mapping[str, Iterable[TaxonomyEntry]]] = None) -> None:
        by_category: Dict[str, Tuple[TaxonomyEntry, ...]] = {}
        for category, items in (entries or {}).items():
            merged: Dict[str, TaxonomyEntry] = {}
            for entry in items:
                canonical = _term_key(entry.canonical)
                if not canonical:
                    continue
                previous = merged.get(canonical)
                if previous is None:
                    merged[canonical] = TaxonomyEntry(canonical, _as_terms(entry.aliases), _as_terms(entry.subskills))
                    continue
                # Duplicate canonical spelling: fold its aliases into the first entry.
                merged[canonical] = TaxonomyEntry(
                    canonical,
                    previous.aliases + tuple(a for a in _as_terms(entry.aliases) if a not in previous.aliases),
                    previous.subskills + tuple(s for s in _as_terms(entry.subskills) if s not in previous.subskills),
                )
            by_category[canonical_field(category)] = tuple(merged.values())
        self._entries: Mapping[str, Tuple[TaxonomyEntry, ...]] = MappingProxyType(by_category)

    @classmethod
    def from_dict(cls, document: Mapping[str, Any]) -> "Taxonomy":
        entries: Dict[str, List[TaxonomyEntry]] = {}
        for category, field in (document or {}).items():
            if not isinstance(field, Mapping):
                logger.warning("[taxonomy] category %r is not an object; skipped", category)
                continue
            bucket = entries.setdefault(canonical_field(category), [])
            for canonical, raw_entry in field.items():
                raw_entry = raw_entry if isinstance(raw_entry, Mapping) else {}
                bucket.append(
                    TaxonomyEntry(
                        canonical=_term_key(canonical),
                        aliases=_as_terms(raw_entry.get("aliases")),
                        subskills=_as_terms(raw_entry.get("subskills")),
                    )
                )
        return cls(entries)

    def categories(self) -> List[str]:
        return list(self._entries.keys())

    def entries(self, category: str) -> Tuple[TaxonomyEntry, ...]:
        return self._entries.get(canonical_field(category), ())

    def canonical_terms(self, category: str) -> List[str]:
        return [entry.canonical for entry in self.entries(category)]

    def __len__(self) -> int:
        return sum(len(items) for items in self._entries.values())


def load_taxonomy(path: Union[str, Path]) -> Taxonomy:
    """Load a taxonomy JSON document; a missing or broken file yields an empty taxonomy."""

    path = Path(path)
    if not path.exists():
        logger.warning("[taxonomy] %s not found; normalization falls back to lowercase/trim", path)
        return Taxonomy()
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as err:
        logger.warning("[taxonomy] could not read %s: %s", path, err)
        return Taxonomy()
    if not isinstance(document, dict):
        logger.warning("[taxonomy] %s does not contain an object; ignored", path)
        return Taxonomy()
    taxonomy = Taxonomy.from_dict(document)
    logger.info("[taxonomy] loaded %d canonical terms from %s", len(taxonomy), path)
    return taxonomy


class TermNormalizer:
    """Resolve raw terms to canonical taxonomy terms, one category at a time."""

    def __init__(self, taxonomy: Optional[Taxonomy] = None) -> None:
        self.taxonomy = taxonomy or Taxonomy()
        self._canonical: Dict[str, Set[str]] = {}
        self._aliases: Dict[str, Dict[str, str]] = {}
        for category in self.taxonomy.categories():
            entries = self.taxonomy.entries(category)
            self._canonical[category] = {entry.canonical for entry in entries}
            aliases: Dict[str, str] = {}
            for entry in entries:
                for term in entry.aliases + entry.subskills:
                    # First entry in taxonomy order owns a shared alias.
                    aliases.setdefault(term, entry.canonical)
            self._aliases[category] = aliases

    def normalize(self, category: str, raw_term: Any) -> str:
        term = _term_key(raw_term)
        if not term:
            return ""
        category = canonical_field(category)
        if term in self._canonical.get(category, ()):
            return term
        return self._aliases.get(category, {}).get(term, term)

    def normalize_array(self, category: str, raw_terms: Any) -> List[str]:
        if not isinstance(raw_terms, (list, tuple, set, frozenset)):
            return []
        normalized: List[str] = []
        seen: Set[str] = set()
        for raw in raw_terms:
            term = self.normalize(category, raw)
            if term and term not in seen:
                seen.add(term)
                normalized.append(term)
        return normalized

    def is_known(self, category: str, raw_term: Any) -> bool:
        """True when ``raw_term`` is a canonical term, alias or subskill of ``category``."""

        term = _term_key(raw_term)
        category = canonical_field(category)
        return bool(term) and (
            term in self._canonical.get(category, ()) or term in self._aliases.get(category, {})
        )


__all__ = [
    "MATCH_CATEGORIES",
    "TAXONOMY_CATEGORIES",
    "Taxonomy",
    "TaxonomyEntry",
    "TermNormalizer",
    "canonical_field",
    "load_taxonomy",
]
