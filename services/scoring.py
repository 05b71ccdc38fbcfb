"""Deterministic per-category scoring.

Every scorer returns a value on a 0-10 scale plus a ``contributes`` flag. A
category that does not contribute (nothing required, or no experience stated)
is left out of the job's overall percentage instead of counting as zero.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from services.embeddings import EmbeddingStore, cosine_similarity

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.85
MAX_CATEGORY_SCORE = 10.0

QUALIFIED = "qualified"
NEEDS_UPSKILLING = "needs_upskilling"
NOT_READY = "not_ready"

QUALIFIED_MIN_PERCENTAGE = 70
UPSKILL_MIN_PERCENTAGE = 30

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


@dataclass(frozen=True)
class CategoryScore:
    score: float = 0.0
    green: List[str] = field(default_factory=list)
    red: List[str] = field(default_factory=list)
    yellow: List[str] = field(default_factory=list)
    contributes: bool = False

    def partitions(self) -> dict:
        return {"green": list(self.green), "red": list(self.red), "yellow": list(self.yellow)}


@dataclass(frozen=True)
class ExperienceScore:
    score: float = 0.0
    contributes: bool = False
    job_years: float = 0.0


def _as_term_list(values: Any) -> List[str]:
    if not isinstance(values, (list, tuple, set, frozenset)):
        return []
    terms: List[str] = []
    for value in values:
        if value is None:
            continue
        text = str(value).strip().lower()
        if text:
            terms.append(text)
    return terms


def _best_similarity(
    category: str,
    required: str,
    candidate_terms: Sequence[str],
    embeddings: EmbeddingStore,
) -> Optional[float]:
    """Highest similarity between ``required`` and any candidate term with a vector.

    Returns ``None`` when there is nothing to compare (no vector for the
    required term, or none for any candidate term).
    """

    required_vector = embeddings.vector(category, required)
    if required_vector is None:
        return None
    best: Optional[float] = None
    for term in candidate_terms:
        candidate_vector = embeddings.vector(category, term)
        if candidate_vector is None:
            continue
        similarity = cosine_similarity(required_vector, candidate_vector)
        if best is None or similarity > best:
            best = similarity
    return best


def score_category(
    category: str,
    required_terms: Iterable[str],
    candidate_terms: Iterable[str],
    embeddings: Optional[EmbeddingStore] = None,
) -> CategoryScore:
    """Score one category of a job against the candidate's canonical terms.

    Required terms the candidate holds are ``green``, the rest ``red``. A
    required term missing from the candidate set is still green when its
    embedding is more than :data:`SIMILARITY_THRESHOLD` similar to one of the
    candidate's terms. ``yellow`` lists candidate terms the job does not ask
    for, judged on exact membership only, so a fuzzy-matched candidate term
    can show up in ``yellow`` as well.
    """

    required = list(dict.fromkeys(_as_term_list(required_terms)))
    candidate = list(dict.fromkeys(_as_term_list(candidate_terms)))

    if not required:
        return CategoryScore(score=0.0, yellow=candidate, contributes=False)

    candidate_set = set(candidate)
    green: List[str] = []
    red: List[str] = []
    for term in required:
        if term in candidate_set:
            green.append(term)
            continue
        if embeddings is not None:
            best = _best_similarity(category, term, candidate, embeddings)
            if best is not None and best > SIMILARITY_THRESHOLD:
                logger.debug("[scoring] %s: %r matched by similarity %.3f", category, term, best)
                green.append(term)
                continue
        red.append(term)

    required_set = set(required)
    yellow = [term for term in candidate if term not in required_set]
    score = len(green) / len(required) * MAX_CATEGORY_SCORE
    return CategoryScore(score=score, green=green, red=red, yellow=yellow, contributes=True)


def parse_years_of_experience(value: Any) -> float:
    """Parse a years-of-experience value into a single non-negative number.

    ``"3-5"`` gives 3, ``"5+"`` gives 5, ``"2.5"`` gives 2.5; anything without
    a number gives 0.
    """

    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        if math.isnan(number) or math.isinf(number) or number < 0:
            return 0.0
        return number
    match = _NUMBER_RE.search(str(value))
    if not match:
        return 0.0
    return float(match.group(0))


def score_experience(job_years: Any, candidate_years: Any) -> ExperienceScore:
    """Partial-credit experience score; excluded when either side is zero."""

    required = parse_years_of_experience(job_years)
    held = parse_years_of_experience(candidate_years)
    if not required or not held:
        return ExperienceScore(score=0.0, contributes=False, job_years=required)
    if held >= required:
        return ExperienceScore(score=MAX_CATEGORY_SCORE, contributes=True, job_years=required)
    return ExperienceScore(score=held / required * MAX_CATEGORY_SCORE, contributes=True, job_years=required)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def aggregate_percentage(pairs: Iterable[Tuple[float, bool]]) -> int:
    """Average the contributing ``(score, contributes)`` pairs into a 0-100 integer.

    Each contributing category carries equal weight; non-contributing ones are
    ignored. Nothing contributing gives 0.
    """

    total = 0.0
    count = 0
    for score, contributes in pairs:
        if not contributes:
            continue
        total += min(max(float(score), 0.0), MAX_CATEGORY_SCORE) / MAX_CATEGORY_SCORE
        count += 1
    if count == 0:
        return 0
    percentage = _round_half_up(total / count * 100)
    return min(max(percentage, 0), 100)


def classify_status(percentage: int) -> str:
    if percentage >= QUALIFIED_MIN_PERCENTAGE:
        return QUALIFIED
    if percentage >= UPSKILL_MIN_PERCENTAGE:
        return NEEDS_UPSKILLING
    return NOT_READY


def calculate_skill_gap(green: Any, red: Any) -> dict:
    """Match and missing percentages from green/red lists only; yellow never counts."""

    green = green if isinstance(green, (list, tuple)) else []
    red = red if isinstance(red, (list, tuple)) else []
    total_required = len(green) + len(red)
    if total_required == 0:
        return {"match_pct": 100, "missing_pct": 0, "total_required": 0}
    return {
        "match_pct": _round_half_up(len(green) / total_required * 100),
        "missing_pct": _round_half_up(len(red) / total_required * 100),
        "total_required": total_required,
    }


def overall_gap_percentage(categories: Optional[Mapping[str, Mapping[str, Any]]]) -> int:
    """Green over green+red pooled across every category of a match result."""

    if not categories:
        return 0
    total_green = 0
    total_required = 0
    for partitions in categories.values():
        if not isinstance(partitions, Mapping):
            continue
        green = partitions.get("green") or []
        red = partitions.get("red") or []
        total_green += len(green)
        total_required += len(green) + len(red)
    if total_required == 0:
        return 100
    return _round_half_up(total_green / total_required * 100)


__all__ = [
    "CategoryScore",
    "ExperienceScore",
    "NEEDS_UPSKILLING",
    "NOT_READY",
    "QUALIFIED",
    "SIMILARITY_THRESHOLD",
    "aggregate_percentage",
    "calculate_skill_gap",
    "classify_status",
    "overall_gap_percentage",
    "parse_years_of_experience",
    "score_category",
    "score_experience",
]
