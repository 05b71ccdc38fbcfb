"""Weighted job matching for the skill-gap service.

For every job in the catalog the engine normalizes the job's requirements,
scores each attribute category against the candidate, averages the
contributing categories into a percentage and sorts the jobs into
``qualified`` / ``needs_upskilling`` / ``not_ready`` tiers.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from services import settings
from services.embeddings import EmbeddingStore, load_embeddings
from services.job_schema import job_from_dict
from services.scoring import (
    NEEDS_UPSKILLING,
    QUALIFIED,
    CategoryScore,
    aggregate_percentage,
    classify_status,
    parse_years_of_experience,
    score_category,
    score_experience,
)
from services.taxonomy import MATCH_CATEGORIES, TermNormalizer, canonical_field, load_taxonomy

logger = logging.getLogger(__name__)

NormalizedJob = Dict[str, Any]


def load_job_catalog(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Read the job catalog JSON; a missing or invalid file yields no jobs."""

    path = Path(path)
    if not path.exists():
        logger.warning("[matcher] job catalog %s not found", path)
        return []
    with path.open("r", encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as err:
            logger.warning("[matcher] could not parse %s: %s", path, err)
            return []
    if not isinstance(data, list):
        logger.warning("[matcher] %s does not contain a list of jobs", path)
        return []
    jobs: List[Dict[str, Any]] = []
    for raw in data:
        if isinstance(raw, dict):
            jobs.append(job_from_dict(raw))
    logger.info("[matcher] loaded %d jobs from %s", len(jobs), path)
    return jobs


def _profile_fields(profile: Any) -> Dict[str, Any]:
    if not isinstance(profile, Mapping):
        return {}
    return {canonical_field(key): value for key, value in profile.items()}


def _empty_result() -> Dict[str, List[Dict[str, Any]]]:
    return {"qualified_roles": [], "upskill_roles": [], "all_roles": []}


class MatchingEngine:
    """Scores a candidate profile against a static job catalog.

    The taxonomy-backed ``normalizer`` and the ``embeddings`` store are shared,
    read-only lookups; each :meth:`run_matching` call keeps its own state, so
    one engine can serve concurrent requests.
    """

    def __init__(
        self,
        normalizer: Optional[TermNormalizer] = None,
        embeddings: Optional[EmbeddingStore] = None,
        jobs: Optional[Iterable[Mapping[str, Any]]] = None,
    ) -> None:
        self.normalizer = normalizer or TermNormalizer()
        self.embeddings = embeddings if embeddings is not None else EmbeddingStore()
        self.jobs: List[Mapping[str, Any]] = [job for job in (jobs or []) if isinstance(job, Mapping)]
        # Catalog data is static, so normalized requirements are cached per catalog position.
        self._job_cache: Dict[int, NormalizedJob] = {}

    # -- normalization -------------------------------------------------

    def normalize_candidate(self, profile: Any) -> Tuple[Dict[str, List[str]], float]:
        fields = _profile_fields(profile)
        terms = {
            category: self.normalizer.normalize_array(category, fields.get(category))
            for category in MATCH_CATEGORIES
        }
        years = parse_years_of_experience(fields.get("years_of_experience"))
        return terms, years

    def _normalize_job(self, job: Mapping[str, Any]) -> NormalizedJob:
        record = job_from_dict(job)
        normalized: NormalizedJob = {
            "id": record["id"],
            "title": record["title"],
            "years": parse_years_of_experience(record["years_of_experience"]),
            "raw_years": record["years_of_experience"],
        }
        for category in MATCH_CATEGORIES:
            normalized[category] = self.normalizer.normalize_array(category, record[category])
        return normalized

    def normalized_job(self, job: Mapping[str, Any], index: Optional[int] = None) -> NormalizedJob:
        """Normalized requirements of ``job``; cached when ``index`` gives its catalog position."""

        if index is None:
            return self._normalize_job(job)
        cached = self._job_cache.get(index)
        if cached is None:
            cached = self._normalize_job(job)
            self._job_cache[index] = cached
        return cached

    # -- scoring ---------------------------------------------------------

    def score_job(
        self,
        job: Mapping[str, Any],
        candidate_terms: Mapping[str, List[str]],
        candidate_years: float,
        index: Optional[int] = None,
    ) -> Dict[str, Any]:
        normalized = self.normalized_job(job, index)
        category_scores: Dict[str, CategoryScore] = {
            category: score_category(
                category,
                normalized[category],
                candidate_terms.get(category, []),
                self.embeddings,
            )
            for category in MATCH_CATEGORIES
        }
        experience = score_experience(normalized["raw_years"], candidate_years)

        pairs = [(score.score, score.contributes) for score in category_scores.values()]
        pairs.append((experience.score, experience.contributes))
        percentage = aggregate_percentage(pairs)

        return {
            "job_id": normalized["id"],
            "role": normalized["title"],
            "percentage": percentage,
            "required_years_of_experience": experience.job_years,
            "status": classify_status(percentage),
            "categories": {category: score.partitions() for category, score in category_scores.items()},
        }

    def run_matching(self, profile: Any) -> Dict[str, List[Dict[str, Any]]]:
        """Score every eligible job and split the ranking into tiers.

        Returns ``qualified_roles``, ``upskill_roles`` and ``all_roles`` (every
        scored job, ``not_ready`` ones included), each sorted by percentage,
        highest first; ties keep catalog order.
        """

        candidate_terms, candidate_years = self.normalize_candidate(profile)
        has_input = any(candidate_terms.values()) or candidate_years > 0
        if not has_input:
            logger.info("[matcher] empty candidate profile; nothing to score")
            return _empty_result()

        jobs_to_score = list(enumerate(self.jobs))
        if candidate_years > 0:
            # Jobs asking for more experience than the candidate has are not shown at all.
            jobs_to_score = [
                (index, job)
                for index, job in jobs_to_score
                if self._required_years(job, index) <= candidate_years
            ]

        analysis: List[Dict[str, Any]] = []
        for index, job in jobs_to_score:
            try:
                analysis.append(self.score_job(job, candidate_terms, candidate_years, index))
            except Exception as err:  # keep scoring the rest of the catalog
                logger.exception("[matcher] skipped job %r: %s", job.get("id"), err)

        analysis.sort(key=lambda item: item["percentage"], reverse=True)
        qualified = [entry for entry in analysis if entry["status"] == QUALIFIED]
        upskill = [entry for entry in analysis if entry["status"] == NEEDS_UPSKILLING]
        logger.info(
            "[matcher] scored %d/%d jobs: %d qualified, %d need upskilling",
            len(analysis),
            len(self.jobs),
            len(qualified),
            len(upskill),
        )
        return {"qualified_roles": qualified, "upskill_roles": upskill, "all_roles": analysis}

    def _required_years(self, job: Mapping[str, Any], index: Optional[int] = None) -> float:
        try:
            return self.normalized_job(job, index)["years"]
        except Exception as err:
            logger.exception("[matcher] could not read experience for job %r: %s", job.get("id"), err)
            return float("inf")


@lru_cache(maxsize=1)
def default_engine() -> MatchingEngine:
    """Engine built from the configured data directory, loaded once per process."""

    taxonomy = load_taxonomy(settings.taxonomy_path())
    embeddings = load_embeddings(settings.embeddings_path())
    jobs = load_job_catalog(settings.jobs_path())
    return MatchingEngine(TermNormalizer(taxonomy), embeddings, jobs)


def run_matching(
    profile: Any,
    jobs: Iterable[Mapping[str, Any]],
    engine: Optional[MatchingEngine] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    """Match ``profile`` against an explicit job list, reusing ``engine``'s lookups."""

    base = engine or default_engine()
    return MatchingEngine(base.normalizer, base.embeddings, jobs).run_matching(profile)


def analyze(profile: Any, engine: Optional[MatchingEngine] = None) -> Dict[str, List[Dict[str, Any]]]:
    """Return the ranked, tiered match results for a candidate profile."""

    return (engine or default_engine()).run_matching(profile)


__all__ = ["MatchingEngine", "analyze", "default_engine", "load_job_catalog", "run_matching"]
