"""Match a candidate profile against the job catalog from the command line.

Usage
-----

    python scripts/analyze_profile.py --profile candidate.json
    python scripts/analyze_profile.py --extracted resume_extraction.json --summary
    python scripts/analyze_profile.py --profile candidate.json --gap
    python scripts/analyze_profile.py --top certifications --top tools
    python scripts/analyze_profile.py --suggest "burp suit" --category tools

``--profile`` expects the flat matching payload::

    {"skills": ["penetration testing"], "tools": ["Burp Suite"], "yearsOfExperience": "3"}

``--extracted`` expects the raw structured output of the resume extractor;
it is flattened and normalized first. ``--top``, ``--catalog-values`` and
``--suggest`` describe the catalog and taxonomy and need no profile.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nlp.flatten import build_known_terms, prepare_candidate  # noqa: E402
from services.embeddings import load_embeddings  # noqa: E402
from services.job_insights import SUGGESTION_CATEGORIES, catalog_suggestions, suggest_terms, top_demanded_terms  # noqa: E402
from services.job_matcher import MatchingEngine, load_job_catalog  # noqa: E402
from services.scoring import calculate_skill_gap, overall_gap_percentage  # noqa: E402
from services.taxonomy import MATCH_CATEGORIES, TermNormalizer, load_taxonomy  # noqa: E402
from services import settings  # noqa: E402


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def skill_gap_report(result: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Per-role match/missing percentages, per category and pooled."""

    report = []
    for entry in result.get("all_roles", []):
        categories = entry["categories"]
        report.append(
            {
                "job_id": entry["job_id"],
                "role": entry["role"],
                "overall_match_pct": overall_gap_percentage(categories),
                "categories": {
                    category: calculate_skill_gap(partitions.get("green"), partitions.get("red"))
                    for category, partitions in categories.items()
                },
            }
        )
    return report


def catalog_report(
    jobs: Sequence[Dict[str, Any]],
    normalizer: TermNormalizer,
    top: Optional[Sequence[str]] = None,
    limit: int = 10,
    catalog_values: bool = False,
    suggest: Optional[str] = None,
    category: str = "skills",
) -> Dict[str, Any]:
    report: Dict[str, Any] = {}
    if top:
        report["top_demanded"] = {name: top_demanded_terms(jobs, name, normalizer, limit) for name in top}
    if catalog_values:
        report["catalog_values"] = catalog_suggestions(jobs)
    if suggest is not None:
        report["suggestions"] = suggest_terms(suggest, category, normalizer.taxonomy)
    return report


def _format_summary(result: Dict[str, Any], limit: int) -> str:
    lines = []
    for rank, entry in enumerate(result["all_roles"][:limit], start=1):
        lines.append(f"{rank:>2}. {entry['percentage']:>3}%  {entry['status']:<16} {entry['role']} [{entry['job_id']}]")
        for category in MATCH_CATEGORIES:
            partitions = entry["categories"][category]
            if partitions["red"]:
                lines.append(f"      missing {category}: {', '.join(partitions['red'])}")
    if not lines:
        return "No matching roles."
    return "\n".join(lines)


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Score a candidate profile against the job catalog")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--profile", help="Path to a flat candidate profile JSON")
    source.add_argument("--extracted", help="Path to a resume extraction payload JSON")
    parser.add_argument("--jobs", help="Job catalog JSON (defaults to the configured data directory)")
    parser.add_argument("--taxonomy", help="Taxonomy JSON (defaults to the configured data directory)")
    parser.add_argument("--embeddings", help="Embeddings JSON (defaults to the configured data directory)")
    parser.add_argument("--summary", action="store_true", help="Print a ranked text summary instead of JSON")
    parser.add_argument("--gap", action="store_true", help="Add per-role skill-gap percentages")
    parser.add_argument(
        "--top",
        action="append",
        choices=SUGGESTION_CATEGORIES,
        help="Most requested terms of a category across the catalog (repeatable)",
    )
    parser.add_argument("--catalog-values", action="store_true", help="List every catalog value per category")
    parser.add_argument("--suggest", help="Fuzzy-match a partial term against the taxonomy")
    parser.add_argument("--category", default="skills", choices=MATCH_CATEGORIES, help="Category for --suggest")
    parser.add_argument("--limit", type=int, default=10, help="Rows shown with --summary and --top")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    has_profile = bool(args.profile or args.extracted)
    if not has_profile and not (args.top or args.catalog_values or args.suggest is not None):
        parser.error("one of --profile, --extracted, --top, --catalog-values or --suggest is required")

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    taxonomy = load_taxonomy(Path(args.taxonomy) if args.taxonomy else settings.taxonomy_path())
    embeddings = load_embeddings(Path(args.embeddings) if args.embeddings else settings.embeddings_path())
    jobs = load_job_catalog(Path(args.jobs) if args.jobs else settings.jobs_path())
    normalizer = TermNormalizer(taxonomy)
    engine = MatchingEngine(normalizer, embeddings, jobs)

    output: Dict[str, Any] = catalog_report(
        jobs,
        normalizer,
        top=args.top,
        limit=args.limit,
        catalog_values=args.catalog_values,
        suggest=args.suggest,
        category=args.category,
    )
    if not has_profile:
        print(json.dumps(output, indent=2, ensure_ascii=False))
        return

    if args.extracted:
        prepared = prepare_candidate(
            _read_json(Path(args.extracted)),
            normalizer,
            known_terms=build_known_terms(taxonomy, jobs),
        )
        profile = prepared["profile"]
        output.update(
            profile_summary=prepared["profile_summary"],
            categorized_skills=prepared["categorized_skills"],
            unmapped_skills=prepared["unmapped_skills"],
        )
    else:
        profile = _read_json(Path(args.profile))

    result = engine.run_matching(profile)
    if args.summary:
        print(_format_summary(result, args.limit))
        return
    output.update(result)
    if args.gap:
        output["skill_gap"] = skill_gap_report(result)
    print(json.dumps(output, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
