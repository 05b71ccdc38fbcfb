"""Convert a CSV of parsed job postings into the matcher's job catalog JSON.

Usage
-----

    python scripts/generate_job_json.py \
        --input data/parsed_jobs.csv \
        --output data/parsed_jobs.json \
        --limit 500

Assumptions
-----------
- The CSV contains at least a `title` (or `job_title`) column.
- List-valued columns (`skills`, `tools`, `certifications`, `databases`,
  `operating_systems`, `coding_languages`, `degree`) hold values separated by
  `;`, `|` or `,`. camelCase column names are accepted too.
- Optional `security_concepts` / `security_standards` columns are folded into
  `skills`; the matcher has no separate category for them.

The generated JSON is a list of documents of the shape::

    {
        "id": "job-00001",
        "title": "Application Security Engineer",
        "skills": ["penetration testing", ...],
        "tools": ["burp suite", ...],
        "yearsOfExperience": "3-5",
        ...
    }
"""

from __future__ import annotations

import argparse
import json
import re
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List

import pandas as pd

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from services.job_schema import build_job_record  # noqa: E402
from services.taxonomy import MATCH_CATEGORIES, canonical_field  # noqa: E402

LIST_SPLIT_RE = re.compile(r"[;|,]")
MERGED_INTO_SKILLS = ("security_concepts", "security_standards", "securityConcepts", "securityStandards")


def _normalize_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return str(value).strip()


def _split_list(value: object) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [text for text in (_normalize_text(v) for v in value) if text]
    text = _normalize_text(value)
    if not text:
        return []
    return [part.strip() for part in LIST_SPLIT_RE.split(text) if part.strip()]


def _years(value: object) -> Any:
    if isinstance(value, float) and pd.isna(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, (int, float)):
        return value
    return _normalize_text(value)


def _records_from_iter(iterable: Iterable[dict], limit: int | None) -> List[Dict[str, Any]]:
    records: List[Dict[str, Any]] = []
    for idx, row in enumerate(iterable, start=1):
        if limit is not None and len(records) >= limit:
            break

        fields = {canonical_field(key): value for key, value in row.items()}
        title = _normalize_text(fields.get("title")) or _normalize_text(fields.get("job_title"))
        if not title:
            continue

        job_id = _normalize_text(fields.get("id")) or _normalize_text(fields.get("job_id")) or f"job-{idx:05d}"

        lists = {category: _split_list(fields.get(category)) for category in MATCH_CATEGORIES}
        for column in MERGED_INTO_SKILLS:
            lists["skills"].extend(_split_list(row.get(column)))

        record = build_job_record(
            job_id=job_id,
            title=title,
            skills=lists["skills"],
            tools=lists["tools"],
            certifications=lists["certifications"],
            databases=lists["databases"],
            operating_systems=lists["operating_systems"],
            coding_languages=lists["coding_languages"],
            degree=_split_list(fields.get("degree")),
            years_of_experience=_years(fields.get("years_of_experience")),
        )
        records.append(record)
    return records


def _to_catalog_document(record: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": record["id"],
        "title": record["title"],
        "skills": record["skills"],
        "tools": record["tools"],
        "certifications": record["certifications"],
        "databases": record["databases"],
        "operatingSystems": record["operating_systems"],
        "codingLanguages": record["coding_languages"],
        "degree": record["degree"],
        "yearsOfExperience": record["years_of_experience"],
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate the job catalog JSON from a CSV of parsed postings")
    parser.add_argument("--input", required=True, help="Path to the CSV of parsed postings")
    parser.add_argument("--output", required=True, help="Destination JSON file")
    parser.add_argument("--limit", type=int, default=None, help="Optional cap on number of rows to convert")
    args = parser.parse_args()

    input_path = Path(args.input)
    output_path = Path(args.output)

    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    df = pd.read_csv(input_path)
    iterable = df.to_dict(orient="records")

    records = _records_from_iter(iterable, limit=args.limit)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as fh:
        json.dump([_to_catalog_document(record) for record in records], fh, indent=2, ensure_ascii=False)

    print(f"Wrote {len(records)} job records to {output_path}")


if __name__ == "__main__":
    main()
