"""Shared helpers for constructing normalized job catalog records."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from services.taxonomy import MATCH_CATEGORIES, canonical_field


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def _unique_list(values: Optional[Iterable[Any]]) -> List[str]:
    unique: List[str] = []
    seen = set()
    if not values or isinstance(values, (str, bytes, Mapping)):
        return unique
    for value in values:
        if value is None:
            continue
        text = _coerce_text(value)
        if not text:
            continue
        lowered = text.lower()
        if lowered in seen:
            continue
        seen.add(lowered)
        unique.append(text)
    return unique


def _coerce_years(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, (int, float)):
        return value
    return _coerce_text(value)


def build_job_record(
    *,
    job_id: Any,
    title: str = "",
    skills: Optional[Iterable[str]] = None,
    tools: Optional[Iterable[str]] = None,
    certifications: Optional[Iterable[str]] = None,
    databases: Optional[Iterable[str]] = None,
    operating_systems: Optional[Iterable[str]] = None,
    coding_languages: Optional[Iterable[str]] = None,
    degree: Optional[Iterable[str]] = None,
    years_of_experience: Any = "",
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Return a normalized job dictionary consumed by the matching engine."""

    record: Dict[str, Any] = {
        "id": _coerce_text(job_id),
        "title": _coerce_text(title),
        "skills": _unique_list(skills),
        "tools": _unique_list(tools),
        "certifications": _unique_list(certifications),
        "databases": _unique_list(databases),
        "operating_systems": _unique_list(operating_systems),
        "coding_languages": _unique_list(coding_languages),
        "degree": _unique_list(degree),
        "years_of_experience": _coerce_years(years_of_experience),
        "metadata": metadata or {},
    }
    return record


def job_from_dict(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Build a record from a catalog entry spelled in camelCase or snake_case."""

    fields = {canonical_field(key): value for key, value in raw.items()}
    job_id = fields.get("id")
    if job_id in (None, ""):
        job_id = fields.get("job_id", "")
    known = set(MATCH_CATEGORIES) | {"id", "job_id", "title", "degree", "years_of_experience", "metadata"}
    metadata = dict(fields.get("metadata") or {}) if isinstance(fields.get("metadata"), Mapping) else {}
    for key, value in fields.items():
        if key not in known and value not in (None, "", [], {}):
            metadata.setdefault(key, value)
    return build_job_record(
        job_id=job_id,
        title=fields.get("title", ""),
        skills=fields.get("skills"),
        tools=fields.get("tools"),
        certifications=fields.get("certifications"),
        databases=fields.get("databases"),
        operating_systems=fields.get("operating_systems"),
        coding_languages=fields.get("coding_languages"),
        degree=fields.get("degree"),
        years_of_experience=fields.get("years_of_experience"),
        metadata=metadata,
    )


__all__ = ["build_job_record", "job_from_dict"]
