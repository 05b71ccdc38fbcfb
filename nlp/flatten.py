"""Turn a resume-extraction payload into the flat term lists the matcher expects.

The extractor returns loosely typed values: plain strings, objects such as
``{"name": "Burp Suite", "level": "advanced"}``, or nested lists. Everything
is flattened here, once, so the matching engine only ever sees ``List[str]``.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from nlp.experience import calculate_total_yoe
from services.scoring import parse_years_of_experience
from services.taxonomy import MATCH_CATEGORIES, Taxonomy, TermNormalizer, canonical_field

logger = logging.getLogger(__name__)

BAD_STRING = "[object object]"

_NAME_KEYS = ("name", "title", "value", "label", "code", "id")

_PARENTHETICAL_RE = re.compile(r"\s*\([^)]*\)")
_TRAILING_ACRONYM_RE = re.compile(r"\s*\(([^)]+)\)\s*$")
_PROVIDER_PREFIX_RE = re.compile(r"^[^–\-]+\s*[–\-]\s*")

CERT_FULL_TO_ACRONYM: Dict[str, str] = {
    "certified ethical hacker": "ceh",
    "offensive security certified professional": "oscp",
    "offensive security web expert": "oswe",
    "certified information systems security professional": "cissp",
    "certified vulnerability assessor": "cva",
    "giac penetration tester": "gpen",
    "giac web application penetration tester": "gwapt",
    "certified information privacy professional": "cipp",
    "comptia security plus": "security+",
    "comptia security+": "security+",
    "junior penetration tester": "ejpt",
    "ine junior penetration tester": "ejpt",
}

KNOWN_OPERATING_SYSTEMS = frozenset(
    {
        "kali", "kali linux", "kali linux rolling", "linux", "windows", "ubuntu", "macos",
        "unix", "debian", "centos", "red hat", "redhat", "fedora", "parrot os", "parrot",
        "freebsd",
    }
)

# Terms recognised even when neither the taxonomy nor the catalog mentions them.
EXTRA_KNOWN_TERMS: Dict[str, tuple] = {
    "tools": (
        "snyk", "metasploit", "msfconsole", "burp suite", "nmap", "nessus", "sqlmap", "zap",
        "owasp zap", "fortify", "checkmarx", "nikto", "wireshark", "bloodhound",
    ),
    "certifications": (
        "ejpt", "ceh", "oscp", "oswe", "gpen", "gwapt", "cissp", "security+",
        "comptia security+", "gcias", "gcih", "casp+", "cysa+",
    ),
    "skills": (
        "vulnerability assessment", "penetration testing", "static application security testing",
        "dynamic application security testing", "sast", "dast", "ethical hacking",
        "web application security", "api security", "network security", "security testing",
    ),
    "operating_systems": tuple(sorted(KNOWN_OPERATING_SYSTEMS)),
}

EXTRA_ALIASES: Dict[str, str] = {
    "msfconsole": "metasploit",
    "fortify webinspect": "fortify",
    "fortify static code analyzer": "fortify",
    "owasp zap": "zap",
    "burp suite pro": "burp suite",
    "sast": "static application security testing",
    "dast": "dynamic application security testing",
}


def flatten_value(item: Any) -> str:
    """Reduce one extracted value to a trimmed string ('' when nothing usable)."""

    if item is None:
        return ""
    if isinstance(item, str):
        text = item.strip()
    elif isinstance(item, (bool, int, float)):
        text = str(item).strip()
    elif isinstance(item, (list, tuple)):
        return flatten_value(item[0]) if item else ""
    elif isinstance(item, Mapping):
        text = ""
        for key in _NAME_KEYS:
            value = item.get(key)
            if isinstance(value, (str, int, float)) and not isinstance(value, bool):
                text = str(value).strip()
                if text:
                    break
    else:
        text = str(item).strip()
    return "" if text.lower() == BAD_STRING else text


def flatten_to_string_array(values: Any) -> List[str]:
    """Flatten a list of mixed values into lowercase, trimmed, non-empty strings."""

    if not isinstance(values, (list, tuple)):
        return []
    flattened: List[str] = []
    for item in values:
        text = flatten_value(item).lower().strip()
        if text and text != BAD_STRING:
            flattened.append(text)
    return flattened


def dedupe_strings(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


def normalize_cert_for_matching(value: Any) -> str:
    """``"INE – eJPT (Junior Penetration Tester)"`` -> ``"ejpt"``."""

    if not isinstance(value, str):
        return ""
    text = value.strip().lower()
    if not text:
        return ""
    text = _PARENTHETICAL_RE.sub("", text).strip()
    text = _PROVIDER_PREFIX_RE.sub("", text, count=1).strip()
    if not text or text == BAD_STRING:
        return ""
    return text


def canonical_cert_for_matching(value: Any) -> str:
    """Short form of a certification label, e.g. ``"Certified Ethical Hacker (CEH)"`` -> ``"ceh"``."""

    if not isinstance(value, str):
        return ""
    text = value.strip().lower()
    if not text or text == BAD_STRING:
        return ""
    match = _TRAILING_ACRONYM_RE.search(text)
    if match and match.group(1).strip():
        return match.group(1).strip()
    without_parens = _PARENTHETICAL_RE.sub("", text).strip()
    if without_parens in CERT_FULL_TO_ACRONYM:
        return CERT_FULL_TO_ACRONYM[without_parens]
    return without_parens or text


def _extracted_fields(extracted: Any) -> Dict[str, Any]:
    if not isinstance(extracted, Mapping):
        return {}
    return {canonical_field(key): value for key, value in extracted.items()}


def flatten_extracted(extracted: Any) -> Dict[str, List[str]]:
    """Flatten every category of an extraction payload; certification labels are shortened."""

    fields = _extracted_fields(extracted)
    flat = {category: flatten_to_string_array(fields.get(category) or []) for category in MATCH_CATEGORIES}
    certifications = [normalize_cert_for_matching(label) for label in flat["certifications"]]
    flat["certifications"] = dedupe_strings(label for label in certifications if label)
    return flat


def rebalance_categories(flat: Mapping[str, List[str]]) -> Dict[str, List[str]]:
    """Move operating-system terms that landed in skills or tools into operating_systems."""

    rebalanced = {category: list(flat.get(category) or []) for category in MATCH_CATEGORIES}
    moved: List[str] = []
    for category in ("tools", "skills"):
        kept = []
        for term in rebalanced[category]:
            if term in KNOWN_OPERATING_SYSTEMS:
                moved.append(term)
            else:
                kept.append(term)
        rebalanced[category] = kept
    rebalanced["operating_systems"] = dedupe_strings(rebalanced["operating_systems"] + moved)
    return rebalanced


def build_known_terms(taxonomy: Optional[Taxonomy], jobs: Iterable[Mapping[str, Any]] = ()) -> Dict[str, Set[str]]:
    """Every term the system recognises, per category: catalog values, taxonomy terms, extras."""

    known: Dict[str, Set[str]] = {category: set() for category in MATCH_CATEGORIES}
    for job in jobs or ():
        if not isinstance(job, Mapping):
            continue
        fields = {canonical_field(key): value for key, value in job.items()}
        for category in MATCH_CATEGORIES:
            values = fields.get(category)
            if not isinstance(values, (list, tuple)):
                continue
            for value in values:
                text = flatten_value(value).lower()
                if text:
                    known[category].add(text)
    if taxonomy is not None:
        for category in MATCH_CATEGORIES:
            for entry in taxonomy.entries(category):
                known[category].add(entry.canonical)
                known[category].update(entry.aliases)
                known[category].update(entry.subskills)
    for category, terms in EXTRA_KNOWN_TERMS.items():
        known[category].update(terms)
    return known


def run_resume_pipeline(
    extracted: Any,
    normalizer: TermNormalizer,
    known_terms: Optional[Mapping[str, Set[str]]] = None,
) -> Dict[str, Any]:
    """Flatten, rebalance and normalize an extraction payload.

    Returns ``categorized_skills`` (canonical terms per category) and
    ``unmapped_skills`` (terms nothing in the system recognises).
    """

    if known_terms is None:
        known_terms = build_known_terms(normalizer.taxonomy)

    flat = flatten_extracted(extracted)
    logger.debug("[pipeline] after flattening: %s", flat)
    rebalanced = rebalance_categories(flat)
    logger.debug("[pipeline] after rebalance: %s", rebalanced)

    categorized: Dict[str, List[str]] = {category: [] for category in MATCH_CATEGORIES}
    unmapped: List[str] = []
    for category in MATCH_CATEGORIES:
        for raw in rebalanced[category]:
            term = normalizer.normalize(category, raw)
            if not normalizer.is_known(category, raw):
                term = EXTRA_ALIASES.get(term, term)
            if not term or term == BAD_STRING or term in categorized[category]:
                continue
            categorized[category].append(term)
            if not (normalizer.is_known(category, term) or term in known_terms.get(category, ())):
                unmapped.append(term)

    unmapped = dedupe_strings(unmapped)
    logger.debug("[pipeline] categorized: %s; unmapped: %s", categorized, unmapped)
    return {"categorized_skills": categorized, "unmapped_skills": unmapped}


def prepare_candidate(
    extracted: Any,
    normalizer: TermNormalizer,
    known_terms: Optional[Mapping[str, Set[str]]] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Build the matching profile (plus a short summary) from an extraction payload."""

    fields = _extracted_fields(extracted)
    total_years, from_roles = calculate_total_yoe(fields.get("roles"), today=today)
    if not from_roles:
        total_years = parse_years_of_experience(fields.get("total_years_experience"))
        if float(total_years).is_integer():
            total_years = int(total_years)

    pipeline = run_resume_pipeline(extracted, normalizer, known_terms)
    categorized = pipeline["categorized_skills"]

    roles = fields.get("roles")
    first_role = roles[0] if isinstance(roles, list) and roles and isinstance(roles[0], Mapping) else {}
    inferred_domain = flatten_value(first_role.get("title")) or "General"

    profile = {category: list(categorized[category]) for category in MATCH_CATEGORIES}
    profile["years_of_experience"] = str(total_years)
    return {
        "profile": profile,
        "profile_summary": {"total_experience": total_years, "inferred_domain": inferred_domain},
        "categorized_skills": categorized,
        "unmapped_skills": pipeline["unmapped_skills"],
    }


__all__ = [
    "build_known_terms",
    "canonical_cert_for_matching",
    "dedupe_strings",
    "flatten_extracted",
    "flatten_to_string_array",
    "flatten_value",
    "normalize_cert_for_matching",
    "prepare_candidate",
    "rebalance_categories",
    "run_resume_pipeline",
]
