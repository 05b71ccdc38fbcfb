"""Total years of experience computed from extracted role dates."""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Iterable, Optional, Tuple

YearMonth = Tuple[int, int]

_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")
_YEAR_RE = re.compile(r"^(\d{4})$")


def parse_role_date(value: Any) -> Optional[YearMonth]:
    """Parse ``"YYYY-MM"`` or ``"YYYY"``; a bare year counts from mid-year."""

    if not isinstance(value, str):
        return None
    text = value.strip()
    match = _YEAR_MONTH_RE.match(text)
    if match:
        month = int(match.group(2))
        if not 1 <= month <= 12:
            return None
        return int(match.group(1)), month
    match = _YEAR_RE.match(text)
    if match:
        return int(match.group(1)), 6
    return None


def months_between(start: Optional[YearMonth], end: Optional[YearMonth]) -> int:
    if not start or not end:
        return 0
    first = start[0] * 12 + start[1]
    last = end[0] * 12 + end[1]
    return max(0, last - first + 1)


def calculate_total_yoe(roles: Any, today: Optional[date] = None) -> Tuple[float, bool]:
    """Sum role durations into years (one decimal).

    Returns ``(total_years, from_roles)``; ``from_roles`` is False when no
    role had a usable start date, in which case callers should fall back to
    the extractor's own total.
    """

    if not isinstance(roles, Iterable) or isinstance(roles, (str, bytes)):
        return 0.0, False
    today = today or date.today()
    current: YearMonth = (today.year, today.month)

    total_months = 0
    for role in roles:
        if not isinstance(role, dict):
            continue
        start = parse_role_date(role.get("start_date"))
        if start is None:
            continue
        end = parse_role_date(role.get("end_date")) or current
        total_months += months_between(start, end)

    total_years = round(total_months / 12, 1)
    return total_years, total_months > 0


__all__ = ["calculate_total_yoe", "months_between", "parse_role_date"]
