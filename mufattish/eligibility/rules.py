"""
Eligibility rules: inspection priority and promotion due.

Both are pure functions of (teacher, active report, now). Nothing here is
persisted; flags are recomputed on every query.

Inspection priority (first match wins):
  1. active report with an inspection date       -> none
  2. never inspected, or >= 3 years since          -> urgent
  3. last_mark < 9.5 + 0.5 * echelon               -> medium
  4.                                               -> none

Promotion due (all must hold):
  1. permanent status, echelon + echelon date present, echelon < 12
  2. required months: 30, or 30 / ((12 + bonus) / 12) with a regional bonus
  3. echelon date + required months (30.44 days each) <= Dec 31 of now.year
  4. last_mark < 13 + 0.5 * echelon
  5. active report does not have both an inspection date and a mark > 0
Unparsable date or echelon fails closed (False).
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta
from typing import Iterable, Mapping, Optional, Union

from mufattish.config import (
    BASE_PROMOTION_MONTHS,
    BONUS_MONTHS_MAX,
    DAYS_PER_MONTH,
    DAYS_PER_YEAR,
    ECHELON_CEILING,
    INSPECTION_INTERVAL_YEARS,
    MARK_PER_ECHELON,
    PRIORITY_MARK_BASE,
    PROMOTION_MARK_BASE,
)
from mufattish.models import STATUS_PERMANENT, ReportData, Teacher
from mufattish.sync.normalizer import parse_date, parse_int

logger = logging.getLogger(__name__)

PRIORITY_NONE = "none"
PRIORITY_MEDIUM = "medium"
PRIORITY_URGENT = "urgent"
PRIORITIES: tuple[str, ...] = (PRIORITY_NONE, PRIORITY_MEDIUM, PRIORITY_URGENT)

DateLike = Union[date, datetime]


def _as_date(now: DateLike) -> date:
    return now.date() if isinstance(now, datetime) else now


def _echelon_number(teacher: Teacher) -> Optional[int]:
    value = parse_int(teacher.echelon, -1)
    return value if value >= 0 else None


def _has_visit_date(report: Optional[ReportData]) -> bool:
    return report is not None and bool(str(report.inspection_date).strip())


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------


def average_threshold(echelon: int) -> float:
    """Minimum expected mark for an echelon: 9.5 + 0.5 * echelon."""
    return PRIORITY_MARK_BASE + MARK_PER_ECHELON * echelon


def max_allowed_mark(echelon: int) -> float:
    """Mark ceiling for an echelon: 13 + 0.5 * echelon."""
    return PROMOTION_MARK_BASE + MARK_PER_ECHELON * echelon


def required_months(bonus_months: Optional[float] = None) -> float:
    """
    Seniority months needed to move up one echelon.

    The bonus is clamped to 0..BONUS_MONTHS_MAX; a negative or NaN bonus
    counts as none.
    """
    if not bonus_months or not bonus_months > 0:
        return BASE_PROMOTION_MONTHS
    bonus = min(bonus_months, BONUS_MONTHS_MAX)
    return BASE_PROMOTION_MONTHS / ((12 + bonus) / 12)


# ---------------------------------------------------------------------------
# Inspection priority
# ---------------------------------------------------------------------------


def inspection_priority(teacher: Teacher, active_report: Optional[ReportData], now: DateLike) -> str:
    if _has_visit_date(active_report):
        return PRIORITY_NONE

    last_visit = parse_date(teacher.last_inspection_date)
    if last_visit is None:
        return PRIORITY_URGENT
    elapsed_days = (_as_date(now) - last_visit).days
    if elapsed_days >= INSPECTION_INTERVAL_YEARS * DAYS_PER_YEAR:
        return PRIORITY_URGENT

    echelon = _echelon_number(teacher) or 0
    if teacher.last_mark < average_threshold(echelon):
        return PRIORITY_MEDIUM
    return PRIORITY_NONE


# ---------------------------------------------------------------------------
# Promotion
# ---------------------------------------------------------------------------


def promotion_due_date(teacher: Teacher, bonus_months: Optional[float] = None) -> Optional[date]:
    """Date the teacher completes the seniority for the next echelon, or None."""
    effective = parse_date(teacher.echelon_date)
    if effective is None:
        return None
    return effective + timedelta(days=math.floor(required_months(bonus_months) * DAYS_PER_MONTH))


def is_promotion_due(
    teacher: Teacher,
    active_report: Optional[ReportData],
    now: DateLike,
    bonus_months: Optional[float] = None,
) -> bool:
    if teacher.status != STATUS_PERMANENT:
        return False
    if not str(teacher.echelon).strip() or not str(teacher.echelon_date).strip():
        return False

    echelon = _echelon_number(teacher)
    if echelon is None or echelon >= ECHELON_CEILING:
        return False

    due = promotion_due_date(teacher, bonus_months)
    if due is None:
        logger.debug("[eligibility] %s: echelon date %r unparsable", teacher.id, teacher.echelon_date)
        return False
    if due > date(_as_date(now).year, 12, 31):
        return False

    if teacher.last_mark >= max_allowed_mark(echelon):
        return False

    if _has_visit_date(active_report) and active_report.final_mark > 0:
        return False
    return True


# ---------------------------------------------------------------------------
# Roster views
# ---------------------------------------------------------------------------


def priority_table(
    teachers: Iterable[Teacher],
    reports_by_teacher_id: Mapping[str, ReportData],
    now: DateLike,
) -> list[tuple[Teacher, str]]:
    """(teacher, priority) pairs, urgent first, then medium, then none; stable within a level."""
    rank = {PRIORITY_URGENT: 0, PRIORITY_MEDIUM: 1, PRIORITY_NONE: 2}
    pairs = [(t, inspection_priority(t, reports_by_teacher_id.get(t.id), now)) for t in teachers]
    return sorted(pairs, key=lambda pair: rank[pair[1]])
