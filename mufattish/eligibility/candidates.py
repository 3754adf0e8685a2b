"""
Promotion campaign list.

A teacher is a candidate for campaign year Y when is_promotion_due holds
with "now" set to any day of Y. The school comes from the teacher's report
when there is one.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Mapping, Optional

from mufattish.eligibility.rules import is_promotion_due, max_allowed_mark, promotion_due_date
from mufattish.models import ReportData, Teacher
from mufattish.sync.normalizer import parse_int

UNKNOWN_SCHOOL = "غير محددة"


@dataclass
class PromotionCandidate:
    teacher: Teacher
    max_allowed_mark: float
    school_name: str
    due_date: Optional[date]

    @property
    def mark_gap(self) -> float:
        """Points the teacher can still gain before the echelon ceiling."""
        return round(self.max_allowed_mark - self.teacher.last_mark, 2)


def promotion_candidates(
    teachers: Iterable[Teacher],
    reports_by_teacher_id: Mapping[str, ReportData],
    campaign_year: int,
    bonus_months: Optional[float] = None,
) -> list[PromotionCandidate]:
    """Candidates in roster order."""
    cutoff = date(campaign_year, 12, 31)
    result: list[PromotionCandidate] = []
    for teacher in teachers:
        report = reports_by_teacher_id.get(teacher.id)
        if not is_promotion_due(teacher, report, cutoff, bonus_months):
            continue
        school = report.school.strip() if report is not None else ""
        result.append(PromotionCandidate(
            teacher=teacher,
            max_allowed_mark=max_allowed_mark(parse_int(teacher.echelon, 0)),
            school_name=school or UNKNOWN_SCHOOL,
            due_date=promotion_due_date(teacher, bonus_months),
        ))
    return result
