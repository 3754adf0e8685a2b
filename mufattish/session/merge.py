"""
Merge an imported roster into the current one.

Matching is by full name, trimmed and case-insensitive. For a matched
teacher, every non-empty imported field overwrites; blanks keep the
existing value. Only school and level are taken from an imported report,
and the existing report's region/district win over the defaults.
Unmatched teachers are appended with their report (or a blank one)
stamped with the default region and district.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field, fields, replace
from typing import Mapping, Optional

from mufattish.models import ReportData, Teacher
from mufattish.sync.parser import generate_id
from mufattish.sync.schema import new_observations

logger = logging.getLogger(__name__)

# Never overwritten by a merge.
_KEEP_EXISTING = frozenset({"id", "full_name", "private_notes", "tenure_date"})


@dataclass
class MergeResult:
    teachers: list[Teacher]
    reports_by_teacher_id: dict[str, ReportData]
    updated: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)


def _name_key(name: str) -> str:
    return name.strip().lower()


def blank_report(teacher_id: str, wilaya: str = "", district: str = "") -> ReportData:
    return ReportData(
        id=generate_id(),
        teacher_id=teacher_id,
        wilaya=wilaya,
        district=district,
        observations=new_observations(),
    )


def _merge_teacher(existing: Teacher, imported: Teacher) -> Teacher:
    changes = {}
    for f in fields(Teacher):
        if f.name in _KEEP_EXISTING:
            continue
        value = getattr(imported, f.name)
        if value:
            changes[f.name] = value
    return replace(existing, **changes)


def merge_import(
    teachers: list[Teacher],
    reports_by_teacher_id: Mapping[str, ReportData],
    imported_teachers: list[Teacher],
    imported_reports: Mapping[str, ReportData],
    default_wilaya: str = "",
    default_district: str = "",
) -> MergeResult:
    """Return merged copies; the inputs are not mutated."""
    merged = [copy.deepcopy(t) for t in teachers]
    reports = {k: copy.deepcopy(v) for k, v in reports_by_teacher_id.items()}
    index_by_name = {_name_key(t.full_name): i for i, t in enumerate(merged)}
    result = MergeResult(teachers=merged, reports_by_teacher_id=reports)

    for incoming in imported_teachers:
        incoming_report: Optional[ReportData] = imported_reports.get(incoming.id)
        position = index_by_name.get(_name_key(incoming.full_name))

        if position is not None:
            current = merged[position]
            merged[position] = _merge_teacher(current, incoming)
            result.updated.append(current.id)
            if incoming_report is not None:
                report = reports.get(current.id) or blank_report(current.id)
                reports[current.id] = replace(
                    report,
                    school=incoming_report.school or report.school,
                    level=incoming_report.level or report.level,
                    wilaya=report.wilaya or default_wilaya,
                    district=report.district or default_district,
                )
            continue

        added = copy.deepcopy(incoming)
        merged.append(added)
        index_by_name[_name_key(added.full_name)] = len(merged) - 1
        result.added.append(added.id)
        if incoming_report is not None:
            reports[added.id] = replace(
                copy.deepcopy(incoming_report),
                teacher_id=added.id,
                wilaya=default_wilaya,
                district=default_district,
            )
        else:
            reports[added.id] = blank_report(added.id, default_wilaya, default_district)

    logger.info("[merge] %d updated, %d added", len(result.updated), len(result.added))
    return result
