"""
Row serializer: teachers + reports -> header row + one row per teacher.

Report resolution per teacher:
  1. reports_by_teacher_id[teacher.id]
  2. active_report, when its teacher_id matches
  3. an empty report shape (blank cells, variant "modern")

Carry-forward columns (school, wilaya, district, inspector name): a blank
cell takes the most recent non-empty value seen earlier in the same
serialization, else the global default, else "".

Numbers are written as numbers (integral floats as ints) or "". Never the
string "None" or "null".
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Union

from mufattish.models import REPORT_MODERN, LegacyReportOptions, ReportData, Teacher
from mufattish.sync.normalizer import normalize_date
from mufattish.sync.schema import (
    CATALOG,
    ENTITY_LEGACY,
    ENTITY_TEACHER,
    KIND_COUNT,
    KIND_DATE,
    KIND_FINAL_MARK,
    KIND_MARK,
    FieldSpec,
    SchemaCatalog,
)

logger = logging.getLogger(__name__)

Cell = Union[str, int, float]


def number_cell(value: Any) -> Cell:
    """Numeric cell: int for integral values, float otherwise, "" for None."""
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, float):
        if value != value:
            return ""
        return int(value) if value.is_integer() else value
    if isinstance(value, int):
        return value
    return str(value)


def text_cell(value: Any) -> str:
    return "" if value is None else str(value)


def _field_cell(kind: str, value: Any) -> Cell:
    if kind in (KIND_MARK, KIND_FINAL_MARK, KIND_COUNT):
        return number_cell(value)
    if kind == KIND_DATE:
        return normalize_date(value)
    return text_cell(value)


def _resolve_report(
    teacher: Teacher,
    active_report: Optional[ReportData],
    reports_by_teacher_id: Mapping[str, ReportData],
) -> Optional[ReportData]:
    report = reports_by_teacher_id.get(teacher.id)
    if report is not None:
        return report
    if active_report is not None and active_report.teacher_id == teacher.id:
        return active_report
    return None


def serialize_rows(
    teachers: Iterable[Teacher],
    active_report: Optional[ReportData] = None,
    reports_by_teacher_id: Optional[Mapping[str, ReportData]] = None,
    global_defaults: Optional[Mapping[str, str]] = None,
    catalog: SchemaCatalog = CATALOG,
) -> list[list[Cell]]:
    """
    Flatten teachers and their reports into a 2-D table.

    Parameters
    ----------
    teachers : iterable of Teacher
        Row order follows this iteration order.
    active_report : ReportData, optional
        The report currently being edited.
    reports_by_teacher_id : mapping, optional
        Stored reports keyed by teacher id. Takes precedence over
        active_report.
    global_defaults : mapping, optional
        Fallbacks for carry-forward columns, keyed by field key
        ("school", "wilaya", "district", "inspector_name").

    Returns
    -------
    list of rows
        Row 0 is the catalog header row.
    """
    reports = reports_by_teacher_id or {}
    defaults = global_defaults or {}
    carry_keys = set(catalog.carry_forward_keys())
    last_seen: dict[str, str] = {}

    rows: list[list[Cell]] = [catalog.headers()]
    for teacher in teachers:
        report = _resolve_report(teacher, active_report, reports)
        legacy = report.legacy_data if report is not None else LegacyReportOptions()

        def cell(spec: FieldSpec) -> Cell:
            if spec.entity == ENTITY_TEACHER:
                return _field_cell(spec.kind, getattr(teacher, spec.attr))

            if spec.key in carry_keys:
                own = text_cell(getattr(report, spec.attr)).strip() if report is not None else ""
                if own:
                    last_seen[spec.key] = own
                    return own
                return last_seen.get(spec.key) or text_cell(defaults.get(spec.key, ""))

            if report is None:
                return REPORT_MODERN if spec.key == "report_model" else ""

            source = legacy if spec.entity == ENTITY_LEGACY else report
            return _field_cell(spec.kind, getattr(source, spec.attr))

        row: list[Cell] = [cell(spec) for spec in catalog.leading_fields]
        for obs in catalog.observation_columns:
            item = report.observation(obs.template_id) if report is not None else None
            if item is None:
                row.extend(("", ""))
            else:
                row.extend((number_cell(item.score), text_cell(item.improvement_notes)))
        row.extend(cell(spec) for spec in catalog.trailing_fields)

        rows.append(row)

    logger.info("[row_serializer] serialized %d teacher rows (schema v%d)", len(rows) - 1, catalog.version)
    return rows
