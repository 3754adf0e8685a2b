"""
Row parser: 2-D table -> teachers + reports keyed by teacher id.

Steps:
  1. Header map from row 0. A column whose header (or alias) is present
     uses that index; otherwise its catalog default index. Fallbacks are
     recorded in ParseResult.missing_columns and logged as warnings.
  2. Every row with a non-empty name yields a Teacher; cells pass through
     the Normalizer for their field kind. A ReportData is built when any
     report, legacy or observation cell (other than the variant tag) is
     filled. Carry-forward cells are not evidence of a report since the
     serializer fills them on every row. Report ids are always regenerated.
  3. Scores: only "0", "1", "2" (string or number) are accepted. Anything
     else, blank included, is None. Never coerced to 0.
  4. If the general-assessment cell is empty, the superseded assessment
     column is read when present and non-empty.

The parser never raises on cell content. Duplicate teacher ids are kept
as-is; de-duplication is the caller's policy. Row order is entity order.
"""

from __future__ import annotations

import json
import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from mufattish.config import DEFAULT_LAST_MARK
from mufattish.models import REPORT_LEGACY, REPORT_MODERN, LegacyReportOptions, ReportData, Teacher
from mufattish.sync.normalizer import (
    normalize_date,
    normalize_degree,
    normalize_echelon,
    normalize_level,
    normalize_rank,
    normalize_status,
    parse_int,
    parse_number,
)
from mufattish.sync.schema import (
    ASSESSMENT_KEY,
    CATALOG,
    ENTITY_LEGACY,
    ENTITY_REPORT,
    ENTITY_TEACHER,
    ID_KEY,
    KIND_COUNT,
    KIND_DATE,
    KIND_DEGREE,
    KIND_ECHELON,
    KIND_FINAL_MARK,
    KIND_LEVEL,
    KIND_MARK,
    KIND_RANK,
    KIND_REPORT_MODEL,
    KIND_STATUS,
    NAME_KEY,
    REPORT_MODEL_KEY,
    SUPERSEDED_ASSESSMENT_HEADER,
    SchemaCatalog,
    new_observations,
    normalize_header,
    note_column_id,
    score_column_id,
)

logger = logging.getLogger(__name__)

_VALID_SCORES = ("0", "1", "2")


def generate_id() -> str:
    return uuid.uuid4().hex[:9]


def _report_model(value: Any) -> str:
    return REPORT_LEGACY if str(value).strip().lower() == REPORT_LEGACY else REPORT_MODERN


_CONVERTERS: dict[str, Callable[[Any], Any]] = {
    KIND_DATE: normalize_date,
    KIND_MARK: lambda v: parse_number(v, DEFAULT_LAST_MARK),
    KIND_FINAL_MARK: lambda v: parse_number(v, 0.0),
    KIND_COUNT: lambda v: parse_int(v, 0),
    KIND_ECHELON: normalize_echelon,
    KIND_RANK: normalize_rank,
    KIND_DEGREE: normalize_degree,
    KIND_STATUS: normalize_status,
    KIND_LEVEL: normalize_level,
    KIND_REPORT_MODEL: _report_model,
}


def cell_text(row: Sequence[Any], index: Optional[int]) -> str:
    """Cell as stripped text. Missing trailing cells and None read as ""."""
    if index is None or index < 0 or index >= len(row):
        return ""
    value = row[index]
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value).strip()


def parse_score(value: Any) -> Optional[int]:
    """0/1/2 from a score cell; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and not (isinstance(value, float) and math.isnan(value)):
        return int(value) if value in (0, 1, 2) else None
    text = "" if value is None else str(value).strip()
    return int(text) if text in _VALID_SCORES else None


# ---------------------------------------------------------------------------
# Header resolution
# ---------------------------------------------------------------------------


@dataclass
class ColumnMap:
    positions: dict[str, int]
    missing: list[str]
    header_index: dict[str, int]


def resolve_columns(header_row: Sequence[Any], catalog: SchemaCatalog = CATALOG) -> ColumnMap:
    """
    Resolve every catalog column to an index in header_row.

    First occurrence of a header wins. Columns whose header is absent fall
    back to their catalog default index.
    """
    found: dict[str, int] = {}
    header_index: dict[str, int] = {}
    for index, raw in enumerate(header_row):
        normalized = normalize_header(raw)
        if normalized and normalized not in header_index:
            header_index[normalized] = index
        column_id = catalog.column_for_header(raw)
        if column_id is not None and column_id not in found:
            found[column_id] = index

    # Tables from the first published layout carry the general assessment
    # under the superseded header only.
    superseded = header_index.get(normalize_header(SUPERSEDED_ASSESSMENT_HEADER))
    if ASSESSMENT_KEY not in found and superseded is not None:
        found[ASSESSMENT_KEY] = superseded

    positions: dict[str, int] = {}
    missing: list[str] = []
    for column_id in catalog.column_ids():
        if column_id in found:
            positions[column_id] = found[column_id]
        else:
            positions[column_id] = catalog.default_index(column_id)
            missing.append(column_id)

    if missing:
        logger.warning(
            "[row_parser] %d column(s) not found by header; using default positions: %s",
            len(missing), ", ".join(missing),
        )
    logger.info("[row_parser] resolved %d of %d columns by header", len(found), len(positions))
    return ColumnMap(positions=positions, missing=missing, header_index=header_index)


# ---------------------------------------------------------------------------
# Row conversion
# ---------------------------------------------------------------------------


@dataclass
class ParseResult:
    teachers: list[Teacher] = field(default_factory=list)
    reports_by_teacher_id: dict[str, ReportData] = field(default_factory=dict)
    missing_columns: list[str] = field(default_factory=list)
    skipped_rows: list[int] = field(default_factory=list)


def _convert(kind: str, raw: str) -> Any:
    converter = _CONVERTERS.get(kind)
    return converter(raw) if converter is not None else raw


def _build_teacher(row: Sequence[Any], columns: ColumnMap, catalog: SchemaCatalog) -> Teacher:
    values: dict[str, Any] = {}
    for spec in catalog.fields_for(ENTITY_TEACHER):
        values[spec.attr] = _convert(spec.kind, cell_text(row, columns.positions[spec.key]))
    values[ID_KEY] = values.get(ID_KEY) or generate_id()
    return Teacher(**values)


def _superseded_index(columns: ColumnMap) -> Optional[int]:
    return columns.header_index.get(normalize_header(SUPERSEDED_ASSESSMENT_HEADER))


def _has_report_data(row: Sequence[Any], columns: ColumnMap, catalog: SchemaCatalog) -> bool:
    for spec in catalog.fields:
        if spec.entity == ENTITY_TEACHER or spec.key == REPORT_MODEL_KEY or spec.carry_forward:
            continue
        if cell_text(row, columns.positions[spec.key]):
            return True
    for obs in catalog.observation_columns:
        if cell_text(row, columns.positions[score_column_id(obs.template_id)]):
            return True
        if cell_text(row, columns.positions[note_column_id(obs.template_id)]):
            return True
    return bool(cell_text(row, _superseded_index(columns)))


def _build_report(row: Sequence[Any], teacher_id: str, columns: ColumnMap, catalog: SchemaCatalog) -> ReportData:
    report_values: dict[str, Any] = {}
    for spec in catalog.fields_for(ENTITY_REPORT):
        report_values[spec.attr] = _convert(spec.kind, cell_text(row, columns.positions[spec.key]))

    legacy_values: dict[str, Any] = {}
    for spec in catalog.fields_for(ENTITY_LEGACY):
        legacy_values[spec.attr] = _convert(spec.kind, cell_text(row, columns.positions[spec.key]))

    if not report_values.get(ASSESSMENT_KEY):
        fallback = cell_text(row, _superseded_index(columns))
        if fallback:
            report_values[ASSESSMENT_KEY] = fallback

    observations = new_observations()
    for item in observations:
        score_index = columns.positions[score_column_id(item.id)]
        raw_score = row[score_index] if score_index < len(row) else None
        item.score = parse_score(raw_score)
        item.improvement_notes = cell_text(row, columns.positions[note_column_id(item.id)])

    return ReportData(
        id=generate_id(),
        teacher_id=teacher_id,
        observations=observations,
        legacy_data=LegacyReportOptions(**legacy_values),
        **report_values,
    )


def parse_rows(rows: Optional[Sequence[Sequence[Any]]], catalog: SchemaCatalog = CATALOG) -> ParseResult:
    """
    Rebuild teachers and reports from a 2-D table.

    Row 0 is read as the header row. Fewer than two rows gives an empty
    result.
    """
    result = ParseResult()
    if not rows or len(rows) < 2:
        return result

    columns = resolve_columns(rows[0], catalog)
    result.missing_columns = list(columns.missing)
    name_index = columns.positions[NAME_KEY]

    for row_number, row in enumerate(rows[1:], start=1):
        if not row or not cell_text(row, name_index):
            result.skipped_rows.append(row_number)
            continue

        teacher = _build_teacher(row, columns, catalog)
        result.teachers.append(teacher)
        if _has_report_data(row, columns, catalog):
            result.reports_by_teacher_id[teacher.id] = _build_report(row, teacher.id, columns, catalog)

    if result.skipped_rows:
        logger.warning("[row_parser] skipped %d row(s) with no name: %s", len(result.skipped_rows), result.skipped_rows)
    logger.info(
        "[row_parser] parsed %d teacher(s), %d report(s)",
        len(result.teachers), len(result.reports_by_teacher_id),
    )
    return result
