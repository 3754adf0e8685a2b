"""
Domain model: teachers, inspection reports, observation items, seminars.

Attributes are snake_case. to_record()/from_record() convert to and from the
camelCase JSON records used in backup files so that backups written by
earlier releases restore without a migration step.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Optional

from mufattish.config import DEFAULT_LAST_MARK

STATUS_PERMANENT = "titulaire"
STATUS_CONTRACTUAL = "contractuel"
STATUS_PROBATIONARY = "stagiere"
STATUSES: tuple[str, ...] = (STATUS_PERMANENT, STATUS_CONTRACTUAL, STATUS_PROBATIONARY)

REPORT_MODERN = "modern"
REPORT_LEGACY = "legacy"
REPORT_MODELS: tuple[str, ...] = (REPORT_MODERN, REPORT_LEGACY)


# ---------------------------------------------------------------------------
# Record helpers
# ---------------------------------------------------------------------------


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _to_record(obj: Any, renames: dict[str, str]) -> dict[str, Any]:
    return {renames.get(f.name, _camel(f.name)): getattr(obj, f.name) for f in fields(obj)}


def _kwargs_from_record(cls: type, record: dict[str, Any], renames: dict[str, str]) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        key = renames.get(f.name, _camel(f.name))
        if key in record and record[key] is not None:
            kwargs[f.name] = record[key]
    return kwargs


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_int(value: Any, default: int) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


TRUE_CELLS: frozenset[str] = frozenset({"true", "1", "yes", "نعم"})


def as_flag(value: Any) -> bool:
    """Booleans pass through; text counts as true only when it reads as yes."""
    if isinstance(value, bool):
        return value
    return _as_text(value).strip().lower() in TRUE_CELLS


# ---------------------------------------------------------------------------
# Teacher
# ---------------------------------------------------------------------------

_TEACHER_RENAMES = {"rank_date": "currentRankDate"}


@dataclass
class Teacher:
    id: str
    full_name: str
    birth_date: str = ""
    birth_place: str = ""
    degree: str = ""
    degree_date: str = ""
    recruitment_date: str = ""
    rank: str = ""
    rank_date: str = ""
    echelon: str = ""
    echelon_date: str = ""
    last_inspection_date: str = ""
    last_mark: float = DEFAULT_LAST_MARK
    status: str = STATUS_PERMANENT
    tenure_date: str = ""
    private_notes: str = ""

    def to_record(self) -> dict[str, Any]:
        return _to_record(self, _TEACHER_RENAMES)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Teacher":
        kwargs = _kwargs_from_record(cls, record, _TEACHER_RENAMES)
        for name, value in list(kwargs.items()):
            kwargs[name] = _as_float(value, DEFAULT_LAST_MARK) if name == "last_mark" else _as_text(value)
        kwargs.setdefault("id", "")
        kwargs.setdefault("full_name", "")
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@dataclass
class ObservationItem:
    id: str
    category: str = ""
    criteria: str = ""
    indicators: list[str] = field(default_factory=list)
    score: Optional[int] = None
    improvement_notes: str = ""

    def to_record(self) -> dict[str, Any]:
        return _to_record(self, {})

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ObservationItem":
        kwargs = _kwargs_from_record(cls, record, {})
        score = str(kwargs.get("score", "")).strip()
        kwargs["score"] = int(score) if score in ("0", "1", "2") else None
        kwargs["indicators"] = [str(i) for i in kwargs.get("indicators") or []]
        kwargs.setdefault("id", "")
        return cls(**kwargs)


@dataclass
class LegacyReportOptions:
    school_year: str = ""
    daira: str = ""
    municipality: str = ""
    family_status: str = ""
    maiden_name: str = ""
    training_institute: str = ""
    training_date: str = ""
    graduation_date: str = ""
    classroom_listening: str = ""
    lighting: str = ""
    heating: str = ""
    ventilation: str = ""
    cleanliness: str = ""
    lesson_preparation: str = ""
    preparation_value: str = ""
    other_aids: str = ""
    board_work: str = ""
    documents_and_posters: str = ""
    registers: str = ""
    registers_used: str = ""
    registers_monitored: str = ""
    scheduled_programs: str = ""
    progression: str = ""
    duties: str = ""
    lesson_execution: str = ""
    information_value: str = ""
    objectives_achieved: str = ""
    student_participation: str = ""
    applications: str = ""
    applications_suitability: str = ""
    notebooks_care: str = ""
    notebooks_monitored: str = ""
    homework_correction: str = ""
    homework_value: str = ""
    general_appreciation: str = ""

    def to_record(self) -> dict[str, Any]:
        return _to_record(self, {})

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "LegacyReportOptions":
        kwargs = _kwargs_from_record(cls, record, {})
        return cls(**{k: _as_text(v) for k, v in kwargs.items()})


@dataclass
class ReportData:
    id: str
    teacher_id: str
    report_model: str = REPORT_MODERN
    inspection_date: str = ""
    inspector_name: str = ""
    wilaya: str = ""
    district: str = ""
    school: str = ""
    subject: str = ""
    topic: str = ""
    duration: str = ""
    level: str = ""
    group: str = ""
    student_count: int = 0
    absent_count: int = 0
    observations: list[ObservationItem] = field(default_factory=list)
    legacy_data: LegacyReportOptions = field(default_factory=LegacyReportOptions)
    general_assessment: str = ""
    assessment_keywords: str = ""
    final_mark: float = 0.0
    mark_in_letters: str = ""

    def observation(self, template_id: str) -> Optional[ObservationItem]:
        for item in self.observations:
            if item.id == template_id:
                return item
        return None

    def to_record(self) -> dict[str, Any]:
        record = _to_record(self, {})
        record["observations"] = [item.to_record() for item in self.observations]
        record["legacyData"] = self.legacy_data.to_record()
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ReportData":
        kwargs = _kwargs_from_record(cls, record, {})
        for name in ("student_count", "absent_count"):
            if name in kwargs:
                kwargs[name] = _as_int(kwargs[name], 0)
        if "final_mark" in kwargs:
            kwargs["final_mark"] = _as_float(kwargs["final_mark"], 0.0)
        kwargs["observations"] = [
            ObservationItem.from_record(item)
            for item in kwargs.get("observations") or []
            if isinstance(item, dict)
        ]
        legacy = kwargs.get("legacy_data")
        kwargs["legacy_data"] = (
            LegacyReportOptions.from_record(legacy) if isinstance(legacy, dict) else LegacyReportOptions()
        )
        for name in kwargs.keys() & _REPORT_TEXT_FIELDS:
            kwargs[name] = _as_text(kwargs[name])
        if kwargs.get("report_model") not in REPORT_MODELS:
            kwargs["report_model"] = REPORT_MODERN
        kwargs.setdefault("id", "")
        kwargs.setdefault("teacher_id", "")
        return cls(**kwargs)


_REPORT_TEXT_FIELDS: frozenset[str] = frozenset(f.name for f in fields(ReportData) if f.type == "str")


# ---------------------------------------------------------------------------
# Seminars
# ---------------------------------------------------------------------------


@dataclass
class SeminarEvent:
    id: str
    topic: str = ""
    date: str = ""
    location: str = ""
    is_external_location: bool = False
    duration: str = ""
    target_levels: list[str] = field(default_factory=list)
    supervisor: str = ""
    notes: str = ""
    is_interactive: bool = False

    def to_record(self) -> dict[str, Any]:
        return _to_record(self, {})

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "SeminarEvent":
        kwargs = _kwargs_from_record(cls, record, {})
        for name, value in list(kwargs.items()):
            if name in ("is_external_location", "is_interactive"):
                kwargs[name] = as_flag(value)
            elif name == "target_levels":
                kwargs[name] = [str(v) for v in value] if isinstance(value, list) else []
            else:
                kwargs[name] = _as_text(value)
        kwargs.setdefault("id", "")
        return cls(**kwargs)
