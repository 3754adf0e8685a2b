"""
JSON backup and restore.

Document layout (camelCase keys, compatible with earlier backup files):

    {
      "version": "1.0",
      "date": "<ISO timestamp>",
      "teachers": [...],
      "reportsMap": {"<teacherId>": {...}},
      "tenureReportsMap": {"<teacherId>": {...}},
      "seminars": [...],
      "settings": {"inspectorName": ..., ...}
    }

Restore re-runs date normalization over every date-bearing field, so a
restored collection meets the same canonical-date rule as a table import.
A document without a "teachers" list is rejected.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from mufattish.models import ReportData, SeminarEvent, Teacher
from mufattish.sync.normalizer import normalize_date

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"

TEACHER_DATE_FIELDS: tuple[str, ...] = (
    "birth_date",
    "degree_date",
    "recruitment_date",
    "rank_date",
    "echelon_date",
    "last_inspection_date",
    "tenure_date",
)
LEGACY_DATE_FIELDS: tuple[str, ...] = ("training_date", "graduation_date")
TENURE_DATE_KEYS: tuple[str, ...] = ("examDate", "appointmentDecisionDate", "financialVisaDate", "contestDate")


@dataclass
class BackupError(Exception):
    """Structured halt raised when a backup document cannot be restored."""
    reason: str
    affected_file: str
    operator_fix_steps: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        lines = [
            "═" * 60,
            "BACKUP RESTORE HALT",
            "═" * 60,
            f"Reason          : {self.reason}",
            f"Affected File   : {self.affected_file}",
            "Fix Steps:",
        ]
        for i, step in enumerate(self.operator_fix_steps, 1):
            lines.append(f"  {i}. {step}")
        lines.append("═" * 60)
        return "\n".join(lines)


@dataclass
class BackupContents:
    teachers: list[Teacher]
    reports_by_teacher_id: dict[str, ReportData]
    tenure_reports: dict[str, dict[str, Any]]
    seminars: list[SeminarEvent]
    settings: dict[str, Any]
    version: str = BACKUP_VERSION
    created: str = ""


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


def build_backup(
    teachers: Sequence[Teacher],
    reports_by_teacher_id: Mapping[str, ReportData],
    tenure_reports: Optional[Mapping[str, dict[str, Any]]] = None,
    seminars: Sequence[SeminarEvent] = (),
    settings: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    return {
        "version": BACKUP_VERSION,
        "date": (now or datetime.now()).isoformat(timespec="seconds"),
        "teachers": [t.to_record() for t in teachers],
        "reportsMap": {k: r.to_record() for k, r in reports_by_teacher_id.items()},
        "tenureReportsMap": dict(tenure_reports or {}),
        "seminars": [s.to_record() for s in seminars],
        "settings": dict(settings or {}),
    }


def dumps_backup(document: Mapping[str, Any]) -> str:
    return json.dumps(document, ensure_ascii=False, indent=2)


# ---------------------------------------------------------------------------
# Restore
# ---------------------------------------------------------------------------


def _normalize_teacher(teacher: Teacher) -> Teacher:
    for name in TEACHER_DATE_FIELDS:
        setattr(teacher, name, normalize_date(getattr(teacher, name)))
    return teacher


def _normalize_report(report: ReportData) -> ReportData:
    report.inspection_date = normalize_date(report.inspection_date)
    for name in LEGACY_DATE_FIELDS:
        setattr(report.legacy_data, name, normalize_date(getattr(report.legacy_data, name)))
    return report


def _normalize_tenure(record: dict[str, Any]) -> dict[str, Any]:
    record = dict(record)
    for key in TENURE_DATE_KEYS:
        if key in record:
            record[key] = normalize_date(record[key])
    return record


def restore_backup(text: str, filename: str = "<backup>") -> BackupContents:
    """
    Parse and normalize a backup document.

    Raises
    ------
    BackupError
        Invalid JSON, or no "teachers" list.
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise BackupError(
            reason="Backup file is not valid JSON",
            affected_file=filename,
            operator_fix_steps=[
                "Select a .json file produced by the backup download.",
                f"Parse error: {e}",
            ],
        ) from e

    if not isinstance(document, dict) or not isinstance(document.get("teachers"), list):
        raise BackupError(
            reason="Backup file has no teacher list",
            affected_file=filename,
            operator_fix_steps=[
                'The document must be a JSON object with a "teachers" array.',
                "Check that the file was not edited by hand or truncated.",
            ],
        )

    teachers = [_normalize_teacher(Teacher.from_record(r)) for r in document["teachers"] if isinstance(r, dict)]

    reports: dict[str, ReportData] = {}
    for key, record in (document.get("reportsMap") or {}).items():
        if isinstance(record, dict):
            report = _normalize_report(ReportData.from_record(record))
            report.teacher_id = report.teacher_id or key
            reports[key] = report

    tenure = {
        key: _normalize_tenure(record)
        for key, record in (document.get("tenureReportsMap") or {}).items()
        if isinstance(record, dict)
    }

    seminars = []
    for record in document.get("seminars") or []:
        if isinstance(record, dict):
            event = SeminarEvent.from_record(record)
            event.date = normalize_date(event.date)
            seminars.append(event)

    settings = document.get("settings") if isinstance(document.get("settings"), dict) else {}

    logger.info(
        "[backup] restored %d teacher(s), %d report(s), %d tenure record(s), %d seminar(s) from %s",
        len(teachers), len(reports), len(tenure), len(seminars), filename,
    )
    return BackupContents(
        teachers=teachers,
        reports_by_teacher_id=reports,
        tenure_reports=tenure,
        seminars=seminars,
        settings=settings,
        version=str(document.get("version", "")),
        created=str(document.get("date", "")),
    )
