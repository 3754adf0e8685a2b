"""
InspectorSession: the application-side owner of the entity collections.

Holds teachers, reports, tenure records and seminars; persists them to an
injected Store; pushes the serialized table through an injected Transport
once edits go quiet. The pure sync and eligibility modules are called from
here and never touch the Store or Transport themselves.

Imports are all-or-nothing: state is replaced only after the read and the
full parse have both succeeded.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Callable, Optional, Sequence

from mufattish.config import Settings
from mufattish.eligibility.candidates import PromotionCandidate, promotion_candidates
from mufattish.eligibility.rules import inspection_priority, is_promotion_due, priority_table
from mufattish.models import ReportData, SeminarEvent, Teacher
from mufattish.session.backup import BackupContents, build_backup, restore_backup
from mufattish.session.debounce import SyncDebouncer
from mufattish.session.merge import MergeResult, merge_import
from mufattish.session.store import (
    KEY_REPORTS,
    KEY_SEMINARS,
    KEY_SETTINGS,
    KEY_TEACHERS,
    KEY_TENURE_REPORTS,
    Store,
)
from mufattish.session.transport import Transport
from mufattish.sync.parser import ParseResult, parse_rows
from mufattish.sync.serializer import Cell, serialize_rows

logger = logging.getLogger(__name__)


class InspectorSession:
    def __init__(
        self,
        store: Store,
        transport: Optional[Transport] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.transport = transport
        self.settings = settings or Settings()
        self.debouncer = SyncDebouncer(clock=clock)

        self.teachers: list[Teacher] = []
        self.reports_by_teacher_id: dict[str, ReportData] = {}
        self.tenure_reports: dict[str, dict[str, Any]] = {}
        self.seminars: list[SeminarEvent] = []
        self.active_report: Optional[ReportData] = None
        self.preferences: dict[str, Any] = {}

    # -- persistence -------------------------------------------------------

    def load(self) -> "InspectorSession":
        self.teachers = [Teacher.from_record(r) for r in self.store.get(KEY_TEACHERS, []) or []]
        self.reports_by_teacher_id = {
            k: ReportData.from_record(r) for k, r in (self.store.get(KEY_REPORTS, {}) or {}).items()
        }
        self.tenure_reports = dict(self.store.get(KEY_TENURE_REPORTS, {}) or {})
        self.seminars = [SeminarEvent.from_record(r) for r in self.store.get(KEY_SEMINARS, []) or []]
        self.preferences = dict(self.store.get(KEY_SETTINGS, {}) or {})
        logger.info("[session] loaded %d teacher(s), %d report(s)", len(self.teachers), len(self.reports_by_teacher_id))
        return self

    def save(self) -> None:
        self.store.set(KEY_TEACHERS, [t.to_record() for t in self.teachers])
        self.store.set(KEY_REPORTS, {k: r.to_record() for k, r in self.reports_by_teacher_id.items()})
        self.store.set(KEY_TENURE_REPORTS, self.tenure_reports)
        self.store.set(KEY_SEMINARS, [s.to_record() for s in self.seminars])
        self.store.set(KEY_SETTINGS, self.preferences)

    def _changed(self) -> None:
        self.save()
        self.debouncer.touch()

    # -- edits -------------------------------------------------------------

    def upsert_teacher(self, teacher: Teacher) -> None:
        for i, existing in enumerate(self.teachers):
            if existing.id == teacher.id:
                self.teachers[i] = teacher
                break
        else:
            self.teachers.append(teacher)
        self._changed()

    def remove_teacher(self, teacher_id: str) -> None:
        self.teachers = [t for t in self.teachers if t.id != teacher_id]
        self.reports_by_teacher_id.pop(teacher_id, None)
        self.tenure_reports.pop(teacher_id, None)
        if self.active_report is not None and self.active_report.teacher_id == teacher_id:
            self.active_report = None
        self._changed()

    def save_report(self, report: ReportData) -> None:
        self.reports_by_teacher_id[report.teacher_id] = report
        self._changed()

    def set_active_report(self, report: Optional[ReportData]) -> None:
        self.active_report = report
        self.debouncer.touch()

    def global_defaults(self) -> dict[str, str]:
        defaults = self.settings.global_defaults()
        if self.preferences.get("inspectorName"):
            defaults["inspector_name"] = str(self.preferences["inspectorName"])
        return defaults

    # -- import / export ---------------------------------------------------

    def import_rows(self, rows: Optional[Sequence[Sequence[Any]]] = None) -> ParseResult:
        """
        Replace the roster with a parsed table.

        Reads from the transport when rows is None. Nothing is replaced if
        reading or parsing raises.
        """
        if rows is None:
            if self.transport is None:
                raise RuntimeError("No transport configured and no rows given")
            rows = self.transport.read_rows()
        result = parse_rows(rows)

        self.teachers = result.teachers
        self.reports_by_teacher_id = result.reports_by_teacher_id
        self.active_report = None
        self.save()
        logger.info("[session] imported %d teacher(s)", len(result.teachers))
        return result

    def merge_rows(self, rows: Sequence[Sequence[Any]]) -> MergeResult:
        parsed = parse_rows(rows)
        defaults = self.global_defaults()
        wilaya = (self.active_report.wilaya if self.active_report else "") or defaults.get("wilaya", "")
        district = (self.active_report.district if self.active_report else "") or defaults.get("district", "")
        result = merge_import(
            self.teachers,
            self.reports_by_teacher_id,
            parsed.teachers,
            parsed.reports_by_teacher_id,
            default_wilaya=wilaya,
            default_district=district,
        )
        self.teachers = result.teachers
        self.reports_by_teacher_id = result.reports_by_teacher_id
        self._changed()
        return result

    def serialize(self) -> list[list[Cell]]:
        return serialize_rows(
            self.teachers,
            active_report=self.active_report,
            reports_by_teacher_id=self.reports_by_teacher_id,
            global_defaults=self.global_defaults(),
        )

    def flush_if_due(self, force: bool = False) -> bool:
        """
        Write the whole table through the transport if the quiet window has
        passed (or force is set). An empty roster is never written.
        """
        if self.transport is None:
            return False
        if not force and not self.debouncer.is_due():
            return False
        if not self.teachers:
            logger.info("[session] roster empty; sync skipped")
            self.debouncer.mark_flushed()
            return False
        self.transport.write_rows(self.serialize())
        self.debouncer.mark_flushed()
        logger.info("[session] synced %d teacher row(s)", len(self.teachers))
        return True

    # -- backup ------------------------------------------------------------

    def backup_document(self) -> dict[str, Any]:
        settings = dict(self.preferences)
        settings.setdefault("inspectorName", self.settings.inspector_name)
        return build_backup(self.teachers, self.reports_by_teacher_id, self.tenure_reports, self.seminars, settings)

    def restore(self, text: str, filename: str = "<backup>") -> BackupContents:
        contents = restore_backup(text, filename)
        self.teachers = contents.teachers
        self.reports_by_teacher_id = contents.reports_by_teacher_id
        self.tenure_reports = contents.tenure_reports
        self.seminars = contents.seminars
        self.preferences.update({k: v for k, v in contents.settings.items() if v})
        self.active_report = None
        self._changed()
        return contents

    # -- eligibility -------------------------------------------------------

    def _report_for(self, teacher_id: str) -> Optional[ReportData]:
        if self.active_report is not None and self.active_report.teacher_id == teacher_id:
            return self.active_report
        return self.reports_by_teacher_id.get(teacher_id)

    def _reports_view(self) -> dict[str, ReportData]:
        """Saved reports with the active report, if any, in its teacher's slot."""
        view = {}
        for teacher in self.teachers:
            report = self._report_for(teacher.id)
            if report is not None:
                view[teacher.id] = report
        return view

    def priority(self, teacher: Teacher, now: date) -> str:
        return inspection_priority(teacher, self._report_for(teacher.id), now)

    def promotion_due(self, teacher: Teacher, now: date) -> bool:
        return is_promotion_due(teacher, self._report_for(teacher.id), now, self.settings.seniority_bonus_months)

    def priority_table(self, now: date) -> list[tuple[Teacher, str]]:
        return priority_table(self.teachers, self._reports_view(), now)

    def promotion_list(self, campaign_year: int) -> list[PromotionCandidate]:
        return promotion_candidates(
            self.teachers, self._reports_view(), campaign_year, self.settings.seniority_bonus_months
        )
