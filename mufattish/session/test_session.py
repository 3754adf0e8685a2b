"""
Inspector Session Test Suite

Tests cover:
- Store round trip of every collection
- Debounced whole-table sync (fake clock, in-memory transport)
- Empty roster never synced
- All-or-nothing import
- Merge with region/district defaults
- Backup and restore through the session
- Eligibility queries against the active report
"""

import json
from datetime import date

import pytest

from mufattish.config import Settings
from mufattish.eligibility.rules import PRIORITY_NONE, PRIORITY_URGENT
from mufattish.models import ReportData, SeminarEvent, Teacher
from mufattish.session.session import InspectorSession
from mufattish.session.store import KEY_TEACHERS, MemoryStore
from mufattish.session.transport import CsvFileTransport, MemoryTransport
from mufattish.sync.csv_io import TabularImportError
from mufattish.sync.normalizer import DEGREE_LICENCE, RANK_BASE
from mufattish.sync.schema import CATALOG
from mufattish.sync.serializer import serialize_rows


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FailingTransport:
    def read_rows(self):
        raise TabularImportError(reason="Table file is not valid CSV", affected_file="x.csv")

    def write_rows(self, rows):
        raise AssertionError("not expected")


def make_session(transport=None, settings=None):
    clock = FakeClock()
    session = InspectorSession(MemoryStore(), transport=transport, settings=settings, clock=clock)
    return session, clock


def teacher(tid: str, name: str, **kwargs) -> Teacher:
    return Teacher(id=tid, full_name=name, **kwargs)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class TestPersistence:
    def test_save_and_load(self):
        store = MemoryStore()
        session = InspectorSession(store)
        session.upsert_teacher(teacher("t1", "A", echelon="3"))
        session.save_report(ReportData(id="r1", teacher_id="t1", school="S"))
        session.seminars.append(SeminarEvent(id="s1", topic="T"))
        session.tenure_reports["t1"] = {"examDate": "2016-05-20"}
        session.preferences["inspectorName"] = "Inspector X"
        session.save()

        loaded = InspectorSession(store).load()
        assert loaded.teachers == session.teachers
        assert loaded.reports_by_teacher_id["t1"].school == "S"
        assert loaded.seminars[0].topic == "T"
        assert loaded.tenure_reports == {"t1": {"examDate": "2016-05-20"}}
        assert loaded.preferences["inspectorName"] == "Inspector X"

    def test_upsert_replaces_by_id(self):
        session, _ = make_session()
        session.upsert_teacher(teacher("t1", "A"))
        session.upsert_teacher(teacher("t1", "A2"))
        assert [t.full_name for t in session.teachers] == ["A2"]
        assert session.store.get(KEY_TEACHERS)[0]["fullName"] == "A2"

    def test_remove_teacher_drops_reports(self):
        session, _ = make_session()
        session.upsert_teacher(teacher("t1", "A"))
        session.save_report(ReportData(id="r1", teacher_id="t1"))
        session.set_active_report(session.reports_by_teacher_id["t1"])
        session.remove_teacher("t1")
        assert session.teachers == []
        assert session.reports_by_teacher_id == {}
        assert session.active_report is None

    def test_preference_overrides_inspector_name(self):
        session, _ = make_session(settings=Settings(inspector_name="Env Name", wilaya="Oran"))
        assert session.global_defaults()["inspector_name"] == "Env Name"
        session.preferences["inspectorName"] = "Saved Name"
        assert session.global_defaults() == {"inspector_name": "Saved Name", "wilaya": "Oran", "district": ""}


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------

class TestDebouncedSync:
    def test_flush_after_quiet_window(self):
        transport = MemoryTransport()
        session, clock = make_session(transport)
        session.upsert_teacher(teacher("t1", "A"))
        assert not session.flush_if_due()
        clock.advance(4.0)
        assert session.flush_if_due()
        assert transport.writes == 1
        assert transport.rows[0] == CATALOG.headers()
        assert len(transport.rows) == 2

    def test_burst_of_edits_flushes_once(self):
        transport = MemoryTransport()
        session, clock = make_session(transport)
        for i in range(5):
            session.upsert_teacher(teacher(f"t{i}", f"T{i}"))
            clock.advance(1.0)
            session.flush_if_due()
        clock.advance(4.0)
        session.flush_if_due()
        session.flush_if_due()
        assert transport.writes == 1
        assert len(transport.rows) == 6

    def test_empty_roster_never_written(self):
        transport = MemoryTransport()
        session, clock = make_session(transport)
        session.upsert_teacher(teacher("t1", "A"))
        session.remove_teacher("t1")
        clock.advance(5.0)
        assert not session.flush_if_due()
        assert not session.flush_if_due(force=True)
        assert transport.writes == 0
        assert not session.debouncer.pending

    def test_force_ignores_window(self):
        transport = MemoryTransport()
        session, _ = make_session(transport)
        session.upsert_teacher(teacher("t1", "A"))
        assert session.flush_if_due(force=True)

    def test_no_transport(self):
        session, clock = make_session()
        session.upsert_teacher(teacher("t1", "A"))
        clock.advance(10)
        assert not session.flush_if_due()

    def test_serialize_uses_active_report(self):
        session, _ = make_session()
        session.upsert_teacher(teacher("t1", "A"))
        session.set_active_report(ReportData(id="r", teacher_id="t1", topic="Draft topic"))
        row = session.serialize()[1]
        assert row[CATALOG.default_index("topic")] == "Draft topic"

    def test_csv_file_transport(self, tmp_path):
        transport = CsvFileTransport(tmp_path / "roster.csv")
        session, _ = make_session(transport)
        session.upsert_teacher(teacher("t1", "أحمد", echelon="4", rank=RANK_BASE, degree=DEGREE_LICENCE))
        session.flush_if_due(force=True)

        fresh, _ = make_session(CsvFileTransport(tmp_path / "roster.csv"))
        fresh.import_rows()
        assert fresh.teachers == session.teachers


# ---------------------------------------------------------------------------
# Import / merge
# ---------------------------------------------------------------------------

class TestImport:
    def test_import_replaces_roster(self):
        session, _ = make_session()
        session.upsert_teacher(teacher("old", "Old"))
        result = session.import_rows(serialize_rows([teacher("n1", "New")]))
        assert [t.id for t in session.teachers] == ["n1"]
        assert result.teachers == session.teachers

    def test_failed_read_leaves_state(self):
        session, _ = make_session(FailingTransport())
        session.upsert_teacher(teacher("t1", "A"))
        session.save_report(ReportData(id="r1", teacher_id="t1"))
        with pytest.raises(TabularImportError):
            session.import_rows()
        assert [t.id for t in session.teachers] == ["t1"]
        assert "t1" in session.reports_by_teacher_id

    def test_import_without_transport_or_rows(self):
        session, _ = make_session()
        with pytest.raises(RuntimeError):
            session.import_rows()

    def test_import_reads_transport(self):
        transport = MemoryTransport(serialize_rows([teacher("n1", "New")]))
        session, _ = make_session(transport)
        session.import_rows()
        assert [t.full_name for t in session.teachers] == ["New"]

    def test_merge_rows_uses_defaults(self):
        session, _ = make_session(settings=Settings(wilaya="Blida", district="D1"))
        session.upsert_teacher(teacher("t1", "Amina", echelon="3"))
        result = session.merge_rows(serialize_rows([teacher("x", "amina", echelon="4"), teacher("n1", "Nadia")]))
        assert result.updated == ["t1"]
        assert len(result.added) == 1
        assert session.teachers[0].echelon == "4"
        added = session.reports_by_teacher_id[result.added[0]]
        assert (added.wilaya, added.district) == ("Blida", "D1")
        assert session.debouncer.pending


# ---------------------------------------------------------------------------
# Backup
# ---------------------------------------------------------------------------

class TestBackup:
    def test_backup_and_restore(self):
        session, _ = make_session(settings=Settings(inspector_name="Inspector X"))
        session.upsert_teacher(teacher("t1", "A", birth_date="1980-09-05"))
        session.save_report(ReportData(id="r1", teacher_id="t1", school="S"))
        document = session.backup_document()
        assert document["settings"]["inspectorName"] == "Inspector X"

        other, _ = make_session()
        other.restore(json.dumps(document), filename="b.json")
        assert other.teachers == session.teachers
        assert other.reports_by_teacher_id["t1"].school == "S"
        assert other.preferences["inspectorName"] == "Inspector X"
        assert other.debouncer.pending


# ---------------------------------------------------------------------------
# Eligibility
# ---------------------------------------------------------------------------

class TestEligibility:
    def test_active_report_suppresses_priority(self):
        session, _ = make_session()
        t = teacher("t1", "A")
        session.upsert_teacher(t)
        assert session.priority(t, date(2024, 6, 1)) == PRIORITY_URGENT
        session.set_active_report(ReportData(id="r", teacher_id="t1", inspection_date="2024-05-30"))
        assert session.priority(t, date(2024, 6, 1)) == PRIORITY_NONE

    def test_priority_table_order(self):
        session, _ = make_session()
        session.upsert_teacher(teacher("ok", "OK", last_inspection_date="2023-01-01", echelon="1", last_mark=15))
        session.upsert_teacher(teacher("urg", "U"))
        assert [t.id for t, _ in session.priority_table(date(2024, 6, 1))] == ["urg", "ok"]

    def test_promotion_uses_bonus_setting(self):
        t = teacher("t1", "A", echelon="3", echelon_date="2023-03-01", last_mark=12.0)
        plain, _ = make_session()
        plain.upsert_teacher(t)
        assert not plain.promotion_due(t, date(2024, 6, 1))
        assert plain.promotion_list(2024) == []

        boosted, _ = make_session(settings=Settings(seniority_bonus_months=6))
        boosted.upsert_teacher(t)
        assert boosted.promotion_due(t, date(2024, 6, 1))
        assert [c.teacher.id for c in boosted.promotion_list(2024)] == ["t1"]

    def test_priority_table_sees_active_report(self):
        session, _ = make_session()
        session.upsert_teacher(teacher("t1", "A"))
        session.set_active_report(ReportData(id="r", teacher_id="t1", inspection_date="2024-05-01"))
        assert [p for _, p in session.priority_table(date(2024, 6, 1))] == [PRIORITY_NONE]
        assert session.reports_by_teacher_id == {}

    def test_promotion_list_sees_active_report(self):
        session, _ = make_session()
        session.upsert_teacher(teacher("t1", "A", echelon="3", echelon_date="2021-01-01", last_mark=12.0))
        session.set_active_report(ReportData(id="r", teacher_id="t1", school="Ecole El Amal"))
        assert [c.school_name for c in session.promotion_list(2024)] == ["Ecole El Amal"]
        session.set_active_report(
            ReportData(id="r", teacher_id="t1", inspection_date="2024-05-01", final_mark=13.0)
        )
        assert session.promotion_list(2024) == []
