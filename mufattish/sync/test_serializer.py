"""
Row Serializer Test Suite

Tests cover:
- Header row first, one row per teacher in input order
- Report resolution order (map, active report, empty shape)
- Carry-forward of school / region / district / inspector
- Numeric and score cells never rendered as "None" or "null"
"""

from mufattish.models import REPORT_MODERN, ReportData, Teacher
from mufattish.sync.schema import CATALOG, new_observations, note_column_id, score_column_id
from mufattish.sync.serializer import number_cell, serialize_rows


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def col(key: str) -> int:
    return CATALOG.default_index(key)


def make_teacher(tid: str, name: str, **kwargs) -> Teacher:
    return Teacher(id=tid, full_name=name, **kwargs)


def make_report(tid: str, **kwargs) -> ReportData:
    kwargs.setdefault("observations", new_observations())
    return ReportData(id=f"r-{tid}", teacher_id=tid, **kwargs)


# ---------------------------------------------------------------------------
# Shape
# ---------------------------------------------------------------------------

class TestShape:
    def test_header_row_first(self):
        rows = serialize_rows([make_teacher("t1", "A")])
        assert rows[0] == CATALOG.headers()

    def test_one_row_per_teacher_in_order(self):
        teachers = [make_teacher(f"t{i}", f"Teacher {i}") for i in range(5)]
        rows = serialize_rows(teachers)
        assert len(rows) == 6
        assert [r[col("full_name")] for r in rows[1:]] == [t.full_name for t in teachers]

    def test_every_row_full_width(self):
        rows = serialize_rows([make_teacher("t1", "A"), make_teacher("t2", "B")])
        assert all(len(r) == CATALOG.width for r in rows)

    def test_empty_roster_is_header_only(self):
        assert serialize_rows([]) == [CATALOG.headers()]


# ---------------------------------------------------------------------------
# Report resolution
# ---------------------------------------------------------------------------

class TestReportResolution:
    def test_map_entry_used(self):
        rows = serialize_rows([make_teacher("t1", "A")], reports_by_teacher_id={"t1": make_report("t1", topic="Fractions")})
        assert rows[1][col("topic")] == "Fractions"

    def test_active_report_when_no_map_entry(self):
        active = make_report("t1", topic="Reading")
        rows = serialize_rows([make_teacher("t1", "A")], active_report=active)
        assert rows[1][col("topic")] == "Reading"

    def test_map_entry_beats_active_report(self):
        rows = serialize_rows(
            [make_teacher("t1", "A")],
            active_report=make_report("t1", topic="Draft"),
            reports_by_teacher_id={"t1": make_report("t1", topic="Saved")},
        )
        assert rows[1][col("topic")] == "Saved"

    def test_active_report_for_other_teacher_ignored(self):
        rows = serialize_rows([make_teacher("t1", "A")], active_report=make_report("t2", topic="Other"))
        assert rows[1][col("topic")] == ""

    def test_empty_shape(self):
        rows = serialize_rows([make_teacher("t1", "A")])
        row = rows[1]
        assert row[col("report_model")] == REPORT_MODERN
        assert row[col("final_mark")] == ""
        assert row[col("student_count")] == ""
        assert row[col(score_column_id("c01"))] == ""
        assert row[col(note_column_id("c01"))] == ""


# ---------------------------------------------------------------------------
# Carry-forward
# ---------------------------------------------------------------------------

class TestCarryForward:
    def test_school_carried_to_following_rows(self):
        teachers = [make_teacher("t1", "A"), make_teacher("t2", "B"), make_teacher("t3", "C")]
        reports = {"t1": make_report("t1", school="A")}
        rows = serialize_rows(teachers, reports_by_teacher_id=reports)
        assert [r[col("school")] for r in rows[1:]] == ["A", "A", "A"]

    def test_own_value_wins_and_becomes_new_carry(self):
        teachers = [make_teacher(f"t{i}", str(i)) for i in range(1, 5)]
        reports = {
            "t1": make_report("t1", school="A"),
            "t3": make_report("t3", school="B"),
        }
        rows = serialize_rows(teachers, reports_by_teacher_id=reports)
        assert [r[col("school")] for r in rows[1:]] == ["A", "A", "B", "B"]

    def test_global_default_before_first_value(self):
        teachers = [make_teacher("t1", "A"), make_teacher("t2", "B")]
        reports = {"t2": make_report("t2", wilaya="Oran")}
        rows = serialize_rows(teachers, reports_by_teacher_id=reports, global_defaults={"wilaya": "Alger"})
        assert [r[col("wilaya")] for r in rows[1:]] == ["Alger", "Oran"]

    def test_inspector_name_carried(self):
        teachers = [make_teacher("t1", "A"), make_teacher("t2", "B")]
        reports = {"t1": make_report("t1", inspector_name="Inspector X")}
        rows = serialize_rows(teachers, reports_by_teacher_id=reports)
        assert rows[2][col("inspector_name")] == "Inspector X"

    def test_non_carry_columns_not_carried(self):
        teachers = [make_teacher("t1", "A"), make_teacher("t2", "B")]
        reports = {"t1": make_report("t1", topic="Fractions")}
        rows = serialize_rows(teachers, reports_by_teacher_id=reports)
        assert rows[2][col("topic")] == ""


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

class TestNumberCells:
    def test_integral_float_as_int(self):
        assert number_cell(14.0) == 14
        assert isinstance(number_cell(14.0), int)

    def test_fraction_kept(self):
        assert number_cell(12.75) == 12.75

    def test_none_and_nan_empty(self):
        assert number_cell(None) == ""
        assert number_cell(float("nan")) == ""

    def test_scores_and_marks_in_rows(self):
        report = make_report("t1", final_mark=15.5, student_count=28)
        report.observations[0].score = 2
        report.observations[1].score = 0
        rows = serialize_rows([make_teacher("t1", "A", last_mark=12.0)], reports_by_teacher_id={"t1": report})
        row = rows[1]
        assert row[col("last_mark")] == 12
        assert row[col("final_mark")] == 15.5
        assert row[col("student_count")] == 28
        assert row[col(score_column_id("c01"))] == 2
        assert row[col(score_column_id("c02"))] == 0
        assert row[col(score_column_id("c03"))] == ""
        assert "None" not in [str(c) for c in row]
        assert "null" not in [str(c) for c in row]

    def test_dates_normalized_on_write(self):
        rows = serialize_rows([make_teacher("t1", "A", birth_date="5/9/1980")])
        assert rows[1][col("birth_date")] == "1980-09-05"
