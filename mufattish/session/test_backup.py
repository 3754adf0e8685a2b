"""
Backup / Restore Test Suite

Tests cover:
- Document layout and camelCase keys
- Restore of a document written by build_backup
- Date normalization on restore
- Structured halt on invalid documents
"""

import json
from datetime import datetime

import pytest

from mufattish.models import LegacyReportOptions, ReportData, SeminarEvent, Teacher
from mufattish.session.backup import BACKUP_VERSION, BackupError, build_backup, dumps_backup, restore_backup
from mufattish.sync.schema import new_observations


def sample_document():
    teacher = Teacher(id="t1", full_name="أحمد", echelon="4", echelon_date="2021-09-01", last_mark=13.5)
    report = ReportData(id="r1", teacher_id="t1", school="Ecole A", final_mark=14.0, observations=new_observations())
    report.observations[0].score = 2
    seminar = SeminarEvent(id="s1", topic="Lecture", date="2024-02-14", target_levels=["السنة الأولى"])
    return build_backup(
        [teacher],
        {"t1": report},
        tenure_reports={"t1": {"examDate": "2016-05-20"}},
        seminars=[seminar],
        settings={"inspectorName": "Inspector X"},
        now=datetime(2024, 6, 1, 10, 0, 0),
    )


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------

class TestBuild:
    def test_layout(self):
        document = sample_document()
        assert document["version"] == BACKUP_VERSION
        assert document["date"] == "2024-06-01T10:00:00"
        assert set(document) == {"version", "date", "teachers", "reportsMap", "tenureReportsMap", "seminars", "settings"}

    def test_camel_case_records(self):
        record = sample_document()["teachers"][0]
        assert record["fullName"] == "أحمد"
        assert record["echelonDate"] == "2021-09-01"
        assert record["currentRankDate"] == ""
        assert sample_document()["reportsMap"]["t1"]["teacherId"] == "t1"

    def test_dumps_keeps_arabic(self):
        assert "أحمد" in dumps_backup(sample_document())


# ---------------------------------------------------------------------------
# Restore
# ---------------------------------------------------------------------------

class TestRestore:
    def test_round_trip(self):
        contents = restore_backup(dumps_backup(sample_document()))
        assert contents.teachers[0].full_name == "أحمد"
        assert contents.teachers[0].last_mark == 13.5
        report = contents.reports_by_teacher_id["t1"]
        assert report.school == "Ecole A"
        assert report.final_mark == 14.0
        assert report.observation("c01").score == 2
        assert contents.tenure_reports == {"t1": {"examDate": "2016-05-20"}}
        assert contents.seminars[0].target_levels == ["السنة الأولى"]
        assert contents.settings == {"inspectorName": "Inspector X"}
        assert contents.version == BACKUP_VERSION

    def test_dates_normalized(self):
        document = sample_document()
        document["teachers"][0]["birthDate"] = "20/01/1985"
        document["teachers"][0]["lastInspectionDate"] = "2022-03-04T00:00:00.000Z"
        document["reportsMap"]["t1"]["inspectionDate"] = "5/3/2024"
        document["reportsMap"]["t1"]["legacyData"] = LegacyReportOptions(training_date="1/9/2005").to_record()
        document["tenureReportsMap"]["t1"]["examDate"] = "20/05/2016"
        document["seminars"][0]["date"] = "14/02/2024"
        contents = restore_backup(json.dumps(document))
        assert contents.teachers[0].birth_date == "1985-01-20"
        assert contents.teachers[0].last_inspection_date == "2022-03-04"
        assert contents.reports_by_teacher_id["t1"].inspection_date == "2024-03-05"
        assert contents.reports_by_teacher_id["t1"].legacy_data.training_date == "2005-09-01"
        assert contents.tenure_reports["t1"]["examDate"] == "2016-05-20"
        assert contents.seminars[0].date == "2024-02-14"

    def test_report_teacher_id_filled_from_key(self):
        document = sample_document()
        del document["reportsMap"]["t1"]["teacherId"]
        assert restore_backup(json.dumps(document)).reports_by_teacher_id["t1"].teacher_id == "t1"

    def test_optional_sections_may_be_missing(self):
        contents = restore_backup(json.dumps({"teachers": [{"id": "t1", "fullName": "A"}]}))
        assert contents.reports_by_teacher_id == {}
        assert contents.seminars == []
        assert contents.settings == {}


class TestRestoreErrors:
    def test_invalid_json(self):
        with pytest.raises(BackupError) as exc:
            restore_backup("{oops", filename="b.json")
        assert exc.value.affected_file == "b.json"
        assert "BACKUP RESTORE HALT" in str(exc.value)

    @pytest.mark.parametrize("text", ["[]", "{}", '{"teachers": {}}'])
    def test_missing_teacher_list(self, text):
        with pytest.raises(BackupError, match="teacher list"):
            restore_backup(text)
