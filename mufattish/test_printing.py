"""
PDF Print Layout Test Suite
"""

from datetime import date

from mufattish.eligibility.candidates import PromotionCandidate
from mufattish.models import Teacher
from mufattish.printing import DEFAULT_FONT, promotion_list_pdf, register_font, roster_brief_pdf


def make_candidate(name: str = "Amina & Co <test>") -> PromotionCandidate:
    teacher = Teacher(id="t1", full_name=name, echelon="4", echelon_date="2021-09-01", last_mark=13.5)
    return PromotionCandidate(teacher=teacher, max_allowed_mark=15.0, school_name="Ecole A",
                              due_date=date(2024, 3, 2))


class TestFonts:
    def test_no_font_uses_default(self):
        assert register_font(None) == DEFAULT_FONT

    def test_missing_font_file_uses_default(self, tmp_path):
        assert register_font(str(tmp_path / "missing.ttf")) == DEFAULT_FONT


class TestPromotionListPdf:
    def test_renders_pdf(self):
        data = promotion_list_pdf([make_candidate()], 2024, inspector_name="Inspector X").getvalue()
        assert data.startswith(b"%PDF")

    def test_empty_list_still_renders(self):
        assert promotion_list_pdf([], 2024).getvalue().startswith(b"%PDF")

    def test_candidate_without_due_date(self):
        candidate = make_candidate()
        candidate.due_date = None
        assert promotion_list_pdf([candidate], 2024).getvalue().startswith(b"%PDF")


class TestRosterBriefPdf:
    def test_renders_pdf(self):
        brief = "═" * 20 + "\nINSPECTION ROSTER BRIEF\n" + "═" * 20 + "\nTotal Teachers: 3\n<b>not markup</b>\n"
        assert roster_brief_pdf(brief).getvalue().startswith(b"%PDF")
