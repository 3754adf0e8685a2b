"""
Schema catalog for the teacher/report table (v3).

The catalog is the single source of truth for the tabular form. Both the
serializer and the parser consult it; neither keeps its own column list.

Band order (fixed):
  1. identity    : Teacher attributes
  2. report      : session metadata of the inspection report
  3. legacy      : report variant, inspector, legacy-form fields
  4. observations: (score, note) column pair per template id
  5. trailing    : columns added after the first published layout

Each logical column has:
  - a stable header label (the column name written to the sheet)
  - a default positional index (its position in the catalog), used when
    the header is absent from an imported table
  - optional alias headers (English labels, older spellings)

Header matching is deterministic: BOM removed, whitespace stripped,
case-insensitive, exact. Underscore and space spellings of a label are
equivalent. A header claimed by two columns is a catalog defect and raises
ValueError at import time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional

from mufattish.config import SCHEMA_VERSION
from mufattish.models import ObservationItem

ENTITY_TEACHER = "teacher"
ENTITY_REPORT = "report"
ENTITY_LEGACY = "legacy"

# Field kinds drive the per-cell converters in serializer and parser.
KIND_ID = "id"
KIND_TEXT = "text"
KIND_DATE = "date"
KIND_MARK = "mark"
KIND_FINAL_MARK = "final_mark"
KIND_COUNT = "count"
KIND_ECHELON = "echelon"
KIND_RANK = "rank"
KIND_DEGREE = "degree"
KIND_STATUS = "status"
KIND_LEVEL = "level"
KIND_REPORT_MODEL = "report_model"

# Older header of the general-assessment column. Read as a fallback only
# when the current column is empty.
SUPERSEDED_ASSESSMENT_HEADER = "السبورة"

NAME_KEY = "full_name"
ID_KEY = "id"
ASSESSMENT_KEY = "general_assessment"
REPORT_MODEL_KEY = "report_model"


class FieldSpec(NamedTuple):
    key: str
    header: str
    entity: str
    attr: str
    kind: str = KIND_TEXT
    aliases: tuple[str, ...] = ()
    carry_forward: bool = False


def _t(key: str, header: str, kind: str = KIND_TEXT, aliases: tuple[str, ...] = ()) -> FieldSpec:
    return FieldSpec(key, header, ENTITY_TEACHER, key, kind, aliases)


def _r(key: str, header: str, kind: str = KIND_TEXT, aliases: tuple[str, ...] = (), carry: bool = False) -> FieldSpec:
    return FieldSpec(key, header, ENTITY_REPORT, key, kind, aliases, carry)


def _l(key: str, header: str, kind: str = KIND_TEXT) -> FieldSpec:
    return FieldSpec(key, header, ENTITY_LEGACY, key, kind)


# ---------------------------------------------------------------------------
# Bands
# ---------------------------------------------------------------------------

_IDENTITY_BAND: tuple[FieldSpec, ...] = (
    _t("id", "ID", KIND_ID, ("teacher id", "teacher_id", "المعرف")),
    _t("full_name", "الاسم_واللقب", KIND_TEXT, ("full name", "fullname", "name", "الاسم")),
    _t("birth_date", "تاريخ_الميلاد", KIND_DATE, ("birth date", "date of birth")),
    _t("birth_place", "مكان_الميلاد", KIND_TEXT, ("birth place", "place of birth")),
    _t("degree", "الشهادة", KIND_DEGREE, ("degree",)),
    _t("degree_date", "تاريخ_الشهادة", KIND_DATE, ("degree date",)),
    _t("recruitment_date", "تاريخ_التوظيف", KIND_DATE, ("recruitment date",)),
    _t("rank", "الرتبة", KIND_RANK, ("rank", "grade")),
    _t("rank_date", "تاريخ_الرتبة", KIND_DATE, ("rank date",)),
    _t("echelon", "الدرجة", KIND_ECHELON, ("echelon",)),
    _t("echelon_date", "تاريخ_الدرجة", KIND_DATE, ("echelon date",)),
    _t("last_inspection_date", "تاريخ_آخر_تفتيش", KIND_DATE, ("last inspection date", "last inspection")),
    _t("last_mark", "النقطة_السابقة", KIND_MARK, ("last mark", "previous mark")),
    _t("status", "الوضعية", KIND_STATUS, ("status",)),
    _t("tenure_date", "تاريخ_التثبيت", KIND_DATE, ("tenure date",)),
)

_REPORT_BAND: tuple[FieldSpec, ...] = (
    _r("wilaya", "الولاية", aliases=("wilaya", "region"), carry=True),
    _r("district", "المقاطعة", aliases=("district",), carry=True),
    _r("school", "المدرسة", aliases=("school",), carry=True),
    _r("inspection_date", "تاريخ_الزيارة", KIND_DATE, ("inspection date", "visit date")),
    _r("subject", "المادة", aliases=("subject",)),
    _r("topic", "الموضوع", aliases=("topic",)),
    _r("duration", "المدة", aliases=("duration",)),
    _r("level", "المستوى", KIND_LEVEL, ("level", "class level")),
    _r("group", "الفوج", aliases=("group",)),
    _r("student_count", "عدد_التلاميذ", KIND_COUNT, ("student count", "students")),
    _r("absent_count", "الغائبون", KIND_COUNT, ("absent count", "absent")),
    _r("general_assessment", "التقييم_العام", aliases=("general assessment",)),
    _r("final_mark", "العلامة_النهائية", KIND_FINAL_MARK, ("final mark", "mark")),
    _r("mark_in_letters", "العلامة_بالحروف", aliases=("mark in letters",)),
    _r("assessment_keywords", "توجيهات_التقييم", aliases=("assessment keywords",)),
)

_LEGACY_BAND: tuple[FieldSpec, ...] = (
    _r("report_model", "نوع_التقرير", KIND_REPORT_MODEL, ("report model", "report type")),
    _r("inspector_name", "اسم_المفتش", aliases=("inspector name", "inspector"), carry=True),
    _l("family_status", "الحالة_العائلية"),
    _l("training_institute", "معهد_التكوين"),
    _l("training_date", "تاريخ_التخرج_من_المعهد", KIND_DATE),
    _l("graduation_date", "تاريخ_المؤهل_العلمي", KIND_DATE),
    _l("school_year", "السنة_الدراسية"),
    _l("daira", "الدائرة"),
    _l("municipality", "البلدية"),
    _l("classroom_listening", "القاعة_استماع"),
    _l("lighting", "الإضاءة"),
    _l("heating", "التدفئة"),
    _l("ventilation", "التهوية"),
    _l("cleanliness", "النظافة"),
    _l("lesson_preparation", "إعداد_الدروس"),
    _l("preparation_value", "قيمة_الإعداد"),
    _l("other_aids", "وسائل_أخرى"),
    _l("board_work", "استعمال_السبورة"),
    _l("documents_and_posters", "التوزيع_والمعلقات"),
    _l("registers", "السجلات"),
    _l("registers_used", "السجلات_مستعملة"),
    _l("registers_monitored", "السجلات_مراقبة"),
    _l("scheduled_programs", "البرامج_المقررة"),
    _l("progression", "التدرج"),
    _l("duties", "الواجبات"),
    _l("lesson_execution", "تسلسل_الدروس"),
    _l("information_value", "قيمة_المعلومات"),
    _l("objectives_achieved", "تحقق_الأهداف"),
    _l("student_participation", "مشاركة_التلاميذ"),
    _l("applications", "التطبيقات"),
    _l("applications_suitability", "ملاءمة_التطبيقات"),
    _l("notebooks_care", "العناية_بالدفاتر"),
    _l("notebooks_monitored", "مراقبة_الدفاتر"),
    _l("homework_correction", "تصحيح_الواجبات"),
    _l("homework_value", "قيمة_التصحيح"),
    _l("general_appreciation", "التقدير_العام_الكلاسيكي"),
)

# Columns added after the first published layout. They sit after the
# observation pairs so that every older column keeps its position.
_TRAILING_BAND: tuple[FieldSpec, ...] = (
    _t("private_notes", "ملاحظات_خاصة", KIND_TEXT, ("private notes", "notes")),
    _l("maiden_name", "اللقب_الأصلي"),
)


# ---------------------------------------------------------------------------
# Observation template (modern report form)
# ---------------------------------------------------------------------------


class ObservationTemplate(NamedTuple):
    id: str
    category: str
    criteria: str
    indicators: tuple[str, ...]


DEFAULT_OBSERVATION_TEMPLATE: tuple[ObservationTemplate, ...] = (
    ObservationTemplate("c01", "التخطيط", "إعداد المذكرة البيداغوجية وفق المنهاج",
                        ("وجود المذكرة", "مطابقة التدرج السنوي")),
    ObservationTemplate("c02", "التخطيط", "صياغة أهداف التعلم بدقة",
                        ("أهداف إجرائية", "قابلية القياس")),
    ObservationTemplate("c03", "الوضعية التعلمية", "بناء وضعية انطلاقية محفزة",
                        ("ربط بالمكتسبات", "إثارة الدافعية")),
    ObservationTemplate("c04", "الموارد المعرفية", "دقة المعارف وملاءمتها للمستوى",
                        ("سلامة المعلومات", "التدرج في الصعوبة")),
    ObservationTemplate("c05", "استراتيجيات التعلم", "تنويع طرائق التدريس وإشراك المتعلمين",
                        ("العمل في أفواج", "التعلم النشط")),
    ObservationTemplate("c06", "الوسائل", "توظيف الوسائل التعليمية والتكنولوجيا",
                        ("ملاءمة الوسيلة", "استعمال وظيفي")),
    ObservationTemplate("c07", "ضبط الصف", "تسيير القسم والنظام ووضوح التعليمات",
                        ("انضباط المتعلمين", "وضوح التعليمات")),
    ObservationTemplate("c08", "التقويم", "التقويم التكويني ومعالجة الأخطاء",
                        ("أسئلة تقويمية", "استغلال الأخطاء")),
    ObservationTemplate("c09", "التقويم", "مراقبة الكراسات وتصحيح الواجبات",
                        ("انتظام التصحيح", "ملاحظات توجيهية")),
    ObservationTemplate("c10", "السبورة", "تنظيم السبورة ووضوح الكتابة",
                        ("تقسيم السبورة", "جودة الخط")),
)


def new_observations() -> list[ObservationItem]:
    """Fresh, unscored observation items in template order."""
    return [
        ObservationItem(id=t.id, category=t.category, criteria=t.criteria, indicators=list(t.indicators))
        for t in DEFAULT_OBSERVATION_TEMPLATE
    ]


def score_column_id(template_id: str) -> str:
    return f"{template_id}:score"


def note_column_id(template_id: str) -> str:
    return f"{template_id}:note"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


def normalize_header(raw: object) -> str:
    """BOM removed, stripped, lowercase. Used for header lookup only."""
    if raw is None:
        return ""
    return str(raw).replace("\ufeff", "").strip().lower()


@dataclass(frozen=True)
class ObservationColumns:
    template_id: str
    score_header: str
    note_header: str
    score_index: int
    note_index: int


class SchemaCatalog:
    """Ordered, versioned column catalog. Built once at import time."""

    def __init__(
        self,
        fields: tuple[FieldSpec, ...],
        template: tuple[ObservationTemplate, ...],
        trailing: tuple[FieldSpec, ...] = (),
        version: int = SCHEMA_VERSION,
    ) -> None:
        self.version = version
        self.leading_fields = fields
        self.trailing_fields = trailing
        self.fields = fields + trailing
        self.template = template
        self._by_key: dict[str, FieldSpec] = {}
        self._positions: dict[str, int] = {}
        for index, spec in enumerate(fields):
            self._add_field(spec, index)

        observations: list[ObservationColumns] = []
        index = len(fields)
        for tmpl in template:
            observations.append(ObservationColumns(
                template_id=tmpl.id,
                score_header=f"معيار_{tmpl.id}_التقييم",
                note_header=f"معيار_{tmpl.id}_ملاحظات",
                score_index=index,
                note_index=index + 1,
            ))
            self._positions[score_column_id(tmpl.id)] = index
            self._positions[note_column_id(tmpl.id)] = index + 1
            index += 2
        self.observation_columns: tuple[ObservationColumns, ...] = tuple(observations)
        for offset, spec in enumerate(trailing):
            self._add_field(spec, index + offset)
        self._lookup = self._build_header_lookup()

    def _add_field(self, spec: FieldSpec, index: int) -> None:
        if spec.key in self._by_key:
            raise ValueError(f"Schema catalog defect: duplicate field key '{spec.key}'")
        self._by_key[spec.key] = spec
        self._positions[spec.key] = index

    def _build_header_lookup(self) -> dict[str, str]:
        """
        Map every accepted header spelling to its column id.

        Raises ValueError if one spelling would resolve to two columns.
        """
        entries: list[tuple[str, str]] = []
        for spec in self.fields:
            for label in (spec.header, *spec.aliases):
                entries.append((label, spec.key))
        for obs in self.observation_columns:
            entries.append((obs.score_header, score_column_id(obs.template_id)))
            entries.append((obs.note_header, note_column_id(obs.template_id)))

        lookup: dict[str, str] = {}
        for label, column_id in entries:
            for variant in {normalize_header(label), normalize_header(label).replace("_", " ")}:
                existing = lookup.get(variant)
                if existing is not None and existing != column_id:
                    raise ValueError(
                        f"Schema catalog conflict: header '{label}' (normalized: '{variant}') "
                        f"maps to '{column_id}' but was already mapped to '{existing}'."
                    )
                lookup[variant] = column_id
        if normalize_header(SUPERSEDED_ASSESSMENT_HEADER) in lookup:
            raise ValueError("Superseded assessment header must not be claimed by a live column")
        return lookup

    # -- queries -----------------------------------------------------------

    def headers(self) -> list[str]:
        """The header row, in catalog order."""
        row = [spec.header for spec in self.leading_fields]
        for obs in self.observation_columns:
            row.extend((obs.score_header, obs.note_header))
        row.extend(spec.header for spec in self.trailing_fields)
        return row

    @property
    def width(self) -> int:
        return len(self.fields) + 2 * len(self.observation_columns)

    def field(self, key: str) -> FieldSpec:
        return self._by_key[key]

    def fields_for(self, entity: str) -> tuple[FieldSpec, ...]:
        return tuple(spec for spec in self.fields if spec.entity == entity)

    def carry_forward_keys(self) -> tuple[str, ...]:
        return tuple(spec.key for spec in self.fields if spec.carry_forward)

    def default_index(self, column_id: str) -> int:
        return self._positions[column_id]

    def column_ids(self) -> list[str]:
        return list(self._positions)

    def column_for_header(self, raw_header: object) -> Optional[str]:
        """Column id for a raw header cell, or None when unrecognized."""
        key = normalize_header(raw_header)
        return self._lookup.get(key) or self._lookup.get(key.replace("_", " "))


CATALOG: SchemaCatalog = SchemaCatalog(
    _IDENTITY_BAND + _REPORT_BAND + _LEGACY_BAND,
    DEFAULT_OBSERVATION_TEMPLATE,
    _TRAILING_BAND,
)
