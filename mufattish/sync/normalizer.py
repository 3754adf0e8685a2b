"""
Field normalization for tabular import.

RULES:
- Every function is total. Malformed input never raises.
- Dates: unparseable input passes through unchanged (stripped). Lossless
  passthrough beats silent data loss.
- Categorical fields: ordered rule tables, first match wins. Unmatched text
  degrades to the documented default, never to None, because mark and
  seniority arithmetic downstream needs a value.
- normalize_date is idempotent.

Public API:
  normalize_date(value) -> str
  parse_date(value) -> date | None
  format_for_display(iso) -> str
  normalize_rank / normalize_degree / normalize_level / normalize_status
  normalize_echelon(value) -> str
  parse_number(value, default) -> float
  parse_int(value, default) -> int
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Callable, NamedTuple, Optional

from mufattish.config import ECHELON_CEILING, ECHELON_MIN, SERIAL_EPOCH_ISO, SERIAL_MAX, SERIAL_MIN
from mufattish.models import STATUS_CONTRACTUAL, STATUS_PERMANENT, STATUS_PROBATIONARY

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

_ISO = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ISO_WITH_TIME = re.compile(r"^(\d{4}-\d{2}-\d{2})[T ].*$")
_YMD = re.compile(r"^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})$")
_DMY = re.compile(r"^(\d{1,2})[-/.](\d{1,2})[-/.](\d{4}|\d{2})$")
_SERIAL = re.compile(r"^\d+(\.\d+)?$")

_SERIAL_EPOCH: date = date.fromisoformat(SERIAL_EPOCH_ISO)


def _iso_or_none(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _from_serial(serial: float) -> Optional[str]:
    if not SERIAL_MIN < serial < SERIAL_MAX:
        return None
    return (_SERIAL_EPOCH + timedelta(days=int(math.floor(serial)))).isoformat()


def normalize_date(value: Any) -> str:
    """
    Coerce a loosely formatted date to ISO "YYYY-MM-DD".

    Accepted: ISO dates (returned as-is), ISO with a time/timezone part,
    YYYY/M/D, spreadsheet serial numbers (day 0 = 1899-12-30), and D/M/Y,
    D-M-Y, D.M.Y with 2- or 4-digit years (2-digit years are 20xx).
    None/blank gives "". Anything else is returned unchanged.
    """
    if value is None or isinstance(value, bool):
        return "" if value is None else str(value)
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return ""
        return _from_serial(float(value)) or str(value)

    s = str(value).strip()
    if not s or _ISO.match(s):
        return s

    m = _ISO_WITH_TIME.match(s)
    if m:
        return m.group(1)

    m = _YMD.match(s)
    if m:
        return _iso_or_none(int(m.group(1)), int(m.group(2)), int(m.group(3))) or s

    m = _DMY.match(s)
    if m:
        day, month, year = m.group(1), m.group(2), m.group(3)
        full_year = 2000 + int(year) if len(year) == 2 else int(year)
        return _iso_or_none(full_year, int(month), int(day)) or s

    if _SERIAL.match(s):
        return _from_serial(float(s)) or s

    return s


def parse_date(value: Any) -> Optional[date]:
    """normalize_date, then a strict ISO parse. None when not a real date."""
    iso = normalize_date(value)
    if not _ISO.match(iso):
        return None
    try:
        return date.fromisoformat(iso)
    except ValueError:
        return None


def format_for_display(iso: Any) -> str:
    """ISO "YYYY-MM-DD" -> "DD/MM/YYYY". Other input: '-' becomes '/'."""
    s = "" if iso is None else str(iso).strip()
    if _ISO.match(s):
        year, month, day = s.split("-")
        return f"{day}/{month}/{year}"
    return s.replace("-", "/")


# ---------------------------------------------------------------------------
# Categorical rule tables
# ---------------------------------------------------------------------------


class Rule(NamedTuple):
    predicate: Callable[[str], bool]
    result: str


def _contains_any(*keywords: str) -> Callable[[str], bool]:
    lowered = tuple(k.lower() for k in keywords)
    return lambda text: any(k in text for k in lowered)


def _word(pattern: str) -> Callable[[str], bool]:
    compiled = re.compile(pattern)
    return lambda text: compiled.search(text) is not None


def _bare_digit(digit: str) -> Callable[[str], bool]:
    return _word(rf"(?<!\d){digit}(?!\d)")


def _either(*predicates: Callable[[str], bool]) -> Callable[[str], bool]:
    return lambda text: any(p(text) for p in predicates)


def apply_rules(text: Any, rules: tuple[Rule, ...], default: str, field_label: str) -> str:
    """Evaluate rules in order against lowercased text; first match wins."""
    cleaned = "" if text is None else str(text).strip()
    lowered = cleaned.lower()
    if lowered:
        for rule in rules:
            if rule.predicate(lowered):
                return rule.result
        if cleaned != default:
            logger.debug("[normalizer] %s: '%s' unmatched; defaulted to '%s'", field_label, cleaned, default)
    return default


# ── Rank ────────────────────────────────────────────────────────────────────
RANK_BASE = "أستاذ المدرسة الابتدائية"
RANK_FIRST_CLASS = "أستاذ المدرسة الابتدائية قسم أول"
RANK_SECOND_CLASS = "أستاذ المدرسة الابتدائية قسم ثان"
RANK_TRAINER = "أستاذ مكون"
RANK_DISTINGUISHED = "أستاذ مميز"

RANKS: tuple[str, ...] = (RANK_BASE, RANK_FIRST_CLASS, RANK_SECOND_CLASS, RANK_TRAINER, RANK_DISTINGUISHED)

RANK_RULES: tuple[Rule, ...] = (
    Rule(_contains_any("مميز", "distingu"), RANK_DISTINGUISHED),
    Rule(_contains_any("مكون", "formateur", "trainer"), RANK_TRAINER),
    Rule(_either(_contains_any("قسم ثان", "ثاني", "second", "deuxi"), _bare_digit("2")), RANK_SECOND_CLASS),
    Rule(_either(_contains_any("قسم أول", "أول", "اول", "first", "premi"), _bare_digit("1")), RANK_FIRST_CLASS),
)


def normalize_rank(text: Any) -> str:
    return apply_rules(text, RANK_RULES, RANK_BASE, "rank")


# ── Degree ──────────────────────────────────────────────────────────────────
DEGREE_DOCTORATE = "دكتوراه"
DEGREE_MASTER = "ماستر"
DEGREE_ITE_GRADUATE = "خريج(ة) المعهد التكنولوجي"
DEGREE_ENS_GRADUATE = "خريج(ة) المدرسة العليا للأساتذة"
DEGREE_APPLIED_STUDIES = "شهادة الدراسات الجامعية التطبيقية"
DEGREE_POSTGRADUATE = "شهادة الدراسات العليا"
DEGREE_LICENCE = "ليسانس"

DEGREES: tuple[str, ...] = (
    DEGREE_ITE_GRADUATE,
    DEGREE_ENS_GRADUATE,
    DEGREE_APPLIED_STUDIES,
    DEGREE_POSTGRADUATE,
    DEGREE_LICENCE,
    DEGREE_MASTER,
    DEGREE_DOCTORATE,
)

DEGREE_RULES: tuple[Rule, ...] = (
    Rule(_either(_contains_any("دكتوراه", "doctorat"), _word(r"\bph\.?d\b")), DEGREE_DOCTORATE),
    Rule(_contains_any("ماستر", "ماجستير", "master", "magist"), DEGREE_MASTER),
    Rule(_contains_any("المعهد", "معهد", "institut"), DEGREE_ITE_GRADUATE),
    Rule(_either(_contains_any("المدرسة العليا", "normale sup"), _word(r"\bens\b")), DEGREE_ENS_GRADUATE),
    Rule(_either(_contains_any("التطبيقية", "تطبيقي", "appliqu"), _word(r"\bdeua\b")), DEGREE_APPLIED_STUDIES),
    Rule(_either(_contains_any("الدراسات العليا", "postgrad", "post-grad"),
                 _word(r"^d\.?e\.?s\.?$"), _word(r"dipl[oô]me d['’]\s*[ée]tudes sup[ée]rieures")), DEGREE_POSTGRADUATE),
)


def normalize_degree(text: Any) -> str:
    return apply_rules(text, DEGREE_RULES, DEGREE_LICENCE, "degree")


# ── Class level ─────────────────────────────────────────────────────────────
LEVEL_PREP = "التربية التحضيرية"
LEVEL_YEAR_1 = "السنة الأولى"
LEVEL_YEAR_2 = "السنة الثانية"
LEVEL_YEAR_3 = "السنة الثالثة"
LEVEL_YEAR_4 = "السنة الرابعة"
LEVEL_YEAR_5 = "السنة الخامسة"

LEVELS: tuple[str, ...] = (LEVEL_PREP, LEVEL_YEAR_1, LEVEL_YEAR_2, LEVEL_YEAR_3, LEVEL_YEAR_4, LEVEL_YEAR_5)

LEVEL_RULES: tuple[Rule, ...] = (
    Rule(_either(_contains_any("تحضير", "prep", "prép", "préscolaire"), _bare_digit("0")), LEVEL_PREP),
    Rule(_either(_contains_any("خامس", "fifth", "cinqui"), _bare_digit("5")), LEVEL_YEAR_5),
    Rule(_either(_contains_any("رابع", "fourth", "quatri"), _bare_digit("4")), LEVEL_YEAR_4),
    Rule(_either(_contains_any("ثالث", "third", "troisi"), _bare_digit("3")), LEVEL_YEAR_3),
    Rule(_either(_contains_any("ثاني", "second", "deuxi"), _bare_digit("2")), LEVEL_YEAR_2),
    Rule(_either(_contains_any("أول", "اول", "first", "premi"), _bare_digit("1")), LEVEL_YEAR_1),
)


def normalize_level(text: Any) -> str:
    return apply_rules(text, LEVEL_RULES, LEVEL_YEAR_1, "level")


# ── Employment status ───────────────────────────────────────────────────────
STATUS_RULES: tuple[Rule, ...] = (
    Rule(_contains_any("متعاقد", "تعاقد", "contract"), STATUS_CONTRACTUAL),
    Rule(_contains_any("متربص", "تربص", "stag", "trainee", "probation"), STATUS_PROBATIONARY),
)


def normalize_status(text: Any) -> str:
    return apply_rules(text, STATUS_RULES, STATUS_PERMANENT, "status")


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


def parse_number(value: Any, default: float) -> float:
    """Float from a cell; blank, non-numeric and NaN give default."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return default if math.isnan(value) else float(value)
    s = str(value).strip().replace(",", ".")
    if not s:
        return default
    try:
        number = float(s)
    except ValueError:
        return default
    return default if math.isnan(number) else number


def parse_int(value: Any, default: int) -> int:
    number = parse_number(value, float("nan"))
    if math.isnan(number) or math.isinf(number):
        return default
    return int(number)


def normalize_echelon(value: Any) -> str:
    """Echelon as a string integer in [1, 12]; anything else is ""."""
    number = parse_number(value, float("nan"))
    if math.isnan(number) or not number.is_integer():
        return ""
    echelon = int(number)
    return str(echelon) if ECHELON_MIN <= echelon <= ECHELON_CEILING else ""
