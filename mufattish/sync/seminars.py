"""
Seminar ledger rows.

One row per SeminarEvent under a fixed header. target_levels is written as
a JSON array in a single cell; a malformed cell reads back as [].
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Sequence

from mufattish.models import SeminarEvent, as_flag
from mufattish.sync.normalizer import normalize_date, normalize_level
from mufattish.sync.parser import cell_text, generate_id
from mufattish.sync.schema import normalize_header

logger = logging.getLogger(__name__)

# (attribute, header)
SEMINAR_COLUMNS: tuple[tuple[str, str], ...] = (
    ("id", "ID"),
    ("topic", "موضوع_الندوة"),
    ("date", "التاريخ"),
    ("location", "المكان"),
    ("is_external_location", "مكان_خارجي"),
    ("duration", "المدة"),
    ("target_levels", "المستويات_المستهدفة"),
    ("supervisor", "المشرف"),
    ("notes", "ملاحظات"),
    ("is_interactive", "تفاعلية"),
)


def seminar_headers() -> list[str]:
    return [header for _, header in SEMINAR_COLUMNS]


def _levels_cell(levels: Sequence[str]) -> str:
    return json.dumps(list(levels), ensure_ascii=False)


def _parse_levels(raw: str) -> list[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("[seminars] malformed target levels cell %r; read as []", raw)
        return []
    if not isinstance(value, list):
        return []
    return [normalize_level(v) for v in value if str(v).strip()]


def serialize_seminars(events: Iterable[SeminarEvent]) -> list[list[Any]]:
    rows: list[list[Any]] = [seminar_headers()]
    for event in events:
        row: list[Any] = []
        for attr, _ in SEMINAR_COLUMNS:
            value = getattr(event, attr)
            if attr == "target_levels":
                row.append(_levels_cell(value))
            elif attr == "date":
                row.append(normalize_date(value))
            elif isinstance(value, bool):
                row.append("true" if value else "false")
            else:
                row.append("" if value is None else str(value))
        rows.append(row)
    return rows


def parse_seminars(rows: Sequence[Sequence[Any]]) -> list[SeminarEvent]:
    """Rows -> events. Rows without a topic are skipped; missing ids are generated."""
    if not rows or len(rows) < 2:
        return []
    found = {normalize_header(h): i for i, h in reversed(list(enumerate(rows[0])))}
    positions = {
        attr: found.get(normalize_header(header), default)
        for default, (attr, header) in enumerate(SEMINAR_COLUMNS)
    }

    events: list[SeminarEvent] = []
    for row in rows[1:]:
        values = {attr: cell_text(row, index) for attr, index in positions.items()}
        if not values["topic"]:
            continue
        events.append(SeminarEvent(
            id=values["id"] or generate_id(),
            topic=values["topic"],
            date=normalize_date(values["date"]),
            location=values["location"],
            is_external_location=as_flag(values["is_external_location"]),
            duration=values["duration"],
            target_levels=_parse_levels(values["target_levels"]),
            supervisor=values["supervisor"],
            notes=values["notes"],
            is_interactive=as_flag(values["is_interactive"]),
        ))
    logger.info("[seminars] parsed %d seminar(s)", len(events))
    return events
