"""
PDF print layouts (reportlab): promotion campaign list and roster brief.

Arabic names need a TTF font that covers Arabic; pass its path (or set
MUFATTISH_PDF_FONT). Without one the built-in Helvetica is used.
"""

from __future__ import annotations

import logging
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Optional, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from mufattish.eligibility.candidates import PromotionCandidate
from mufattish.sync.normalizer import format_for_display

logger = logging.getLogger(__name__)

DEFAULT_FONT = "Helvetica"
PRIMARY = colors.HexColor("#1e3a8a")
MUTED = colors.HexColor("#6b7280")
BODY = colors.HexColor("#1f2937")


def register_font(font_path: Optional[str]) -> str:
    """Register a TTF font and return its name; DEFAULT_FONT when none is usable."""
    if not font_path:
        return DEFAULT_FONT
    path = Path(font_path)
    if not path.exists():
        logger.warning("[printing] font %s not found; using %s", path, DEFAULT_FONT)
        return DEFAULT_FONT
    name = path.stem
    if name not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(TTFont(name, str(path)))
    return name


def _styles(font: str) -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("MTitle", parent=base["Heading1"], fontName=font, fontSize=20,
                                textColor=PRIMARY, spaceAfter=6, alignment=TA_CENTER),
        "subtitle": ParagraphStyle("MSubtitle", parent=base["Normal"], fontName=font, fontSize=11,
                                   textColor=MUTED, spaceAfter=16, alignment=TA_CENTER),
        "heading": ParagraphStyle("MHeading", parent=base["Heading2"], fontName=font, fontSize=13,
                                  textColor=PRIMARY, spaceBefore=10, spaceAfter=6),
        "body": ParagraphStyle("MBody", parent=base["Normal"], fontName=font, fontSize=10,
                               textColor=BODY, spaceAfter=4, leading=14),
        "footer": ParagraphStyle("MFooter", parent=base["Normal"], fontName=font, fontSize=8,
                                 textColor=MUTED, alignment=TA_CENTER),
    }


def _footer(styles: dict[str, ParagraphStyle]) -> Paragraph:
    return Paragraph(f"Generated {datetime.now():%Y-%m-%d %H:%M}", styles["footer"])


def promotion_list_pdf(
    candidates: Sequence[PromotionCandidate],
    campaign_year: int,
    inspector_name: str = "",
    font_path: Optional[str] = None,
) -> BytesIO:
    """Printable promotion campaign table, one row per candidate."""
    font = register_font(font_path)
    styles = _styles(font)
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4), topMargin=0.6 * inch, bottomMargin=0.6 * inch)

    story = [
        Paragraph(f"Promotion campaign {campaign_year}", styles["title"]),
        Paragraph(
            escape(f"Inspector: {inspector_name}" if inspector_name else "Inspector: -")
            + f" | Candidates: {len(candidates)}",
            styles["subtitle"],
        ),
    ]

    header = ["#", "Name", "School", "Echelon", "Echelon date", "Due", "Last mark", "Ceiling", "Gap"]
    data: list[list[str]] = [header]
    for i, c in enumerate(candidates, 1):
        data.append([
            str(i),
            c.teacher.full_name,
            c.school_name,
            c.teacher.echelon,
            format_for_display(c.teacher.echelon_date),
            format_for_display(c.due_date.isoformat()) if c.due_date else "",
            f"{c.teacher.last_mark:g}",
            f"{c.max_allowed_mark:g}",
            f"+{c.mark_gap:.2f}",
        ])

    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, -1), font),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("BACKGROUND", (0, 0), (-1, 0), PRIMARY),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f3f4f6")]),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))
    story.append(table if candidates else Paragraph("No candidates for this campaign.", styles["body"]))
    story.append(Spacer(1, 0.3 * inch))
    story.append(_footer(styles))

    doc.build(story)
    buffer.seek(0)
    logger.info("[printing] promotion list for %d: %d candidate(s)", campaign_year, len(candidates))
    return buffer


def roster_brief_pdf(brief_text: str, title: str = "Inspection roster brief", font_path: Optional[str] = None) -> BytesIO:
    """Render the plain-text roster brief: all-caps lines become headings."""
    font = register_font(font_path)
    styles = _styles(font)
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=0.75 * inch, bottomMargin=0.75 * inch)
    story = [Paragraph(escape(title), styles["title"]), Spacer(1, 0.2 * inch)]

    for line in brief_text.split("\n"):
        line = line.strip()
        if not line or "═" in line or "─" in line:
            continue
        if line.isupper() and len(line) > 10:
            story.append(Paragraph(escape(line), styles["heading"]))
        else:
            story.append(Paragraph(escape(line), styles["body"]))

    story.append(Spacer(1, 0.4 * inch))
    story.append(_footer(styles))
    doc.build(story)
    buffer.seek(0)
    return buffer
