"""
Mufattish configuration.

Contract constants are module-level and never mutated. Deployment settings
(store location, regional seniority bonus, log level, print font, inspector
defaults) come from the environment through Settings.from_env().
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants (CONTRACT-LOCKED)
# ---------------------------------------------------------------------------

SCHEMA_VERSION: int = 3

DAYS_PER_YEAR: float = 365.25
DAYS_PER_MONTH: float = 30.44

INSPECTION_INTERVAL_YEARS: int = 3
PRIORITY_MARK_BASE: float = 9.5
PROMOTION_MARK_BASE: float = 13.0
MARK_PER_ECHELON: float = 0.5

BASE_PROMOTION_MONTHS: float = 30.0
BONUS_MONTHS_MAX: float = 12.0
ECHELON_MIN: int = 1
ECHELON_CEILING: int = 12

DEFAULT_LAST_MARK: float = 10.0
SYNC_QUIET_SECONDS: float = 4.0

# Day 0 of spreadsheet serial dates (Lotus 1-2-3 leap-year bug included).
SERIAL_EPOCH_ISO: str = "1899-12-30"
SERIAL_MIN: int = 20000
SERIAL_MAX: int = 2958466


# ---------------------------------------------------------------------------
# Environment settings
# ---------------------------------------------------------------------------


def _env_float(name: str, low: float, high: float) -> Optional[float]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        logger.warning("[config] %s=%r is not a number; ignored", name, raw)
        return None
    if not low <= value <= high:
        logger.warning("[config] %s=%r is outside %g..%g; ignored", name, raw, low, high)
        return None
    return value


@dataclass
class Settings:
    store_path: str = "mufattish_store.json"
    seniority_bonus_months: Optional[float] = None
    log_level: str = "INFO"
    pdf_font_path: Optional[str] = None
    inspector_name: str = ""
    wilaya: str = ""
    district: str = ""

    @classmethod
    def from_env(cls) -> "Settings":
        """Read MUFATTISH_* variables; unset or invalid values keep defaults."""
        return cls(
            store_path=os.environ.get("MUFATTISH_STORE_PATH", "").strip() or cls.store_path,
            seniority_bonus_months=_env_float("MUFATTISH_SENIORITY_BONUS_MONTHS", 0.0, BONUS_MONTHS_MAX),
            log_level=os.environ.get("MUFATTISH_LOG_LEVEL", "").strip().upper() or cls.log_level,
            pdf_font_path=os.environ.get("MUFATTISH_PDF_FONT", "").strip() or None,
            inspector_name=os.environ.get("MUFATTISH_INSPECTOR_NAME", "").strip(),
            wilaya=os.environ.get("MUFATTISH_WILAYA", "").strip(),
            district=os.environ.get("MUFATTISH_DISTRICT", "").strip(),
        )

    def global_defaults(self) -> dict[str, str]:
        """Carry-forward fallbacks for the serializer."""
        return {
            "inspector_name": self.inspector_name,
            "wilaya": self.wilaya,
            "district": self.district,
        }
