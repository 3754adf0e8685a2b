#!/usr/bin/env python3
"""
Inspection Roster Brief
Roster statistics, inspection priorities and the promotion campaign list
Deterministic rules-based summary of one inspector's teacher table
"""

import hashlib
import logging
import sys
from datetime import date, datetime

import pandas as pd

from mufattish.config import DAYS_PER_YEAR, Settings
from mufattish.eligibility.candidates import promotion_candidates
from mufattish.eligibility.rules import PRIORITY_MEDIUM, PRIORITY_URGENT, inspection_priority, is_promotion_due
from mufattish.sync.csv_io import TabularImportError, read_table
from mufattish.sync.normalizer import parse_date
from mufattish.sync.parser import parse_rows

logger = logging.getLogger(__name__)

# ============================================================================
# CONFIGURATION
# ============================================================================

MARK_RANGES = [
    ("< 10", 0.0, 10.0),
    ("10 - 12", 10.0, 12.0),
    ("12 - 14", 12.0, 14.0),
    ("14 - 16", 14.0, 16.0),
    (">= 16", 16.0, 20.01),
]

SERVICE_GROUPS = [
    ("< 5 years", 0, 5),
    ("5 - 15 years", 5, 15),
    ("15 - 25 years", 15, 25),
    ("25+ years", 25, 100),
]

BANNER = "═" * 75

# ============================================================================
# ROSTER FRAME
# ============================================================================

def _years_of_service(recruitment_date, today):
    start = parse_date(recruitment_date)
    if start is None:
        return None
    return (today - start).days / DAYS_PER_YEAR


def build_roster_frame(teachers, reports_by_teacher_id, today, bonus_months=None):
    """One row per teacher with the derived eligibility columns"""
    records = []
    for t in teachers:
        report = reports_by_teacher_id.get(t.id)
        records.append({
            'id': t.id,
            'name': t.full_name,
            'status': t.status,
            'rank': t.rank,
            'degree': t.degree,
            'echelon': t.echelon,
            'last_mark': t.last_mark,
            'school': report.school if report is not None else '',
            'years_of_service': _years_of_service(t.recruitment_date, today),
            'priority': inspection_priority(t, report, today),
            'promotion_due': is_promotion_due(t, report, today, bonus_months),
        })
    columns = ['id', 'name', 'status', 'rank', 'degree', 'echelon', 'last_mark',
               'school', 'years_of_service', 'priority', 'promotion_due']
    return pd.DataFrame(records, columns=columns)

# ============================================================================
# STATISTICS CALCULATION
# ============================================================================

def _bucket(values, buckets):
    counts = {label: 0 for label, _, _ in buckets}
    for v in values:
        if v is None or pd.isna(v):
            continue
        for label, low, high in buckets:
            if low <= v < high:
                counts[label] += 1
                break
    return counts


def calculate_roster_stats(df):
    """Counts and distributions for the roster brief"""

    total = len(df)
    priority_counts = df['priority'].value_counts() if total else pd.Series(dtype=int)

    stats = {
        'total_teachers': total,
        'status_counts': df['status'].value_counts().to_dict() if total else {},
        'rank_counts': df['rank'].value_counts().to_dict() if total else {},
        'degree_counts': df['degree'].value_counts().to_dict() if total else {},
        'urgent_count': int(priority_counts.get(PRIORITY_URGENT, 0)),
        'medium_count': int(priority_counts.get(PRIORITY_MEDIUM, 0)),
        'promotion_due_count': int(df['promotion_due'].sum()) if total else 0,
        'average_mark': round(float(df['last_mark'].mean()), 2) if total else 0.0,
        'mark_ranges': _bucket(df['last_mark'].tolist(), MARK_RANGES),
        'service_groups': _bucket(df['years_of_service'].tolist(), SERVICE_GROUPS),
    }

    stats['urgent_pct'] = (stats['urgent_count'] / total * 100) if total > 0 else 0
    stats['medium_pct'] = (stats['medium_count'] / total * 100) if total > 0 else 0

    return stats

# ============================================================================
# BRIEF GENERATION
# ============================================================================

def generate_roster_brief(df, stats, candidates, campaign_year, inspector_name=""):
    """Plain-text brief with banner-delimited sections"""

    data_str = df.to_csv(index=False)
    data_hash = hashlib.md5(data_str.encode()).hexdigest()[:8]

    report = f"""
{BANNER}
INSPECTION ROSTER BRIEF
{BANNER}

Inspector: {inspector_name or '-'}
Campaign Year: {campaign_year}
Data Hash: {data_hash}
Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}

{BANNER}
ROSTER OVERVIEW
{BANNER}

Total Teachers: {stats['total_teachers']}
Average Last Mark: {stats['average_mark']}

"""

    for status, count in sorted(stats['status_counts'].items()):
        report += f"Status {status}: {count}\n"

    report += f"""
{BANNER}
INSPECTION PRIORITY
{BANNER}

Urgent (never inspected or 3+ years): {stats['urgent_count']} ({stats['urgent_pct']:.1f}%)
Medium (mark below grade average): {stats['medium_count']} ({stats['medium_pct']:.1f}%)

"""

    urgent = df[df['priority'] == PRIORITY_URGENT]
    for _, row in urgent.iterrows():
        report += f"  ! {row['name']} (echelon {row['echelon'] or '-'}, mark {row['last_mark']:g})\n"

    report += f"""
{BANNER}
MARK DISTRIBUTION
{BANNER}

"""
    for label, count in stats['mark_ranges'].items():
        report += f"{label}: {count}\n"

    report += f"""
{BANNER}
YEARS OF SERVICE
{BANNER}

"""
    for label, count in stats['service_groups'].items():
        report += f"{label}: {count}\n"

    report += f"""
{BANNER}
PROMOTION CAMPAIGN {campaign_year}
{BANNER}

Candidates: {len(candidates)}

"""
    for i, c in enumerate(candidates, 1):
        report += (
            f"{i}. {c.teacher.full_name} | {c.school_name} | echelon {c.teacher.echelon} "
            f"| mark {c.teacher.last_mark:g} / ceiling {c.max_allowed_mark:g} (+{c.mark_gap:.2f})\n"
        )

    report += f"\n{BANNER}\n"

    return report


def brief_for_table(rows, campaign_year=None, settings=None, today=None):
    """Parse a table and return (frame, stats, candidates, brief text)"""
    settings = settings or Settings()
    today = today or date.today()
    campaign_year = campaign_year or today.year

    parsed = parse_rows(rows)
    df = build_roster_frame(parsed.teachers, parsed.reports_by_teacher_id, today, settings.seniority_bonus_months)
    stats = calculate_roster_stats(df)
    candidates = promotion_candidates(
        parsed.teachers, parsed.reports_by_teacher_id, campaign_year, settings.seniority_bonus_months
    )
    brief = generate_roster_brief(df, stats, candidates, campaign_year, settings.inspector_name)
    return df, stats, candidates, brief

# ============================================================================
# MAIN
# ============================================================================

def main(argv=None):
    argv = list(sys.argv[1:] if argv is None else argv)
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

    if not argv:
        print("Usage: python inspection_brief.py <table.csv|table.xlsx> [campaign_year]")
        return 2

    campaign_year = None
    if len(argv) > 1:
        try:
            campaign_year = int(argv[1])
        except ValueError:
            print(f"Campaign year must be a number, got {argv[1]!r}")
            return 2

    try:
        rows = read_table(argv[0])
    except TabularImportError as e:
        print(e)
        return 1

    _, _, _, brief = brief_for_table(rows, campaign_year, settings)
    print(brief)
    return 0


if __name__ == "__main__":
    sys.exit(main())
