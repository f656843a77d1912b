# =============================================================================
# babycare_core/data/__init__.py
# Record Types and Collections
# =============================================================================
"""
Typed records for the four collections.

Backup export/import lives in ``babycare_core.data.transfer`` and is
imported from there directly.
"""

from babycare_core.data.records import (
    CRY_LABELS,
    Collection,
    CollectionSnapshot,
    CryAnalysisRecord,
    DiaperRecord,
    DiaperType,
    FeedingRecord,
    FeedingType,
    PoopAssessment,
    PoopConsistency,
    PumpingRecord,
    PumpingSide,
    Record,
    format_timestamp,
    new_record_id,
    parse_records,
    parse_timestamp,
    sort_most_recent_first,
    utc_now,
)

__all__ = [
    "CRY_LABELS",
    "Collection",
    "CollectionSnapshot",
    "CryAnalysisRecord",
    "DiaperRecord",
    "DiaperType",
    "FeedingRecord",
    "FeedingType",
    "PoopAssessment",
    "PoopConsistency",
    "PumpingRecord",
    "PumpingSide",
    "Record",
    "format_timestamp",
    "new_record_id",
    "parse_records",
    "parse_timestamp",
    "sort_most_recent_first",
    "utc_now",
]
