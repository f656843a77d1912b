# =============================================================================
# babycare_core/analysis/feeding_logic.py
# Feeding Schedule Helpers and Chart Data
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Union

import pandas as pd

from babycare_core.data.records import FeedingRecord, PumpingRecord, Record, parse_timestamp


@dataclass(frozen=True)
class DailyGuideline:
    """Typical intake for an age bracket, as shown next to the daily total."""
    quantity: str
    frequency: str
    total: str


# (upper age bound in months, guideline); the last entry has no bound
_GUIDELINES = [
    (1, DailyGuideline("60-90 ml", "every 2-3 hours", "480-720 ml")),
    (2, DailyGuideline("90-120 ml", "every 3-4 hours", "720-960 ml")),
    (4, DailyGuideline("120-180 ml", "every 3-4 hours", "960-1440 ml")),
    (6, DailyGuideline("180-240 ml", "every 4-5 hours", "1080-1440 ml")),
    (None, DailyGuideline("240 ml", "every 4-6 hours", "Up to 1000 ml+")),
]


def _as_date(value: Union[str, date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_timestamp(value, "birthDate").date()


def age_in_months(birth_date: Union[str, date, datetime], today: Optional[date] = None) -> int:
    """Whole calendar months elapsed since birth."""
    born = _as_date(birth_date)
    today = _as_date(today) if today is not None else date.today()
    months = (today.year - born.year) * 12 + (today.month - born.month)
    if today.day < born.day:
        months -= 1
    return months


def feeding_interval(age_months: int) -> timedelta:
    if age_months < 1:
        return timedelta(hours=2.5)
    if age_months < 4:
        return timedelta(hours=3.5)
    return timedelta(hours=4)


def predict_next_feeding(feedings: Iterable[FeedingRecord], age_months: int) -> Optional[datetime]:
    """Most recent feeding plus the age-dependent interval; None without feedings."""
    feedings = list(feedings)
    if not feedings:
        return None
    last = max(f.timestamp for f in feedings)
    return last + feeding_interval(age_months)


def daily_guideline(age_months: int) -> DailyGuideline:
    for upper, guideline in _GUIDELINES:
        if upper is None or age_months < upper:
            return guideline
    return _GUIDELINES[-1][1]


def total_volume_today(feedings: Iterable[FeedingRecord], now: Optional[datetime] = None) -> int:
    """Sum of feeding quantities since local midnight of ``now``."""
    if now is None:
        now = datetime.now().astimezone()
    elif now.tzinfo is None:
        now = now.astimezone()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return sum(f.quantity_ml for f in feedings if f.timestamp >= midnight)


# =============================================================================
# PANDAS HELPERS
# =============================================================================

def _volume(record: Record) -> int:
    if isinstance(record, PumpingRecord):
        return record.volume_ml
    return record.quantity_ml


def feedings_frame(records: Iterable[FeedingRecord]) -> pd.DataFrame:
    """
    Feedings as a DataFrame for history tables.

    Columns: id, time (UTC), type, quantity; most recent first.
    """
    rows = [
        {"id": r.id, "time": r.timestamp, "type": r.type.value, "quantity": r.quantity_ml}
        for r in records
    ]
    df = pd.DataFrame(rows, columns=["id", "time", "type", "quantity"])
    if df.empty:
        return df
    df["time"] = pd.to_datetime(df["time"], utc=True)
    return df.sort_values("time", ascending=False).reset_index(drop=True)


def daily_volume_totals(records: Iterable[Union[FeedingRecord, PumpingRecord]], tz: Optional[str] = None) -> pd.DataFrame:
    """
    Per-day volume totals for charts (feedings or pumping sessions).

    Returns:
        DataFrame with columns date, total_ml, count; oldest day first
    """
    records: List = list(records)
    if not records:
        return pd.DataFrame(columns=["date", "total_ml", "count"])

    df = pd.DataFrame({
        "time": pd.to_datetime([r.timestamp for r in records], utc=True),
        "volume": [_volume(r) for r in records],
    })
    if tz:
        df["time"] = df["time"].dt.tz_convert(tz)
    df["date"] = df["time"].dt.date

    totals = (
        df.groupby("date")["volume"]
        .agg(total_ml="sum", count="count")
        .reset_index()
        .sort_values("date")
        .reset_index(drop=True)
    )
    return totals
