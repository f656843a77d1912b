# =============================================================================
# babycare_core/analysis/__init__.py
# Cry Distribution and Feeding Helpers
# =============================================================================

from babycare_core.analysis.cry_analysis import (
    CryClassifier,
    StoolAnalyzer,
    dominant_label,
    normalize_distribution,
)
from babycare_core.analysis.feeding_logic import (
    DailyGuideline,
    age_in_months,
    daily_guideline,
    daily_volume_totals,
    feeding_interval,
    feedings_frame,
    predict_next_feeding,
    total_volume_today,
)

__all__ = [
    "CryClassifier",
    "StoolAnalyzer",
    "dominant_label",
    "normalize_distribution",
    "DailyGuideline",
    "age_in_months",
    "daily_guideline",
    "daily_volume_totals",
    "feeding_interval",
    "feedings_frame",
    "predict_next_feeding",
    "total_volume_today",
]
