# =============================================================================
# babycare_core/analysis/cry_analysis.py
# Cry Cause Distribution and AI Collaborator Interfaces
# =============================================================================
"""
Normalization of raw classifier scores into integer percentages.

The classifier and the stool-photo analyzer run outside this package; only
their interfaces are defined here.
"""

from __future__ import annotations
import math
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from babycare_core.data.records import CRY_LABELS, PoopAssessment
from babycare_core.errors import DataValidationError


def _score(label: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DataValidationError("Score must be a number", field=f"result.{label}", actual=repr(value))
    if not math.isfinite(value) or value < 0:
        raise DataValidationError(
            "Score must be a finite non-negative number", field=f"result.{label}", actual=repr(value)
        )
    return float(value)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_distribution(raw: Mapping[str, Any]) -> Dict[str, int]:
    """
    Turn raw per-label scores into integer percentages summing to 100.

    Each share is rounded half-up; the rounding remainder goes to the first
    label (in CRY_LABELS order) holding the largest rounded share. Missing
    labels count as 0. An all-zero input comes back as all zeros.

    Raises:
        DataValidationError: unknown label, or a negative / non-numeric score
    """
    if not isinstance(raw, Mapping):
        raise DataValidationError("Expected a mapping of label to score", field="result")

    unknown = [label for label in raw if label not in CRY_LABELS]
    if unknown:
        raise DataValidationError(
            "Unknown cry label", field="result", expected=", ".join(CRY_LABELS), actual=", ".join(unknown)
        )

    scores = {label: _score(label, raw.get(label, 0)) for label in CRY_LABELS}
    total = sum(scores.values())
    if total == 0:
        return {label: 0 for label in CRY_LABELS}

    normalized = {label: _round_half_up(score / total * 100) for label, score in scores.items()}

    diff = 100 - sum(normalized.values())
    if diff:
        max_label = CRY_LABELS[0]
        max_value = -1
        for label in CRY_LABELS:
            if normalized[label] > max_value:
                max_value = normalized[label]
                max_label = label
        normalized[max_label] += diff

    return normalized


def dominant_label(distribution: Mapping[str, int]) -> Optional[str]:
    """Label with the highest percentage (first one on ties), None if empty or all zero."""
    best = None
    best_value = 0
    for label in CRY_LABELS:
        value = distribution.get(label, 0)
        if value > best_value:
            best, best_value = label, value
    return best


# =============================================================================
# AI COLLABORATORS
# =============================================================================

class CryClassifier(ABC):
    """Scores a cry recording against the fixed cause labels."""

    @abstractmethod
    def classify(self, audio: bytes, mime_type: str = "audio/webm") -> Dict[str, float]:
        """Return raw, non-negative scores keyed by label."""
        pass


class StoolAnalyzer(ABC):
    """Judges a stool photo."""

    @abstractmethod
    def analyze(self, image: bytes, mime_type: str = "image/jpeg") -> PoopAssessment:
        pass
