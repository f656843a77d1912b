# =============================================================================
# tests/unit/test_cry_analysis.py
# Unit Tests for Cry Distribution Normalization
# =============================================================================

import random

import pytest

from babycare_core.analysis.cry_analysis import dominant_label, normalize_distribution
from babycare_core.data.records import CRY_LABELS
from babycare_core.errors import DataValidationError


class TestNormalizeDistribution:
    """Test percentage normalization"""

    def test_already_normalized_input_unchanged(self):
        raw = {"lapar": 70, "mengantuk": 15, "sendawa": 10, "perutKembung": 3, "tidakNyaman": 2}
        assert normalize_distribution(raw) == raw

    def test_remainder_goes_to_first_largest_label(self):
        raw = {"lapar": 1, "mengantuk": 1, "sendawa": 1, "perutKembung": 0, "tidakNyaman": 0}
        result = normalize_distribution(raw)

        assert result == {"lapar": 34, "mengantuk": 33, "sendawa": 33, "perutKembung": 0, "tidakNyaman": 0}

    def test_random_inputs_sum_to_100(self):
        rng = random.Random(7)
        for _ in range(300):
            raw = {label: rng.choice([0, rng.random() * 10, rng.randint(0, 50)]) for label in CRY_LABELS}
            if not any(raw.values()):
                continue
            result = normalize_distribution(raw)

            assert sum(result.values()) == 100
            assert all(isinstance(v, int) and v >= 0 for v in result.values())

    def test_half_up_rounding(self):
        # 1/8 = 12.5% rounds up to 13
        raw = {"lapar": 7, "mengantuk": 1}
        result = normalize_distribution(raw)

        assert result["mengantuk"] == 13
        assert result["lapar"] == 87

    def test_missing_labels_count_as_zero(self):
        result = normalize_distribution({"sendawa": 0.4})
        assert result == {"lapar": 0, "mengantuk": 0, "sendawa": 100, "perutKembung": 0, "tidakNyaman": 0}

    def test_all_zero_returned_as_zeros(self):
        result = normalize_distribution({label: 0 for label in CRY_LABELS})
        assert result == {label: 0 for label in CRY_LABELS}

    @pytest.mark.parametrize("raw", [
        {"lapar": -1, "mengantuk": 5},
        {"lapar": "many"},
        {"lapar": True},
        {"bosan": 3},
        {"lapar": float("nan")},
    ])
    def test_invalid_input_rejected(self, raw):
        with pytest.raises(DataValidationError):
            normalize_distribution(raw)


class TestDominantLabel:
    """Test dominant label selection"""

    def test_first_label_wins_ties(self):
        assert dominant_label({"lapar": 40, "mengantuk": 40, "sendawa": 20}) == "lapar"

    def test_empty_distribution(self):
        assert dominant_label({}) is None
