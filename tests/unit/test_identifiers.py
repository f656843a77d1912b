# =============================================================================
# tests/unit/test_identifiers.py
# Unit Tests for Owner Identifier Generation
# =============================================================================

import pytest

from babycare_core.backend.identifiers import (
    OWNER_ID_ALPHABET,
    OWNER_ID_LENGTH,
    generate_owner_id,
    generate_unique_owner_id,
    is_valid_owner_id,
    normalize_owner_id,
)
from babycare_core.errors import BackendError


class TestGenerateOwnerId:
    """Test identifier shape"""

    def test_alphabet_excludes_confusable_characters(self):
        assert len(OWNER_ID_ALPHABET) == 32
        for ch in "0O1I":
            assert ch not in OWNER_ID_ALPHABET

    def test_generated_ids_use_alphabet_only(self):
        for _ in range(500):
            owner_id = generate_owner_id()
            assert len(owner_id) == OWNER_ID_LENGTH
            assert set(owner_id) <= set(OWNER_ID_ALPHABET)

    def test_custom_choice(self):
        assert generate_owner_id(choice=lambda alphabet: alphabet[0]) == "AAAAAA"


class TestGenerateUniqueOwnerId:
    """Test collision handling"""

    def test_regenerates_on_collision(self):
        calls = []

        def exists(candidate):
            calls.append(candidate)
            return len(calls) < 3

        owner_id = generate_unique_owner_id(exists)
        assert len(calls) == 3
        assert owner_id == calls[-1]

    def test_gives_up_after_max_attempts(self):
        with pytest.raises(BackendError):
            generate_unique_owner_id(lambda candidate: True, max_attempts=4)


class TestNormalizeOwnerId:
    """Test user-typed identifiers"""

    def test_strip_and_upper(self):
        assert normalize_owner_id("  abc234 ") == "ABC234"

    def test_validity(self):
        assert is_valid_owner_id("ABC234")
        assert not is_valid_owner_id("ABC10O")
        assert not is_valid_owner_id("ABC23")
        assert not is_valid_owner_id(None)
