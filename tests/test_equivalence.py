"""
Tests for phrase equivalence (walkbass/rules/equivalence.py)

Run with: pytest tests/test_equivalence.py -v
"""

import pytest

from walkbass.rules.equivalence import are_equivalent
from tests.builders import make_phrase


class TestEquivalence:
    """Test redundancy detection between phrases."""

    def test_transposed_phrase_is_equivalent(self):
        a = make_phrase([36, 40, 43, 45])
        b = make_phrase([41, 45, 48, 50])
        assert are_equivalent(a, b, check_duration=True)
        assert are_equivalent(b, a, check_duration=True)

    def test_different_note_count(self):
        assert not are_equivalent(make_phrase([36, 40, 43]), make_phrase([36, 40, 43, 45]), check_duration=False)

    def test_different_interval(self):
        assert not are_equivalent(make_phrase([36, 40, 43, 45]), make_phrase([36, 40, 43, 44]), check_duration=False)

    def test_small_position_shift_is_ignored(self):
        a = make_phrase([36, 40, 43, 45])
        b = make_phrase([36, 40, 43, 45], positions=[0, 1.1, 2, 2.9])
        assert are_equivalent(a, b, check_duration=True)

    def test_large_position_shift(self):
        a = make_phrase([36, 40, 43, 45])
        b = make_phrase([36, 40, 43, 45], positions=[0, 1.3, 2, 3])
        assert not are_equivalent(a, b, check_duration=False)

    def test_duration_check(self):
        a = make_phrase([36, 40, 43, 45], duration=0.8)
        close = make_phrase([36, 40, 43, 45], duration=0.6)
        far = make_phrase([36, 40, 43, 45], duration=0.3)
        assert are_equivalent(a, close, check_duration=True)
        assert not are_equivalent(a, far, check_duration=True)
        assert are_equivalent(a, far, check_duration=False)

    def test_empty_phrases(self):
        assert are_equivalent(make_phrase([]), make_phrase([]), check_duration=True)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
