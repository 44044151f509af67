"""
Tests for RootProfile (walkbass/rules/root_profile.py)

Run with: pytest tests/test_root_profile.py -v
"""

import pytest
from pydantic import ValidationError

from walkbass.data.schema import ChordSequence
from walkbass.errors import InvalidInputError
from walkbass.rules.root_profile import RootProfile
from tests.builders import make_chords


class TestRootProfile:
    """Test the harmonic fingerprint of chord sequences."""

    def test_of(self):
        profile = RootProfile.of(make_chords([(0, "C"), (4, "F")], 2))
        assert profile.bar_count == 2
        assert profile.onset_beats == (0.0, 4.0)
        assert profile.ascending_intervals == (5,)

    def test_single_chord(self):
        profile = RootProfile.of(make_chords([(0, "Am7")], 1))
        assert profile.onset_beats == (0.0,)
        assert profile.ascending_intervals == ()

    def test_descending_root_motion_is_stored_ascending(self):
        profile = RootProfile.of(make_chords([(0, "G7"), (2, "C")], 1))
        assert profile.ascending_intervals == (5,)

    def test_chord_types_are_ignored(self):
        a = RootProfile.of(make_chords([(0, "C"), (4, "F")], 2))
        b = RootProfile.of(make_chords([(0, "Ebm7"), (4, "Ab7")], 2))
        assert a == b
        assert hash(a) == hash(b)

    @pytest.mark.parametrize("t", range(12))
    def test_transposition_invariance(self, t):
        seq = make_chords([(0, "Dm7"), (2, "G7"), (4, "CM7"), (7, "A7")], 2)
        assert RootProfile.of(seq.transposed(t)) == RootProfile.of(seq)

    def test_different_onsets_differ(self):
        a = RootProfile.of(make_chords([(0, "C"), (2, "F")], 1))
        b = RootProfile.of(make_chords([(0, "C"), (3, "F")], 1))
        assert a != b

    def test_usable_as_dict_key(self):
        index = {RootProfile.of(make_chords([(0, "C")], 1)): "one-chord"}
        assert index[RootProfile.of(make_chords([(0, "Bb7")], 1))] == "one-chord"

    def test_empty_sequence_raises(self):
        with pytest.raises(InvalidInputError):
            RootProfile.of(ChordSequence(bar_count=1))

    def test_too_long_sequence_raises(self):
        with pytest.raises(InvalidInputError):
            RootProfile.of(make_chords([(0, "C")], 5))


class TestRootProfileValidation:
    """Test direct construction."""

    def test_interval_count_must_match_onsets(self):
        with pytest.raises(ValidationError):
            RootProfile(bar_count=1, onset_beats=(0.0, 2.0), ascending_intervals=())

    def test_onsets_must_increase(self):
        with pytest.raises(ValidationError):
            RootProfile(bar_count=1, onset_beats=(2.0, 0.0), ascending_intervals=(5,))

    def test_interval_range(self):
        with pytest.raises(ValidationError):
            RootProfile(bar_count=1, onset_beats=(0.0, 2.0), ascending_intervals=(12,))

    def test_bar_count_range(self):
        with pytest.raises(ValidationError):
            RootProfile(bar_count=5, onset_beats=(0.0,))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
