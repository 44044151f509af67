"""
Tests for chord slices (walkbass/rules/chord_slice.py)

Notes are one per beat unless told otherwise:
    C2=36 D2=38 E2=40 F2=41 F#2=42 G2=43 A2=45

Run with: pytest tests/test_chord_slice.py -v
"""

import pytest

from walkbass.data.schema import ChordSymbol, NoteEvent, SizedPhrase
from walkbass.errors import InvalidInputError
from walkbass.rules.chord_slice import (
    ChordSlice,
    DegreeCompatibility,
    get_incompatible_degrees,
    harmonic_compatibility,
    simplify_chord_sequence,
)
from walkbass.rules.harmony import Degree, get_chord_type
from tests.builders import make_chords, make_phrase


def slice_of(chord, pitches, target_note=None):
    return ChordSlice(make_chords([(0, chord)], 1), make_phrase(pitches), 0, target_note)


def score(chord, pitches, target_chord, target_note=None):
    return slice_of(chord, pitches, target_note).harmonic_compatibility_score(ChordSymbol.from_string(target_chord))


class TestIncompatibleDegrees:
    """Test the incompatible degrees table."""

    def test_ninth_depends_on_chord_family(self):
        assert get_incompatible_degrees(get_chord_type("9"), Degree.NINTH) == [Degree.NINTH_FLAT, Degree.NINTH_SHARP]
        assert get_incompatible_degrees(get_chord_type("m9"), Degree.NINTH) == [Degree.NINTH_FLAT]
        assert get_incompatible_degrees(get_chord_type("2"), Degree.NINTH) == [
            Degree.NINTH_FLAT, Degree.THIRD_FLAT, Degree.THIRD]
        assert get_incompatible_degrees(get_chord_type("9sus"), Degree.NINTH) == [
            Degree.NINTH_FLAT, Degree.THIRD_FLAT]

    def test_root_has_no_incompatible_degree(self):
        assert get_incompatible_degrees(get_chord_type("7"), Degree.ROOT) == []

    def test_fourth_only_matters_for_sus_chords(self):
        assert get_incompatible_degrees(get_chord_type("m11"), Degree.FOURTH_OR_ELEVENTH) == []
        assert Degree.THIRD in get_incompatible_degrees(get_chord_type("sus"), Degree.FOURTH_OR_ELEVENTH)

    def test_sixth(self):
        assert get_incompatible_degrees(get_chord_type("6"), Degree.SIXTH_OR_THIRTEENTH) == [
            Degree.FIFTH_SHARP, Degree.SEVENTH_FLAT]
        assert get_incompatible_degrees(get_chord_type("13"), Degree.SIXTH_OR_THIRTEENTH) == [Degree.FIFTH_SHARP]


class TestHarmonicCompatibilityScore:
    """Test the slot-level compatibility score."""

    def test_same_chord_type(self):
        assert score("C", [36, 38, 40, 43], "C") == 100

    def test_sixth_and_major_seventh_are_equal(self):
        assert score("C6", [36, 40, 43, 45], "CM7") == 100

    def test_major_notes_on_minor_chord(self):
        assert score("C", [36, 38, 40, 43], "Cm") == 0

    def test_no_third_on_minor_chord(self):
        assert score("C", [36, 38, 36, 43], "Cm") == 90

    def test_richer_chord_is_incompatible(self):
        assert score("C7", [36, 40, 43, 46], "C") == 0

    def test_unused_extensions_cost_points(self):
        assert score("C", [36, 40, 43, 36], "C9") == 80
        assert score("C", [36, 38, 40, 43], "C9") == 90

    def test_unused_root_costs_more(self):
        assert score("C", [40, 43, 40, 43], "C7") == 75

    def test_approach_note_ignored_before_target(self):
        """F# right before a G target note is an approach note, not a b5."""
        pitches = [36, 40, 43, 42]
        assert score("C", pitches, "C7") == 0
        assert score("C", pitches, "C7", NoteEvent(pitch=43, duration=1.0)) == 90

    def test_long_degree_notes_outweigh_passing_notes(self):
        sp = SizedPhrase(bar_count=1, notes=(NoteEvent(pitch=36, duration=0.9, position=0),
                                             NoteEvent(pitch=40, duration=1.9, position=1),
                                             NoteEvent(pitch=39, duration=0.4, position=3)))
        sl = ChordSlice(make_chords([(0, "C")], 1), sp, 0)
        ct = get_chord_type("")
        assert sl.get_degree_compatibility(sl.notes, ct, Degree.THIRD) == DegreeCompatibility.COMPATIBLE_USE
        assert sl.get_degree_compatibility(sl.notes, ct, Degree.FIFTH) == DegreeCompatibility.COMPATIBLE_NO_USE

    def test_invalid_slot_index(self):
        with pytest.raises(InvalidInputError):
            ChordSlice(make_chords([(0, "C")], 1), make_phrase([36]), 1)


class TestSliceBoundaries:
    """Test which notes belong to a slot."""

    def test_notes_split_by_slot(self):
        seq = make_chords([(0, "C"), (2, "F")], 1)
        sp = make_phrase([36, 40, 41, 45])
        assert [n.pitch for n in ChordSlice(seq, sp, 0).notes] == [36, 40]
        assert [n.pitch for n in ChordSlice(seq, sp, 1).notes] == [41, 45]

    def test_early_note_belongs_to_next_slot(self):
        seq = make_chords([(0, "C"), (2, "F")], 1)
        sp = make_phrase([36, 40, 41, 45], positions=[0, 1, 1.9, 3])
        assert [n.pitch for n in ChordSlice(seq, sp, 0).notes] == [36, 40]
        assert [n.pitch for n in ChordSlice(seq, sp, 1).notes] == [41, 45]

    def test_target_note_of_inner_slot_is_next_note(self):
        seq = make_chords([(0, "C"), (2, "F")], 1)
        sp = make_phrase([36, 40, 41, 45])
        assert ChordSlice(seq, sp, 0).target_note.pitch == 41
        assert ChordSlice(seq, sp, 1, NoteEvent(pitch=43, duration=1)).target_note.pitch == 43

    def test_ghost_notes_ignored(self):
        sl = slice_of("C", [36, 40, 43, 45])
        assert len(sl.notes_no_ghost) == 4
        ghost = ChordSlice(make_chords([(0, "C")], 1),
                           make_phrase([36, 37], positions=[0, 1], duration=0.1), 0)
        assert ghost.notes_no_ghost == []


class TestSimplifiedChord:
    """Test chord simplification from the notes."""

    def test_unused_extensions_removed(self):
        assert slice_of("C69", [36, 40, 43, 40]).simplified_chord() == ChordSymbol.from_string("C")

    def test_used_extension_kept(self):
        assert slice_of("C69", [36, 40, 43, 45]).simplified_chord() == ChordSymbol.from_string("C6")

    def test_simplification_keeps_bass(self):
        assert str(slice_of("C9/E", [40, 36, 43, 36]).simplified_chord()) == "C/E"

    def test_inconsistent_fifth_blocks_simplification(self):
        """D7b9 with D C Bb A: the Bb (#5) is as long as the A, the chord is kept."""
        assert str(slice_of("D7b9", [38, 36, 34, 33]).simplified_chord()) == "D7b9"

    def test_triad_unchanged(self):
        sl = slice_of("Cm", [36, 39, 43, 39])
        assert sl.simplified_chord() is sl.chord


class TestSequenceFunctions:
    """Test the sequence-level helpers."""

    def test_harmonic_compatibility_mean(self):
        seq = make_chords([(0, "C"), (2, "F")], 1)
        sp = make_phrase([36, 40, 41, 45])
        dest = make_chords([(0, "C"), (2, "F6")], 1)
        assert harmonic_compatibility(seq, sp, None, dest) == pytest.approx(90.0)

    def test_slot_count_mismatch(self):
        seq = make_chords([(0, "C"), (2, "F")], 1)
        assert harmonic_compatibility(seq, make_phrase([36, 40, 41, 45]), None, make_chords([(0, "C")], 1)) == 0

    def test_one_incompatible_slot(self):
        seq = make_chords([(0, "C"), (2, "F")], 1)
        dest = make_chords([(0, "Cm"), (2, "F")], 1)
        assert harmonic_compatibility(seq, make_phrase([36, 40, 41, 45]), None, dest) == 0

    def test_simplify_chord_sequence(self):
        seq = make_chords([(0, "C9"), (2, "F")], 1)
        res = simplify_chord_sequence(seq, make_phrase([36, 40, 41, 45]), None)
        assert str(res) == "[C@0 F@2]"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
