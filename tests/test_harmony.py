"""
Tests for the harmony module

Run with: pytest tests/test_harmony.py -v
"""

import pytest

from walkbass.errors import InvalidInputError
from walkbass.rules.harmony import (
    Degree,
    DegreeSlot,
    base_chord_types,
    get_chord_type,
    get_note_index,
    is_chord_type_name,
    normalize_note,
    note_name,
    parse_chord_symbol,
    relative_asc_interval,
    relative_desc_interval,
)


class TestNotes:
    """Test note names and pitch-class arithmetic."""

    def test_normalize_flats_to_sharps(self):
        assert normalize_note("Db") == "C#"
        assert normalize_note("bb") == "A#"
        assert normalize_note("E#") == "F"

    def test_note_index(self):
        assert get_note_index("C") == 0
        assert get_note_index("Bb") == 10
        assert get_note_index("Cb") == 11

    def test_unknown_note_raises(self):
        with pytest.raises(InvalidInputError):
            normalize_note("H")
        with pytest.raises(InvalidInputError):
            normalize_note("C##")

    def test_note_name(self):
        assert note_name(40) == "E"
        assert note_name(36) == "C"

    def test_intervals(self):
        """Ascending and descending intervals add up to an octave."""
        assert relative_asc_interval(0, 5) == 5
        assert relative_desc_interval(0, 5) == 7
        assert relative_asc_interval(7, 0) == 5
        assert relative_asc_interval(3, 3) == 0
        for a in range(12):
            for b in range(12):
                if a != b:
                    assert relative_asc_interval(a, b) + relative_desc_interval(a, b) == 12


class TestChordTypes:
    """Test the chord type table."""

    def test_degrees(self):
        ct = get_chord_type("m7")
        assert ct.degrees == [Degree.ROOT, Degree.THIRD_FLAT, Degree.FIFTH, Degree.SEVENTH_FLAT]
        assert ct.nb_degrees == 4
        assert ct.relative_pitches(2) == [2, 5, 9, 0]

    def test_degree_pitch(self):
        assert Degree.THIRD.pitch == 4
        assert Degree.SEVENTH_FLAT.pitch == 10

    def test_families(self):
        assert get_chord_type("7").is_major()
        assert get_chord_type("m6").is_minor()
        assert get_chord_type("7sus").is_sus()
        assert get_chord_type("2").is_special_2_chord()
        assert get_chord_type("69").is_sixth()
        assert get_chord_type("M7").is_seventh_major()
        assert get_chord_type("m7b5").is_seventh_minor()

    def test_aliases(self):
        assert get_chord_type("min7").name == "m7"
        assert get_chord_type("maj7").name == "M7"
        assert get_chord_type("sus4").name == "sus"
        assert is_chord_type_name("7alt")
        assert not is_chord_type_name("xyz")

    def test_unknown_type_raises(self):
        with pytest.raises(InvalidInputError):
            get_chord_type("xyz")

    def test_sixth_equals_major_seventh(self):
        assert get_chord_type("6").equals_sixth_major_seventh(get_chord_type("M7"))
        assert get_chord_type("m6").equals_sixth_major_seventh(get_chord_type("mM7"))
        assert not get_chord_type("6").equals_sixth_major_seventh(get_chord_type("7"))
        assert get_chord_type("7").equals_sixth_major_seventh(get_chord_type("7"))

    def test_degree_at(self):
        ct = get_chord_type("2")
        assert ct.degree_at(DegreeSlot.THIRD_OR_FOURTH) is None
        assert ct.degree_at(DegreeSlot.EXTENSION1) == Degree.NINTH


class TestSimplification:
    """Test chord type simplification."""

    @pytest.mark.parametrize("name,nb,expected", [
        ("M13", 4, "M7"),
        ("9", 4, "7"),
        ("13", 4, "7"),
        ("69", 4, "6"),
        ("69", 3, ""),
        ("m2", 3, "m"),
        ("7", 4, "7"),
        ("", 3, ""),
    ])
    def test_simplified(self, name, nb, expected):
        assert get_chord_type(name).simplified(nb).name == expected

    def test_simplified_below_three_degrees_raises(self):
        with pytest.raises(InvalidInputError):
            get_chord_type("7").simplified(2)

    def test_base_chord_types(self):
        """Base types have at most 4 degrees and no duplicate."""
        types = base_chord_types()
        names = [ct.name for ct in types]
        assert len(names) == len(set(names))
        assert all(ct.nb_degrees <= 4 for ct in types)
        for name in ["", "m", "7", "m7", "sus", "M7"]:
            assert name in names
        assert "9" not in names


class TestChordSymbolParsing:
    """Test chord symbol parsing."""

    @pytest.mark.parametrize("text,expected", [
        ("C", (0, "", 0)),
        ("Ebm7", (3, "m7", 3)),
        ("F7/A", (5, "7", 9)),
        ("Bbmaj7", (10, "M7", 10)),
        ("Bb", (10, "", 10)),
        ("G7alt", (7, "7#9#5", 7)),
        ("D7b9", (2, "7b9", 2)),
        (" Am ", (9, "m", 9)),
    ])
    def test_parse(self, text, expected):
        assert parse_chord_symbol(text) == expected

    @pytest.mark.parametrize("text", ["", "H7", "Cxyz", "C/H", "7"])
    def test_invalid_symbol_raises(self, text):
        with pytest.raises(InvalidInputError):
            parse_chord_symbol(text)

    def test_unknown_type_error_names_the_symbol(self):
        with pytest.raises(InvalidInputError, match="'xyz' in chord symbol 'Ebxyz/G'"):
            parse_chord_symbol("Ebxyz/G")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
