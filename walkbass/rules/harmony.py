"""
Harmony Module - Minimal Chord Model for Phrase Matching

This module encodes the music theory the phrase engine needs:
    1. Note names and pitch-class arithmetic
    2. Chord degrees and a table of common chord types
    3. Chord symbol parsing ("Cm7/G" -> root, type, bass)
    4. Chord type simplification (C9 -> C7 when only 4 degrees are kept)

It is not a general-purpose harmony library: chord types only carry the
degrees required to judge whether a bass phrase fits a chord.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Tuple
import re

from walkbass.errors import InvalidInputError


# =============================================================================
# CONSTANTS: Notes
# =============================================================================

CHROMATIC_SCALE = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Enharmonic spellings mapped to their sharp form
ENHARMONICS = {
    "Db": "C#",
    "Eb": "D#",
    "Gb": "F#",
    "Ab": "G#",
    "Bb": "A#",
    "Cb": "B",
    "Fb": "E",
    "E#": "F",
    "B#": "C",
}

CHORD_SYMBOL_REGEX = re.compile(r'^([A-Ga-g][#b]?)([^/]*)(?:/([A-Ga-g][#b]?))?$')


# =============================================================================
# CORE FUNCTIONS: Notes
# =============================================================================

def normalize_note(note: str) -> str:
    """Convert a note name to its standard sharp form."""
    if len(note) == 1:
        note = note.upper()
    elif len(note) == 2:
        note = note[0].upper() + note[1].lower()
    else:
        raise InvalidInputError(f"Invalid note format: '{note}'")

    note = ENHARMONICS.get(note, note)

    if note not in CHROMATIC_SCALE:
        raise InvalidInputError(f"Unknown note: '{note}'. Valid notes are: {CHROMATIC_SCALE}")

    return note


def get_note_index(note: str) -> int:
    """Get the index of a note in the chromatic scale (0-11)."""
    return CHROMATIC_SCALE.index(normalize_note(note))


def note_name(pitch: int) -> str:
    """Name of the pitch class of a pitch, e.g. 40 -> 'E'."""
    return CHROMATIC_SCALE[pitch % 12]


def relative_asc_interval(from_pitch: int, to_pitch: int) -> int:
    """Ascending semitones from one pitch class to another (0-11)."""
    return (to_pitch - from_pitch) % 12


def relative_desc_interval(from_pitch: int, to_pitch: int) -> int:
    """Descending semitones from one pitch class to another (0-11)."""
    return (from_pitch - to_pitch) % 12


# =============================================================================
# DEGREES
# =============================================================================

class Degree(Enum):
    """A chord degree. Values are display labels, see DEGREE_PITCHES for offsets."""
    ROOT = "1"
    NINTH_FLAT = "b9"
    NINTH = "9"
    NINTH_SHARP = "#9"
    THIRD_FLAT = "b3"
    THIRD = "3"
    FOURTH_OR_ELEVENTH = "11"
    ELEVENTH_SHARP = "#11"
    FIFTH_FLAT = "b5"
    FIFTH = "5"
    FIFTH_SHARP = "#5"
    THIRTEENTH_FLAT = "b13"
    SIXTH_OR_THIRTEENTH = "13"
    SEVENTH_FLAT = "b7"
    SEVENTH = "7"

    @property
    def pitch(self) -> int:
        """Semitones above the chord root."""
        return DEGREE_PITCHES[self]


DEGREE_PITCHES: Dict[Degree, int] = {
    Degree.ROOT: 0,
    Degree.NINTH_FLAT: 1,
    Degree.NINTH: 2,
    Degree.NINTH_SHARP: 3,
    Degree.THIRD_FLAT: 3,
    Degree.THIRD: 4,
    Degree.FOURTH_OR_ELEVENTH: 5,
    Degree.ELEVENTH_SHARP: 6,
    Degree.FIFTH_FLAT: 6,
    Degree.FIFTH: 7,
    Degree.FIFTH_SHARP: 8,
    Degree.THIRTEENTH_FLAT: 8,
    Degree.SIXTH_OR_THIRTEENTH: 9,
    Degree.SEVENTH_FLAT: 10,
    Degree.SEVENTH: 11,
}


class DegreeSlot(IntEnum):
    """Position of a degree in a chord type, in simplification order."""
    ROOT = 0
    THIRD_OR_FOURTH = 1
    FIFTH = 2
    SIXTH_OR_SEVENTH = 3
    EXTENSION1 = 4
    EXTENSION2 = 5
    EXTENSION3 = 6


# =============================================================================
# CHORD TYPES
# =============================================================================

@dataclass(frozen=True)
class ChordType:
    """
    A chord type such as "m7" or "7b9".

    Attributes:
        name: Canonical name used in chord symbols (C + "m7")
        family: major, seventh, minor, diminished or sus
        slots: One entry per DegreeSlot, None when the slot is empty
    """
    name: str
    family: str
    slots: Tuple[Optional[Degree], ...]

    @property
    def degrees(self) -> List[Degree]:
        return [d for d in self.slots if d is not None]

    @property
    def nb_degrees(self) -> int:
        return len(self.degrees)

    def degree_at(self, slot: DegreeSlot) -> Optional[Degree]:
        return self.slots[slot]

    def relative_pitches(self, root: int) -> List[int]:
        """Pitch classes of the chord built on root."""
        return [(root + d.pitch) % 12 for d in self.degrees]

    def is_major(self) -> bool:
        return self.slots[DegreeSlot.THIRD_OR_FOURTH] == Degree.THIRD

    def is_minor(self) -> bool:
        return self.slots[DegreeSlot.THIRD_OR_FOURTH] == Degree.THIRD_FLAT

    def is_sus(self) -> bool:
        return not self.is_major() and not self.is_minor()

    def is_sixth(self) -> bool:
        return self.slots[DegreeSlot.SIXTH_OR_SEVENTH] == Degree.SIXTH_OR_THIRTEENTH

    def is_seventh_major(self) -> bool:
        return self.slots[DegreeSlot.SIXTH_OR_SEVENTH] == Degree.SEVENTH

    def is_seventh_minor(self) -> bool:
        return self.slots[DegreeSlot.SIXTH_OR_SEVENTH] == Degree.SEVENTH_FLAT

    def is_special_2_chord(self) -> bool:
        """True for C2-like chords: 9th present but no 3rd or 4th."""
        return (self.slots[DegreeSlot.THIRD_OR_FOURTH] is None
                and self.slots[DegreeSlot.EXTENSION1] == Degree.NINTH)

    def equals_sixth_major_seventh(self, other: "ChordType") -> bool:
        """Compare chord types considering 6 and 7M equivalent (C6 == CM7, Cm69 == CmM9)."""
        return _sixth_as_seventh(self.slots) == _sixth_as_seventh(other.slots)

    def simplified(self, nb_max_degrees: int) -> "ChordType":
        """
        Get a simplified ChordType by keeping only the first nb_max_degrees degrees.

        Returns self if no known chord type matches the reduced degrees.
        """
        if nb_max_degrees < 3:
            raise InvalidInputError(f"nb_max_degrees must be >= 3. Got: {nb_max_degrees}")
        if self.nb_degrees <= nb_max_degrees:
            return self

        kept = 0
        reduced = []
        for d in self.slots:
            if d is not None and kept < nb_max_degrees:
                reduced.append(d)
                kept += 1
            else:
                reduced.append(None)
        return _CHORD_TYPES_BY_SLOTS.get(tuple(reduced), self)

    def __str__(self) -> str:
        return self.name


def _sixth_as_seventh(slots: Tuple[Optional[Degree], ...]) -> Tuple[Optional[Degree], ...]:
    if slots[DegreeSlot.SIXTH_OR_SEVENTH] != Degree.SIXTH_OR_THIRTEENTH:
        return slots
    res = list(slots)
    res[DegreeSlot.SIXTH_OR_SEVENTH] = Degree.SEVENTH
    return tuple(res)


def _ct(name: str, family: str, third, fifth, six_seven=None, ext1=None, ext2=None, ext3=None) -> ChordType:
    return ChordType(name, family, (Degree.ROOT, third, fifth, six_seven, ext1, ext2, ext3))


D = Degree

# Canonical chord types, grouped by family
CHORD_TYPES: List[ChordType] = [
    # MAJOR
    _ct("", "major", D.THIRD, D.FIFTH),
    _ct("+", "major", D.THIRD, D.FIFTH_SHARP),
    _ct("6", "major", D.THIRD, D.FIFTH, D.SIXTH_OR_THIRTEENTH),
    _ct("69", "major", D.THIRD, D.FIFTH, D.SIXTH_OR_THIRTEENTH, D.NINTH),
    _ct("M7", "major", D.THIRD, D.FIFTH, D.SEVENTH),
    _ct("M9", "major", D.THIRD, D.FIFTH, D.SEVENTH, D.NINTH),
    _ct("M13", "major", D.THIRD, D.FIFTH, D.SEVENTH, D.NINTH, None, D.SIXTH_OR_THIRTEENTH),
    _ct("M7#5", "major", D.THIRD, D.FIFTH_SHARP, D.SEVENTH),
    _ct("M7#11", "major", D.THIRD, D.FIFTH, D.SEVENTH, None, D.ELEVENTH_SHARP),
    # SEVENTH
    _ct("7", "seventh", D.THIRD, D.FIFTH, D.SEVENTH_FLAT),
    _ct("9", "seventh", D.THIRD, D.FIFTH, D.SEVENTH_FLAT, D.NINTH),
    _ct("13", "seventh", D.THIRD, D.FIFTH, D.SEVENTH_FLAT, None, None, D.SIXTH_OR_THIRTEENTH),
    _ct("7b5", "seventh", D.THIRD, D.FIFTH_FLAT, D.SEVENTH_FLAT),
    _ct("7#5", "seventh", D.THIRD, D.FIFTH_SHARP, D.SEVENTH_FLAT),
    _ct("7b9", "seventh", D.THIRD, D.FIFTH, D.SEVENTH_FLAT, D.NINTH_FLAT),
    _ct("7#9", "seventh", D.THIRD, D.FIFTH, D.SEVENTH_FLAT, D.NINTH_SHARP),
    _ct("7#9#5", "seventh", D.THIRD, D.FIFTH_SHARP, D.SEVENTH_FLAT, D.NINTH_SHARP),
    _ct("7#11", "seventh", D.THIRD, D.FIFTH, D.SEVENTH_FLAT, None, D.ELEVENTH_SHARP),
    _ct("9#11", "seventh", D.THIRD, D.FIFTH, D.SEVENTH_FLAT, D.NINTH, D.ELEVENTH_SHARP),
    _ct("13b9", "seventh", D.THIRD, D.FIFTH, D.SEVENTH_FLAT, D.NINTH_FLAT, None, D.SIXTH_OR_THIRTEENTH),
    # MINOR
    _ct("m", "minor", D.THIRD_FLAT, D.FIFTH),
    _ct("m+", "minor", D.THIRD_FLAT, D.FIFTH_SHARP),
    _ct("m6", "minor", D.THIRD_FLAT, D.FIFTH, D.SIXTH_OR_THIRTEENTH),
    _ct("m69", "minor", D.THIRD_FLAT, D.FIFTH, D.SIXTH_OR_THIRTEENTH, D.NINTH),
    _ct("m7", "minor", D.THIRD_FLAT, D.FIFTH, D.SEVENTH_FLAT),
    _ct("m9", "minor", D.THIRD_FLAT, D.FIFTH, D.SEVENTH_FLAT, D.NINTH),
    _ct("m11", "minor", D.THIRD_FLAT, D.FIFTH, D.SEVENTH_FLAT, None, D.FOURTH_OR_ELEVENTH),
    _ct("m13", "minor", D.THIRD_FLAT, D.FIFTH, D.SEVENTH_FLAT, D.NINTH, None, D.SIXTH_OR_THIRTEENTH),
    _ct("mM7", "minor", D.THIRD_FLAT, D.FIFTH, D.SEVENTH),
    _ct("m2", "minor", D.THIRD_FLAT, D.FIFTH, None, D.NINTH),
    # DIMINISHED
    _ct("dim", "diminished", D.THIRD_FLAT, D.FIFTH_FLAT),
    _ct("dim7", "diminished", D.THIRD_FLAT, D.FIFTH_FLAT, D.SIXTH_OR_THIRTEENTH),
    _ct("m7b5", "diminished", D.THIRD_FLAT, D.FIFTH_FLAT, D.SEVENTH_FLAT),
    # SUS
    _ct("2", "sus", None, D.FIFTH, None, D.NINTH),
    _ct("sus", "sus", D.FOURTH_OR_ELEVENTH, D.FIFTH),
    _ct("7sus", "sus", D.FOURTH_OR_ELEVENTH, D.FIFTH, D.SEVENTH_FLAT),
    _ct("9sus", "sus", D.FOURTH_OR_ELEVENTH, D.FIFTH, D.SEVENTH_FLAT, D.NINTH),
    _ct("13sus", "sus", D.FOURTH_OR_ELEVENTH, D.FIFTH, D.SEVENTH_FLAT, D.NINTH, None, D.SIXTH_OR_THIRTEENTH),
    _ct("7susb9", "sus", D.FOURTH_OR_ELEVENTH, D.FIFTH, D.SEVENTH_FLAT, D.NINTH_FLAT),
]

# Alternative spellings accepted by the parser
CHORD_TYPE_ALIASES: Dict[str, str] = {
    "M": "", "maj": "", "Maj": "",
    "aug": "+", "maj#5": "+", "M#5": "+",
    "maj6": "6", "M6": "6",
    "6/9": "69", "M69": "69", "maj69": "69",
    "maj7": "M7", "7M": "M7", "ma7": "M7", "Maj7": "M7",
    "maj9": "M9", "9M": "M9",
    "maj13": "M13",
    "maj7#5": "M7#5",
    "maj7#11": "M7#11",
    "7-5": "7b5",
    "7+5": "7#5", "aug7": "7#5", "7aug": "7#5", "+7": "7#5",
    "7-9": "7b9",
    "7+9": "7#9",
    "7alt": "7#9#5", "7#5#9": "7#9#5",
    "min": "m", "mi": "m", "-": "m",
    "m#5": "m+",
    "min6": "m6", "-6": "m6",
    "min69": "m69",
    "min7": "m7", "mi7": "m7", "-7": "m7",
    "min9": "m9", "-9": "m9",
    "min11": "m11",
    "min13": "m13",
    "m7M": "mM7", "mMaj7": "mM7", "minMaj7": "mM7", "-maj7": "mM7",
    "madd9": "m2",
    "o": "dim", "°": "dim",
    "o7": "dim7", "°7": "dim7",
    "m7-5": "m7b5", "min7b5": "m7b5", "ø": "m7b5",
    "sus2": "2", "add9": "2", "add2": "2",
    "sus4": "sus", "4": "sus",
    "7sus4": "7sus", "sus7": "7sus",
    "9sus4": "9sus",
    "7sus4b9": "7susb9",
}

_CHORD_TYPES_BY_NAME: Dict[str, ChordType] = {ct.name: ct for ct in CHORD_TYPES}
_CHORD_TYPES_BY_SLOTS: Dict[Tuple[Optional[Degree], ...], ChordType] = {ct.slots: ct for ct in CHORD_TYPES}


# =============================================================================
# CHORD TYPE LOOKUP AND PARSING
# =============================================================================

def get_chord_type(name: str) -> ChordType:
    """Get a chord type from its canonical name or an alias."""
    ct = _CHORD_TYPES_BY_NAME.get(name)
    if ct is None and name in CHORD_TYPE_ALIASES:
        ct = _CHORD_TYPES_BY_NAME[CHORD_TYPE_ALIASES[name]]
    if ct is None:
        raise InvalidInputError(f"Unknown chord type: '{name}'")
    return ct


def is_chord_type_name(name: str) -> bool:
    return name in _CHORD_TYPES_BY_NAME or name in CHORD_TYPE_ALIASES


def parse_chord_symbol(text: str) -> Tuple[int, str, int]:
    """
    Parse a chord symbol string.

    Examples:
        parse_chord_symbol("C")      -> (0, "", 0)
        parse_chord_symbol("Ebm7")   -> (3, "m7", 3)
        parse_chord_symbol("F7/A")   -> (5, "7", 9)

    Returns:
        (root pitch class, canonical chord type name, bass pitch class)

    Raises:
        InvalidInputError: If the text is not a known chord symbol
    """
    m = CHORD_SYMBOL_REGEX.match(text.strip())
    if m is None:
        raise InvalidInputError(f"Invalid chord symbol: '{text}'")

    root_str, type_str, bass_str = m.groups()
    # "Bb" could be read as root B + type "b": the regex takes the longest root first
    root = get_note_index(root_str)
    if not is_chord_type_name(type_str):
        raise InvalidInputError(f"Unknown chord type '{type_str}' in chord symbol '{text}'")
    chord_type = get_chord_type(type_str)
    bass = get_note_index(bass_str) if bass_str else root
    return root, chord_type.name, bass


def base_chord_types() -> List[ChordType]:
    """The distinct chord types obtained by simplifying every known type to 4 degrees."""
    res = []
    for ct in CHORD_TYPES:
        simplified = ct.simplified(4)
        if simplified not in res:
            res.append(simplified)
    return res


# =============================================================================
# TESTING
# =============================================================================

if __name__ == "__main__":
    print("=" * 60)
    print("Testing harmony.py")
    print("=" * 60)

    print("\n✓ Test 1: Parsing chord symbols")
    for s in ["C", "Ebm7", "F7/A", "Bbmaj7", "G7alt"]:
        print(f"  {s:8} -> {parse_chord_symbol(s)}")

    print("\n✓ Test 2: Simplification")
    for name in ["M13", "9", "m11", "7#9#5", "69"]:
        print(f"  {name:6} -> '{get_chord_type(name).simplified(4)}'")

    print("\n✓ Test 3: Base chord types")
    print(f"  {[ct.name for ct in base_chord_types()]}")
