"""
Chord Slice - Compatibility of a Phrase Part with Another Chord

A ChordSlice is the part of a phrase played over one chord of its chord
sequence. It answers two questions:
    1. Can these notes be played over a different chord type? (score 0-100)
    2. Which simpler chord type do these notes really support?
       (a C69 slice which never plays the 6th nor the 9th is really a C)

Notes are compared to the chord degrees by relative pitch. A degree is
considered incompatible with the notes only if the "wrong" notes are
significant, i.e. they last long enough compared to the right ones.
"""

from enum import Enum
from typing import List, Optional

from walkbass.data.schema import (
    GHOST_NOTE_MAX_DURATION,
    NON_QUANTIZED_WINDOW,
    ChordSequence,
    ChordSymbol,
    NoteEvent,
    SizedPhrase,
)
from walkbass.errors import InvalidInputError
from walkbass.rules.harmony import ChordType, Degree, DegreeSlot


# =============================================================================
# CONSTANTS
# =============================================================================

# The last note of a slice can be a semitone approach note if it starts in the last APPROACH_NOTE_WINDOW beats
APPROACH_NOTE_WINDOW = 1.15

# When the target note is not given, look for the next note in this many beats after the slice
NEXT_NOTE_WINDOW = 0.3

# Degree notes must last at least this ratio of the incompatible notes duration
DEGREE_DURATION_RATIO = 1.5

NO_USE_PENALTY = 10
NO_USE_ROOT_PENALTY = 15


class DegreeCompatibility(Enum):
    INCOMPATIBLE = "incompatible"
    COMPATIBLE_NO_USE = "compatible_no_use"
    COMPATIBLE_USE = "compatible_use"


# =============================================================================
# INCOMPATIBLE DEGREES
# =============================================================================

def get_incompatible_degrees(target_type: ChordType, d: Degree) -> List[Degree]:
    """
    Get the degrees usually considered incompatible with degree d when playing target_type.

    Example:
        get_incompatible_degrees(<9>, Degree.NINTH) -> [b9, #9]
        get_incompatible_degrees(<m9>, Degree.NINTH) -> [b9]
    """
    if d == Degree.ROOT:
        return []
    if d == Degree.NINTH_FLAT:
        return [Degree.NINTH]
    if d == Degree.NINTH:
        if target_type.is_major():
            return [Degree.NINTH_FLAT, Degree.NINTH_SHARP]
        if target_type.is_minor():
            return [Degree.NINTH_FLAT]
        if target_type.is_special_2_chord():
            return [Degree.NINTH_FLAT, Degree.THIRD_FLAT, Degree.THIRD]
        return [Degree.NINTH_FLAT, Degree.THIRD_FLAT]
    if d == Degree.NINTH_SHARP:
        return [Degree.NINTH]
    if d == Degree.THIRD_FLAT:
        return [Degree.THIRD]
    if d == Degree.THIRD:
        # 4th could be OK as a passing note only
        return [Degree.THIRD_FLAT, Degree.FOURTH_OR_ELEVENTH]
    if d == Degree.FOURTH_OR_ELEVENTH:
        return [Degree.THIRD_FLAT, Degree.THIRD, Degree.ELEVENTH_SHARP] if target_type.is_sus() else []
    if d == Degree.ELEVENTH_SHARP:
        return [Degree.FOURTH_OR_ELEVENTH]
    if d == Degree.FIFTH_FLAT:
        return [Degree.FIFTH]
    if d == Degree.FIFTH:
        return [Degree.FIFTH_FLAT, Degree.FIFTH_SHARP]
    if d in (Degree.FIFTH_SHARP, Degree.THIRTEENTH_FLAT):
        return [Degree.FIFTH, Degree.SIXTH_OR_THIRTEENTH]
    if d == Degree.SIXTH_OR_THIRTEENTH:
        if target_type.is_sixth() or target_type.is_seventh_major():
            return [Degree.FIFTH_SHARP, Degree.SEVENTH_FLAT]
        return [Degree.FIFTH_SHARP]
    if d == Degree.SEVENTH_FLAT:
        return [Degree.SEVENTH]
    if d == Degree.SEVENTH:
        return [Degree.SEVENTH_FLAT]
    raise InvalidInputError(f"Unexpected degree: {d}")


# =============================================================================
# CHORD SLICE
# =============================================================================

class ChordSlice:
    """
    The notes of a phrase played over one slot of its chord sequence.

    Args:
        chord_sequence: Chord sequence of the phrase
        phrase: The phrase, same bar range as chord_sequence
        slot_index: Index of the chord slot
        target_note: Note played right after the phrase, used for the last slot
    """

    def __init__(self, chord_sequence: ChordSequence, phrase: SizedPhrase, slot_index: int,
                 target_note: Optional[NoteEvent] = None):
        if not 0 <= slot_index < len(chord_sequence.slots):
            raise InvalidInputError(f"Invalid slot_index={slot_index} for {chord_sequence}")

        self.chord: ChordSymbol = chord_sequence.slots[slot_index].chord
        self.chord_type: ChordType = self.chord.type

        start, end = chord_sequence.beat_span(slot_index)
        from_offset = NON_QUANTIZED_WINDOW if start >= NON_QUANTIZED_WINDOW else 0
        to_offset = NON_QUANTIZED_WINDOW if end - start > NON_QUANTIZED_WINDOW else 0
        start, end = start - from_offset, end - to_offset

        self.notes: List[NoteEvent] = phrase.notes_in(start, end)
        self.notes_no_ghost = [n for n in self.notes if n.duration > GHOST_NOTE_MAX_DURATION]

        if slot_index == len(chord_sequence.slots) - 1:
            self.target_note = target_note
        else:
            next_notes = phrase.notes_in(end, end + NEXT_NOTE_WINDOW)
            self.target_note = next_notes[0] if next_notes else None

        self.notes_no_approach = list(self.notes_no_ghost)
        if self.notes_no_approach and self.target_note is not None:
            last = self.notes_no_approach[-1]
            if (last.position >= end - APPROACH_NOTE_WINDOW
                    and not self.chord.contains_relative_pitch(last.relative_pitch)
                    and abs(last.pitch - self.target_note.pitch) == 1):
                self.notes_no_approach.pop()

    def degree_relative_pitch(self, d: Degree) -> int:
        return (self.chord.root + d.pitch) % 12

    def harmonic_compatibility_score(self, target_chord: ChordSymbol) -> float:
        """
        Score the compatibility of our notes with target_chord.

        100 if chord types are equal (6 and M7 considered equal). 0 if our
        chord type has more degrees than the target one, or if a target
        degree is incompatible with the notes. Otherwise 100 minus 10 for each
        target degree not used by the notes (15 for the root).

        Examples (our chord - target chord):
            C - Cm: 0 if notes are C D E G
            C - Cm: 90 if notes are C D C G
            C7 - C: 0
            C - C9: 80 if notes are C E G C
        """
        target_type = target_chord.type
        if self.chord_type.equals_sixth_major_seventh(target_type):
            return 100.0
        if self.chord_type.nb_degrees > target_type.nb_degrees:
            return 0.0

        res = 100.0
        for d in target_type.degrees:
            dc = self.get_degree_compatibility(self.notes_no_approach, target_type, d)
            if dc == DegreeCompatibility.INCOMPATIBLE:
                return 0.0
            if dc == DegreeCompatibility.COMPATIBLE_NO_USE:
                res -= NO_USE_ROOT_PENALTY if d == Degree.ROOT else NO_USE_PENALTY
        return res

    def simplified_chord(self) -> ChordSymbol:
        """
        Get our chord symbol without the extension degrees the notes never use.

        Simplification is only done when the 3rd and 5th are consistent with
        the notes: D7b9 with notes D C Bb A must stay D7b9.
        """
        ct = self.chord_type
        d3 = ct.degree_at(DegreeSlot.THIRD_OR_FOURTH)
        d5 = ct.degree_at(DegreeSlot.FIFTH)
        consistent = ((d3 is None or self.get_degree_compatibility(self.notes_no_ghost, ct, d3)
                       != DegreeCompatibility.INCOMPATIBLE)
                      and (d5 is None or self.get_degree_compatibility(self.notes_no_ghost, ct, d5)
                           != DegreeCompatibility.INCOMPATIBLE))
        if not consistent:
            return self.chord

        res = self.chord
        degrees = ct.degrees
        index = len(degrees) - 1
        while index > 2:
            if self.is_used(self.notes_no_ghost, degrees[index]):
                break
            res = self.chord.with_chord_type(ct.simplified(index).name)
            index -= 1
        return res

    # =========================================================================
    # Private helpers
    # =========================================================================

    def get_degree_compatibility(self, notes: List[NoteEvent], target_type: ChordType,
                                 d: Degree) -> DegreeCompatibility:
        if not self.contains_no_incompatible_degrees(notes, target_type, d):
            return DegreeCompatibility.INCOMPATIBLE
        if self.is_used(notes, d):
            return DegreeCompatibility.COMPATIBLE_USE
        return DegreeCompatibility.COMPATIBLE_NO_USE

    def contains_no_incompatible_degrees(self, notes: List[NoteEvent], target_type: ChordType, d: Degree) -> bool:
        incompatible = {self.degree_relative_pitch(i) for i in get_incompatible_degrees(target_type, d)}
        d_rel_pitch = self.degree_relative_pitch(d)

        incompatible_duration = 0.0
        degree_duration = 0.0
        for n in notes:
            if n.relative_pitch in incompatible:
                incompatible_duration += n.duration
            elif n.relative_pitch == d_rel_pitch:
                degree_duration += n.duration

        return degree_duration >= DEGREE_DURATION_RATIO * incompatible_duration

    def is_used(self, notes: List[NoteEvent], d: Degree) -> bool:
        rp = self.degree_relative_pitch(d)
        return any(n.relative_pitch == rp for n in notes)


# =============================================================================
# SEQUENCE-LEVEL FUNCTIONS
# =============================================================================

def harmonic_compatibility(chord_sequence: ChordSequence, phrase: SizedPhrase, target_note: Optional[NoteEvent],
                           dest_sequence: ChordSequence) -> float:
    """
    Score how well a phrase written for chord_sequence fits dest_sequence.

    Chords are compared slot by slot.

    Returns:
        0 if slot counts differ or if one slot is incompatible, else the mean slot score
    """
    if len(chord_sequence.slots) != len(dest_sequence.slots) or chord_sequence.is_empty():
        return 0.0

    scores = []
    for i, dest_slot in enumerate(dest_sequence.slots):
        score = ChordSlice(chord_sequence, phrase, i, target_note).harmonic_compatibility_score(dest_slot.chord)
        if score <= 0:
            return 0.0
        scores.append(score)
    return sum(scores) / len(scores)


def simplify_chord_sequence(chord_sequence: ChordSequence, phrase: SizedPhrase,
                            target_note: Optional[NoteEvent]) -> ChordSequence:
    """Replace each chord by the simplest chord the notes played over it still support."""
    res = chord_sequence
    for i in range(len(chord_sequence.slots)):
        simplified = ChordSlice(chord_sequence, phrase, i, target_note).simplified_chord()
        if simplified != chord_sequence.slots[i].chord:
            res = res.with_chord(i, simplified)
    return res
