"""
WbpSource - The Retrievable Walking Bass Phrase

A WbpSource is a 1 to 4-bar phrase extracted from a recorded session (or
added as a custom phrase), with its chord sequence. Both start at bar 0.

Derived values (first/last notes, root profile, stats, transposition scores)
are computed on first use and memoized on the instance. They are pure
functions of the immutable fields, so a concurrent first access at worst
computes the same value twice.

Author: Rohan Rajendra Dhanawade
"""

from functools import cached_property
from typing import Dict, FrozenSet, List, Optional, Tuple, Union
import logging

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from walkbass.config import VelocityConfig, get_config
from walkbass.data.schema import (
    NON_QUANTIZED_WINDOW,
    SIZE_MAX,
    SIZE_MIN,
    BassStyle,
    ChordSequence,
    ChordSymbol,
    NoteEvent,
    SizedPhrase,
)
from walkbass.rules import chord_slice, phrases, transposition
from walkbass.rules.root_profile import RootProfile
from walkbass.rules.transposition import TranspositionResult

logger = logging.getLogger(__name__)


def make_source_id(session_id: str, bar_from: int, bar_count: int) -> str:
    """Example: make_source_id("Blues1", 3, 2) -> "Blues1#from=3#size=2" """
    return f"{session_id}#from={bar_from}#size={bar_count}"


# =============================================================================
# STATS
# =============================================================================

# Upper duration limit (beats, excluded) of each note duration bucket. Longer notes are "long".
SHORT_NOTE_MAX = 0.4
DOTTED_EIGHTH_NOTE_MAX = 0.7
QUARTER_NOTE_MAX = 1.3
DOTTED_QUARTER_NOTE_MAX = 1.75

# Number of notes used to compute the start/end slopes
SLOPE_NB_NOTES = 3


class WbpSourceStats(BaseModel):
    """
    Rhythmic and melodic statistics of a phrase.

    Attributes:
        slope_start: Pitch slope (semitones per beat) of the first notes
        slope_end: Pitch slope (semitones per beat) of the last notes
        nb_short_notes: Notes shorter than a dotted eighth
        nb_max_successive_short_notes: Longest run of successive short notes
        is_one_note_per_beat: One note on each beat, nothing else
    """
    model_config = ConfigDict(frozen=True)

    slope_start: float = 0.0
    slope_end: float = 0.0
    nb_short_notes: int = 0
    nb_dotted_eighth_notes: int = 0
    nb_quarter_notes: int = 0
    nb_dotted_quarter_notes: int = 0
    nb_long_notes: int = 0
    nb_max_successive_short_notes: int = 0
    nb_max_successive_dotted_eighth_notes: int = 0
    is_one_note_per_beat: bool = False

    @classmethod
    def of(cls, phrase: SizedPhrase) -> "WbpSourceStats":
        notes = phrase.notes
        buckets = [_duration_bucket(n.duration) for n in notes]

        return cls(
            slope_start=_slope(notes[:SLOPE_NB_NOTES]),
            slope_end=_slope(notes[-SLOPE_NB_NOTES:]),
            nb_short_notes=buckets.count("short"),
            nb_dotted_eighth_notes=buckets.count("dotted_eighth"),
            nb_quarter_notes=buckets.count("quarter"),
            nb_dotted_quarter_notes=buckets.count("dotted_quarter"),
            nb_long_notes=buckets.count("long"),
            nb_max_successive_short_notes=_max_run(buckets, "short"),
            nb_max_successive_dotted_eighth_notes=_max_run(buckets, "dotted_eighth"),
            is_one_note_per_beat=_is_one_note_per_beat(phrase),
        )


def _duration_bucket(duration: float) -> str:
    if duration < SHORT_NOTE_MAX:
        return "short"
    if duration < DOTTED_EIGHTH_NOTE_MAX:
        return "dotted_eighth"
    if duration < QUARTER_NOTE_MAX:
        return "quarter"
    if duration < DOTTED_QUARTER_NOTE_MAX:
        return "dotted_quarter"
    return "long"


def _max_run(buckets: List[str], bucket: str) -> int:
    res = run = 0
    for b in buckets:
        run = run + 1 if b == bucket else 0
        res = max(res, run)
    return res


def _slope(notes: Tuple[NoteEvent, ...]) -> float:
    """Least-squares slope of pitch over position."""
    x = np.array([n.position for n in notes], dtype=float)
    if len(x) < 2 or np.ptp(x) == 0:
        return 0.0
    y = np.array([n.pitch for n in notes], dtype=float)
    slope, _ = np.polyfit(x, y, 1)
    return float(slope)


def _is_one_note_per_beat(phrase: SizedPhrase) -> bool:
    nb_beats = int(phrase.total_beats)
    if len(phrase.notes) != nb_beats:
        return False
    return all(n.is_near(float(beat), NON_QUANTIZED_WINDOW) for beat, n in enumerate(phrase.notes))


# =============================================================================
# WBPSOURCE
# =============================================================================

class WbpSource(BaseModel):
    """
    A walking bass phrase with its chord sequence.

    Structural equality (==) compares all fields. Use same_identity() to
    compare ids only.

    Attributes:
        id: "<session_id>#from=<bar>#size=<bars>", unique in a PhraseStore
        session_id: Id of the originating session
        session_bar_offset: First bar of the phrase in the session
        bass_style: Playing style
        chord_sequence: Chords simplified to what the notes really use
        original_chord_sequence: Chords as recorded
        phrase: The notes, same bar range as chord_sequence
        first_note_beat_shift: How early (negative, in beats) the first note was played
        target_note: Note played right after the phrase, if known
        tags: Tags of the originating session
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    session_id: str = Field(..., min_length=1)
    session_bar_offset: int = Field(default=0, ge=0)
    bass_style: BassStyle = BassStyle.WALKING
    chord_sequence: ChordSequence
    original_chord_sequence: Optional[ChordSequence] = None
    phrase: SizedPhrase
    first_note_beat_shift: float = Field(default=0.0, ge=-NON_QUANTIZED_WINDOW, le=0)
    target_note: Optional[NoteEvent] = None
    tags: FrozenSet[str] = Field(default=frozenset())

    _transposition_cache: Dict[int, TranspositionResult] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def validate_bar_range(self) -> "WbpSource":
        cs, sp = self.chord_sequence, self.phrase
        if not SIZE_MIN <= cs.bar_count <= SIZE_MAX:
            raise ValueError(f"A WbpSource must have {SIZE_MIN}-{SIZE_MAX} bars. Got: {cs.bar_count}")
        if cs.bar_count != sp.bar_count or cs.beats_per_bar != sp.beats_per_bar:
            raise ValueError(f"Chord sequence and phrase bar ranges differ for {self.id}")
        if cs.is_empty():
            raise ValueError(f"WbpSource {self.id} has no chord")
        return self

    @classmethod
    def build(cls, session_id: str, session_bar_offset: int, bass_style: BassStyle,
              chord_sequence: ChordSequence, phrase: SizedPhrase,
              first_note_beat_shift: float = 0.0,
              target_note: Optional[NoteEvent] = None,
              tags: FrozenSet[str] = frozenset(),
              velocity: Optional[VelocityConfig] = None,
              simplify_chords: bool = True) -> Optional["WbpSource"]:
        """
        Build a WbpSource from a raw phrase slice, repairing the phrase first.

        Repairs: ghost notes at the start removed, notes running past the end
        shortened, phrase moved one octave down if too high, velocities
        normalized.

        Returns:
            The WbpSource, or None if no note is left after the repairs
        """
        velocity = velocity or get_config().velocity

        sp = phrases.remove_ghost_notes_at_start(phrase)
        sp = phrases.fix_end_of_phrase_notes(sp)
        sp = phrases.fix_octave(sp)
        sp = phrases.normalize_velocities(sp, velocity.target_mean, velocity.target_std, velocity.strength)
        if sp.is_empty():
            return None

        source = cls(
            id=make_source_id(session_id, session_bar_offset, chord_sequence.bar_count),
            session_id=session_id,
            session_bar_offset=session_bar_offset,
            bass_style=bass_style,
            chord_sequence=chord_sequence,
            original_chord_sequence=chord_sequence,
            phrase=sp,
            first_note_beat_shift=first_note_beat_shift,
            target_note=target_note,
            tags=frozenset(tags),
        )
        return source.simplified() if simplify_chords else source

    def simplified(self) -> "WbpSource":
        """Copy of this source with each chord simplified to what the notes really use."""
        cs = chord_slice.simplify_chord_sequence(self.chord_sequence, self.phrase, self.target_note)
        if cs == self.chord_sequence:
            return self
        logger.debug("simplified() %s: %s -> %s", self.id, self.chord_sequence, cs)
        fields = {name: getattr(self, name) for name in type(self).model_fields}
        return type(self)(**{**fields, "chord_sequence": cs})

    # ---------------------------
    # Memoized values
    # ---------------------------

    @cached_property
    def first_note(self) -> NoteEvent:
        return self.phrase.notes[0]

    @cached_property
    def last_note(self) -> NoteEvent:
        return self.phrase.notes[-1]

    @cached_property
    def first_chord(self) -> ChordSymbol:
        return self.chord_sequence.slots[0].chord

    @cached_property
    def last_chord(self) -> ChordSymbol:
        return self.chord_sequence.slots[-1].chord

    @cached_property
    def starts_on_chord_bass(self) -> bool:
        return self.first_note.relative_pitch == self.first_chord.bass

    @cached_property
    def ends_on_chord_tone(self) -> bool:
        rp = self.last_note.relative_pitch
        return self.last_chord.contains_relative_pitch(rp) or rp == self.last_chord.bass

    @cached_property
    def root_profile(self) -> RootProfile:
        return RootProfile.of(self.chord_sequence)

    @cached_property
    def stats(self) -> WbpSourceStats:
        return WbpSourceStats.of(self.phrase)

    @property
    def transposition_cache(self) -> Dict[int, TranspositionResult]:
        """Transposition results per destination pitch class."""
        return self._transposition_cache

    # ---------------------------
    # Operations
    # ---------------------------

    @property
    def bar_count(self) -> int:
        return self.chord_sequence.bar_count

    def same_identity(self, other: "WbpSource") -> bool:
        return other is not None and self.id == other.id

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def bar_range_in_session(self) -> Tuple[int, int]:
        """First and last bar (inclusive) of the phrase in its session."""
        return self.session_bar_offset, self.session_bar_offset + self.bar_count - 1

    def transposition_score(self, dest_root: Union[int, NoteEvent]) -> TranspositionResult:
        return transposition.score(self, dest_root)

    def required_transposition(self, dest_root: Union[int, NoteEvent]) -> int:
        return transposition.get_required_transposition(self, dest_root)

    def transposed_phrase(self, dest_root: Union[int, NoteEvent]) -> SizedPhrase:
        return transposition.transposed_phrase(self, dest_root)

    def get_slice(self, slot_index: int) -> chord_slice.ChordSlice:
        return chord_slice.ChordSlice(self.chord_sequence, self.phrase, slot_index, self.target_note)

    def harmonic_compatibility(self, dest_sequence: ChordSequence) -> float:
        """Score (0-100) of playing this phrase on dest_sequence, 0 if incompatible."""
        return chord_slice.harmonic_compatibility(self.chord_sequence, self.phrase, self.target_note, dest_sequence)

    def __str__(self) -> str:
        return f"{self.id} {self.chord_sequence} {self.phrase}"
