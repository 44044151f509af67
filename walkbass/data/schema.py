"""
Schema definitions for the walking-bass phrase engine.

This module defines the Pydantic models shared by every part of the engine:
notes, chord symbols, chord sequences, sized phrases and recorded sessions.
All models are frozen: once built they are never modified, helpers return
modified copies instead.

Author: Rohan Rajendra Dhanawade
"""

from enum import Enum
from typing import FrozenSet, List, Optional, Sequence, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from walkbass.errors import InvalidInputError
from walkbass.rules.harmony import (
    ChordType,
    get_chord_type,
    note_name,
    parse_chord_symbol,
)


# =============================================================================
# CONSTANTS
# =============================================================================

# Recorded notes are not quantized: a note starting this close to a beat is on that beat
NON_QUANTIZED_WINDOW = 0.15

# Notes this short are considered playing artifacts
GHOST_NOTE_MAX_DURATION = NON_QUANTIZED_WINDOW

# Size range (in bars) of a WbpSource
SIZE_MIN = 1
SIZE_MAX = 4

DEFAULT_BEATS_PER_BAR = 4


class BassStyle(str, Enum):
    """Playing style of a bass phrase."""
    WALKING = "walking"
    TWO_FEEL = "2feel"


# =============================================================================
# NOTES
# =============================================================================

class NoteEvent(BaseModel):
    """
    A note played at a given position.

    Attributes:
        pitch: MIDI pitch (0-127)
        duration: Duration in beats
        velocity: MIDI velocity (1-127)
        position: Start position in beats, relative to the owning phrase
    """
    model_config = ConfigDict(frozen=True)

    pitch: int = Field(..., ge=0, le=127)
    duration: float = Field(..., gt=0)
    velocity: int = Field(default=80, ge=1, le=127)
    position: float = Field(default=0.0, ge=0)

    @property
    def relative_pitch(self) -> int:
        return self.pitch % 12

    @property
    def end(self) -> float:
        return self.position + self.duration

    def _copy(self, **changes) -> "NoteEvent":
        return NoteEvent(**{**self.model_dump(), **changes})

    def transposed(self, t: int) -> "NoteEvent":
        return self._copy(pitch=self.pitch + t)

    def with_position(self, position: float) -> "NoteEvent":
        return self._copy(position=position)

    def with_duration(self, duration: float) -> "NoteEvent":
        return self._copy(duration=duration)

    def with_velocity(self, velocity: int) -> "NoteEvent":
        return self._copy(velocity=velocity)

    def is_near(self, pos: float, window: float) -> bool:
        """True if the note starts in [pos - window, pos + window)."""
        return pos - window <= self.position < pos + window

    def __str__(self) -> str:
        return f"{note_name(self.pitch)}{self.pitch // 12 - 1}[{self.position:.2f}:{self.duration:.2f}]"


# =============================================================================
# CHORDS
# =============================================================================

class ChordSymbol(BaseModel):
    """
    A chord symbol such as "Cm7/G".

    Attributes:
        root: Pitch class of the root (0-11)
        chord_type: Canonical chord type name (see harmony.CHORD_TYPES)
        bass: Pitch class of the bass note, defaults to the root
    """
    model_config = ConfigDict(frozen=True)

    root: int = Field(..., ge=0, le=11)
    chord_type: str = Field(default="")
    bass: int = Field(..., ge=0, le=11)

    @model_validator(mode="before")
    @classmethod
    def default_bass_to_root(cls, data):
        if isinstance(data, dict) and data.get("bass") is None:
            data = {**data, "bass": data.get("root")}
        return data

    @field_validator("chord_type")
    @classmethod
    def validate_chord_type(cls, v: str) -> str:
        """Store the canonical name of the chord type"""
        return get_chord_type(v).name

    @classmethod
    def from_string(cls, text: str) -> "ChordSymbol":
        root, chord_type, bass = parse_chord_symbol(text)
        return cls(root=root, chord_type=chord_type, bass=bass)

    @property
    def type(self) -> ChordType:
        return get_chord_type(self.chord_type)

    @property
    def relative_pitches(self) -> List[int]:
        return self.type.relative_pitches(self.root)

    def contains_relative_pitch(self, relative_pitch: int) -> bool:
        return relative_pitch in self.relative_pitches

    def transposed(self, t: int) -> "ChordSymbol":
        return ChordSymbol(root=(self.root + t) % 12, chord_type=self.chord_type, bass=(self.bass + t) % 12)

    def with_chord_type(self, chord_type: str) -> "ChordSymbol":
        return ChordSymbol(root=self.root, chord_type=chord_type, bass=self.bass)

    def __str__(self) -> str:
        s = note_name(self.root) + self.chord_type
        if self.bass != self.root:
            s += "/" + note_name(self.bass)
        return s


class ChordSlot(BaseModel):
    """A chord symbol at a beat position of a chord sequence."""
    model_config = ConfigDict(frozen=True)

    position: float = Field(..., ge=0)
    chord: ChordSymbol

    def with_position(self, position: float) -> "ChordSlot":
        return ChordSlot(position=position, chord=self.chord)

    def __str__(self) -> str:
        return f"{self.chord}@{self.position:g}"


class ChordSequence(BaseModel):
    """
    Chord slots covering a bar range starting at bar 0.

    Slots are sorted by strictly increasing position. A non-empty sequence
    always has a slot at position 0.
    """
    model_config = ConfigDict(frozen=True)

    bar_count: int = Field(..., ge=1)
    beats_per_bar: int = Field(default=DEFAULT_BEATS_PER_BAR, ge=1)
    slots: Tuple[ChordSlot, ...] = Field(default=())

    @model_validator(mode="after")
    def validate_slots(self) -> "ChordSequence":
        """Ensure slots are ordered and inside the bar range"""
        total = self.total_beats
        previous = None
        for slot in self.slots:
            if slot.position >= total:
                raise ValueError(f"Chord slot {slot} is outside the bar range (0-{total} beats)")
            if previous is not None and slot.position <= previous.position:
                raise ValueError(f"Chord slots must have strictly increasing positions. Got: {previous}, {slot}")
            previous = slot
        if self.slots and self.slots[0].position != 0:
            raise ValueError(f"A chord sequence must start with a chord at beat 0. Got: {self.slots[0]}")
        return self

    @classmethod
    def from_chords(cls, chords: Sequence[Tuple[float, str]], bar_count: int,
                    beats_per_bar: int = DEFAULT_BEATS_PER_BAR) -> "ChordSequence":
        """
        Build a sequence from (beat position, chord symbol string) pairs.

        Example:
            ChordSequence.from_chords([(0, "C"), (4, "F7")], bar_count=2)
        """
        slots = [ChordSlot(position=pos, chord=ChordSymbol.from_string(s)) for pos, s in chords]
        return cls(bar_count=bar_count, beats_per_bar=beats_per_bar, slots=tuple(slots))

    @property
    def total_beats(self) -> float:
        return float(self.bar_count * self.beats_per_bar)

    def is_empty(self) -> bool:
        return not self.slots

    @property
    def first(self) -> Optional[ChordSlot]:
        return self.slots[0] if self.slots else None

    @property
    def last(self) -> Optional[ChordSlot]:
        return self.slots[-1] if self.slots else None

    def beat_span(self, index: int) -> Tuple[float, float]:
        """Beat range [start, end) covered by the slot at index."""
        start = self.slots[index].position
        end = self.slots[index + 1].position if index + 1 < len(self.slots) else self.total_beats
        return start, end

    def slot_index_at(self, beat: float) -> int:
        """Index of the chord slot prevailing at beat, -1 if none."""
        res = -1
        for i, slot in enumerate(self.slots):
            if slot.position > beat:
                break
            res = i
        return res

    def chord_at(self, beat: float) -> Optional[ChordSymbol]:
        i = self.slot_index_at(beat)
        return self.slots[i].chord if i >= 0 else None

    def sub_sequence(self, bar_from: int, bar_count: int) -> "ChordSequence":
        """
        Extract the chords of [bar_from, bar_from + bar_count - 1], shifted to bar 0.

        The chord prevailing at the start of bar_from is inserted at beat 0
        if no chord starts there.

        Raises:
            InvalidInputError: If the bar range is not inside this sequence
        """
        if bar_from < 0 or bar_count < 1 or bar_from + bar_count > self.bar_count:
            raise InvalidInputError(
                f"Invalid bar range: from={bar_from} size={bar_count} (sequence has {self.bar_count} bars)"
            )
        start = bar_from * self.beats_per_bar
        end = start + bar_count * self.beats_per_bar

        slots = [s.with_position(s.position - start) for s in self.slots if start <= s.position < end]
        if not slots or slots[0].position > 0:
            prevailing = self.chord_at(start)
            if prevailing is not None:
                slots.insert(0, ChordSlot(position=0.0, chord=prevailing))

        return ChordSequence(bar_count=bar_count, beats_per_bar=self.beats_per_bar, slots=tuple(slots))

    def transposed(self, t: int) -> "ChordSequence":
        slots = tuple(ChordSlot(position=s.position, chord=s.chord.transposed(t)) for s in self.slots)
        return ChordSequence(bar_count=self.bar_count, beats_per_bar=self.beats_per_bar, slots=slots)

    def with_chord(self, index: int, chord: ChordSymbol) -> "ChordSequence":
        """Copy of this sequence with the chord of slot index replaced."""
        slots = list(self.slots)
        slots[index] = ChordSlot(position=slots[index].position, chord=chord)
        return ChordSequence(bar_count=self.bar_count, beats_per_bar=self.beats_per_bar, slots=tuple(slots))

    def __str__(self) -> str:
        return "[" + " ".join(str(s) for s in self.slots) + "]"


# =============================================================================
# PHRASES AND SESSIONS
# =============================================================================

class SizedPhrase(BaseModel):
    """
    Notes covering a bar range starting at bar 0.

    Notes are sorted by position then pitch, and every note starts inside
    the bar range (it may end after it).
    """
    model_config = ConfigDict(frozen=True)

    bar_count: int = Field(..., ge=1)
    beats_per_bar: int = Field(default=DEFAULT_BEATS_PER_BAR, ge=1)
    notes: Tuple[NoteEvent, ...] = Field(default=())

    @field_validator("notes")
    @classmethod
    def sort_notes(cls, v: Tuple[NoteEvent, ...]) -> Tuple[NoteEvent, ...]:
        return tuple(sorted(v, key=lambda n: (n.position, n.pitch)))

    @model_validator(mode="after")
    def validate_note_positions(self) -> "SizedPhrase":
        total = self.total_beats
        for n in self.notes:
            if n.position >= total:
                raise ValueError(f"Note {n} starts outside the bar range (0-{total} beats)")
        return self

    @property
    def total_beats(self) -> float:
        return float(self.bar_count * self.beats_per_bar)

    def is_empty(self) -> bool:
        return not self.notes

    @property
    def first_note(self) -> Optional[NoteEvent]:
        return self.notes[0] if self.notes else None

    @property
    def last_note(self) -> Optional[NoteEvent]:
        return self.notes[-1] if self.notes else None

    @property
    def pitches(self) -> List[int]:
        return [n.pitch for n in self.notes]

    def with_notes(self, notes: Sequence[NoteEvent]) -> "SizedPhrase":
        return SizedPhrase(bar_count=self.bar_count, beats_per_bar=self.beats_per_bar, notes=tuple(notes))

    def transposed(self, t: int) -> "SizedPhrase":
        return self.with_notes([n.transposed(t) for n in self.notes])

    def notes_in(self, from_beat: float, to_beat: float) -> List[NoteEvent]:
        """Notes starting in [from_beat, to_beat)."""
        return [n for n in self.notes if from_beat <= n.position < to_beat]

    def __str__(self) -> str:
        return "{" + " ".join(str(n) for n in self.notes) + "}"


class WbpSession(BaseModel):
    """
    A recorded walking-bass performance: a chord sequence and the matching
    bass phrase, both starting at bar 0.

    Attributes:
        id: Unique session id
        tags: Free tags read from the recording ("walking", "notn", "tn=40"...)
        bass_style: Playing style of the whole session
        chord_sequence: Chords of the session
        phrase: Notes of the session, same bar range as chord_sequence
        target_note: Note expected right after the session, if known
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    tags: FrozenSet[str] = Field(default=frozenset())
    bass_style: BassStyle = BassStyle.WALKING
    chord_sequence: ChordSequence
    phrase: SizedPhrase
    target_note: Optional[NoteEvent] = None

    @model_validator(mode="after")
    def validate_bar_range(self) -> "WbpSession":
        """Ensure chords and notes cover the same bars"""
        cs, sp = self.chord_sequence, self.phrase
        if cs.bar_count != sp.bar_count or cs.beats_per_bar != sp.beats_per_bar:
            raise ValueError(
                f"Chord sequence and phrase bar ranges differ: {cs.bar_count}x{cs.beats_per_bar} "
                f"vs {sp.bar_count}x{sp.beats_per_bar}"
            )
        if cs.is_empty():
            raise ValueError(f"Session {self.id} has no chord")
        return self

    @property
    def bar_count(self) -> int:
        return self.chord_sequence.bar_count

    @property
    def beats_per_bar(self) -> int:
        return self.chord_sequence.beats_per_bar

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags
