"""
Root Profile - Harmonic Shape of a Chord Sequence

A RootProfile keeps only what matters to reuse a bass phrase on another
chord sequence: the number of bars, the beat position of each chord, and
the ascending interval between successive chord roots.

Chord types and absolute roots are ignored, so "C F" and "Ebm7 Ab7" (one
chord per bar) share the same profile.
"""

from typing import Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from walkbass.data.schema import SIZE_MAX, SIZE_MIN, ChordSequence
from walkbass.errors import InvalidInputError
from walkbass.rules.harmony import relative_asc_interval


class RootProfile(BaseModel):
    """
    Transposition-invariant fingerprint of a chord sequence.

    Attributes:
        bar_count: Number of bars (1-4)
        onset_beats: Beat position of each chord, strictly increasing
        ascending_intervals: Ascending interval (0-11) from each chord root to the next one
    """
    model_config = ConfigDict(frozen=True)

    bar_count: int = Field(..., ge=SIZE_MIN, le=SIZE_MAX)
    onset_beats: Tuple[float, ...] = Field(..., min_length=1)
    ascending_intervals: Tuple[int, ...] = Field(default=())

    @field_validator("onset_beats")
    @classmethod
    def validate_onset_beats(cls, v: Tuple[float, ...]) -> Tuple[float, ...]:
        for a, b in zip(v, v[1:]):
            if b <= a:
                raise ValueError(f"onset_beats must be strictly increasing. Got: {v}")
        return v

    @field_validator("ascending_intervals")
    @classmethod
    def validate_ascending_intervals(cls, v: Tuple[int, ...]) -> Tuple[int, ...]:
        if any(i < 0 or i > 11 for i in v):
            raise ValueError(f"ascending_intervals values must be in 0-11. Got: {v}")
        return v

    @model_validator(mode="after")
    def validate_sizes(self) -> "RootProfile":
        if len(self.ascending_intervals) != len(self.onset_beats) - 1:
            raise ValueError(
                f"Expected {len(self.onset_beats) - 1} ascending intervals, got {len(self.ascending_intervals)}"
            )
        return self

    @classmethod
    def of(cls, chord_sequence: ChordSequence) -> "RootProfile":
        """
        Compute the profile of a chord sequence.

        Raises:
            InvalidInputError: If the sequence is empty or longer than 4 bars
        """
        if chord_sequence.is_empty():
            raise InvalidInputError("Can't compute the root profile of an empty chord sequence")
        if chord_sequence.bar_count > SIZE_MAX:
            raise InvalidInputError(
                f"Can't compute the root profile of a {chord_sequence.bar_count}-bar chord sequence (max={SIZE_MAX})"
            )

        slots = chord_sequence.slots
        onsets = tuple(float(s.position) for s in slots)
        intervals = tuple(relative_asc_interval(a.chord.root, b.chord.root) for a, b in zip(slots, slots[1:]))
        return cls(bar_count=chord_sequence.bar_count, onset_beats=onsets, ascending_intervals=intervals)

    def __str__(self) -> str:
        return f"RootProfile(bars={self.bar_count} onsets={list(self.onset_beats)} intervals={list(self.ascending_intervals)})"
