"""
Phrases Module - Slicing and Repairing Recorded Bass Phrases

Recorded phrases are not quantized: notes are played slightly before or
after the beat, and last a bit longer or shorter than written. This module
provides the operations needed to cut such a phrase into bar windows and
clean up the result:
    1. Crossing notes: notes which would be cut in the middle by a bar boundary
    2. Slicing with a tolerance window
    3. Post-slice repairs (ghost notes, phrase end, octave, velocities)

Author: Rohan Rajendra Dhanawade
"""

from typing import Dict, List
import logging

import numpy as np

from walkbass.data.schema import GHOST_NOTE_MAX_DURATION, NON_QUANTIZED_WINDOW, NoteEvent, SizedPhrase

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Notes must end this many beats before the end of the phrase
END_OF_PHRASE_MARGIN = 0.1

# A phrase is moved one octave down if its lowest pitch is >= OCTAVE_FIX_LOW,
# or if it is >= OCTAVE_FIX_LOW_WITH_HIGH with a highest pitch >= OCTAVE_FIX_HIGH
OCTAVE_FIX_LOW = 47
OCTAVE_FIX_LOW_WITH_HIGH = 44
OCTAVE_FIX_HIGH = 56


# =============================================================================
# CROSSING NOTES
# =============================================================================

def get_crossing_notes(phrase: SizedPhrase, window: float = NON_QUANTIZED_WINDOW) -> Dict[int, List[NoteEvent]]:
    """
    Find the notes which cross an inner bar boundary.

    A note crosses the start of bar k if it starts before k*bpb - window and
    ends after k*bpb + window.

    Returns:
        Dict bar index -> crossing notes. Bars without crossing notes are absent.
    """
    res: Dict[int, List[NoteEvent]] = {}
    bpb = phrase.beats_per_bar
    for bar in range(1, phrase.bar_count):
        boundary = bar * bpb
        notes = [n for n in phrase.notes if n.position < boundary - window and n.end > boundary + window]
        if notes:
            res[bar] = notes
    return res


# =============================================================================
# SLICING
# =============================================================================

def slice_phrase(phrase: SizedPhrase, bar_from: int, bar_count: int,
                 window: float = NON_QUANTIZED_WINDOW) -> SizedPhrase:
    """
    Extract the notes of a bar range, shifted to start at beat 0.

    Let [start, end) be the beat range of the bars:
        - notes starting in [start - window, start) are moved to start
        - older notes still sounding at start are kept from start only
        - notes starting in [end - window, end) are dropped, they belong to the next bar
        - notes running past end are cut

    Returns:
        A SizedPhrase of bar_count bars, possibly empty
    """
    bpb = phrase.beats_per_bar
    start = bar_from * bpb
    end = start + bar_count * bpb

    notes = []
    for n in phrase.notes:
        if n.position >= end - window or n.end <= start:
            continue
        if n.position < start - window:
            n = n.with_position(start).with_duration(n.end - start)
        elif n.position < start:
            n = n.with_position(start)
        if n.end > end:
            n = n.with_duration(end - n.position)
        notes.append(n.with_position(n.position - start))

    return SizedPhrase(bar_count=bar_count, beats_per_bar=bpb, notes=tuple(notes))


def get_first_note_beat_shift(phrase: SizedPhrase, start: float, window: float = NON_QUANTIZED_WINDOW) -> float:
    """
    Get how early the first note of a slice starting at start was played.

    If the last note starting in [start - window, start) still sounds at
    start, return its position minus start. Otherwise return 0.

    Returns:
        A value in [-window, 0]
    """
    early = [n for n in phrase.notes if start - window <= n.position < start]
    if not early or early[-1].end < start:
        return 0.0
    shift = early[-1].position - start
    return max(-window, min(0.0, shift))


# =============================================================================
# POST-SLICE REPAIRS
# =============================================================================

def remove_ghost_notes_at_start(phrase: SizedPhrase, max_duration: float = GHOST_NOTE_MAX_DURATION) -> SizedPhrase:
    """Remove the very short notes left at beat 0 by a slice cut."""
    notes = [n for n in phrase.notes if not (n.position == 0 and n.duration <= max_duration)]
    if len(notes) == len(phrase.notes):
        return phrase
    logger.debug("remove_ghost_notes_at_start() removed %d note(s) from %s",
                 len(phrase.notes) - len(notes), phrase)
    return phrase.with_notes(notes)


def fix_end_of_phrase_notes(phrase: SizedPhrase, margin: float = END_OF_PHRASE_MARGIN) -> SizedPhrase:
    """Shorten the notes which end too close to (or after) the end of the phrase."""
    limit = phrase.total_beats - margin
    notes = []
    changed = False
    for n in phrase.notes:
        if n.end > limit and n.position < limit:
            n = n.with_duration(limit - n.position)
            changed = True
        notes.append(n)
    return phrase.with_notes(notes) if changed else phrase


def fix_octave(phrase: SizedPhrase) -> SizedPhrase:
    """Move the phrase one octave down if it sits abnormally high for a bass."""
    if phrase.is_empty():
        return phrase
    low, high = min(phrase.pitches), max(phrase.pitches)
    if low >= OCTAVE_FIX_LOW or (low >= OCTAVE_FIX_LOW_WITH_HIGH and high >= OCTAVE_FIX_HIGH):
        logger.debug("fix_octave() low=%d high=%d, transposing one octave down", low, high)
        return phrase.transposed(-12)
    return phrase


def normalize_velocities(phrase: SizedPhrase, target_mean: float, target_std: float,
                         strength: float) -> SizedPhrase:
    """
    Move note velocities toward a target Gaussian distribution.

    Each velocity is mapped to the target distribution by its z-score, then
    blended with the original value: strength=0 keeps the original,
    strength=1 uses the remapped value. Results are clamped to 1-127.
    """
    if phrase.is_empty():
        return phrase

    v = np.array([n.velocity for n in phrase.notes], dtype=float)
    std = v.std()
    z = (v - v.mean()) / std if std > 0 else np.zeros_like(v)
    remapped = target_mean + z * target_std
    blended = np.clip(np.rint(v + strength * (remapped - v)), 1, 127).astype(int)

    notes = [n.with_velocity(int(vel)) for n, vel in zip(phrase.notes, blended)]
    return phrase.with_notes(notes)
