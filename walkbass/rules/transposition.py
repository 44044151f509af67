"""
Transposition Scorer - Playable Transposition of a Stored Phrase

A WbpSource is recorded on given chord roots. To reuse it on another root
the phrase must be transposed, either up or down. This module picks the
direction which keeps the notes in a comfortable bass range, and scores
the result:
    - good range: E1-E3 (MIDI 28-52)
    - extended range: E1-E4 (MIDI 28-64), acceptable but not ideal
    - outside: anything else, the score is then capped to 49

Results are cached on the WbpSource, per destination pitch class.

Author: Rohan Rajendra Dhanawade
"""

from typing import List, NamedTuple, Optional, Union
import logging

from walkbass.data.schema import NoteEvent, SizedPhrase
from walkbass.rules.harmony import relative_asc_interval, relative_desc_interval

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

GOOD_PITCH_LOW, GOOD_PITCH_HIGH = 28, 52            # E1-E3
EXTENDED_PITCH_LOW, EXTENDED_PITCH_HIGH = 28, 64    # E1-E4
IDEAL_CENTRAL_PITCH = 40                            # E2

# Max distance (semitones) from the ideal central pitch taken into account
MAX_CENTRAL_DISTANCE = 11

# Score weights
GOOD_VS_OUTSIDE_WEIGHT = 60
GOOD_VS_EXTENDED_WEIGHT = 20
CENTRAL_PITCH_WEIGHT = 20

# Applied when at least one note is outside the extended range
OUTSIDE_MAX_FACTOR = 0.49


class TranspositionResult(NamedTuple):
    score: int
    transpose: int


class _BandCounts(NamedTuple):
    good: int
    extended: int
    outside: int


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _round_half_up(x: float) -> int:
    """Round to the nearest int, .5 values rounded up (Python's round() rounds to even)."""
    return int(x + 0.5) if x >= 0 else -int(-x + 0.5)


def _dest_relative_pitch(dest_root: Union[int, NoteEvent]) -> Optional[int]:
    if isinstance(dest_root, NoteEvent):
        return dest_root.relative_pitch
    if isinstance(dest_root, int) and not isinstance(dest_root, bool) and 0 <= dest_root <= 127:
        return dest_root % 12
    return None


def _count_bands(pitches: List[int], t: int) -> _BandCounts:
    good = extended = outside = 0
    for p in pitches:
        p += t
        if GOOD_PITCH_LOW <= p <= GOOD_PITCH_HIGH:
            good += 1
        elif EXTENDED_PITCH_LOW <= p <= EXTENDED_PITCH_HIGH:
            extended += 1
        else:
            outside += 1
    return _BandCounts(good, extended, outside)


def _safe_ratio(num: int, den: int) -> float:
    return num / den if den > 0 else 1.0


# =============================================================================
# CORE FUNCTIONS
# =============================================================================

def compute_transposition(phrase: SizedPhrase, src_root: int, dest_relative_pitch: int) -> TranspositionResult:
    """
    Find the best transposition of phrase from chord root src_root to dest_relative_pitch.

    Both directions are evaluated. The one with fewer notes outside the
    extended range wins, then the one with fewer notes in the extended-only
    range, then the one whose average pitch is closer to IDEAL_CENTRAL_PITCH.

    Returns:
        TranspositionResult(score 0-100, transpose in semitones)
    """
    if src_root % 12 == dest_relative_pitch:
        return TranspositionResult(100, 0)

    up = relative_asc_interval(src_root, dest_relative_pitch)
    down = -relative_desc_interval(src_root, dest_relative_pitch)

    pitches = phrase.pitches
    if not pitches:
        return TranspositionResult(0, up)
    pitch_avg = _round_half_up(sum(pitches) / len(pitches))

    up_counts = _count_bands(pitches, up)
    down_counts = _count_bands(pitches, down)

    if up_counts.outside != down_counts.outside:
        use_up = up_counts.outside < down_counts.outside
    elif up_counts.extended != down_counts.extended:
        use_up = up_counts.extended < down_counts.extended
    else:
        use_up = abs(pitch_avg + up - IDEAL_CENTRAL_PITCH) <= abs(pitch_avg + down - IDEAL_CENTRAL_PITCH)

    t, counts = (up, up_counts) if use_up else (down, down_counts)

    distance = min(MAX_CENTRAL_DISTANCE, abs(pitch_avg + t - IDEAL_CENTRAL_PITCH))
    max_factor = OUTSIDE_MAX_FACTOR if counts.outside > 0 else 1.0
    raw = (GOOD_VS_OUTSIDE_WEIGHT * _safe_ratio(counts.good, counts.good + counts.outside)
           + GOOD_VS_EXTENDED_WEIGHT * _safe_ratio(counts.good, counts.good + counts.extended)
           + CENTRAL_PITCH_WEIGHT * (MAX_CENTRAL_DISTANCE - distance) / MAX_CENTRAL_DISTANCE)
    score = max(0, min(100, _round_half_up(max_factor * raw)))

    return TranspositionResult(score, t)


def score(source, dest_root: Union[int, NoteEvent]) -> TranspositionResult:
    """
    Get the transposition score of a WbpSource for a destination chord root.

    Args:
        source: The WbpSource
        dest_root: A pitch or a NoteEvent, only its pitch class is used

    Returns:
        TranspositionResult, (0, 0) if dest_root is invalid
    """
    rp = _dest_relative_pitch(dest_root)
    if rp is None:
        logger.warning("score() invalid dest_root=%r for source %s", dest_root, source.id)
        return TranspositionResult(0, 0)

    cache = source.transposition_cache
    res = cache.get(rp)
    if res is None:
        res = compute_transposition(source.phrase, source.first_chord.root, rp)
        cache[rp] = res
    return res


def get_required_transposition(source, dest_root: Union[int, NoteEvent]) -> int:
    """
    Get the transposition (semitones) to apply to source to play it on dest_root.

    The score is computed first if needed.
    """
    rp = _dest_relative_pitch(dest_root)
    if rp is None:
        logger.warning("get_required_transposition() invalid dest_root=%r for source %s", dest_root, source.id)
        return 0

    res = source.transposition_cache.get(rp)
    if res is None:
        score(source, dest_root)
        res = source.transposition_cache.get(rp)
    if res is None:
        logger.error("get_required_transposition() no cached transposition for source %s dest=%d, using 0",
                     source.id, rp)
        return 0
    return res.transpose


def transposed_phrase(source, dest_root: Union[int, NoteEvent]) -> SizedPhrase:
    """The source phrase transposed to play on dest_root."""
    return source.phrase.transposed(get_required_transposition(source, dest_root))
