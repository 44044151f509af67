"""
Phrase Segment Extractor - WbpSources from a Recorded Session

A session is a long recorded performance. The extractor cuts it into every
possible 1, 2, 3 and 4-bar window, skipping windows whose edges would cut
a note in the middle, and turns each window into a WbpSource.

Pipeline for one window:
    1. Slice the notes and the chords, shift both to bar 0
    2. Compute the early start of the first note and the target note
    3. Repair the phrase (see WbpSource.build)
    4. Apply the optional policy filters
    5. Simplify the chords to what the notes really use

Author: Rohan Rajendra Dhanawade
"""

from typing import Dict, Iterator, List, Optional, Tuple
import logging

from walkbass.config import VelocityConfig
from walkbass.data.schema import NON_QUANTIZED_WINDOW, SIZE_MAX, SIZE_MIN, NoteEvent, WbpSession
from walkbass.db.source import WbpSource
from walkbass.rules import phrases

logger = logging.getLogger(__name__)

# Sessions with this tag never get a target note
NO_TARGET_NOTE_TAG = "notn"


class PhraseSegmentExtractor:
    """
    Extract the WbpSources of one session.

    Example:
        extractor = PhraseSegmentExtractor(session)
        sources = extractor.extract(disallow_non_root_start=True)
    """

    def __init__(self, session: WbpSession, velocity: Optional[VelocityConfig] = None):
        self.session = session
        self.velocity = velocity
        self._crossing_notes: Optional[Dict[int, List[NoteEvent]]] = None

    @property
    def crossing_notes(self) -> Dict[int, List[NoteEvent]]:
        """Bar index -> notes crossing the start of this bar. Computed once per session."""
        if self._crossing_notes is None:
            crossing = phrases.get_crossing_notes(self.session.phrase, NON_QUANTIZED_WINDOW)
            for bar, notes in crossing.items():
                for n in notes:
                    logger.warning("Session %s: note %s crosses the start of bar %d", self.session.id, n, bar)
            self._crossing_notes = crossing
        return self._crossing_notes

    def candidate_windows(self) -> Iterator[Tuple[int, int]]:
        """Yield (bar, size) for each window, before any filtering."""
        for size in range(SIZE_MIN, SIZE_MAX + 1):
            for bar in range(0, self.session.bar_count - size + 1):
                yield bar, size

    def extract(self, disallow_non_root_start: bool = False,
                disallow_non_chord_tone_end: bool = False) -> List[WbpSource]:
        """
        Extract all the valid WbpSources of the session.

        Args:
            disallow_non_root_start: Reject phrases whose first note is not the first chord bass
            disallow_non_chord_tone_end: Reject phrases whose last note is not a tone of the last chord

        Returns:
            WbpSources ordered by size then start bar
        """
        res = []
        for bar, size in self.candidate_windows():
            if bar in self.crossing_notes or (bar + size) in self.crossing_notes:
                logger.debug("extract() session=%s bar=%d size=%d rejected: crossing note", self.session.id, bar, size)
                continue

            source = self.extract_window(bar, size)
            if source is None:
                logger.debug("extract() session=%s bar=%d size=%d rejected: no note", self.session.id, bar, size)
                continue
            if disallow_non_root_start and not source.starts_on_chord_bass:
                logger.debug("extract() %s rejected: non root start", source.id)
                continue
            if disallow_non_chord_tone_end and not source.ends_on_chord_tone:
                logger.debug("extract() %s rejected: non chord tone end", source.id)
                continue

            res.append(source.simplified())

        return res

    def extract_window(self, bar: int, size: int) -> Optional[WbpSource]:
        """Build the WbpSource of one window, chords not simplified. None if the window has no note."""
        session = self.session
        start = bar * session.beats_per_bar

        sp = phrases.slice_phrase(session.phrase, bar, size, NON_QUANTIZED_WINDOW)
        if sp.is_empty():
            return None

        return WbpSource.build(
            session_id=session.id,
            session_bar_offset=bar,
            bass_style=session.bass_style,
            chord_sequence=session.chord_sequence.sub_sequence(bar, size),
            phrase=sp,
            first_note_beat_shift=phrases.get_first_note_beat_shift(session.phrase, start, NON_QUANTIZED_WINDOW),
            target_note=self.get_target_note(bar + size),
            tags=session.tags,
            velocity=self.velocity,
            simplify_chords=False,
        )

    def get_target_note(self, next_bar: int) -> Optional[NoteEvent]:
        """
        Get the note expected right after a window ending before next_bar.

        The first note of next_bar if it is inside the session, otherwise the
        session target note. Always None for sessions tagged "notn".
        """
        session = self.session
        if session.has_tag(NO_TARGET_NOTE_TAG):
            return None
        if next_bar >= session.bar_count:
            return session.target_note

        bpb = session.beats_per_bar
        start = next_bar * bpb
        notes = session.phrase.notes_in(start - NON_QUANTIZED_WINDOW, start + bpb - NON_QUANTIZED_WINDOW)
        return notes[0].with_position(0.0) if notes else None


def extract(session: WbpSession, disallow_non_root_start: bool = False,
            disallow_non_chord_tone_end: bool = False,
            velocity: Optional[VelocityConfig] = None) -> List[WbpSource]:
    """Shortcut for PhraseSegmentExtractor(session).extract(...)."""
    return PhraseSegmentExtractor(session, velocity).extract(disallow_non_root_start, disallow_non_chord_tone_end)
