"""
Tests for the phrase segment extractor (walkbass/db/extractor.py)

Run with: pytest tests/test_extractor.py -v
"""

import logging

import pytest

from walkbass.data.schema import NoteEvent, SizedPhrase, WbpSession
from walkbass.db.extractor import PhraseSegmentExtractor, extract
from tests.builders import make_chords, make_session

# C E G A | F A C D
TWO_BARS = [36, 40, 43, 45, 41, 45, 48, 50]


def session_with_notes(notes, chords, bar_count, session_id="S1", tags=("walking",)):
    return WbpSession(
        id=session_id,
        tags=frozenset(tags),
        chord_sequence=make_chords(chords, bar_count),
        phrase=SizedPhrase(bar_count=bar_count,
                           notes=tuple(NoteEvent(pitch=p, position=pos, duration=d) for p, pos, d in notes)),
    )


class TestWindows:
    """Test window enumeration."""

    @pytest.mark.parametrize("bar_count,expected", [(1, 1), (2, 3), (4, 10), (5, 14)])
    def test_candidate_window_count(self, bar_count, expected):
        session = make_session([36], [(0, "C")], bar_count)
        assert len(list(PhraseSegmentExtractor(session).candidate_windows())) == expected

    def test_windows_never_exceed_four_bars(self):
        session = make_session([36], [(0, "C")], 6)
        assert max(size for _, size in PhraseSegmentExtractor(session).candidate_windows()) == 4


class TestExtract:
    """Test the extraction of a simple two-bar session."""

    def test_two_bar_session(self):
        session = make_session(TWO_BARS, [(0, "C"), (4, "F")], 2)
        sources = extract(session)

        assert [s.id for s in sources] == ["S1#from=0#size=1", "S1#from=1#size=1", "S1#from=0#size=2"]
        bar0, bar1, both = sources
        assert bar0.phrase.pitches == [36, 40, 43, 45]
        assert bar1.phrase.pitches == [41, 45, 48, 50]
        assert str(bar1.chord_sequence) == "[F@0]"
        assert str(both.chord_sequence) == "[C@0 F@4]"
        assert both.phrase.pitches == TWO_BARS
        assert bar1.session_bar_offset == 1
        assert all(s.session_id == "S1" and s.has_tag("walking") for s in sources)

    def test_target_notes(self):
        session = make_session(TWO_BARS, [(0, "C"), (4, "F")], 2, target_note=NoteEvent(pitch=43, duration=1.0))
        bar0, bar1, both = extract(session)
        assert bar0.target_note.pitch == 41
        assert bar0.target_note.position == 0
        assert bar1.target_note.pitch == 43
        assert both.target_note.pitch == 43

    def test_no_target_note_tag(self):
        session = make_session(TWO_BARS, [(0, "C"), (4, "F")], 2, tags=("walking", "notn"),
                               target_note=NoteEvent(pitch=43, duration=1.0))
        assert all(s.target_note is None for s in extract(session))

    def test_empty_window_is_skipped(self):
        session = make_session([36, 40, 43, 45], [(0, "C"), (4, "F")], 2)
        sources = extract(session)
        assert [s.id for s in sources] == ["S1#from=0#size=1", "S1#from=0#size=2"]
        assert sources[0].target_note is None

    def test_early_note_starts_next_bar(self):
        notes = [(36, 0, 0.8), (40, 1, 0.8), (43, 2, 0.8), (45, 3, 0.8),
                 (41, 3.9, 0.8), (45, 5, 0.8), (48, 6, 0.8), (50, 7, 0.8)]
        session = session_with_notes(notes, [(0, "C"), (4, "F")], 2)
        bar0, bar1, _ = extract(session)
        assert bar0.phrase.pitches == [36, 40, 43, 45]
        assert bar1.phrase.first_note.position == 0
        assert bar1.first_note_beat_shift == pytest.approx(-0.1)
        assert bar0.first_note_beat_shift == 0
        assert bar0.target_note.pitch == 41

    def test_crossing_note_rejects_windows(self, caplog):
        notes = [(36, 0, 0.8), (40, 1, 0.8), (43, 2, 0.8), (45, 3, 2.0), (48, 5, 0.8), (50, 6, 0.8)]
        session = session_with_notes(notes, [(0, "C"), (4, "F")], 2)
        extractor = PhraseSegmentExtractor(session)
        with caplog.at_level(logging.WARNING, logger="walkbass.db.extractor"):
            sources = extractor.extract()
            extractor.extract()
        assert [s.id for s in sources] == ["S1#from=0#size=2"]
        assert len([r for r in caplog.records if "crosses" in r.getMessage()]) == 1

    def test_octave_fix(self):
        session = make_session([48, 52, 55, 52], [(0, "C")], 1)
        assert extract(session)[0].phrase.pitches == [36, 40, 43, 40]

    def test_chords_are_simplified(self):
        session = make_session([36, 40, 43, 40], [(0, "C69")], 1)
        source = extract(session)[0]
        assert str(source.chord_sequence) == "[C@0]"
        assert str(source.original_chord_sequence) == "[C69@0]"


class TestPolicyFilters:
    """Test the optional start and end filters."""

    def test_non_root_start(self):
        # C E G E | A F C A: bar 1 starts on the third of F
        session = make_session([36, 40, 43, 40, 45, 41, 48, 45], [(0, "C"), (4, "F")], 2)
        assert len(extract(session)) == 3
        ids = [s.id for s in extract(session, disallow_non_root_start=True)]
        assert ids == ["S1#from=0#size=1", "S1#from=0#size=2"]

    def test_slash_chord_bass_start(self):
        session = make_session([40, 43, 36, 43], [(0, "C/E")], 1)
        assert len(extract(session, disallow_non_root_start=True)) == 1

    def test_non_chord_tone_end(self):
        # Every window of C E G A | F A C D ends on a sixth
        session = make_session(TWO_BARS, [(0, "C"), (4, "F")], 2)
        assert extract(session, disallow_non_chord_tone_end=True) == []

        session = make_session([36, 40, 43, 40, 41, 45, 48, 45], [(0, "C"), (4, "F")], 2)
        assert len(extract(session, disallow_non_chord_tone_end=True)) == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
