"""
Consistency Checker - Offline Audit of a PhraseStore

Diagnostic pass, not used when retrieving phrases. It looks for:
    1. Chord types with no (or only one) 1-bar phrase to play them
    2. Two-chords-per-bar combinations with no (or only one) phrase
    3. 1-bar phrases with suspiciously close onsets or very short notes,
       usually left by the recording or the extraction

Findings are logged at ERROR level and returned in a ConsistencyReport.
Nothing is corrected.

Author: Rohan Rajendra Dhanawade
"""

from typing import List, Optional
import logging

from pydantic import BaseModel, Field

from walkbass.config import EngineConfig
from walkbass.data.schema import BassStyle, ChordSequence, ChordSlot, ChordSymbol
from walkbass.db.store import PhraseStore
from walkbass.rules.harmony import base_chord_types

logger = logging.getLogger(__name__)

# Position (beats) of the second chord in two-chords-per-bar combinations
SECOND_CHORD_BEAT = 2.0


class ConsistencyReport(BaseModel):
    """
    Findings of a consistency check.

    Chord sequences are listed as strings, e.g. "[Cm@0 F7@2]".
    """
    style: BassStyle
    one_chord_zero_match: List[str] = Field(default_factory=list)
    one_chord_one_match: List[str] = Field(default_factory=list)
    two_chords_zero_match: List[str] = Field(default_factory=list)
    two_chords_one_match: List[str] = Field(default_factory=list)
    suspicious_sources: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.one_chord_zero_match or self.one_chord_one_match or self.two_chords_zero_match
                    or self.two_chords_one_match or self.suspicious_sources)


class ConsistencyChecker:
    """
    Audit the harmonic coverage and the note content of a PhraseStore.

    Example:
        report = ConsistencyChecker(store).check(BassStyle.WALKING)
    """

    def __init__(self, store: PhraseStore, config: Optional[EngineConfig] = None):
        self.store = store
        self.config = config or store.config

    def check(self, style: BassStyle) -> ConsistencyReport:
        report = ConsistencyReport(style=style)
        self.check_one_chord_coverage(style, report)
        self.check_two_chords_coverage(style, report)
        self.check_suspicious_notes(style, report)
        logger.info("check() style=%s done, ok=%s", style.value, report.ok)
        return report

    def check_one_chord_coverage(self, style: BassStyle, report: ConsistencyReport) -> None:
        for ct in base_chord_types():
            cs = ChordSymbol(root=0, chord_type=ct.name)
            seq = ChordSequence(bar_count=1, slots=(ChordSlot(position=0, chord=cs),))
            nb = len(self.store.get_matching_sources(style, seq))
            if nb == 0:
                logger.error("style=%s chord=%s: no matching 1-bar WbpSource", style.value, cs)
                report.one_chord_zero_match.append(str(seq))
            elif nb == 1:
                logger.error("style=%s chord=%s: only 1 matching 1-bar WbpSource", style.value, cs)
                report.one_chord_one_match.append(str(seq))

    def check_two_chords_coverage(self, style: BassStyle, report: ConsistencyReport) -> None:
        for base in self.config.consistency.base_chords:
            cs0 = ChordSymbol.from_string(base)
            for ct in base_chord_types():
                for root in range(12):
                    cs2 = ChordSymbol(root=root, chord_type=ct.name)
                    if cs2 == cs0:
                        continue
                    seq = ChordSequence(bar_count=1, slots=(ChordSlot(position=0, chord=cs0),
                                                            ChordSlot(position=SECOND_CHORD_BEAT, chord=cs2)))
                    nb = len(self.store.get_matching_sources(style, seq))
                    if nb == 0:
                        report.two_chords_zero_match.append(str(seq))
                    elif nb == 1:
                        report.two_chords_one_match.append(str(seq))

        for seq in report.two_chords_zero_match:
            logger.error("style=%s %s: no matching 1-bar WbpSource", style.value, seq)
        for seq in report.two_chords_one_match:
            logger.error("style=%s %s: only 1 matching 1-bar WbpSource", style.value, seq)

    def check_suspicious_notes(self, style: BassStyle, report: ConsistencyReport) -> None:
        limit = self.config.consistency.short_note_limit
        for source in self.store.get_all(bar_count=1, styles=[style]):
            notes = source.phrase.notes
            close = any(b.position - a.position < limit for a, b in zip(notes, notes[1:]))
            short = any(n.duration < limit for n in notes)
            if close or short:
                logger.error("%s: suspicious notes (close onsets=%s, short notes=%s) %s",
                             source.id, close, short, source.phrase)
                report.suspicious_sources.append(source.id)
