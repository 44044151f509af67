"""
Data Subpackage

This package holds the value types shared by the whole engine:
    - schema.py: Pydantic models for notes, chord symbols, chord sequences,
                 sized phrases and recorded sessions

Every model is frozen. Helpers such as NoteEvent.transposed() or
ChordSequence.sub_sequence() return new instances.
"""

from walkbass.data.schema import (
    BassStyle,
    ChordSequence,
    ChordSlot,
    ChordSymbol,
    NoteEvent,
    SizedPhrase,
    WbpSession,
)
