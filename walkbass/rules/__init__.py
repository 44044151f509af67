"""
Rules Subpackage

This package contains the musical rules of the phrase engine:
    - harmony.py: Notes, chord types and chord symbol parsing
    - phrases.py: Phrase slicing and post-slice repairs
    - root_profile.py: Transposition-invariant fingerprint of a chord sequence
    - equivalence.py: Detection of redundant phrases
    - chord_slice.py: Compatibility of a phrase part with another chord
    - transposition.py: Transposition direction and suitability score

Only the harmony module is re-exported here: the other modules depend on
walkbass.data, which itself depends on harmony.
"""

from walkbass.rules.harmony import ChordType, Degree, get_chord_type, parse_chord_symbol
