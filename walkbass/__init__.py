"""
Walkbass - Walking-Bass Phrase Retrieval Engine

A store of short walking-bass phrases extracted from recorded performances,
indexed by harmonic shape so that a bass-line generator can retrieve phrases
matching any chord progression and transpose them into a playable range.

Subpackages:
    - walkbass.data: Pydantic schemas (notes, chord sequences, sessions)
    - walkbass.rules: Harmony model, root profiles, phrase equivalence,
                      chord compatibility and transposition scoring
    - walkbass.db: WbpSource, segment extraction, the phrase store,
                   consistency checks and corpus loading

Example usage:
    from walkbass.db.loader import build_store
    from walkbass.rules.root_profile import RootProfile

    store = build_store(recordings)
    sources = store.get_by_style_and_profile(BassStyle.WALKING, RootProfile.of(chords))
    score, transpose = sources[0].transposition_score(45)
"""

__version__ = "0.1.0"
__author__ = "Rohan Rajendra Dhanawade"
