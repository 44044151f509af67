"""
DB Subpackage

The phrase database built from recorded sessions:
    - source.py: WbpSource, the retrievable phrase unit
    - extractor.py: Extraction of 1 to 4-bar WbpSources from a session
    - store.py: PhraseStore, the thread-safe indexed container
    - consistency.py: Offline audit of harmonic coverage
    - loader.py: Recording -> sessions -> store
"""

from walkbass.db.source import WbpSource
from walkbass.db.store import PhraseStore
