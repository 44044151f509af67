"""
Phrase Store - The Indexed WbpSource Container

The store holds the WbpSources in three indices:
    - by id
    - by session id
    - by (bass style, root profile), used for harmonic retrieval

The indices live in a private _Database whose add() and remove() are the
only mutators, so the three indices are always updated together. One
coarse reentrant lock protects every index access: the store is shared by
reference between a foreground thread and a background generation thread.
Read methods return snapshots (tuples or lists) which can be used without
the lock.

Author: Rohan Rajendra Dhanawade
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union
import logging
import threading

from walkbass.config import EngineConfig, get_config
from walkbass.data.schema import SIZE_MAX, SIZE_MIN, BassStyle, ChordSequence, SizedPhrase, WbpSession
from walkbass.db.extractor import PhraseSegmentExtractor
from walkbass.db.source import WbpSource
from walkbass.errors import DuplicateIdentityError, InternalConsistencyError, InvalidInputError
from walkbass.rules.equivalence import are_equivalent
from walkbass.rules.root_profile import RootProfile

logger = logging.getLogger(__name__)

StyleAndProfile = Tuple[BassStyle, RootProfile]


# =============================================================================
# INDICES
# =============================================================================

class _Database:
    """The three indices. add() and remove() are the only mutators."""

    def __init__(self):
        self.lock = threading.RLock()
        self._by_id: Dict[str, WbpSource] = {}
        self._by_session: Dict[str, List[WbpSource]] = defaultdict(list)
        self._by_style_profile: Dict[StyleAndProfile, List[WbpSource]] = defaultdict(list)

    def add(self, source: WbpSource) -> None:
        """
        Index source.

        Raises:
            DuplicateIdentityError: If a source with the same id is already indexed
            InternalConsistencyError: If the indices are out of sync
        """
        key = (source.bass_style, source.root_profile)
        with self.lock:
            if source.id in self._by_id:
                raise DuplicateIdentityError(source.id)
            if any(s.id == source.id for s in self._by_session.get(source.session_id, ())) \
                    or any(s.id == source.id for s in self._by_style_profile.get(key, ())):
                raise InternalConsistencyError(f"Orphan index entry found for {source.id}")
            self._by_id[source.id] = source
            self._by_session[source.session_id].append(source)
            self._by_style_profile[key].append(source)

    def remove(self, source_id: str) -> Optional[WbpSource]:
        """
        Remove a source from the indices.

        Returns:
            The removed source, None if source_id is unknown

        Raises:
            InternalConsistencyError: If the source is missing from one of the indices
        """
        with self.lock:
            source = self._by_id.pop(source_id, None)
            if source is None:
                return None
            self._remove_from(self._by_session, source.session_id, source_id)
            self._remove_from(self._by_style_profile, (source.bass_style, source.root_profile), source_id)
            return source

    @staticmethod
    def _remove_from(index: Dict, key, source_id: str) -> None:
        bucket = index.get(key)
        i = next((i for i, s in enumerate(bucket or ()) if s.id == source_id), -1)
        if i < 0:
            raise InternalConsistencyError(f"WbpSource {source_id} missing from index bucket {key}")
        del bucket[i]
        if not bucket:
            del index[key]

    def get(self, source_id: str) -> Optional[WbpSource]:
        with self.lock:
            return self._by_id.get(source_id)

    def by_session(self, session_id: str) -> Tuple[WbpSource, ...]:
        with self.lock:
            return tuple(self._by_session.get(session_id, ()))

    def by_style_profile(self, key: StyleAndProfile) -> Tuple[WbpSource, ...]:
        with self.lock:
            return tuple(self._by_style_profile.get(key, ()))

    def all(self) -> List[WbpSource]:
        with self.lock:
            return list(self._by_id.values())

    def size(self) -> int:
        with self.lock:
            return len(self._by_id)

    def check_coherence(self) -> None:
        """
        Verify that each indexed source is in exactly one bucket of each index, and vice versa.

        Raises:
            InternalConsistencyError: On the first violation found
        """
        with self.lock:
            for name, index in (("by_session", self._by_session), ("by_style_profile", self._by_style_profile)):
                ids = [s.id for bucket in index.values() for s in bucket]
                if len(ids) != len(set(ids)) or set(ids) != set(self._by_id):
                    raise InternalConsistencyError(f"Index {name} is out of sync with by_id")
            for source_id, source in self._by_id.items():
                if source not in self._by_style_profile.get((source.bass_style, source.root_profile), ()):
                    raise InternalConsistencyError(f"{source_id} is in the wrong by_style_profile bucket")
                if source not in self._by_session.get(source.session_id, ()):
                    raise InternalConsistencyError(f"{source_id} is in the wrong by_session bucket")


# =============================================================================
# PHRASE STORE
# =============================================================================

class PhraseStore:
    """
    The WbpSource database.

    Build one instance at startup and share it by reference.

    Example:
        store = PhraseStore()
        store.add_session(session)
        sources = store.get_by_style_and_profile(BassStyle.WALKING, RootProfile.of(chords))
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or get_config()
        self._db = _Database()
        self._session_resources: Dict[str, Optional[str]] = {}

    # ---------------------------
    # Mutators
    # ---------------------------

    def add(self, source: WbpSource) -> bool:
        """
        Add a WbpSource unless it is redundant.

        Returns:
            False if the id is already used (logged as an error) or if an
            equivalent source is already stored, True if source was added
        """
        with self._db.lock:
            if self._db.get(source.id) is not None:
                logger.error("add() a WbpSource with id %s is already stored", source.id)
                return False
            redundant = self.find_first_compatible(source.bass_style, source.chord_sequence, source.phrase)
            if redundant is not None:
                logger.debug("add() %s skipped, redundant with %s", source.id, redundant.id)
                return False
            self._db.add(source)
        return True

    def remove(self, source: Union[WbpSource, str]) -> bool:
        """Remove a WbpSource (or a WbpSource id). False if not found."""
        source_id = source if isinstance(source, str) else source.id
        return self._db.remove(source_id) is not None

    def add_session(self, session: WbpSession, resource: Optional[str] = None,
                    disallow_non_root_start: Optional[bool] = None,
                    disallow_non_chord_tone_end: Optional[bool] = None) -> int:
        """
        Extract the WbpSources of a session and add the non-redundant ones.

        Args:
            session: The session
            resource: Name of the recording the session comes from
            disallow_non_root_start: Defaults to the extraction config
            disallow_non_chord_tone_end: Defaults to the extraction config

        Returns:
            Number of WbpSources added

        Raises:
            DuplicateIdentityError: If an extracted id is already stored
        """
        extraction = self.config.extraction
        if disallow_non_root_start is None:
            disallow_non_root_start = extraction.disallow_non_root_start
        if disallow_non_chord_tone_end is None:
            disallow_non_chord_tone_end = extraction.disallow_non_chord_tone_end

        extractor = PhraseSegmentExtractor(session, self.config.velocity)
        sources = extractor.extract(disallow_non_root_start, disallow_non_chord_tone_end)

        count = 0
        with self._db.lock:
            self._session_resources[session.id] = resource
            for source in sources:
                if self.find_first_compatible(source.bass_style, source.chord_sequence, source.phrase) is None:
                    self._db.add(source)
                    count += 1
        logger.debug("add_session() session=%s: %d/%d WbpSources added", session.id, count, len(sources))
        return count

    # ---------------------------
    # Queries
    # ---------------------------

    def get_by_id(self, source_id: str) -> Optional[WbpSource]:
        return self._db.get(source_id)

    def get_by_session(self, session_id: str) -> Tuple[WbpSource, ...]:
        return self._db.by_session(session_id)

    def get_by_style_and_profile(self, style: BassStyle, profile: RootProfile) -> Tuple[WbpSource, ...]:
        """Snapshot of the sources of a (style, root profile) key, empty if unknown."""
        return self._db.by_style_profile((style, profile))

    def get_all(self, bar_count: Optional[int] = None, styles: Sequence[BassStyle] = ()) -> List[WbpSource]:
        """
        Scan all the sources. For diagnostics only.

        Args:
            bar_count: If set (1-4), keep only sources of this size
            styles: If not empty, keep only sources of these styles

        Raises:
            InvalidInputError: If bar_count is out of range
        """
        if bar_count is not None and not SIZE_MIN <= bar_count <= SIZE_MAX:
            raise InvalidInputError(f"bar_count must be in {SIZE_MIN}-{SIZE_MAX}. Got: {bar_count}")
        return [s for s in self._db.all()
                if (bar_count is None or s.bar_count == bar_count)
                and (not styles or s.bass_style in styles)]

    def get_session_resource(self, session_id: str) -> Optional[str]:
        """Name of the recording a session was loaded from."""
        with self._db.lock:
            return self._session_resources.get(session_id)

    def has_session(self, session_id: str) -> bool:
        with self._db.lock:
            return session_id in self._session_resources

    def get_related(self, source: WbpSource) -> List[WbpSource]:
        """Sources of the same session whose bars overlap those of source, source excluded."""
        from_bar, to_bar = source.bar_range_in_session()
        res = []
        for s in self.get_by_session(source.session_id):
            s_from, s_to = s.bar_range_in_session()
            if not s.same_identity(source) and s_from <= to_bar and from_bar <= s_to:
                res.append(s)
        return res

    def get_matching_sources(self, style: BassStyle, chord_sequence: ChordSequence) -> List[WbpSource]:
        """Sources with the same root profile which can be played on chord_sequence."""
        try:
            profile = RootProfile.of(chord_sequence)
        except InvalidInputError as e:
            logger.warning("get_matching_sources() invalid chord sequence %s: %s", chord_sequence, e)
            return []
        return [s for s in self.get_by_style_and_profile(style, profile)
                if s.harmonic_compatibility(chord_sequence) > 0]

    def find_first_compatible(self, style: BassStyle, chord_sequence: ChordSequence, phrase: SizedPhrase,
                              check_duration: bool = True) -> Optional[WbpSource]:
        """
        Find a stored source which makes (chord_sequence, phrase) redundant.

        A source is compatible if it has the same root profile, equivalent
        notes and a positive harmonic compatibility with chord_sequence.
        """
        for s in self.get_by_style_and_profile(style, RootProfile.of(chord_sequence)):
            if are_equivalent(phrase, s.phrase, check_duration) and s.harmonic_compatibility(chord_sequence) > 0:
                return s
        return None

    def check_coherence(self) -> None:
        """Raise InternalConsistencyError if the indices are out of sync."""
        self._db.check_coherence()

    def check_size(self, expected: int) -> bool:
        """Check the number of stored sources, log an error if it differs from expected."""
        size = len(self)
        if size != expected:
            logger.error("check_size() expected %d WbpSources, found %d", expected, size)
            return False
        return True

    def dump(self, styles: Iterable[BassStyle] = ()) -> None:
        """Log the content of the store at INFO level."""
        sources = self.get_all(styles=list(styles))
        logger.info("PhraseStore: %d WbpSources", len(sources))
        for size in range(SIZE_MIN, SIZE_MAX + 1):
            logger.info("  size=%d: %d", size, sum(1 for s in sources if s.bar_count == size))
        for s in sorted(sources, key=lambda s: s.id):
            logger.info("  %s", s)

    def __len__(self) -> int:
        return self._db.size()

    def __contains__(self, source: Union[WbpSource, str]) -> bool:
        source_id = source if isinstance(source, str) else source.id
        return self._db.get(source_id) is not None
