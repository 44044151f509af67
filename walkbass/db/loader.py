"""
Corpus Loader - Recorded Performances to PhraseStore

A performance recording is one long bass track, already decoded into
notes and text markers (positions in beats):
    - "_Name" marks the start of a session, "_END" the end of the last one
    - "#tag" markers at a session start add tags to the session
    - markers starting with A-G are chord symbols ("C7", "Ebm7/Bb")

Each session is turned into a WbpSession, then into WbpSources added to
a PhraseStore. A malformed session is logged and skipped, the rest of the
recording is still loaded.

Author: Rohan Rajendra Dhanawade
"""

from typing import List, Mapping, Optional, Set
import logging
import math
import time

from pydantic import BaseModel, Field, ValidationError
from tqdm import tqdm

from walkbass.config import EngineConfig, get_config
from walkbass.data.schema import (
    DEFAULT_BEATS_PER_BAR,
    BassStyle,
    ChordSequence,
    ChordSlot,
    ChordSymbol,
    NoteEvent,
    SizedPhrase,
    WbpSession,
)
from walkbass.db.store import PhraseStore
from walkbass.errors import InvalidInputError

logger = logging.getLogger(__name__)

SESSION_MARKER_PREFIX = "_"
END_MARKER = "_END"
TAG_MARKER_PREFIX = "#"
TARGET_NOTE_TAG_PREFIX = "tn="
WALKING_TAG = "walking"
TWO_FEEL_TAG_PREFIX = "2feel"

# Positions closer than this are considered equal
POSITION_TOLERANCE = 1e-6


# =============================================================================
# INPUT MODELS
# =============================================================================

class MarkerEvent(BaseModel):
    """A text marker at a beat position."""
    position: float = Field(..., ge=0)
    text: str


class PerformanceRecording(BaseModel):
    """
    A decoded recording: notes and markers with absolute positions in beats.

    Example:
        PerformanceRecording(
            notes=[NoteEvent(pitch=36, duration=0.9, position=0), ...],
            markers=[MarkerEvent(position=0, text="_Blues1"), MarkerEvent(position=0, text="C7"), ...],
        )
    """
    name: str = ""
    beats_per_bar: int = Field(default=DEFAULT_BEATS_PER_BAR, ge=1)
    notes: List[NoteEvent] = Field(default_factory=list)
    markers: List[MarkerEvent] = Field(default_factory=list)


# =============================================================================
# SESSIONS
# =============================================================================

def compute_bass_style(tags: Set[str]) -> BassStyle:
    """
    Get the bass style from the session tags.

    "2feel..." -> TWO_FEEL, "walking" -> WALKING. Both or none is an error,
    WALKING is then used.
    """
    two_feel = any(t.startswith(TWO_FEEL_TAG_PREFIX) for t in tags)
    walking = WALKING_TAG in tags
    if two_feel == walking:
        logger.error("compute_bass_style() can't get a single bass style from tags=%s, using %s",
                     sorted(tags), BassStyle.WALKING.value)
        return BassStyle.WALKING
    return BassStyle.TWO_FEEL if two_feel else BassStyle.WALKING


def _is_chord_marker(text: str) -> bool:
    return bool(text) and "A" <= text[0] <= "G"


def _get_target_note(tags: Set[str]) -> Optional[NoteEvent]:
    tag = next((t for t in sorted(tags) if t.startswith(TARGET_NOTE_TAG_PREFIX)), None)
    if tag is None:
        return None
    try:
        return NoteEvent(pitch=int(tag[len(TARGET_NOTE_TAG_PREFIX):]), duration=1.0)
    except (ValueError, ValidationError) as e:
        raise InvalidInputError(f"Invalid target note tag '{tag}'") from e


def _build_session(recording: PerformanceRecording, session_id: str, start: float, end: float,
                   tags: Set[str]) -> Optional[WbpSession]:
    """Build one session from the [start, end) beat range. None if it has no note."""
    bpb = recording.beats_per_bar
    if abs(start / bpb - round(start / bpb)) > POSITION_TOLERANCE:
        raise InvalidInputError(f"Session {session_id} does not start on a bar (beat {start})")
    nb_bars = round((end - start) / bpb)
    if nb_bars < 1 or abs((end - start) - nb_bars * bpb) > POSITION_TOLERANCE:
        raise InvalidInputError(f"Session {session_id} does not cover whole bars ({end - start} beats)")

    notes = [n.with_position(n.position - start) for n in recording.notes if start <= n.position < end]
    if not notes:
        return None

    slots = []
    for m in recording.markers:
        if not (start <= m.position < end and _is_chord_marker(m.text)):
            continue
        beat_pos = m.position - start
        bar = math.floor(beat_pos / bpb)
        beat = round(beat_pos - bar * bpb)
        slots.append(ChordSlot(position=bar * bpb + beat, chord=ChordSymbol.from_string(m.text)))
    slots.sort(key=lambda s: s.position)

    return WbpSession(
        id=session_id,
        tags=frozenset(tags),
        bass_style=compute_bass_style(tags),
        chord_sequence=ChordSequence(bar_count=nb_bars, beats_per_bar=bpb, slots=tuple(slots)),
        phrase=SizedPhrase(bar_count=nb_bars, beats_per_bar=bpb, notes=tuple(notes)),
        target_note=_get_target_note(tags),
    )


def load_sessions(recording: PerformanceRecording, session_id_prefix: str = "",
                  session_tag: str = "") -> List[WbpSession]:
    """
    Extract the sessions of a recording.

    Args:
        recording: The decoded recording
        session_id_prefix: Added before each session id
        session_tag: Added to the tags of each session

    Returns:
        The valid sessions. Malformed sessions are logged and skipped.

    Raises:
        InvalidInputError: If the last session marker is not "_END"
    """
    markers = sorted(recording.markers, key=lambda m: m.position)
    session_markers = [m for m in markers if m.text.startswith(SESSION_MARKER_PREFIX)]
    if not session_markers or session_markers[-1].text.strip().upper() != END_MARKER:
        raise InvalidInputError(f"Recording '{recording.name}': the last session marker must be {END_MARKER}")

    res = []
    session_ids = set()
    for marker, next_marker in zip(session_markers, session_markers[1:]):
        session_id = session_id_prefix + marker.text[len(SESSION_MARKER_PREFIX):].strip()
        start, end = marker.position, next_marker.position

        tags = {session_tag.lower()} if session_tag else set()
        tags.update(m.text[len(TAG_MARKER_PREFIX):].strip().lower() for m in markers
                    if abs(m.position - start) <= POSITION_TOLERANCE and m.text.startswith(TAG_MARKER_PREFIX))

        try:
            session = _build_session(recording, session_id, start, end, tags)
        except (InvalidInputError, ValidationError) as e:
            logger.error("load_sessions() recording=%s skipping invalid session %s: %s", recording.name, session_id, e)
            continue

        if session is None:
            logger.debug("load_sessions() recording=%s empty session %s", recording.name, session_id)
            continue
        if session_id in session_ids:
            logger.error("load_sessions() recording=%s ignoring session with duplicate id %s",
                         recording.name, session_id)
            continue

        session_ids.add(session_id)
        res.append(session)

    return res


# =============================================================================
# CORPUS
# =============================================================================

def load_corpus(store: PhraseStore, recordings: Mapping[str, PerformanceRecording],
                config: Optional[EngineConfig] = None) -> int:
    """
    Load the recordings listed in the corpus config into store.

    Returns:
        Number of WbpSources added
    """
    config = config or store.config
    t0 = time.perf_counter()
    count = 0
    nb_sessions = 0

    for name, entry in config.corpus.items():
        recording = recordings.get(name)
        if recording is None:
            logger.warning("load_corpus() no recording named %s", name)
            continue

        try:
            sessions = load_sessions(recording, entry.prefix, entry.tag)
        except InvalidInputError as e:
            logger.error("load_corpus() skipping recording %s: %s", name, e)
            continue

        for session in tqdm(sessions, desc=name, disable=not config.progress.show_progress):
            if store.has_session(session.id):
                logger.error("load_corpus() ignoring session with duplicate id %s (recording=%s)", session.id, name)
                continue
            # DuplicateIdentityError is not caught: the store is no longer coherent
            try:
                count += store.add_session(session, resource=name)
            except (InvalidInputError, ValidationError) as e:
                logger.error("load_corpus() skipping session %s (recording=%s): %s", session.id, name, e)
                continue
            nb_sessions += 1

    logger.info("load_corpus() %d sessions, %d WbpSources added in %.2fs",
                nb_sessions, count, time.perf_counter() - t0)
    return count


def build_store(recordings: Mapping[str, PerformanceRecording],
                config: Optional[EngineConfig] = None) -> PhraseStore:
    """Create a PhraseStore and load the corpus in it."""
    config = config or get_config()
    store = PhraseStore(config)
    load_corpus(store, recordings, config)
    return store
