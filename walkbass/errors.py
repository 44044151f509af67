"""
Error types for the phrase retrieval engine.

    - InvalidInputError: bad chord sequences, bar ranges or recordings.
      Surfaced to the caller; the corpus loader logs and skips the session.
    - DuplicateIdentityError: a WbpSource id was indexed twice. Ids are
      derived deterministically, so this is a logic bug and is never caught.
    - InternalConsistencyError: the store indices went out of sync.
"""


class WalkbassError(Exception):
    """Base class for all engine errors."""


class InvalidInputError(WalkbassError, ValueError):
    """Input data does not satisfy the engine's preconditions."""


class DuplicateIdentityError(WalkbassError, RuntimeError):
    """A WbpSource with the same id is already indexed."""

    def __init__(self, source_id: str):
        super().__init__(f"Duplicate WbpSource id: '{source_id}'")
        self.source_id = source_id


class InternalConsistencyError(WalkbassError, RuntimeError):
    """The store indices disagree with each other."""
