"""
Equivalence Checker - Detection of Redundant Phrases

Two phrases are equivalent when they play the same melodic shape with the
same rhythm, whatever their starting pitch. Storing both would add nothing
to the phrase database.
"""

from walkbass.data.schema import NON_QUANTIZED_WINDOW, SizedPhrase


def are_equivalent(a: SizedPhrase, b: SizedPhrase, check_duration: bool,
                   window: float = NON_QUANTIZED_WINDOW) -> bool:
    """
    Check if two phrases are musically redundant.

    Phrases are equivalent if they have the same number of notes and, note by
    note in order:
        - the same interval from the previous note
        - positions within window
        - if check_duration, durations within 2 * window

    Example:
        C2 E2 G2 A2 and F2 A2 C3 D3 in quarter notes -> True
    """
    if len(a.notes) != len(b.notes):
        return False

    for i, (na, nb) in enumerate(zip(a.notes, b.notes)):
        if i > 0:
            pa, pb = a.notes[i - 1], b.notes[i - 1]
            if na.pitch - pa.pitch != nb.pitch - pb.pitch:
                return False
        if abs(na.position - nb.position) > window:
            return False
        if check_duration and abs(na.duration - nb.duration) > 2 * window:
            return False

    return True
