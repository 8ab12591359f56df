"""Optimal Recognition Point (ORP) calculation.

WHY: In RSVP the word is aligned on a fixed focal point. Readers
recognise a word fastest when the eye lands roughly a quarter to a third
of the way in, so the display anchors that letter (the "pivot") at the
centre of the screen.

HOW: A length bracket picks the base pivot, then word frequency nudges
it: very common longer words tolerate a later pivot, rare long words
want an earlier one.

RULES:
- Words of length <= 2 → 0
- Base pivot: 1 (<=5 chars), 2 (<=9), 3 (<=13), 4 (longer)
- +1 when frequency > 0.8 and length > 5
- -1 when frequency < 0.3 and length > 8
- Result is always within [0, len(word) - 1]
"""

from __future__ import annotations

from rsvp_pacer.core.linguistics import frequency_score


def calculate_orp_index(word: str) -> int:
    """Return the pivot character index for a word."""
    length = len(word)
    if length <= 2:
        return 0

    if length <= 5:
        base = 1
    elif length <= 9:
        base = 2
    elif length <= 13:
        base = 3
    else:
        base = 4

    frequency = frequency_score(word)
    if frequency > 0.8 and length > 5:
        adjustment = 1
    elif frequency < 0.3 and length > 8:
        adjustment = -1
    else:
        adjustment = 0

    return min(length - 1, max(0, base + adjustment))
