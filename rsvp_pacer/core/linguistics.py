"""Heuristic word analysis: syllables, frequency, complexity, clauses, dialogue.

WHY: Display time should follow how hard a word is to read. True NLP
models are slow and heavy, but a handful of cheap deterministic
heuristics (vowel groups, curated common-word lists, closed sets of
clause starters and speech verbs) capture most of the signal.

HOW: Plain functions over a single word string. The only stateful piece
is DialogueState, an explicit object the tokenizer creates per chapter
and feeds quote characters into.

RULES:
- Nothing here raises; unknown input degrades to a heuristic default
- count_syllables() returns at least 1 for any non-empty word
- frequency_score() is 1.0 / 0.85 / 0.7 for listed words, otherwise a
  length heuristic clamped to [0.1, 0.6]
- complexity_multiplier() is clamped to [0.8, 1.6]
- No module-level mutable state: dialogue tracking lives in DialogueState
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

_VOWELS = frozenset("aeiouy")

VERY_COMMON_WORDS = frozenset("""
the be to of and a in that have i it for not on with he as you do at
this but his by from they we say her she or an will my one all would
there their what so up out if about who get which go me when make can
like time no just him know take people into year your good some could
them see other than then now look only come its over think also back
after use two how our work first well way even new want because any
these give day most us
""".split())

COMMON_WORDS = frozenset("""
been has more was were being had did does should much before where must
through too very still those such here why came each may same both find
long down made said while own part under might great never world hand
high every last place went right old again found around three small
between always next few house put thought eyes many head away once upon
home
""".split())

MODERATE_WORDS = frozenset("""
something nothing another without though against enough almost perhaps
during however morning together behind across anything everyone
everything sometimes suddenly already himself herself themselves became
woman children called really young asked father mother going looking
night money water
""".split())

CLAUSE_STARTERS = frozenset("""
which that who whom whose where when while because although though
unless until since if after before whenever wherever whether however
therefore moreover furthermore nevertheless meanwhile otherwise besides
hence thus consequently accordingly
""".split())

COORDINATING_CONJUNCTIONS = frozenset(["for", "and", "nor", "but", "or", "yet", "so"])

# Words after a conjunction that usually open a new independent clause.
_NEW_THOUGHT_OPENERS = frozenset(["i", "he", "she", "they", "we", "it", "the", "a", "an"])

SPEAKER_VERBS = frozenset("""
said asked replied answered whispered shouted yelled muttered murmured
exclaimed declared demanded inquired responded added continued explained
insisted suggested warned promised
""".split())

SPEAKER_TAG_MULTIPLIER = 0.85

_SPEAKER_TAG_PATTERNS = (
    re.compile(r"^(he|she|they|i|we|it|\w+) (said|asked|replied|answered|whispered)"),
    re.compile(r"(said|asked|replied) (he|she|they|\w+)$"),
    re.compile(r'^".*" (said|asked|replied)'),
)


# ---------------------------------------------------------------------------
# Word difficulty
# ---------------------------------------------------------------------------


def count_syllables(word: str) -> int:
    """Estimate the syllable count of an English word.

    HOW: Count vowel groups, then adjust for a silent final "e",
    a consonant + "le" coda, and a usually silent "-ed".

    RULES:
    - Empty string → 0
    - Words of one or two letters → 1
    - Otherwise at least 1
    """
    if not word:
        return 0
    lower = word.lower().strip()
    if len(lower) <= 2:
        return 1

    count = 0
    prev_was_vowel = False
    for ch in lower:
        is_vowel = ch in _VOWELS
        if is_vowel and not prev_was_vowel:
            count += 1
        prev_was_vowel = is_vowel

    if lower.endswith("e") and count > 1 and not lower.endswith("le"):
        count -= 1

    if lower.endswith("le") and lower[-3] not in _VOWELS:
        count += 1

    if lower.endswith("ed") and count > 1 and lower[-3] not in ("t", "d"):
        count -= 1

    return max(1, count)


def frequency_score(word: str) -> float:
    """Score how common a word is, from 0.0 (rare) to 1.0 (everywhere).

    WHY: Common words are recognised almost instantly; rare ones need
    more time.

    HOW: Lowercase exact match against three curated lists. Unknown
    words fall back to a length bracket (shorter → more common) with a
    small suffix adjustment, clamped to [0.1, 0.6].
    """
    lower = word.lower()
    if lower in VERY_COMMON_WORDS:
        return 1.0
    if lower in COMMON_WORDS:
        return 0.85
    if lower in MODERATE_WORDS:
        return 0.7

    length = len(lower)
    if length <= 4:
        base = 0.6
    elif length <= 6:
        base = 0.5
    elif length <= 8:
        base = 0.4
    elif length <= 10:
        base = 0.3
    else:
        base = 0.2

    if lower.endswith("ing") or lower.endswith("ed"):
        bonus = 0.1
    elif lower.endswith("ly"):
        bonus = 0.05
    elif lower.endswith("ness") or lower.endswith("ment"):
        bonus = 0.0
    elif lower.endswith("tion"):
        bonus = -0.05
    elif lower.endswith("ology"):
        bonus = -0.1
    else:
        bonus = 0.0

    return min(0.6, max(0.1, base + bonus))


def complexity_multiplier(word: str) -> float:
    """Combine syllables, frequency, and length into one timing factor.

    Each syllable beyond the first adds 10%, rarity adds up to 30%, and
    words longer than ten characters add another 10%. The product is
    clamped to [0.8, 1.6].
    """
    syllables = count_syllables(word)
    frequency = frequency_score(word)

    syllable_factor = 1.0 + (syllables - 1) * 0.1
    frequency_factor = 1.0 + (1.0 - frequency) * 0.3
    length_factor = 1.1 if len(word) > 10 else 1.0

    return min(1.6, max(0.8, syllable_factor * frequency_factor * length_factor))


# ---------------------------------------------------------------------------
# Clause structure
# ---------------------------------------------------------------------------


def is_clause_boundary(word: str) -> bool:
    """True if the word usually opens a subordinate clause."""
    return word.lower() in CLAUSE_STARTERS


def is_coordinating_conjunction(word: str) -> bool:
    return word.lower() in COORDINATING_CONJUNCTIONS


def clause_pause_factor(word: str, next_word: Optional[str]) -> float:
    """Pause factor for a word based on the clause structure around it.

    RULES:
    - Clause starters → 1.15
    - A conjunction followed by a pronoun or article → 1.2
    - Anything else → 1.0
    """
    lower = word.lower()
    if lower in CLAUSE_STARTERS:
        return 1.15
    if lower in COORDINATING_CONJUNCTIONS and next_word is not None:
        if next_word.lower() in _NEW_THOUGHT_OPENERS:
            return 1.2
    return 1.0


def is_parenthetical_marker(text: str) -> bool:
    """True if the text contains a bracket or dash that sets off an aside."""
    return any(mark in text for mark in ("(", ")", "—", "--", "–"))


# ---------------------------------------------------------------------------
# Dialogue
# ---------------------------------------------------------------------------


class DialogueState:
    """Tracks whether the reading position is inside quoted speech.

    WHY: Dialogue reads at a slightly different cadence. Quote tracking
    needs memory across tokens, so it lives in an explicit object that
    the tokenizer owns and resets per chapter instead of hidden globals.

    RULES:
    - A straight double quote toggles the state (it is ambiguous)
    - Curly opening quotes always enter dialogue, curly closing quotes
      always leave it
    - dialogue_depth counts curly nesting and never goes below zero
    """

    OPENING_QUOTES = frozenset(['"', "“", "‘"])
    CLOSING_QUOTES = frozenset(['"', "”", "’"])

    def __init__(self) -> None:
        self.in_dialogue = False
        self.dialogue_depth = 0

    def observe_quote(self, char: str) -> bool:
        """Update the state with one punctuation character and return it."""
        if char == '"':
            self.in_dialogue = not self.in_dialogue
            self.dialogue_depth = 1 if self.in_dialogue else 0
        elif char in self.OPENING_QUOTES:
            self.in_dialogue = True
            self.dialogue_depth += 1
        elif char in self.CLOSING_QUOTES:
            self.in_dialogue = False
            self.dialogue_depth = max(0, self.dialogue_depth - 1)
        return self.in_dialogue

    def reset(self) -> None:
        self.in_dialogue = False
        self.dialogue_depth = 0


def is_speaker_verb(word: str) -> bool:
    """True for verbs of speech such as "said" or "whispered"."""
    return word.lower() in SPEAKER_VERBS


def is_speaker_tag(words: Sequence[str]) -> bool:
    """Detect a short speaker attribution such as "he said" or "asked Mary".

    The words are joined with single spaces, lowercased, and matched
    against three patterns anchored on speech verbs.
    """
    if not words:
        return False
    text = " ".join(words).lower()
    return any(pattern.search(text) for pattern in _SPEAKER_TAG_PATTERNS)
