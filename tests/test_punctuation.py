"""Tests for context-aware punctuation classification."""

import pytest

from rsvp_pacer.core.models import Token, TokenType
from rsvp_pacer.core.punctuation import (
    PunctuationClass,
    classify_punctuation,
    is_abbreviation_dot,
    is_decimal_point,
    is_hard_boundary,
    is_hard_boundary_punctuation,
    is_rhythm_boundary_punctuation,
    is_thousands_separator,
)
from rsvp_pacer.core.tokenizer import make_word_token


def _word(text):
    return make_word_token(text)


def _punct(text):
    return Token(text=text, type=TokenType.PUNCTUATION)


class TestNumericSeparators:

    def test_decimal_point(self):
        assert is_decimal_point("3", _word("14"))
        assert not is_decimal_point("end", _word("14"))
        assert not is_decimal_point("3", _word("The"))
        assert not is_decimal_point("3", None)

    def test_thousands_separator(self):
        assert is_thousands_separator("1", _word("000"))
        assert not is_thousands_separator("1", _word("00"))
        assert not is_thousands_separator("one", _word("000"))


class TestAbbreviationDot:

    def test_titles_always_abbreviate(self):
        assert is_abbreviation_dot("Dr", _word("Smith"))
        assert is_abbreviation_dot("Mrs", _word("The"))

    def test_known_abbreviation_before_lowercase(self):
        assert is_abbreviation_dot("etc", _word("and"))

    def test_known_abbreviation_before_sentence_starter(self):
        assert not is_abbreviation_dot("etc", _word("The"))

    def test_single_initial(self):
        assert is_abbreviation_dot("J", _word("Smith"))

    def test_nothing_abbreviates_at_the_end(self):
        assert not is_abbreviation_dot("Dr", None)

    def test_ordinary_word(self):
        assert not is_abbreviation_dot("house", _word("Then"))


class TestClassifyPunctuation:

    @pytest.mark.parametrize("mark, prev, following, expected", [
        (".", "3", "14", PunctuationClass.DECIMAL),
        (".", "Dr", "Smith", PunctuationClass.ABBREVIATION),
        (".", "end", "The", PunctuationClass.SENTENCE_END),
        ("?", "you", None, PunctuationClass.SENTENCE_END),
        ("…", "and", None, PunctuationClass.SENTENCE_END),
        (",", "1", "000", PunctuationClass.THOUSANDS_SEPARATOR),
        (",", "well", "then", PunctuationClass.MID),
        (";", "dark", "the", PunctuationClass.MID),
        ("—", "turns", "then", PunctuationClass.MID),
        (")", "aside", None, PunctuationClass.MID),
        ("(", "an", "aside", PunctuationClass.OPEN),
        ("“", None, "Hi", PunctuationClass.OPEN),
        ("”", "Hi", None, PunctuationClass.CLOSE),
        ('"', "Hi", None, PunctuationClass.OTHER),
        ("$", None, "5", PunctuationClass.OTHER),
    ])
    def test_classification(self, mark, prev, following, expected):
        prev_word = _word(prev) if prev else None
        next_token = _word(following) if following else None
        assert classify_punctuation(_punct(mark), prev_word, next_token) == expected


class TestBoundaries:

    def test_hard_boundaries(self):
        assert is_hard_boundary_punctuation(_punct(";"), _word("dark"), _word("the"))
        assert is_hard_boundary_punctuation(_punct("."), _word("end"), _word("The"))
        assert not is_hard_boundary_punctuation(_punct("."), _word("Dr"), _word("Smith"))
        assert not is_hard_boundary_punctuation(_punct(":"), _word("list"), _word("eggs"))

    def test_rhythm_boundaries_include_colon_and_dash(self):
        assert is_rhythm_boundary_punctuation(_punct(":"), _word("list"), _word("eggs"))
        assert is_rhythm_boundary_punctuation(_punct("—"), _word("turns"), _word("then"))
        assert not is_rhythm_boundary_punctuation(_punct(","), _word("well"), _word("then"))

    def test_frame_with_sentence_end(self):
        frame = [_word("end"), _punct(".")]
        assert is_hard_boundary(frame, _word("The"))

    def test_frame_with_decimal_is_not_a_boundary(self):
        frame = [_word("3"), _punct(".")]
        assert not is_hard_boundary(frame, _word("14"))

    def test_frame_with_break(self):
        assert is_hard_boundary([Token(text="\n", type=TokenType.PARAGRAPH_BREAK)], None)

    def test_plain_words(self):
        assert not is_hard_boundary([_word("the"), _word("house")], _word("stood"))
