"""Tests for the optimal recognition point."""

import pytest

from rsvp_pacer.core.orp import calculate_orp_index


class TestCalculateOrpIndex:

    @pytest.mark.parametrize("word", ["", "I", "an"])
    def test_short_words_pivot_on_first_letter(self, word):
        assert calculate_orp_index(word) == 0

    def test_length_brackets(self):
        assert calculate_orp_index("word") == 1
        assert calculate_orp_index("reading") == 2

    def test_common_long_word_moves_right(self):
        assert calculate_orp_index("because") == 3

    def test_rare_long_word_moves_left(self):
        assert calculate_orp_index("psychology") == 2

    def test_always_inside_word(self):
        for word in ("cat", "extraordinarily", "a" * 30, "the"):
            index = calculate_orp_index(word)
            assert 0 <= index < max(1, len(word))
