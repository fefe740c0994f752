"""Tests for todocore.fuzzy module."""

from __future__ import annotations

from todocore.fuzzy import fuzzy_score, rank


class TestFuzzyScore:
    """Tests for fuzzy_score()."""

    def test_subsequence_matches(self) -> None:
        assert fuzzy_score("mlk", "buy milk") is not None

    def test_out_of_order_does_not_match(self) -> None:
        assert fuzzy_score("klm", "buy milk") is None

    def test_empty_needle(self) -> None:
        assert fuzzy_score("", "anything") == 0

    def test_consecutive_word_start_scores_higher(self) -> None:
        tight = fuzzy_score("milk", "buy milk")
        loose = fuzzy_score("milk", "email mike")
        assert tight is not None and loose is not None
        assert tight > loose

    def test_prefix_of_a_match_also_matches(self) -> None:
        haystack = "water the garden plants"
        needle = "wgdn"
        assert fuzzy_score(needle, haystack) is not None
        for end in range(len(needle)):
            assert fuzzy_score(needle[:end], haystack) is not None


class TestRank:
    """Tests for rank()."""

    def test_best_first_and_drops_misses(self) -> None:
        assert rank("milk", ["email mike", "call mom", "buy milk"]) == [2, 0]

    def test_ties_keep_input_order(self) -> None:
        assert rank("a", ["xa", "ya", "za"]) == [0, 1, 2]
