"""Subsequence fuzzy matching.

``fuzzy_score("mlk", "buy milk")`` matches because m, l and k appear in
order. Matches that are consecutive or that start a word score higher.
A needle that is not a subsequence of the haystack scores None, so any
haystack matching a needle also matches each of the needle's prefixes.
"""

from __future__ import annotations

MATCH_SCORE = 1
CONSECUTIVE_BONUS = 2
WORD_START_BONUS = 3
WORD_SEPARATORS = " \t@+-_/.:()"


def fuzzy_score(needle: str, haystack: str) -> int | None:
    """Score ``needle`` against ``haystack``; higher is better."""
    if not needle:
        return 0

    score = 0
    streak = 0
    position = 0
    previous = -2

    for char in needle:
        index = haystack.find(char, position)
        if index == -1:
            return None

        score += MATCH_SCORE
        if index == previous + 1:
            streak += 1
            score += CONSECUTIVE_BONUS * streak
        else:
            streak = 0
        if index == 0 or haystack[index - 1] in WORD_SEPARATORS:
            score += WORD_START_BONUS

        previous = index
        position = index + 1

    return score


def rank(needle: str, haystacks: list[str]) -> list[int]:
    """Indices of matching haystacks, best score first, stable on ties."""
    scored = []
    for i, haystack in enumerate(haystacks):
        score = fuzzy_score(needle, haystack)
        if score is not None:
            scored.append((i, score))
    scored.sort(key=lambda item: -item[1])
    return [i for i, _ in scored]
