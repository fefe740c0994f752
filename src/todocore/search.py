"""Incremental fuzzy search over the task list.

Each query and its results are remembered for the duration of a search
session. Typing more characters only rescans the results of the longest
remembered prefix: a task that doesn't match "mi" can't match "milk".
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from todocore.fuzzy import fuzzy_score
from todocore.task import Task

Scorer = Callable[[str, str], int | None]


def normalize_query(query: str) -> str:
    return query.strip().lower()


class SearchCache:
    """Maps normalised queries to result lists of task indices.

    Results are indices into the task sequence passed to ``search``; the
    owner must ``clear()`` the cache whenever that sequence changes.
    """

    def __init__(self, scorer: Scorer | None = None) -> None:
        self._scorer = scorer or fuzzy_score
        self._results: dict[str, list[int]] = {}
        self.last_query = ""
        self.last_search_space = 0
        """Number of tasks scored by the last search (0 on a cache hit)."""

    def __contains__(self, query: str) -> bool:
        return normalize_query(query) in self._results

    def __len__(self) -> int:
        return len(self._results)

    def clear(self) -> None:
        """Forget all results; called when the search session ends."""
        self._results.clear()
        self.last_query = ""
        self.last_search_space = 0

    def find_prefix(self, query: str) -> str | None:
        """Longest cached query that ``query`` starts with."""
        best: str | None = None
        for cached in self._results:
            if query.startswith(cached) and (best is None or len(cached) > len(best)):
                best = cached
        return best

    def search(self, query: str, tasks: Sequence[Task]) -> list[int]:
        """Indices of tasks matching ``query``, best match first.

        An empty query returns every task in store order.
        """
        pattern = normalize_query(query)
        self.last_query = pattern

        if not pattern:
            self.last_search_space = 0
            return list(range(len(tasks)))

        prefix = self.find_prefix(pattern)

        if prefix == pattern:
            self.last_search_space = 0
            return list(self._results[pattern])

        if prefix is not None:
            space = self._results[prefix]
        else:
            space = list(range(len(tasks)))

        self.last_search_space = len(space)

        scored = []
        for index in space:
            score = self._scorer(pattern, tasks[index].raw_text.lower())
            if score is not None:
                scored.append((index, score))
        scored.sort(key=lambda item: -item[1])

        results = [index for index, _ in scored]
        self._results[pattern] = results
        return list(results)
