"""Engine error taxonomy.

Data that disappears mid-run is skipped and logged, never raised. Only broken
invariants abort a pass, so corrupt ranks are never persisted.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for scoring-engine failures."""


class RankInvariantError(EngineError):
    """A computed rank-set is not a dense 1..N permutation, or a category map is malformed."""

    def __init__(self, rank_set: str, detail: str) -> None:
        self.rank_set = rank_set
        self.detail = detail
        super().__init__(f"Rank invariant violated in {rank_set}: {detail}")


class CatalogError(EngineError):
    """An achievement code has no catalog row or no condition."""
