# calendar_engine/errors.py
from __future__ import annotations


class PuzzleError(Exception):
    """Base class for everything the calendar engine raises on purpose."""


class PuzzleInputError(PuzzleError, ValueError):
    """Malformed input: bad date, missing date cells, bad pieces or messages."""


class SolverInvariantError(PuzzleError, RuntimeError):
    """A returned cover breaks the exact-cover invariant (solver defect)."""


class SolveCancelled(PuzzleError):
    """The caller asked the search to stop before it finished."""
