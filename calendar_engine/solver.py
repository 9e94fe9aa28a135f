# calendar_engine/solver.py
from __future__ import annotations
from typing import Callable, Iterable, Optional

from calendar_engine.backtrack import BacktrackSolver
from calendar_engine.board import Board
from calendar_engine.errors import PuzzleInputError
from calendar_engine.exact_cover_dlx import SearchStats, solve_cover
from calendar_engine.pieceset import Piece, total_area, validate_pieces
from calendar_engine.placements import build_cover_matrix
from calendar_engine.reconstruct import SolvedState, reconstruct

STRATEGIES = ("dlx", "backtrack")
DEFAULT_STRATEGY = "dlx"


def prepare_board(board: Board, date=None) -> Board:
    """Board with its date cells derived for `date` (or for the date it already carries)."""
    if not isinstance(board, Board):
        raise PuzzleInputError(f"expected Board, got {type(board).__name__}")
    if date is not None:
        return board.for_date(date)
    if board.date is None:
        raise PuzzleInputError("no date given and the board carries none")
    return board.for_date(board.date)


def find_solution(
    board: Board,
    pieces: Iterable[Piece],
    date=None,
    strategy: str = DEFAULT_STRATEGY,
    should_stop: Optional[Callable[[], bool]] = None,
    on_progress: Optional[Callable[[SearchStats], None]] = None,
    stats: Optional[SearchStats] = None,
) -> Optional[SolvedState]:
    """
    Solve the board for `date` with every piece placed exactly once.

    Returns a verified SolvedState, or None when no tiling exists.
    Raises PuzzleInputError for malformed input, SolverInvariantError if a
    found cover fails verification, SolveCancelled if `should_stop` fired.
    """
    if strategy not in STRATEGIES:
        raise PuzzleInputError(f"unknown strategy {strategy!r}; expected one of {STRATEGIES}")
    pieces = validate_pieces(pieces)
    solve_board = prepare_board(board, date)

    # exact cover needs the areas to match; anything else cannot tile
    if total_area(pieces) != len(solve_board.required_cells()):
        return None

    if strategy == "backtrack":
        solution = BacktrackSolver(solve_board, pieces).run(should_stop, on_progress=on_progress, stats=stats)
    else:
        matrix = build_cover_matrix(solve_board, pieces)
        solution = solve_cover(matrix, should_stop=should_stop, on_progress=on_progress, stats=stats)

    if solution is None:
        return None
    return reconstruct(solve_board, solution, pieces)
