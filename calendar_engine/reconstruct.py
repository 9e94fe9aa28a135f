# calendar_engine/reconstruct.py
from __future__ import annotations
import datetime as _dt
import string
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from calendar_engine.board import Board, Coord, date_cells_for
from calendar_engine.errors import SolverInvariantError
from calendar_engine.pieceset import Piece, PlacedPiece
from calendar_engine.placements import Placement
from calendar_engine.shapes import Shape

Occupancy = Tuple[Tuple[bool, ...], ...]


@dataclass(frozen=True)
class SolvedState:
    """What the UI needs to show a solved board."""
    board: Board
    occupancy: Occupancy
    pieces: Tuple[PlacedPiece, ...]
    date: Optional[_dt.date]
    is_solved: bool = True

    def uncovered_playable(self) -> List[Coord]:
        return [xy for xy in self.board.playable_cells() if not self.occupancy[xy[1]][xy[0]]]


def empty_occupancy(board: Board) -> List[List[bool]]:
    return [[False] * board.width for _ in range(board.height)]


def reconstruct(board: Board, solution: Sequence[Placement], pieces: Iterable[Piece]) -> SolvedState:
    """
    Turn a cover into placed pieces + a fresh occupancy grid.
    Any breach of the exact-cover invariant raises SolverInvariantError.
    """
    by_id: Dict[int, Piece] = {p.id: p for p in pieces}
    occ = empty_occupancy(board)
    placed: List[PlacedPiece] = []
    used = set()

    for pl in solution:
        piece = by_id.get(pl.piece_id)
        if piece is None:
            raise SolverInvariantError(f"placement refers to unknown piece {pl.piece_id}")
        if pl.piece_id in used:
            raise SolverInvariantError(f"piece {pl.piece_id} placed twice")
        used.add(pl.piece_id)

        pp = pl.to_placed_piece(piece)
        cells = pp.covered_cells()
        if sorted(cells) != sorted(pl.cells):
            raise SolverInvariantError(f"piece {pl.piece_id}: orientation does not reproduce its cells")
        for (x, y) in cells:
            if not board.is_playable(x, y):
                raise SolverInvariantError(f"piece {pl.piece_id} covers non-playable cell {(x, y)}")
            if board.is_date_cell(x, y):
                raise SolverInvariantError(f"piece {pl.piece_id} covers date cell {(x, y)}")
            if occ[y][x]:
                raise SolverInvariantError(f"cell {(x, y)} covered twice")
            occ[y][x] = True
        placed.append(pp)

    missing = sorted(set(by_id) - used)
    if missing:
        raise SolverInvariantError(f"pieces missing from solution: {missing}")

    covered = {(x, y) for y, row in enumerate(occ) for x, v in enumerate(row) if v}
    required = set(board.required_cells())
    if covered != required:
        raise SolverInvariantError(
            f"occupancy mismatch: {len(required - covered)} uncovered, {len(covered - required)} extra"
        )

    placed.sort(key=lambda p: p.id)
    return SolvedState(
        board=board,
        occupancy=tuple(tuple(r) for r in occ),
        pieces=tuple(placed),
        date=board.date,
        is_solved=True,
    )


# --- game-logic checks -----------------------------------------------------------

def is_valid_placement(board: Board, occupancy: Sequence[Sequence[bool]], shape: Shape, position: Coord) -> bool:
    """Every filled cell lands in bounds, on a playable cell, and on a free one."""
    px, py = position
    for y, row in enumerate(shape):
        for x, v in enumerate(row):
            if not v:
                continue
            cx, cy = px + x, py + y
            if not board.is_playable(cx, cy) or occupancy[cy][cx]:
                return False
    return True

def is_puzzle_solved(board: Board, occupancy: Sequence[Sequence[bool]], date) -> bool:
    """Month and day cells still visible, every other playable cell covered."""
    month_cell, day_cell = date_cells_for(board, date)
    for (x, y) in (month_cell, day_cell):
        if occupancy[y][x]:
            return False
    for (x, y) in board.playable_cells():
        if (x, y) in (month_cell, day_cell):
            continue
        if not occupancy[y][x]:
            return False
    return True


# --- text view ---------------------------------------------------------------------

_PIECE_CHARS = string.digits[1:] + string.ascii_uppercase

def format_solution(state: SolvedState) -> str:
    """
    One character per cell: piece label, '*' for an uncovered date cell,
    '.' for any other uncovered playable cell, ' ' for filler.
    """
    owner: Dict[Coord, str] = {}
    for i, pp in enumerate(state.pieces):
        label = str(pp.id) if 0 <= pp.id < 10 else _PIECE_CHARS[i % len(_PIECE_CHARS)]
        for xy in pp.covered_cells():
            owner[xy] = label
    lines = []
    b = state.board
    for y in range(b.height):
        row = []
        for x in range(b.width):
            if (x, y) in owner:
                row.append(owner[(x, y)])
            elif not b.is_playable(x, y):
                row.append(" ")
            elif b.is_date_cell(x, y):
                row.append("*")
            else:
                row.append(".")
        lines.append(" ".join(row).rstrip())
    return "\n".join(lines)
