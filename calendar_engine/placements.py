# calendar_engine/placements.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from calendar_engine.board import Board, Coord
from calendar_engine.pieceset import Piece, PlacedPiece
from calendar_engine.shapes import Orientation


@dataclass(frozen=True)
class Placement:
    """One legal way to lay one piece: orientation + top-left position + covered cells."""
    piece_id: int
    orientation: Orientation
    position: Coord
    cells: Tuple[Coord, ...]

    def to_placed_piece(self, piece: Piece) -> PlacedPiece:
        o = self.orientation
        return PlacedPiece(id=piece.id, shape=piece.shape, position=self.position,
                           rotation=o.rotation, flip_h=o.flip_h, flip_v=o.flip_v)


@dataclass(frozen=True)
class CoverMatrix:
    """
    Exact-cover formulation:
      cell columns  = required board cells (row-major), indices 0..n_cells-1
      piece columns = one per piece id, indices n_cells..n_cells+n_pieces-1
      rows          = placements, in piece / orientation / row-major position order
    """
    cell_columns: Tuple[Coord, ...]
    piece_columns: Tuple[int, ...]
    rows: Tuple[Placement, ...]

    @property
    def n_columns(self) -> int:
        return len(self.cell_columns) + len(self.piece_columns)

    def column_index(self) -> Tuple[Dict[Coord, int], Dict[int, int]]:
        cells = {c: i for i, c in enumerate(self.cell_columns)}
        base = len(self.cell_columns)
        pieces = {pid: base + j for j, pid in enumerate(self.piece_columns)}
        return cells, pieces

    def row_columns(self, i: int) -> List[int]:
        cells, pieces = self.column_index()
        return _row_columns(self.rows[i], cells, pieces)

    def all_row_columns(self) -> List[List[int]]:
        cells, pieces = self.column_index()
        return [_row_columns(r, cells, pieces) for r in self.rows]

    def rows_for_piece(self, piece_id: int) -> List[Placement]:
        return [r for r in self.rows if r.piece_id == piece_id]


def _row_columns(pl: Placement, cells: Dict[Coord, int], pieces: Dict[int, int]) -> List[int]:
    return [cells[c] for c in pl.cells] + [pieces[pl.piece_id]]


def placement_cells(board: Board, orientation: Orientation, x: int, y: int) -> Optional[Tuple[Coord, ...]]:
    """Covered cells for `orientation` at (x, y), or None if any filled cell is off-board, filler or a date cell."""
    out = []
    for dx, dy in orientation.offsets():
        cx, cy = x + dx, y + dy
        if not board.is_playable(cx, cy) or board.is_date_cell(cx, cy):
            return None
        out.append((cx, cy))
    return tuple(out)

def enumerate_placements_for_piece(board: Board, piece: Piece,
                                   orientations: Optional[Iterable[Orientation]] = None) -> List[Placement]:
    oris = list(orientations) if orientations is not None else piece.orientations()
    out: List[Placement] = []
    for ori in oris:
        for y in range(board.height - ori.height + 1):
            for x in range(board.width - ori.width + 1):
                cells = placement_cells(board, ori, x, y)
                if cells is None:
                    continue
                out.append(Placement(piece.id, ori, (x, y), cells))
    return out

def build_cover_matrix(board: Board, pieces: Iterable[Piece]) -> CoverMatrix:
    """
    Every legal placement of every piece. Pure: depends only on the board
    (including its date cells) and the pieces, never on search progress.
    A piece with no legal placement simply contributes no rows.
    """
    pieces = tuple(pieces)
    rows: List[Placement] = []
    for p in pieces:
        rows.extend(enumerate_placements_for_piece(board, p))
    return CoverMatrix(
        cell_columns=tuple(board.required_cells()),
        piece_columns=tuple(p.id for p in pieces),
        rows=tuple(rows),
    )
