# calendar_engine/pieceset.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from calendar_engine.errors import PuzzleInputError
from calendar_engine.shapes import (
    Orientation, Shape, area, distinct_orientations, normalize, shape_from_rows,
    shape_to_rows, transform, validate_shape,
)

Position = Tuple[int, int]  # (x, y) of the top-left corner of the transformed shape


@dataclass(frozen=True)
class Piece:
    """Immutable piece template; `shape` is stored cropped to its filled cells."""
    id: int
    shape: Shape

    def __post_init__(self):
        object.__setattr__(self, "shape", normalize(validate_shape(self.shape)))

    @property
    def area(self) -> int:
        return area(self.shape)

    def orientations(self) -> List[Orientation]:
        return distinct_orientations(self.shape)

    def __str__(self) -> str:
        return f"Piece {self.id}:\n" + "\n".join(shape_to_rows(self.shape))


@dataclass(frozen=True)
class PlacedPiece:
    """A piece with its final position and orientation attached."""
    id: int
    shape: Shape
    position: Position
    rotation: int = 0
    flip_h: bool = False
    flip_v: bool = False

    def transformed_shape(self) -> Shape:
        return transform(self.shape, self.rotation, self.flip_h, self.flip_v)

    def covered_cells(self) -> List[Position]:
        px, py = self.position
        s = self.transformed_shape()
        return [(px + x, py + y) for y, row in enumerate(s) for x, v in enumerate(row) if v]


# The eight pieces of the daily calendar puzzle: seven pentominoes and one 2x3 block.
# 7 * 5 + 6 = 41 = 43 playable cells - 2 date cells.
DEFAULT_PIECE_ROWS: Dict[int, Tuple[str, ...]] = {
    1: ("..XX",
        "XXX."),
    2: ("XX.",
        ".X.",
        ".XX"),
    3: ("X.X",
        "XXX"),
    4: ("X..",
        "X..",
        "XXX"),
    5: ("..X.",
        "XXXX"),
    6: ("...X",
        "XXXX"),
    7: ("XXX",
        "XXX"),
    8: ("XX.",
        "XXX"),
}


def default_pieces() -> Tuple[Piece, ...]:
    return tuple(Piece(pid, shape_from_rows(rows)) for pid, rows in sorted(DEFAULT_PIECE_ROWS.items()))

def validate_pieces(pieces: Optional[Iterable[Piece]]) -> Tuple[Piece, ...]:
    """Non-empty, unique ids. Shapes are already checked by Piece itself."""
    if pieces is None:
        raise PuzzleInputError("piece list is missing")
    out = tuple(pieces)
    if not out:
        raise PuzzleInputError("piece list is empty")
    seen = set()
    for p in out:
        if not isinstance(p, Piece):
            raise PuzzleInputError(f"expected Piece, got {type(p).__name__}")
        if p.id in seen:
            raise PuzzleInputError(f"duplicate piece id {p.id}")
        seen.add(p.id)
    return out

def total_area(pieces: Iterable[Piece]) -> int:
    return sum(p.area for p in pieces)
