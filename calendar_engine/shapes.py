# calendar_engine/shapes.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from calendar_engine.errors import PuzzleInputError

Shape = Tuple[Tuple[bool, ...], ...]
Offset = Tuple[int, int]  # (dx, dy)

ROTATIONS: Tuple[int, ...] = (0, 90, 180, 270)
FILLED_CHAR = "X"
EMPTY_CHAR = "."


@dataclass(frozen=True)
class Orientation:
    rotation: int
    flip_h: bool
    flip_v: bool
    shape: Shape

    @property
    def height(self) -> int:
        return len(self.shape)

    @property
    def width(self) -> int:
        return len(self.shape[0]) if self.shape else 0

    def offsets(self) -> List[Offset]:
        return filled_offsets(self.shape)


# --- construction / validation ---------------------------------------------------

def as_shape(rows: Iterable[Iterable]) -> Shape:
    return tuple(tuple(bool(v) for v in row) for row in rows)

def validate_shape(shape: Sequence[Sequence[bool]]) -> Shape:
    """Rectangular, non-empty, at least one filled cell."""
    s = as_shape(shape)
    if not s or not s[0]:
        raise PuzzleInputError("shape must have at least one row and one column")
    w = len(s[0])
    if any(len(r) != w for r in s):
        raise PuzzleInputError("shape rows must all have the same width")
    if not any(any(r) for r in s):
        raise PuzzleInputError("shape has no filled cells")
    return s

def shape_from_rows(rows: Sequence[str]) -> Shape:
    """["XX.", ".XX"] -> Shape. Any char other than '.' or ' ' counts as filled."""
    return validate_shape([[ch not in (EMPTY_CHAR, " ") for ch in r] for r in rows])

def shape_to_rows(shape: Shape) -> List[str]:
    return ["".join(FILLED_CHAR if v else EMPTY_CHAR for v in row) for row in shape]

def filled_offsets(shape: Shape) -> List[Offset]:
    """Row-major (dx, dy) of every filled cell."""
    return [(x, y) for y, row in enumerate(shape) for x, v in enumerate(row) if v]

def area(shape: Shape) -> int:
    return sum(1 for row in shape for v in row if v)


# --- coordinate transforms -----------------------------------------------------

def rotate90(shape: Shape) -> Shape:
    """Clockwise quarter turn: out[x][h-1-y] = shape[y][x]."""
    h = len(shape)
    w = len(shape[0])
    out = [[False] * h for _ in range(w)]
    for y in range(h):
        for x in range(w):
            out[x][h - 1 - y] = shape[y][x]
    return as_shape(out)

def rotate(shape: Shape, degrees: int) -> Shape:
    if degrees not in ROTATIONS:
        raise PuzzleInputError(f"rotation must be one of {ROTATIONS}, got {degrees!r}")
    for _ in range(degrees // 90):
        shape = rotate90(shape)
    return shape

def flip_horizontal(shape: Shape) -> Shape:
    return tuple(tuple(reversed(row)) for row in shape)

def flip_vertical(shape: Shape) -> Shape:
    return tuple(reversed(shape))

def transform(shape: Shape, rotation: int = 0, flip_h: bool = False, flip_v: bool = False) -> Shape:
    """Rotate first, then flip horizontally, then vertically (same order as the game board)."""
    out = rotate(shape, rotation)
    if flip_h:
        out = flip_horizontal(out)
    if flip_v:
        out = flip_vertical(out)
    return out


# --- canonical form -------------------------------------------------------------

def normalize(shape: Shape) -> Shape:
    """Crop to the bounding box of filled cells (top-left anchored)."""
    offs = filled_offsets(shape)
    if not offs:
        raise PuzzleInputError("shape has no filled cells")
    min_x = min(x for x, _ in offs); max_x = max(x for x, _ in offs)
    min_y = min(y for _, y in offs); max_y = max(y for _, y in offs)
    return tuple(tuple(shape[y][min_x:max_x + 1]) for y in range(min_y, max_y + 1))

def signature(shape: Shape) -> Tuple[int, int, int]:
    """(height, width, row-major bits) of the normalized shape; the dedup key."""
    s = normalize(shape)
    bits = 0
    for row in s:
        for v in row:
            bits = (bits << 1) | (1 if v else 0)
    return (len(s), len(s[0]), bits)

def raw_transforms(shape: Shape) -> List[Tuple[int, bool, bool, Shape]]:
    """All 16 (rotation, flip_h, flip_v) combinations in discovery order."""
    out = []
    for rot in ROTATIONS:
        for fh in (False, True):
            for fv in (False, True):
                out.append((rot, fh, fv, transform(shape, rot, fh, fv)))
    return out

def distinct_orientations(shape: Shape) -> List[Orientation]:
    """
    Distinct orientations of `shape`, first combination per signature wins.
    Between 1 (square) and 8 (fully asymmetric) entries; order is stable.
    """
    base = normalize(validate_shape(shape))
    seen = set()
    out: List[Orientation] = []
    for rot, fh, fv, s in raw_transforms(base):
        sig = signature(s)
        if sig in seen:
            continue
        seen.add(sig)
        out.append(Orientation(rotation=rot, flip_h=fh, flip_v=fv, shape=normalize(s)))
    return out
