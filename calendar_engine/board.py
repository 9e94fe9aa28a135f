# calendar_engine/board.py
"""
Board model for the daily calendar puzzle.

Default layout (x = column, y = row):

    Jan  Feb  Mar  Apr  May  Jun   #
    Jul  Aug  Sept Oct  Nov  Dec   #
     1    2    3    4    5    6    7
     8    9   10   11   12   13   14
    15   16   17   18   19   20   21
    22   23   24   25   26   27   28
    29   30   31    #    #    #    #

`#` cells are filler and never playable. A board may carry a date; the two
cells that must stay uncovered for that date are derived from cell content.
"""
from __future__ import annotations
import datetime as _dt
from dataclasses import dataclass, field, replace
from typing import FrozenSet, Iterable, List, Optional, Tuple

from calendar_engine.errors import PuzzleInputError

Coord = Tuple[int, int]  # (x, y)

MONTHS: Tuple[str, ...] = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
                           "Jul", "Aug", "Sept", "Oct", "Nov", "Dec")


@dataclass(frozen=True)
class BoardLayout:
    width: int = 7
    height: int = 7
    month_rows: int = 2
    months_per_row: int = 6
    days_per_row: int = 7
    days: int = 31
    months: Tuple[str, ...] = MONTHS


DEFAULT_LAYOUT = BoardLayout()


@dataclass(frozen=True)
class Cell:
    x: int
    y: int
    content: str = ""
    is_playable: bool = False


@dataclass(frozen=True)
class Board:
    cells: Tuple[Tuple[Cell, ...], ...]
    month_rows: int = 2
    date: Optional[_dt.date] = None
    date_cells: FrozenSet[Coord] = field(default_factory=frozenset)
    months: Tuple[str, ...] = MONTHS   # month labels, January first

    # --- shape ---
    @property
    def height(self) -> int:
        return len(self.cells)

    @property
    def width(self) -> int:
        return len(self.cells[0]) if self.cells else 0

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= y < self.height and 0 <= x < self.width

    def cell(self, x: int, y: int) -> Cell:
        return self.cells[y][x]

    # --- read-only flags ---
    def is_playable(self, x: int, y: int) -> bool:
        return self.in_bounds(x, y) and self.cells[y][x].is_playable

    def is_date_cell(self, x: int, y: int) -> bool:
        return (x, y) in self.date_cells

    def playable_cells(self) -> List[Coord]:
        """Row-major."""
        return [(c.x, c.y) for row in self.cells for c in row if c.is_playable]

    def required_cells(self) -> List[Coord]:
        """Playable cells minus the date cells, row-major."""
        return [xy for xy in self.playable_cells() if xy not in self.date_cells]

    # --- derived boards ---
    def for_date(self, date) -> "Board":
        d = coerce_date(date)
        return replace(self, date=d, date_cells=frozenset(date_cells_for(self, d, self.months)))

    def without_date(self) -> "Board":
        return replace(self, date=None, date_cells=frozenset())

    def with_blocked(self, coords: Iterable[Coord]) -> "Board":
        """Copy with the given cells turned into non-playable filler."""
        blocked = set(coords)
        for x, y in blocked:
            if not self.in_bounds(x, y):
                raise PuzzleInputError(f"cell {(x, y)} is outside the board")
        cells = tuple(
            tuple(replace(c, is_playable=False) if (c.x, c.y) in blocked else c for c in row)
            for row in self.cells
        )
        out = replace(self, cells=cells, date_cells=frozenset())
        return out.for_date(self.date) if self.date is not None else out


def coerce_date(value) -> _dt.date:
    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    raise PuzzleInputError(f"expected a date, got {type(value).__name__}")


def _empty_grid(layout: BoardLayout) -> List[List[Cell]]:
    return [[Cell(x, y) for x in range(layout.width)] for y in range(layout.height)]

def build_board(date=None, layout: BoardLayout = DEFAULT_LAYOUT) -> Board:
    """Lay out months then days in reading order; flag the date cells when a date is given."""
    if len(layout.months) != 12:
        raise PuzzleInputError(f"layout needs 12 month labels, got {len(layout.months)}")
    if len(layout.months) > layout.month_rows * layout.months_per_row:
        raise PuzzleInputError("layout has fewer month slots than month labels")
    grid = _empty_grid(layout)

    for i, name in enumerate(layout.months):
        y, x = divmod(i, layout.months_per_row)
        if y >= layout.height or x >= layout.width:
            raise PuzzleInputError(f"layout has no room for month '{name}'")
        grid[y][x] = Cell(x, y, name, True)

    for d in range(1, layout.days + 1):
        r, x = divmod(d - 1, layout.days_per_row)
        y = layout.month_rows + r
        if y >= layout.height or x >= layout.width:
            raise PuzzleInputError(f"layout has no room for day {d}")
        grid[y][x] = Cell(x, y, str(d), True)

    board = Board(cells=tuple(tuple(r) for r in grid), month_rows=layout.month_rows,
                  months=tuple(layout.months))
    return board.for_date(date) if date is not None else board


def date_cells_for(board: Board, date, months: Optional[Tuple[str, ...]] = None) -> Tuple[Coord, Coord]:
    """
    (month_cell, day_cell) for `date`. Month cells are matched by label in the
    month rows (the board's own labels unless `months` is given), day cells by
    number in the remaining rows. Exactly one of each must be playable,
    otherwise the board/date pair is unusable.
    """
    d = coerce_date(date)
    if months is None:
        months = board.months
    if len(months) != 12:
        raise PuzzleInputError(f"expected 12 month labels, got {len(months)}")
    label = months[d.month - 1]
    day = str(d.day)
    month_hits: List[Coord] = []
    day_hits: List[Coord] = []
    for row in board.cells:
        for c in row:
            if not c.is_playable:
                continue
            if c.y < board.month_rows:
                if c.content == label:
                    month_hits.append((c.x, c.y))
            elif c.content == day:
                day_hits.append((c.x, c.y))
    if len(month_hits) != 1:
        raise PuzzleInputError(f"expected one playable '{label}' cell, found {len(month_hits)}")
    if len(day_hits) != 1:
        raise PuzzleInputError(f"expected one playable '{day}' cell, found {len(day_hits)}")
    return month_hits[0], day_hits[0]
