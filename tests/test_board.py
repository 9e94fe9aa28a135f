import dataclasses
import datetime

import pytest

from calendar_engine.board import MONTHS, BoardLayout, build_board, date_cells_for
from calendar_engine.errors import PuzzleInputError


def test_default_layout():
    b = build_board()
    assert (b.width, b.height) == (7, 7)
    assert len(b.playable_cells()) == 43
    assert [b.cell(x, 0).content for x in range(6)] == list(MONTHS[:6])
    assert [b.cell(x, 1).content for x in range(6)] == list(MONTHS[6:])
    assert not b.is_playable(6, 0) and not b.is_playable(6, 1)
    assert b.cell(0, 2).content == "1"
    assert b.cell(6, 5).content == "28"
    assert [b.cell(x, 6).content for x in range(3)] == ["29", "30", "31"]
    assert not any(b.is_playable(x, 6) for x in range(3, 7))

def test_date_cells_for_march_first():
    b = build_board(datetime.date(2025, 3, 1))
    assert b.date_cells == frozenset({(2, 0), (0, 2)})
    assert b.is_date_cell(2, 0) and b.is_date_cell(0, 2)
    assert len(b.required_cells()) == 41

def test_every_day_of_a_leap_year_has_one_month_and_one_day_cell():
    b = build_board()
    d = datetime.date(2024, 1, 1)
    while d.year == 2024:
        month_cell, day_cell = date_cells_for(b, d)
        assert month_cell[1] < 2 <= day_cell[1]
        assert b.is_playable(*month_cell) and b.is_playable(*day_cell)
        flagged = b.for_date(d).date_cells
        assert flagged == {month_cell, day_cell}
        d += datetime.timedelta(days=1)

def test_datetime_is_accepted():
    b = build_board(datetime.datetime(2025, 12, 31, 23, 59))
    assert b.date == datetime.date(2025, 12, 31)
    assert b.date_cells == frozenset({(5, 1), (2, 6)})

def test_board_without_date_has_no_date_cells():
    b = build_board()
    assert b.date is None
    assert b.required_cells() == b.playable_cells()

def test_blocked_date_cell_is_a_configuration_error():
    b = build_board().with_blocked([(0, 2)])
    with pytest.raises(PuzzleInputError):
        b.for_date(datetime.date(2025, 3, 1))

def test_with_blocked_keeps_date():
    b = build_board(datetime.date(2025, 3, 1)).with_blocked([(6, 2)])
    assert not b.is_playable(6, 2)
    assert b.date_cells == frozenset({(2, 0), (0, 2)})
    assert len(b.required_cells()) == 40

def test_with_blocked_rejects_outside_cells():
    with pytest.raises(PuzzleInputError):
        build_board().with_blocked([(9, 9)])

def test_non_date_rejected():
    with pytest.raises(PuzzleInputError):
        build_board("2025-03-01")

def test_board_is_immutable():
    b = build_board()
    with pytest.raises(dataclasses.FrozenInstanceError):
        b.month_rows = 3

FULL_NAMES = ("January", "February", "March", "April", "May", "June",
              "July", "August", "September", "October", "November", "December")

def test_layout_month_labels_are_used_for_date_cells():
    b = build_board(datetime.date(2025, 3, 1), layout=BoardLayout(months=FULL_NAMES))
    assert b.months == FULL_NAMES
    assert b.cell(2, 0).content == "March"
    assert b.date_cells == frozenset({(2, 0), (0, 2)})
    assert b.with_blocked([(6, 2)]).date_cells == b.date_cells
    assert b.without_date().for_date(datetime.date(2025, 9, 9)).date_cells == frozenset({(2, 1), (1, 3)})

def test_explicit_labels_override_the_board_labels():
    b = build_board()
    with pytest.raises(PuzzleInputError, match="'March'"):
        date_cells_for(b, datetime.date(2025, 3, 1), FULL_NAMES)

@pytest.mark.parametrize("layout", [
    BoardLayout(months_per_row=8),                  # wider than the board
    BoardLayout(month_rows=12, months_per_row=1),   # taller than the board
    BoardLayout(months=MONTHS[:11]),
])
def test_month_labels_that_do_not_fit_are_input_errors(layout):
    with pytest.raises(PuzzleInputError):
        build_board(layout=layout)
