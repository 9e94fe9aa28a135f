import datetime

from calendar_engine.board import Board, Cell, build_board
from calendar_engine.pieceset import Piece, default_pieces
from calendar_engine.placements import build_cover_matrix, enumerate_placements_for_piece
from calendar_engine.shapes import shape_from_rows

MARCH_1 = datetime.date(2025, 3, 1)


def _open_board(w, h):
    return Board(cells=tuple(tuple(Cell(x, y, "", True) for x in range(w)) for y in range(h)), month_rows=0)


def test_monomino_fits_every_required_cell():
    board = build_board(MARCH_1)
    rows = enumerate_placements_for_piece(board, Piece(1, shape_from_rows(["X"])))
    assert len(rows) == 41
    assert {r.cells[0] for r in rows} == set(board.required_cells())

def test_placements_never_touch_filler_or_date_cells():
    board = build_board(MARCH_1)
    for p in default_pieces():
        for pl in enumerate_placements_for_piece(board, p):
            assert len(pl.cells) == p.area
            for (x, y) in pl.cells:
                assert board.is_playable(x, y)
                assert not board.is_date_cell(x, y)

def test_domino_on_open_board():
    # 2x2 board: 2 horizontal + 2 vertical
    rows = enumerate_placements_for_piece(_open_board(2, 2), Piece(1, shape_from_rows(["XX"])))
    assert [(r.orientation.rotation, r.position) for r in rows] == \
           [(0, (0, 0)), (0, (0, 1)), (90, (0, 0)), (90, (1, 0))]

def test_piece_too_big_has_no_rows_but_matrix_is_built():
    board = _open_board(2, 2)
    m = build_cover_matrix(board, [Piece(1, shape_from_rows(["XXX"]))])
    assert m.rows == ()
    assert m.n_columns == 5

def test_matrix_columns_and_rows():
    board = build_board(MARCH_1)
    pieces = default_pieces()
    m = build_cover_matrix(board, pieces)
    assert m.cell_columns == tuple(board.required_cells())
    assert m.piece_columns == tuple(p.id for p in pieces)
    assert m.n_columns == 41 + 8
    areas = {p.id: p.area for p in pieces}
    for i, r in enumerate(m.rows):
        cols = m.row_columns(i)
        assert len(cols) == areas[r.piece_id] + 1
        assert cols[-1] == 41 + m.piece_columns.index(r.piece_id)
    assert all(m.rows_for_piece(p.id) for p in pieces)

def test_matrix_order_is_stable():
    board = build_board(MARCH_1)
    a = build_cover_matrix(board, default_pieces())
    b = build_cover_matrix(board, default_pieces())
    assert a == b
    ids = [r.piece_id for r in a.rows]
    assert ids == sorted(ids)
