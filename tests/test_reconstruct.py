import datetime

import pytest

from calendar_engine.board import Board, Cell, build_board
from calendar_engine.errors import SolverInvariantError
from calendar_engine.exact_cover_dlx import solve_cover
from calendar_engine.pieceset import Piece, default_pieces
from calendar_engine.placements import Placement, build_cover_matrix
from calendar_engine.reconstruct import (
    empty_occupancy, format_solution, is_puzzle_solved, is_valid_placement, reconstruct,
)
from calendar_engine.shapes import distinct_orientations, shape_from_rows

MARCH_1 = datetime.date(2025, 3, 1)


@pytest.fixture(scope="module")
def solved():
    board = build_board(MARCH_1)
    pieces = default_pieces()
    sol = solve_cover(build_cover_matrix(board, pieces))
    return board, pieces, sol


def test_reconstruct_builds_occupancy_and_sorted_pieces(solved):
    board, pieces, sol = solved
    state = reconstruct(board, sol, pieces)
    assert [p.id for p in state.pieces] == [1, 2, 3, 4, 5, 6, 7, 8]
    assert sum(v for row in state.occupancy for v in row) == 41
    assert sorted(state.uncovered_playable()) == [(0, 2), (2, 0)]
    for pp, pl in zip(state.pieces, sorted(sol, key=lambda p: p.piece_id)):
        assert pp.position == pl.position
        assert (pp.rotation, pp.flip_h, pp.flip_v) == \
               (pl.orientation.rotation, pl.orientation.flip_h, pl.orientation.flip_v)

def test_missing_piece_is_an_invariant_violation(solved):
    board, pieces, sol = solved
    with pytest.raises(SolverInvariantError):
        reconstruct(board, sol[:-1], pieces)

def test_repeated_piece_is_an_invariant_violation(solved):
    board, pieces, sol = solved
    with pytest.raises(SolverInvariantError, match="placed twice"):
        reconstruct(board, sol + sol[:1], pieces)

def _strip(w):
    return Board(cells=(tuple(Cell(x, 0, "", True) for x in range(w)),), month_rows=0)

def _monomino(pid, xy):
    piece = Piece(pid, shape_from_rows(["X"]))
    return piece, Placement(pid, distinct_orientations(piece.shape)[0], xy, (xy,))

def test_two_pieces_on_one_cell_is_an_invariant_violation():
    p1, pl1 = _monomino(1, (1, 0))
    p2, pl2 = _monomino(2, (1, 0))
    with pytest.raises(SolverInvariantError, match="covered twice"):
        reconstruct(_strip(2), [pl1, pl2], [p1, p2])

def test_cells_that_disagree_with_the_orientation_are_an_invariant_violation():
    p1, pl1 = _monomino(1, (0, 0))
    p2, pl2 = _monomino(2, (1, 0))
    moved = Placement(2, pl2.orientation, (1, 0), ((0, 0),))
    with pytest.raises(SolverInvariantError, match="does not reproduce its cells"):
        reconstruct(_strip(2), [pl1, moved], [p1, p2])

def test_cover_for_another_date_is_an_invariant_violation(solved):
    board, pieces, sol = solved
    # March 2nd: the "2" cell at (1, 2) is now a date cell the March 1st cover sits on
    with pytest.raises(SolverInvariantError):
        reconstruct(build_board(datetime.date(2025, 3, 2)), sol, pieces)

def test_cover_on_filler_is_an_invariant_violation(solved):
    board, pieces, sol = solved
    covered = sol[0].cells[0]
    with pytest.raises(SolverInvariantError):
        reconstruct(board.with_blocked([covered]), sol, pieces)

def test_is_puzzle_solved(solved):
    board, pieces, sol = solved
    state = reconstruct(board, sol, pieces)
    assert is_puzzle_solved(board, state.occupancy, MARCH_1)
    assert not is_puzzle_solved(board, state.occupancy, datetime.date(2025, 4, 2))
    assert not is_puzzle_solved(board, empty_occupancy(board), MARCH_1)

def test_is_valid_placement():
    board = build_board()
    occ = empty_occupancy(board)
    block = shape_from_rows(["XXX", "XXX"])
    assert is_valid_placement(board, occ, block, (0, 0))
    assert not is_valid_placement(board, occ, block, (4, 0))   # hits filler at x=6
    assert not is_valid_placement(board, occ, block, (5, 5))   # off the board
    occ[1][1] = True
    assert not is_valid_placement(board, occ, block, (0, 0))

def test_format_solution(solved):
    board, pieces, sol = solved
    text = format_solution(reconstruct(board, sol, pieces))
    lines = text.splitlines()
    assert len(lines) == 7
    assert text.count("*") == 2
    assert "." not in text
    assert lines[2].startswith("*")
