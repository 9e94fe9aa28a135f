import datetime

import pytest

from calendar_engine import backtrack
from calendar_engine.backtrack import BacktrackSolver, solve_backtrack
from calendar_engine.board import Board, Cell, build_board
from calendar_engine.errors import SolveCancelled
from calendar_engine.exact_cover_dlx import SearchStats, solve_cover
from calendar_engine.pieceset import Piece, default_pieces
from calendar_engine.placements import build_cover_matrix
from calendar_engine.shapes import shape_from_rows


def _open_board(w, h):
    return Board(cells=tuple(tuple(Cell(x, y, "", True) for x in range(w)) for y in range(h)), month_rows=0)

def _check_cover(board, pieces, sol):
    assert sorted(pl.piece_id for pl in sol) == sorted(p.id for p in pieces)
    covered = [c for pl in sol for c in pl.cells]
    assert len(covered) == len(set(covered))
    assert set(covered) == set(board.required_cells())


def test_two_l_trominoes_fill_2x3():
    board = _open_board(3, 2)
    pieces = [Piece(1, shape_from_rows(["XX", "X."])), Piece(2, shape_from_rows(["XX", "X."]))]
    sol = solve_backtrack(board, pieces)
    assert sol is not None
    _check_cover(board, pieces, sol)

def test_impossible_board_exhausts():
    board = _open_board(2, 2)
    pieces = [Piece(1, shape_from_rows(["XXX"])), Piece(2, shape_from_rows(["X"]))]
    eng = BacktrackSolver(board, pieces)
    assert eng.run() is None
    assert eng.exhausted and not eng.solved
    assert eng.placed_count() == 0

def test_state_is_restored_after_exhaustion():
    # five cells, two dominoes: one cell is always left over
    board = _open_board(5, 1)
    pieces = [Piece(1, shape_from_rows(["XX"])), Piece(2, shape_from_rows(["XX"]))]
    eng = BacktrackSolver(board, pieces)
    assert eng.run() is None
    assert eng.occ_bits == 0 and eng.used_bits == 0 and eng.placements == []

@pytest.mark.parametrize("day", [datetime.date(2025, 3, 1), datetime.date(2024, 2, 29)])
def test_agrees_with_exact_cover(day):
    board = build_board(day)
    pieces = default_pieces()
    ref = solve_backtrack(board, pieces)
    fast = solve_cover(build_cover_matrix(board, pieces))
    assert (ref is None) == (fast is None)
    assert ref is not None
    _check_cover(board, pieces, ref)

def test_pruning_does_not_change_the_answer():
    board = build_board(datetime.date(2025, 3, 1))
    pieces = default_pieces()
    with_prune = BacktrackSolver(board, pieces, prune_regions=True)
    without = BacktrackSolver(board, pieces, prune_regions=False)
    assert with_prune.run() == without.run()
    assert with_prune.attempts <= without.attempts

def test_step_once_moves_one_piece_at_a_time():
    eng = BacktrackSolver(build_board(datetime.date(2025, 3, 1)), default_pieces())
    progressed, solved = eng.step_once()
    assert progressed and not solved
    assert eng.placed_count() == 1
    assert eng.total_pieces() == 8

def test_should_stop_cancels():
    eng = BacktrackSolver(build_board(datetime.date(2025, 3, 1)), default_pieces())
    with pytest.raises(SolveCancelled):
        eng.run(should_stop=lambda: True)

def test_run_fills_search_stats():
    eng = BacktrackSolver(build_board(datetime.date(2025, 3, 1)), default_pieces())
    st = SearchStats()
    assert eng.run(stats=st) is not None
    assert st.nodes == eng.attempts > 0
    assert st.max_depth == 8 and st.solutions == 1
    assert st.columns == 41 + 8
    assert st.rows == sum(len(v) for v in eng.fits.values())

def test_run_reports_progress(monkeypatch):
    monkeypatch.setattr(backtrack, "PROGRESS_EVERY", 1)
    seen = []
    eng = BacktrackSolver(build_board(datetime.date(2025, 3, 1)), default_pieces())
    eng.run(on_progress=lambda s: seen.append(s.nodes))
    assert seen and seen == sorted(seen)
    assert seen[-1] < eng.attempts

def test_stats_are_filled_when_cancelled():
    calls = iter([False, False, True])
    st = SearchStats()
    eng = BacktrackSolver(build_board(datetime.date(2025, 3, 1)), default_pieces())
    with pytest.raises(SolveCancelled):
        eng.run(should_stop=lambda: next(calls), stats=st)
    assert st.nodes == 2 and st.solutions == 0
