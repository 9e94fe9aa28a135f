# calendar_engine/backtrack.py
# Reference solver: anchor-cell backtracking over a single occupancy bitmask.
# Slower than the exact-cover search; kept to cross-check it.
#
# State is one occupancy bitmask + a placement stack + one frontier deque per
# depth. Advancing ORs a placement mask in, backtracking XORs it back out.
# Orientations are immutable values carried by each Placement.

from __future__ import annotations
from collections import deque
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from calendar_engine.board import Board, Coord
from calendar_engine.components import smallest_region
from calendar_engine.errors import SolveCancelled
from calendar_engine.exact_cover_dlx import PROGRESS_EVERY, SearchStats
from calendar_engine.pieceset import Piece
from calendar_engine.placements import Placement, build_cover_matrix

DEFAULT_PRUNE_REGIONS = True

Choice = Tuple[int, int, Placement]  # (piece index, cell mask, placement)


class BacktrackSolver:
    """
    Inputs are immutable (board with its date cells, piece templates).
    Search state and counters live on the instance; build a fresh one per solve.
    """

    def __init__(self, board: Board, pieces: Iterable[Piece], prune_regions: bool = DEFAULT_PRUNE_REGIONS):
        self.board = board
        self.pieces: Tuple[Piece, ...] = tuple(pieces)
        self.prune_regions = prune_regions

        # Grid
        self.idx2cell: Tuple[Coord, ...] = tuple(board.required_cells())
        self.cell2idx: Dict[Coord, int] = {c: i for i, c in enumerate(self.idx2cell)}
        self.full_mask = (1 << len(self.idx2cell)) - 1
        self.all_pieces_mask = (1 << len(self.pieces)) - 1
        self.piece_area = tuple(p.area for p in self.pieces)

        # Precompute: placements bucketed by their first (row-major) cell index
        self.fits = self._precompute_fits()

        # State
        self.occ_bits = 0
        self.used_bits = 0
        self.placements: List[Tuple[int, int, Placement]] = []
        self.frontier: List[deque] = []
        self.solved = False
        self.exhausted = False

        # Counters
        self.attempts = 0
        self.pruned_regions = 0
        self.best_depth_ever = 0

    # --------------------------
    # Public helpers
    # --------------------------
    def placed_count(self) -> int:
        return len(self.placements)

    def total_pieces(self) -> int:
        return len(self.pieces)

    def solution(self) -> Optional[Tuple[Placement, ...]]:
        if not self.solved:
            return None
        return tuple(pl for _, _, pl in self.placements)

    # --------------------------
    # Fits
    # --------------------------
    def _precompute_fits(self) -> Dict[int, List[Choice]]:
        index_of = {p.id: i for i, p in enumerate(self.pieces)}
        fits: Dict[int, List[Choice]] = {}
        for pl in build_cover_matrix(self.board, self.pieces).rows:
            idxs = [self.cell2idx[c] for c in pl.cells]
            mask = 0
            for i in idxs:
                mask |= 1 << i
            fits.setdefault(min(idxs), []).append((index_of[pl.piece_id], mask, pl))
        return fits

    def _anchor(self) -> Optional[int]:
        """Lowest empty cell index == row-major first empty required cell."""
        free = ~self.occ_bits & self.full_mask
        if not free:
            return None
        return (free & -free).bit_length() - 1

    # --------------------------
    # Pruning
    # --------------------------
    def _regions_ok(self) -> bool:
        unused = [a for i, a in enumerate(self.piece_area) if not (self.used_bits >> i) & 1]
        if not unused:
            return True
        empties = [c for i, c in enumerate(self.idx2cell) if not (self.occ_bits >> i) & 1]
        if not empties:
            return True
        return smallest_region(empties) >= min(unused)

    # --------------------------
    # Apply / remove
    # --------------------------
    def _apply_place(self, piece_idx: int, mask: int, pl: Placement):
        self.occ_bits |= mask
        self.used_bits |= 1 << piece_idx
        self.placements.append((piece_idx, mask, pl))

    def _remove_last(self):
        if not self.placements:
            return None
        piece_idx, mask, pl = self.placements.pop()
        self.occ_bits ^= mask
        self.used_bits ^= 1 << piece_idx
        return pl

    def _build_frontier(self) -> None:
        anchor = self._anchor()
        choices: List[Choice] = []
        if anchor is not None:
            for piece_idx, mask, pl in self.fits.get(anchor, ()):
                if (self.used_bits >> piece_idx) & 1:
                    continue
                if mask & self.occ_bits:
                    continue
                choices.append((piece_idx, mask, pl))
        self.frontier.append(deque(choices))

    def _is_complete(self) -> bool:
        return self.occ_bits == self.full_mask and self.used_bits == self.all_pieces_mask

    # --------------------------
    # One search step
    # --------------------------
    def step_once(self) -> Tuple[bool, bool]:
        """
        Returns (progressed, solved). Either places one piece or removes one;
        exhaustion at the root sets `exhausted`.
        """
        if self.solved or self.exhausted:
            return False, self.solved

        self.attempts += 1
        if len(self.frontier) <= len(self.placements):
            self._build_frontier()

        d = self.frontier[-1]
        while d:
            piece_idx, mask, pl = d.popleft()
            self._apply_place(piece_idx, mask, pl)
            if self.placed_count() > self.best_depth_ever:
                self.best_depth_ever = self.placed_count()
            if self._is_complete():
                self.solved = True
                return True, True
            if self.prune_regions and not self._regions_ok():
                self.pruned_regions += 1
                self._remove_last()
                continue
            return True, False

        # dead end: drop this depth's frontier and undo the move that led here
        self.frontier.pop()
        if not self.placements:
            self.exhausted = True
            return False, False
        self._remove_last()
        return True, False

    def fill_stats(self, st: SearchStats) -> SearchStats:
        """Mirror the counters into exact-cover style stats (one step == one node)."""
        st.nodes = self.attempts
        st.max_depth = self.best_depth_ever
        st.solutions = 1 if self.solved else 0
        st.rows = sum(len(v) for v in self.fits.values())
        st.columns = len(self.idx2cell) + len(self.pieces)
        return st

    def run(self,
            should_stop: Optional[Callable[[], bool]] = None,
            on_progress: Optional[Callable[[SearchStats], None]] = None,
            stats: Optional[SearchStats] = None) -> Optional[Tuple[Placement, ...]]:
        """
        Step until solved or exhausted. `should_stop` is checked before every step;
        `on_progress` gets the filled stats every PROGRESS_EVERY steps.
        """
        st = stats if stats is not None else SearchStats()
        try:
            if self._is_complete():
                self.solved = True
                return self.solution()
            while True:
                if should_stop is not None and should_stop():
                    raise SolveCancelled(f"backtracking stopped after {self.attempts} steps")
                _, solved = self.step_once()
                if solved:
                    return self.solution()
                if self.exhausted:
                    return None
                if on_progress is not None and self.attempts % PROGRESS_EVERY == 0:
                    on_progress(self.fill_stats(st))
        finally:
            self.fill_stats(st)


def solve_backtrack(board: Board, pieces: Iterable[Piece],
                    should_stop: Optional[Callable[[], bool]] = None,
                    prune_regions: bool = DEFAULT_PRUNE_REGIONS) -> Optional[Tuple[Placement, ...]]:
    return BacktrackSolver(board, pieces, prune_regions=prune_regions).run(should_stop)
