# calendar_engine/exact_cover_dlx.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from calendar_engine.errors import PuzzleInputError, SolveCancelled
from calendar_engine.placements import CoverMatrix, Placement

PROGRESS_EVERY = 2000  # search nodes between on_progress calls

Solution = Tuple[Placement, ...]


@dataclass
class SearchStats:
    nodes: int = 0
    max_depth: int = 0
    solutions: int = 0
    rows: int = 0
    columns: int = 0

    def as_dict(self) -> dict:
        return {"nodes": self.nodes, "max_depth": self.max_depth, "solutions": self.solutions,
                "rows": self.rows, "columns": self.columns}


# --- Tiny DLX (Knuth's Algorithm X with dancing links) ------------------------

@dataclass(eq=False, repr=False)
class _Node:
    L: "_Node"; R: "_Node"; U: "_Node"; D: "_Node"
    C: "_Col" | None
    row_id: int

@dataclass(eq=False, repr=False)
class _Col(_Node):
    index: int
    size: int

def _new_header() -> _Node:
    h = _Node(None, None, None, None, None, -1)  # type: ignore
    h.L = h.R = h.U = h.D = h
    return h

def _new_col(index: int) -> _Col:
    c = _Col(None, None, None, None, None, -1, index=index, size=0)  # type: ignore
    c.C = c
    c.L = c.R = c.U = c.D = c
    return c

def _link_right(left: _Node, right: _Node):
    right.R = left.R; right.L = left
    left.R.L = right; left.R = right

def _link_down(top: _Node, bottom: _Node):
    bottom.D = top.D; bottom.U = top
    top.D.U = bottom; top.D = bottom

def _cover(col: _Col):
    col.R.L = col.L; col.L.R = col.R
    i = col.D
    while i is not col:
        j = i.R
        while j is not i:
            j.D.U = j.U
            j.U.D = j.D
            j.C.size -= 1  # type: ignore
            j = j.R
        i = i.D

def _uncover(col: _Col):
    i = col.U
    while i is not col:
        j = i.L
        while j is not i:
            j.C.size += 1  # type: ignore
            j.D.U = j
            j.U.D = j
            j = j.L
        i = i.U
    col.R.L = col
    col.L.R = col

def _choose_col(header: _Node) -> _Col | None:
    # fewest remaining rows; ties go to the leftmost (lowest index) column
    c = header.R
    best: _Col | None = None
    best_size = 1 << 30
    while c is not header:
        if c.size < best_size:  # type: ignore
            best = c; best_size = c.size  # type: ignore
            if best_size == 0:
                break
        c = c.R
    return best

def _build_links(n_columns: int, rows: Sequence[Sequence[int]]) -> _Node:
    header = _new_header()
    cols: List[_Col] = []
    for i in range(n_columns):
        c = _new_col(i)
        cols.append(c)
        _link_right(header.L, c)  # insert before header => appended to the ring

    for ridx, row in enumerate(rows):
        row_cols = list(dict.fromkeys(int(c) for c in row))
        if not row_cols:
            raise PuzzleInputError(f"row {ridx} covers no columns")
        row_nodes: List[_Node] = []
        for ci in row_cols:
            if not 0 <= ci < n_columns:
                raise PuzzleInputError(f"row {ridx} refers to column {ci} outside 0..{n_columns - 1}")
            col = cols[ci]
            nd = _Node(None, None, None, None, col, ridx)  # type: ignore
            _link_down(col.U, nd)  # append at the bottom: keeps rows in insertion order
            col.size += 1
            row_nodes.append(nd)
        # link row circularly
        for i in range(len(row_nodes)):
            a = row_nodes[i]
            b = row_nodes[(i + 1) % len(row_nodes)]
            a.R = b
            b.L = a
    return header


# --- Public API ---------------------------------------------------------------

def search_exact_cover(
    n_columns: int,
    rows: Sequence[Sequence[int]],
    max_results: int = 1,
    should_stop: Optional[Callable[[], bool]] = None,
    on_progress: Optional[Callable[[SearchStats], None]] = None,
    stats: Optional[SearchStats] = None,
) -> List[List[int]]:
    """
    Algorithm X over `n_columns` primary columns; `rows[i]` lists the columns row i covers.
    Returns up to `max_results` covers as lists of row indices (in selection order).
    An empty list means the search was exhausted without a cover.

    `should_stop` is polled at every node; True aborts with SolveCancelled.
    All link structures are local to this call.
    """
    st = stats if stats is not None else SearchStats()
    st.rows = len(rows)
    st.columns = n_columns
    header = _build_links(n_columns, rows)

    solution_rows: List[int] = []
    results: List[List[int]] = []

    def search(depth: int):
        if len(results) >= max_results:
            return
        st.nodes += 1
        if depth > st.max_depth:
            st.max_depth = depth
        if should_stop is not None and should_stop():
            raise SolveCancelled(f"search stopped after {st.nodes} nodes")
        if on_progress is not None and st.nodes % PROGRESS_EVERY == 0:
            on_progress(st)

        col = _choose_col(header)
        if col is None:
            # no columns left -> every constraint satisfied exactly once
            results.append(list(solution_rows))
            st.solutions += 1
            return
        if col.size == 0:
            return  # dead end

        _cover(col)
        r = col.D
        while r is not col:
            solution_rows.append(r.row_id)
            j = r.R
            while j is not r:
                _cover(j.C)  # type: ignore
                j = j.R
            search(depth + 1)
            # backtrack
            j = r.L
            while j is not r:
                _uncover(j.C)  # type: ignore
                j = j.L
            solution_rows.pop()
            if len(results) >= max_results:
                break
            r = r.D
        _uncover(col)

    search(0)
    return results


def solve_cover(
    matrix: CoverMatrix,
    should_stop: Optional[Callable[[], bool]] = None,
    on_progress: Optional[Callable[[SearchStats], None]] = None,
    stats: Optional[SearchStats] = None,
) -> Optional[Solution]:
    """First exact cover of `matrix` as placements (one per piece), or None."""
    found = search_exact_cover(matrix.n_columns, matrix.all_row_columns(), max_results=1,
                               should_stop=should_stop, on_progress=on_progress, stats=stats)
    if not found:
        return None
    return tuple(matrix.rows[i] for i in found[0])
