# calendar_engine/components.py
from __future__ import annotations
from typing import Iterable, List, Set, Tuple

Coord = Tuple[int, int]

# --- orthogonal (4-neighbour) adjacency on the board grid ---
_GRID_NEIGH: Tuple[Coord, ...] = ((1, 0), (-1, 0), (0, 1), (0, -1))

def neighbors_grid(p: Coord) -> List[Coord]:
    px, py = p
    return [(px + dx, py + dy) for (dx, dy) in _GRID_NEIGH]

def find_components(cells: Iterable[Coord]) -> List[Set[Coord]]:
    """4-connected components; sorted by (size, first cell) for determinism."""
    s = set((int(x), int(y)) for (x, y) in cells)
    comps: List[Set[Coord]] = []
    while s:
        start = s.pop()
        comp = {start}
        stack = [start]
        while stack:
            cur = stack.pop()
            for nb in neighbors_grid(cur):
                if nb in s:
                    s.remove(nb)
                    comp.add(nb)
                    stack.append(nb)
        comps.append(comp)
    comps.sort(key=lambda c: (len(c), first_anchor_cell(c)))
    return comps

def first_anchor_cell(cells: Iterable[Coord]) -> Coord:
    """Row-major first cell (smallest y, then smallest x)."""
    return min(cells, key=lambda c: (c[1], c[0]))

def smallest_region(cells: Iterable[Coord]) -> int:
    """Size of the smallest 4-connected region, 0 when there are no cells."""
    comps = find_components(cells)
    return len(comps[0]) if comps else 0
