from calendar_engine.components import find_components, first_anchor_cell, smallest_region

def test_components_two_disconnected():
    a = [(0,0),(1,0),(0,1)]
    b = [(5,5),(5,6),(6,6),(6,5),(7,5)]
    comps = find_components(a + b)
    sizes = [len(c) for c in comps]
    assert sizes == [3,5]

def test_diagonal_cells_are_not_connected():
    comps = find_components([(0,0),(1,1),(2,2)])
    assert len(comps) == 3

def test_first_anchor_cell_is_row_major():
    cells = [(5,2),(0,3),(3,0),(1,0)]
    assert first_anchor_cell(cells) == (1,0)

def test_smallest_region():
    assert smallest_region([]) == 0
    assert smallest_region([(0,0),(1,0),(3,0)]) == 1
