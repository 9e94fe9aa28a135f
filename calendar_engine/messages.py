# calendar_engine/messages.py
# JSON payloads crossing the worker boundary.
# Dates travel as ISO-8601 calendar dates ("2025-03-01"); never as locale text.

from __future__ import annotations
import datetime as _dt
from typing import Any, Dict, List, Optional, Sequence, Tuple

from calendar_engine.board import Board, Cell, coerce_date
from calendar_engine.errors import PuzzleInputError
from calendar_engine.pieceset import Piece, PlacedPiece
from calendar_engine.reconstruct import SolvedState
from calendar_engine.shapes import ROTATIONS, shape_from_rows, shape_to_rows

REQUEST_SCHEMA = "calendar_puzzle_request/1.0"
SOLUTION_SCHEMA = "calendar_puzzle_solution/1.0"


# ---------- dates ----------
def encode_date(value) -> str:
    return coerce_date(value).isoformat()

def decode_date(text: Any) -> _dt.date:
    """
    Accepts "YYYY-MM-DD" or a full ISO timestamp. For timestamps the calendar
    date is taken as written; no time-zone conversion is applied.
    """
    if not isinstance(text, str) or not text:
        raise PuzzleInputError(f"date must be an ISO-8601 string, got {text!r}")
    s = text.strip()
    try:
        if len(s) == 10:
            return _dt.date.fromisoformat(s)
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        return _dt.datetime.fromisoformat(s).date()
    except ValueError as e:
        raise PuzzleInputError(f"invalid ISO-8601 date {text!r}: {e}") from e


# ---------- helpers ----------
def _require(obj: Dict[str, Any], key: str, kind=None):
    if not isinstance(obj, dict):
        raise PuzzleInputError(f"expected an object, got {type(obj).__name__}")
    if key not in obj:
        raise PuzzleInputError(f"missing field '{key}'")
    v = obj[key]
    if kind is not None and not isinstance(v, kind):
        raise PuzzleInputError(f"field '{key}' has wrong type {type(v).__name__}")
    return v

def _xy(v) -> Tuple[int, int]:
    if not (isinstance(v, (list, tuple)) and len(v) == 2 and all(isinstance(a, int) for a in v)):
        raise PuzzleInputError(f"expected [x, y], got {v!r}")
    return (int(v[0]), int(v[1]))


# ---------- board ----------
def encode_board(board: Board) -> Dict[str, Any]:
    return {
        "width": board.width,
        "height": board.height,
        "month_rows": board.month_rows,
        "months": list(board.months),
        "cells": [[{"content": c.content, "playable": c.is_playable} for c in row] for row in board.cells],
    }

def decode_board(obj: Dict[str, Any]) -> Board:
    rows = _require(obj, "cells", list)
    month_rows = _require(obj, "month_rows", int)
    if not rows:
        raise PuzzleInputError("board has no rows")
    width = len(rows[0]) if isinstance(rows[0], list) else -1
    cells: List[Tuple[Cell, ...]] = []
    for y, row in enumerate(rows):
        if not isinstance(row, list) or len(row) != width or width <= 0:
            raise PuzzleInputError(f"board row {y} is malformed")
        out = []
        for x, c in enumerate(row):
            content = _require(c, "content", str)
            playable = _require(c, "playable", bool)
            out.append(Cell(x, y, content, playable))
        cells.append(tuple(out))
    months = obj.get("months")
    if months is None:
        return Board(cells=tuple(cells), month_rows=month_rows)
    if not (isinstance(months, list) and len(months) == 12 and all(isinstance(m, str) for m in months)):
        raise PuzzleInputError("field 'months' must be a list of 12 labels")
    return Board(cells=tuple(cells), month_rows=month_rows, months=tuple(months))


# ---------- pieces ----------
def encode_piece(piece: Piece) -> Dict[str, Any]:
    return {"id": piece.id, "shape": shape_to_rows(piece.shape)}

def decode_piece(obj: Dict[str, Any]) -> Piece:
    pid = _require(obj, "id", int)
    rows = _require(obj, "shape", list)
    if not all(isinstance(r, str) for r in rows):
        raise PuzzleInputError(f"piece {pid}: shape rows must be strings")
    return Piece(pid, shape_from_rows(rows))

def encode_placed_piece(pp: PlacedPiece) -> Dict[str, Any]:
    return {
        "id": pp.id,
        "shape": shape_to_rows(pp.shape),
        "position": list(pp.position),
        "rotation": pp.rotation,
        "flip_h": pp.flip_h,
        "flip_v": pp.flip_v,
    }

def decode_placed_piece(obj: Dict[str, Any]) -> PlacedPiece:
    piece = decode_piece(obj)
    rotation = _require(obj, "rotation", int)
    if rotation not in ROTATIONS:
        raise PuzzleInputError(f"piece {piece.id}: bad rotation {rotation}")
    return PlacedPiece(
        id=piece.id,
        shape=piece.shape,
        position=_xy(_require(obj, "position")),
        rotation=rotation,
        flip_h=_require(obj, "flip_h", bool),
        flip_v=_require(obj, "flip_v", bool),
    )


# ---------- request ----------
def encode_request(board: Board, pieces: Sequence[Piece], date, strategy: Optional[str] = None) -> Dict[str, Any]:
    req = {
        "schema": REQUEST_SCHEMA,
        "date": encode_date(date),
        "board": encode_board(board),
        "pieces": [encode_piece(p) for p in pieces],
    }
    if strategy:
        req["strategy"] = strategy
    return req

def decode_request(obj: Dict[str, Any]) -> Tuple[Board, Tuple[Piece, ...], _dt.date, Optional[str]]:
    schema = _require(obj, "schema", str)
    if schema != REQUEST_SCHEMA:
        raise PuzzleInputError(f"unsupported request schema {schema!r}")
    date = decode_date(_require(obj, "date"))
    board = decode_board(_require(obj, "board", dict))
    pieces = tuple(decode_piece(p) for p in _require(obj, "pieces", list))
    strategy = obj.get("strategy")
    if strategy is not None and not isinstance(strategy, str):
        raise PuzzleInputError("field 'strategy' must be a string")
    return board, pieces, date, strategy


# ---------- solved state ----------
def encode_state(state: SolvedState) -> Dict[str, Any]:
    return {
        "schema": SOLUTION_SCHEMA,
        "date": encode_date(state.date) if state.date is not None else None,
        "is_solved": state.is_solved,
        "board": encode_board(state.board),
        "occupancy": [[bool(v) for v in row] for row in state.occupancy],
        "pieces": [encode_placed_piece(p) for p in state.pieces],
    }

def decode_state(obj: Dict[str, Any]) -> SolvedState:
    schema = _require(obj, "schema", str)
    if schema != SOLUTION_SCHEMA:
        raise PuzzleInputError(f"unsupported solution schema {schema!r}")
    date_txt = obj.get("date")
    date = decode_date(date_txt) if date_txt is not None else None
    board = decode_board(_require(obj, "board", dict))
    if date is not None:
        board = board.for_date(date)
    occ = _require(obj, "occupancy", list)
    if len(occ) != board.height or any(not isinstance(r, list) or len(r) != board.width for r in occ):
        raise PuzzleInputError("occupancy does not match board size")
    return SolvedState(
        board=board,
        occupancy=tuple(tuple(bool(v) for v in row) for row in occ),
        pieces=tuple(decode_placed_piece(p) for p in _require(obj, "pieces", list)),
        date=date,
        is_solved=bool(obj.get("is_solved", True)),
    )
