# calendar_engine/worker.py: background solve worker
# One request in (stdin or --request FILE), JSON lines out on stdout:
#   {"event": "started", ...}
#   {"event": "progress", ...}            (zero or more)
#   exactly one of: solved | no_solution | error | stopped
# Human-readable echo goes to stderr so stdout stays machine-readable.
# Cooperative stop: write {"state": "stop"} to the run-control file
# (--runctl PATH, or RUNCTL_OVERRIDE in the environment).

from __future__ import annotations
import argparse
import json
import os
import sys
import time
from typing import Callable, List, Optional

from calendar_engine.errors import PuzzleInputError, SolveCancelled, SolverInvariantError
from calendar_engine.exact_cover_dlx import SearchStats
from calendar_engine.messages import decode_request, encode_date, encode_state
from calendar_engine.pieceset import total_area
from calendar_engine.reconstruct import format_solution
from calendar_engine.solver import DEFAULT_STRATEGY, STRATEGIES, find_solution

RUNCTL_ENV = "RUNCTL_OVERRIDE"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_STOPPED = 3

TERMINAL_EVENTS = ("solved", "no_solution", "error", "stopped")


# ---------- run control (stop) ----------
class RunControl:
    """Cheap poll of a {"state": ...} JSON file; only re-read when its mtime changes."""

    def __init__(self, path: Optional[str]):
        self.path = path
        self._mtime = -1.0
        self._state = "run"

    def state(self) -> str:
        if not self.path:
            return "run"
        try:
            m = os.path.getmtime(self.path)
        except OSError:
            return self._state
        if m != self._mtime:
            self._mtime = m
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    s = json.load(f)
                self._state = str(s.get("state", "run")).lower()
            except (OSError, ValueError, AttributeError):
                self._state = "run"
        return self._state

    def should_stop(self) -> bool:
        return self.state() == "stop"


def write_runctl(path: str, state: str) -> None:
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"state": str(state), "ts": time.time()}, f, ensure_ascii=False)


# ---------- emitters ----------
def emit_stdout(payload: dict):
    sys.stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
    sys.stdout.flush()

def make_echo(quiet: bool) -> Callable[[str], None]:
    def echo(msg: str):
        if not quiet:
            print(f"[solver] {msg}", file=sys.stderr, flush=True)
    return echo


# ---------- one request ----------
def handle_request(payload,
                   emit: Callable[[dict], None],
                   strategy: Optional[str] = None,
                   should_stop: Optional[Callable[[], bool]] = None,
                   echo: Callable[[str], None] = lambda _msg: None) -> int:
    """
    Decode, solve, emit events. Returns the process exit code.
    Every path ends with exactly one terminal event.
    """
    t0 = time.time()
    try:
        board, pieces, date, req_strategy = decode_request(payload)
        strat = strategy or req_strategy or DEFAULT_STRATEGY
        emit({
            "event": "started",
            "date": encode_date(date),
            "strategy": strat,
            "pieces": len(pieces),
            "piece_area": total_area(pieces),
            "ts": t0,
        })
        echo(f"solving {encode_date(date)} with {len(pieces)} pieces ({strat})")

        stats = SearchStats()

        def on_progress(st: SearchStats):
            emit({"event": "progress", **st.as_dict(), "elapsed": round(time.time() - t0, 3)})

        state = find_solution(board, pieces, date, strategy=strat,
                              should_stop=should_stop, on_progress=on_progress, stats=stats)
    except PuzzleInputError as e:
        echo(f"input error: {e}")
        emit({"event": "error", "kind": "input", "message": str(e)})
        return EXIT_ERROR
    except SolverInvariantError as e:
        echo(f"invariant violated: {e}")
        emit({"event": "error", "kind": "invariant", "message": str(e)})
        return EXIT_ERROR
    except SolveCancelled as e:
        echo(f"stopped: {e}")
        emit({"event": "stopped", "message": str(e), "elapsed": round(time.time() - t0, 3)})
        return EXIT_STOPPED

    elapsed = round(time.time() - t0, 3)
    if state is None:
        echo(f"no solution ({elapsed}s)")
        emit({"event": "no_solution", "stats": stats.as_dict(), "elapsed": elapsed})
        return EXIT_OK

    echo(f"solved in {elapsed}s ({stats.nodes} nodes)\n{format_solution(state)}")
    emit({"event": "solved", "state": encode_state(state), "stats": stats.as_dict(), "elapsed": elapsed})
    return EXIT_OK


# ---------- CLI ----------
def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description=(
            "Daily calendar puzzle solve worker: one JSON request in, JSON line events out.\n\n"
            "Examples:\n"
            "  python -m calendar_engine.worker --request request.json\n"
            "  python -m calendar_engine.worker --strategy backtrack < request.json\n"
            "  python -m calendar_engine.worker --runctl logs/runctl.json < request.json\n"
        ),
        formatter_class=argparse.RawTextHelpFormatter,
    )
    p.add_argument("--request", default=None, metavar="FILE",
                   help="Read the request JSON from FILE instead of stdin.")
    p.add_argument("--strategy", choices=list(STRATEGIES), default=None,
                   help=f"Override the request's strategy (default: {DEFAULT_STRATEGY}).")
    p.add_argument("--runctl", default=None, metavar="PATH",
                   help=f"Run-control JSON polled for {{\"state\": \"stop\"}} (default: ${RUNCTL_ENV}).")
    p.add_argument("--quiet", action="store_true",
                   help="No console echo on stderr.")
    return p


def read_request(path: Optional[str]):
    try:
        if path:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        return json.load(sys.stdin)
    except OSError as e:
        raise PuzzleInputError(f"cannot read request: {e}") from e
    except ValueError as e:
        raise PuzzleInputError(f"request is not valid JSON: {e}") from e


def main(argv: Optional[List[str]] = None) -> int:
    args = build_argparser().parse_args(argv)
    echo = make_echo(args.quiet)
    runctl = RunControl(args.runctl or os.environ.get(RUNCTL_ENV))
    if runctl.path:
        echo(f"runctl = {runctl.path}")

    try:
        payload = read_request(args.request)
    except PuzzleInputError as e:
        echo(str(e))
        emit_stdout({"event": "error", "kind": "input", "message": str(e)})
        return EXIT_ERROR

    return handle_request(payload, emit_stdout, strategy=args.strategy,
                          should_stop=runctl.should_stop, echo=echo)


if __name__ == "__main__":
    sys.exit(main())
