# apps/puzzle_ui/ui/solve_client.py
# Runs calendar_engine.worker in a QProcess so the UI thread never searches.
# Request goes to the child's stdin; stdout carries JSON line events.

import json
import os
import sys
import tempfile
import time
from typing import List, Optional, Sequence

from PySide6.QtCore import QObject, QProcess, QProcessEnvironment, Signal

from apps.puzzle_ui.ui.utils import repo_root, win_quote
from calendar_engine.board import Board
from calendar_engine.messages import encode_request
from calendar_engine.pieceset import Piece

WORKER_MODULE = "calendar_engine.worker"
RUNCTL_ENV = "RUNCTL_OVERRIDE"
START_TIMEOUT_MS = 3000
STOP_TIMEOUT_MS = 5000


class SolveClient(QObject):
    """
    One background solve at a time. Exactly one of solved / noSolution /
    solveError / stopped / transportError ends each run.

    solveError(kind, message) is the worker's own structured error
    ("input" or "invariant"); transportError(message) means the worker could
    not be started, crashed, or produced output we cannot read.
    """
    started = Signal(dict)
    progress = Signal(dict)
    solved = Signal(dict)           # encoded SolvedState (messages.encode_state)
    noSolution = Signal()
    solveError = Signal(str, str)   # kind, message
    stopped = Signal()
    transportError = Signal(str)
    logLine = Signal(str)           # worker stderr echo

    def __init__(self, parent: Optional[QObject] = None,
                 python: Optional[str] = None,
                 workdir: Optional[str] = None,
                 runctl_path: Optional[str] = None,
                 extra_args: Optional[Sequence[str]] = None):
        super().__init__(parent)
        self.python = python or sys.executable
        self.workdir = workdir or str(repo_root())
        # owned temp dir only when the caller gives no runctl path; removed by close()
        self._runctl_dir: Optional[tempfile.TemporaryDirectory] = None
        if runctl_path is None:
            self._runctl_dir = tempfile.TemporaryDirectory(prefix="calendar_solver_")
            runctl_path = os.path.join(self._runctl_dir.name, "runctl.json")
        self.runctl_path = runctl_path
        self.extra_args: List[str] = list(extra_args or [])

        self.proc: Optional[QProcess] = None
        self._stdout_buf = ""
        self._finished_event: Optional[str] = None
        self._cancelled = False
        self._closed = False

    # ---------- state ----------
    def is_running(self) -> bool:
        return self.proc is not None and self.proc.state() != QProcess.NotRunning

    def command(self) -> List[str]:
        return [self.python, "-m", WORKER_MODULE, "--runctl", self.runctl_path] + self.extra_args

    # ---------- start / cancel ----------
    def start(self, board: Board, pieces: Sequence[Piece], date, strategy: Optional[str] = None) -> bool:
        return self.start_payload(encode_request(board, list(pieces), date, strategy))

    def start_payload(self, payload: dict) -> bool:
        """Launch the worker with an already-encoded request. False if it could not start."""
        if self._closed:
            self.transportError.emit("client is closed")
            return False
        if self.is_running():
            self.transportError.emit("a solve is already running")
            return False

        self._stdout_buf = ""
        self._finished_event = None
        self._cancelled = False
        self._write_runctl("run")

        cmd = self.command()
        self.logLine.emit("launching: " + " ".join(win_quote(a) for a in cmd))

        proc = QProcess(self)
        env = QProcessEnvironment.systemEnvironment()
        env.insert(RUNCTL_ENV, self.runctl_path)
        pp = env.value("PYTHONPATH", "")
        env.insert("PYTHONPATH", self.workdir + (os.pathsep + pp if pp else ""))
        proc.setProcessEnvironment(env)
        proc.setWorkingDirectory(self.workdir)
        proc.readyReadStandardOutput.connect(self._drain_stdout)
        proc.readyReadStandardError.connect(self._drain_stderr)
        proc.finished.connect(self._proc_finished)
        self.proc = proc

        proc.start(cmd[0], cmd[1:])
        if not proc.waitForStarted(START_TIMEOUT_MS):
            err = proc.errorString()
            self.proc = None
            proc.deleteLater()
            self._finish("transport", f"worker failed to start: {err}")
            return False

        proc.write(json.dumps(payload, ensure_ascii=False).encode("utf-8"))
        proc.closeWriteChannel()
        return True

    def cancel(self) -> None:
        """Cooperative stop (runctl='stop'), then terminate/kill if the worker lingers."""
        if not self.is_running():
            return
        self._cancelled = True
        self._write_runctl("stop")
        proc = self.proc
        if not proc.waitForFinished(STOP_TIMEOUT_MS):
            proc.terminate()
            if not proc.waitForFinished(STOP_TIMEOUT_MS):
                proc.kill()
                proc.waitForFinished(2000)

    def close(self) -> None:
        """Stop any running solve and remove the run-control directory this client created."""
        self.cancel()
        self._closed = True
        if self._runctl_dir is not None:
            self._runctl_dir.cleanup()
            self._runctl_dir = None

    # ---------- helpers ----------
    def _write_runctl(self, state: str) -> None:
        d = os.path.dirname(self.runctl_path)
        if d:
            os.makedirs(d, exist_ok=True)
        with open(self.runctl_path, "w", encoding="utf-8") as f:
            json.dump({"state": state, "ts": time.time()}, f, ensure_ascii=False)

    def _finish(self, event: str, *args) -> None:
        """Emit the terminal signal once per run."""
        if self._finished_event is not None:
            return
        self._finished_event = event
        if event == "solved":
            self.solved.emit(args[0])
        elif event == "no_solution":
            self.noSolution.emit()
        elif event == "error":
            self.solveError.emit(args[0], args[1])
        elif event == "stopped":
            self.stopped.emit()
        else:
            self.transportError.emit(args[0])

    # ---------- process I/O ----------
    def _drain_stdout(self):
        if not self.proc:
            return
        self._stdout_buf += bytes(self.proc.readAllStandardOutput()).decode("utf-8", errors="replace")
        while "\n" in self._stdout_buf:
            line, self._stdout_buf = self._stdout_buf.split("\n", 1)
            if line.strip():
                self._handle_line(line)

    def _drain_stderr(self):
        if not self.proc:
            return
        text = bytes(self.proc.readAllStandardError()).decode("utf-8", errors="replace")
        for ln in text.splitlines():
            if ln.strip():
                self.logLine.emit(ln)

    def _handle_line(self, line: str):
        try:
            msg = json.loads(line)
        except ValueError:
            self._finish("transport", f"unreadable worker output: {line[:200]!r}")
            return
        if not isinstance(msg, dict):
            self._finish("transport", f"unexpected worker output: {line[:200]!r}")
            return
        event = msg.get("event")
        if event == "started":
            self.started.emit(msg)
        elif event == "progress":
            self.progress.emit(msg)
        elif event == "solved":
            state = msg.get("state")
            if isinstance(state, dict):
                self._finish("solved", state)
            else:
                self._finish("transport", "solved event without a state")
        elif event == "no_solution":
            self._finish("no_solution")
        elif event == "error":
            self._finish("error", str(msg.get("kind", "unknown")), str(msg.get("message", "")))
        elif event == "stopped":
            self._finish("stopped")

    def _proc_finished(self, code: int, status):
        self._drain_stdout()
        if self._stdout_buf.strip():
            self._handle_line(self._stdout_buf)
            self._stdout_buf = ""
        if self._finished_event is None:
            if self._cancelled:
                self._finish("stopped")
            elif status == QProcess.CrashExit:
                self._finish("transport", f"worker crashed (exit code {code})")
            else:
                self._finish("transport", f"worker exited ({code}) without a result")
        proc, self.proc = self.proc, None
        if proc is not None:
            proc.deleteLater()
