from __future__ import annotations

import os
import signal
import subprocess
import threading
import time
from collections import deque
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Deque, IO, Mapping, Optional

from logger import get_logger
from pipeline.cancel import AbortToken

log = get_logger("pipewright.process")

LineCallback = Callable[[str, str], None]

_POLL_INTERVAL = 0.05
SPAWN_FAILED_EXIT = 127


@dataclass(frozen=True)
class ProcessResult:
    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False
    aborted: bool = False
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and not self.aborted


# ------------------------------------------------------------
# Process group handling
# ------------------------------------------------------------


def _isolation_kwargs() -> dict[str, object]:
    # Own session so a timeout/abort can take down the whole shell tree.
    if os.name == "nt":
        flag = int(getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0))
        return {"creationflags": flag} if flag else {}
    return {"start_new_session": True}


def _signal_group(proc: subprocess.Popen, sig: int) -> None:
    if os.name == "nt":
        return
    with suppress(ProcessLookupError, PermissionError):
        os.killpg(proc.pid, sig)


def _terminate(proc: subprocess.Popen, *, grace: float, reason: str) -> None:
    """SIGTERM the group, then SIGKILL if it outlives `grace`."""
    if proc.poll() is not None:
        return

    _signal_group(proc, signal.SIGTERM)
    with suppress(OSError):
        proc.terminate()

    try:
        proc.wait(timeout=max(0.1, grace))
        return
    except subprocess.TimeoutExpired:
        log.warning(f"Process {proc.pid} ignored SIGTERM during {reason}; killing")

    _signal_group(proc, signal.SIGKILL)
    with suppress(OSError):
        proc.kill()
    proc.wait()


def _stop_group(
    readers: list[threading.Thread], proc: subprocess.Popen, *, grace: float
) -> None:
    """
    Terminate members left in the session after the shell itself exited.

    They are still holding the output pipes, so the readers finishing is the
    signal that they are gone.
    """
    _signal_group(proc, signal.SIGTERM)
    until = time.monotonic() + max(0.1, grace)
    for t in readers:
        t.join(timeout=max(0.0, until - time.monotonic()))

    if any(t.is_alive() for t in readers):
        log.warning(f"Process group {proc.pid} ignored SIGTERM; killing")
        _signal_group(proc, signal.SIGKILL)


# ------------------------------------------------------------
# Output capture
# ------------------------------------------------------------


def _drain(
    stream: IO[str],
    name: str,
    sink: Deque[str],
    on_line: Optional[LineCallback],
) -> None:
    with suppress(ValueError):
        for raw in stream:
            line = raw.rstrip("\r\n")
            sink.append(line)
            if on_line is None:
                continue
            try:
                on_line(name, line)
            except Exception:
                # Output forwarding must never affect stage execution.
                log.debug("line callback failed", exc_info=True)


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------


def execute(
    command: str,
    *,
    cwd: str | Path,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    abort: AbortToken | None = None,
    on_line: LineCallback | None = None,
    kill_grace: float = 5.0,
    max_lines: int = 2000,
) -> ProcessResult:
    """
    Run `command` through the shell and wait for it.

    `timeout` is the remaining wall-clock budget in seconds (None = no limit).
    When it expires, or `abort` fires, the process group is terminated and the
    result is flagged instead of raising. Background members of the shell's
    session count as part of the command: the deadline keeps running while
    they hold its output open, and any left over are killed on return.
    """
    started = time.monotonic()

    if timeout is not None and timeout <= 0:
        return ProcessResult(
            exit_code=-1,
            stdout="",
            stderr="timeout budget exhausted before start",
            timed_out=True,
        )

    if abort is not None and abort.requested:
        return ProcessResult(
            exit_code=-1, stdout="", stderr="aborted before start", aborted=True
        )

    try:
        proc = subprocess.Popen(
            command,
            shell=True,
            cwd=str(cwd),
            env=dict(env) if env is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
            **_isolation_kwargs(),
        )
    except OSError as e:
        log.error(f"Failed to start command: {e}")
        return ProcessResult(
            exit_code=SPAWN_FAILED_EXIT,
            stdout="",
            stderr=str(e),
            duration_seconds=round(time.monotonic() - started, 3),
        )

    limit = max(1, int(max_lines))
    out_lines: Deque[str] = deque(maxlen=limit)
    err_lines: Deque[str] = deque(maxlen=limit)

    assert proc.stdout is not None and proc.stderr is not None
    readers = [
        threading.Thread(
            target=_drain, args=(proc.stdout, "stdout", out_lines, on_line), daemon=True
        ),
        threading.Thread(
            target=_drain, args=(proc.stderr, "stderr", err_lines, on_line), daemon=True
        ),
    ]
    for t in readers:
        t.start()

    deadline = started + timeout if timeout is not None else None
    timed_out = False
    aborted = False

    def _pending() -> bool:
        # The shell, or anything it left behind that still holds the pipes.
        return proc.poll() is None or any(t.is_alive() for t in readers)

    try:
        while _pending():
            if abort is not None and abort.requested:
                aborted = True
                break

            if deadline is not None and time.monotonic() >= deadline:
                timed_out = True
                break

            if abort is not None:
                abort.wait(_POLL_INTERVAL)
            else:
                time.sleep(_POLL_INTERVAL)
    finally:
        reason = "abort" if aborted else "timeout" if timed_out else "shutdown"
        if proc.poll() is None:
            _terminate(proc, grace=kill_grace, reason=reason)
        if any(t.is_alive() for t in readers):
            _stop_group(readers, proc, grace=kill_grace)

        # Nothing in the session outlives its stage.
        _signal_group(proc, signal.SIGKILL)

        for t in readers:
            t.join(timeout=1.0)
        if not any(t.is_alive() for t in readers):
            for stream in (proc.stdout, proc.stderr):
                with suppress(OSError):
                    stream.close()

    return ProcessResult(
        exit_code=proc.returncode if proc.returncode is not None else -1,
        stdout="\n".join(out_lines),
        stderr="\n".join(err_lines),
        timed_out=timed_out,
        aborted=aborted,
        duration_seconds=round(time.monotonic() - started, 3),
    )
