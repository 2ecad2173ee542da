import threading
import time
from pathlib import Path

import pytest

from pipeline.cancel import AbortToken
from pipeline.process import SPAWN_FAILED_EXIT, execute


def test_captures_exit_code_and_streams(tmp_path):
    r = execute("echo out; echo err 1>&2; exit 3", cwd=tmp_path)

    assert r.exit_code == 3
    assert r.stdout == "out"
    assert r.stderr == "err"
    assert not r.timed_out
    assert not r.aborted
    assert not r.ok


def test_runs_in_cwd_with_env(tmp_path):
    r = execute('pwd; echo "$GREETING"', cwd=tmp_path, env={"GREETING": "hi", "PATH": "/usr/bin:/bin"})

    assert r.ok
    assert r.stdout.splitlines() == [str(tmp_path), "hi"]


def test_timeout_kills_process_group(tmp_path):
    started = time.monotonic()
    r = execute("sleep 10; echo never", cwd=tmp_path, timeout=0.3, kill_grace=1)

    assert r.timed_out
    assert "never" not in r.stdout
    assert time.monotonic() - started < 5


def test_timeout_wins_even_for_command_that_would_succeed(tmp_path):
    r = execute("sleep 5 && exit 0", cwd=tmp_path, timeout=0.2, kill_grace=1)

    assert r.timed_out
    assert not r.ok


def test_exhausted_budget_does_not_spawn(tmp_path):
    marker = tmp_path / "ran"
    r = execute(f"touch {marker}", cwd=tmp_path, timeout=0)

    assert r.timed_out
    assert not marker.exists()


def test_abort_token_stops_running_command(tmp_path):
    token = AbortToken()
    threading.Timer(0.2, token.request, args=("test",)).start()

    r = execute("sleep 10", cwd=tmp_path, abort=token, kill_grace=1)

    assert r.aborted
    assert not r.timed_out
    assert token.reason == "test"


def test_already_aborted_does_not_spawn(tmp_path):
    token = AbortToken()
    token.request()
    marker = tmp_path / "ran"

    r = execute(f"touch {marker}", cwd=tmp_path, abort=token)

    assert r.aborted
    assert not marker.exists()


def test_line_callback_sees_both_streams(tmp_path):
    seen = []
    execute(
        "echo a; echo b 1>&2",
        cwd=tmp_path,
        on_line=lambda stream, line: seen.append((stream, line)),
    )

    assert ("stdout", "a") in seen
    assert ("stderr", "b") in seen


def test_line_callback_errors_are_contained(tmp_path):
    def _boom(stream, line):
        raise RuntimeError("nope")

    r = execute("echo a", cwd=tmp_path, on_line=_boom)
    assert r.ok
    assert r.stdout == "a"


def test_captured_output_is_bounded(tmp_path):
    r = execute("for i in 1 2 3 4 5; do echo $i; done", cwd=tmp_path, max_lines=2)
    assert r.stdout.splitlines() == ["4", "5"]


def test_spawn_failure_is_reported_not_raised(tmp_path):
    r = execute("true", cwd=tmp_path / "missing")

    assert r.exit_code == SPAWN_FAILED_EXIT
    assert r.stderr


def test_background_child_cannot_outlive_timeout(tmp_path):
    started = time.monotonic()
    r = execute("sleep 6 &", cwd=tmp_path, timeout=0.5, kill_grace=1)

    assert r.timed_out
    assert not r.ok
    assert time.monotonic() - started < 4


def test_background_child_finishing_in_budget_is_waited_for(tmp_path):
    r = execute("(sleep 0.3; echo late) &", cwd=tmp_path, timeout=5)

    assert r.ok
    assert r.stdout == "late"


def _alive(pid: int) -> bool:
    try:
        state = (Path("/proc") / str(pid) / "stat").read_text().split(")")[-1].split()[0]
    except OSError:
        return False
    return state != "Z"


@pytest.mark.skipif(not Path("/proc/self/stat").exists(), reason="needs /proc")
def test_detached_group_members_are_killed_on_return(tmp_path):
    r = execute("sleep 30 >/dev/null 2>&1 & echo $!", cwd=tmp_path, timeout=5)
    pid = int(r.stdout.strip())

    for _ in range(40):
        if not _alive(pid):
            break
        time.sleep(0.05)

    assert r.ok
    assert not _alive(pid)
