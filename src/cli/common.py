from __future__ import annotations

import argparse
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable

from env import logs_dir


# ----------------------------
# Help dispatch (subparser-local)
# ----------------------------


def dispatch_subparser_help(
    parser: argparse.ArgumentParser, path: list[str] | None
) -> int:
    """
    Implements consistent `X help [subcmd ...]` behavior for a subtree parser.
    """
    if not path:
        parser.print_help()
        return 0

    try:
        parser.parse_args(path + ["--help"])
    except SystemExit:
        pass
    return 0


# ----------------------------
# Logs / runs filesystem helpers
# ----------------------------


def resolve_log_dir(
    *, pipeline: str | None, explicit: str | None, command: str = "run"
) -> Path:
    if explicit:
        return Path(explicit).expanduser().resolve()

    base = logs_dir() / command
    return (base / pipeline).resolve() if pipeline else base.resolve()


def iter_log_files(log_dir: Path) -> Iterable[Path]:
    """All *.log files under `log_dir`, including per-pipeline subdirectories."""
    if not log_dir.exists():
        return []
    return (p for p in log_dir.rglob("*.log") if p.is_file())


def find_log_file(log_dir: Path, name: str) -> Path | None:
    if not log_dir.exists():
        return None

    candidates = [
        log_dir / name,
        log_dir / f"{name}.log",
    ]
    for p in candidates:
        if p.exists() and p.is_file():
            return p

    for p in log_dir.rglob("*.log"):
        if p.stem == name or p.name == name:
            return p

    return None


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def print_tail(path: Path, lines: int) -> None:
    try:
        data = read_text(path).splitlines()
    except OSError as e:
        print(f"[error reading log] {e}")
        return

    tail = data[-lines:] if lines > 0 else data
    for line in tail:
        print(line)


# ----------------------------
# Run status inference (log-driven)
# ----------------------------

_RUN_STATUS_RE = re.compile(r"RUN_STATUS=(\w+)")


def infer_run_status(path: Path) -> str:
    """
    RUN_STATUS=<value> is the authoritative marker:
      success | unstable | failure | aborted

    The last marker wins; a log without one is still running or crashed.
    """
    try:
        text = read_text(path)
    except OSError:
        return "unknown"

    found = _RUN_STATUS_RE.findall(text)
    if found:
        return found[-1]
    return "unknown"


# ----------------------------
# Run listing models
# ----------------------------


@dataclass(frozen=True)
class RunFile:
    run_id: str
    pipeline: str
    path: Path
    mtime: float
    size: int


def list_run_files(log_dir: Path) -> list[RunFile]:
    items: list[RunFile] = []
    for p in iter_log_files(log_dir):
        try:
            st = p.stat()
        except OSError:
            continue
        items.append(
            RunFile(
                run_id=p.stem,
                pipeline=p.parent.name if p.parent != log_dir else "-",
                path=p,
                mtime=st.st_mtime,
                size=st.st_size,
            )
        )

    items.sort(key=lambda r: r.mtime, reverse=True)
    return items


def format_mtime(ts: float) -> str:
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


# ----------------------------
# CLI output helpers
# ----------------------------


def print_table(headers: list[str], rows: list[list[str]]) -> None:
    """
    Simple fixed-width table printer for CLI output.
    """
    if not rows:
        print("(no results)")
        return

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))

    fmt = "  ".join(f"{{:{w}}}" for w in widths)

    print(fmt.format(*headers))
    print(fmt.format(*("-" * w for w in widths)))

    for row in rows:
        print(fmt.format(*(str(c) for c in row)))
