from __future__ import annotations

import shutil
from pathlib import Path, PurePosixPath
from typing import Iterable

from logger import get_logger
from pipeline.errors import ArchiveError
from pipeline.model import ArtifactSet

log = get_logger("pipewright.artifacts")


def _check_glob(pattern: str) -> None:
    p = PurePosixPath(pattern.replace("\\", "/"))
    if p.is_absolute() or Path(pattern).is_absolute():
        raise ArchiveError(f"Artifact glob must be relative: {pattern}", glob=pattern)
    if ".." in p.parts:
        raise ArchiveError(f"Artifact glob escapes workspace: {pattern}", glob=pattern)


def resolve_glob(pattern: str, workspace: Path) -> tuple[str, ...]:
    """Workspace-relative POSIX paths of regular files matching `pattern`."""
    _check_glob(pattern)
    matched = {
        p.relative_to(workspace).as_posix()
        for p in workspace.glob(pattern)
        if p.is_file()
    }
    return tuple(sorted(matched))


def archive(
    globs: Iterable[str],
    *,
    workspace: str | Path,
    destination: str | Path,
    allow_empty: bool = True,
) -> ArtifactSet:
    """
    Copy files matching `globs` out of the workspace into `destination`.

    Relative layout is preserved. Zero matches for a glob is an ArchiveError
    unless `allow_empty` is set, in which case it is only logged.
    """
    ws = Path(workspace).resolve()
    dest = Path(destination)

    matches: dict[str, tuple[str, ...]] = {}
    for pattern in globs:
        files = resolve_glob(pattern, ws)
        if not files:
            if not allow_empty:
                raise ArchiveError(f"No files matched artifact glob: {pattern}", glob=pattern)
            log.warning(f"No artifacts matched: {pattern}")
        matches[pattern] = files

    copied: set[str] = set()
    for files in matches.values():
        for rel in files:
            if rel in copied:
                continue
            target = dest / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                shutil.copy2(ws / rel, target)
            except OSError as e:
                raise ArchiveError(f"Failed to archive {rel}: {e}") from e
            copied.add(rel)

    if copied:
        log.info(f"Archived {len(copied)} file(s) to {dest}")

    return ArtifactSet(destination=dest, matches=matches)
