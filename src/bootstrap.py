"""bootstrap.py

Process bootstrap for Pipewright.

Rules:
1) Only bootstrap is allowed to *mutate* os.environ for shared run context.
2) Call bootstrap_base_env() exactly once at the true entrypoint.
3) Call bootstrap_run_context() after argparse parsing, before init_logging().

Everything else treats environment variables as the source of truth.
"""
from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

from env import ENV_FILE, _load_dotenv, reset_env_caches


_BOOTSTRAPPED = False


def bootstrap_base_env(dotenv_path: Path | None = None) -> None:
    """Load config/.env (optional) and stamp a run id."""
    global _BOOTSTRAPPED
    if _BOOTSTRAPPED:
        return

    _load_dotenv(dotenv_path or ENV_FILE)

    os.environ.setdefault(
        "PIPEWRIGHT_RUN_ID",
        datetime.now().strftime("%Y-%m-%d_%H-%M-%S"),
    )

    reset_env_caches()
    _BOOTSTRAPPED = True


def bootstrap_run_context(
    *,
    command: str,
    pipeline: str | None = None,
    workspace: str | None = None,
    verbose: bool | None = None,
    quiet: bool | None = None,
) -> None:
    """Establish run-scoped context used by logging + the engine."""

    os.environ["PIPEWRIGHT_COMMAND"] = command

    if pipeline:
        os.environ["PIPEWRIGHT_PIPELINE"] = pipeline
    else:
        os.environ.pop("PIPEWRIGHT_PIPELINE", None)

    if workspace:
        os.environ["PIPEWRIGHT_WORKSPACE"] = str(Path(workspace).expanduser().resolve())

    if verbose is not None:
        os.environ["PIPEWRIGHT_VERBOSE"] = "1" if verbose else "0"
    if quiet is not None:
        os.environ["PIPEWRIGHT_QUIET"] = "1" if quiet else "0"

    # Context changes must invalidate cached env views.
    reset_env_caches()
