from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from env.paths import (
    PROJECT_ROOT,
    artifacts_dir,
    logs_dir,
    pipelines_dir,
    workspace_dir,
)

# ------------------------------------------------------------
# Dotenv (read-only helper, bootstrap owns usage)
# ------------------------------------------------------------

ENV_FILE = PROJECT_ROOT / "config" / ".env"


def _load_dotenv(path: Path = ENV_FILE) -> bool:
    """
    Load a dotenv file into os.environ.
    Shell / CI variables always win.
    """
    if not path.exists():
        return False
    return load_dotenv(path, override=False)


# ------------------------------------------------------------
# Errors / helpers
# ------------------------------------------------------------


class ConfigError(RuntimeError):
    pass


def _as_bool(v: str) -> bool:
    return v.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(v: str, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _as_float(v: str, default: float) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


# ------------------------------------------------------------
# Logging environment (SAFE ANYWHERE)
# ------------------------------------------------------------


@dataclass(frozen=True)
class LoggingEnvironment:
    log_level: str
    log_retention: int
    verbose: bool
    quiet: bool


def get_logging_env() -> LoggingEnvironment:
    return LoggingEnvironment(
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        log_retention=_as_int(os.environ.get("LOG_RETENTION", "30"), 30),
        verbose=_as_bool(os.environ.get("PIPEWRIGHT_VERBOSE", "0")),
        quiet=_as_bool(os.environ.get("PIPEWRIGHT_QUIET", "0")),
    )


# ------------------------------------------------------------
# Full runtime environment (ENGINE ONLY)
# ------------------------------------------------------------


class Environment:
    def __init__(self):
        # Logging snapshot (immutable)
        self._logging = get_logging_env()

        # ---- RUN CONTEXT ----
        self.command = os.environ.get("PIPEWRIGHT_COMMAND", "bootstrap")
        self.pipeline_name = os.environ.get("PIPEWRIGHT_PIPELINE") or None
        self.run_id = os.environ.get("PIPEWRIGHT_RUN_ID", "")

        # ---- LOCATIONS ----
        self.pipelines_dir = pipelines_dir()
        self.workspace = workspace_dir()
        self.artifacts_dir = artifacts_dir()
        self.logs_dir = logs_dir()

        # ---- BUDGETS ----
        self.default_timeout = _as_float(
            os.environ.get("PIPEWRIGHT_DEFAULT_TIMEOUT", "3600"), 3600.0
        )
        self.post_timeout = _as_float(
            os.environ.get("PIPEWRIGHT_POST_TIMEOUT", "300"), 300.0
        )
        self.kill_grace = _as_float(os.environ.get("PIPEWRIGHT_KILL_GRACE", "5"), 5.0)
        self.max_captured_lines = _as_int(
            os.environ.get("PIPEWRIGHT_MAX_CAPTURED_LINES", "2000"), 2000
        )

        if self.default_timeout <= 0:
            raise ConfigError("PIPEWRIGHT_DEFAULT_TIMEOUT must be positive")
        if self.post_timeout <= 0:
            raise ConfigError("PIPEWRIGHT_POST_TIMEOUT must be positive")

    def as_dict(self) -> dict:
        return {
            "Logging": {
                "log_level": self.log_level,
                "log_retention": self.log_retention,
                "verbose": self.verbose,
                "quiet": self.quiet,
            },
            "Run": {
                "command": self.command,
                "pipeline": self.pipeline_name,
                "run_id": self.run_id,
            },
            "Paths": {
                "pipelines_dir": str(self.pipelines_dir),
                "workspace": str(self.workspace),
                "artifacts_dir": str(self.artifacts_dir),
                "logs_dir": str(self.logs_dir),
            },
            "Budgets": {
                "default_timeout": self.default_timeout,
                "post_timeout": self.post_timeout,
                "kill_grace": self.kill_grace,
                "max_captured_lines": self.max_captured_lines,
            },
        }

    # ---- logging passthrough ----
    @property
    def log_level(self) -> str:
        return self._logging.log_level

    @property
    def log_retention(self) -> int:
        return self._logging.log_retention

    @property
    def verbose(self) -> bool:
        return self._logging.verbose

    @property
    def quiet(self) -> bool:
        return self._logging.quiet


_ENV: Optional[Environment] = None


def reset_env_caches() -> None:
    """Invalidate cached views of environment variables."""
    global _ENV
    _ENV = None


def get_env() -> Environment:
    global _ENV
    if _ENV is None:
        _ENV = Environment()
    return _ENV
