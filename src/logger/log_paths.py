from __future__ import annotations

from pathlib import Path

from env.paths import module_logs_dir, pipeline_logs_dir


def target_log_dir(command: str, pipeline: str | None) -> Path:
    return pipeline_logs_dir(command, pipeline) if pipeline else module_logs_dir(command)
