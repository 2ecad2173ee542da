from __future__ import annotations

from env import ConfigError


class PipewrightError(Exception):
    """Base class for engine errors recovered inside a run."""


class PipelineDefinitionError(ConfigError):
    pass


class ArchiveError(PipewrightError):
    def __init__(self, message: str, *, glob: str | None = None):
        super().__init__(message)
        self.glob = glob


class ReportParseError(PipewrightError):
    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(message)
        self.path = path


# Error kinds surfaced on records and in logs. Stage failures, timeouts and
# aborts are expressed through StageStatus / RunResult, never raised.
STAGE_FAILURE = "StageFailure"
TIMEOUT_EXCEEDED = "TimeoutExceeded"
ABORT_REQUESTED = "AbortRequested"
POST_ACTION_ERROR = "PostActionError"
