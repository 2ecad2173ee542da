import logging
import os

import pytest


@pytest.fixture(autouse=True)
def clean_env_and_modules(tmp_path, monkeypatch):
    """
    Ensure tests don't leak env, logger state, or cached configuration.
    """

    for k in list(os.environ):
        if k.startswith("PIPEWRIGHT_"):
            monkeypatch.delenv(k, raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_RETENTION", raising=False)

    # Keep every write inside tmp_path
    monkeypatch.setenv("PIPEWRIGHT_LOGS_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("PIPEWRIGHT_ARTIFACTS_DIR", str(tmp_path / "artifacts"))
    monkeypatch.setenv("PIPEWRIGHT_PIPELINES_DIR", str(tmp_path / "pipelines"))
    monkeypatch.setenv("PIPEWRIGHT_KILL_GRACE", "1")

    import env
    import logger.state

    env.reset_env_caches()

    logger.state.INITIALIZED = False
    logger.state.RUN_ID = None
    logger.state.LOG_DIR = None
    logger.state.LOG_FILE_PATH = None

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    yield

    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    env.reset_env_caches()


@pytest.fixture
def workspace(tmp_path):
    ws = tmp_path / "ws"
    ws.mkdir()
    return ws
