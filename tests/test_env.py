import pytest

from env import ConfigError, Environment, get_env, reset_env_caches


def test_env_defaults(monkeypatch):
    monkeypatch.delenv("PIPEWRIGHT_VERBOSE", raising=False)
    monkeypatch.delenv("PIPEWRIGHT_QUIET", raising=False)

    env = get_env()
    assert env.verbose is False
    assert env.quiet is False
    assert env.default_timeout == 3600.0
    assert env.post_timeout == 300.0
    assert env.max_captured_lines == 2000


def test_env_is_cached_until_reset(monkeypatch):
    first = get_env()
    monkeypatch.setenv("PIPEWRIGHT_DEFAULT_TIMEOUT", "42")

    assert get_env() is first

    reset_env_caches()
    assert get_env().default_timeout == 42.0


def test_env_bad_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("PIPEWRIGHT_POST_TIMEOUT", "soon")
    assert Environment().post_timeout == 300.0


def test_env_rejects_non_positive_timeout(monkeypatch):
    monkeypatch.setenv("PIPEWRIGHT_DEFAULT_TIMEOUT", "0")
    with pytest.raises(ConfigError):
        Environment()


def test_env_workspace_override(tmp_path, monkeypatch):
    monkeypatch.setenv("PIPEWRIGHT_WORKSPACE", str(tmp_path))
    assert Environment().workspace == tmp_path.resolve()


def test_env_dump_sections():
    data = get_env().as_dict()
    assert set(data) == {"Logging", "Run", "Paths", "Budgets"}
    assert "default_timeout" in data["Budgets"]
