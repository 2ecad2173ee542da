import env.paths as paths


def test_paths_respect_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("PIPEWRIGHT_LOGS_DIR", str(tmp_path / "l"))
    monkeypatch.setenv("PIPEWRIGHT_ARTIFACTS_DIR", str(tmp_path / "a"))

    assert paths.logs_dir() == (tmp_path / "l").resolve()
    assert paths.artifacts_dir() == (tmp_path / "a").resolve()
    assert paths.logs_dir().exists()
    assert paths.artifacts_dir().exists()


def test_pipelines_dir_is_not_created(tmp_path, monkeypatch):
    monkeypatch.setenv("PIPEWRIGHT_PIPELINES_DIR", str(tmp_path / "nope"))

    assert paths.pipelines_dir() == (tmp_path / "nope").resolve()
    assert not (tmp_path / "nope").exists()


def test_log_path_helpers(tmp_path, monkeypatch):
    monkeypatch.setenv("PIPEWRIGHT_LOGS_DIR", str(tmp_path))

    mod = paths.module_logs_dir("pipelines")
    pipe = paths.pipeline_logs_dir("run", "python-ci")

    assert mod.exists()
    assert pipe.exists()
    assert pipe.parent.name == "run"


def test_run_artifacts_dir_layout(tmp_path, monkeypatch):
    monkeypatch.setenv("PIPEWRIGHT_ARTIFACTS_DIR", str(tmp_path))

    d = paths.run_artifacts_dir("python-ci", "2026-01-01_00-00-00")
    assert d == tmp_path.resolve() / "python-ci" / "2026-01-01_00-00-00"
