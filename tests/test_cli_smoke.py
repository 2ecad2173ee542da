import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

import pipewright

SRC = Path(__file__).resolve().parent.parent / "src"


def _cli(*args):
    env = dict(os.environ)
    env["PYTHONPATH"] = str(SRC)
    return subprocess.run(
        [sys.executable, "-m", "pipewright", *args],
        capture_output=True,
        text=True,
        env=env,
        cwd=str(SRC),
    )


def test_run_help_runs():
    result = _cli("run", "--help")
    assert result.returncode == 0
    assert "--var" in result.stdout


def test_pipelines_help_runs():
    result = _cli("pipelines", "--help")
    assert result.returncode == 0


@pytest.fixture
def pipelines(tmp_path):
    root = tmp_path / "pipelines"
    root.mkdir()
    (root / "demo.json").write_text(
        json.dumps(
            {
                "name": "demo",
                "timeout_seconds": 30,
                "stages": [
                    {"name": "Build", "command": "mkdir -p out && echo ok > out/build.txt"},
                    {"name": "Lint", "command": "exit 1", "best_effort": True},
                ],
                "artifacts": {"globs": ["out/*.txt"]},
                "post": {"always": ["echo done > post.txt"]},
            }
        )
    )
    (root / "broken.json").write_text('{"name": "broken", "stages": []}')
    return root


def test_run_in_process(pipelines, workspace, tmp_path, monkeypatch):
    monkeypatch.setenv("PIPEWRIGHT_RUN_ID", "cli-1")
    rc = pipewright.main(["run", "demo", "--workspace", str(workspace), "--quiet"])

    assert rc == 0
    dest = tmp_path / "artifacts" / "demo" / "cli-1"
    summary = json.loads((dest / "summary.json").read_text())
    assert summary["result"] == "success"
    assert [s["status"] for s in summary["stages"]] == ["passed", "tolerated"]
    assert (dest / "out" / "build.txt").exists()
    assert (workspace / "post.txt").read_text().strip() == "done"


def test_run_failure_exit_code(pipelines, workspace, tmp_path):
    bad = tmp_path / "fail.json"
    bad.write_text(json.dumps({"stages": [{"name": "x", "command": "exit 4"}]}))

    rc = pipewright.main(["run", str(bad), "--workspace", str(workspace), "--quiet"])

    assert rc == 20


def test_run_unknown_pipeline_is_config_error(pipelines, workspace):
    rc = pipewright.main(["run", "nope", "--workspace", str(workspace), "--quiet"])
    assert rc == 2


def test_run_bad_var_is_config_error(pipelines, workspace):
    rc = pipewright.main(
        ["run", "demo", "--workspace", str(workspace), "--quiet", "--var", "novalue"]
    )
    assert rc == 2


def test_pipelines_list(pipelines, capsys):
    assert pipewright.main(["pipelines", "list"]) == 0
    out = capsys.readouterr().out.split()
    assert out == ["broken", "demo"]


def test_pipelines_validate(pipelines, capsys):
    assert pipewright.main(["pipelines", "validate", "demo"]) == 0
    assert pipewright.main(["pipelines", "validate"]) == 1
    assert "needs at least one stage" in capsys.readouterr().out


def test_run_mistyped_definition_is_config_error(pipelines, workspace, tmp_path):
    bad = tmp_path / "typed.json"
    bad.write_text(
        json.dumps({"stages": [{"name": "x", "command": "true"}], "report": {"junit": 5}})
    )

    rc = pipewright.main(["run", str(bad), "--workspace", str(workspace), "--quiet"])

    assert rc == 2
