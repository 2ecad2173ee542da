import pytest

from pipeline.artifacts import archive
from pipeline.errors import ArchiveError


def _touch(root, rel, text="x"):
    p = root / rel
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text)
    return p


def test_archive_copies_matches_preserving_layout(workspace, tmp_path):
    _touch(workspace, "test-results/junit.xml", "<testsuite/>")
    _touch(workspace, "reports/html/index.html")
    _touch(workspace, "reports/coverage.xml")
    dest = tmp_path / "out"

    result = archive(
        ["test-results/*.xml", "reports/**/*"], workspace=workspace, destination=dest
    )

    assert result.matches["test-results/*.xml"] == ("test-results/junit.xml",)
    assert "reports/html/index.html" in result.matches["reports/**/*"]
    assert (dest / "test-results/junit.xml").read_text() == "<testsuite/>"
    assert (dest / "reports/html/index.html").exists()
    assert result.destination == dest


def test_overlapping_globs_list_files_once(workspace, tmp_path):
    _touch(workspace, "a.xml")

    result = archive(["*.xml", "a.*"], workspace=workspace, destination=tmp_path / "out")

    assert result.files == ("a.xml",)


def test_allow_empty_gives_empty_set(workspace, tmp_path):
    result = archive(
        ["nothing/*.xml"], workspace=workspace, destination=tmp_path / "out", allow_empty=True
    )

    assert result.empty
    assert result.matches == {"nothing/*.xml": ()}


def test_zero_matches_without_allow_empty_raises(workspace, tmp_path):
    with pytest.raises(ArchiveError) as exc:
        archive(
            ["nothing/*.xml"], workspace=workspace, destination=tmp_path / "out", allow_empty=False
        )
    assert exc.value.glob == "nothing/*.xml"


@pytest.mark.parametrize("pattern", ["/etc/*", "../*", "a/../../b"])
def test_globs_must_stay_in_workspace(workspace, tmp_path, pattern):
    with pytest.raises(ArchiveError):
        archive([pattern], workspace=workspace, destination=tmp_path / "out")


def test_artifact_set_is_immutable(workspace, tmp_path):
    _touch(workspace, "a.txt")
    result = archive(["*.txt"], workspace=workspace, destination=tmp_path / "out")

    with pytest.raises(TypeError):
        result.matches["*.txt"] = ()
