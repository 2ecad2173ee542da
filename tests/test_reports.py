import pytest

from pipeline.errors import ReportParseError
from pipeline.reports import collect_reports, parse_coverage, parse_report

JUNIT = """<?xml version="1.0" encoding="utf-8"?>
<testsuite name="pytest" tests="5" failures="1" errors="1" skipped="1">
  <testcase classname="t" name="ok_1"/>
  <testcase classname="t" name="ok_2"><system-out>noise</system-out></testcase>
  <testcase classname="t" name="bad"><failure message="assert">boom</failure></testcase>
  <testcase classname="t" name="err"><error message="x"/></testcase>
  <testcase classname="t" name="skip"><skipped/></testcase>
</testsuite>
"""

NESTED = """<testsuites>
  <testsuite name="outer">
    <testsuite name="inner">
      <testcase name="a"/>
      <testcase name="b"/>
    </testsuite>
  </testsuite>
</testsuites>
"""


def test_parse_counts_by_testcase(tmp_path):
    p = tmp_path / "junit.xml"
    p.write_text(JUNIT)

    r = parse_report(p)

    assert (r.passed, r.failed, r.errored, r.skipped) == (2, 1, 1, 1)
    assert r.total == 5
    assert r.has_problems


def test_parse_nested_suites(tmp_path):
    p = tmp_path / "junit.xml"
    p.write_text(NESTED)

    r = parse_report(p)
    assert r.passed == 2
    assert not r.has_problems


def test_malformed_report_raises(tmp_path):
    p = tmp_path / "junit.xml"
    p.write_text("<testsuite><testcase>")

    with pytest.raises(ReportParseError):
        parse_report(p)


def test_wrong_root_raises(tmp_path):
    p = tmp_path / "junit.xml"
    p.write_text("<coverage line-rate='1'/>")

    with pytest.raises(ReportParseError):
        parse_report(p)


def test_missing_report_raises(tmp_path):
    with pytest.raises(ReportParseError):
        parse_report(tmp_path / "absent.xml")


def test_collect_sums_and_skips_malformed(tmp_path):
    (tmp_path / "results").mkdir()
    (tmp_path / "results" / "a.xml").write_text(JUNIT)
    (tmp_path / "results" / "b.xml").write_text(NESTED)
    (tmp_path / "results" / "c.xml").write_text("garbage")

    r = collect_reports("results/*.xml", tmp_path)

    assert r.passed == 4
    assert r.failed == 1


def test_collect_without_matches_is_none(tmp_path):
    assert collect_reports("results/*.xml", tmp_path) is None


def test_collect_with_only_malformed_is_none(tmp_path):
    (tmp_path / "bad.xml").write_text("<<<")
    assert collect_reports("*.xml", tmp_path) is None


def test_parse_coverage(tmp_path):
    p = tmp_path / "coverage.xml"
    p.write_text(
        '<coverage line-rate="0.8125" branch-rate="0.5" lines-covered="13" lines-valid="16"/>'
    )

    c = parse_coverage(p)

    assert c.percent == 81.25
    assert c.branch_rate == 0.5
    assert c.lines_covered == 13
    assert c.lines_valid == 16


def test_parse_coverage_requires_line_rate(tmp_path):
    p = tmp_path / "coverage.xml"
    p.write_text("<coverage/>")

    with pytest.raises(ReportParseError):
        parse_coverage(p)
