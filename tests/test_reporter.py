import io

import pytest

from rulecheck.case_result import CaseKind, CaseResult, CaseStatus, TestCase
from rulecheck.reporter import (
    DefaultReporter,
    InteractiveReporter,
    report_case_detail,
    report_summary,
)
from rulecheck.snapshot import Label, LabelStyle, SnapshotAction, TestSnapshot

TEST_RULE = "test-rule"
MOCK = "hello"


def mock_case_status():
    return [
        CaseStatus(CaseKind.REPORTED),
        CaseStatus(CaseKind.MISSING, source=MOCK),
        CaseStatus(CaseKind.NOISY, source=MOCK),
        CaseStatus(CaseKind.WRONG, source=MOCK, actual=TestSnapshot(), expected=None),
        CaseStatus(CaseKind.ERROR),
    ]


def _wrong():
    return CaseStatus(CaseKind.WRONG, source=MOCK, actual=TestSnapshot(), expected=None)


def _inputs(*answers):
    iterator = iter(answers)
    return lambda: next(iterator)


def test_report_summary():
    reporter = DefaultReporter(io.StringIO())
    reporter.report_case_summary(TEST_RULE, mock_case_status())
    output = reporter.output.getvalue()
    assert ".MNWE" in output
    assert "FAIL" in output
    assert TEST_RULE in output


def test_many_cases():
    reporter = DefaultReporter(io.StringIO())
    cases = [status for _ in range(10) for status in mock_case_status()]
    reporter.report_case_summary(TEST_RULE, cases)
    output = reporter.output.getvalue()
    assert ".MNWE" not in output
    assert "Pass × 10, Wrong × 10, Missing × 10, Noisy × 10, Error × 10" in output


def test_long_summary_is_centred():
    cases = [CaseStatus(CaseKind.VALIDATED) for _ in range(41)]
    summary = report_summary(cases)
    assert len(summary) == 50
    assert summary.strip(".") == "Pass × 41"


def test_skip_and_pass_summaries():
    reporter = DefaultReporter(io.StringIO())
    reporter.report_case_summary("empty", [])
    reporter.report_case_summary("good", [CaseStatus(CaseKind.VALIDATED)])
    output = reporter.output.getvalue()
    assert "SKIP" in output
    assert "PASS" in output
    assert "FAIL" not in output


def test_valid_case_detail():
    reporter = DefaultReporter(io.StringIO())
    reporter.report_case_detail(TEST_RULE, CaseStatus(CaseKind.REPORTED))
    reporter.report_case_detail(TEST_RULE, CaseStatus(CaseKind.VALIDATED))
    assert reporter.output.getvalue() == ""


def test_invalid_case_detail():
    reporter = DefaultReporter(io.StringIO())
    reporter.report_case_detail(TEST_RULE, CaseStatus(CaseKind.MISSING, source=MOCK))
    reporter.report_case_detail(TEST_RULE, CaseStatus(CaseKind.NOISY, source=MOCK))
    output = reporter.output.getvalue()
    assert "Missing" in output
    assert "Noisy" in output
    assert "Error" not in output
    assert "Wrong" not in output
    assert MOCK in output
    assert TEST_RULE in output


def test_wrong_detail_with_baseline_shows_diff():
    output = io.StringIO()
    actual = TestSnapshot(labels=[Label("let x = 1", LabelStyle.PRIMARY, 0, 9)])
    expected = TestSnapshot(labels=[Label("let x = 2", LabelStyle.PRIMARY, 0, 9)])
    status = CaseStatus(CaseKind.WRONG, source=MOCK, actual=actual, expected=expected)
    assert report_case_detail(output, TEST_RULE, status) is True
    text = output.getvalue()
    assert "Diff:" in text
    lines = text.splitlines()
    assert any(line.startswith("-") and "let x = 2" in line for line in lines)
    assert any(line.startswith("+") and "let x = 1" in line for line in lines)


def test_wrong_detail_without_baseline():
    output = io.StringIO()
    report_case_detail(output, TEST_RULE, _wrong())
    text = output.getvalue()
    assert "baseline found" in text
    assert "Generated Snapshot:" in text
    assert f"  {MOCK}" in text


def test_before_report_counts_cases():
    reporter = DefaultReporter(io.StringIO())
    reporter.before_report([TestCase("a"), TestCase("b")])
    assert reporter.output.getvalue() == "Running 2 tests\n"


def test_after_report():
    reporter = DefaultReporter(io.StringIO())
    good = CaseResult("a", [CaseStatus(CaseKind.VALIDATED)])
    bad = CaseResult("b", [CaseStatus(CaseKind.ERROR)])
    passed, message = reporter.after_report([good])
    assert passed is True
    assert message.startswith("test result:")
    assert message.endswith("1 passed; 0 failed;")
    assert reporter.after_report([good, bad]) == (False, "test failed. 1 passed; 1 failed;")


def test_default_reporter_update_all_accepts():
    reporter = DefaultReporter(io.StringIO(), update_all=True)
    status = _wrong()
    assert reporter.report_case_detail(TEST_RULE, status) is True
    assert status.kind is CaseKind.UPDATED
    assert "Updated" in reporter.output.getvalue()
    assert reporter.collect_snapshot_action() is SnapshotAction.NEED_UPDATE


def test_default_reporter_without_update():
    reporter = DefaultReporter(io.StringIO())
    status = _wrong()
    reporter.report_case_detail(TEST_RULE, status)
    assert status.kind is CaseKind.WRONG
    assert reporter.collect_snapshot_action() is SnapshotAction.ACCEPT_NONE


def test_report_failed_cases_skips_passed():
    reporter = DefaultReporter(io.StringIO())
    results = [
        CaseResult("good-rule", [CaseStatus(CaseKind.VALIDATED)]),
        CaseResult("bad-rule", [CaseStatus(CaseKind.MISSING, source=MOCK)]),
    ]
    reporter.report_failed_cases(results)
    output = reporter.output.getvalue()
    assert "----------- Case Details -----------" in output
    assert "bad-rule" in output
    assert "good-rule" not in output


def test_report_summaries_lists_every_result():
    reporter = DefaultReporter(io.StringIO())
    results = [CaseResult("one", []), CaseResult("two", [CaseStatus(CaseKind.ERROR)])]
    reporter.report_summaries(results)
    lines = reporter.output.getvalue().splitlines()
    assert "one" in lines[0]
    assert lines[1].endswith("two  E")
    assert lines[2] == ""


@pytest.mark.parametrize(
    ("answer", "kind", "goes_on"),
    [
        ("y", CaseKind.UPDATED, True),
        ("n", CaseKind.WRONG, True),
        ("", CaseKind.WRONG, True),
        ("q", CaseKind.WRONG, False),
    ],
)
def test_interactive_answers(answer, kind, goes_on):
    reporter = InteractiveReporter(io.StringIO(), read_line=_inputs(answer))
    status = _wrong()
    assert reporter.report_case_detail(TEST_RULE, status) is goes_on
    assert status.kind is kind


def test_interactive_accept_all():
    reporter = InteractiveReporter(io.StringIO(), read_line=_inputs("a"))
    first, second = _wrong(), _wrong()
    assert reporter.report_case_detail(TEST_RULE, first) is True
    assert reporter.should_accept_all is True
    assert reporter.report_case_detail(TEST_RULE, second) is True
    assert first.kind is CaseKind.UPDATED
    assert second.kind is CaseKind.UPDATED


def test_interactive_reprompts_on_unknown_answer():
    reporter = InteractiveReporter(io.StringIO(), read_line=_inputs("x", "y"))
    status = _wrong()
    reporter.report_case_detail(TEST_RULE, status)
    assert status.kind is CaseKind.UPDATED
    assert reporter.output.getvalue().count("Accept new snapshot?") == 2


def test_interactive_passing_case_needs_no_prompt():
    reporter = InteractiveReporter(io.StringIO(), read_line=_inputs())
    assert reporter.report_case_detail(TEST_RULE, CaseStatus(CaseKind.REPORTED)) is True
    assert reporter.output.getvalue() == ""


def test_interactive_quit_stops_reporting():
    reporter = InteractiveReporter(io.StringIO(), read_line=_inputs("q"))
    results = [
        CaseResult("first-rule", [CaseStatus(CaseKind.MISSING, source="first code")]),
        CaseResult("second-rule", [CaseStatus(CaseKind.MISSING, source="second code")]),
    ]
    reporter.report_failed_cases(results)
    output = reporter.output.getvalue()
    assert "first code" in output
    assert "second code" not in output
    assert reporter.collect_snapshot_action() is SnapshotAction.NEED_UPDATE


def test_interactive_enter_continues():
    reporter = InteractiveReporter(io.StringIO(), read_line=_inputs(""))
    status = CaseStatus(CaseKind.NOISY, source=MOCK)
    assert reporter.report_case_detail(TEST_RULE, status) is True
    assert "Next[enter], Quit[q]" in reporter.output.getvalue()