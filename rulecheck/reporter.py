"""Reporting of rule test results to a text stream."""

from __future__ import annotations

import abc
import difflib
from collections import Counter
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import TextIO

import yaml

from rulecheck.case_result import CaseKind, CaseResult, CaseStatus, TestCase
from rulecheck.snapshot import SnapshotAction, TestSnapshot

_BOLD = "1"
_ITALIC = "3"
_UNDERLINE = "4"
_GREEN = "32"
_WHITE = "37"
_ON_RED = "41"
_ON_GREEN = "42"
_ON_YELLOW = "43"

PROMPT = "Accept new snapshot? (Yes[y], No[n], Accept All[a], Quit[q])"

_SUMMARY_LABELS = {
    CaseKind.VALIDATED: "Pass",
    CaseKind.REPORTED: "Pass",
    CaseKind.UPDATED: "Updated",
    CaseKind.WRONG: "Wrong",
    CaseKind.MISSING: "Missing",
    CaseKind.NOISY: "Noisy",
    CaseKind.ERROR: "Error",
}
_LABEL_ORDER = ("Pass", "Updated", "Wrong", "Missing", "Noisy", "Error")
_SUMMARY_CHARS = {
    CaseKind.VALIDATED: ".",
    CaseKind.REPORTED: ".",
    CaseKind.WRONG: "W",
    CaseKind.UPDATED: "U",
    CaseKind.MISSING: "M",
    CaseKind.NOISY: "N",
    CaseKind.ERROR: "E",
}


def _paint(text: str, *codes: str) -> str:
    return f"\x1b[{';'.join(codes)}m{text}\x1b[0m"


def _snapshot_yaml(snapshot: TestSnapshot) -> str:
    return yaml.safe_dump(snapshot.to_dict(), sort_keys=False, allow_unicode=True)


def report_summary(summary: Sequence[CaseStatus]) -> str:
    """One character per case, or counts per outcome for long summaries."""
    if len(summary) > 40:
        counts = Counter(_SUMMARY_LABELS[status.kind] for status in summary)
        text = ", ".join(
            f"{label} × {counts[label]}" for label in _LABEL_ORDER if counts[label]
        )
        return f"{text:.^50}"
    return "".join(_SUMMARY_CHARS[status.kind] for status in summary)


def _indented_write(output: TextIO, code: str) -> None:
    for line in code.splitlines():
        output.write(f"  {line}\n")


def _write_diff(output: TextIO, expected: str, actual: str, context: int = 3) -> None:
    diff = difflib.unified_diff(
        expected.splitlines(), actual.splitlines(), lineterm="", n=context
    )
    for line in diff:
        if line.startswith(("---", "+++")):
            continue
        output.write(f"{line}\n")


def report_case_detail(output: TextIO, case_id: str, status: CaseStatus) -> bool:
    """Describe a non-passing case; return whether reporting should go on."""
    rule = _paint(case_id, _BOLD)
    source = status.source or ""
    kind = status.kind
    if kind is CaseKind.UPDATED:
        label = _paint("Updated", _UNDERLINE)
        output.write(f"[{label}] Rule {rule}'s snapshot baseline has been updated.\n\n")
        _indented_write(output, source)
        output.write("\n")
    elif kind is CaseKind.WRONG:
        label = _paint("Wrong", _UNDERLINE)
        actual = _snapshot_yaml(status.actual or TestSnapshot())
        if status.expected is not None:
            output.write(f"[{label}] {rule} snapshot is different from baseline.\n")
            output.write(f"{_paint('Diff:', _ITALIC)}\n")
            _write_diff(output, _snapshot_yaml(status.expected), actual)
        else:
            output.write(f"[{label}] No {rule} baseline found.\n")
            output.write(f"{_paint('Generated Snapshot:', _ITALIC)}\n")
            _indented_write(output, actual)
        output.write(f"{_paint('For Code:', _ITALIC)}\n")
        _indented_write(output, source)
        output.write("\n")
    elif kind is CaseKind.MISSING:
        label = _paint("Missing", _UNDERLINE)
        output.write(
            f"[{label}] Expect rule {rule} to report issues, but none found in:\n\n"
        )
        _indented_write(output, source)
        output.write("\n")
    elif kind is CaseKind.NOISY:
        label = _paint("Noisy", _UNDERLINE)
        output.write(
            f"[{label}] Expect {rule} to report no issue, but some issues found in:\n\n"
        )
        _indented_write(output, source)
        output.write("\n")
    elif kind is CaseKind.ERROR:
        label = _paint("Error", _UNDERLINE)
        output.write(f"[{label}] Fail to apply fix to {rule}\n")
    return True


class Reporter(abc.ABC):
    """Writes progress, case details and summaries of a test run."""

    def __init__(self, output: TextIO) -> None:
        self.output = output

    def before_report(self, test_cases: Sequence[TestCase]) -> None:
        """Runs before the tests start."""
        self.output.write(f"Running {len(test_cases)} tests\n")

    def after_report(self, results: Sequence[CaseResult]) -> tuple[bool, str]:
        """Return whether all tests passed, with a closing message."""
        passed = sum(1 for result in results if result.passed())
        failed = len(results) - passed
        message = f"{passed} passed; {failed} failed;"
        if failed > 0:
            return False, f"test failed. {message}"
        return True, f"test result: {_paint('ok', _GREEN)}. {message}"

    def report_failed_cases(self, results: Sequence[CaseResult]) -> None:
        self.output.write("\n----------- Case Details -----------\n")
        for result in results:
            if result.passed():
                continue
            for status in result.cases:
                if not self.report_case_detail(result.id, status):
                    return

    def report_summaries(self, results: Sequence[CaseResult]) -> None:
        for result in results:
            self.report_case_summary(result.id, result.cases)
        self.output.write("\n")

    def report_case_summary(self, case_id: str, summary: Sequence[CaseStatus]) -> None:
        if not summary:
            status = _paint("SKIP", _BOLD, _WHITE, _ON_YELLOW)
        elif all(case.is_pass() for case in summary):
            status = _paint("PASS", _BOLD, _WHITE, _ON_GREEN)
        else:
            status = _paint("FAIL", _BOLD, _WHITE, _ON_RED)
        self.output.write(f"{status} {case_id}  {report_summary(summary)}\n")

    @abc.abstractmethod
    def report_case_detail(self, case_id: str, status: CaseStatus) -> bool:
        """Report one case, possibly accepting it; return whether to go on."""

    @abc.abstractmethod
    def collect_snapshot_action(self) -> SnapshotAction:
        """What to do with the snapshots once reporting is done."""


class DefaultReporter(Reporter):
    """Reports every failure; optionally accepts all new snapshots."""

    def __init__(self, output: TextIO, update_all: bool = False) -> None:
        super().__init__(output)
        self.update_all = update_all

    def report_case_detail(self, case_id: str, status: CaseStatus) -> bool:
        if self.update_all:
            status.accept()
        return report_case_detail(self.output, case_id, status)

    def collect_snapshot_action(self) -> SnapshotAction:
        if self.update_all:
            return SnapshotAction.NEED_UPDATE
        return SnapshotAction.ACCEPT_NONE


class InteractiveReporter(Reporter):
    """Asks, case by case, whether to accept new snapshots."""

    def __init__(
        self,
        output: TextIO,
        should_accept_all: bool = False,
        read_line: Callable[[], str] = input,
    ) -> None:
        super().__init__(output)
        self.should_accept_all = should_accept_all
        self._read_line = read_line

    def collect_snapshot_action(self) -> SnapshotAction:
        return SnapshotAction.NEED_UPDATE

    def report_case_detail(self, case_id: str, status: CaseStatus) -> bool:
        if status.kind in (CaseKind.VALIDATED, CaseKind.REPORTED):
            return True
        with self._alternate_screen():
            report_case_detail(self.output, case_id, status)
            if status.kind is not CaseKind.WRONG:
                return self._prompt("Next[enter], Quit[q]", "q", "\n") != "q"
            if self.should_accept_all:
                return self._accept(status)
            response = self._prompt(PROMPT, "ynaq", "n")
            if response == "y":
                return self._accept(status)
            if response == "a":
                self.should_accept_all = True
                return self._accept(status)
            return response != "q"

    @staticmethod
    def _accept(status: CaseStatus) -> bool:
        status.accept()
        return True

    def _prompt(self, message: str, letters: str, default: str) -> str:
        while True:
            self.output.write(f"{message}\n")
            self.output.flush()
            try:
                answer = self._read_line().strip().lower()
            except EOFError:
                return "q" if "q" in letters else default
            if not answer:
                return default
            if answer[0] in letters:
                return answer[0]

    @contextmanager
    def _alternate_screen(self) -> Iterator[None]:
        isatty = getattr(self.output, "isatty", None)
        interactive = bool(isatty and isatty())
        if interactive:
            self.output.write("\x1b[?1049h\x1b[H")
        try:
            yield
        finally:
            if interactive:
                self.output.write("\x1b[?1049l")