"""Outcomes of checking a rule against its valid and invalid test code."""

from __future__ import annotations

import enum
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from rulecheck.rules import RegexRule
from rulecheck.snapshot import TestSnapshot, TestSnapshots


class CaseKind(enum.Enum):
    VALIDATED = "validated"
    """No issue reported for valid code."""
    REPORTED = "reported"
    """The expected issue reported for invalid code."""
    UPDATED = "updated"
    """A new snapshot was accepted."""
    WRONG = "wrong"
    """Invalid code reported, but not as the snapshot says."""
    MISSING = "missing"
    """No issue reported for invalid code."""
    NOISY = "noisy"
    """Some issue reported for valid code."""
    ERROR = "error"
    """The fix could not be applied."""


_PASSING = frozenset({CaseKind.VALIDATED, CaseKind.REPORTED, CaseKind.UPDATED})


@dataclass
class CaseStatus:
    """The outcome of one test code snippet."""

    kind: CaseKind
    source: str | None = None
    actual: TestSnapshot | None = None
    expected: TestSnapshot | None = None
    updated: TestSnapshot | None = None

    @classmethod
    def verify_valid(cls, rule: RegexRule, case: str) -> CaseStatus:
        if rule.find(case) is not None:
            return cls(CaseKind.NOISY, source=case)
        return cls(CaseKind.VALIDATED)

    @classmethod
    def verify_invalid(cls, rule: RegexRule, case: str) -> CaseStatus:
        if rule.find(case) is not None:
            return cls(CaseKind.REPORTED)
        return cls(CaseKind.MISSING, source=case)

    @classmethod
    def verify_snapshot(
        cls, rule: RegexRule, case: str, snapshot: TestSnapshot | None
    ) -> CaseStatus:
        try:
            actual = TestSnapshot.generate(rule, case)
        except ValueError:
            return cls(CaseKind.ERROR)
        if actual is None:
            return cls(CaseKind.MISSING, source=case)
        if snapshot is not None and snapshot == actual:
            return cls(CaseKind.REPORTED)
        return cls(CaseKind.WRONG, source=case, actual=actual, expected=snapshot)

    def accept(self) -> bool:
        """Turn a wrong case into an updated one; report whether it changed."""
        if self.kind is not CaseKind.WRONG:
            return False
        self.kind = CaseKind.UPDATED
        self.updated = self.actual
        self.actual = None
        self.expected = None
        return True

    def is_pass(self) -> bool:
        return self.kind in _PASSING


@dataclass
class CaseResult:
    """The outcomes of all snippets in one rule test."""

    id: str
    cases: list[CaseStatus] = field(default_factory=list)

    def passed(self) -> bool:
        return all(case.is_pass() for case in self.cases)

    def changed_snapshots(self) -> TestSnapshots:
        return TestSnapshots(
            id=self.id,
            snapshots={
                case.source: case.updated
                for case in self.cases
                if case.kind is CaseKind.UPDATED
                and case.source is not None
                and case.updated is not None
            },
        )


@dataclass
class TestCase:
    """One rule test: code the rule must accept and code it must report."""

    __test__ = False

    id: str
    valid: list[str] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> TestCase:
        if not isinstance(data, Mapping) or not isinstance(data.get("id"), str):
            raise ValueError("test case needs a string 'id'")
        return cls(
            id=data["id"],
            valid=[str(code) for code in data.get("valid") or ()],
            invalid=[str(code) for code in data.get("invalid") or ()],
        )

    def verify_rule(self, rule: RegexRule) -> CaseResult:
        self._check_id(rule)
        invalid = (CaseStatus.verify_invalid(rule, code) for code in self.invalid)
        return CaseResult(self.id, [*self._verify_valid(rule), *invalid])

    def verify_with_snapshot(
        self, rule: RegexRule, snapshots: TestSnapshots | None
    ) -> CaseResult:
        self._check_id(rule)
        known = snapshots.snapshots if snapshots is not None else {}
        invalid = (
            CaseStatus.verify_snapshot(rule, code, known.get(code)) for code in self.invalid
        )
        return CaseResult(self.id, [*self._verify_valid(rule), *invalid])

    def _verify_valid(self, rule: RegexRule) -> Iterator[CaseStatus]:
        return (CaseStatus.verify_valid(rule, code) for code in self.valid)

    def _check_id(self, rule: RegexRule) -> None:
        if self.id != rule.id:
            raise ValueError(f"test case {self.id!r} does not belong to rule {rule.id!r}")