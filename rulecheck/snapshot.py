"""Snapshots of what a rule reports for a piece of test code."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import yaml

from rulecheck.rules import RegexRule, RuleMatch

if TYPE_CHECKING:
    from rulecheck.case_result import CaseResult


class LabelStyle(enum.Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class Label:
    """A labelled span of the matched code."""

    source: str
    style: LabelStyle
    start: int
    end: int
    message: str | None = None

    @classmethod
    def primary(cls, match: RuleMatch) -> Label:
        return cls(match.text, LabelStyle.PRIMARY, match.start, match.end)

    @classmethod
    def secondary(cls, match: RuleMatch) -> Label:
        return cls(match.text, LabelStyle.SECONDARY, match.start, match.end)

    @classmethod
    def from_match(cls, match: RuleMatch) -> list[Label]:
        """The primary label followed by any secondary labels."""
        return [cls.primary(match), *(cls.secondary(extra) for extra in match.secondary)]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"source": self.source}
        if self.message is not None:
            data["message"] = self.message
        data.update(style=self.style.value, start=self.start, end=self.end)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Label:
        try:
            return cls(
                source=data["source"],
                style=LabelStyle(data["style"]),
                start=int(data["start"]),
                end=int(data["end"]),
                message=data.get("message"),
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid label: {exc}") from exc


@dataclass
class TestSnapshot:
    """The labels and fixed code a rule produces for one invalid case."""

    __test__ = False

    fixed: str | None = None
    labels: list[Label] = field(default_factory=list)

    @classmethod
    def generate(cls, rule: RegexRule, case: str) -> TestSnapshot | None:
        """Snapshot the rule's result on ``case``; None if nothing matches.

        Raises ValueError when the fix cannot be applied.
        """
        found = rule.find(case)
        if found is None:
            return None
        labels = Label.from_match(found)
        if rule.fix is None:
            return cls(fixed=None, labels=labels)
        return cls(fixed=rule.replace(case), labels=labels)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.fixed is not None:
            data["fixed"] = self.fixed
        data["labels"] = [label.to_dict() for label in self.labels]
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TestSnapshot:
        if not isinstance(data, Mapping) or "labels" not in data:
            raise ValueError("snapshot needs 'labels'")
        return cls(
            fixed=data.get("fixed"),
            labels=[Label.from_dict(label) for label in data["labels"] or ()],
        )


@dataclass
class TestSnapshots:
    """All snapshots of one rule test, keyed by the invalid code."""

    __test__ = False

    id: str
    snapshots: dict[str, TestSnapshot] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "snapshots": {
                source: self.snapshots[source].to_dict() for source in sorted(self.snapshots)
            },
        }

    @classmethod
    def from_dict(cls, data: Any) -> TestSnapshots:
        if not isinstance(data, Mapping) or "id" not in data or "snapshots" not in data:
            raise ValueError("snapshot file needs 'id' and 'snapshots'")
        return cls(
            id=str(data["id"]),
            snapshots={
                source: TestSnapshot.from_dict(snap)
                for source, snap in (data["snapshots"] or {}).items()
            },
        )

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)


SnapshotCollection = dict[str, TestSnapshots]


def merge_snapshots(
    accepted: SnapshotCollection, existing: SnapshotCollection
) -> SnapshotCollection:
    """Overlay accepted snapshots on the existing ones."""
    merged = dict(existing)
    for rule_id, tests in accepted.items():
        current = merged.get(rule_id)
        if current is None:
            merged[rule_id] = tests
        else:
            merged[rule_id] = TestSnapshots(current.id, {**current.snapshots, **tests.snapshots})
    return merged


class SnapshotAction(enum.Enum):
    """Whether changed snapshots are written back."""

    NEED_UPDATE = "need_update"
    ACCEPT_NONE = "accept_none"

    def update_snapshot_collection(
        self, existing: SnapshotCollection, results: Iterable[CaseResult]
    ) -> SnapshotCollection | None:
        if self is SnapshotAction.ACCEPT_NONE:
            return None
        accepted = {result.id: result.changed_snapshots() for result in results}
        return merge_snapshots(accepted, existing)