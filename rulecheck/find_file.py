"""Discovery of rule test files and their snapshot baselines."""

from __future__ import annotations

import re
import sys
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from rulecheck.case_result import TestCase
from rulecheck.snapshot import SnapshotCollection, TestSnapshots

CONFIG_FILE = "sgconfig.yml"
SNAPSHOT_DIR = "__snapshots__"
_TEST_SUFFIXES = (".yml", ".yaml")


@dataclass
class TestHarness:
    """Test cases, snapshot baselines and where each rule's snapshots live."""

    __test__ = False

    test_cases: list[TestCase] = field(default_factory=list)
    snapshots: SnapshotCollection = field(default_factory=dict)
    path_map: dict[str, Path] = field(default_factory=dict)

    def extend(self, other: TestHarness) -> None:
        """Add everything found in ``other`` to this harness."""
        self.test_cases.extend(other.test_cases)
        self.snapshots.update(other.snapshots)
        self.path_map.update(other.path_map)


def find_config_path(config_path: str | Path | None = None) -> Path:
    """Return the project configuration file.

    An explicit path must exist; otherwise the current directory and its
    parents are searched for the default configuration file.
    """
    if config_path is not None:
        path = Path(config_path)
        if not path.is_file():
            raise FileNotFoundError(f"cannot read configuration file {path}")
        return path
    start = Path.cwd()
    for directory in (start, *start.parents):
        candidate = directory / CONFIG_FILE
        if candidate.is_file():
            return candidate
    raise FileNotFoundError(f"no {CONFIG_FILE} found in {start} or its parents")


def _load_yaml(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"cannot parse {path}: {exc}") from exc


def _included(regex_filter: re.Pattern[str] | str | None, rule_id: str) -> bool:
    if regex_filter is None:
        return True
    return re.search(regex_filter, rule_id) is not None


def _test_files(test_path: Path) -> Iterator[Path]:
    for path in sorted(test_path.rglob("*")):
        relative = path.relative_to(test_path)
        if any(part.startswith(".") for part in relative.parts):
            continue
        if path.is_file() and path.suffix in _TEST_SUFFIXES:
            yield path


def find_tests(
    config_path: str | Path | None = None,
    regex_filter: re.Pattern[str] | str | None = None,
) -> TestHarness:
    """Collect the tests of every test directory named in the configuration."""
    path = find_config_path(config_path)
    config = _load_yaml(path) or {}
    if not isinstance(config, Mapping):
        raise ValueError(f"configuration {path} must be a mapping")
    base_dir = path.parent
    harness = TestHarness()
    for test in config.get("testConfigs") or ():
        if not isinstance(test, Mapping) or not isinstance(test.get("testDir"), str):
            raise ValueError(f"configuration {path}: each test config needs a 'testDir'")
        harness.extend(
            read_test_files(base_dir, test["testDir"], test.get("snapshotDir"), regex_filter)
        )
    return harness


def read_test_files(
    base_dir: str | Path,
    test_dirname: str | Path,
    snapshot_dirname: str | Path | None = None,
    regex_filter: re.Pattern[str] | str | None = None,
) -> TestHarness:
    """Read test cases and snapshots below ``base_dir / test_dirname``."""
    test_path = Path(base_dir) / test_dirname
    snapshot_path = test_path / (snapshot_dirname if snapshot_dirname is not None else SNAPSHOT_DIR)
    if not test_path.is_dir():
        raise FileNotFoundError(f"cannot walk test directory {test_path}")
    harness = TestHarness()
    for path in _test_files(test_path):
        data = _load_yaml(path)
        if path.is_relative_to(snapshot_path):
            try:
                snapshot = TestSnapshots.from_dict(data)
            except ValueError as exc:
                raise ValueError(f"cannot parse test file {path}: {exc}") from exc
            if not _included(regex_filter, snapshot.id):
                continue
            if snapshot.id in harness.snapshots:
                print(
                    f"Warning: found duplicate test case snapshot for `{snapshot.id}`",
                    file=sys.stderr,
                )
            harness.snapshots[snapshot.id] = snapshot
        else:
            try:
                test_case = TestCase.from_dict(data)
            except ValueError as exc:
                raise ValueError(f"cannot parse test file {path}: {exc}") from exc
            if _included(regex_filter, test_case.id):
                harness.path_map[test_case.id] = snapshot_path
                harness.test_cases.append(test_case)
    return harness