"""Running rule tests: verification, reporting and snapshot updates."""

from __future__ import annotations

import argparse
import os
import re
import sys
import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import yaml

from rulecheck.case_result import CaseResult, TestCase
from rulecheck.find_file import TestHarness, find_config_path, find_tests, read_test_files
from rulecheck.reporter import DefaultReporter, InteractiveReporter, Reporter
from rulecheck.rules import RuleCollection, load_rules
from rulecheck.snapshot import SnapshotAction, SnapshotCollection

T = TypeVar("T")
R = TypeVar("R")

_MAX_WORKERS = 12


class TestFailure(Exception):
    """Raised when at least one rule test did not pass."""

    __test__ = False


@dataclass
class TestArg:
    """Options of a rule test run."""

    __test__ = False

    config: Path | None = None
    test_dir: Path | None = None
    snapshot_dir: Path | None = None
    skip_snapshot_tests: bool = False
    update_all: bool = False
    interactive: bool = False
    filter: re.Pattern[str] | None = None


def parallel_collect(
    cases: Sequence[T], filter_mapper: Callable[[T], R | None]
) -> list[R]:
    """Apply ``filter_mapper`` to every case in worker threads, keeping order.

    Cases for which the mapper returns None are dropped.
    """
    if not cases:
        return []
    workers = min(os.cpu_count() or 1, _MAX_WORKERS)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        mapped = list(executor.map(filter_mapper, cases))
    return [item for item in mapped if item is not None]


def verify_test_case_simple(
    test_case: TestCase,
    rules: RuleCollection,
    snapshots: SnapshotCollection | None,
) -> CaseResult | None:
    """Check one test case against its rule; None if the rule is unknown."""
    rule = rules.get_rule(test_case.id)
    if rule is None:
        return None
    if snapshots is not None:
        return test_case.verify_with_snapshot(rule, snapshots.get(test_case.id))
    return test_case.verify_rule(rule)


def write_merged_to_disk(merged: SnapshotCollection, path_map: Mapping[str, Path]) -> None:
    """Write each rule's snapshots into its snapshot directory."""
    for rule_id, snaps in merged.items():
        directory = Path(path_map[rule_id])
        if not directory.exists():
            directory.mkdir()
        (directory / f"{rule_id}-snapshot.yml").write_text(snaps.to_yaml(), encoding="utf-8")


def apply_snapshot_action(
    action: SnapshotAction,
    results: Iterable[CaseResult],
    snapshots: SnapshotCollection | None,
    path_map: Mapping[str, Path],
) -> None:
    """Merge accepted snapshots into the baselines and save them."""
    if snapshots is None:
        return
    merged = action.update_snapshot_collection(snapshots, results)
    if merged is None:
        return
    write_merged_to_disk(merged, path_map)


def _find_rules(config: Path | None) -> RuleCollection:
    path = find_config_path(config)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"cannot parse configuration {path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ValueError(f"configuration {path} must be a mapping")
    rule_dirs = data.get("ruleDirs") or ()
    return load_rules(path.parent / directory for directory in rule_dirs)


def _load_harness(arg: TestArg) -> TestHarness:
    if arg.test_dir is not None:
        return read_test_files(Path.cwd(), arg.test_dir, arg.snapshot_dir, arg.filter)
    return find_tests(arg.config, arg.filter)


def run_test_rule_with(arg: TestArg, reporter: Reporter) -> None:
    """Run all rule tests, reporting through ``reporter``.

    Raises TestFailure when some test did not pass.
    """
    rules = _find_rules(arg.config)
    harness = _load_harness(arg)
    snapshots = None if arg.skip_snapshot_tests else harness.snapshots
    lock = threading.Lock()
    with lock:
        reporter.before_report(harness.test_cases)

    def check_one_case(case: TestCase) -> CaseResult | None:
        result = verify_test_case_simple(case, rules, snapshots)
        if result is None:
            with lock:
                reporter.output.write(f"Configuration not found! {case.id}\n")
        return result

    results = parallel_collect(harness.test_cases, check_one_case)
    with lock:
        reporter.report_failed_cases(results)
        action = reporter.collect_snapshot_action()
        apply_snapshot_action(action, results, snapshots, harness.path_map)
        reporter.report_summaries(results)
        passed, message = reporter.after_report(results)
        if not passed:
            raise TestFailure(message)
        reporter.output.write(f"{message}\n")


def run_test_rule(arg: TestArg) -> None:
    """Run rule tests, printing to standard output."""
    reporter: Reporter
    if arg.interactive:
        reporter = InteractiveReporter(sys.stdout, should_accept_all=False)
    else:
        reporter = DefaultReporter(sys.stdout, update_all=arg.update_all)
    run_test_rule_with(arg, reporter)


def _regex(value: str) -> re.Pattern[str]:
    try:
        return re.compile(value)
    except re.error as exc:
        raise argparse.ArgumentTypeError(f"invalid regex {value!r}: {exc}") from exc


def parse_args(argv: Sequence[str] | None = None) -> TestArg:
    """Parse command-line options into a TestArg."""
    parser = argparse.ArgumentParser(prog="rulecheck", description="Test rules against code.")
    parser.add_argument("-c", "--config", type=Path, help="path to the root config YAML")
    parser.add_argument("-t", "--test-dir", type=Path, help="directory to search test YAML files")
    parser.add_argument(
        "--snapshot-dir", type=Path, help="directory name storing snapshots (default __snapshots__)"
    )
    exclusive = parser.add_mutually_exclusive_group()
    exclusive.add_argument(
        "--skip-snapshot-tests",
        action="store_true",
        help="only check whether test code is valid, ignoring rule output",
    )
    exclusive.add_argument(
        "-U", "--update-all", action="store_true", help="update all changed snapshots"
    )
    parser.add_argument(
        "-i", "--interactive", action="store_true", help="review snapshot updates one by one"
    )
    parser.add_argument(
        "-f", "--filter", type=_regex, metavar="REGEX", help="only run tests matching REGEX"
    )
    ns = parser.parse_args(argv)
    return TestArg(
        config=ns.config,
        test_dir=ns.test_dir,
        snapshot_dir=ns.snapshot_dir,
        skip_snapshot_tests=ns.skip_snapshot_tests,
        update_all=ns.update_all,
        interactive=ns.interactive,
        filter=ns.filter,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Command entry point; returns the exit status."""
    arg = parse_args(argv)
    try:
        run_test_rule(arg)
    except TestFailure as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())