# rulecheck

`rulecheck` runs test cases for code rules. A rule has an id and a regular
expression that finds offending code. A test file names a rule id together
with code the rule must leave alone (`valid`) and code it must report
(`invalid`). Reported code can be compared with stored snapshots: the matched
labels and, when the rule has a fix, the fixed source.

## Installing

```
pip install .
```

## Project layout

A project root holds an `sgconfig.yml`:

```yaml
ruleDirs:
- rules
testConfigs:
- testDir: rule-tests
```

Every `.yml` or `.yaml` file below a rule directory is read; one file may
hold several rules as separate YAML documents. A rule in
`rules/test-rule.yml`:

```yaml
id: test-rule
message: test rule
severity: warning
language: TypeScript
rule:
  regex: 'Some\((?P<A>[^)]*)\)'
fix: 'Option($A)'
```

- `rule.regex` (required) – the first non-empty match is what the rule reports.
- `rule.inside` (optional) – a second expression; a match only counts when it
  lies within a different, larger match of this one, which is recorded as a
  secondary label.
- `fix` (optional) – replacement text for the first match. `$NAME` expands to
  the text of the named group `NAME`; naming a group the expression does not
  have makes the fix fail.
- `message`, `severity` and `language` are kept on the rule but do not change
  how it matches.

A test in `rule-tests/test-rule-test.yml`:

```yaml
id: test-rule
valid:
- None
invalid:
- Some(123)
```

Snapshots live below the test directory in `__snapshots__` (or the name given
by `snapshotDir` in a test config, or `--snapshot-dir`), one file per rule
named `<id>-snapshot.yml`:

```yaml
id: test-rule
snapshots:
  Some(123):
    fixed: Option(123)
    labels:
    - source: Some(123)
      style: primary
      start: 0
      end: 9
```

## Running

```
rulecheck -c sgconfig.yml
```

Options:

- `-c, --config PATH` – the root config file; when left out, `sgconfig.yml`
  is looked for in the current directory and its parents
- `-t, --test-dir DIR` – read tests from this directory, relative to the
  current directory, instead of the config's `testConfigs`
- `--snapshot-dir NAME` – snapshot directory name, `__snapshots__` by default
- `--skip-snapshot-tests` – only check that valid code is not reported and
  invalid code is, ignoring snapshots
- `-U, --update-all` – accept every changed snapshot and write it to disk
  (cannot be combined with `--skip-snapshot-tests`)
- `-i, --interactive` – show each failing case and, for changed snapshots,
  ask `Accept new snapshot? (Yes[y], No[n], Accept All[a], Quit[q])`
- `-f, --filter REGEX` – only run tests whose rule id the expression is found in

Each rule gets a summary line such as `PASS test-rule  ..` or
`FAIL test-rule  .MNWE`, where `.` is a pass, `U` an updated snapshot, `W` a
wrong or missing snapshot, `M` invalid code that was not reported, `N` valid
code that was reported and `E` a fix that could not be applied. Rules with
more than 40 cases get counts instead, such as `Pass × 10, Wrong × 2`. A test
whose rule id is unknown prints `Configuration not found! <id>`.

On success the command prints `test result: ok. N passed; 0 failed;` and
exits with status 0. When a test fails it prints
`Error: test failed. N passed; M failed;` to standard error and exits with
status 1; configuration and file errors also exit with status 1.

## From Python

```python
import io
from pathlib import Path

from rulecheck.reporter import DefaultReporter
from rulecheck.verify import TestArg, TestFailure, run_test_rule_with

output = io.StringIO()
try:
    run_test_rule_with(
        TestArg(config=Path("sgconfig.yml"), skip_snapshot_tests=True),
        DefaultReporter(output),
    )
except TestFailure as failure:
    print(failure)
print(output.getvalue())
```

`run_test_rule(arg)` does the same, writing to standard output. Lower-level
pieces are available too: `rulecheck.rules.load_rules`,
`rulecheck.find_file.find_tests` and `read_test_files`,
`rulecheck.case_result.TestCase.verify_rule` and `verify_with_snapshot`, and
`rulecheck.snapshot.TestSnapshot.generate`.

## What it does not do

Rules match plain text with regular expressions. There is no parsing of the
code under test, no syntax-aware patterns and no meta-variable patterns in
the rule itself; `language` is not used for matching. The package only runs
rule tests: it has no command for scanning a code base with the rules.