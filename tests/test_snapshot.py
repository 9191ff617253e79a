import pytest
import yaml

from rulecheck.case_result import CaseKind, CaseResult, CaseStatus
from rulecheck.rules import RegexRule
from rulecheck.snapshot import (
    Label,
    LabelStyle,
    SnapshotAction,
    TestSnapshot,
    TestSnapshots,
    merge_snapshots,
)

TEST_RULE = "test-rule"


def get_rule(regex, inside=None, fix=None):
    body = {"regex": regex}
    if inside is not None:
        body["inside"] = inside
    data = {"id": TEST_RULE, "message": "test", "severity": "hint", "language": "TypeScript", "rule": body}
    if fix is not None:
        data["fix"] = fix
    return RegexRule.from_mapping(data)


LET_X = r"let x = (?P<A>\w+);?"


def test_generate():
    result = TestSnapshot.generate(get_rule(LET_X), "let x = 42;")
    assert result == TestSnapshot(
        fixed=None,
        labels=[Label(source="let x = 42;", message=None, style=LabelStyle.PRIMARY, start=0, end=11)],
    )


def test_not_found():
    assert TestSnapshot.generate(get_rule(r"var x = (?P<A>\w+)"), "let x = 42;") is None


def test_secondary_label():
    rule = get_rule(r"let x = (?P<A>\w+);", inside=r"\{[^{}]*\}")
    result = TestSnapshot.generate(rule, "function test() { let x = 42; }")
    assert result == TestSnapshot(
        fixed=None,
        labels=[
            Label(source="let x = 42;", message=None, style=LabelStyle.PRIMARY, start=18, end=29),
            Label(source="{ let x = 42; }", message=None, style=LabelStyle.SECONDARY, start=16, end=31),
        ],
    )


def test_generate_with_fix():
    rule = get_rule(r"console\.log\((?P<A>[^)]*)\)", fix="log($A)")
    case = "console.log(123)"
    result = TestSnapshot.generate(rule, case)
    assert result.fixed == rule.replace(case)
    assert result.labels[0].source == case


def test_generate_fix_error():
    rule = get_rule(r"console\.log\((?P<A>[^)]*)\)", fix="log($B)")
    with pytest.raises(ValueError):
        TestSnapshot.generate(rule, "console.log(1)")


def test_snapshot_action():
    rule = get_rule(LET_X)
    results = [
        CaseResult(
            id=TEST_RULE,
            cases=[
                CaseStatus(
                    CaseKind.UPDATED,
                    source="let x = 123",
                    updated=TestSnapshot.generate(rule, "let x = 123"),
                )
            ],
        )
    ]
    op = SnapshotAction.NEED_UPDATE.update_snapshot_collection({}, results)
    assert op[TEST_RULE].snapshots["let x = 123"].labels[0].source == "let x = 123"


def test_accept_none_returns_none():
    assert SnapshotAction.ACCEPT_NONE.update_snapshot_collection({}, []) is None


def test_merge_keeps_existing_and_overrides():
    old = TestSnapshot(labels=[Label("a", LabelStyle.PRIMARY, 0, 1)])
    new = TestSnapshot(labels=[Label("b", LabelStyle.PRIMARY, 0, 1)])
    existing = {
        TEST_RULE: TestSnapshots(TEST_RULE, {"x": old, "y": old}),
        "other": TestSnapshots("other", {"z": old}),
    }
    accepted = {TEST_RULE: TestSnapshots(TEST_RULE, {"y": new}), "fresh": TestSnapshots("fresh", {"w": new})}
    merged = merge_snapshots(accepted, existing)
    assert merged[TEST_RULE].snapshots == {"x": old, "y": new}
    assert merged["other"].snapshots == {"z": old}
    assert merged["fresh"].snapshots == {"w": new}
    assert existing[TEST_RULE].snapshots["y"] == old


def test_label_dict_omits_missing_message():
    label = Label("src", LabelStyle.SECONDARY, 3, 5)
    assert label.to_dict() == {"source": "src", "style": "secondary", "start": 3, "end": 5}
    assert Label.from_dict(label.to_dict()) == label


def test_label_from_dict_invalid():
    with pytest.raises(ValueError):
        Label.from_dict({"source": "a", "style": "tertiary", "start": 0, "end": 1})


def test_snapshot_dict_omits_missing_fixed():
    snap = TestSnapshot(labels=[Label("a", LabelStyle.PRIMARY, 0, 1)])
    assert "fixed" not in snap.to_dict()
    assert TestSnapshot.from_dict(snap.to_dict()) == snap


def test_snapshots_yaml_round_trip_sorted():
    with_fix = TestSnapshot(fixed="log(1)", labels=[Label("console.log(1)", LabelStyle.PRIMARY, 0, 14, "m")])
    plain = TestSnapshot(labels=[Label("b", LabelStyle.PRIMARY, 0, 1)])
    snaps = TestSnapshots(TEST_RULE, {"zeta": plain, "alpha": with_fix})
    text = snaps.to_yaml()
    loaded = yaml.safe_load(text)
    assert list(loaded["snapshots"]) == ["alpha", "zeta"]
    assert TestSnapshots.from_dict(loaded) == snaps


def test_snapshots_from_dict_requires_fields():
    with pytest.raises(ValueError):
        TestSnapshots.from_dict({"id": TEST_RULE})