import pytest

from airgap.domain.rules import evaluate_slice
from airgap.domain.tolerance import ComparisonRule, parse_threshold, parse_thresholds
from airgap.domain.types import AirgapPoint, State


def pt(serial, position, value, part="FRU", state=State.PRE):
    return AirgapPoint(part=part, serial=serial, position=position, state=state, value=value)


@pytest.mark.parametrize("raw, expected", [
    (".1", 0.1),
    ("-.1", None),
    ("0.25", 0.25),
    ("0,3", 0.3),
    (0.2, 0.2),
    (0, None),
    ("0", None),
    ("", None),
    ("  ", None),
    (None, None),
    ("abc", None),
    ("1.2.3", None),
    (-0.5, None),
    (float("nan"), None),
    (True, None),
])
def test_parse_threshold(raw, expected) -> None:
    assert parse_threshold(raw) == expected


def test_parse_thresholds_keeps_enabled_only() -> None:
    assert parse_thresholds({"N": ".1", "O": "", "P": 0, "Q": "x"}) == {"N": 0.1}


def test_threshold_rejects_strictly_above() -> None:
    points = [pt("1", "N", 0.1), pt("2", "N", -0.11), pt("3", "N", 0.05)]
    res = evaluate_slice(points, {"N": ".1"})
    assert res.rejected_serials == ["2"]
    assert res.position_stats["N"].rejected == 1
    assert res.position_stats["N"].total == 3
    assert [p.serial for p in res.kept] == ["1", "3"]


@pytest.mark.parametrize("threshold", [0, "", "-1", "junk", None])
def test_disabled_threshold_never_rejects(threshold) -> None:
    points = [pt("1", "N", 5.0), pt("2", "N", -3.0)]
    res = evaluate_slice(points, {"N": threshold})
    assert res.rejected_count == 0
    assert len(res.kept) == 2
    assert res.position_stats == {}


def test_comparison_rule_margin() -> None:
    rule = ComparisonRule(left=("A",), right=("B",), margin=0.1)
    bad = [pt("1", "A", 0.5), pt("1", "B", 0.3)]
    ok = [pt("2", "A", 0.35), pt("2", "B", 0.3)]
    res = evaluate_slice(bad + ok, rules=[rule])
    assert res.rejected_serials == ["1"]
    assert res.decisions["1"].triggered == (rule.label,)
    assert [p.serial for p in res.kept] == ["2", "2"]


def test_comparison_uses_absolute_values() -> None:
    rule = ComparisonRule(left=("A",), right=("B",), margin=".1")
    res = evaluate_slice([pt("1", "A", -0.5), pt("1", "B", 0.3)], rules=[rule])
    assert res.rejected_count == 1


def test_unit_missing_rule_position_is_exempt() -> None:
    rule = ComparisonRule(left=("A",), right=("B", "C"), margin=0.1)
    res = evaluate_slice([pt("1", "A", 0.9), pt("1", "B", 0.0)], rules=[rule])
    assert res.rejected_count == 0
    assert rule.violated_by({"A": 0.9, "B": 0.0}) is None


@pytest.mark.parametrize("rule", [
    ComparisonRule(left=("A",), right=("B",), margin="abc"),
    ComparisonRule(left=("A",), right=("B",), margin=0),
    ComparisonRule(left=(), right=("B",), margin=0.1),
    ComparisonRule(left=("A",), right=("B",), margin=0.1, enabled=False),
])
def test_invalid_rule_is_disabled(rule) -> None:
    res = evaluate_slice([pt("1", "A", 0.9), pt("1", "B", 0.0)], rules=[rule])
    assert not rule.is_active
    assert res.rejected_count == 0


def test_combined_decision_short_circuits_thresholds() -> None:
    rule = ComparisonRule(left=("N",), right=("O",), margin=0.1)
    points = [pt("1", "N", 0.5), pt("1", "O", 0.3), pt("2", "N", 0.05), pt("2", "O", 0.15)]
    res = evaluate_slice(points, {"N": 0.2, "O": 0.2}, [rule])
    assert res.decisions["1"].triggered == ("threshold:N", rule.label)
    assert not res.decisions["2"].rejected
    assert res.rejected_percentage == 50.0
    assert res.position_stats["O"].rejected == 1


def test_independent_stats_ignore_other_filters() -> None:
    points = [pt("1", "N", 0.5), pt("1", "O", 0.1), pt("2", "N", 0.1), pt("2", "O", 0.5)]
    res = evaluate_slice(points, {"N": 0.2, "O": 0.2})
    assert res.position_stats["N"].percentage == 50.0
    assert res.position_stats["O"].percentage == 50.0
    assert res.rejected_count == 2
    assert res.kept == ()


def test_input_is_not_mutated_and_rerun_is_stable() -> None:
    points = [pt("1", "N", 0.5), pt("2", "N", 0.1)]
    snapshot = list(points)
    first = evaluate_slice(points, {"N": 0.2})
    second = evaluate_slice(points, {"N": 0.2})
    relaxed = evaluate_slice(points, {"N": 1})
    assert points == snapshot
    assert first == second
    assert len(relaxed.kept) == 2
