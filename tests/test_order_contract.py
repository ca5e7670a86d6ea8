from __future__ import annotations

import ast

import pytest

from shortgate.exceptions import NeverThrown
from shortgate.model import ForbiddenCallSpec
from shortgate.order_contract import OrderPolicy, ordered_or_sorted
from shortgate.scan.forbidden_calls import scan_forbidden_calls


def test_ordered_or_sorted_sorts_by_default() -> None:
    values = ["b", "a", "c"]
    assert ordered_or_sorted(values, source="test") == ["a", "b", "c"]


@pytest.mark.parametrize("value", ["1", "on", "enforce", "trust"])
def test_environment_cannot_change_default_order(env_scope, restore_env, value: str) -> None:
    previous = env_scope({"SHORTGATE_ORDER_POLICY": value})
    try:
        assert ordered_or_sorted(["b", "a"], source="test") == ["a", "b"]
    finally:
        restore_env(previous)


def test_decorator_calls_are_reported_in_position_order(env_scope, restore_env) -> None:
    # The walk reaches a function body before its decorators.
    tree = ast.parse(
        "import time\n"
        "@pytest.mark.parametrize('x', [time.sleep(0)])\n"
        "def test_a(x):\n"
        "    time.sleep(1)\n"
    )
    previous = env_scope({"SHORTGATE_ORDER_POLICY": "enforce"})
    try:
        diagnostics = scan_forbidden_calls(tree, (ForbiddenCallSpec.parse("time.sleep"),), path="a_test.py")
    finally:
        restore_env(previous)
    assert [d.position.line for d in diagnostics] == [2, 4]


def test_ordered_or_sorted_check_policy_sorts_only_on_regression() -> None:
    values = ["b", "a", "c"]
    observed: list[dict[str, object]] = []
    ordered = ordered_or_sorted(
        values,
        source="test",
        policy=OrderPolicy.CHECK,
        on_unsorted=lambda payload: observed.append(payload),
    )
    assert ordered == ["a", "b", "c"]
    assert len(observed) == 1
    assert observed[0]["violation_kind"] == "out_of_order"
    assert observed[0]["source"] == "test"


def test_ordered_or_sorted_trust_policy_keeps_caller_order() -> None:
    values = ["b", "a", "c"]
    assert ordered_or_sorted(values, source="test", policy="trust") == values


def test_ordered_or_sorted_enforce_accepts_sorted_and_reverse() -> None:
    assert ordered_or_sorted([1, 2, 2, 3], source="test", policy=OrderPolicy.ENFORCE) == [1, 2, 2, 3]
    assert ordered_or_sorted([3, 1], source="test", reverse=True, policy=OrderPolicy.ENFORCE) == [3, 1]
    with pytest.raises(NeverThrown) as excinfo:
        ordered_or_sorted([1, "a"], source="test", policy=OrderPolicy.ENFORCE)
    assert excinfo.value.env["violation_kind"] == "incomparable"


def test_ordered_or_sorted_enforce_raises_on_regression() -> None:
    with pytest.raises(NeverThrown):
        ordered_or_sorted(["b", "a"], source="test", policy=OrderPolicy.ENFORCE)


def test_ordered_or_sorted_key_is_used_for_checks() -> None:
    assert ordered_or_sorted(
        ["bb", "a"], source="test", key=lambda item: -len(item), policy=OrderPolicy.ENFORCE
    ) == ["bb", "a"]


def test_unknown_policy_is_rejected() -> None:
    with pytest.raises(NeverThrown):
        ordered_or_sorted([1], source="test", policy="shuffle")
