from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Iterable, TypeVar

from shortgate.invariants import never


T = TypeVar("T")


class OrderPolicy(str, Enum):
    SORT = "sort"
    CHECK = "check"
    TRUST = "trust"
    ENFORCE = "enforce"


def ordered_or_sorted(
    values: Iterable[T],
    *,
    source: str,
    key: Callable[[T], Any] | None = None,
    reverse: bool = False,
    policy: OrderPolicy | str | None = None,
    on_unsorted: Callable[[dict[str, object]], None] | None = None,
) -> list[T]:
    """Return deterministic order with configurable caller-order policy.

    - `OrderPolicy.SORT`: always apply a stable sort.
    - `OrderPolicy.CHECK`: validate caller order, then sort only on regression.
    - `OrderPolicy.TRUST`: trust caller order without validation or sorting.
    - `OrderPolicy.ENFORCE`: require caller-monotonic order, fail via `never()` on regression.

    The policy comes only from the argument and defaults to `SORT`, so no
    ambient setting can change the order of emitted output.
    """
    items = list(values)
    resolved_policy = OrderPolicy.SORT if policy is None else _normalize_policy(policy)
    if resolved_policy is OrderPolicy.SORT:
        return sorted(items, key=key, reverse=reverse)
    if resolved_policy is OrderPolicy.TRUST:
        return items
    violation = _first_order_violation(items, key=key, reverse=reverse)
    if violation is None:
        return items
    payload: dict[str, object] = {
        "source": source,
        "previous_index": violation[0],
        "current_index": violation[1],
        "previous_key": repr(violation[2]),
        "current_key": repr(violation[3]),
        "violation_kind": violation[4],
        "reverse": reverse,
        "policy": resolved_policy.value,
    }
    if resolved_policy is OrderPolicy.CHECK:
        if on_unsorted is not None:
            on_unsorted(payload)
        return sorted(items, key=key, reverse=reverse)
    message = (
        "caller-ordered invariant requires comparable keys"
        if violation[4] == "incomparable"
        else "caller-ordered invariant violated"
    )
    never(message, **payload)


def _normalize_policy(policy: OrderPolicy | str) -> OrderPolicy:
    if isinstance(policy, OrderPolicy):
        return policy
    normalized = policy.strip().lower()
    for candidate in OrderPolicy:
        if candidate.value == normalized:
            return candidate
    never(
        "unknown order policy",
        policy=policy,
        allowed=[candidate.value for candidate in OrderPolicy],
    )


def _first_order_violation(
    values: Iterable[T],
    *,
    key: Callable[[T], Any] | None = None,
    reverse: bool = False,
) -> tuple[int, int, Any, Any, str] | None:
    previous_marker: Any | None = None
    previous_index = -1
    has_previous = False
    for index, value in enumerate(values):
        marker = key(value) if key is not None else value
        if has_previous:
            try:
                out_of_order = (
                    bool(previous_marker < marker)
                    if reverse
                    else bool(previous_marker > marker)
                )
            except TypeError:
                return (previous_index, index, previous_marker, marker, "incomparable")
            if out_of_order:
                return (previous_index, index, previous_marker, marker, "out_of_order")
        previous_marker = marker
        previous_index = index
        has_previous = True
    return None
