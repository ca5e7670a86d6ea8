"""Find denylisted qualified calls in unit test files."""

from __future__ import annotations

import ast
from typing import Sequence

from shortgate.model import (
    RULE_FORBIDDEN_CALL,
    Diagnostic,
    ForbiddenCallSpec,
    SourcePosition,
    TestCategory,
)
from shortgate.order_contract import OrderPolicy, ordered_or_sorted
from shortgate.scan.nodes import iter_nodes, qualified_callee


def is_forbidden_call(node: ast.AST, spec: ForbiddenCallSpec) -> bool:
    return qualified_callee(node) == (spec.namespace, spec.member)


def forbidden_call_message(spec: ForbiddenCallSpec) -> str:
    return f"invalid {spec.render()} call in unit tests."


def scan_forbidden_calls(
    tree: ast.AST,
    specs: Sequence[ForbiddenCallSpec],
    *,
    path: str,
) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for call in iter_nodes(tree, ast.Call):
        for spec in specs:
            if not is_forbidden_call(call, spec):
                continue
            diagnostics.append(
                Diagnostic(
                    position=SourcePosition.of(call, path=path),
                    message=forbidden_call_message(spec),
                    rule=RULE_FORBIDDEN_CALL,
                    category=TestCategory.UNIT,
                )
            )
    return ordered_or_sorted(
        diagnostics,
        source="scan_forbidden_calls.diagnostics",
        key=lambda item: item.position,
        policy=OrderPolicy.SORT,
    )
