"""Check that slow test functions open with the short-mode guard.

Two shapes are accepted as the first statement of a test function::

    if not testing.short():        # shape A: the test runs inside the branch
        ...

    if testing.short():            # shape B: skip straight away
        pytest.skip("slow")
    ...

Shape A must be the whole body (after a docstring); anything following the
block would run in short mode. Otherwise only the first statement counts, and
a guard placed after any other statement does not protect the code before it.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass

from shortgate.config import CheckSettings
from shortgate.model import (
    RULE_MISSING_GUARD,
    Diagnostic,
    ForbiddenCallSpec,
    SourcePosition,
    TestCategory,
    TestFunction,
)
from shortgate.order_contract import OrderPolicy, ordered_or_sorted
from shortgate.scan.nodes import effective_body, iter_test_functions, qualified_callee


@dataclass(frozen=True)
class GuardSpec:
    predicate: ForbiddenCallSpec
    skip_calls: tuple[ForbiddenCallSpec, ...] = ()
    context_skip_methods: tuple[str, ...] = ()
    test_prefix: str = "test"

    @classmethod
    def from_settings(cls, checks: CheckSettings) -> GuardSpec:
        return cls(
            predicate=checks.predicate_spec(),
            skip_calls=checks.skip_specs(),
            context_skip_methods=tuple(checks.context_skip_methods),
            test_prefix=checks.test_prefix,
        )


def is_predicate_call(expr: ast.AST, predicate: ForbiddenCallSpec) -> ast.Call | None:
    if isinstance(expr, ast.Call) and qualified_callee(expr) == (predicate.namespace, predicate.member):
        return expr
    return None


def is_negated_predicate_call(expr: ast.AST, predicate: ForbiddenCallSpec) -> ast.Call | None:
    if isinstance(expr, ast.UnaryOp) and isinstance(expr.op, ast.Not):
        return is_predicate_call(expr.operand, predicate)
    return None


def is_skip_call(stmt: ast.stmt, spec: GuardSpec, *, context_param: str | None) -> ast.Call | None:
    if not isinstance(stmt, ast.Expr) or not isinstance(stmt.value, ast.Call):
        return None
    call = stmt.value
    callee = qualified_callee(call)
    if callee is None:
        return None
    if any(callee == (skip.namespace, skip.member) for skip in spec.skip_calls):
        return call
    namespace, member = callee
    if context_param is not None and namespace == context_param and member in spec.context_skip_methods:
        return call
    return None


def is_negated_guard(stmt: ast.stmt, spec: GuardSpec) -> ast.If | None:
    """Shape A: ``if not <predicate>():`` wrapping a non-empty body."""
    if not isinstance(stmt, ast.If):
        return None
    if is_negated_predicate_call(stmt.test, spec.predicate) is None:
        return None
    if not effective_body(stmt.body):
        return None
    return stmt


def is_skip_call_shape_guard(
    stmt: ast.stmt,
    spec: GuardSpec,
    *,
    context_param: str | None,
) -> ast.If | None:
    """Shape B: ``if <predicate>():`` whose first statement skips the test."""
    if not isinstance(stmt, ast.If):
        return None
    if is_predicate_call(stmt.test, spec.predicate) is None:
        return None
    body = effective_body(stmt.body)
    if not body:
        return None
    if is_skip_call(body[0], spec, context_param=context_param) is None:
        return None
    return stmt


def has_guard(function: TestFunction, spec: GuardSpec) -> bool:
    body = effective_body(function.body)
    if not body:
        return False
    first = body[0]
    # Statements after a shape A block would still run in short mode.
    if len(body) == 1 and is_negated_guard(first, spec) is not None:
        return True
    return is_skip_call_shape_guard(first, spec, context_param=function.context_param) is not None


def missing_guard_message(function: TestFunction, spec: GuardSpec, category: TestCategory) -> str:
    return (
        f"missing {spec.predicate.render()} guard at the beginning of "
        f"{category.label} {function.qualname}."
    )


def check_function(
    function: TestFunction,
    *,
    guard: GuardSpec,
    category: TestCategory,
    path: str,
) -> Diagnostic | None:
    if has_guard(function, guard):
        return None
    return Diagnostic(
        position=SourcePosition.of(function.node, path=path),
        message=missing_guard_message(function, guard, category),
        rule=RULE_MISSING_GUARD,
        category=category,
    )


def failing_functions(tree: ast.Module, *, guard: GuardSpec) -> list[TestFunction]:
    return [
        function
        for function in iter_test_functions(tree, prefix=guard.test_prefix)
        if not has_guard(function, guard)
    ]


def check_tree(
    tree: ast.Module,
    *,
    guard: GuardSpec,
    category: TestCategory,
    path: str,
) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for function in iter_test_functions(tree, prefix=guard.test_prefix):
        diagnostic = check_function(function, guard=guard, category=category, path=path)
        if diagnostic is not None:
            diagnostics.append(diagnostic)
    return ordered_or_sorted(
        diagnostics,
        source="check_tree.diagnostics",
        key=lambda item: item.position,
        policy=OrderPolicy.SORT,
    )

