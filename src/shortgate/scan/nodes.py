from __future__ import annotations

import ast
from typing import Iterator, TypeVar

from shortgate.model import FunctionNode, TestFunction

NodeT = TypeVar("NodeT", bound=ast.AST)


def iter_nodes(tree: ast.AST, node_type: type[NodeT] | tuple[type[NodeT], ...]) -> Iterator[NodeT]:
    """Yield every node of ``node_type`` below ``tree`` in depth-first source order."""
    stack: list[ast.AST] = [tree]
    while stack:
        node = stack.pop()
        if isinstance(node, node_type):
            yield node
        stack.extend(reversed(list(ast.iter_child_nodes(node))))


def qualified_callee(node: ast.AST) -> tuple[str, str] | None:
    """Return ``(namespace, member)`` when ``node`` is a call on ``Name.attr``."""
    if not isinstance(node, ast.Call):
        return None
    func = node.func
    if isinstance(func, ast.Attribute) and isinstance(func.value, ast.Name):
        return func.value.id, func.attr
    return None


def iter_test_functions(tree: ast.Module, *, prefix: str) -> Iterator[TestFunction]:
    """Yield module-level test functions and test methods of module-level classes."""
    for node in tree.body:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            if node.name.startswith(prefix):
                yield TestFunction(
                    qualname=node.name,
                    node=node,
                    context_param=_first_param(node),
                )
        elif isinstance(node, ast.ClassDef):
            for member in node.body:
                if isinstance(member, (ast.FunctionDef, ast.AsyncFunctionDef)) and member.name.startswith(
                    prefix
                ):
                    yield TestFunction(
                        qualname=f"{node.name}.{member.name}",
                        node=member,
                        context_param=_first_param(member),
                        is_method=True,
                    )


def _first_param(node: FunctionNode) -> str | None:
    params = [*node.args.posonlyargs, *node.args.args]
    if not params:
        return None
    return params[0].arg


def is_docstring(stmt: ast.stmt) -> bool:
    return (
        isinstance(stmt, ast.Expr)
        and isinstance(stmt.value, ast.Constant)
        and isinstance(stmt.value.value, str)
    )


def is_placeholder(stmt: ast.stmt) -> bool:
    if isinstance(stmt, ast.Pass):
        return True
    return (
        isinstance(stmt, ast.Expr)
        and isinstance(stmt.value, ast.Constant)
        and stmt.value.value is Ellipsis
    )


def effective_body(body: list[ast.stmt]) -> list[ast.stmt]:
    """Strip a leading docstring; a body of only ``pass``/``...`` counts as empty."""
    statements = list(body)
    if statements and is_docstring(statements[0]):
        statements = statements[1:]
    if all(is_placeholder(stmt) for stmt in statements):
        return []
    return statements
