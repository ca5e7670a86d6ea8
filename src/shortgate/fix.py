from __future__ import annotations

import ast
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import libcst as cst

from shortgate.model import TestFunction
from shortgate.scan.guard import GuardSpec, failing_functions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FixPlan:
    path: Path
    functions: tuple[str, ...] = ()
    new_source: str | None = None
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return self.new_source is not None


class GuardFixer:
    """Insert the skip-in-short-mode guard at the top of unguarded test functions."""

    def __init__(
        self,
        guard: GuardSpec,
        *,
        skip_reason: str,
        imports: Mapping[str, str],
    ) -> None:
        self.guard = guard
        self.skip_reason = skip_reason
        self.imports = dict(imports)

    def plan_file(self, path: Path) -> FixPlan:
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return FixPlan(path=path, errors=(f"Failed to read {path}: {exc}",))
        try:
            tree = ast.parse(source, filename=str(path))
        except SyntaxError as exc:
            return FixPlan(path=path, errors=(f"Failed to parse {path}: {exc.msg}",))
        targets = failing_functions(tree, guard=self.guard)
        if not targets:
            return FixPlan(path=path)
        try:
            module = cst.parse_module(source)
        except cst.ParserSyntaxError as exc:
            return FixPlan(path=path, errors=(f"LibCST parse failed for {path}: {exc}",))

        warnings: list[str] = []
        guards: dict[str, tuple[cst.BaseStatement, frozenset[str]]] = {}
        for function in targets:
            planned = self._guard_for(function)
            if planned is None:
                warnings.append(f"{function.qualname}: no skip call configured; left unchanged")
                continue
            guards[function.qualname] = planned
        inserter = _GuardInserter(guards)
        updated = module.visit(inserter)
        if not inserter.inserted:
            return FixPlan(path=path, warnings=tuple(warnings))
        updated = _ensure_imports(
            updated,
            needed=inserter.namespaces,
            imports=self.imports,
            warnings=warnings,
        )
        logger.info("planned guard insertion for %d function(s) in %s", len(inserter.inserted), path)
        return FixPlan(
            path=path,
            functions=tuple(inserter.inserted),
            new_source=updated.code,
            warnings=tuple(warnings),
        )

    def apply(self, plan: FixPlan) -> None:
        if plan.new_source is None:
            return
        plan.path.write_text(plan.new_source, encoding="utf-8")

    def _guard_for(self, function: TestFunction) -> tuple[cst.BaseStatement, frozenset[str]] | None:
        predicate = self.guard.predicate
        if self.guard.skip_calls:
            skip = self.guard.skip_calls[0]
            return (
                self._build_guard(skip.qualified_name),
                frozenset({predicate.namespace, skip.namespace}),
            )
        if function.is_method and function.context_param and self.guard.context_skip_methods:
            callee = f"{function.context_param}.{self.guard.context_skip_methods[0]}"
            return self._build_guard(callee), frozenset({predicate.namespace})
        return None

    def _build_guard(self, skip_callee: str) -> cst.BaseStatement:
        predicate = self.guard.predicate.qualified_name
        return cst.parse_statement(
            f"if {predicate}():\n    {skip_callee}({self.skip_reason!r})\n"
        )


class _GuardInserter(cst.CSTTransformer):
    def __init__(self, guards: Mapping[str, tuple[cst.BaseStatement, frozenset[str]]]) -> None:
        super().__init__()
        self.guards = guards
        self.scope: list[tuple[str, str]] = []
        self.inserted: list[str] = []
        self.namespaces: set[str] = set()

    def visit_ClassDef(self, node: cst.ClassDef) -> bool:
        self.scope.append(("class", node.name.value))
        return True

    def leave_ClassDef(self, original_node: cst.ClassDef, updated_node: cst.ClassDef) -> cst.ClassDef:
        self.scope.pop()
        return updated_node

    def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
        self.scope.append(("function", node.name.value))
        return True

    def leave_FunctionDef(
        self, original_node: cst.FunctionDef, updated_node: cst.FunctionDef
    ) -> cst.FunctionDef:
        qualname = self._qualname()
        self.scope.pop()
        if qualname is None or qualname not in self.guards:
            return updated_node
        statement, namespaces = self.guards[qualname]
        self.inserted.append(qualname)
        self.namespaces.update(namespaces)
        return updated_node.with_changes(body=_insert_first(updated_node.body, statement))

    def _qualname(self) -> str | None:
        kinds = [kind for kind, _name in self.scope]
        names = [name for _kind, name in self.scope]
        if kinds == ["function"]:
            return names[0]
        if kinds == ["class", "function"]:
            return f"{names[0]}.{names[1]}"
        return None


def _is_docstring(stmt: cst.CSTNode) -> bool:
    if not isinstance(stmt, cst.SimpleStatementLine) or not stmt.body:
        return False
    expr = stmt.body[0]
    return isinstance(expr, cst.Expr) and isinstance(expr.value, (cst.SimpleString, cst.ConcatenatedString))


def _is_import(stmt: cst.CSTNode) -> bool:
    if not isinstance(stmt, cst.SimpleStatementLine):
        return False
    return any(isinstance(item, (cst.Import, cst.ImportFrom)) for item in stmt.body)


def _insert_first(
    body: cst.BaseSuite, statement: cst.BaseStatement
) -> cst.BaseSuite:
    if isinstance(body, cst.SimpleStatementSuite):
        return cst.IndentedBlock(body=[statement, cst.SimpleStatementLine(body=body.body)])
    statements = list(body.body)
    index = 1 if statements and _is_docstring(statements[0]) else 0
    statements.insert(index, statement)
    return body.with_changes(body=statements)


def _find_import_insert_index(body: list[cst.CSTNode]) -> int:
    insert_idx = 0
    if body and _is_docstring(body[0]):
        insert_idx = 1
    while insert_idx < len(body) and _is_import(body[insert_idx]):
        insert_idx += 1
    return insert_idx


def _module_expr_to_str(expr: cst.BaseExpression | None) -> str | None:
    if expr is None:
        return None
    if isinstance(expr, cst.Name):
        return expr.value
    if isinstance(expr, cst.Attribute):
        parts = []
        current: cst.BaseExpression | None = expr
        while isinstance(current, cst.Attribute):
            parts.append(current.attr.value)
            current = current.value
        if isinstance(current, cst.Name):
            parts.append(current.value)
        return ".".join(reversed(parts))
    return None


def _bound_names(body: list[cst.CSTNode]) -> set[str]:
    names: set[str] = set()
    for stmt in body:
        if not isinstance(stmt, cst.SimpleStatementLine):
            continue
        for item in stmt.body:
            if isinstance(item, cst.Import):
                for alias in item.names:
                    if alias.asname is not None and isinstance(alias.asname.name, cst.Name):
                        names.add(alias.asname.name.value)
                        continue
                    dotted = _module_expr_to_str(alias.name)
                    if dotted:
                        names.add(dotted.split(".", 1)[0])
            elif isinstance(item, cst.ImportFrom) and not isinstance(item.names, cst.ImportStar):
                for alias in item.names:
                    if alias.asname is not None and isinstance(alias.asname.name, cst.Name):
                        names.add(alias.asname.name.value)
                    elif isinstance(alias.name, cst.Name):
                        names.add(alias.name.value)
    return names


def _ensure_imports(
    module: cst.Module,
    *,
    needed: set[str],
    imports: Mapping[str, str],
    warnings: list[str],
) -> cst.Module:
    body = list(module.body)
    bound = _bound_names(body)
    additions: list[cst.BaseStatement] = []
    for namespace in sorted(needed - bound):
        statement = imports.get(namespace)
        if statement is None:
            warnings.append(f"no import configured for {namespace!r}; add it by hand")
            continue
        additions.append(cst.parse_statement(statement + "\n"))
    if not additions:
        return module
    insert_idx = _find_import_insert_index(body)
    body[insert_idx:insert_idx] = additions
    return module.with_changes(body=body)
