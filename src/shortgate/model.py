from __future__ import annotations

import ast
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from shortgate.exceptions import ConfigError

FunctionNode = ast.FunctionDef | ast.AsyncFunctionDef

RULE_FORBIDDEN_CALL = "forbidden-call"
RULE_MISSING_GUARD = "missing-guard"


class TestCategory(str, Enum):
    UNIT = "unit"
    INTEGRATION = "integration"
    END_TO_END = "e2e"
    NOT_A_TEST = "none"

    # Keep pytest from collecting the enum as a test class.
    __test__ = False

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS: dict[TestCategory, str] = {
    TestCategory.UNIT: "unit test",
    TestCategory.INTEGRATION: "integration test",
    TestCategory.END_TO_END: "e2e test",
    TestCategory.NOT_A_TEST: "None",
}


@dataclass(frozen=True)
class ForbiddenCallSpec:
    namespace: str
    member: str

    @classmethod
    def parse(cls, dotted: str) -> ForbiddenCallSpec:
        """Build a spec from ``"namespace.member"``.

        Both parts must be plain identifiers: calls are matched on ``Name.attr``
        callees only, so ``os.path.join`` could never fire and is rejected.
        """
        text = dotted.strip()
        namespace, sep, member = text.rpartition(".")
        if not sep or not namespace.isidentifier() or not member.isidentifier():
            raise ConfigError(f"expected a qualified call like 'time.sleep', got {dotted!r}")
        return cls(namespace=namespace, member=member)

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.member}"

    def render(self) -> str:
        return f"{self.qualified_name}()"


@dataclass(frozen=True, order=True)
class SourcePosition:
    path: str
    line: int
    column: int

    @classmethod
    def of(cls, node: ast.AST, *, path: str) -> SourcePosition:
        return cls(
            path=path,
            line=int(getattr(node, "lineno", 1)),
            column=int(getattr(node, "col_offset", 0)) + 1,
        )

    def render(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Diagnostic:
    position: SourcePosition
    message: str
    rule: str
    category: TestCategory

    def render(self) -> str:
        return f"{self.position.render()}:{self.message}"


@dataclass(frozen=True)
class TestFunction:
    qualname: str
    node: FunctionNode
    context_param: str | None
    is_method: bool = False

    __test__ = False

    @property
    def body(self) -> list[ast.stmt]:
        return list(self.node.body)


@dataclass(frozen=True)
class RunError:
    message: str
    path: Path | None = None

    def render(self) -> str:
        return self.message


@dataclass(frozen=True)
class PackageKey:
    """One directory's files of a single category, checked as a unit."""

    directory: Path
    category: TestCategory

    def sort_key(self) -> tuple[str, str]:
        return (str(self.directory), self.category.value)


@dataclass(frozen=True)
class PackageResult:
    key: PackageKey
    diagnostics: tuple[Diagnostic, ...] = ()
    errors: tuple[RunError, ...] = ()
    files: tuple[Path, ...] = field(default_factory=tuple)
