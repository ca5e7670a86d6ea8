"""Drive classification and scanning over directory trees.

A :class:`RunContext` is built once per invocation and carries everything the
checks share: validated settings, the resolved whitelist and the run-level
errors seen so far. Packages (one directory's files of a single category) are
independent units of work and may be checked on a thread pool; their results
are merged in sorted package order so output never depends on scheduling.
"""

from __future__ import annotations

import concurrent.futures
import logging
import os
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from shortgate.classify import Whitelist, classify
from shortgate.config import Settings
from shortgate.ingest import Candidate, ParsedFile, ParseFailure, iter_candidate_files, parse_file
from shortgate.invariants import never
from shortgate.model import (
    Diagnostic,
    ForbiddenCallSpec,
    PackageKey,
    PackageResult,
    RunError,
    TestCategory,
)
from shortgate.order_contract import OrderPolicy, ordered_or_sorted
from shortgate.report import ReportCollector
from shortgate.scan.forbidden_calls import scan_forbidden_calls
from shortgate.scan.guard import GuardSpec, check_tree

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DIAGNOSTICS = 1
EXIT_ERRORS = 2


@dataclass
class RunContext:
    settings: Settings
    whitelist: Whitelist
    forbidden: tuple[ForbiddenCallSpec, ...]
    guard: GuardSpec
    errors: list[RunError] = field(default_factory=list)

    @classmethod
    def from_settings(cls, settings: Settings) -> RunContext:
        return cls(
            settings=settings,
            whitelist=Whitelist.from_entries(settings.whitelist.paths, base=settings.root),
            forbidden=settings.checks.forbidden_specs(),
            guard=GuardSpec.from_settings(settings.checks),
        )

    def record_error(self, message: str, *, path: Path | None = None) -> None:
        logger.debug("run-level error: %s", message)
        self.errors.append(RunError(message=message, path=path))

    @property
    def failed(self) -> bool:
        return bool(self.errors)

    def walk(self, root: Path) -> Iterator[Candidate]:
        """Walk ``root``, recording unreadable directories as run-level errors."""

        def _on_walk_error(exc: OSError) -> None:
            self.record_error(f"{exc.filename or root}: {exc.strerror or exc}", path=root)

        return iter_candidate_files(
            root,
            exclude_dirs=frozenset(self.settings.walk.exclude_dirs),
            on_error=_on_walk_error,
        )

    def classify(self, path: Path, is_directory: bool) -> TestCategory:
        return classify(
            os.path.abspath(path),
            is_directory,
            layout=self.settings.layout,
            whitelist=self.whitelist,
        )


@dataclass(frozen=True)
class RunReport:
    diagnostics: tuple[Diagnostic, ...]
    errors: tuple[RunError, ...]
    packages: tuple[PackageResult, ...] = ()

    @property
    def exit_code(self) -> int:
        if self.errors:
            return EXIT_ERRORS
        if self.diagnostics:
            return EXIT_DIAGNOSTICS
        return EXIT_OK

    def lines(self) -> list[str]:
        return [diagnostic.render() for diagnostic in self.diagnostics]


def scan_parsed_file(parsed: ParsedFile, category: TestCategory, context: RunContext) -> list[Diagnostic]:
    match category:
        case TestCategory.UNIT:
            return scan_forbidden_calls(parsed.tree, context.forbidden, path=parsed.display_path)
        case TestCategory.INTEGRATION | TestCategory.END_TO_END:
            return check_tree(
                parsed.tree,
                guard=context.guard,
                category=category,
                path=parsed.display_path,
            )
        case TestCategory.NOT_A_TEST:
            never("non-test file reached the scanners", path=parsed.display_path)
    never("unhandled test category", category=category)


def collect_packages(root: Path, context: RunContext) -> dict[PackageKey, list[Path]]:
    packages: dict[PackageKey, list[Path]] = defaultdict(list)
    for candidate in context.walk(root):
        category = context.classify(candidate.path, candidate.is_directory)
        if category is TestCategory.NOT_A_TEST:
            continue
        packages[PackageKey(directory=candidate.path.parent, category=category)].append(candidate.path)
    return dict(packages)


def check_package(key: PackageKey, files: Sequence[Path], context: RunContext) -> PackageResult:
    """Parse and scan one package; parse failures skip only the failing file."""
    collector = ReportCollector()
    errors: list[RunError] = []
    for path in ordered_or_sorted(files, source="check_package.files", policy=OrderPolicy.SORT):
        parsed = parse_file(path)
        if isinstance(parsed, ParseFailure):
            errors.append(RunError(message=parsed.render(), path=path))
            continue
        collector.extend(scan_parsed_file(parsed, key.category, context))
    logger.info(
        "checked %s package %s: %d file(s), %d diagnostic(s)",
        key.category.label,
        key.directory,
        len(files),
        len(collector),
    )
    return PackageResult(
        key=key,
        diagnostics=tuple(collector.diagnostics()),
        errors=tuple(errors),
        files=tuple(files),
    )


def check_root(root: Path, context: RunContext, *, jobs: int = 1) -> list[PackageResult]:
    packages = collect_packages(root, context)
    keys = ordered_or_sorted(
        packages,
        source="check_root.packages",
        key=PackageKey.sort_key,
        policy=OrderPolicy.SORT,
    )
    if jobs <= 1 or len(keys) <= 1:
        return [check_package(key, packages[key], context) for key in keys]
    with concurrent.futures.ThreadPoolExecutor(max_workers=jobs) as executor:
        # map() yields results in submission order, which is the sorted order.
        return list(executor.map(lambda key: check_package(key, packages[key], context), keys))


def run_check(paths: Iterable[Path], context: RunContext, *, jobs: int = 1) -> RunReport:
    diagnostics: list[Diagnostic] = []
    results: list[PackageResult] = []
    for root in paths:
        if not root.is_dir():
            context.record_error(f"not a directory: {root}", path=root)
            continue
        for result in check_root(root, context, jobs=jobs):
            results.append(result)
            diagnostics.extend(result.diagnostics)
            for error in result.errors:
                context.record_error(error.message, path=error.path)
    return RunReport(
        diagnostics=tuple(diagnostics),
        errors=tuple(context.errors),
        packages=tuple(results),
    )


def classify_tree(paths: Iterable[Path], context: RunContext) -> list[tuple[TestCategory, Path]]:
    found: list[tuple[TestCategory, Path]] = []
    for root in paths:
        if not root.is_dir():
            context.record_error(f"not a directory: {root}", path=root)
            continue
        for candidate in context.walk(root):
            category = context.classify(candidate.path, candidate.is_directory)
            if category is not TestCategory.NOT_A_TEST:
                found.append((category, candidate.path))
    return found
