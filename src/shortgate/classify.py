"""Decide which kind of test a source file is from its path alone.

Classification never looks at file contents, so it is safe to run before
parsing and to call from many threads at once. The only side effect is the
warning logged for a path that sits under both marker directories.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Iterable

from shortgate.config import LayoutSettings
from shortgate.model import TestCategory

logger = logging.getLogger(__name__)

_SEPARATORS = tuple(sorted({sep for sep in (os.sep, os.altsep, "/") if sep}))


@dataclass(frozen=True)
class Whitelist:
    """Absolute paths exempt from every check.

    Entries written with a trailing separator denote directories and match the
    directory itself and everything beneath it; other entries match one path
    exactly.
    """

    exact: frozenset[str] = frozenset()
    directories: tuple[str, ...] = ()

    @classmethod
    def from_entries(cls, entries: Iterable[str], *, base: Path) -> Whitelist:
        exact: set[str] = set()
        directories: set[str] = set()
        for entry in entries:
            text = entry.strip()
            if not text:
                continue
            is_directory = text.endswith(_SEPARATORS)
            candidate = Path(text)
            if not candidate.is_absolute():
                candidate = base / candidate
            normalized = _normalize(candidate)
            if is_directory:
                directories.add(normalized)
            else:
                exact.add(normalized)
        return cls(exact=frozenset(exact), directories=tuple(sorted(directories)))

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, PurePath)):
            return False
        normalized = _normalize(Path(path))
        if normalized in self.exact:
            return True
        return any(_is_within(normalized, directory) for directory in self.directories)

    def __bool__(self) -> bool:
        return bool(self.exact or self.directories)


def _normalize(path: Path) -> str:
    return os.path.normpath(os.path.abspath(os.fspath(path)))


def _is_within(path: str, directory: str) -> bool:
    if path == directory:
        return True
    prefix = directory if directory.endswith(os.sep) else directory + os.sep
    return path.startswith(prefix)


def is_ambiguous_layout(absolute_path: str | Path, layout: LayoutSettings) -> bool:
    directories = _segments(absolute_path)[:-1]
    return layout.e2e_dir in directories and layout.integration_dir in directories


def _segments(path: str | Path) -> tuple[str, ...]:
    return PurePath(path).parts


def classify(
    absolute_path: str | Path,
    is_directory: bool,
    *,
    layout: LayoutSettings,
    whitelist: Whitelist | None = None,
) -> TestCategory:
    """Return the test category of ``absolute_path``.

    Rules are tried in order and the first match wins:

    1. whitelisted paths are never tests;
    2. directories and files without the test suffix are never tests;
    3. a path under both the e2e and the integration marker directory is
       ambiguous: a warning is logged and it is treated as not a test;
    4. under the e2e marker directory -> end-to-end;
    5. under the integration marker directory, or carrying the integration
       suffix -> integration;
    6. any other file with the test suffix -> unit.
    """
    path_text = os.fspath(absolute_path)
    if whitelist is not None and path_text in whitelist:
        return TestCategory.NOT_A_TEST
    if is_directory or not path_text.endswith(layout.test_suffix):
        return TestCategory.NOT_A_TEST

    segments = _segments(path_text)
    if not segments:
        return TestCategory.NOT_A_TEST
    filename = segments[-1]
    directories = segments[:-1]
    under_e2e = layout.e2e_dir in directories
    under_integration = layout.integration_dir in directories

    if is_ambiguous_layout(path_text, layout):
        logger.warning(
            "Invalid path %r under both %s directory and %s directory",
            path_text,
            layout.e2e_dir,
            layout.integration_dir,
        )
        return TestCategory.NOT_A_TEST
    if under_e2e and filename.endswith(layout.test_suffix):
        return TestCategory.END_TO_END
    if (under_integration and filename.endswith(layout.test_suffix)) or filename.endswith(
        layout.integration_suffix
    ):
        return TestCategory.INTEGRATION
    if filename.endswith(layout.test_suffix) and not filename.endswith(layout.integration_suffix):
        return TestCategory.UNIT
    return TestCategory.NOT_A_TEST
