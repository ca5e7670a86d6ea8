from __future__ import annotations

import ast
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator

from shortgate.order_contract import OrderPolicy, ordered_or_sorted

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseFailure:
    path: Path
    stage: str
    error: str

    def render(self) -> str:
        return f"{self.path}: {self.stage} failed: {self.error}"


@dataclass(frozen=True)
class ParsedFile:
    path: Path
    display_path: str
    tree: ast.Module


@dataclass(frozen=True)
class Candidate:
    path: Path
    is_directory: bool


def iter_candidate_files(
    root: Path,
    *,
    exclude_dirs: frozenset[str] | set[str] = frozenset(),
    on_error: Callable[[OSError], None] | None = None,
) -> Iterator[Candidate]:
    """Walk ``root`` top-down in sorted order, pruning excluded directory names.

    Directories are yielded too, flagged as such, so callers see every entry
    the walk visits.
    """
    for current, dirnames, filenames in os.walk(root, topdown=True, onerror=on_error):
        dirnames[:] = ordered_or_sorted(
            (name for name in dirnames if name not in exclude_dirs),
            source="iter_candidate_files.dirnames",
            policy=OrderPolicy.SORT,
        )
        for dirname in dirnames:
            yield Candidate(path=Path(current) / dirname, is_directory=True)
        for filename in ordered_or_sorted(
            filenames,
            source="iter_candidate_files.filenames",
            policy=OrderPolicy.SORT,
        ):
            yield Candidate(path=Path(current) / filename, is_directory=False)


def parse_file(path: Path, *, display_path: str | None = None) -> ParsedFile | ParseFailure:
    try:
        source = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return ParseFailure(path=path, stage="read", error=str(exc))
    try:
        tree = ast.parse(source, filename=str(path))
    except SyntaxError as exc:
        location = f"line {exc.lineno}" if exc.lineno is not None else "unknown line"
        return ParseFailure(path=path, stage="parse", error=f"{exc.msg} ({location})")
    except ValueError as exc:
        return ParseFailure(path=path, stage="parse", error=str(exc))
    logger.debug("parsed %s", path)
    return ParsedFile(path=path, display_path=display_path or str(path), tree=tree)
