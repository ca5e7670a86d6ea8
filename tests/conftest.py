from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


import pytest

from shortgate.config import Settings, settings_from_table
from tests.env_helpers import restore_env as _restore_env
from tests.env_helpers import set_env as _set_env


@pytest.fixture
def env_scope():
    return _set_env


@pytest.fixture
def restore_env():
    return _restore_env


@pytest.fixture
def write_source():
    def _write(path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def make_settings(tmp_path: Path):
    def _make(data: dict[str, object] | None = None, *, base: Path | None = None) -> Settings:
        return settings_from_table(dict(data or {}), base=base or tmp_path)

    return _make
