"""Runtime side of the short-mode convention.

Slow tests guard themselves with::

    from shortgate import testing

    def test_end_to_end_upload():
        if testing.short():
            pytest.skip("slow: skipped in short mode")
        ...

Short mode is on when ``SHORTGATE_SHORT`` holds a truthy value. The bundled
pytest plugin sets it for ``pytest --short``.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

SHORT_ENV = "SHORTGATE_SHORT"

_TRUTHY_VALUES = {"1", "true", "yes", "on"}


def short() -> bool:
    return os.environ.get(SHORT_ENV, "").strip().lower() in _TRUTHY_VALUES


def set_short(enabled: bool) -> None:
    if enabled:
        os.environ[SHORT_ENV] = "1"
    else:
        os.environ.pop(SHORT_ENV, None)


@contextmanager
def short_mode(enabled: bool = True) -> Iterator[None]:
    previous = os.environ.get(SHORT_ENV)
    set_short(enabled)
    try:
        yield
    finally:
        if previous is None:
            os.environ.pop(SHORT_ENV, None)
        else:
            os.environ[SHORT_ENV] = previous
