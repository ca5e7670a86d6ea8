"""pytest plugin adding ``--short`` to switch on short mode for a run."""

from __future__ import annotations

import pytest

from shortgate import testing


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("shortgate")
    group.addoption(
        "--short",
        action="store_true",
        default=False,
        help="run in short mode: tests guarded by shortgate.testing.short() skip themselves",
    )


def pytest_configure(config: pytest.Config) -> None:
    if config.getoption("short", default=False):
        testing.set_short(True)


def pytest_report_header(config: pytest.Config) -> str | None:
    if testing.short():
        return "shortgate: short mode enabled"
    return None
