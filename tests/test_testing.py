from __future__ import annotations

import os
from types import SimpleNamespace

from shortgate import pytest_plugin, testing


def test_short_reads_environment(env_scope, restore_env) -> None:
    previous = env_scope({testing.SHORT_ENV: None})
    try:
        assert testing.short() is False
        env_scope({testing.SHORT_ENV: "yes"})
        assert testing.short() is True
        env_scope({testing.SHORT_ENV: "0"})
        assert testing.short() is False
    finally:
        restore_env(previous)


def test_short_mode_restores_previous_value(env_scope, restore_env) -> None:
    previous = env_scope({testing.SHORT_ENV: "maybe"})
    try:
        with testing.short_mode():
            assert testing.short() is True
            with testing.short_mode(False):
                assert testing.short() is False
            assert testing.short() is True
        assert testing.short() is False
        env_scope({testing.SHORT_ENV: None})
        with testing.short_mode():
            assert testing.short() is True
        assert testing.SHORT_ENV not in os.environ
    finally:
        restore_env(previous)


def test_plugin_enables_short_mode_from_option(env_scope, restore_env) -> None:
    previous = env_scope({testing.SHORT_ENV: None})
    config = SimpleNamespace(getoption=lambda name, default=None: name == "short")
    try:
        pytest_plugin.pytest_configure(config)
        assert testing.short() is True
        assert pytest_plugin.pytest_report_header(config) == "shortgate: short mode enabled"
    finally:
        restore_env(previous)


def test_plugin_leaves_short_mode_off_by_default(env_scope, restore_env) -> None:
    previous = env_scope({testing.SHORT_ENV: None})
    config = SimpleNamespace(getoption=lambda name, default=None: False)
    try:
        pytest_plugin.pytest_configure(config)
        assert testing.short() is False
        assert pytest_plugin.pytest_report_header(config) is None
    finally:
        restore_env(previous)
