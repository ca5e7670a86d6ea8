"""Exception hierarchy for shortgate."""

from __future__ import annotations


class ShortgateError(Exception):
    """Base class for errors raised by shortgate itself."""


class ConfigError(ShortgateError):
    """Raised when a configuration file or value cannot be used."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message if path is None else f"{path}: {message}")
        self.path = path


class NeverThrown(ShortgateError, RuntimeError):
    """Raised by :func:`shortgate.invariants.never` when an unreachable path runs.

    The keyword payload passed to ``never()`` is kept on ``env`` so callers and
    tests can inspect what broke without parsing the message.
    """

    def __init__(self, message: str, *, env: dict[str, object] | None = None) -> None:
        super().__init__(message)
        self.reason = message
        self.env = dict(env or {})
