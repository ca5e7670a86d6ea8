"""shortgate package root."""

from shortgate.exceptions import ConfigError, NeverThrown, ShortgateError
from shortgate.invariants import never

__all__ = ["__version__", "ConfigError", "NeverThrown", "ShortgateError", "never"]

__version__ = "0.1.0"
