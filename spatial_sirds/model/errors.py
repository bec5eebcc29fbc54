"""Errors raised while building cells from configuration data.

Both are detected at setup time.  The transition function assumes
validated inputs and never raises them.
"""

from __future__ import annotations


class ConfigError(ValueError):
    """Base class for configuration problems that abort cell setup."""


class MalformedConfig(ConfigError):
    """A required field is missing, untypeable, or out of range."""


class InvalidPopulation(ConfigError):
    """A cell population is not a positive integer."""
