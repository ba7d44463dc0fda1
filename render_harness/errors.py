"""Exception hierarchy for the render harness."""

from __future__ import annotations


class HarnessError(Exception):
    """Base exception for all harness errors."""

    pass


class HarnessTimeout(HarnessError, TimeoutError):
    """No completion arrived within the configured run timeout."""

    pass


class OperationError(HarnessError, ValueError):
    """A scripted operation is malformed or cannot be applied."""

    pass


class ConfigError(HarnessError):
    """Harness configuration or test options failed validation."""

    pass
