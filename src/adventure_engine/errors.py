"""Engine error types."""
from __future__ import annotations


class CombatEngineError(Exception):
    """Base class for errors raised by the combat engine."""


class InvalidCombatInput(CombatEngineError, ValueError):
    """Raised before simulating when stats, config, rules or content are malformed."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field
