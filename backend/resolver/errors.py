"""
Error taxonomy for the resolver.

Only ConfigurationError escapes an adapter (at construction); everything else is
caught at the adapter or orchestrator boundary and turned into data.
"""
from __future__ import annotations

from dataclasses import dataclass


class ResolverError(Exception):
    """Base for resolver errors."""


class AdapterUnavailable(ResolverError):
    """Network, timeout or parse failure inside one adapter. Degrades to Absent."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class ConfigurationError(ResolverError):
    """Missing or rejected credential; the adapter disables itself."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class NoDataFound(ResolverError):
    """Every consulted adapter was Absent for the subject."""

    def __init__(self, query: str) -> None:
        super().__init__(f"No data found for '{query}'")
        self.query = query


@dataclass(frozen=True)
class ValidationIssue:
    """A failed plausibility rule. Attached to results, never raised."""
    field: str
    message: str
    penalty: int
    warning: bool = False

    def __str__(self) -> str:
        return self.message
