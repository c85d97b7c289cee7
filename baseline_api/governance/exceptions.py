"""Governance-layer exceptions. Typed, no HTTP."""

from baseline_api.core.exceptions import ConfigurationError


class GovernanceError(Exception):
    """Base for all governance-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AppendOnlyViolationError(GovernanceError):
    """Raised when a persisted audit entry is modified or deleted."""


class AuditSerializationError(ConfigurationError):
    """Raised when an audited field holds a value that cannot be written to the ledger as JSON."""
