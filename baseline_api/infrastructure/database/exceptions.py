"""Persistence-layer exceptions. Typed, no HTTP."""

from baseline_api.core.exceptions import ConfigurationError


class UnregisteredEntityError(ConfigurationError):
    """Raised when a type without an entity descriptor is persisted or described."""


class CapabilityConfigurationError(ConfigurationError):
    """Raised at startup when an entity declares a capability its columns cannot support."""


class UntrackedEntityError(ConfigurationError):
    """Raised when a modified entity was not loaded through the unit of work, so it cannot be diffed."""
