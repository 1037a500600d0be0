"""Custom exception hierarchy for cumulus.

All cumulus-specific exceptions inherit from CumulusError, enabling
callers to catch every cumulus failure with a single except clause.
"""

from __future__ import annotations

from collections.abc import Sequence


class CumulusError(Exception):
    """Base exception for all cumulus errors."""


class ProviderError(CumulusError):
    """Raised when an infrastructure provider operation fails."""


class NotFoundError(ProviderError):
    """Raised when a provider resource does not exist."""

    def __init__(self, kind: str, ref: str) -> None:
        self.kind = kind
        self.ref = ref
        super().__init__(f"{kind} '{ref}' not found")


class NoTemplateError(ProviderError):
    """Raised when no host template satisfies the sizing requirements."""


class MetadataError(CumulusError):
    """Raised when metadata cannot be read, persisted or deleted."""


class FeatureError(CumulusError):
    """Raised when a feature cannot be prepared or installed on a target."""

    def __init__(self, feature: str, target: str, message: str) -> None:
        self.feature = feature
        self.target = target
        self.message = message
        super().__init__(f"failed to add feature '{feature}' on {target}: {message}")


class AggregateError(CumulusError):
    """Raised when one or more concurrent sibling tasks failed.

    The message is every sibling failure message joined by newlines, so
    callers see all failures and not only the first one.
    """

    def __init__(self, errors: Sequence[BaseException]) -> None:
        self.errors = tuple(errors)
        super().__init__("\n".join(str(e) for e in self.errors))


class ConstructionCancelledError(CumulusError):
    """Raised when a cancellation was requested during cluster construction."""


class ConfigurationError(CumulusError):
    """Raised for invalid configuration or missing required settings."""
