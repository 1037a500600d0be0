"""Utils module - concurrency helpers for the orchestrator."""

from cumulus.utils.conc import fan_out, gather_all, raise_for_errors, status_of

__all__ = [
    "fan_out",
    "gather_all",
    "raise_for_errors",
    "status_of",
]
