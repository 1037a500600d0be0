"""Cooperative cancellation of long-running cluster operations."""

from __future__ import annotations

from cumulus.core.exceptions import ConstructionCancelledError


class CancelToken:
    """Flag checked by the orchestrator between steps.

    Cancelling never interrupts a provider call in flight; the next
    checkpoint raises ConstructionCancelledError and the usual rollback runs.

    Example:
        token = CancelToken()
        task = asyncio.create_task(blueprint.construct(request, token))
        ...
        token.cancel("operator abort")
    """

    __slots__ = ("_reason",)

    def __init__(self) -> None:
        self._reason: str | None = None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if self._reason is None:
            self._reason = reason

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    def raise_if_cancelled(self) -> None:
        if self._reason is not None:
            raise ConstructionCancelledError(self._reason)
