"""Sequence-fenced state slices for remote responses.

Every request for a logical resource (week data, list view, a popup) takes a
ticket from its slice. A response is committed only if no newer ticket has
been issued since, so a slow response can no longer overwrite fresher data
after rapid navigation. Committed data replaces the slice wholesale.
"""

from typing import Any, Generic, TypeVar

from src.slotgrid.logging import get_logger
from src.slotgrid.models import OperationStatus

log = get_logger(__name__)

T = TypeVar("T")


class FencedSlice(Generic[T]):
    """One logical resource: its latest data and the status of its fetch."""

    def __init__(self, name: str, initial: T) -> None:
        self.name = name
        self.data: T = initial
        self.status = OperationStatus()
        self._issued = 0

    def begin(self) -> int:
        """Issue a ticket for a new request and mark the slice loading."""
        self._issued += 1
        self.status.start()
        return self._issued

    def is_current(self, ticket: int) -> bool:
        return ticket == self._issued

    def commit(self, ticket: int, data: T) -> bool:
        """Replace the slice with ``data`` if ``ticket`` is still the newest.

        Returns:
            True if committed, False if the response was superseded.
        """
        if not self.is_current(ticket):
            log.debug("stale_response_discarded", slice=self.name, ticket=ticket, latest=self._issued)
            return False
        self.data = data
        self.status.succeed(data)
        return True

    def fail(self, ticket: int, error: Any) -> bool:
        if not self.is_current(ticket):
            log.debug("stale_failure_discarded", slice=self.name, ticket=ticket, latest=self._issued)
            return False
        self.status.fail(str(error))
        return True
