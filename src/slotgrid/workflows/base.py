"""Shared plumbing for the booking, cancellation and leave workflows."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from src.slotgrid.models import Notice, OperationStatus

RefreshCallback = Callable[[], Awaitable[None]]


class Workflow(ABC):
    """Status record, transient notice and delayed close for one workflow.

    Each workflow owns its own OperationStatus; nothing is shared between
    concurrent operations.
    """

    def __init__(self, close_delay: float = 2.0, on_success: RefreshCallback | None = None) -> None:
        self.status = OperationStatus()
        self.notice: Notice | None = None
        self.close_delay = close_delay
        self._on_success = on_success
        self._close_task: asyncio.Task | None = None

    async def _refresh(self) -> None:
        if self._on_success is not None:
            await self._on_success()

    async def _succeed(self, notice: Notice, *, close_later: bool = True) -> None:
        self.notice = notice
        await self._refresh()
        if close_later:
            self._cancel_pending_close()
            self._close_task = asyncio.get_running_loop().create_task(self._close_after_delay())

    async def _close_after_delay(self) -> None:
        await asyncio.sleep(self.close_delay)
        self._close_task = None
        self.close()

    def _cancel_pending_close(self) -> None:
        """Drop a delayed close left over from the previous success."""
        if self._close_task is not None:
            self._close_task.cancel()
            self._close_task = None

    async def wait_closed(self) -> None:
        """Wait for a pending delayed close, if any."""
        if self._close_task is not None:
            await self._close_task
            self._close_task = None

    @abstractmethod
    def close(self) -> None:
        """Close the input surface and clear the form."""
