"""Cancellation token for a single in-flight provider request."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .exceptions import RequestCancelledError

LOGGER = logging.getLogger(__name__)


class CancellationToken:
    """Signal shared between the controller and the request it started.

    The token optionally owns the asyncio task running the request so that
    ``cancel()`` interrupts a pending network read instead of waiting for the
    next chunk to arrive.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._task: asyncio.Task[Any] | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def bind(self, task: asyncio.Task[Any]) -> None:
        """Attach the task that should be cancelled alongside the token."""
        self._task = task
        if self._cancelled and not task.done():
            task.cancel()

    def cancel(self) -> None:
        """Mark the token cancelled and cancel the bound task, if any."""
        if self._cancelled:
            return
        self._cancelled = True
        LOGGER.info("request.cancel", extra={"event": "request.cancel"})
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestCancelledError("Request was cancelled.")
