"""Cooperative cancellation signal shared from caller to driver call.

A token is checked before work starts and handed down with every
descriptor so the driver adapter can check it again right before dispatch.
Task cancellation (``asyncio.CancelledError``) still works independently.
"""

from __future__ import annotations

import asyncio

from sqlrelay.domain.errors import OperationCancelledError


class CancellationToken:
    """A one-shot cancellation flag.

    Usage::

        token = CancellationToken()
        ...
        token.cancel()
        token.raise_if_cancelled()  # raises OperationCancelledError
    """

    __slots__ = ("_event", "_can_cancel")

    def __init__(self, *, cancelled: bool = False, can_cancel: bool = True) -> None:
        self._event = asyncio.Event()
        self._can_cancel = can_cancel
        if cancelled:
            self._event.set()

    @classmethod
    def none(cls) -> CancellationToken:
        """Return a token that can never be signaled."""
        return cls(can_cancel=False)

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def can_be_cancelled(self) -> bool:
        return self._can_cancel

    def cancel(self) -> None:
        """Signal cancellation. Repeated calls are no-ops."""
        if not self._can_cancel:
            return
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError

    async def wait(self) -> None:
        """Suspend until the token is signaled."""
        await self._event.wait()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancelled})"
