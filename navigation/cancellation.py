"""
Purpose: Cooperative cancellation for outstanding requests.
What it does:
- CancellationToken: one per outstanding request. Cancelling it also cancels
  the asyncio task bound to it, which aborts the HTTP request in flight.
- RequestSlot: one per request kind (stations, search). Issuing a new token
  cancels the previous one, so only the latest request can ever apply.

There is no forced preemption: code checks `token.cancelled` after every await.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Optional

_token_ids = itertools.count(1)


class CancellationToken:
    def __init__(self, kind: str = "request"):
        self.kind = kind
        self.id = next(_token_ids)
        self._cancelled = False
        self._task: Optional[asyncio.Future] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def bind(self, task: asyncio.Future) -> asyncio.Future:
        """Attach the task doing the work. Binding to a cancelled token cancels it at once."""
        self._task = task
        if self._cancelled:
            task.cancel()
        return task

    def cancel(self) -> None:
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "live"
        return f"<CancellationToken {self.kind}#{self.id} {state}>"


class RequestSlot:
    """
    Holds the token of the latest request of one kind.
    """
    def __init__(self, kind: str):
        self.kind = kind
        self.current: Optional[CancellationToken] = None

    def issue(self) -> CancellationToken:
        if self.current is not None:
            self.current.cancel()
        self.current = CancellationToken(self.kind)
        return self.current

    def is_current(self, token: CancellationToken) -> bool:
        return token is self.current and not token.cancelled

    def cancel(self) -> None:
        if self.current is not None:
            self.current.cancel()
