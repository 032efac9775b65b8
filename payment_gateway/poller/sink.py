from __future__ import annotations

import asyncio
import inspect
from typing import Awaitable, Callable, Union

from payment_gateway.domain import Invoice

Handler = Callable[[Invoice], Union[Awaitable[None], None]]


class CallbackSink:
    """User settlement handler guarded by a host-owned lock.

    The lock is held for exactly one invocation, so two invocations of the same
    sink never overlap, whoever calls them.
    """

    def __init__(self, handler: Handler, lock: asyncio.Lock | None = None):
        self.handler = handler
        self.lock = lock or asyncio.Lock()

    async def __call__(self, invoice: Invoice) -> None:
        async with self.lock:
            result = self.handler(invoice)
            if inspect.isawaitable(result):
                await result
