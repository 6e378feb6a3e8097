"""Cooperative cancellation for client calls.

A Context is passed into every network call. Cancelling it does not
interrupt anything by itself: the stream checks it before each byte, and
awaitables that may block on the network are raced against it.

Example:
    >>> ctx = Context()
    >>> stream = await client.subscribe("/operations/Updates", ctx=ctx)
    >>> ctx.cancel()
    >>> await stream.next(ctx)
    (None, True)
"""

import asyncio
import inspect
from typing import Awaitable, Optional, TypeVar

from .errors import ContextCancelled

T = TypeVar("T")


class Context:
    """Cancellation signal shared between a caller and the calls it makes.

    Attributes:
        reason: Why the context was cancelled, or None while it is live
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._timer: Optional[asyncio.TimerHandle] = None
        self.reason: Optional[str] = None

    @classmethod
    def with_timeout(cls, seconds: float) -> "Context":
        """Create a context that cancels itself after a delay.

        Must be called from a running event loop.

        Args:
            seconds: Delay before cancellation

        Returns:
            A live Context with a pending deadline.
        """
        ctx = cls()
        loop = asyncio.get_running_loop()
        ctx._timer = loop.call_later(seconds, ctx.cancel, "context deadline exceeded")
        return ctx

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "context canceled") -> None:
        """Cancel the context. Only the first reason is kept."""
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait(self) -> None:
        """Block until the context is cancelled."""
        await self._event.wait()

    async def race(self, awaitable: Awaitable[T]) -> T:
        """Await a value unless the context is cancelled first.

        On cancellation the pending awaitable is cancelled and whatever it
        raises while unwinding is discarded. A result that still arrives
        (an open response, say) is closed if it has an ``aclose``.

        Args:
            awaitable: Coroutine or future to run

        Returns:
            The awaitable's result.

        Raises:
            ContextCancelled: If the context fired before the result arrived
        """
        if self.cancelled:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise ContextCancelled(self.reason)

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            await _abandon(task)
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        await _abandon(task)
        raise ContextCancelled(self.reason)


async def _abandon(task: asyncio.Future) -> None:
    """Cancel a raced task and wait for it to unwind.

    The task may still finish with a value after losing the race; nobody
    will receive it, so closeable results are closed here.
    """
    task.cancel()
    (result,) = await asyncio.gather(task, return_exceptions=True)
    if not isinstance(result, BaseException) and hasattr(result, "aclose"):
        await result.aclose()
