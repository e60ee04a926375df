"""
Cancellation support for runs.
"""

import asyncio
from typing import Awaitable, TypeVar

T = TypeVar("T")


class AbortSignal:
    """
    Abort signal for graceful cancellation of a run.

    Based on asyncio.Event, supports:
    - Synchronous abort status check
    - Racing an awaitable against the signal

    Examples:
        >>> signal = AbortSignal()
        >>> task = asyncio.create_task(Runner.run(agent, "hi", abort_signal=signal))
        >>> signal.abort("User cancelled")
        >>> await task  # raises asyncio.CancelledError
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: str | None = None

    def abort(self, reason: str = "Operation cancelled"):
        """Trigger abort signal."""
        self._reason = reason
        self._event.set()

    def is_aborted(self) -> bool:
        """Check if abort has been triggered."""
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Get abort reason."""
        return self._reason

    def raise_if_aborted(self) -> None:
        if self.is_aborted():
            raise asyncio.CancelledError(self._reason or "Execution aborted")

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await `awaitable` unless the signal fires first.

        On abort the pending work is cancelled and asyncio.CancelledError is
        raised with the abort reason.
        """
        self.raise_if_aborted()
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            await asyncio.wait({work})
            raise
        finally:
            waiter.cancel()

        if work in done:
            return work.result()

        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        raise asyncio.CancelledError(self._reason or "Execution aborted")


__all__ = ["AbortSignal"]
