#
#
#

"""Client-wide concurrency bulkhead.

At most ``permit_limit`` requests are in flight per client; up to
``queue_limit`` further callers wait in arrival order, and anyone beyond
that is rejected immediately with ``AdmissionRejected``.
"""

import asyncio
import logging
from collections import deque

from .exceptions import AdmissionRejected


class Permit:
    """The right to issue one in-flight request.

    Released exactly once, however the request ends. Usable as an async
    context manager.
    """

    def __init__(self, limiter: 'AdmissionLimiter'):
        self._limiter = limiter
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._limiter._release()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.release()


class AdmissionLimiter:
    def __init__(
        self, permit_limit: int = 20, queue_limit: int = 50, name='default'
    ):
        if permit_limit < 1:
            raise ValueError('permit_limit must be >= 1')
        if queue_limit < 0:
            raise ValueError('queue_limit must be >= 0')
        self.log = logging.getLogger(f'AdmissionLimiter[{name}]')
        self.permit_limit = permit_limit
        self.queue_limit = queue_limit
        self._available = permit_limit
        self._waiters = deque()

    @property
    def in_flight(self) -> int:
        return self.permit_limit - self._available

    @property
    def queued(self) -> int:
        return sum(1 for w in self._waiters if not w.done())

    async def acquire(self) -> Permit:
        """Wait for a permit.

        Raises:
            AdmissionRejected: All permits are taken and the queue is full
        """
        if self._available > 0 and not self.queued:
            self._available -= 1
            return Permit(self)

        if self.queued >= self.queue_limit:
            self.log.warning(
                'acquire: rejected, in_flight=%d, queued=%d',
                self.in_flight,
                self.queued,
            )
            raise AdmissionRejected(self.permit_limit, self.queue_limit)

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # The permit was handed over just as we were cancelled
                self._release()
            raise
        finally:
            try:
                self._waiters.remove(waiter)
            except ValueError:
                pass
        return Permit(self)

    def permit(self):
        """``async with limiter.permit():`` acquires and always releases."""
        return _PermitContext(self)

    def _release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # Hand the permit straight to the oldest waiter
                waiter.set_result(None)
                return
        self._available += 1


class _PermitContext:
    def __init__(self, limiter: AdmissionLimiter):
        self._limiter = limiter
        self._permit = None

    async def __aenter__(self) -> Permit:
        self._permit = await self._limiter.acquire()
        return self._permit

    async def __aexit__(self, exc_type, exc, tb):
        self._permit.release()
