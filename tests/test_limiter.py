#
# Tests for the admission limiter (concurrency bulkhead)
#

import asyncio
from unittest import IsolatedAsyncioTestCase

from cloudflare_client.exceptions import AdmissionRejected
from cloudflare_client.limiter import AdmissionLimiter


class TestAdmissionLimiter(IsolatedAsyncioTestCase):
    async def test_acquire_and_release(self):
        limiter = AdmissionLimiter(permit_limit=2, queue_limit=0)
        first = await limiter.acquire()
        second = await limiter.acquire()
        self.assertEqual(2, limiter.in_flight)
        first.release()
        second.release()
        self.assertEqual(0, limiter.in_flight)

    async def test_release_is_idempotent(self):
        limiter = AdmissionLimiter(permit_limit=1, queue_limit=0)
        permit = await limiter.acquire()
        permit.release()
        permit.release()
        self.assertTrue(permit.released)
        self.assertEqual(0, limiter.in_flight)
        # Double release must not mint an extra permit
        await limiter.acquire()
        with self.assertRaises(AdmissionRejected):
            await limiter.acquire()

    async def test_rejects_beyond_queue(self):
        limiter = AdmissionLimiter(permit_limit=1, queue_limit=1)
        held = await limiter.acquire()
        waiter = asyncio.create_task(limiter.acquire())
        await asyncio.sleep(0)
        self.assertEqual(1, limiter.queued)

        with self.assertRaises(AdmissionRejected) as ctx:
            await limiter.acquire()
        self.assertEqual(1, ctx.exception.permit_limit)
        self.assertEqual(1, ctx.exception.queue_limit)

        held.release()
        permit = await waiter
        self.assertEqual(1, limiter.in_flight)
        permit.release()
        self.assertEqual(0, limiter.in_flight)

    async def test_waiters_served_oldest_first(self):
        limiter = AdmissionLimiter(permit_limit=1, queue_limit=5)
        held = await limiter.acquire()
        order = []

        async def worker(name):
            async with limiter.permit():
                order.append(name)

        tasks = [asyncio.create_task(worker(n)) for n in ('a', 'b', 'c')]
        await asyncio.sleep(0)
        held.release()
        await asyncio.gather(*tasks)
        self.assertEqual(['a', 'b', 'c'], order)
        self.assertEqual(0, limiter.in_flight)

    async def test_permit_released_on_error(self):
        limiter = AdmissionLimiter(permit_limit=1, queue_limit=0)
        with self.assertRaises(RuntimeError):
            async with limiter.permit():
                raise RuntimeError('boom')
        self.assertEqual(0, limiter.in_flight)

    async def test_permit_released_on_cancellation(self):
        limiter = AdmissionLimiter(permit_limit=1, queue_limit=0)
        started = asyncio.Event()

        async def hold():
            async with limiter.permit():
                started.set()
                await asyncio.sleep(60)

        task = asyncio.create_task(hold())
        await started.wait()
        self.assertEqual(1, limiter.in_flight)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task
        self.assertEqual(0, limiter.in_flight)

    async def test_cancelled_waiter_leaves_queue(self):
        limiter = AdmissionLimiter(permit_limit=1, queue_limit=1)
        held = await limiter.acquire()
        waiter = asyncio.create_task(limiter.acquire())
        await asyncio.sleep(0)
        waiter.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await waiter
        self.assertEqual(0, limiter.queued)

        held.release()
        self.assertEqual(0, limiter.in_flight)
        permit = await limiter.acquire()
        permit.release()

    def test_invalid_limits(self):
        with self.assertRaises(ValueError):
            AdmissionLimiter(permit_limit=0)
        with self.assertRaises(ValueError):
            AdmissionLimiter(queue_limit=-1)
