import asyncio
import unittest

from overtime.services.controller import TrackerController
from overtime.services.sampler import SamplingLoop
from overtime.services.storage import MemoryStorage


class SamplingLoopTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_ticks_until_stopped(self) -> None:
        samples = []
        counter = iter(range(1000))
        loop = SamplingLoop(0.01, lambda: next(counter), samples.append)

        loop.start()
        loop.start()
        await asyncio.sleep(0.1)
        loop.stop()
        ticks = len(samples)
        await asyncio.sleep(0.05)

        self.assertGreater(ticks, 1)
        self.assertEqual(len(samples), ticks)
        self.assertEqual(samples, list(range(ticks)))
        self.assertFalse(loop.is_running)

    async def test_failing_tick_does_not_end_sampling(self) -> None:
        calls = []

        def sample():
            calls.append(1)
            if len(calls) == 1:
                raise ValueError("render failed")
            return len(calls)

        loop = SamplingLoop(0.01, sample)
        with self.assertLogs("overtime.services.sampler", level="ERROR"):
            loop.start()
            await asyncio.sleep(0.05)
        loop.stop()

        self.assertGreater(len(calls), 1)
        self.assertEqual(loop.last_sample, len(calls))

    def test_sample_once_without_event_loop(self) -> None:
        received = []
        loop = SamplingLoop(1, lambda: "snapshot", received.append)
        self.assertEqual(loop.sample_once(), "snapshot")
        self.assertEqual(received, ["snapshot"])

    async def test_controller_starts_and_stops_sampling(self) -> None:
        snapshots = []
        controller = TrackerController(MemoryStorage())
        controller.load()
        sampler = controller.attach_sampler(0.01, snapshots.append)

        controller.start_timer()
        self.assertTrue(sampler.is_running)
        await asyncio.sleep(0.05)

        controller.stop_timer()
        self.assertFalse(sampler.is_running)
        seen = len(snapshots)
        await asyncio.sleep(0.03)

        self.assertGreater(seen, 0)
        self.assertEqual(len(snapshots), seen)
        self.assertEqual(snapshots[0].status, "running")

    async def test_restored_running_timer_resumes_sampling(self) -> None:
        storage = MemoryStorage()
        first = TrackerController(storage)
        first.load()
        first.start_timer()

        second = TrackerController(storage)
        sampler = second.attach_sampler(0.01)
        second.load()
        self.assertTrue(sampler.is_running)
        second.reset_timer()
        self.assertFalse(sampler.is_running)


if __name__ == "__main__":
    unittest.main()
