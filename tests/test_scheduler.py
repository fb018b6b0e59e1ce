import threading
import unittest
from typing import List

from sight_kit.scheduler import SingleFlightRunner


class TestSingleFlightRunner(unittest.TestCase):
    def test_frames_dropped_while_in_flight(self) -> None:
        gate = threading.Event()
        started = threading.Event()
        results: List[tuple] = []
        dropped: List[int] = []

        def process(frame: int) -> int:
            started.set()
            gate.wait(5)
            return frame * 10

        runner = SingleFlightRunner(process, on_result=lambda f, r: results.append((f, r)), on_drop=dropped.append)
        with runner:
            self.assertTrue(runner.submit(1))
            self.assertTrue(started.wait(5))
            self.assertTrue(runner.busy)
            self.assertFalse(runner.submit(2))
            self.assertFalse(runner.submit(3))
            self.assertEqual(dropped, [2, 3])

            gate.set()
            self.assertTrue(runner.wait_idle(5))
            self.assertTrue(runner.submit(4))
            self.assertTrue(runner.wait_idle(5))

        self.assertEqual(results, [(1, 10), (4, 40)])
        self.assertEqual(runner.stats.submitted, 4)
        self.assertEqual(runner.stats.dropped, 2)
        self.assertEqual(runner.stats.processed, 2)
        self.assertEqual(runner.stats.failed, 0)
        self.assertFalse(runner.running)

    def test_queued_frame_counts_as_in_flight(self) -> None:
        # Submit before the worker has a chance to pick the frame up.
        gate = threading.Event()
        runner = SingleFlightRunner(lambda f: gate.wait(5))
        runner.start()
        try:
            self.assertTrue(runner.submit("a"))
            self.assertFalse(runner.submit("b"))
        finally:
            gate.set()
            runner.stop(5)

    def test_errors_are_contained_to_one_frame(self) -> None:
        results: List[str] = []

        def process(frame: str) -> str:
            if frame == "bad":
                raise RuntimeError("boom")
            return frame.upper()

        runner = SingleFlightRunner(process, on_result=lambda f, r: results.append(r))
        with runner:
            self.assertTrue(runner.submit("bad"))
            self.assertTrue(runner.wait_idle(5))
            self.assertTrue(runner.submit("ok"))
            self.assertTrue(runner.wait_idle(5))

        self.assertEqual(results, ["OK"])
        self.assertEqual(runner.stats.failed, 1)
        self.assertEqual(runner.stats.processed, 1)

    def test_submit_requires_start(self) -> None:
        runner = SingleFlightRunner(lambda f: f)
        with self.assertRaises(RuntimeError):
            runner.submit(1)

    def test_stop_waits_for_in_flight_frame(self) -> None:
        gate = threading.Event()
        done: List[int] = []

        def process(frame: int) -> None:
            gate.wait(5)
            done.append(frame)

        runner = SingleFlightRunner(process).start()
        runner.submit(7)
        threading.Timer(0.05, gate.set).start()
        runner.stop(5)
        self.assertEqual(done, [7])
        self.assertFalse(runner.running)


if __name__ == "__main__":
    unittest.main()
