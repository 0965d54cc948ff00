import unittest
from datetime import datetime, timezone
from unittest import mock

from jobpulse.aggregate import RefreshRequest, RefreshWorker
from jobpulse.cache import FreshnessCache
from jobpulse.providers.synthetic import SyntheticSource

NOW = datetime(2025, 9, 18, tzinfo=timezone.utc)


class RefreshWorkerTests(unittest.TestCase):
    def setUp(self):
        self.cache = FreshnessCache(synthesizer=SyntheticSource(seed=11, clock=lambda: NOW))
        self.worker = RefreshWorker(self.cache)

    def tearDown(self):
        self.worker.stop()

    def test_submit_before_start_is_rejected(self):
        self.assertFalse(self.worker.submit())

    def test_processes_queued_requests(self):
        self.worker.start()
        self.assertTrue(self.worker.submit(RefreshRequest(query="sales", count=5)))
        self.assertTrue(self.worker.submit(RefreshRequest(query="python", count=5)))
        self.worker.join(timeout=5)
        self.assertEqual(self.worker.completed, 2)
        self.assertEqual(len(self.cache), 10)

    def test_failure_counted_and_worker_survives(self):
        self.worker.start()
        with mock.patch.object(self.cache, "refresh", side_effect=[RuntimeError("disk full"), 3]):
            self.worker.submit()
            self.worker.submit()
            self.worker.join(timeout=5)
        self.assertEqual(self.worker.failed, 1)
        self.assertEqual(self.worker.completed, 1)
        self.assertTrue(self.worker.running)

    def test_stop_drains_queue(self):
        self.worker.start()
        self.worker.submit(RefreshRequest(count=3))
        self.worker.stop()
        self.assertFalse(self.worker.running)
        self.assertEqual(len(self.cache), 3)
        self.assertFalse(self.worker.submit())

    def test_start_is_idempotent(self):
        self.worker.start()
        thread = self.worker._thread
        self.worker.start()
        self.assertIs(self.worker._thread, thread)


if __name__ == "__main__":
    unittest.main()
