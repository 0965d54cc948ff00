import time
import unittest
from datetime import datetime, timezone
from unittest import mock

from jobpulse.aggregate import AggregationState, Orchestrator, SourceHealthTracker
from jobpulse.cache import FreshnessCache
from jobpulse.core.dedupe import job_key
from jobpulse.core.errors import ErrorKind, NetworkError
from jobpulse.core.normalize import normalize_job
from jobpulse.providers.base import SourceAdapter, SourceResult
from jobpulse.providers.synthetic import SyntheticSource

NOW = datetime(2025, 9, 18, 12, 0, tzinfo=timezone.utc)
HOUR_MS = 60 * 60 * 1000


class FakeClock:
    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        return self.now


class StaticSource(SourceAdapter):
    def __init__(self, name, records, kind="api", delay=0.0):
        super().__init__(timeout=1.0)
        self.name = name
        self.kind = kind
        self.records = records
        self.delay = delay
        self.calls = 0

    def _fetch(self, query, location, limit):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        return list(self.records)


class FailingSource(SourceAdapter):
    kind = "api"

    def __init__(self, name):
        super().__init__(timeout=1.0)
        self.name = name

    def _fetch(self, query, location, limit):
        raise NetworkError(f"{self.name} unreachable")


def _records(prefix, n):
    return [
        {"title": f"Clerk {prefix}{i}", "company": f"{prefix} Co", "url": f"https://{prefix.lower()}.co/{i}"}
        for i in range(n)
    ]


class OrchestratorTests(unittest.TestCase):
    def setUp(self):
        self.cache_clock = FakeClock()
        self.cache = FreshnessCache(clock=self.cache_clock)
        self.synthetic = SyntheticSource(seed=3, clock=lambda: NOW)

    def _orchestrator(self, sources, **kwargs):
        kwargs.setdefault("min_results", 5)
        kwargs.setdefault("source_timeout", 0.3)
        return Orchestrator(
            sources,
            self.cache,
            synthetic=self.synthetic,
            clock=lambda: NOW,
            **kwargs,
        )

    def test_slow_source_times_out_and_synthetic_tops_up(self):
        fast = StaticSource("A", _records("A", 3))
        slow = StaticSource("B", _records("B", 3), delay=1.0)
        orch = self._orchestrator([fast, slow])

        report = orch.aggregate("clerk", "", 20)

        self.assertEqual(len(report.jobs), 5)
        self.assertEqual(sum(1 for j in report.jobs if j.synthetic), 2)
        self.assertTrue(report.fallback_used)
        statuses = {s.name: s.status for s in report.sources_queried}
        self.assertEqual(statuses["A"], "ok")
        self.assertEqual(statuses["B"], "timeout")
        self.assertEqual(statuses["Synthetic"], "ok")
        self.assertLess(report.elapsed_ms, 1000)

    def test_no_topup_when_threshold_met(self):
        fast = StaticSource("A", _records("A", 3))
        slow = StaticSource("B", _records("B", 3), delay=1.0)
        report = self._orchestrator([fast, slow], min_results=3).aggregate("clerk", "", 20)
        self.assertEqual(len(report.jobs), 3)
        self.assertFalse(any(j.synthetic for j in report.jobs))
        self.assertFalse(report.fallback_used)

    def test_duplicate_across_sources_keeps_first_dispatched(self):
        a = StaticSource("A", [{"title": "Accountant", "company": "Nedbank", "url": "https://a.co/1"}])
        b = StaticSource("B", [{"title": "accountant", "company": "NEDBANK", "url": "https://b.co/1"}])
        report = self._orchestrator([a, b], min_results=1).aggregate("accountant", "", 20)
        self.assertEqual(len(report.jobs), 1)
        self.assertEqual(report.jobs[0].source_url, "https://a.co/1")
        self.assertEqual(report.jobs[0].source_name, "A")

    def test_all_sources_fail_serves_stale_cache(self):
        cached = [normalize_job({"title": f"Teller {i}", "company": "FNB"}, "PNet") for i in range(10)]
        self.cache.put(cached)
        self.cache_clock.now += 25 * HOUR_MS

        report = self._orchestrator([FailingSource("A"), FailingSource("B")]).aggregate("", "", 20)

        self.assertEqual(len(report.jobs), 10)
        self.assertEqual(report.cache_hits, 10)
        self.assertTrue(report.fallback_used)
        self.assertFalse(any(j.synthetic for j in report.jobs))
        self.assertIn(
            "All job sources failed. Check API configurations and network connectivity.",
            report.recommendations,
        )

    def test_total_failure_with_empty_cache_returns_synthetic(self):
        report = self._orchestrator([FailingSource("A")]).aggregate("python", "", 20)
        self.assertEqual(len(report.jobs), 5)
        self.assertTrue(all(j.synthetic for j in report.jobs))
        self.assertTrue(report.fallback_used)
        self.assertEqual(report.sources_queried[0].error, ErrorKind.NETWORK)

    def test_results_unique_and_repeatable(self):
        sources = [
            StaticSource("A", _records("A", 4) + _records("A", 2)),
            StaticSource("B", _records("B", 3) + _records("A", 1)),
        ]
        orch = self._orchestrator(sources, min_results=10)
        first = orch.aggregate("clerk", "", 20)
        second = orch.aggregate("clerk", "", 20)

        keys = [job_key(j) for j in first.jobs]
        self.assertEqual(len(keys), len(set(keys)))
        self.assertEqual([j.id for j in first.jobs], [j.id for j in second.jobs])
        self.assertEqual(first.total_found, second.total_found)

    def test_limit_caps_jobs_but_not_total_found(self):
        report = self._orchestrator([StaticSource("A", _records("A", 8))]).aggregate("clerk", "", 3)
        self.assertEqual(len(report.jobs), 3)
        self.assertEqual(report.total_found, 8)

    def test_live_jobs_written_to_cache(self):
        self._orchestrator([StaticSource("A", _records("A", 6))]).aggregate("clerk", "", 20)
        self.assertEqual(len(self.cache), 6)
        self.assertFalse(any(j.synthetic for j in self.cache.get_jobs()))

    def test_internal_failure_returns_empty_report(self):
        orch = self._orchestrator([StaticSource("A", _records("A", 2))])
        with mock.patch.object(self.cache, "get", side_effect=RuntimeError("boom")):
            report = orch.aggregate("clerk", "", 20)
        self.assertEqual(report.jobs, [])
        self.assertEqual(report.total_found, 0)
        self.assertTrue(report.fallback_used)
        self.assertEqual(orch.state, AggregationState.DONE)

    def test_source_in_backoff_is_skipped(self):
        health = SourceHealthTracker()
        health.record(SourceResult(source_name="A", error=ErrorKind.RATE_LIMIT))
        a = StaticSource("A", _records("A", 2))
        b = StaticSource("B", _records("B", 5))
        report = self._orchestrator([a, b], health=health).aggregate("clerk", "", 20)

        self.assertEqual(a.calls, 0)
        self.assertEqual(b.calls, 1)
        summary = report.sources_queried[0]
        self.assertEqual(summary.status, "rate_limit")
        self.assertTrue(summary.error_message.startswith("skipped"))

    def test_api_source_outranks_scraped(self):
        scraped = StaticSource("PNet", [{"title": "Clerk", "company": "Scraped"}], kind="scrape")
        api = StaticSource("Adzuna", [{"title": "Clerk", "company": "Api"}], kind="api")
        report = self._orchestrator([scraped, api], min_results=1).aggregate("clerk", "", 20)
        self.assertEqual([j.company for j in report.jobs], ["Api", "Scraped"])

    def test_refreshed_placeholders_stay_out_when_live_results_suffice(self):
        self.cache.refresh(count=10)
        report = self._orchestrator([StaticSource("A", _records("A", 6))]).aggregate("", "", 50)
        self.assertEqual(len(report.jobs), 6)
        self.assertFalse(any(j.synthetic for j in report.jobs))
        self.assertFalse(report.fallback_used)
        self.assertEqual(report.cache_hits, 0)

    def test_refreshed_placeholders_fill_shortfall_and_flag_fallback(self):
        self.cache.refresh(count=10)
        orch = self._orchestrator([StaticSource("A", _records("A", 3))])
        report = orch.aggregate("", "", 50)
        self.assertEqual(len(report.jobs), 5)
        self.assertEqual(sum(1 for j in report.jobs if j.synthetic), 2)
        self.assertEqual(report.cache_hits, 2)
        self.assertTrue(report.fallback_used)
        # Cached placeholders covered the gap, nothing new was generated
        self.assertNotIn("Synthetic", [s.name for s in report.sources_queried])
        self.assertIn("Results include generated placeholder listings marked synthetic.", report.recommendations)

    def test_network_failures_retried_on_every_call(self):
        failing = FailingSource("A")
        with mock.patch.object(failing, "_fetch", wraps=failing._fetch) as fetch:
            orch = self._orchestrator([failing, StaticSource("B", _records("B", 5))])
            for _ in range(4):
                report = orch.aggregate("clerk", "", 20)
        self.assertEqual(fetch.call_count, 4)
        self.assertEqual(report.sources_queried[0].status, "network")

    def test_global_deadline_binds_when_below_source_deadline(self):
        slow = StaticSource("B", _records("B", 3), delay=1.0)
        orch = self._orchestrator([StaticSource("A", _records("A", 5)), slow], source_timeout=5.0, global_timeout=0.2)
        report = orch.aggregate("clerk", "", 20)
        self.assertEqual(report.sources_queried[1].status, "timeout")
        self.assertIn("0.2s", report.sources_queried[1].error_message)
        self.assertLess(report.elapsed_ms, 1000)

    def test_state_done_after_call(self):
        orch = self._orchestrator([StaticSource("A", _records("A", 5))])
        self.assertEqual(orch.state, AggregationState.IDLE)
        orch.aggregate("clerk", "", 20)
        self.assertEqual(orch.state, AggregationState.DONE)


if __name__ == "__main__":
    unittest.main()
