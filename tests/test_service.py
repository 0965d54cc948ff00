import csv
import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from datetime import datetime, timezone
from pathlib import Path
from unittest import mock

from jobpulse import cli
from jobpulse.aggregate import Orchestrator
from jobpulse.cache import FreshnessCache, JsonFileStore
from jobpulse.config import Settings
from jobpulse.core.errors import ConfigurationError
from jobpulse.providers.base import SourceAdapter
from jobpulse.providers.synthetic import SyntheticSource
from jobpulse.service import JobService, build_service

NOW = datetime(2025, 9, 18, tzinfo=timezone.utc)


class UnconfiguredSource(SourceAdapter):
    name = "Adzuna"
    kind = "api"

    def _fetch(self, query, location, limit):
        raise ConfigurationError("ADZUNA_APP_ID / ADZUNA_APP_KEY not set")


def _service(min_results=5):
    synthetic = SyntheticSource(seed=9, clock=lambda: NOW)
    cache = FreshnessCache(synthesizer=synthetic)
    orch = Orchestrator([UnconfiguredSource()], cache, synthetic=synthetic, min_results=min_results,
                        source_timeout=2.0, clock=lambda: NOW)
    return JobService(orch, cache)


class JobServiceTests(unittest.TestCase):
    def test_limit_clamped(self):
        service = _service()
        self.assertEqual(len(service.search_jobs("sales", limit=0).jobs), 1)
        self.assertLessEqual(len(service.search_jobs("sales", limit=1000).jobs), 100)

    def test_missing_credentials_recommendation(self):
        report = _service().search_jobs("sales")
        self.assertIn("Missing credentials for: Adzuna. Check API configuration.", report.recommendations)
        self.assertIn("Results include generated placeholder listings marked synthetic.", report.recommendations)

    def test_stats_cover_unqueried_sources(self):
        stats = _service().get_stats()
        self.assertEqual(stats["source_health"]["Adzuna"]["success_count"], 0)
        self.assertEqual(stats["cache_stats"], {"total": 0, "fresh": 0, "stale": 0})

    def test_refresh_without_worker_runs_inline(self):
        service = _service()
        service.refresh_cache(background=True)
        self.assertEqual(service.cache.stats()["total"], 20)

    def test_build_service_from_settings(self):
        with tempfile.TemporaryDirectory() as tmp:
            settings = Settings(cache_backend="json", cache_path=str(Path(tmp) / "cache.json"), min_results=3)
            service = build_service(settings)
            self.assertIsInstance(service.cache.store, JsonFileStore)
            self.assertEqual(service.orchestrator.min_results, 3)
            self.assertEqual(len(service.orchestrator.sources), 6)
            self.assertIsNotNone(service.worker)


class CliTests(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch.object(cli, "build_service", return_value=_service())
        patcher.start()
        self.addCleanup(patcher.stop)

    def _run(self, *argv):
        out = io.StringIO()
        with redirect_stdout(out):
            code = cli.main(list(argv))
        self.assertEqual(code, 0)
        return out.getvalue()

    def test_search_prints_ranked_jobs(self):
        out = self._run("search", "sales", "--limit", "3")
        self.assertIn("Adzuna=configuration:0", out)
        self.assertIn("[synthetic]", out)
        self.assertIn("  1. ", out)

    def test_search_json(self):
        body = json.loads(self._run("search", "sales", "--json"))
        self.assertEqual(body["query"], "sales")
        self.assertTrue(body["fallback_used"])

    def test_search_csv(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "out", "jobs.csv")
            self._run("search", "sales", "--limit", "2", "--csv-out", path)
            with open(path, encoding="utf-8", newline="") as f:
                rows = list(csv.DictReader(f))
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0]["rank"], "1")
        self.assertEqual(rows[0]["synthetic"], "True")

    def test_stats_and_refresh(self):
        self.assertIn("source_health", json.loads(self._run("stats")))
        self.assertEqual(json.loads(self._run("refresh"))["total"], 20)


if __name__ == "__main__":
    unittest.main()
