import json
import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from sqlalchemy.pool import StaticPool

from jobpulse.cache.entry import CacheEntry
from jobpulse.cache.store import JsonFileStore, MemoryStore, SqlStore, make_store
from jobpulse.core.normalize import EmploymentType, normalize_job
from jobpulse.db import crud
from jobpulse.db.session import get_session, make_engine


def _entry(title, cached_at, **extra):
    raw = {"title": title, "company": "Sasol", "url": f"https://x.co/{title}", **extra}
    return CacheEntry(job=normalize_job(raw, "PNet"), cached_at_ms=cached_at)


def _sqlite_store():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    return SqlStore(engine=engine)


class JsonFileStoreTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "cache" / "jobs.json"

    def tearDown(self):
        self._tmp.cleanup()

    def test_save_and_load(self):
        store = JsonFileStore(self.path)
        entry = _entry(
            "Engineer", 1000,
            posted_at=datetime(2025, 9, 14, 8, 0),
            job_type="contract",
            keywords=["python"],
        )
        store.save([entry])
        loaded = store.load()
        self.assertEqual(len(loaded), 1)
        self.assertEqual(loaded[0].cached_at_ms, 1000)
        job = loaded[0].job
        self.assertEqual(job.id, entry.job.id)
        self.assertEqual(job.posted_at, datetime(2025, 9, 14, 8, 0))
        self.assertEqual(job.employment_type, EmploymentType.CONTRACT)
        self.assertEqual(job.keywords, ["python"])
        self.assertFalse(self.path.with_name("jobs.json.tmp").exists())

    def test_missing_file_loads_empty(self):
        self.assertEqual(JsonFileStore(self.path).load(), [])

    def test_corrupt_file_loads_empty(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")
        self.assertEqual(JsonFileStore(self.path).load(), [])

    def test_bad_records_are_skipped(self):
        self.path.parent.mkdir(parents=True)
        good = {"id": "abc", "title": "Clerk", "source": "PNet", "cached_at": 5}
        self.path.write_text(json.dumps([good, {"title": "no id"}]), encoding="utf-8")
        loaded = JsonFileStore(self.path).load()
        self.assertEqual([e.job.title for e in loaded], ["Clerk"])


class SqlStoreTests(unittest.TestCase):
    def test_save_replaces_table_contents(self):
        store = _sqlite_store()
        store.save([_entry("A", 1), _entry("B", 2)])
        store.save([_entry("B", 3), _entry("C", 4)])
        loaded = store.load()
        self.assertEqual([e.job.title for e in loaded], ["C", "B"])
        self.assertEqual(loaded[1].cached_at_ms, 3)

    def test_trim_oldest(self):
        store = _sqlite_store()
        store.save([_entry(t, i) for i, t in enumerate(["A", "B", "C", "D"])])
        with get_session(store._factory) as db:
            deleted = crud.trim_oldest(db, 2)
            db.commit()
            self.assertEqual(deleted, 2)
            self.assertEqual(crud.count_cached_jobs(db), 2)
        self.assertEqual(sorted(e.job.title for e in store.load()), ["C", "D"])


class MakeStoreTests(unittest.TestCase):
    def test_backends(self):
        self.assertIsInstance(make_store("memory"), MemoryStore)
        self.assertIsInstance(make_store("JSON", path="x.json"), JsonFileStore)
        self.assertIsInstance(make_store("bogus"), MemoryStore)


if __name__ == "__main__":
    unittest.main()
