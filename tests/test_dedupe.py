import unittest

from jobpulse.core.dedupe import (
    deduplicate_jobs,
    identity_key,
    job_key,
    merge_with_cached,
    normalize_url,
)
from jobpulse.core.normalize import normalize_job


def _job(title, company=None, url=None, source="src"):
    return normalize_job({"title": title, "company": company, "url": url}, source)


class IdentityKeyTests(unittest.TestCase):
    def test_title_and_company(self):
        self.assertEqual(identity_key("Senior Dev!", "ACME  Ltd", None), "senior dev|acme ltd")

    def test_url_when_company_missing(self):
        key = identity_key("Dev", None, "HTTP://WWW.Example.com/Job/1/?utm_source=x&ref=abc#frag")
        self.assertEqual(key, "https://example.com/Job/1")

    def test_title_only_fallback(self):
        self.assertEqual(identity_key("Dev", None, None), "dev|")

    def test_normalize_url_keeps_real_query_sorted(self):
        self.assertEqual(
            normalize_url("https://jobs.example.com/view?id=7&gclid=zz&a=1"),
            "https://jobs.example.com/view?a=1&id=7",
        )


class DeduplicateTests(unittest.TestCase):
    def test_first_seen_wins_and_order_kept(self):
        a = _job("Accountant", "Nedbank", "https://a.co/1", source="A")
        b = _job("Clerk", "FNB", "https://a.co/2", source="A")
        dup = _job("accountant", "NEDBANK", "https://b.co/9", source="B")
        out = deduplicate_jobs([a, b, dup])
        self.assertEqual([j.source_url for j in out], ["https://a.co/1", "https://a.co/2"])

    def test_no_two_results_share_a_key(self):
        jobs = [_job(t, c) for t, c in [("A", "x"), ("a", "X"), ("B", "x"), ("b ", "x"), ("C", None)]]
        out = deduplicate_jobs(jobs)
        keys = [job_key(j) for j in out]
        self.assertEqual(len(keys), len(set(keys)))
        self.assertEqual(len(out), 3)

    def test_fresh_overwrites_cached(self):
        cached = _job("Accountant", "Nedbank", "https://old.co/1", source="cache")
        other = _job("Clerk", "FNB", "https://old.co/2", source="cache")
        fresh = _job("Accountant", "Nedbank", "https://new.co/1", source="A")
        merged = merge_with_cached([fresh], [cached, other])
        self.assertEqual(len(merged), 2)
        self.assertEqual(merged[0].source_url, "https://new.co/1")
        self.assertEqual(merged[1].title, "Clerk")


if __name__ == "__main__":
    unittest.main()
