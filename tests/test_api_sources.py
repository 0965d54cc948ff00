import unittest
from datetime import datetime
from unittest import mock

from jobpulse.core.errors import ErrorKind, NetworkError
from jobpulse.core.normalize import EmploymentType
from jobpulse.providers.adzuna import API_URL as ADZUNA_URL
from jobpulse.providers.adzuna import AdzunaSource, format_salary
from jobpulse.providers.google_search import (
    API_URL as GOOGLE_URL,
    GoogleSearchSource,
    build_query,
    location_terms,
    source_for_domain,
)

GOOGLE_PAYLOAD = {
    "items": [
        {
            "title": "Junior Accountant at Nedbank - Careers24",
            "link": "https://www.careers24.com/jobs/adverts/1",
            "snippet": "Durban based. R15 000 - R20 000 per month. Permanent.",
            "displayLink": "www.careers24.com",
        },
        "not-a-dict",
    ]
}

ADZUNA_PAYLOAD = {
    "results": [
        {
            "title": "Data Engineer",
            "company": {"display_name": "Takealot"},
            "location": {"display_name": "Cape Town, Western Cape"},
            "description": "Build pipelines",
            "redirect_url": "https://www.adzuna.co.za/details/1",
            "created": "2025-09-16T10:00:00Z",
            "salary_min": 40000,
            "salary_max": 55000,
            "contract_time": "full_time",
            "contract_type": "permanent",
        }
    ]
}


def _fetcher(payload=None, error=None):
    fetcher = mock.Mock()
    if error is not None:
        fetcher.get_json.side_effect = error
    else:
        fetcher.get_json.return_value = payload
    return fetcher


class GoogleSearchTests(unittest.TestCase):
    def test_items_become_jobs(self):
        fetcher = _fetcher(GOOGLE_PAYLOAD)
        result = GoogleSearchSource("key", "cx", fetcher=fetcher).fetch("accountant", "", 10)

        self.assertTrue(result.ok)
        self.assertEqual(len(result.jobs), 1)
        job = result.jobs[0]
        self.assertEqual(job.title, "Junior Accountant")
        self.assertEqual(job.company, "Nedbank")
        self.assertEqual(job.location, "Durban, KwaZulu-Natal")
        self.assertEqual(job.salary, "R15000 - R20000")
        self.assertEqual(job.employment_type, EmploymentType.FULL_TIME)
        self.assertEqual(job.source_name, "Careers24")
        self.assertEqual(job.keywords[0], "accountant")

        args, kwargs = fetcher.get_json.call_args
        self.assertEqual(args, (GOOGLE_URL,))
        params = kwargs["params"]
        self.assertEqual(params["num"], 10)
        self.assertEqual(params["dateRestrict"], "m30")
        self.assertIn('"accountant"', params["q"])

    def test_num_capped_at_api_limit(self):
        fetcher = _fetcher({"items": []})
        GoogleSearchSource("key", "cx", fetcher=fetcher).fetch("", "", 50)
        self.assertEqual(fetcher.get_json.call_args.kwargs["params"]["num"], 10)

    def test_missing_credentials(self):
        fetcher = _fetcher(GOOGLE_PAYLOAD)
        result = GoogleSearchSource("", "cx", fetcher=fetcher).fetch("x", "", 10)
        self.assertEqual(result.error, ErrorKind.CONFIGURATION)
        fetcher.get_json.assert_not_called()

    def test_malformed_items(self):
        result = GoogleSearchSource("key", "cx", fetcher=_fetcher({"items": "oops"})).fetch("x", "", 10)
        self.assertEqual(result.error, ErrorKind.PARSE)

    def test_no_items_is_empty_success(self):
        result = GoogleSearchSource("key", "cx", fetcher=_fetcher({})).fetch("x", "", 10)
        self.assertTrue(result.ok)
        self.assertEqual(result.jobs, [])

    def test_query_building(self):
        q = build_query("python", "Cape Town")
        self.assertIn("site:pnet.co.za", q)
        self.assertIn('"python"', q)
        self.assertIn("Western Cape", q)
        self.assertIn("(jobs)", build_query("", ""))
        self.assertIn("Durban", location_terms(""))
        self.assertEqual(source_for_domain("www.pnet.co.za"), "PNet")
        self.assertEqual(source_for_domain("jobs.example.com"), "jobs.example.com")


class AdzunaTests(unittest.TestCase):
    def test_results_become_jobs(self):
        fetcher = _fetcher(ADZUNA_PAYLOAD)
        result = AdzunaSource("id", "key", fetcher=fetcher).fetch("data", "Cape Town", 20)

        self.assertTrue(result.ok)
        job = result.jobs[0]
        self.assertEqual(job.company, "Takealot")
        self.assertEqual(job.location, "Cape Town, Western Cape")
        self.assertEqual(job.salary, "R40000 - R55000")
        self.assertEqual(job.employment_type, EmploymentType.FULL_TIME)
        self.assertEqual(job.posted_at, datetime(2025, 9, 16, 10, 0))
        self.assertEqual(job.source_name, "Adzuna")

        params = fetcher.get_json.call_args.kwargs["params"]
        self.assertEqual(fetcher.get_json.call_args.args, (ADZUNA_URL,))
        self.assertEqual(params["what"], "data")
        self.assertEqual(params["where"], "Cape Town")
        self.assertEqual(params["results_per_page"], 20)

    def test_missing_results_list(self):
        result = AdzunaSource("id", "key", fetcher=_fetcher({"count": 0})).fetch("x", "", 5)
        self.assertEqual(result.error, ErrorKind.PARSE)

    def test_missing_credentials(self):
        result = AdzunaSource(fetcher=_fetcher(ADZUNA_PAYLOAD)).fetch("x", "", 5)
        self.assertEqual(result.error, ErrorKind.CONFIGURATION)

    def test_network_error(self):
        result = AdzunaSource("id", "key", fetcher=_fetcher(error=NetworkError("503"))).fetch("x", "", 5)
        self.assertEqual(result.error, ErrorKind.NETWORK)

    def test_format_salary(self):
        self.assertEqual(format_salary(30000, 30000), "R30000")
        self.assertEqual(format_salary(None, 50000.0), "R50000")
        self.assertIsNone(format_salary(None, "n/a"))


if __name__ == "__main__":
    unittest.main()
