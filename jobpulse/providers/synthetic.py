"""Deterministic placeholder postings used when live sources under-deliver.

Every record is flagged ``synthetic=True`` and links to a real search page
on the board it names, never to a made-up vacancy. Output depends only on
the seed, the query and the location, so repeated calls agree.
"""
from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Sequence
from urllib.parse import quote_plus

from jobpulse.core.date_parse import to_naive_utc
from jobpulse.core.extract import CITY_PROVINCE, DEFAULT_LOCATION, extract_keywords
from jobpulse.core.normalize import JobPosting, infer_level
from jobpulse.providers.base import SourceAdapter

COMPANIES = (
    "Nedbank", "Discovery", "Shoprite", "MTN", "Sasol",
    "Standard Bank", "Woolworths", "Pick n Pay", "Capitec", "FNB",
)
LOCATIONS = ("Johannesburg", "Cape Town", "Durban", "Pretoria", "Port Elizabeth")
BOARDS = ("careers24.com", "pnet.co.za", "careerjunction.co.za", "jobmail.co.za")
DEFAULT_TITLES = (
    "Software Developer", "Data Analyst", "Marketing Manager", "Sales Representative",
    "Accountant", "HR Specialist", "Project Manager", "Customer Service",
    "Operations Manager", "Business Analyst",
)

SKILL_TITLES: Dict[str, Sequence[str]] = {
    "python": ("Python Developer", "Data Engineer", "Backend Developer"),
    "javascript": ("JavaScript Developer", "Full Stack Developer", "Frontend Developer"),
    "typescript": ("TypeScript Developer", "Full Stack Developer"),
    "react": ("React Developer", "Frontend Developer"),
    "java": ("Java Developer", "Backend Developer"),
    "c#": (".NET Developer", "Software Engineer"),
    ".net": (".NET Developer", "Software Engineer"),
    "sql": ("Data Analyst", "Database Administrator", "BI Developer"),
    "power bi": ("BI Analyst", "Data Analyst"),
    "data analysis": ("Data Analyst", "Business Analyst"),
    "aws": ("Cloud Engineer", "DevOps Engineer"),
    "azure": ("Cloud Engineer", "DevOps Engineer"),
    "docker": ("DevOps Engineer", "Platform Engineer"),
    "kubernetes": ("DevOps Engineer", "Platform Engineer"),
    "excel": ("Financial Analyst", "Data Capturer", "Administrator"),
    "sap": ("SAP Consultant", "ERP Analyst"),
    "sales": ("Sales Representative", "Account Executive", "Sales Consultant"),
    "marketing": ("Marketing Manager", "Digital Marketing Specialist", "Marketing Coordinator"),
    "finance": ("Financial Analyst", "Accountant"),
    "accounting": ("Accountant", "Bookkeeper", "Creditors Clerk"),
    "hr": ("HR Specialist", "Recruitment Consultant", "HR Administrator"),
    "human resources": ("HR Specialist", "HR Business Partner"),
    "customer service": ("Customer Service Agent", "Call Centre Agent"),
    "administration": ("Office Administrator", "Personal Assistant"),
    "project management": ("Project Manager", "Project Coordinator"),
}

LEVEL_PREFIX = {"entry": "Graduate", "junior": "Junior", "senior": "Senior"}

# Monthly rand bands per level
SALARY_BANDS = {
    "entry": (8_000, 15_000),
    "junior": (15_000, 25_000),
    "mid": (25_000, 45_000),
    "senior": (45_000, 80_000),
}

SNIPPET_TEMPLATE = (
    "Join {company} as a {title}. We are looking for talented individuals to join "
    "our team in {location}. Competitive salary and benefits package offered."
)

MAX_POSTED_DAYS = 7


def titles_for_query(query: str | None) -> List[str]:
    """Curated titles matching the skills and seniority hinted at by ``query``."""
    q = (query or "").strip()
    titles: List[str] = []
    for skill in extract_keywords(q):
        for t in SKILL_TITLES.get(skill, ()):
            if t not in titles:
                titles.append(t)
    if q and not titles:
        titles.append(q.title())
    if not titles:
        titles = list(DEFAULT_TITLES)

    level = infer_level(q) if q else None
    prefix = LEVEL_PREFIX.get(level or "")
    if prefix:
        titles = [t if t.lower().startswith(prefix.lower()) else f"{prefix} {t}" for t in titles]
    return titles


def _salary(rng: random.Random, level: str | None) -> str:
    lo, hi = SALARY_BANDS.get(level or "mid", SALARY_BANDS["mid"])
    low = rng.randrange(lo, hi, 1000)
    high = min(hi + 10_000, low + rng.choice((5_000, 10_000, 15_000)))
    return f"R{low} - R{high}"


def _location(location: str | None, rng: random.Random) -> str:
    loc = (location or "").strip()
    if loc and loc.lower() != DEFAULT_LOCATION.lower():
        return loc
    return rng.choice(LOCATIONS)


def _with_province(city: str) -> str:
    hit = CITY_PROVINCE.get(city.lower())
    return f"{hit[0]}, {hit[1]}" if hit else city


class SyntheticSource(SourceAdapter):
    name = "Synthetic"
    kind = "synthetic"
    notes = "Locally generated placeholders; no network access"

    def __init__(
        self,
        seed: int = 1729,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        super().__init__(timeout=0.0)
        self.seed = seed
        self._rng = rng
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _rng_for(self, query: str, location: str) -> random.Random:
        if self._rng is not None:
            return self._rng
        return random.Random(f"{self.seed}|{query.strip().lower()}|{location.strip().lower()}")

    def records(self, query: str, location: str, count: int) -> List[Dict[str, Any]]:
        rng = self._rng_for(query or "", location or "")
        now = to_naive_utc(self._clock())
        titles = titles_for_query(query)
        level = infer_level(query) if query else None

        out: List[Dict[str, Any]] = []
        seen = set()
        # Bounded so a tiny title/company pool cannot loop forever
        for _ in range(count * 5):
            if len(out) >= count:
                break
            title = rng.choice(titles)
            company = rng.choice(COMPANIES)
            if (title, company) in seen:
                continue
            seen.add((title, company))
            city = _location(location, rng)
            board = rng.choice(BOARDS)
            posted = now - timedelta(days=rng.randrange(MAX_POSTED_DAYS))
            out.append({
                "title": title,
                "company": company,
                "location": _with_province(city),
                "snippet": SNIPPET_TEMPLATE.format(company=company, title=title, location=city),
                "url": f"https://www.{board}/jobs?q={quote_plus(title)}",
                "posted_at": posted.replace(hour=0, minute=0, second=0, microsecond=0),
                "salary": _salary(rng, level),
                "employment_type": "internship" if level == "entry" else rng.choice(("full-time", "full-time", "contract")),
                "keywords": extract_keywords(f"{title} {query or ''}", [query] if query else ()),
                "synthetic": True,
            })
        return out

    def _fetch(self, query: str, location: str, limit: int) -> List[Mapping[str, Any]]:
        return self.records(query, location, limit)

    def generate(self, query: str = "", location: str = "", count: int = 20) -> List[JobPosting]:
        return self.normalize(self.records(query, location, count))
