from __future__ import annotations

from datetime import datetime
from enum import Enum
import re
from typing import Any, Iterable, Mapping
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from pydantic import BaseModel

from .date_parse import parse_posted_date, to_naive_utc
from .dedupe import stable_id
from .errors import ParseError
from .extract import collapse_ws, extract_employment_type, extract_keywords

SNIPPET_MAX_CHARS = 200


class EmploymentType(str, Enum):
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"


_EMPLOYMENT_ALIASES = {
    "full-time": EmploymentType.FULL_TIME,
    "full time": EmploymentType.FULL_TIME,
    "fulltime": EmploymentType.FULL_TIME,
    "permanent": EmploymentType.FULL_TIME,
    "part-time": EmploymentType.PART_TIME,
    "part time": EmploymentType.PART_TIME,
    "parttime": EmploymentType.PART_TIME,
    "contract": EmploymentType.CONTRACT,
    "contractor": EmploymentType.CONTRACT,
    "temporary": EmploymentType.CONTRACT,
    "temp": EmploymentType.CONTRACT,
    "fixed term": EmploymentType.CONTRACT,
    "freelance": EmploymentType.CONTRACT,
    "internship": EmploymentType.INTERNSHIP,
    "intern": EmploymentType.INTERNSHIP,
    "graduate": EmploymentType.INTERNSHIP,
    "learnership": EmploymentType.INTERNSHIP,
}


class JobPosting(BaseModel):
    id: str
    title: str
    source_name: str
    company: str | None = None
    location: str | None = None
    snippet: str | None = None
    description: str | None = None
    source_url: str | None = None
    posted_at: datetime | None = None
    salary: str | None = None
    employment_type: EmploymentType | None = None
    keywords: list[str] = []
    synthetic: bool = False


def normalize_title(title: str) -> str:
    return " ".join(title.split()).strip()


def normalize_company(name: str) -> str:
    return " ".join(name.split()).strip()


def canonical_location(loc: str | None) -> str | None:
    if not loc:
        return None
    loc = " ".join(loc.split()).strip(" ,")
    if not loc:
        return None
    # Normalize common variants
    loc = loc.replace("Republic of South Africa", "South Africa")
    loc = re.sub(r"\bRSA\b", "South Africa", loc)
    loc = loc.replace("Port Elizabeth (Gqeberha)", "Port Elizabeth")
    return loc


def optional_text(value: Any) -> str | None:
    """Blank strings and placeholders become ``None``, never ``""``."""
    if value is None:
        return None
    text = collapse_ws(str(value))
    if not text or text.lower() in ("n/a", "none", "null", "-"):
        return None
    return text


def html_to_text(html: str | None) -> str | None:
    if not html:
        return None
    if "<" not in html:
        return optional_text(html)
    text = BeautifulSoup(html, "html.parser").get_text(" ", strip=True)
    return optional_text(text)


def truncate_snippet(text: str | None, max_chars: int = SNIPPET_MAX_CHARS) -> str | None:
    text = optional_text(text)
    if text is None or len(text) <= max_chars:
        return text
    cut = text[: max_chars - 1]
    space = cut.rfind(" ")
    if space > max_chars // 2:
        cut = cut[:space]
    return cut.rstrip(" ,.;:-") + "…"


def normalize_keywords(keywords: Iterable[str] | None) -> list[str]:
    out: list[str] = []
    for kw in keywords or ():
        k = optional_text(kw)
        if k is None:
            continue
        k = k.lower()
        if k not in out:
            out.append(k)
    return out


def resolve_url(url: str | None, base_url: str | None = None) -> str | None:
    url = optional_text(url)
    if url is None:
        return None
    if urlparse(url).scheme in ("http", "https"):
        return url
    if url.startswith("//"):
        return f"https:{url}"
    if base_url:
        return urljoin(base_url, url)
    return None


def coerce_employment_type(value: Any) -> EmploymentType | None:
    if value is None:
        return None
    if isinstance(value, EmploymentType):
        return value
    key = collapse_ws(str(value)).lower().replace("_", "-")
    if key in _EMPLOYMENT_ALIASES:
        return _EMPLOYMENT_ALIASES[key]
    guess = extract_employment_type(key)
    return EmploymentType(guess) if guess else None


def infer_level(title: str, description: str | None = None) -> str | None:
    """Rough seniority signal: "entry", "junior", "mid", "senior" or None."""
    t = f" {(title or '').lower()} "
    desc = (description or "").lower()

    if any(p in t for p in (" intern", "graduate", "learnership", "trainee", "entry level", "entry-level")):
        return "entry"
    if any(p in desc for p in ("no experience", "matric only", "matric required")):
        return "entry"
    if any(p in t for p in (" junior", " jnr", " jr ", " jr.")):
        return "junior"
    if any(p in t for p in (" senior", " snr", " sr ", " sr.", " lead", " principal", " head of", " manager", " architect")):
        return "senior"
    if any(p in t for p in (" intermediate", " mid-level", " mid level")):
        return "mid"
    if any(p in desc for p in ("mid-level", "intermediate")):
        return "mid"
    return None


_RAW_SNIPPET_KEYS = ("snippet", "summary")
_RAW_DESCRIPTION_KEYS = ("description", "description_html", "content")
_RAW_URL_KEYS = ("url", "source_url", "link", "application_url")
_RAW_DATE_KEYS = ("posted_at", "posted_date", "date_posted", "pub_date", "published")
_RAW_TYPE_KEYS = ("employment_type", "job_type", "type")


def _first(raw: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def normalize_job(
    raw: Mapping[str, Any],
    source_name: str,
    *,
    base_url: str | None = None,
    now: datetime | None = None,
) -> JobPosting:
    """Map one raw per-source record onto the canonical :class:`JobPosting`.

    Raises :class:`ParseError` when the record has no usable title.
    """
    title_raw = optional_text(raw.get("title"))
    if title_raw is None:
        raise ParseError(f"{source_name}: record without a title")
    title = normalize_title(title_raw)

    company = optional_text(raw.get("company"))
    company = normalize_company(company) if company else None

    description = html_to_text(_first(raw, _RAW_DESCRIPTION_KEYS))
    snippet_src = html_to_text(_first(raw, _RAW_SNIPPET_KEYS)) or description
    url = resolve_url(_first(raw, _RAW_URL_KEYS), base_url)

    posted = _first(raw, _RAW_DATE_KEYS)
    if isinstance(posted, datetime):
        posted_at = to_naive_utc(posted)
    elif posted is not None:
        posted_at = parse_posted_date(str(posted), now=now)
    else:
        posted_at = None

    return JobPosting(
        id=stable_id(title, company, url),
        title=title,
        source_name=optional_text(raw.get("source")) or source_name,
        company=company,
        location=canonical_location(optional_text(raw.get("location"))),
        snippet=truncate_snippet(snippet_src),
        description=description,
        source_url=url,
        posted_at=posted_at,
        salary=optional_text(raw.get("salary")),
        employment_type=coerce_employment_type(_first(raw, _RAW_TYPE_KEYS)),
        keywords=normalize_keywords(raw.get("keywords"))
        or extract_keywords(f"{title} {description or snippet_src or ''}"),
        synthetic=bool(raw.get("synthetic", False)),
    )
