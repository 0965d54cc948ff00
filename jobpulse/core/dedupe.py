from __future__ import annotations
import hashlib
import re
from typing import TYPE_CHECKING, Dict, Iterable, List
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

if TYPE_CHECKING:
    from .normalize import JobPosting

# Query params that only track the click and never identify the posting
TRACKING_PARAMS = {"ref", "source", "src", "trk", "fbclid", "gclid"}

_PUNCT_RE = re.compile(r"[^\w\s]")
_WS_RE = re.compile(r"\s+")


def normalize_key_part(text: str | None) -> str:
    t = (text or "").lower()
    t = _PUNCT_RE.sub(" ", t)
    return _WS_RE.sub(" ", t).strip()


def normalize_url(url: str | None) -> str:
    if not url:
        return ""
    try:
        sp = urlsplit(url.strip())
    except ValueError:
        return url.strip().lower()
    query = [
        (k, v)
        for k, v in parse_qsl(sp.query, keep_blank_values=True)
        if not k.lower().startswith("utm_") and k.lower() not in TRACKING_PARAMS
    ]
    path = sp.path.rstrip("/") or "/"
    return urlunsplit(("https" if sp.scheme in ("http", "https", "") else sp.scheme,
                       (sp.netloc or "").lower().removeprefix("www."),
                       path,
                       urlencode(sorted(query)),
                       ""))


def identity_key(title: str | None, company: str | None, url: str | None) -> str:
    """Title+company when both exist, else the URL, else the title alone."""
    t = normalize_key_part(title)
    c = normalize_key_part(company)
    if t and c:
        return f"{t}|{c}"
    u = normalize_url(url)
    if u:
        return u
    return f"{t}|"


def stable_id(title: str | None, company: str | None, url: str | None) -> str:
    key = identity_key(title, company, url)
    return hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]


def job_key(job: "JobPosting") -> str:
    return identity_key(job.title, job.company, job.source_url)


def deduplicate_jobs(jobs: Iterable["JobPosting"]) -> list["JobPosting"]:
    """Drop repeats; the first occurrence wins and order is preserved."""
    seen: Dict[str, "JobPosting"] = {}
    for j in jobs:
        seen.setdefault(job_key(j), j)
    return list(seen.values())


def merge_with_cached(fresh: Iterable["JobPosting"], cached: Iterable["JobPosting"]) -> List["JobPosting"]:
    """Fresh results first (deduplicated), then cached ones with unseen keys.

    A fresh job always replaces a cached job with the same identity key.
    """
    merged: Dict[str, "JobPosting"] = {}
    for j in fresh:
        merged.setdefault(job_key(j), j)
    for j in cached:
        merged.setdefault(job_key(j), j)
    return list(merged.values())
