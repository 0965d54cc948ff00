"""Heuristic field extraction from free-text titles and snippets.

Search APIs and scraped cards rarely give us clean structured data. These
helpers pull company, location, salary, employment type and keywords out of
whatever text a source returns. All of them are pure and tolerate ``None``.
"""
from __future__ import annotations

import re
from typing import Iterable

CITY_PROVINCE = {
    "johannesburg": ("Johannesburg", "Gauteng"),
    "cape town": ("Cape Town", "Western Cape"),
    "durban": ("Durban", "KwaZulu-Natal"),
    "pretoria": ("Pretoria", "Gauteng"),
    "port elizabeth": ("Port Elizabeth", "Eastern Cape"),
    "gqeberha": ("Gqeberha", "Eastern Cape"),
    "bloemfontein": ("Bloemfontein", "Free State"),
    "nelspruit": ("Nelspruit", "Mpumalanga"),
    "polokwane": ("Polokwane", "Limpopo"),
    "kimberley": ("Kimberley", "Northern Cape"),
    "sandton": ("Sandton", "Gauteng"),
    "centurion": ("Centurion", "Gauteng"),
    "stellenbosch": ("Stellenbosch", "Western Cape"),
}

PROVINCES = (
    "Gauteng",
    "Western Cape",
    "KwaZulu-Natal",
    "Eastern Cape",
    "Free State",
    "Limpopo",
    "Mpumalanga",
    "North West",
    "Northern Cape",
)

DEFAULT_LOCATION = "South Africa"

_COMPANY_TITLE_PATTERNS = (
    re.compile(r"\bat\s+([^,|\-–]+)", re.I),
    re.compile(r"\s[-–|]\s*([^,|\-–]+)"),
    re.compile(r"@\s*([^,|]+)"),
    re.compile(r"\bwith\s+([^,|]+)", re.I),
)
_COMPANY_SNIPPET = re.compile(r"(?:company|employer|organi[sz]ation)\s*:\s*([^,.\n]+)", re.I)

_RAND = r"R\s*(\d{1,3}(?:[,\s]\d{3})*(?:\.\d+)?\s*[kK]?)"
_SALARY_PATTERNS = (
    re.compile(_RAND + r"\s*(?:-|–|to)\s*" + _RAND, re.I),
    re.compile(_RAND + r"\s*(?:per|p\.?)\s*(?:month|annum|year|m|a)\b", re.I),
    re.compile(r"salary[:\s]*" + _RAND, re.I),
)

EMPLOYMENT_TYPE_HINTS = (
    ("part-time", ("part-time", "part time")),
    ("internship", ("internship", "intern ", "graduate programme", "graduate program", "learnership")),
    ("contract", ("contract", "fixed term", "fixed-term", "temporary", "temp ", "freelance")),
    ("full-time", ("full-time", "full time", "permanent")),
)

COMMON_KEYWORDS = (
    "javascript", "typescript", "python", "java", "c#", ".net", "react",
    "angular", "vue", "node.js", "sql", "mongodb", "aws", "azure", "docker",
    "kubernetes", "excel", "power bi", "sap", "sales", "marketing",
    "customer service", "administration", "finance", "accounting", "hr",
    "human resources", "project management", "data analysis",
)

WS_RE = re.compile(r"\s+")


def collapse_ws(text: str | None) -> str:
    return WS_RE.sub(" ", text or "").strip()


def clean_title(title: str) -> str:
    """Drop trailing ``- Company``, ``at Company`` and ``@ Company`` parts."""
    t = collapse_ws(title)
    t = re.sub(r"\s+[-–|]\s+.*$", "", t)
    t = re.sub(r"\s+at\s+.*$", "", t, flags=re.I)
    t = re.sub(r"\s*@\s+.*$", "", t)
    return t.strip()


def extract_company(title: str | None, snippet: str | None = None) -> str | None:
    t = collapse_ws(title)
    for pattern in _COMPANY_TITLE_PATTERNS:
        m = pattern.search(t)
        if m and m.group(1).strip():
            return m.group(1).strip()
    m = _COMPANY_SNIPPET.search(snippet or "")
    if m and m.group(1).strip():
        return m.group(1).strip()
    return None


def province_for(city: str) -> str | None:
    hit = CITY_PROVINCE.get(city.strip().lower())
    return hit[1] if hit else None


def extract_location(text: str | None, default: str | None = DEFAULT_LOCATION) -> str | None:
    """Return ``"City, Province"``, a province, or ``default``."""
    lowered = (text or "").lower()
    for key, (city, province) in CITY_PROVINCE.items():
        if key in lowered:
            return f"{city}, {province}"
    for province in PROVINCES:
        if province.lower() in lowered:
            return province
    return default


def _rand_amount(raw: str) -> str:
    amount = re.sub(r"[,\s]", "", raw)
    if amount.lower().endswith("k"):
        try:
            return str(int(float(amount[:-1]) * 1000))
        except ValueError:
            return amount
    return amount


def extract_salary(text: str | None) -> str | None:
    """Find a rand salary such as ``R25 000 - R35 000`` and normalize it."""
    for pattern in _SALARY_PATTERNS:
        m = pattern.search(text or "")
        if not m:
            continue
        groups = [g for g in m.groups() if g]
        if len(groups) >= 2:
            return f"R{_rand_amount(groups[0])} - R{_rand_amount(groups[1])}"
        return f"R{_rand_amount(groups[0])}"
    return None


def extract_employment_type(text: str | None) -> str | None:
    lowered = f" {(text or '').lower()} "
    for kind, hints in EMPLOYMENT_TYPE_HINTS:
        if any(h in lowered for h in hints):
            return kind
    return None


def extract_keywords(text: str | None, search_terms: Iterable[str] = ()) -> list[str]:
    """Search terms first, then known skill words found in ``text``."""
    out: list[str] = []
    for term in search_terms:
        for part in term.split(","):
            kw = part.strip().lower()
            if kw and kw not in out:
                out.append(kw)
    lowered = (text or "").lower()
    for kw in COMMON_KEYWORDS:
        if kw in lowered and kw not in out:
            out.append(kw)
    return out
