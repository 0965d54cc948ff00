from __future__ import annotations

from typing import Dict, Mapping

# Source kinds, most trusted first. Structured APIs beat feeds, feeds beat
# scraped cards, and anything we made up ourselves comes last.
SOURCE_KIND_WEIGHTS: Dict[str, float] = {
    "api": 1.0,
    "feed": 0.8,
    "scrape": 0.6,
    "cache": 0.5,
    "synthetic": 0.1,
}


def source_weight(
    name: str,
    kind: str,
    overrides: Mapping[str, float] | None = None,
) -> float:
    """Priority weight for a source; per-name overrides beat the kind default."""
    if overrides:
        if name in overrides:
            return float(overrides[name])
        lowered = name.lower()
        for key, value in overrides.items():
            if key.lower() == lowered:
                return float(value)
    return SOURCE_KIND_WEIGHTS.get(kind, SOURCE_KIND_WEIGHTS["scrape"])
