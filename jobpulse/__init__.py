"""South African job aggregation with a persisted freshness cache."""

__version__ = "0.3.0"
