from .orchestrator import AggregationReport, AggregationState, Orchestrator, SourceSummary
from .refresh import RefreshRequest, RefreshWorker
from .stats import SourceHealthTracker, compliance_report

__all__ = [
    "AggregationReport",
    "AggregationState",
    "Orchestrator",
    "SourceSummary",
    "RefreshRequest",
    "RefreshWorker",
    "SourceHealthTracker",
    "compliance_report",
]
