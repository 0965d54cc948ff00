from .normalize import JobPosting, EmploymentType, normalize_job, normalize_title, normalize_company, canonical_location
from .dedupe import deduplicate_jobs, identity_key, merge_with_cached
from .errors import ErrorKind, SourceError, ConfigurationError, NetworkError, ParseError, RateLimitError

__all__ = [
    "JobPosting",
    "EmploymentType",
    "normalize_job",
    "normalize_title",
    "normalize_company",
    "canonical_location",
    "deduplicate_jobs",
    "identity_key",
    "merge_with_cached",
    "ErrorKind",
    "SourceError",
    "ConfigurationError",
    "NetworkError",
    "ParseError",
    "RateLimitError",
]
