from __future__ import annotations

from functools import lru_cache

from jobpulse.service import JobService, build_service


@lru_cache(maxsize=1)
def get_service() -> JobService:
    """FastAPI dependency returning the process-wide :class:`JobService`.

    Built on first use, with its refresh worker started. Tests replace it
    through ``app.dependency_overrides[get_service]``.

    Usage in route handlers:
        def handler(service: JobService = Depends(get_service)):
            ...
    """
    service = build_service()
    service.start()
    return service


__all__ = ["get_service"]
