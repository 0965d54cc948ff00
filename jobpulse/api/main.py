from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from jobpulse import __version__
from jobpulse.aggregate.orchestrator import DEFAULT_LIMIT, AggregationReport
from jobpulse.api.deps import get_service
from jobpulse.core.extract import DEFAULT_LOCATION
from jobpulse.service import MAX_LIMIT, JobService

ADMIN_TOKEN = os.getenv("JOBPULSE_ADMIN_TOKEN", "")
LOGGER = logging.getLogger(__name__)


def require_admin(x_token: str | None) -> None:
    if not ADMIN_TOKEN or x_token != ADMIN_TOKEN:
        raise HTTPException(status_code=401, detail="Unauthorized")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    # Only stop a service that was actually built
    if get_service.cache_info().currsize:
        get_service().stop()
        get_service.cache_clear()


# -------------------------
# FastAPI setup
# -------------------------
app = FastAPI(title="jobpulse API", version=__version__, lifespan=lifespan)

# CORS (open for now; tighten before public deploy)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------
# Routes
# -------------------------
@app.get("/", tags=["meta"])  # small friendly root
async def root():
    return {"message": "jobpulse API is running"}


@app.get("/healthz", tags=["meta"])  # k8s/Render probes
async def healthz():
    return {"status": "ok"}


# Plain def: aggregation blocks, so FastAPI runs it in the threadpool
@app.get("/jobs/search", response_model=AggregationReport, tags=["data"])
def search_jobs(
    keywords: str = Query("", description="Free-text keywords; empty matches everything"),
    location: str = Query(DEFAULT_LOCATION, description="City or province"),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    service: JobService = Depends(get_service),
):
    report = service.search_jobs(keywords, location, limit)
    LOGGER.info(
        "api-search keywords=%r location=%r returned=%s fallback=%s",
        keywords, location, len(report.jobs), report.fallback_used,
    )
    return report


@app.get("/stats", tags=["data"])
def stats(service: JobService = Depends(get_service)):
    return service.get_stats()


@app.post("/cache/refresh", status_code=202, tags=["admin"])
def refresh_cache(
    x_token: str | None = Header(default=None),
    service: JobService = Depends(get_service),
):
    require_admin(x_token)
    service.refresh_cache(background=True)
    return {"status": "accepted", "cache_stats": service.cache.stats()}
