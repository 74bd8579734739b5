"""
fedsync_import.api.main.

FastAPI wrapper that runs FedSync imports as background jobs.

Responsibilities
----------------
• Start import jobs (optionally syncing the feed first)
• Report job status
• Health monitoring

Environment
-----------
Reads the same ``FEDSYNC_*`` settings as the CLI. ``FEDSYNC_SYNC_COMMAND``
enables the ``sync_first`` option.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fedsync_import import __version__
from fedsync_import.api.jobs import (
    FeedSyncer,
    JobState,
    JobTable,
    StoreFactory,
    command_syncer,
    job_error_report_path,
    run_job,
)
from fedsync_import.configs.settings import ImportSettings, get_settings
from fedsync_import.errors import ConfigurationError
from fedsync_import.ingestion.options import ImportOptions
from fedsync_import.ingestion.store import ContentStore, InMemoryContentStore, RestContentStore

# ---------------------------------------------------------------------------
# APP INITIALIZATION
# ---------------------------------------------------------------------------

app = FastAPI(
    title="FedSync Import API",
    version=__version__,
    description="Run and monitor FedSync listing imports.",
)


# ---------------------------------------------------------------------------
# DEPENDENCIES
# ---------------------------------------------------------------------------

_JOBS: Optional[JobTable] = None


def get_job_table(settings: ImportSettings = Depends(get_settings)) -> JobTable:
    """
    Return the process-wide job table, created on first use.

    Returns
    -------
    JobTable
        Registry shared by all requests, capped at MAX_RETAINED_JOBS.
    """
    global _JOBS
    if _JOBS is None:
        _JOBS = JobTable(max_retained=settings.MAX_RETAINED_JOBS)
    return _JOBS


def default_store_factory(settings: ImportSettings, dry_run: bool) -> ContentStore:
    """Dry runs never touch the real store."""
    if dry_run:
        return InMemoryContentStore()
    return RestContentStore.from_settings(settings)


def get_store_factory() -> StoreFactory:
    return default_store_factory


def get_syncer(settings: ImportSettings = Depends(get_settings)) -> Optional[FeedSyncer]:
    """
    Build the feed syncer from settings.

    Returns
    -------
    FeedSyncer or None
        None when no sync command is configured.
    """
    if not settings.SYNC_COMMAND:
        return None
    return command_syncer(settings.SYNC_COMMAND)


# ---------------------------------------------------------------------------
# REQUEST / RESPONSE MODELS
# ---------------------------------------------------------------------------


class ImportRequest(BaseModel):
    """Options accepted by ``POST /import`` (snake_case or camelCase)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    sync_first: bool = False
    skip_categories: bool = False
    skip_events: bool = False
    skip_profiles: bool = False
    dry_run: bool = False
    batch_size: Optional[int] = Field(None, ge=1)
    concurrency: Optional[int] = Field(None, ge=1)


class ImportStarted(BaseModel):
    job_id: str
    status: JobState
    message: str


# ---------------------------------------------------------------------------
# HEALTH ENDPOINT
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Monitoring"])
def health_check() -> dict[str, str]:
    """
    Check API health.

    Returns
    -------
    dict
        Service status indicator.
    """
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# IMPORT ENDPOINTS
# ---------------------------------------------------------------------------


@app.post("/import", response_model=ImportStarted, tags=["Import"])
async def start_import(
    request: ImportRequest,
    background_tasks: BackgroundTasks,
    jobs: JobTable = Depends(get_job_table),
    settings: ImportSettings = Depends(get_settings),
    store_factory: StoreFactory = Depends(get_store_factory),
    syncer: Optional[FeedSyncer] = Depends(get_syncer),
) -> ImportStarted:
    """
    Queue an import job.

    Parameters
    ----------
    request : ImportRequest
        Phase selection and tuning options.

    Returns
    -------
    ImportStarted
        Identifier of the queued job.

    Raises
    ------
    HTTPException
        422 if the options are invalid.
    """
    job = jobs.create(options=request.model_dump())
    try:
        options = ImportOptions.from_settings(
            settings,
            batch_size=request.batch_size,
            concurrency=request.concurrency,
            skip_categories=request.skip_categories,
            skip_events=request.skip_events,
            skip_profiles=request.skip_profiles,
            dry_run=request.dry_run,
            error_report_path=job_error_report_path(settings, job.job_id),
        )
    except ConfigurationError as e:
        jobs.update(job.job_id, state=JobState.FAILED, error=e.message)
        raise HTTPException(status_code=422, detail=e.message) from e

    background_tasks.add_task(
        run_job,
        jobs,
        job.job_id,
        options,
        settings=settings,
        store_factory=store_factory,
        syncer=syncer,
        sync_first=request.sync_first,
    )
    return ImportStarted(job_id=job.job_id, status=job.state, message="Import job started")


@app.get("/import/status", tags=["Import"])
def import_status(
    job_id: Optional[str] = None,
    jobs: JobTable = Depends(get_job_table),
) -> dict[str, Any]:
    """
    Report one job, or the most recent jobs.

    Parameters
    ----------
    job_id : str, optional
        Job to report. When omitted, the last 10 jobs are returned.

    Returns
    -------
    dict
        The job record, or ``{"jobs": [...]}``.

    Raises
    ------
    HTTPException
        404 if ``job_id`` is unknown.
    """
    if job_id is None:
        return {"jobs": [j.to_dict() for j in jobs.recent()]}

    job = jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return job.to_dict()
