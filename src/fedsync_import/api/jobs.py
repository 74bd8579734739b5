"""
Import job tracking for the HTTP wrapper.

A job moves PENDING -> [SYNCING] -> RUNNING -> COMPLETED | FAILED. The
:class:`JobTable` owns every job record; each job is mutated only by the
background task that runs it, through :meth:`JobTable.update`.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fedsync_import.configs.settings import ImportSettings
from fedsync_import.ingestion.options import ImportOptions
from fedsync_import.ingestion.orchestrator import run_import
from fedsync_import.ingestion.store import ContentStore
from fedsync_import.monitoring.error_aggregator import ErrorAggregator
from fedsync_import.monitoring.reporting import format_duration

logger = logging.getLogger(__name__)

FeedSyncer = Callable[[], Awaitable[None]]
StoreFactory = Callable[[ImportSettings, bool], ContentStore]

RECENT_JOBS_LIMIT = 10
DEFAULT_MAX_RETAINED_JOBS = 100


class JobState(str, Enum):
    PENDING = "pending"
    SYNCING = "syncing"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobPhase(str, Enum):
    INITIALIZING = "initializing"
    SYNCING = "syncing"
    IMPORTING = "importing"
    DONE = "done"


def _now() -> datetime:
    return datetime.now(UTC)


def duration_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[str]:
    """Human-readable duration between two timestamps."""
    if start is None or end is None:
        return None
    return format_duration((end - start).total_seconds())


@dataclass
class ImportJob:
    """State of one background import."""

    job_id: str
    state: JobState = JobState.PENDING
    phase: JobPhase = JobPhase.INITIALIZING
    message: str = "Import job queued"
    options: Dict[str, Any] = field(default_factory=dict)
    start_time: datetime = field(default_factory=_now)
    sync_start_time: Optional[datetime] = None
    sync_end_time: Optional[datetime] = None
    import_start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    stats: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_report: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.state in (JobState.COMPLETED, JobState.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        data["phase"] = self.phase.value
        for key in ("start_time", "sync_start_time", "sync_end_time", "import_start_time", "end_time"):
            value = getattr(self, key)
            data[key] = value.isoformat() if value else None
        data["sync_duration"] = duration_between(self.sync_start_time, self.sync_end_time)
        data["import_duration"] = duration_between(self.import_start_time, self.end_time)
        data["total_duration"] = duration_between(self.start_time, self.end_time)
        return data


class JobTable:
    """
    In-process registry of import jobs.

    At most ``max_retained`` jobs are kept. Creating a job past the cap evicts
    the oldest finished jobs; pending and running jobs are never evicted.
    """

    def __init__(self, max_retained: int = DEFAULT_MAX_RETAINED_JOBS):
        self.max_retained = max_retained
        self._jobs: Dict[str, ImportJob] = {}

    def create(self, options: Optional[Dict[str, Any]] = None) -> ImportJob:
        job = ImportJob(job_id=str(uuid.uuid4()), options=dict(options or {}))
        self._jobs[job.job_id] = job
        self._evict_finished()
        return job

    def _evict_finished(self) -> None:
        excess = len(self._jobs) - self.max_retained
        if excess <= 0:
            return
        # Dict order is creation order
        expired = [job_id for job_id, job in self._jobs.items() if job.finished][:excess]
        for job_id in expired:
            del self._jobs[job_id]
        if expired:
            logger.debug(f"Evicted {len(expired)} finished jobs")

    def get(self, job_id: str) -> Optional[ImportJob]:
        return self._jobs.get(job_id)

    def update(self, job_id: str, **changes: Any) -> ImportJob:
        """
        Apply field changes to a job.

        Raises:
            KeyError: if the job does not exist or a field is unknown
        """
        job = self._jobs[job_id]
        for key, value in changes.items():
            if not hasattr(job, key):
                raise KeyError(key)
            setattr(job, key, value)
        return job

    def recent(self, limit: int = RECENT_JOBS_LIMIT) -> List[ImportJob]:
        """Most recently started jobs first."""
        return sorted(self._jobs.values(), key=lambda j: j.start_time, reverse=True)[:limit]

    def clear(self) -> None:
        self._jobs.clear()

    def __len__(self) -> int:
        return len(self._jobs)


def command_syncer(command: str) -> FeedSyncer:
    """Build a syncer that runs ``command`` as a subprocess."""

    async def sync() -> None:
        proc = await asyncio.create_subprocess_exec(
            *shlex.split(command),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise RuntimeError(
                f"Feed sync exited with {proc.returncode}: {stderr.decode(errors='replace').strip()}"
            )

    return sync


async def run_job(
    table: JobTable,
    job_id: str,
    options: ImportOptions,
    *,
    settings: ImportSettings,
    store_factory: StoreFactory,
    syncer: Optional[FeedSyncer] = None,
    sync_first: bool = False,
) -> None:
    """
    Run one job to completion, recording every transition in the table.

    A failing feed sync is logged and the import still runs on whatever data
    is already on disk.
    """
    log = logging.LoggerAdapter(logger, {"run_id": job_id})

    try:
        if sync_first:
            table.update(
                job_id,
                state=JobState.SYNCING,
                phase=JobPhase.SYNCING,
                message="Syncing fresh data from FedSync...",
                sync_start_time=_now(),
            )
            if syncer is None:
                log.warning("Sync requested but no feed syncer is configured")
            else:
                try:
                    await syncer()
                except Exception as e:
                    log.warning(f"Feed sync failed, importing existing data: {e}")
            table.update(job_id, sync_end_time=_now())

        table.update(
            job_id,
            state=JobState.RUNNING,
            phase=JobPhase.IMPORTING,
            message="Running import...",
            import_start_time=_now(),
        )
        errors = ErrorAggregator()
        store = store_factory(settings, options.dry_run)
        stats = await run_import(store, settings.DATA_PATH, options=options, errors=errors)

        table.update(
            job_id,
            state=JobState.COMPLETED,
            phase=JobPhase.DONE,
            message="Import completed successfully",
            end_time=_now(),
            stats=stats.to_dict(),
            error_report=(
                str(options.error_report_path)
                if options.error_report_path and errors.count
                else None
            ),
        )
        log.info(f"Import job {job_id} completed")
    except Exception as e:
        log.error(f"Import job {job_id} failed: {e}")
        table.update(
            job_id,
            state=JobState.FAILED,
            phase=JobPhase.DONE,
            message="Import failed",
            error=str(e) or type(e).__name__,
            end_time=_now(),
        )


def job_error_report_path(settings: ImportSettings, job_id: str) -> Path:
    """Per-job error report, next to the configured error log."""
    return Path(settings.ERROR_LOG_PATH).parent / f"import-errors-{job_id}.json"
