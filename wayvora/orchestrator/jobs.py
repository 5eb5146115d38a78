"""Warm jobs as tracked asyncio tasks.

A trigger returns a job snapshot immediately; the run continues in the
background and its lifecycle (queued → running → succeeded | failed |
cancelled) stays observable and cancellable through the manager.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone

from wayvora.orchestrator.schemas import JobStatus, WarmJobSnapshot, WarmRequest, WarmRun
from wayvora.orchestrator.warmer import CacheWarmer, WarmRunInProgressError

logger = logging.getLogger(__name__)

MAX_FINISHED_JOBS = 50


class _WarmJob:
    def __init__(self, request: WarmRequest):
        self.id = uuid.uuid4().hex[:12]
        self.request = request
        self.status = JobStatus.QUEUED
        self.created_at = datetime.now(timezone.utc)
        self.finished_at: datetime | None = None
        self.error = ""
        self.run: WarmRun | None = None
        self.task: asyncio.Task | None = None

    def snapshot(self) -> WarmJobSnapshot:
        return WarmJobSnapshot(
            job_id=self.id,
            status=self.status,
            request=self.request,
            created_at=self.created_at,
            finished_at=self.finished_at,
            error=self.error,
            run=self.run,
        )


class WarmJobManager:
    """Starts, tracks and cancels warm jobs for one CacheWarmer."""

    def __init__(self, warmer: CacheWarmer):
        self.warmer = warmer
        self._jobs: dict[str, _WarmJob] = {}
        self._active: _WarmJob | None = None
        self._schedule_task: asyncio.Task | None = None

    @property
    def active(self) -> WarmJobSnapshot | None:
        return self._active.snapshot() if self._active else None

    def start(self, request: WarmRequest) -> WarmJobSnapshot:
        """Spawn a warm job. Raises WarmRunInProgressError if one is active."""
        if self._active is not None or self.warmer.running:
            raise WarmRunInProgressError("a warm job is already running")

        job = _WarmJob(request)
        job.task = asyncio.create_task(self._run(job), name=f"warm-{job.id}")
        self._jobs[job.id] = job
        self._active = job
        self._prune()
        logger.info(
            "Warm job queued | id=%s | mode=%s | retry=%s",
            job.id, request.mode.value, request.retry_failed_only,
        )
        return job.snapshot()

    async def _run(self, job: _WarmJob):
        job.status = JobStatus.RUNNING
        req = job.request
        try:
            if req.retry_failed_only:
                job.run = await self.warmer.retry_failed(req.mode, req.skip_existing)
            else:
                job.run = await self.warmer.run(req.cities, req.mode, req.skip_existing)
            job.status = JobStatus.SUCCEEDED
            logger.info("Warm job succeeded | id=%s | %s", job.id, job.run.summary())
        except asyncio.CancelledError:
            job.status = JobStatus.CANCELLED
            logger.warning("Warm job cancelled | id=%s", job.id)
            raise
        except Exception as e:
            job.status = JobStatus.FAILED
            job.error = str(e)[:300]
            logger.error("Warm job failed | id=%s | %s", job.id, job.error)
        finally:
            job.finished_at = datetime.now(timezone.utc)
            if self._active is job:
                self._active = None

    def _prune(self):
        finished = [j for j in self._jobs.values() if j.finished_at is not None]
        for job in finished[:-MAX_FINISHED_JOBS]:
            del self._jobs[job.id]

    def get(self, job_id: str) -> WarmJobSnapshot | None:
        job = self._jobs.get(job_id)
        return job.snapshot() if job else None

    def list(self) -> list[WarmJobSnapshot]:
        return [j.snapshot() for j in self._jobs.values()]

    async def wait(self, job_id: str) -> WarmJobSnapshot | None:
        """Block until the job finishes. Returns its final snapshot."""
        job = self._jobs.get(job_id)
        if job is None:
            return None
        if job.task is not None:
            await asyncio.gather(job.task, return_exceptions=True)
        return job.snapshot()

    async def cancel(self, job_id: str) -> bool:
        """Cancel a queued or running job. False if unknown or already finished."""
        job = self._jobs.get(job_id)
        if job is None or job.task is None or job.task.done():
            return False
        job.task.cancel()
        await asyncio.gather(job.task, return_exceptions=True)
        if job.finished_at is None:
            # cancelled before the task body ever ran
            self._mark_cancelled(job)
        return True

    def _mark_cancelled(self, job: _WarmJob):
        job.status = JobStatus.CANCELLED
        job.finished_at = datetime.now(timezone.utc)
        if self._active is job:
            self._active = None

    # ═══════════════ SCHEDULE ═══════════════

    def start_schedule(self, interval_hours: float, request: WarmRequest | None = None):
        """Re-warm every ``interval_hours``. No-op when the interval is not positive."""
        if interval_hours <= 0 or self._schedule_task is not None:
            return
        self._schedule_task = asyncio.create_task(
            self._schedule_loop(interval_hours * 3600, request or WarmRequest(skip_existing=True)),
            name="warm-schedule",
        )
        logger.info("Warm schedule started | every %.1fh", interval_hours)

    async def _schedule_loop(self, interval_seconds: float, request: WarmRequest):
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                snapshot = self.start(request)
            except WarmRunInProgressError:
                logger.info("Scheduled warm skipped | a job is already running")
                continue
            await self.wait(snapshot.job_id)

    async def shutdown(self):
        """Cancel the schedule and any running job."""
        tasks = []
        if self._schedule_task is not None:
            self._schedule_task.cancel()
            tasks.append(self._schedule_task)
            self._schedule_task = None
        for job in self._jobs.values():
            if job.task is not None and not job.task.done():
                job.task.cancel()
                tasks.append(job.task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for job in self._jobs.values():
            if job.finished_at is None:
                self._mark_cancelled(job)
