"""Background job runner using asyncio."""
import asyncio
import logging
import traceback
from typing import Callable, Dict, Optional

from autoreel.models.job import Job, JobStatus, JobType, _utcnow

logger = logging.getLogger(__name__)


class JobRunner:
    """Async background job runner with an in-memory job table."""

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._running_jobs: Dict[str, asyncio.Task] = {}
        self._job_handlers: Dict[JobType, Callable] = {}

    def register_handler(self, job_type: JobType, handler: Callable):
        """Register a handler for a job type."""
        self._job_handlers[JobType(job_type)] = handler

    def create_job(self, job_type: JobType) -> Job:
        job = Job(job_type=JobType(job_type))
        self._jobs[job.id] = job
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    async def start_job(
        self,
        job_id: str,
        **kwargs
    ) -> bool:
        """
        Start a background job.

        Args:
            job_id: ID of a job created with create_job
            **kwargs: Arguments to pass to the job handler

        Returns:
            True if job started successfully
        """
        job = self._jobs.get(job_id)
        if not job:
            logger.error(f"Job {job_id} not found")
            return False

        if job_id in self._running_jobs:
            logger.warning(f"Job {job_id} is already running")
            return False

        handler = self._job_handlers.get(job.job_type)
        if not handler:
            logger.error(f"No handler registered for job type: {job.job_type.value}")
            return False

        task = asyncio.create_task(
            self._run_job(job, handler, **kwargs)
        )
        self._running_jobs[job_id] = task

        return True

    async def _run_job(
        self,
        job: Job,
        handler: Callable,
        **kwargs
    ):
        """Run a job with error handling and status updates."""
        try:
            job.status = JobStatus.RUNNING
            job.started_at = _utcnow()
            job.message = "Starting..."

            async def update_progress(progress: float, message: str = None):
                job.progress = min(100, max(0, progress))
                if message:
                    job.message = message

            result = await handler(
                job=job,
                progress_callback=update_progress,
                **kwargs
            )

            job.status = JobStatus.COMPLETED
            job.progress = 100
            job.message = "Completed successfully"
            job.completed_at = _utcnow()
            job.result = result

            logger.info(f"Job {job.id} completed successfully")

        except asyncio.CancelledError:
            job.status = JobStatus.CANCELLED
            job.message = "Job cancelled"
            job.completed_at = _utcnow()
            logger.info(f"Job {job.id} was cancelled")

        except Exception as e:
            error_msg = str(e)
            error_trace = traceback.format_exc()
            logger.error(f"Job {job.id} failed: {error_msg}\n{error_trace}")

            job.status = JobStatus.FAILED
            job.message = f"Failed: {error_msg}"
            job.error = error_trace
            job.completed_at = _utcnow()

        finally:
            self._running_jobs.pop(job.id, None)

    async def wait(self, job_id: str):
        """Wait for a running job to finish."""
        task = self._running_jobs.get(job_id)
        if task:
            await asyncio.gather(task, return_exceptions=True)

    async def cancel_job(self, job_id: str) -> bool:
        """Cancel a running job."""
        task = self._running_jobs.get(job_id)
        if task:
            task.cancel()
            return True
        return False

    def is_job_running(self, job_id: str) -> bool:
        """Check if a job is currently running."""
        return job_id in self._running_jobs

    async def shutdown(self):
        """Cancel all running jobs."""
        for task in self._running_jobs.values():
            task.cancel()

        if self._running_jobs:
            await asyncio.gather(
                *self._running_jobs.values(),
                return_exceptions=True
            )

        self._running_jobs.clear()


# Global job runner instance
job_runner = JobRunner()
