"""Tests for the in-memory job runner."""
import asyncio

import pytest

from autoreel.models.job import JobStatus, JobType
from autoreel.workers.job_runner import JobRunner


@pytest.fixture
def runner():
    return JobRunner()


@pytest.mark.asyncio
async def test_job_completes_with_result(runner):
    async def handler(job, progress_callback, value):
        await progress_callback(50, "Halfway")
        return {"value": value}

    runner.register_handler(JobType.ANALYZE, handler)
    job = runner.create_job(JobType.ANALYZE)

    assert await runner.start_job(job.id, value=3)
    await runner.wait(job.id)

    assert job.status == JobStatus.COMPLETED
    assert job.progress == 100
    assert job.result == {"value": 3}
    assert job.started_at is not None and job.completed_at is not None
    assert not runner.is_job_running(job.id)


@pytest.mark.asyncio
async def test_failure_recorded_on_job(runner):
    async def handler(job, progress_callback):
        raise ValueError("bad clip")

    runner.register_handler(JobType.EXPORT, handler)
    job = runner.create_job(JobType.EXPORT)
    await runner.start_job(job.id)
    await runner.wait(job.id)

    assert job.status == JobStatus.FAILED
    assert job.message == "Failed: bad clip"
    assert "ValueError" in job.error


@pytest.mark.asyncio
async def test_progress_is_clamped(runner):
    seen = []

    async def handler(job, progress_callback):
        await progress_callback(150, "Too far")
        seen.append(job.progress)

    runner.register_handler(JobType.ANALYZE, handler)
    job = runner.create_job(JobType.ANALYZE)
    await runner.start_job(job.id)
    await runner.wait(job.id)
    assert seen == [100]


@pytest.mark.asyncio
async def test_unknown_job_or_handler(runner):
    assert not await runner.start_job("missing")
    job = runner.create_job(JobType.PREVIEW)
    assert not await runner.start_job(job.id)


@pytest.mark.asyncio
async def test_cancel_and_shutdown(runner):
    started = asyncio.Event()

    async def handler(job, progress_callback):
        started.set()
        await asyncio.sleep(60)

    runner.register_handler(JobType.ANALYZE, handler)
    first = runner.create_job(JobType.ANALYZE)
    second = runner.create_job(JobType.ANALYZE)
    await runner.start_job(first.id)
    await runner.start_job(second.id)
    await started.wait()

    assert await runner.cancel_job(first.id)
    await runner.wait(first.id)
    assert first.status == JobStatus.CANCELLED

    await runner.shutdown()
    assert second.status == JobStatus.CANCELLED
