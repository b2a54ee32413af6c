"""Sweep worker that re-submits jobs stuck in partial completion.

Runs one pass at startup (recovering jobs interrupted by a restart), then
polls at SWEEP_INTERVAL_SECONDS. Selected jobs are handed to the bounded
task runner; the sweep never awaits the orchestrator runs it submits.
"""

import asyncio
from datetime import timedelta
from typing import Callable

import structlog

from stylegen.core.config import Settings
from stylegen.core.timezone import utcnow
from stylegen.services.orchestration.orchestrator import VariantOrchestrator
from stylegen.workers.task_runner import BoundedTaskRunner

logger = structlog.get_logger(__name__)


async def sweep_once(
    uow_factory: Callable,
    orchestrator: VariantOrchestrator,
    runner: BoundedTaskRunner,
    settings: Settings,
) -> int:
    """Select stalled jobs and submit them for another full generation.

    Workflow:
    1. Lock at most as many pending jobs as the runner can still accept,
       older than SWEEP_MIN_AGE_SECONDS and within their sweep budget
       (FOR UPDATE SKIP LOCKED)
    2. Skip jobs whose run is still in flight in this process
    3. Submit run_full_generation to the runner
    4. Increment sweep_count only for accepted submissions, then commit

    Returns:
        Number of jobs submitted
    """
    capacity = min(settings.sweep_batch_size, runner.available_slots)
    if capacity == 0:
        logger.info("sweep.runner_full", pending=runner.pending_count)
        return 0

    created_before = utcnow() - timedelta(seconds=settings.sweep_min_age_seconds)
    submitted = 0

    async with await uow_factory() as uow:
        jobs = await uow.jobs.get_stalled_for_sweep(
            created_before=created_before,
            max_sweeps=settings.sweep_max_attempts,
            limit=capacity,
        )
        for job in jobs:
            job_id = job.id
            if runner.is_running(job_id):
                continue
            if not runner.submit(
                job_id, lambda job_id=job_id: orchestrator.run_full_generation(job_id)
            ):
                break

            await uow.jobs.increment_sweep_count(job)
            submitted += 1
            logger.info("sweep.enqueued", job_id=str(job_id), sweep_count=job.sweep_count)

    if jobs:
        logger.info("sweep.completed", found=len(jobs), submitted=submitted)
    return submitted


async def run_sweep_worker(
    uow_factory: Callable,
    orchestrator: VariantOrchestrator,
    runner: BoundedTaskRunner,
    settings: Settings,
) -> None:
    """Main sweep loop.

    Handles CancelledError for graceful shutdown; unexpected errors are
    logged and the loop backs off before the next pass.
    """
    logger.info(
        "sweep.started",
        interval=settings.sweep_interval_seconds,
        min_age_seconds=settings.sweep_min_age_seconds,
        max_attempts=settings.sweep_max_attempts,
    )

    try:
        while True:
            try:
                await sweep_once(uow_factory, orchestrator, runner, settings)

                # Wait for next sweep interval
                await asyncio.sleep(settings.sweep_interval_seconds)

            except asyncio.CancelledError:
                # Propagate cancellation for graceful shutdown
                raise

            except Exception as e:
                logger.error(
                    "sweep.error",
                    error_type=type(e).__name__,
                    error_message=str(e),
                    exc_info=True,
                )
                # Back off 5 seconds before retrying
                await asyncio.sleep(5)

    except asyncio.CancelledError:
        # Graceful shutdown
        logger.info("sweep.stopped")
        raise
