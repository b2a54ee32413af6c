"""Job repository for the generation backend.

Provides data access methods for Job entities, including the conditional
pending -> complete transition that gates downstream triggers.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from stylegen.core.timezone import utcnow
from stylegen.models.job import Job, JobStatus


class JobRepository:
    """Repository for Job entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, job: Job) -> Job:
        """Persist new job to database.

        Args:
            job: Job entity to persist

        Returns:
            Persisted job with generated ID
        """
        self.session.add(job)
        await self.session.flush()
        return job

    async def get_by_id(self, job_id: UUID) -> Job | None:
        """Retrieve job by UUID.

        Args:
            job_id: Job's unique identifier

        Returns:
            Job if found, None otherwise
        """
        result = await self.session.execute(
            select(Job)
            .where(Job.id == job_id)  # type: ignore[arg-type]
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def mark_complete_if_pending(self, job_id: UUID) -> bool:
        """Atomically flip a job from pending to complete.

        This is the once-only gate for completion side effects: when several
        orchestrator runs detect completion of the same job concurrently,
        exactly one of them sees this update affect a row.

        Query explanation:
        - UPDATE jobs SET status = 'complete'
        - WHERE id = :job_id AND status = 'pending'

        Args:
            job_id: Job's unique identifier

        Returns:
            True if this call performed the transition, False if the job was
            already complete (or does not exist)
        """
        now = utcnow()
        result = await self.session.execute(
            update(Job)
            .where(Job.id == job_id)  # type: ignore[arg-type]
            .where(Job.status == JobStatus.PENDING)  # type: ignore[arg-type]
            .values(status=JobStatus.COMPLETE, completed_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def get_stalled_for_sweep(
        self, created_before: datetime, max_sweeps: int, limit: int = 20
    ) -> list[Job]:
        """Retrieve pending jobs eligible for a sweep re-run with row-level locking.

        Uses FOR UPDATE SKIP LOCKED so that concurrent sweepers receive
        non-overlapping sets of jobs.

        Query explanation:
        - WHERE status = 'pending': Job has not converged yet
        - AND created_at < :created_before: Leave fresh uploads to their own run
        - AND sweep_count < :max_sweeps: Stop re-running jobs that keep failing
        - ORDER BY created_at ASC: Process oldest first
        - FOR UPDATE SKIP LOCKED: Lock rows, skip already locked ones

        Args:
            created_before: Only jobs created before this instant are returned
            max_sweeps: Sweep budget per job
            limit: Maximum number of jobs to retrieve (default: 20)

        Returns:
            List of jobs locked for this sweeper
        """
        result = await self.session.execute(
            select(Job)
            .where(Job.status == JobStatus.PENDING)  # type: ignore[arg-type]
            .where(Job.created_at < created_before)  # type: ignore[arg-type]
            .where(Job.sweep_count < max_sweeps)  # type: ignore[arg-type]
            .order_by(Job.created_at.asc())  # type: ignore[attr-defined]
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return list(result.scalars().all())

    async def increment_sweep_count(self, job: Job) -> None:
        """Record that the sweep re-submitted this job.

        Args:
            job: Job entity to update
        """
        job.sweep_count += 1
        job.updated_at = utcnow()
        self.session.add(job)
        await self.session.flush()

    async def set_favorite(self, job: Job, variant_id: int) -> None:
        """Store the owner's favorite variant.

        Args:
            job: Job entity to update
            variant_id: Catalog id of the chosen variant
        """
        job.favorite_variant_id = variant_id
        job.updated_at = utcnow()
        self.session.add(job)
        await self.session.flush()
        await self.session.refresh(job)

    async def set_thumbnail_url(self, job_id: UUID, thumbnail_url: str) -> None:
        """Store the URL of the composed before/after thumbnail.

        Args:
            job_id: Job's unique identifier
            thumbnail_url: Retrievable URL of the published thumbnail

        Raises:
            ValueError: If thumbnail_url is empty
        """
        if not thumbnail_url:
            raise ValueError("thumbnail_url cannot be empty")

        await self.session.execute(
            update(Job)
            .where(Job.id == job_id)  # type: ignore[arg-type]
            .values(thumbnail_url=thumbnail_url, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
