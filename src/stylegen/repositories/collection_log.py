"""CollectionLog repository for the generation backend."""

from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stylegen.core.database import dialect_insert
from stylegen.core.timezone import utcnow
from stylegen.models.collection_log import CollectionLog


class CollectionLogRepository:
    """Repository for CollectionLog entities.

    Provides UPSERT behavior keyed by job_id so repeated records never
    create a second entry.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def record_completion(self, job_id: UUID, owner_id: UUID) -> CollectionLog:
        """Create the collection entry for a job, or refresh it if it exists (UPSERT).

        Query explanation:
        - INSERT: First completion of the job creates the entry
        - ON CONFLICT (job_id): Entry already exists
        - DO UPDATE: Bump last_recorded_at and record_count only

        Args:
            job_id: Completed job
            owner_id: Owner of the job

        Returns:
            The stored collection entry
        """
        now = utcnow()
        table = CollectionLog.__table__  # type: ignore[attr-defined]

        stmt = dialect_insert(self.session, CollectionLog).values(
            id=uuid4(),
            job_id=job_id,
            owner_id=owner_id,
            first_completed_at=now,
            last_recorded_at=now,
            record_count=1,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["job_id"],
            set_={"last_recorded_at": now, "record_count": table.c.record_count + 1},
        )
        await self.session.execute(stmt)
        await self.session.flush()

        entry = await self.get_by_job(job_id)
        if entry is None:
            raise RuntimeError(f"Collection entry for job {job_id} missing after upsert")
        return entry

    async def get_by_job(self, job_id: UUID) -> CollectionLog | None:
        """Retrieve the collection entry of a job, None if it was never recorded."""
        result = await self.session.execute(
            select(CollectionLog)
            .where(CollectionLog.job_id == job_id)  # type: ignore[arg-type]
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
