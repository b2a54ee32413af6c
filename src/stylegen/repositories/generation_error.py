"""GenerationErrorLog repository for the generation backend.

Append-only storage of failed variant attempts.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stylegen.models.generation_error import GenerationErrorLog


class GenerationErrorRepository:
    """Repository for GenerationErrorLog entities.

    Rows are never deduplicated: one row per failed attempt.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def record(
        self, job_id: UUID, variant_id: int, failure_kind: str, error_text: str
    ) -> GenerationErrorLog:
        """Append a failure record.

        Args:
            job_id: Job the failed variant belongs to
            variant_id: Catalog id of the failed variant
            failure_kind: Failure category
            error_text: Error description (truncated to 2000 characters)

        Returns:
            Persisted error log row
        """
        entry = GenerationErrorLog(
            job_id=job_id,
            variant_id=variant_id,
            failure_kind=failure_kind,
            error_text=error_text[:2000],  # Truncate to 2000 chars
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_by_job(self, job_id: UUID) -> list[GenerationErrorLog]:
        """Retrieve failure records of a job ordered by creation time (oldest first)."""
        result = await self.session.execute(
            select(GenerationErrorLog)
            .where(GenerationErrorLog.job_id == job_id)  # type: ignore[arg-type]
            .order_by(GenerationErrorLog.created_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())
