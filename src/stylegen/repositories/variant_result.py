"""VariantResult repository for the generation backend.

Provides the result store used by the orchestrator: single-statement upserts
keyed by the unique (job_id, variant_id) pair, which is the only concurrency
safety mechanism between orchestrator runs.
"""

from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stylegen.core.database import dialect_insert
from stylegen.core.timezone import utcnow
from stylegen.models.variant_result import VariantResult, VariantStatus


class VariantResultRepository:
    """Repository for VariantResult entities.

    Rows are never inserted twice for the same (job_id, variant_id): every
    write goes through INSERT ... ON CONFLICT DO UPDATE.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def upsert_result(
        self,
        job_id: UUID,
        variant_id: int,
        artifact_ref: str | None = None,
        artifact_url: str | None = None,
        failure_code: str | None = None,
    ) -> VariantResult:
        """Record the outcome of one generation attempt (UPSERT).

        With an artifact reference the row becomes complete. Without one it
        becomes fail, unless the existing row is already complete, in which
        case the row is left untouched (results never regress).

        Query explanation:
        - INSERT: First attempt for this pair creates the row
        - ON CONFLICT (job_id, variant_id): Pair already has a row
        - DO UPDATE: Overwrite outcome, bump attempts and updated_at
        - WHERE status != 'complete': Only applied to failure outcomes

        Args:
            job_id: Job the variant belongs to
            variant_id: Catalog id of the variant
            artifact_ref: Published artifact id, None for a failed attempt
            artifact_url: Retrievable URL of the published artifact
            failure_code: Failure category for a failed attempt

        Returns:
            The row as stored after the write
        """
        now = utcnow()
        table = VariantResult.__table__  # type: ignore[attr-defined]

        if artifact_ref:
            outcome = {
                "status": VariantStatus.COMPLETE,
                "artifact_ref": artifact_ref,
                "artifact_url": artifact_url,
                "failure_code": None,
            }
            guard = None
        else:
            outcome = {
                "status": VariantStatus.FAIL,
                "failure_code": failure_code,
            }
            guard = table.c.status != VariantStatus.COMPLETE

        stmt = dialect_insert(self.session, VariantResult).values(
            id=uuid4(),
            job_id=job_id,
            variant_id=variant_id,
            attempts=1,
            created_at=now,
            updated_at=now,
            **outcome,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["job_id", "variant_id"],
            set_={**outcome, "attempts": table.c.attempts + 1, "updated_at": now},
            where=guard,
        )
        await self.session.execute(stmt)
        await self.session.flush()

        stored = await self.get(job_id, variant_id)
        if stored is None:
            raise RuntimeError(f"Result for job {job_id} variant {variant_id} missing after upsert")
        return stored

    async def get(self, job_id: UUID, variant_id: int) -> VariantResult | None:
        """Retrieve the result row for a (job, variant) pair.

        Always reloads from the database so rows written by raw upserts are
        not served from the session identity map.

        Args:
            job_id: Job's unique identifier
            variant_id: Catalog id of the variant

        Returns:
            VariantResult if a row exists, None otherwise
        """
        result = await self.session.execute(
            select(VariantResult)
            .where(VariantResult.job_id == job_id)  # type: ignore[arg-type]
            .where(VariantResult.variant_id == variant_id)  # type: ignore[arg-type]
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_by_job(self, job_id: UUID) -> list[VariantResult]:
        """Retrieve all result rows of a job ordered by variant id.

        Args:
            job_id: Job's unique identifier

        Returns:
            List of results (at most one per variant)
        """
        result = await self.session.execute(
            select(VariantResult)
            .where(VariantResult.job_id == job_id)  # type: ignore[arg-type]
            .order_by(VariantResult.variant_id.asc())  # type: ignore[attr-defined]
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def completed_variant_ids(self, job_id: UUID) -> set[int]:
        """Retrieve the ids of variants already complete for a job.

        Args:
            job_id: Job's unique identifier

        Returns:
            Set of variant ids in complete status
        """
        result = await self.session.execute(
            select(VariantResult.variant_id)
            .where(VariantResult.job_id == job_id)  # type: ignore[arg-type]
            .where(VariantResult.status == VariantStatus.COMPLETE)  # type: ignore[arg-type]
        )
        return set(result.scalars().all())

    async def list_failing(self, limit: int = 100, offset: int = 0) -> list[VariantResult]:
        """Retrieve results in fail status for administrative inspection.

        Jobs stuck in partial completion are discovered through this query and
        re-triggered manually or by the sweep.

        Args:
            limit: Maximum number of rows to return (default: 100)
            offset: Number of rows to skip (default: 0)

        Returns:
            List of failing results ordered by last attempt (oldest first)
        """
        result = await self.session.execute(
            select(VariantResult)
            .where(VariantResult.status == VariantStatus.FAIL)  # type: ignore[arg-type]
            .order_by(VariantResult.updated_at.asc())  # type: ignore[attr-defined]
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())
