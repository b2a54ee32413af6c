"""VariantSpec repository for the generation backend.

Provides read access to the shared variant catalog.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from stylegen.models.variant_spec import VariantSpec


class VariantSpecRepository:
    """Repository for VariantSpec entities.

    The catalog row count is the canonical number of variants a job needs.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, spec: VariantSpec) -> VariantSpec:
        """Persist new catalog entry (used by seeding and tests)."""
        self.session.add(spec)
        await self.session.flush()
        return spec

    async def get_by_id(self, variant_id: int) -> VariantSpec | None:
        """Retrieve catalog entry by id.

        Args:
            variant_id: Catalog id

        Returns:
            VariantSpec if found, None otherwise
        """
        result = await self.session.execute(
            select(VariantSpec).where(VariantSpec.id == variant_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[VariantSpec]:
        """Retrieve the full catalog in ascending id order.

        Publish state is not filtered: every entry is required for completion.

        Returns:
            List of all catalog entries
        """
        result = await self.session.execute(
            select(VariantSpec).order_by(VariantSpec.id.asc())  # type: ignore[union-attr]
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        """Count catalog entries."""
        result = await self.session.execute(select(func.count(VariantSpec.id)))  # type: ignore[arg-type]
        return result.scalar() or 0
