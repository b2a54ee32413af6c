"""Completion detection for variant generation jobs."""

from typing import Callable, Optional
from uuid import UUID


def is_converged(completed_count: int, total: int) -> bool:
    """A job is converged when every catalog variant has a complete result.

    An empty catalog never converges.
    """
    return total > 0 and completed_count == total


class CompletionDetector:
    """Reads a fresh snapshot of a job's results to decide completion."""

    def __init__(self, uow_factory: Callable):
        self.uow_factory = uow_factory

    async def is_complete(self, job_id: UUID, total_variants: Optional[int] = None) -> bool:
        """Check whether all variants of a job are complete.

        Args:
            job_id: Job to check
            total_variants: Catalog size; counted from the catalog when omitted

        Returns:
            True if the number of complete results equals the catalog size
        """
        async with await self.uow_factory() as uow:
            if total_variants is None:
                total_variants = await uow.variant_specs.count()
            completed = await uow.variant_results.completed_variant_ids(job_id)

        return is_converged(len(completed), total_variants)

    async def completed_variants(self, job_id: UUID, catalog_ids: set[int]) -> set[int]:
        """Return the catalog variant ids that already have a complete result.

        Results for ids outside the catalog are ignored.
        """
        async with await self.uow_factory() as uow:
            completed = await uow.variant_results.completed_variant_ids(job_id)
        return completed & catalog_ids
