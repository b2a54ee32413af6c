"""Downstream side effects fired once when a job first becomes complete.

Each trigger runs in isolation: a failing trigger is logged and swallowed so
the remaining triggers still run and the job stays complete.
"""

from typing import Any, Callable, Optional, Protocol
from uuid import UUID

import structlog

from stylegen.models.job import Job

logger = structlog.get_logger(__name__)


class CollectionLogger(Protocol):
    async def record_first_completion(self, job_id: UUID, owner_id: UUID) -> Any: ...


class Notifier(Protocol):
    async def notify(self, owner_id: UUID, event_kind: str, context: dict[str, Any]) -> bool: ...


class ThumbnailComposer(Protocol):
    async def compose(self, job: Job) -> Optional[str]: ...


class DbCollectionLogger:
    """Collection logger backed by the collection_logs table."""

    def __init__(self, uow_factory: Callable):
        self.uow_factory = uow_factory

    async def record_first_completion(self, job_id: UUID, owner_id: UUID):
        async with await self.uow_factory() as uow:
            entry = await uow.collection_logs.record_completion(job_id, owner_id)

        logger.info(
            "collection_log.recorded",
            job_id=str(job_id),
            owner_id=str(owner_id),
            record_count=entry.record_count,
        )
        return entry


class CompletionTriggers:
    """Ordered set of completion side effects.

    Order: collection log entry, optional before/after thumbnail, owner notification.
    """

    def __init__(
        self,
        collection_logger: CollectionLogger,
        notifier: Notifier,
        composer: Optional[ThumbnailComposer] = None,
        link_base_url: str = "",
    ):
        self.collection_logger = collection_logger
        self.notifier = notifier
        self.composer = composer
        self.link_base_url = link_base_url.rstrip("/")

    async def fire(self, job: Job, variant_count: int) -> None:
        """Run every trigger for a job that has just transitioned to complete.

        Args:
            job: The completed job
            variant_count: Number of variants produced
        """
        await self._run(
            "collection_log",
            job,
            lambda: self.collection_logger.record_first_completion(job.id, job.owner_id),
        )

        if self.composer is not None:
            composer = self.composer
            await self._run("thumbnail", job, lambda: composer.compose(job))

        context = {
            "variant_count": variant_count,
            "link": f"{self.link_base_url}/jobs/{job.id}",
        }
        await self._run(
            "notification",
            job,
            lambda: self.notifier.notify(job.owner_id, "generation_complete", context),
        )

    async def _run(self, name: str, job: Job, call: Callable) -> None:
        try:
            await call()
        except Exception as e:
            logger.error(
                "trigger.failed",
                trigger=name,
                job_id=str(job.id),
                error=str(e),
                error_type=type(e).__name__,
            )
