"""Variant generation orchestrator.

Drives one job from its source photo to a full set of variant results:

    Scanning -> Generating(variant) -> ... -> Converged | Exhausted

Each round starts from a fresh read of the result store, then walks the
missing variants sequentially in ascending catalog id. Per-variant failures
are converted into persisted state (a ``fail`` result plus an error log row)
and never propagate. Fatal errors (missing job, missing source photo, empty
catalog) propagate to the caller.

No database session is held open across generator or publisher calls: every
read and write uses its own short unit of work.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol
from uuid import UUID

import structlog

from stylegen.models.job import Job
from stylegen.models.variant_result import VariantResult
from stylegen.models.variant_spec import VariantSpec
from stylegen.services.exceptions import (
    EmptyCatalogError,
    FailureKind,
    JobNotFoundError,
    SourceArtifactMissingError,
    VariantFailure,
    VariantNotFoundError,
)
from stylegen.services.orchestration.completion import CompletionDetector, is_converged
from stylegen.services.orchestration.triggers import CompletionTriggers
from stylegen.services.storage.pinata_client import PublishedArtifact

logger = structlog.get_logger(__name__)


class Generator(Protocol):
    async def generate(
        self,
        source_artifact_ref: str,
        instructions: str,
        reference_sample_ref: Optional[str] = None,
    ) -> str | bytes: ...


class Publisher(Protocol):
    async def publish(self, artifact: str | bytes, name: str) -> PublishedArtifact: ...


class RunStatus(str, Enum):
    """Terminal state of one full-generation run."""

    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class GenerationOutcome:
    """Summary of a run_full_generation call."""

    job_id: UUID
    status: RunStatus
    rounds: int
    attempts: int
    completed: int
    total: int
    triggered: bool

    @property
    def converged(self) -> bool:
        return self.status == RunStatus.CONVERGED


@dataclass
class VariantAttempt:
    """Outcome of one generate/publish/upsert cycle."""

    result: VariantResult
    failure_kind: Optional[FailureKind] = None

    @property
    def succeeded(self) -> bool:
        return self.failure_kind is None


class VariantOrchestrator:
    """Bounded multi-round retry loop over the variant catalog of a job."""

    def __init__(
        self,
        uow_factory: Callable,
        generator: Generator,
        publisher: Publisher,
        triggers: CompletionTriggers,
        max_rounds: int = 5,
        round_delay_seconds: float = 2.0,
        rate_limit_cooldown_seconds: float = 10.0,
        expected_variant_count: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize orchestrator.

        Args:
            uow_factory: UnitOfWork factory; one unit of work per read or write
            generator: Image generation collaborator
            publisher: Artifact storage collaborator
            triggers: Side effects fired once on first completion
            max_rounds: Upper bound on passes over missing variants
            round_delay_seconds: Pause between rounds
            rate_limit_cooldown_seconds: Pause after a RATE_LIMITED failure
            expected_variant_count: Catalog size to validate against (logged only)
            sleep: Awaitable sleep, replaced in tests
        """
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")

        self.uow_factory = uow_factory
        self.generator = generator
        self.publisher = publisher
        self.triggers = triggers
        self.max_rounds = max_rounds
        self.round_delay_seconds = round_delay_seconds
        self.rate_limit_cooldown_seconds = rate_limit_cooldown_seconds
        self.expected_variant_count = expected_variant_count
        self.sleep = sleep
        self.detector = CompletionDetector(uow_factory)

    async def run_full_generation(self, job_id: UUID) -> GenerationOutcome:
        """Generate every missing variant of a job, in bounded rounds.

        Re-entry on an already complete job performs no generation and fires
        no triggers.

        Args:
            job_id: Job to process

        Returns:
            GenerationOutcome with status converged or exhausted

        Raises:
            JobNotFoundError: Job does not exist
            SourceArtifactMissingError: Job has no source photo
            EmptyCatalogError: Variant catalog is empty
        """
        start_time = time.time()
        job = await self._load_job(job_id)
        catalog = await self._load_catalog()
        catalog_ids = {spec.id for spec in catalog}
        total = len(catalog)

        logger.info(
            "job.generation.started",
            job_id=str(job_id),
            total_variants=total,
            max_rounds=self.max_rounds,
        )

        attempts = 0
        rounds = 0
        # Variants that failed with a non-retryable kind during this run
        skipped: set[int] = set()
        completed: set[int] = set()

        for round_number in range(1, self.max_rounds + 1):
            completed = await self.detector.completed_variants(job_id, catalog_ids)
            if is_converged(len(completed), total):
                break

            pending = [
                spec for spec in catalog if spec.id not in completed and spec.id not in skipped
            ]
            if not pending:
                logger.warning(
                    "job.generation.no_retryable_variants",
                    job_id=str(job_id),
                    round=round_number,
                    skipped_variants=sorted(skipped),
                )
                break

            rounds = round_number
            logger.info(
                "job.round.started",
                job_id=str(job_id),
                round=round_number,
                missing_variants=len(pending),
            )

            for index, spec in enumerate(pending):
                attempt = await self._attempt_variant(job, spec, round_number)
                attempts += 1
                if attempt.succeeded:
                    continue

                if attempt.failure_kind is not None and not attempt.failure_kind.retryable:
                    skipped.add(spec.id)
                if attempt.failure_kind == FailureKind.RATE_LIMITED and index < len(pending) - 1:
                    logger.info(
                        "job.rate_limit.cooldown",
                        job_id=str(job_id),
                        variant_id=spec.id,
                        cooldown_seconds=self.rate_limit_cooldown_seconds,
                    )
                    await self.sleep(self.rate_limit_cooldown_seconds)

            completed = await self.detector.completed_variants(job_id, catalog_ids)
            if is_converged(len(completed), total):
                break

            if round_number < self.max_rounds:
                await self.sleep(self.round_delay_seconds)

        duration = time.time() - start_time

        if is_converged(len(completed), total):
            triggered = await self._finalize(job, total)
            logger.info(
                "job.generation.converged",
                job_id=str(job_id),
                rounds=rounds,
                attempts=attempts,
                triggered=triggered,
                duration_seconds=duration,
            )
            return GenerationOutcome(
                job_id=job_id,
                status=RunStatus.CONVERGED,
                rounds=rounds,
                attempts=attempts,
                completed=len(completed),
                total=total,
                triggered=triggered,
            )

        logger.warning(
            "job.generation.exhausted",
            job_id=str(job_id),
            rounds=rounds,
            attempts=attempts,
            completed=len(completed),
            total=total,
            missing_variants=sorted(catalog_ids - completed),
            duration_seconds=duration,
        )
        return GenerationOutcome(
            job_id=job_id,
            status=RunStatus.EXHAUSTED,
            rounds=rounds,
            attempts=attempts,
            completed=len(completed),
            total=total,
            triggered=False,
        )

    async def run_single_variant(self, job_id: UUID, variant_id: int) -> VariantResult:
        """Perform exactly one generate/publish/upsert cycle for one variant.

        If the job becomes fully covered, the same once-only completion gate
        as run_full_generation applies.

        Raises:
            JobNotFoundError: Job does not exist
            SourceArtifactMissingError: Job has no source photo
            VariantNotFoundError: Variant is not part of the catalog
        """
        job = await self._load_job(job_id)

        async with await self.uow_factory() as uow:
            spec = await uow.variant_specs.get_by_id(variant_id)
            total = await uow.variant_specs.count()
        if spec is None:
            raise VariantNotFoundError(variant_id)

        logger.info("variant.retry.started", job_id=str(job_id), variant_id=variant_id)
        attempt = await self._attempt_variant(job, spec, round_number=None)

        if attempt.succeeded and await self.detector.is_complete(job_id, total):
            await self._finalize(job, total)

        return attempt.result

    async def _load_job(self, job_id: UUID) -> Job:
        async with await self.uow_factory() as uow:
            job = await uow.jobs.get_by_id(job_id)

        if job is None:
            raise JobNotFoundError(job_id)
        if not job.source_artifact_ref:
            raise SourceArtifactMissingError(job_id)
        return job

    async def _load_catalog(self) -> list[VariantSpec]:
        async with await self.uow_factory() as uow:
            catalog = await uow.variant_specs.list_all()

        if not catalog:
            raise EmptyCatalogError()

        if self.expected_variant_count is not None and len(catalog) != self.expected_variant_count:
            logger.warning(
                "catalog.size_mismatch",
                catalog_size=len(catalog),
                expected=self.expected_variant_count,
            )
        return catalog

    async def _attempt_variant(
        self, job: Job, spec: VariantSpec, round_number: Optional[int]
    ) -> VariantAttempt:
        """Run generate -> publish -> upsert for one variant.

        Generator and publisher failures are recorded as a fail result and an
        error log row. Exceptions the adapters did not classify are recorded
        as PROVIDER_ERROR. Persistence errors propagate.
        """
        try:
            output = await self.generator.generate(
                job.source_artifact_ref,  # type: ignore[arg-type]
                spec.instructions,
                spec.reference_sample_url,
            )
            published = await self.publisher.publish(
                output, name=f"job-{job.id}-variant-{spec.id}.jpg"
            )
        except VariantFailure as e:
            return await self._record_failure(job, spec, round_number, e.kind, e.detail)
        except Exception as e:
            return await self._record_failure(
                job, spec, round_number, FailureKind.PROVIDER_ERROR, str(e), exc_info=True
            )

        async with await self.uow_factory() as uow:
            result = await uow.variant_results.upsert_result(
                job.id, spec.id, artifact_ref=published.id, artifact_url=published.url
            )

        logger.info(
            "variant.generation.succeeded",
            job_id=str(job.id),
            variant_id=spec.id,
            round=round_number,
            artifact_ref=published.id,
            attempts=result.attempts,
        )
        return VariantAttempt(result=result)

    async def _record_failure(
        self,
        job: Job,
        spec: VariantSpec,
        round_number: Optional[int],
        kind: FailureKind,
        detail: str,
        exc_info: bool = False,
    ) -> VariantAttempt:
        """Persist a failed attempt as a fail row plus an error log row."""
        async with await self.uow_factory() as uow:
            result = await uow.variant_results.upsert_result(
                job.id, spec.id, failure_code=kind.value
            )
            await uow.generation_errors.record(job.id, spec.id, kind.value, detail)

        logger.warning(
            "variant.generation.failed",
            job_id=str(job.id),
            variant_id=spec.id,
            round=round_number,
            failure_kind=kind.value,
            retryable=kind.retryable,
            error_message=detail,
            attempts=result.attempts,
            exc_info=exc_info,
        )
        return VariantAttempt(result=result, failure_kind=kind)

    async def _finalize(self, job: Job, total: int) -> bool:
        """Flip the job to complete and fire triggers if this caller won the transition."""
        async with await self.uow_factory() as uow:
            transitioned = await uow.jobs.mark_complete_if_pending(job.id)
            current = await uow.jobs.get_by_id(job.id) if transitioned else None

        if not transitioned or current is None:
            logger.debug("job.completion.already_recorded", job_id=str(job.id))
            return False

        logger.info("job.completed", job_id=str(job.id), total_variants=total)
        await self.triggers.fire(current, total)
        return True
