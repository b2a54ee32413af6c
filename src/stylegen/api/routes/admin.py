"""Administrative API endpoints for jobs stuck in partial completion.

- POST /api/admin/jobs/{job_id}/regenerate - Schedule a full generation run
- POST /api/admin/jobs/{job_id}/variants/{variant_id}/retry - Retry one variant now
- GET /api/admin/failing-results - List variant results in fail status
"""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from stylegen.api.dependencies import get_orchestrator, get_task_runner, get_uow_factory
from stylegen.api.routes.jobs import VariantResultDTO
from stylegen.services.exceptions import (
    EmptyCatalogError,
    JobNotFoundError,
    OrchestrationError,
    SourceArtifactMissingError,
    VariantNotFoundError,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/api/admin", tags=["admin"])


# Request/Response Models


class RegenerateResponse(BaseModel):
    """Response model for scheduling a full regeneration."""

    job_id: UUID
    accepted: bool = Field(
        ...,
        description="False if a run for this job is already in flight or the runner is full",
    )


class FailingResultDTO(BaseModel):
    """One variant result in fail status."""

    job_id: UUID
    variant_id: int
    failure_code: str | None = None
    attempts: int
    updated_at: datetime


class FailingResultsResponse(BaseModel):
    """Response model for the failing results listing."""

    results: list[FailingResultDTO]
    offset: int
    limit: int


def orchestration_http_error(e: OrchestrationError) -> HTTPException:
    """Map a fatal orchestration error to an HTTP error."""
    if isinstance(e, (JobNotFoundError, VariantNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, (SourceArtifactMissingError, EmptyCatalogError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


# API Endpoints


@router.post(
    "/jobs/{job_id}/regenerate",
    response_model=RegenerateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def regenerate_job(
    job_id: UUID,
    uow_factory=Depends(get_uow_factory),
    orchestrator=Depends(get_orchestrator),
    runner=Depends(get_task_runner),
) -> RegenerateResponse:
    """Schedule a full generation run for a job.

    Already complete variants are not regenerated; a complete job is a no-op.

    Raises:
        HTTPException 404: Job does not exist
    """
    async with await uow_factory() as uow:
        job = await uow.jobs.get_by_id(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

    accepted = runner.submit(job_id, lambda: orchestrator.run_full_generation(job_id))
    logger.info("admin.regenerate_requested", job_id=str(job_id), accepted=accepted)
    return RegenerateResponse(job_id=job_id, accepted=accepted)


@router.post(
    "/jobs/{job_id}/variants/{variant_id}/retry",
    response_model=VariantResultDTO,
    status_code=status.HTTP_200_OK,
)
async def retry_variant(
    job_id: UUID,
    variant_id: int,
    orchestrator=Depends(get_orchestrator),
) -> VariantResultDTO:
    """Run one generate/publish/upsert cycle for a single variant and return its row.

    Raises:
        HTTPException 404: Job or variant does not exist
        HTTPException 409: Job has no source photo
    """
    try:
        result = await orchestrator.run_single_variant(job_id, variant_id)
    except OrchestrationError as e:
        logger.warning(
            "admin.retry_rejected",
            job_id=str(job_id),
            variant_id=variant_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise orchestration_http_error(e) from e

    logger.info(
        "admin.retry_completed",
        job_id=str(job_id),
        variant_id=variant_id,
        status=result.status.value,
    )
    return VariantResultDTO.from_model(result)


@router.get(
    "/failing-results", response_model=FailingResultsResponse, status_code=status.HTTP_200_OK
)
async def list_failing_results(
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    uow_factory=Depends(get_uow_factory),
) -> FailingResultsResponse:
    """List variant results in fail status, oldest attempt first."""
    async with await uow_factory() as uow:
        rows = await uow.variant_results.list_failing(limit=limit, offset=offset)

    return FailingResultsResponse(
        results=[
            FailingResultDTO(
                job_id=r.job_id,
                variant_id=r.variant_id,
                failure_code=r.failure_code,
                attempts=r.attempts,
                updated_at=r.updated_at,
            )
            for r in rows
        ],
        offset=offset,
        limit=limit,
    )
