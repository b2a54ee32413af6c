"""Job API endpoints.

This module implements the owner-facing endpoints:
- POST /api/jobs - Register an uploaded photo and start variant generation
- GET /api/jobs/{job_id} - Job status with per-variant results
- PUT /api/jobs/{job_id}/favorite - Choose the favorite variant of a job
"""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from stylegen.api.dependencies import get_orchestrator, get_task_runner, get_uow_factory
from stylegen.core.dependencies import get_uow
from stylegen.models.job import Job, JobStatus
from stylegen.models.variant_result import VariantResult, VariantStatus
from stylegen.uow import UnitOfWork

logger = structlog.get_logger()
router = APIRouter(prefix="/api/jobs", tags=["jobs"])


# Request/Response Models


class CreateJobRequest(BaseModel):
    """Request model for registering an uploaded source photo."""

    owner_id: UUID = Field(..., description="Owner account of the job")
    source_artifact_ref: str = Field(
        ...,
        description="Retrievable URL of the uploaded source photo",
        min_length=1,
        max_length=1000,
    )


class CreateJobResponse(BaseModel):
    """Response model for job creation."""

    job_id: UUID = Field(..., description="Identifier of the created job")
    accepted: bool = Field(
        ...,
        description="True if generation was scheduled, False if the runner was full",
    )


class VariantResultDTO(BaseModel):
    """Data Transfer Object for one variant result."""

    variant_id: int = Field(..., description="Catalog id of the variant")
    status: VariantStatus = Field(..., description="pending, complete or fail")
    artifact_ref: str | None = Field(default=None, description="Published artifact id")
    artifact_url: str | None = Field(default=None, description="Retrievable artifact URL")
    failure_code: str | None = Field(default=None, description="Failure kind of the last attempt")
    attempts: int = Field(..., description="Number of recorded attempts")
    updated_at: datetime = Field(..., description="Time of the last attempt (UTC)")

    @classmethod
    def from_model(cls, result: VariantResult) -> "VariantResultDTO":
        return cls(
            variant_id=result.variant_id,
            status=result.status,
            artifact_ref=result.artifact_ref,
            artifact_url=result.artifact_url,
            failure_code=result.failure_code,
            attempts=result.attempts,
            updated_at=result.updated_at,
        )


class JobResponse(BaseModel):
    """Response model for job status queries."""

    job_id: UUID
    owner_id: UUID
    status: JobStatus
    source_artifact_ref: str | None = None
    favorite_variant_id: int | None = None
    thumbnail_url: str | None = None
    total_variants: int = Field(..., description="Current catalog size")
    completed_variants: int = Field(..., description="Variants in complete status")
    results: list[VariantResultDTO]
    created_at: datetime
    completed_at: datetime | None = None


class FavoriteRequest(BaseModel):
    """Request model for choosing the favorite variant."""

    variant_id: int = Field(..., ge=1, description="Catalog id of a completed variant")


async def _job_response(uow: UnitOfWork, job: Job) -> JobResponse:
    results = await uow.variant_results.list_by_job(job.id)
    total = await uow.variant_specs.count()
    return JobResponse(
        job_id=job.id,
        owner_id=job.owner_id,
        status=job.status,
        source_artifact_ref=job.source_artifact_ref,
        favorite_variant_id=job.favorite_variant_id,
        thumbnail_url=job.thumbnail_url,
        total_variants=total,
        completed_variants=sum(1 for r in results if r.status == VariantStatus.COMPLETE),
        results=[VariantResultDTO.from_model(r) for r in results],
        created_at=job.created_at,
        completed_at=job.completed_at,
    )


# API Endpoints


@router.post("", response_model=CreateJobResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_job(
    request: CreateJobRequest,
    uow_factory=Depends(get_uow_factory),
    orchestrator=Depends(get_orchestrator),
    runner=Depends(get_task_runner),
) -> CreateJobResponse:
    """Register an uploaded photo and schedule full variant generation.

    The job row is committed before generation is scheduled, so the
    background run always sees it.

    Raises:
        HTTPException 404: Owner does not exist

    Example:
        POST /api/jobs
        {"owner_id": "6f1c...", "source_artifact_ref": "https://cdn.example.com/u/1.jpg"}

        Response 202:
        {"job_id": "0b7e...", "accepted": true}
    """
    async with await uow_factory() as uow:
        owner = await uow.owners.get_by_id(request.owner_id)
        if owner is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Owner not found")

        job = await uow.jobs.add(
            Job(owner_id=request.owner_id, source_artifact_ref=request.source_artifact_ref)
        )
        job_id = job.id

    accepted = runner.submit(job_id, lambda: orchestrator.run_full_generation(job_id))

    logger.info("job.created", job_id=str(job_id), owner_id=str(request.owner_id), accepted=accepted)
    return CreateJobResponse(job_id=job_id, accepted=accepted)


@router.get("/{job_id}", response_model=JobResponse, status_code=status.HTTP_200_OK)
async def get_job(job_id: UUID, uow: UnitOfWork = Depends(get_uow)) -> JobResponse:
    """Get job status and per-variant results.

    Raises:
        HTTPException 404: Job does not exist
    """
    job = await uow.jobs.get_by_id(job_id)
    if job is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return await _job_response(uow, job)


@router.put("/{job_id}/favorite", response_model=JobResponse, status_code=status.HTTP_200_OK)
async def set_favorite(
    job_id: UUID,
    request: FavoriteRequest,
    uow_factory=Depends(get_uow_factory),
) -> JobResponse:
    """Choose the favorite variant of a job.

    Raises:
        HTTPException 404: Job does not exist
        HTTPException 409: Variant has no complete result for this job
    """
    async with await uow_factory() as uow:
        job = await uow.jobs.get_by_id(job_id)
        if job is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

        result = await uow.variant_results.get(job_id, request.variant_id)
        if result is None or result.status != VariantStatus.COMPLETE:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Variant {request.variant_id} is not complete for this job",
            )

        await uow.jobs.set_favorite(job, request.variant_id)
        logger.info("job.favorite_set", job_id=str(job_id), variant_id=request.variant_id)
        return await _job_response(uow, job)
