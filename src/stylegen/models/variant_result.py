"""VariantResult entity - Persisted outcome of one (job, variant) pair."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from stylegen.core.timezone import utcnow


class VariantStatus(str, Enum):
    """Per-variant generation status."""

    PENDING = "pending"
    COMPLETE = "complete"
    FAIL = "fail"


class VariantResult(SQLModel, table=True):
    """VariantResult is the idempotency unit of the generation pipeline.

    Exactly one row exists per (job_id, variant_id). Retries update the row in
    place; a complete row is never turned back into a failure.
    """

    __tablename__ = "variant_results"  # type: ignore[assignment]
    __table_args__ = (UniqueConstraint("job_id", "variant_id", name="uq_variant_results_job_variant"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    job_id: UUID = Field(foreign_key="jobs.id", index=True)
    variant_id: int = Field(foreign_key="variant_specs.id")
    status: VariantStatus = Field(default=VariantStatus.PENDING, index=True)
    artifact_ref: Optional[str] = Field(default=None, max_length=255)
    artifact_url: Optional[str] = Field(default=None, max_length=1000)
    failure_code: Optional[str] = Field(default=None, max_length=50)
    attempts: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
