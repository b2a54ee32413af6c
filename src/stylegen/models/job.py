"""Job entity - One uploaded source photo awaiting variant generation."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from stylegen.core.timezone import utcnow


class JobStatus(str, Enum):
    """Overall job status."""

    PENDING = "pending"
    COMPLETE = "complete"


class Job(SQLModel, table=True):
    """Job tracks one source artifact and its overall generation status.

    The orchestrator only ever moves a job from pending to complete, and it
    does so through a conditional update (see JobRepository.mark_complete_if_pending).
    """

    __tablename__ = "jobs"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    owner_id: UUID = Field(foreign_key="owners.id", index=True)
    source_artifact_ref: Optional[str] = Field(default=None, max_length=1000)
    status: JobStatus = Field(default=JobStatus.PENDING, index=True)
    favorite_variant_id: Optional[int] = Field(default=None)
    thumbnail_url: Optional[str] = Field(default=None, max_length=1000)
    sweep_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = Field(default=None)

    @property
    def is_complete(self) -> bool:
        return self.status == JobStatus.COMPLETE
