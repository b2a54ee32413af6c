"""GenerationErrorLog entity - Append-only record of failed variant attempts."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel

from stylegen.core.timezone import utcnow


class GenerationErrorLog(SQLModel, table=True):
    """GenerationErrorLog keeps one row per failed attempt for diagnostics and alerting."""

    __tablename__ = "generation_errors"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    job_id: UUID = Field(foreign_key="jobs.id", index=True)
    variant_id: int
    failure_kind: str = Field(max_length=50)
    error_text: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, index=True)
