"""CollectionLog entity - Entry created when a job first reaches completion."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from stylegen.core.timezone import utcnow


class CollectionLog(SQLModel, table=True):
    """CollectionLog is unique per job; repeated records update it in place."""

    __tablename__ = "collection_logs"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    job_id: UUID = Field(foreign_key="jobs.id", unique=True)
    owner_id: UUID = Field(foreign_key="owners.id", index=True)
    first_completed_at: datetime = Field(default_factory=utcnow)
    last_recorded_at: datetime = Field(default_factory=utcnow)
    record_count: int = Field(default=1, ge=1)
