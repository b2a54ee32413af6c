"""Owner entity - Account that submits source photos."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from stylegen.core.timezone import utcnow


class Owner(SQLModel, table=True):
    """Owner is the account a job belongs to and the target of completion notices."""

    __tablename__ = "owners"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    phone: Optional[str] = Field(default=None, max_length=20)
    display_name: Optional[str] = Field(default=None, max_length=100)
    created_at: datetime = Field(default_factory=utcnow)
