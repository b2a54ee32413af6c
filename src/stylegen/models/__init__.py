"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support.
"""

from stylegen.models.collection_log import CollectionLog
from stylegen.models.generation_error import GenerationErrorLog
from stylegen.models.job import Job, JobStatus
from stylegen.models.owner import Owner
from stylegen.models.variant_result import VariantResult, VariantStatus
from stylegen.models.variant_spec import VariantSpec

__all__ = [
    "Owner",
    "Job",
    "JobStatus",
    "VariantSpec",
    "VariantResult",
    "VariantStatus",
    "GenerationErrorLog",
    "CollectionLog",
]
