"""Repository layer for the generation backend.

Provides data access abstractions for all domain entities.
No base classes - each repository is self-contained.
"""

from stylegen.repositories.collection_log import CollectionLogRepository
from stylegen.repositories.generation_error import GenerationErrorRepository
from stylegen.repositories.job import JobRepository
from stylegen.repositories.owner import OwnerRepository
from stylegen.repositories.variant_result import VariantResultRepository
from stylegen.repositories.variant_spec import VariantSpecRepository

__all__ = [
    "OwnerRepository",
    "JobRepository",
    "VariantSpecRepository",
    "VariantResultRepository",
    "GenerationErrorRepository",
    "CollectionLogRepository",
]
