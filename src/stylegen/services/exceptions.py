"""Service error hierarchy for variant generation.

This module defines the exception hierarchy for service-level errors:
- FailureKind: Closed set of failure categories reported by external collaborators
- VariantFailure: Base for per-variant failures (generation and publishing)
- OrchestrationError: Base for fatal, non-retriable errors of an orchestrator run
"""

from enum import Enum
from uuid import UUID


class FailureKind(str, Enum):
    """Failure categories reported at the generator/publisher boundary."""

    RATE_LIMITED = "rate_limited"
    INVALID_INPUT = "invalid_input"
    PROVIDER_ERROR = "provider_error"
    TIMEOUT = "timeout"
    STORAGE_ERROR = "storage_error"

    @property
    def retryable(self) -> bool:
        """Whether repeating the same call can be expected to succeed."""
        return self is not FailureKind.INVALID_INPUT


class ServiceError(Exception):
    """Base exception for all service errors."""

    pass


class VariantFailure(ServiceError):
    """Failure of one generation or publish call for a single variant.

    These are converted into persisted state by the orchestrator and never
    propagate to its caller.
    """

    def __init__(self, kind: FailureKind, detail: str):
        super().__init__(f"{kind.value}: {detail}")
        self.kind = kind
        self.detail = detail

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


class GenerationError(VariantFailure):
    """Image generation provider failed to produce a variant."""

    pass


class PublishError(VariantFailure):
    """Artifact storage failed to persist a produced variant."""

    pass


class NotificationError(ServiceError):
    """Notification delivery failed (logged by callers, never propagated)."""

    pass


# Fatal orchestration errors
class OrchestrationError(ServiceError):
    """Base exception for fatal, non-retriable orchestrator errors."""

    pass


class JobNotFoundError(OrchestrationError):
    """Job does not exist."""

    def __init__(self, job_id: UUID):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class SourceArtifactMissingError(OrchestrationError):
    """Job exists but has no source artifact to derive variants from."""

    def __init__(self, job_id: UUID):
        super().__init__(f"Job {job_id} has no source artifact")
        self.job_id = job_id


class VariantNotFoundError(OrchestrationError):
    """Variant id is not part of the catalog."""

    def __init__(self, variant_id: int):
        super().__init__(f"Variant {variant_id} not found in catalog")
        self.variant_id = variant_id


class EmptyCatalogError(OrchestrationError):
    """Variant catalog has no entries, so no job can ever converge."""

    def __init__(self):
        super().__init__("Variant catalog is empty")
