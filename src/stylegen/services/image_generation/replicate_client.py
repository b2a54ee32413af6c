"""Replicate API client for variant generation with error classification."""

import asyncio
from typing import Any, Optional

import replicate
from replicate.exceptions import ReplicateError as ReplicateAPIError

from stylegen.services.exceptions import FailureKind, GenerationError

REFERENCE_SAMPLE_PREAMBLE = (
    "The first image is the customer's photo. "
    "The second image is a reference sample; use it only as a style reference.\n"
)


def classify_error(exception: Exception) -> GenerationError:
    """Classify exception into a failure kind.

    Args:
        exception: Original exception from Replicate SDK or network layer

    Returns:
        GenerationError carrying the classified FailureKind

    Classification rules:
        - Timeout errors → TIMEOUT
        - 429 (rate limit) → RATE_LIMITED
        - 5xx / service unavailable → PROVIDER_ERROR
        - 401/403 (authentication) → PROVIDER_ERROR (provider setup, not the input)
        - Content policy violations, 400/422 → INVALID_INPUT
        - Connection errors → PROVIDER_ERROR
        - Anything else → PROVIDER_ERROR
    """
    error_message = str(exception)
    error_message_lower = error_message.lower()

    # Check for timeout errors
    if isinstance(exception, (TimeoutError, asyncio.TimeoutError)) or "timeout" in error_message_lower:
        return GenerationError(FailureKind.TIMEOUT, f"Generation timed out: {error_message}")

    # Check for rate limiting
    if "429" in error_message or "rate limit" in error_message_lower:
        return GenerationError(FailureKind.RATE_LIMITED, f"Rate limit exceeded: {error_message}")

    # Check for service unavailability
    if (
        "500" in error_message
        or "502" in error_message
        or "503" in error_message
        or "service unavailable" in error_message_lower
    ):
        return GenerationError(FailureKind.PROVIDER_ERROR, f"Service unavailable: {error_message}")

    # Check for authentication issues
    if (
        "401" in error_message
        or "403" in error_message
        or "unauthorized" in error_message_lower
        or "forbidden" in error_message_lower
        or "authentication" in error_message_lower
        or "invalid api token" in error_message_lower
    ):
        return GenerationError(FailureKind.PROVIDER_ERROR, f"Authentication failed: {error_message}")

    # Check for content policy violations and rejected inputs
    if (
        "content policy" in error_message_lower
        or "nsfw" in error_message_lower
        or "safety" in error_message_lower
        or "sensitive" in error_message_lower
        or "400" in error_message
        or "422" in error_message
        or "invalid input" in error_message_lower
    ):
        return GenerationError(FailureKind.INVALID_INPUT, f"Input rejected: {error_message}")

    # Check for connection errors (network layer)
    if isinstance(exception, (ConnectionError, OSError)):
        return GenerationError(FailureKind.PROVIDER_ERROR, f"Connection error: {error_message}")

    # Default: provider-side failure, eligible for another round
    return GenerationError(FailureKind.PROVIDER_ERROR, f"Provider error: {error_message}")


def extract_output_url(output: Any) -> str:
    """Extract the image URL from a Replicate prediction output.

    The output format varies by model and SDK version: a plain URL string,
    a FileOutput object exposing ``url``, or a list of either.

    Raises:
        GenerationError: PROVIDER_ERROR if no URL can be found
    """
    if isinstance(output, list):
        if not output:
            raise GenerationError(FailureKind.PROVIDER_ERROR, "Replicate returned an empty output list")
        output = output[0]

    if isinstance(output, str) and output:
        return output

    url = getattr(output, "url", None)
    if url:
        return str(url)

    raise GenerationError(
        FailureKind.PROVIDER_ERROR, f"Unexpected output format from Replicate: {type(output)}"
    )


class ReplicateGenerator:
    """Generator adapter that derives a variant image from a source photo via Replicate."""

    def __init__(
        self,
        api_token: str,
        model_version: str = "google/nano-banana",
        timeout_seconds: float = 180.0,
    ):
        """Initialize Replicate generator.

        Args:
            api_token: Replicate API authentication token
            model_version: Image-editing model identifier (accepts image_input + prompt)
            timeout_seconds: Per-call timeout
        """
        self.api_token = api_token
        self.model_version = model_version
        self.timeout_seconds = timeout_seconds

    def build_input(
        self, source_artifact_ref: str, instructions: str, reference_sample_ref: Optional[str]
    ) -> dict[str, Any]:
        """Build the model input payload for one variant."""
        images = [source_artifact_ref]
        prompt = instructions
        if reference_sample_ref:
            images.append(reference_sample_ref)
            prompt = REFERENCE_SAMPLE_PREAMBLE + instructions

        return {"prompt": prompt, "image_input": images, "output_format": "jpg"}

    async def generate(
        self,
        source_artifact_ref: str,
        instructions: str,
        reference_sample_ref: Optional[str] = None,
    ) -> str:
        """Generate one variant image.

        Args:
            source_artifact_ref: URL of the customer's source photo
            instructions: Variant generation instructions
            reference_sample_ref: Optional URL of a reference sample image

        Returns:
            URL of the generated image on the Replicate CDN

        Raises:
            GenerationError: Classified failure (see classify_error)
        """
        if not self.api_token:
            raise GenerationError(FailureKind.PROVIDER_ERROR, "REPLICATE_API_TOKEN not configured")

        payload = self.build_input(source_artifact_ref, instructions, reference_sample_ref)
        client = replicate.Client(api_token=self.api_token)

        try:
            # Run in thread pool as SDK is synchronous
            output = await asyncio.wait_for(
                asyncio.to_thread(client.run, self.model_version, input=payload),
                timeout=self.timeout_seconds,
            )
        except (ReplicateAPIError, ConnectionError, OSError, asyncio.TimeoutError) as e:
            # Classify and re-raise with appropriate failure kind
            raise classify_error(e) from e
        except Exception as e:
            # Unexpected SDK errors still count as provider failures for this variant
            raise GenerationError(FailureKind.PROVIDER_ERROR, f"Unexpected error: {e}") from e

        return extract_output_url(output)
