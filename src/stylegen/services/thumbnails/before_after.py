"""Before/after thumbnail composition for completed jobs."""

import io
from typing import Callable

import structlog
from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from stylegen.models.job import Job
from stylegen.models.variant_result import VariantStatus
from stylegen.services.exceptions import FailureKind, PublishError
from stylegen.services.storage.pinata_client import PinataPublisher

logger = structlog.get_logger(__name__)

PANEL_SIZE = (400, 400)
BACKGROUND = (255, 255, 255)


def compose_side_by_side(before: bytes, after: bytes, panel_size=PANEL_SIZE) -> bytes:
    """Place two images side by side, each fitted into its own panel.

    Returns:
        JPEG bytes of a (2 * panel width) x panel height canvas

    Raises:
        ValueError: If either input is not a readable image
    """
    width, height = panel_size
    canvas = PILImage.new("RGB", (width * 2, height), BACKGROUND)

    for index, payload in enumerate((before, after)):
        try:
            img = PILImage.open(io.BytesIO(payload))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ValueError(f"Invalid image file: {e}") from e
        if img.mode != "RGB":
            img = img.convert("RGB")
        img.thumbnail(panel_size, PILImage.LANCZOS)

        # Center inside the panel
        left = index * width + (width - img.width) // 2
        top = (height - img.height) // 2
        canvas.paste(img, (left, top))

    buffer = io.BytesIO()
    canvas.save(buffer, format="JPEG", quality=85)
    return buffer.getvalue()


class BeforeAfterComposer:
    """Builds and publishes the before/after thumbnail of a completed job."""

    def __init__(self, uow_factory: Callable, publisher: PinataPublisher):
        self.uow_factory = uow_factory
        self.publisher = publisher

    async def compose(self, job: Job) -> str | None:
        """Compose the thumbnail and store its URL on the job.

        The "after" image is the owner's favorite variant when it is complete,
        otherwise the lowest-id complete variant.

        Returns:
            Published thumbnail URL, or None if the job has nothing to show
        """
        if not job.source_artifact_ref:
            logger.info("thumbnail.skipped", job_id=str(job.id), reason="no_source")
            return None

        async with await self.uow_factory() as uow:
            results = await uow.variant_results.list_by_job(job.id)

        completed = [r for r in results if r.status == VariantStatus.COMPLETE and r.artifact_url]
        if not completed:
            logger.info("thumbnail.skipped", job_id=str(job.id), reason="no_complete_variant")
            return None

        chosen = next(
            (r for r in completed if r.variant_id == job.favorite_variant_id), completed[0]
        )

        before = await self.publisher.fetch_bytes(job.source_artifact_ref)
        after = await self.publisher.fetch_bytes(chosen.artifact_url)  # type: ignore[arg-type]

        try:
            image_bytes = compose_side_by_side(before, after)
        except ValueError as e:
            raise PublishError(FailureKind.INVALID_INPUT, str(e)) from e

        published = await self.publisher.publish(image_bytes, name=f"job-{job.id}-before-after.jpg")

        async with await self.uow_factory() as uow:
            await uow.jobs.set_thumbnail_url(job.id, published.url)

        logger.info(
            "thumbnail.composed",
            job_id=str(job.id),
            variant_id=chosen.variant_id,
            thumbnail_url=published.url,
        )
        return published.url
