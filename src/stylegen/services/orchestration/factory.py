"""Wiring of the orchestrator and its collaborators from settings."""

from typing import Callable

from stylegen.core.config import Settings
from stylegen.services.image_generation.replicate_client import ReplicateGenerator
from stylegen.services.notifications.sms_notifier import SmsNotifier
from stylegen.services.orchestration.orchestrator import VariantOrchestrator
from stylegen.services.orchestration.triggers import CompletionTriggers, DbCollectionLogger
from stylegen.services.storage.pinata_client import PinataPublisher
from stylegen.services.thumbnails.before_after import BeforeAfterComposer


def build_orchestrator(settings: Settings, uow_factory: Callable) -> VariantOrchestrator:
    """Create a VariantOrchestrator backed by Replicate, Pinata and Aligo."""
    generator = ReplicateGenerator(
        api_token=settings.replicate_api_token,
        model_version=settings.replicate_model_version,
        timeout_seconds=settings.generation_timeout_seconds,
    )
    publisher = PinataPublisher(
        jwt_token=settings.pinata_jwt,
        gateway_domain=settings.pinata_gateway,
        timeout_seconds=settings.publish_timeout_seconds,
    )
    notifier = SmsNotifier(
        uow_factory,
        user_id=settings.aligo_user_id,
        api_key=settings.aligo_api_key,
        sender=settings.aligo_sender,
        timeout_seconds=settings.notification_timeout_seconds,
    )
    composer = BeforeAfterComposer(uow_factory, publisher) if settings.compose_thumbnails else None

    triggers = CompletionTriggers(
        collection_logger=DbCollectionLogger(uow_factory),
        notifier=notifier,
        composer=composer,
        link_base_url=settings.frontend_url,
    )

    return VariantOrchestrator(
        uow_factory,
        generator=generator,
        publisher=publisher,
        triggers=triggers,
        max_rounds=settings.max_rounds,
        round_delay_seconds=settings.round_delay_seconds,
        rate_limit_cooldown_seconds=settings.rate_limit_cooldown_seconds,
        expected_variant_count=settings.expected_variant_count,
    )
