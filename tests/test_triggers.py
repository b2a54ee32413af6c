"""Completion trigger tests."""

import pytest

from stylegen.services.orchestration.triggers import CompletionTriggers, DbCollectionLogger


class RecordingCollectionLogger:
    def __init__(self, order, error=None):
        self.order = order
        self.error = error

    async def record_first_completion(self, job_id, owner_id):
        self.order.append("collection_log")
        if self.error:
            raise self.error


class RecordingComposer:
    def __init__(self, order):
        self.order = order

    async def compose(self, job):
        self.order.append("thumbnail")
        return "https://gw/ipfs/thumb"


class RecordingNotifier:
    def __init__(self, order):
        self.order = order
        self.context = None

    async def notify(self, owner_id, event_kind, context):
        self.order.append("notification")
        self.context = context
        return True


@pytest.mark.asyncio
async def test_triggers_run_in_order(job):
    order = []
    notifier = RecordingNotifier(order)
    triggers = CompletionTriggers(
        RecordingCollectionLogger(order),
        notifier,
        composer=RecordingComposer(order),
        link_base_url="https://app.example.com/",
    )

    await triggers.fire(job, variant_count=16)

    assert order == ["collection_log", "thumbnail", "notification"]
    assert notifier.context == {
        "variant_count": 16,
        "link": f"https://app.example.com/jobs/{job.id}",
    }


@pytest.mark.asyncio
async def test_failing_trigger_does_not_block_the_rest(job):
    order = []
    triggers = CompletionTriggers(
        RecordingCollectionLogger(order, error=RuntimeError("db down")),
        RecordingNotifier(order),
    )

    await triggers.fire(job, variant_count=16)

    assert order == ["collection_log", "notification"]


@pytest.mark.asyncio
async def test_db_collection_logger_is_idempotent(uow_factory, owner, job):
    collection_logger = DbCollectionLogger(uow_factory)

    await collection_logger.record_first_completion(job.id, owner.id)
    entry = await collection_logger.record_first_completion(job.id, owner.id)

    assert entry.record_count == 2
    async with await uow_factory() as uow:
        stored = await uow.collection_logs.get_by_job(job.id)
    assert stored.id == entry.id
