"""Repository layer tests for the stylegen backend.

Tests focus on the logic the orchestrator depends on:
- Result upserts keyed by (job_id, variant_id)
- No regression from complete
- Once-only pending -> complete job transition
- Collection log UPSERT behavior
- Sweep selection

Simple CRUD operations are not tested (trust SQLAlchemy).
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from stylegen.core.timezone import utcnow
from stylegen.models.job import Job, JobStatus
from stylegen.models.variant_result import VariantResult, VariantStatus


async def count_results(uow_factory, job_id) -> int:
    async with await uow_factory() as uow:
        result = await uow.session.execute(
            select(func.count(VariantResult.id)).where(VariantResult.job_id == job_id)
        )
        return result.scalar()


@pytest.mark.asyncio
async def test_upsert_twice_keeps_single_row_with_latest_outcome(uow_factory, catalog, job):
    """Two upserts with different outcomes leave exactly one row holding the latest one."""
    async with await uow_factory() as uow:
        first = await uow.variant_results.upsert_result(job.id, 3, failure_code="timeout")

    assert first.status == VariantStatus.FAIL
    assert first.failure_code == "timeout"
    assert first.attempts == 1

    async with await uow_factory() as uow:
        second = await uow.variant_results.upsert_result(
            job.id, 3, artifact_ref="bafy-3", artifact_url="https://gw/ipfs/bafy-3"
        )

    assert second.id == first.id, "Upsert must update the existing row in place"
    assert second.status == VariantStatus.COMPLETE
    assert second.artifact_ref == "bafy-3"
    assert second.failure_code is None
    assert second.attempts == 2
    assert await count_results(uow_factory, job.id) == 1


@pytest.mark.asyncio
async def test_failure_upsert_never_regresses_complete_row(uow_factory, catalog, job):
    """A late failure from a concurrent run must not overwrite a complete result."""
    async with await uow_factory() as uow:
        await uow.variant_results.upsert_result(
            job.id, 5, artifact_ref="bafy-5", artifact_url="https://gw/ipfs/bafy-5"
        )

    async with await uow_factory() as uow:
        after_failure = await uow.variant_results.upsert_result(
            job.id, 5, failure_code="provider_error"
        )

    assert after_failure.status == VariantStatus.COMPLETE
    assert after_failure.artifact_ref == "bafy-5"
    assert after_failure.failure_code is None
    assert after_failure.attempts == 1


@pytest.mark.asyncio
async def test_completed_variant_ids_only_counts_complete_rows(uow_factory, catalog, job):
    async with await uow_factory() as uow:
        await uow.variant_results.upsert_result(job.id, 1, artifact_ref="bafy-1")
        await uow.variant_results.upsert_result(job.id, 2, failure_code="timeout")
        await uow.variant_results.upsert_result(job.id, 4, artifact_ref="bafy-4")

    async with await uow_factory() as uow:
        completed = await uow.variant_results.completed_variant_ids(job.id)
        failing = await uow.variant_results.list_failing()

    assert completed == {1, 4}
    assert [(r.job_id, r.variant_id) for r in failing] == [(job.id, 2)]


@pytest.mark.asyncio
async def test_mark_complete_if_pending_succeeds_only_once(uow_factory, job):
    """Only the first caller performs the pending -> complete transition."""
    async with await uow_factory() as uow:
        first = await uow.jobs.mark_complete_if_pending(job.id)
    async with await uow_factory() as uow:
        second = await uow.jobs.mark_complete_if_pending(job.id)
        stored = await uow.jobs.get_by_id(job.id)

    assert first is True
    assert second is False
    assert stored.status == JobStatus.COMPLETE
    assert stored.completed_at is not None


@pytest.mark.asyncio
async def test_collection_log_upsert_updates_instead_of_duplicating(uow_factory, owner, job):
    async with await uow_factory() as uow:
        first = await uow.collection_logs.record_completion(job.id, owner.id)
    async with await uow_factory() as uow:
        second = await uow.collection_logs.record_completion(job.id, owner.id)

    assert second.id == first.id
    assert second.record_count == 2
    assert second.first_completed_at == first.first_completed_at


@pytest.mark.asyncio
async def test_generation_error_log_is_append_only(uow_factory, catalog, job):
    async with await uow_factory() as uow:
        await uow.generation_errors.record(job.id, 7, "timeout", "first")
        await uow.generation_errors.record(job.id, 7, "timeout", "x" * 5000)

    async with await uow_factory() as uow:
        entries = await uow.generation_errors.list_by_job(job.id)

    assert len(entries) == 2
    assert all(len(entry.error_text) <= 2000 for entry in entries)


@pytest.mark.asyncio
async def test_get_stalled_for_sweep_filters_by_age_status_and_budget(uow_factory, owner):
    old = utcnow() - timedelta(hours=2)
    async with await uow_factory() as uow:
        stalled = await uow.jobs.add(
            Job(owner_id=owner.id, source_artifact_ref="https://cdn/a.jpg", created_at=old)
        )
        await uow.jobs.add(
            Job(
                owner_id=owner.id,
                source_artifact_ref="https://cdn/b.jpg",
                created_at=old,
                status=JobStatus.COMPLETE,
            )
        )
        await uow.jobs.add(
            Job(
                owner_id=owner.id,
                source_artifact_ref="https://cdn/c.jpg",
                created_at=old,
                sweep_count=3,
            )
        )
        # Fresh upload still owned by its own run
        await uow.jobs.add(Job(owner_id=owner.id, source_artifact_ref="https://cdn/d.jpg"))

    async with await uow_factory() as uow:
        jobs = await uow.jobs.get_stalled_for_sweep(
            created_before=utcnow() - timedelta(minutes=10), max_sweeps=3
        )

    assert [j.id for j in jobs] == [stalled.id]
