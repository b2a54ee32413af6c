"""pytest fixtures for stylegen backend tests.

Provides:
- engine: Function-scoped async engine (SQLite file by default, PostgreSQL
  testcontainer with migrations applied when STYLEGEN_TEST_DB=postgres)
- session_factory / session / uow_factory: Database access for tests
- catalog, owner, job: Seeded rows for orchestrator scenarios
- Fakes for the generator, publisher, notifier and sleep collaborators
"""

import io
import os
import subprocess
from typing import AsyncGenerator, Callable, Optional

# Settings are loaded when stylegen.app is imported; keep tests out of production validation
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from PIL import Image as PILImage  # noqa: E402
from sqlalchemy import pool, text  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import stylegen.models  # noqa: E402, F401
from stylegen.core.database import create_session_factory  # noqa: E402
from stylegen.models.job import Job  # noqa: E402
from stylegen.models.owner import Owner  # noqa: E402
from stylegen.models.variant_spec import VariantSpec  # noqa: E402
from stylegen.services.exceptions import FailureKind, GenerationError  # noqa: E402
from stylegen.services.orchestration.orchestrator import VariantOrchestrator  # noqa: E402
from stylegen.services.orchestration.triggers import (  # noqa: E402
    CompletionTriggers,
    DbCollectionLogger,
)
from stylegen.services.storage.pinata_client import PublishedArtifact  # noqa: E402
from stylegen.uow import create_uow_factory  # noqa: E402

CATALOG_SIZE = 16
USE_POSTGRES = os.environ.get("STYLEGEN_TEST_DB") == "postgres"

# Child tables first so deletes never violate foreign keys
TABLES_IN_DELETE_ORDER = [
    "collection_logs",
    "generation_errors",
    "variant_results",
    "jobs",
    "variant_specs",
    "owners",
]


@pytest.fixture(scope="session")
def postgres_container():
    """Provide session-scoped PostgreSQL container with migrations applied.

    Only started when STYLEGEN_TEST_DB=postgres. Migrations are applied
    using subprocess to avoid asyncio event loop conflicts.
    """
    from testcontainers.postgres import PostgresContainer

    with PostgresContainer(
        image="postgres:17",
        username="test",
        password="test",
        dbname="test_stylegen",
    ) as container:
        db_url = container.get_connection_url(driver="psycopg")

        env = os.environ.copy()
        env["DATABASE_URL"] = db_url

        subprocess.run(
            ["alembic", "upgrade", "head"],
            check=True,
            capture_output=True,
            text=True,
            env=env,
        )

        yield container


@pytest.fixture(scope="session", autouse=True)
def utc_timezone():
    """Enforce UTC timezone for all tests."""
    os.environ["TZ"] = "UTC"
    yield


@pytest_asyncio.fixture(scope="function")
async def engine(request, tmp_path):
    """Provide an async engine with an empty schema for each test."""
    if USE_POSTGRES:
        container = request.getfixturevalue("postgres_container")
        db_engine = create_async_engine(
            container.get_connection_url(driver="psycopg"), poolclass=pool.NullPool
        )
        yield db_engine

        # Truncate all tables for test isolation
        async with db_engine.begin() as conn:
            for table in TABLES_IN_DELETE_ORDER:
                await conn.execute(text(f"DELETE FROM {table}"))
        await db_engine.dispose()
        return

    db_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'stylegen_test.db'}", poolclass=pool.NullPool
    )
    async with db_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield db_engine

    await db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture(scope="function")
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a function-scoped database session.

    Tests that exercise units of work should commit (or close) before the
    code under test opens its own sessions.
    """
    async with session_factory() as db_session:
        yield db_session
        await db_session.rollback()


@pytest.fixture
def uow_factory(session_factory):
    """Provide function-scoped UnitOfWork factory."""
    return create_uow_factory(session_factory)


def instructions_for(variant_id: int) -> str:
    return f"Hair design {variant_id}: restyle the hair, keep face and background unchanged"


def variant_id_of(instructions: str) -> int:
    return int(instructions.split(":", 1)[0].rsplit(" ", 1)[1])


@pytest_asyncio.fixture
async def catalog(uow_factory) -> list[VariantSpec]:
    """Seed the shared catalog with CATALOG_SIZE variants (ids 1..16)."""
    specs = []
    async with await uow_factory() as uow:
        for variant_id in range(1, CATALOG_SIZE + 1):
            specs.append(
                await uow.variant_specs.add(
                    VariantSpec(id=variant_id, instructions=instructions_for(variant_id))
                )
            )
    return specs


@pytest_asyncio.fixture
async def owner(uow_factory) -> Owner:
    async with await uow_factory() as uow:
        return await uow.owners.add(Owner(phone="01012345678", display_name="Test Owner"))


@pytest_asyncio.fixture
async def job(uow_factory, owner) -> Job:
    async with await uow_factory() as uow:
        return await uow.jobs.add(
            Job(owner_id=owner.id, source_artifact_ref="https://cdn.example.com/uploads/source.jpg")
        )


def make_image_bytes(color=(200, 120, 80), size=(64, 96)) -> bytes:
    """Create a small JPEG image for composer tests."""
    buffer = io.BytesIO()
    PILImage.new("RGB", size, color).save(buffer, format="JPEG")
    return buffer.getvalue()


class FakeGenerator:
    """Generator double.

    fail_when(variant_id, attempt_number) returns a FailureKind to fail that
    call, or None to succeed. attempt_number counts calls per variant from 1.
    """

    def __init__(self, fail_when: Optional[Callable[[int, int], Optional[FailureKind]]] = None):
        self.fail_when = fail_when or (lambda variant_id, attempt: None)
        self.calls: list[int] = []

    def calls_for(self, variant_id: int) -> int:
        return self.calls.count(variant_id)

    async def generate(self, source_artifact_ref, instructions, reference_sample_ref=None):
        variant_id = variant_id_of(instructions)
        self.calls.append(variant_id)
        kind = self.fail_when(variant_id, self.calls_for(variant_id))
        if kind is not None:
            raise GenerationError(kind, f"simulated failure for variant {variant_id}")
        return f"https://replicate.delivery/pbxt/{variant_id}/output.jpg"


class FakePublisher:
    """Publisher double that records published names and serves image bytes."""

    def __init__(self):
        self.published: list[str] = []
        self.fetched: list[str] = []

    async def publish(self, artifact, name, content_type="image/jpeg"):
        self.published.append(name)
        cid = f"bafy-{len(self.published)}"
        return PublishedArtifact(id=cid, url=f"https://gateway.example.com/ipfs/{cid}")

    async def fetch_bytes(self, url):
        self.fetched.append(url)
        return make_image_bytes()


class FakeNotifier:
    """Notifier double recording every notify call."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: list[tuple] = []

    async def notify(self, owner_id, event_kind, context):
        self.calls.append((owner_id, event_kind, context))
        if self.error is not None:
            raise self.error
        return True


class RecordingSleep:
    """Awaitable sleep that records requested delays without waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_orchestrator(uow_factory, publisher, notifier, sleep):
    """Build an orchestrator wired to the fakes; override any collaborator per test."""

    def _make(generator, composer=None, notifier_override=None, **kwargs) -> VariantOrchestrator:
        triggers = CompletionTriggers(
            collection_logger=DbCollectionLogger(uow_factory),
            notifier=notifier_override or notifier,
            composer=composer,
            link_base_url="https://app.example.com",
        )
        options = {
            "max_rounds": 5,
            "round_delay_seconds": 2.0,
            "rate_limit_cooldown_seconds": 10.0,
            "expected_variant_count": CATALOG_SIZE,
            "sleep": sleep,
        }
        options.update(kwargs)
        return VariantOrchestrator(
            uow_factory, generator=generator, publisher=publisher, triggers=triggers, **options
        )

    return _make
