"""FastAPI dependencies for accessing application-scoped services.

Everything here is created once in the application lifespan and stored on
app.state; tests replace app.state entries with fakes.
"""

from typing import Callable

from fastapi import Request

from stylegen.services.orchestration.orchestrator import VariantOrchestrator
from stylegen.uow import UnitOfWork
from stylegen.workers.task_runner import BoundedTaskRunner


def get_uow_factory(request: Request) -> Callable[[], UnitOfWork]:
    """Get UnitOfWork factory from app state.

    Example:
        >>> @router.get("/endpoint")
        >>> async def endpoint(uow_factory=Depends(get_uow_factory)):
        ...     async with await uow_factory() as uow:
        ...         await uow.jobs.get_by_id(job_id)
    """
    return request.app.state.uow_factory


def get_orchestrator(request: Request) -> VariantOrchestrator:
    """Get the variant orchestrator from app state."""
    return request.app.state.orchestrator


def get_task_runner(request: Request) -> BoundedTaskRunner:
    """Get the bounded task runner from app state."""
    return request.app.state.task_runner
