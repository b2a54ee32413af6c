"""Background workers for async processing tasks."""

from stylegen.workers.sweep_worker import run_sweep_worker, sweep_once
from stylegen.workers.task_runner import BoundedTaskRunner

__all__ = [
    "BoundedTaskRunner",
    "run_sweep_worker",
    "sweep_once",
]
