from __future__ import annotations

from typing import TYPE_CHECKING

from conclave_core.logging import get_logger

if TYPE_CHECKING:
    from conclave_runtime.plugin import TaskWorker

logger = get_logger("tasks")


class TaskWorkerRegistry:
    """Named background-task definitions. Later registrations win."""

    def __init__(self) -> None:
        self._workers: dict[str, TaskWorker] = {}

    def register(self, worker: TaskWorker) -> None:
        if worker.name in self._workers:
            logger.warning(
                "Task definition %s already registered. Will be overwritten.",
                worker.name,
            )
        self._workers[worker.name] = worker

    def get(self, name: str) -> TaskWorker | None:
        return self._workers.get(name)

    def names(self) -> list[str]:
        return list(self._workers)
