from __future__ import annotations

from typing import TYPE_CHECKING

from conclave_core.logging import get_logger

if TYPE_CHECKING:
    from conclave_runtime.plugin import Service
    from conclave_runtime.runtime import AgentRuntime

logger = get_logger("services")


class ServiceRegistry:
    """Holds at most one running instance per service type.

    Owned by a single runtime; nothing here is shared across runtimes.
    """

    def __init__(self, runtime: AgentRuntime) -> None:
        self._runtime = runtime
        self._services: dict[str, Service] = {}
        self._starting: set[str] = set()

    async def register(self, service_cls: type[Service]) -> None:
        """Start *service_cls* and store the instance under its type.

        A type already registered, or still starting from a concurrent
        registration, is skipped with a warning and its factory is never
        invoked.
        """
        service_type = getattr(service_cls, "service_type", None)
        if not service_type:
            return

        name = self._runtime.character.name
        if service_type in self._services or service_type in self._starting:
            logger.warning(
                "%s(%s) - Service %s is already registered. Skipping registration.",
                name,
                self._runtime.agent_id,
                service_type,
            )
            return

        logger.info(
            "%s(%s) - Registering service: %s",
            name,
            self._runtime.agent_id,
            service_type,
        )
        self._starting.add(service_type)
        try:
            instance = await service_cls.start(self._runtime)
        finally:
            self._starting.discard(service_type)

        self._services[service_type] = instance
        logger.info("Service %s registered successfully", service_type)

    def get(self, service_type: str) -> Service | None:
        instance = self._services.get(service_type)
        if instance is None:
            logger.error("Service %s not found", service_type)
            return None
        return instance

    def all(self) -> dict[str, Service]:
        return dict(self._services)

    def __contains__(self, service_type: object) -> bool:
        return service_type in self._services

    async def stop_all(self) -> None:
        """Stop every service in registration order.

        Best-effort: a failing ``stop()`` is logged and the remaining
        services are still stopped.
        """
        for service_type, service in list(self._services.items()):
            logger.info("Requesting service stop for %s", service_type)
            try:
                await service.stop()
            except Exception:
                logger.exception("Error stopping service %s", service_type)
        self._services.clear()
