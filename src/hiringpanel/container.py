"""Dependency injection container for the hiring panel."""

from __future__ import annotations

from dependency_injector import containers, providers

from .core import CapacityConfig, CapacityStore, InterviewLifecycle, LifecycleConfig, MatchingEngine
from .service import HiringService, ServiceConfig
from .store import MemoryStore
from .transport import ScriptedTransport


class HiringContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    store = providers.Singleton(MemoryStore)
    transport = providers.Singleton(ScriptedTransport)

    capacity = providers.Singleton(CapacityStore, store=store)
    matching = providers.Singleton(MatchingEngine, capacity=capacity)
    lifecycle = providers.Singleton(InterviewLifecycle, store=store)

    service = providers.Singleton(
        HiringService,
        store=store,
        transport=transport,
        capacity=capacity,
        matching=matching,
        lifecycle=lifecycle,
    )


def create_container(*, settings: dict | None = None) -> HiringContainer:
    """Instantiate container with optional overrides."""

    container = HiringContainer()

    if not settings:
        return container

    service_settings = settings.get("service", {})
    admin_id = service_settings.get("admin_id")

    if "capacity" in settings:
        capacity_config = CapacityConfig(**settings["capacity"])
        container.capacity.override(
            providers.Singleton(CapacityStore, store=container.store, config=capacity_config)
        )

    if "lifecycle" in settings or admin_id is not None:
        lifecycle_config = LifecycleConfig(**settings.get("lifecycle", {}), admin_id=admin_id)
        container.lifecycle.override(
            providers.Singleton(InterviewLifecycle, store=container.store, config=lifecycle_config)
        )

    if service_settings:
        service_config = ServiceConfig(**service_settings)
        container.service.override(
            providers.Singleton(
                HiringService,
                store=container.store,
                transport=container.transport,
                capacity=container.capacity,
                matching=container.matching,
                lifecycle=container.lifecycle,
                config=service_config,
            )
        )

    return container
