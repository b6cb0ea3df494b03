"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

import logging
from collections.abc import Generator  # noqa: TC003
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Header

from musicreg.domain.period import PeriodContext
from musicreg.domain.registration import CancellationPolicy
from musicreg.repositories import (
    AttendanceRepository,
    ProgramRepository,
    RegistrationRepository,
    UserRepository,
)
from musicreg.services import (
    AccessCodeVerifier,
    Actor,
    Authenticator,
    PeriodService,
    RegistrationApplicationService,
)
from musicreg.store import create_store

if TYPE_CHECKING:
    from musicreg.config import Settings
    from musicreg.store import TableStore

logger = logging.getLogger("musicreg.api")


@dataclass
class ServiceContainer:
    """Store, repositories and services shared by all requests."""

    settings: Settings
    store: TableStore
    users: UserRepository
    programs: ProgramRepository
    registrations: RegistrationRepository
    attendance: AttendanceRepository
    periods: PeriodService
    registration_service: RegistrationApplicationService
    authenticator: Authenticator

    @classmethod
    def build(cls, settings: Settings, store: TableStore | None = None) -> ServiceContainer:
        """Wire every component over one store.

        Args:
            settings: Application settings
            store: Store to use instead of the one settings select
        """
        store = store if store is not None else create_store(settings)
        users = UserRepository(store)
        programs = ProgramRepository(store)
        periods = PeriodService(store)
        registrations = RegistrationRepository(
            store, period_service=periods, waitlist_class_ids=settings.waitlist_class_ids
        )
        service = RegistrationApplicationService(
            registrations=registrations,
            users=users,
            programs=programs,
            period_service=periods,
            cancellation_policy=CancellationPolicy(flat_fee=settings.cancellation_fee),
        )
        return cls(
            settings=settings,
            store=store,
            users=users,
            programs=programs,
            registrations=registrations,
            attendance=AttendanceRepository(store),
            periods=periods,
            registration_service=service,
            authenticator=Authenticator(AccessCodeVerifier(users)),
        )

    def close(self) -> None:
        self.store.close()


# Global container (initialized on app startup)
_container: ServiceContainer | None = None


def init_services(settings: Settings, store: TableStore | None = None) -> ServiceContainer:
    """Initialize the global ServiceContainer."""
    global _container  # noqa: PLW0603
    _container = ServiceContainer.build(settings, store)
    logger.info("Services initialized (store=%s)", type(_container.store).__name__)
    return _container


def close_services() -> None:
    """Close the global ServiceContainer."""
    global _container  # noqa: PLW0603
    if _container is not None:
        _container.close()
        _container = None


def get_container() -> Generator[ServiceContainer, None, None]:
    """Dependency that provides the ServiceContainer."""
    if _container is None:
        raise RuntimeError("Services not initialized. Call init_services() first.")
    yield _container


# Type alias for dependency injection
ContainerDep = Annotated[ServiceContainer, Depends(get_container)]


def get_actor(
    container: ContainerDep,
    x_access_code: Annotated[str | None, Header()] = None,
) -> Actor:
    """Dependency that authenticates the caller from the X-Access-Code header."""
    return container.authenticator.authenticate(x_access_code)


ActorDep = Annotated[Actor, Depends(get_actor)]


def get_period_context(container: ContainerDep) -> PeriodContext:
    """Dependency that resolves the period context once per request."""
    return container.periods.resolve_context()


PeriodContextDep = Annotated[PeriodContext, Depends(get_period_context)]
