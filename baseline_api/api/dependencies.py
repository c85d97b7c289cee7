"""FastAPI dependency injection: database session, unit of work, request context, tenant."""

from typing import Annotated, AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from baseline_api.core.context import RequestContext
from baseline_api.infrastructure.database.registry import EntityDescriptorRegistry
from baseline_api.infrastructure.database.unit_of_work import UnitOfWork
from baseline_api.security.actor import ActorContextResolver, PrincipalActorResolver

_actor_resolver = PrincipalActorResolver()


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Session factory built at startup (app.state)."""
    return request.app.state.session_factory


def get_entity_registry(request: Request) -> EntityDescriptorRegistry:
    """Entity registry built and validated at startup (app.state)."""
    return request.app.state.entity_registry


def get_actor_resolver() -> ActorContextResolver:
    return _actor_resolver


async def get_db(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


def get_request_context(request: Request) -> RequestContext:
    """Snapshot of what the middleware stack resolved for this request."""
    client = request.client
    return RequestContext(
        correlation_id=getattr(request.state, "correlation_id", None),
        tenant_id=getattr(request.state, "tenant_id", None),
        principal=getattr(request.state, "principal", None),
        client_ip=client.host if client else None,
    )


async def get_unit_of_work(
    session: Annotated[AsyncSession, Depends(get_db)],
    registry: Annotated[EntityDescriptorRegistry, Depends(get_entity_registry)],
    actor_resolver: Annotated[ActorContextResolver, Depends(get_actor_resolver)],
    request_context: Annotated[RequestContext, Depends(get_request_context)],
) -> AsyncIterator[UnitOfWork]:
    async with UnitOfWork(session, registry, actor_resolver, request_context) as uow:
        yield uow


def get_tenant_id(request: Request) -> str:
    """Extract tenant_id from request.state (set by middleware)."""
    return request.state.tenant_id
