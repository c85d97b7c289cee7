"""Acting identity for persisted mutations. No FastAPI."""

from typing import Optional, Protocol

from baseline_api.core.context import RequestContext

SYSTEM_ACTOR = "system"


class ActorContextResolver(Protocol):
    """Resolve who is performing the current operation. Must not have side effects."""

    def resolve_actor(self, request_context: Optional[RequestContext]) -> str:
        ...


class PrincipalActorResolver:
    """Authenticated principal's stable id, or SYSTEM_ACTOR for anonymous and background work."""

    def resolve_actor(self, request_context: Optional[RequestContext]) -> str:
        if request_context is None:
            return SYSTEM_ACTOR
        principal = (request_context.principal or "").strip()
        return principal or SYSTEM_ACTOR


class FixedActorResolver:
    """Always returns the same actor (tests, scripted maintenance)."""

    def __init__(self, actor: str) -> None:
        self._actor = actor

    def resolve_actor(self, request_context: Optional[RequestContext]) -> str:
        return self._actor
