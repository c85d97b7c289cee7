"""Actor resolution for stamping and audit attribution."""

from baseline_api.core.context import RequestContext
from baseline_api.security.actor import SYSTEM_ACTOR, FixedActorResolver, PrincipalActorResolver


def test_principal_is_the_actor():
    ctx = RequestContext(correlation_id="c", tenant_id="t", principal="user-42")
    assert PrincipalActorResolver().resolve_actor(ctx) == "user-42"


def test_no_request_context_means_system():
    assert PrincipalActorResolver().resolve_actor(None) == SYSTEM_ACTOR


def test_anonymous_request_means_system():
    assert PrincipalActorResolver().resolve_actor(RequestContext(principal=None)) == SYSTEM_ACTOR
    assert PrincipalActorResolver().resolve_actor(RequestContext(principal="   ")) == SYSTEM_ACTOR


def test_resolution_is_repeatable():
    ctx = RequestContext(principal="user-1")
    resolver = PrincipalActorResolver()
    assert resolver.resolve_actor(ctx) == resolver.resolve_actor(ctx)


def test_fixed_resolver_ignores_context():
    resolver = FixedActorResolver("maintenance")
    assert resolver.resolve_actor(None) == "maintenance"
    assert resolver.resolve_actor(RequestContext(principal="someone")) == "maintenance"
