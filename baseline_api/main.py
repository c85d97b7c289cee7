# baseline_api/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from baseline_api.api.body_capture import BodyCaptureMiddleware
from baseline_api.api.middleware import (
    CorrelationIdMiddleware,
    PrincipalMiddleware,
    TenantContextMiddleware,
)
from baseline_api.api.routers import health, labels, todos
from baseline_api.application.exceptions import ApplicationError
from baseline_api.config.logging import configure_logging
from baseline_api.config.settings import get_settings
from baseline_api.core.exceptions import ConfigurationError
from baseline_api.domain.exceptions import (
    DomainError,
    EntityNotFoundError,
)
from baseline_api.governance.exceptions import GovernanceError
from baseline_api.infrastructure.database.registry import build_entity_registry
from baseline_api.infrastructure.database.session import (
    Base,
    build_engine,
    build_session_factory,
)

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.log_level)

# Entity metadata errors are fatal here, at startup, not on the first write.
entity_registry = build_entity_registry()
engine = build_engine(settings.database_url)
session_factory = build_session_factory(engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_schema:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured")
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
    lifespan=lifespan,
)
app.state.entity_registry = entity_registry
app.state.session_factory = session_factory

# Middleware order: last added runs first (outermost).
# Request flow: CorrelationId -> BodyCapture -> TenantContext -> Principal -> routes.
app.add_middleware(
    PrincipalMiddleware,
    secret=settings.jwt_secret,
    algorithm=settings.jwt_algorithm,
)
app.add_middleware(TenantContextMiddleware)
app.add_middleware(
    BodyCaptureMiddleware,
    max_bytes=settings.body_capture_max_bytes,
    content_types=settings.body_capture_content_types,
    trust_forwarded_for=settings.trust_forwarded_for,
)
app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(EntityNotFoundError)
async def not_found_handler(request, exc: EntityNotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(DomainError)
async def domain_error_handler(request, exc: DomainError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request, exc: ConfigurationError):
    logger.error("Configuration error: %s", exc.message)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.exception_handler(GovernanceError)
async def governance_error_handler(request, exc: GovernanceError):
    logger.error("Audit ledger violation: %s", exc.message)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.exception_handler(ApplicationError)
async def application_error_handler(request, exc: ApplicationError):
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request, exc: Exception):
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Routers: /health, /api/v1/todos, /api/v1/labels
app.include_router(health.router)
app.include_router(todos.router, prefix="/api/v1/todos", tags=["todos"])
app.include_router(labels.router, prefix="/api/v1/labels", tags=["labels"])
