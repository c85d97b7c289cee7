# baseline_api/core/context.py

import contextvars
from dataclasses import dataclass
from typing import Optional

correlation_id_ctx = contextvars.ContextVar("correlation_id", default=None)
tenant_id_ctx = contextvars.ContextVar("tenant_id", default=None)


@dataclass(frozen=True)
class RequestContext:
    """What the persistence layer needs to know about the request driving a write."""

    correlation_id: Optional[str] = None
    tenant_id: Optional[str] = None
    principal: Optional[str] = None
    client_ip: Optional[str] = None
