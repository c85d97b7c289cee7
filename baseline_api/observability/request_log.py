"""Per-request structured log record. The logging sink and its transport are configured elsewhere."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from baseline_api.observability.redaction import NO_BODY

logger = logging.getLogger("baseline_api.request")

ANONYMOUS = "anonymous"
QUIET_PATH_PREFIXES = ("/health",)


@dataclass(frozen=True)
class RequestLogRecord:
    method: str
    path: str
    status_code: int
    elapsed_ms: float
    correlation_id: Optional[str]
    tenant_id: Optional[str] = None
    actor_name: str = ANONYMOUS
    client_ip: Optional[str] = None
    request_body: str = NO_BODY
    response_body: str = NO_BODY

    def to_fields(self) -> Dict[str, Any]:
        return {
            "CorrelationId": self.correlation_id,
            "TenantId": self.tenant_id,
            "ActorName": self.actor_name,
            "ClientIP": self.client_ip,
            "RequestBody": self.request_body,
            "ResponseBody": self.response_body,
            "Method": self.method,
            "Path": self.path,
            "StatusCode": self.status_code,
            "ElapsedMs": round(self.elapsed_ms, 2),
        }


def level_for(record: RequestLogRecord) -> int:
    """Health probes at DEBUG, server errors at ERROR, everything else at INFO."""
    if record.path.startswith(QUIET_PATH_PREFIXES):
        return logging.DEBUG
    if record.status_code >= 500:
        return logging.ERROR
    return logging.INFO


def emit_request_log(record: RequestLogRecord) -> None:
    logger.log(
        level_for(record),
        "HTTP %s %s responded %s in %.1fms",
        record.method,
        record.path,
        record.status_code,
        record.elapsed_ms,
        extra={"request_log": record.to_fields()},
    )
