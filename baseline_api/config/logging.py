# baseline_api/config/logging.py

import json
import logging
from datetime import datetime, timezone

from baseline_api.core.context import correlation_id_ctx, tenant_id_ctx

_HANDLER_NAME = "baseline-json"


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "correlation_id": correlation_id_ctx.get(),
            "tenant_id": tenant_id_ctx.get(),
        }
        request_log = getattr(record, "request_log", None)
        if request_log:
            log_record.update(request_log)
            # Emitted after the tenant context was reset.
            if log_record["tenant_id"] is None:
                log_record["tenant_id"] = request_log.get("TenantId")
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


def configure_logging(log_level: str):
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    # Re-importing main (tests, reload) must not stack handlers.
    if any(h.get_name() == _HANDLER_NAME for h in root_logger.handlers):
        return

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)
