"""Builds ledger records for a pending write. No FastAPI, no database access."""

import datetime as dt
import enum
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from baseline_api.core.context import RequestContext
from baseline_api.governance.audit_models import AuditAction, AuditRecord
from baseline_api.governance.exceptions import AuditSerializationError
from baseline_api.infrastructure.database.registry import EntityDescriptor
from baseline_api.security.actor import ActorContextResolver


@dataclass(frozen=True)
class PendingChange:
    """
    One entity in a write batch, with the caller's intent.

    before holds the field values as last persisted (None for creates). For a
    physical delete it is the only source of key values once the row is gone.
    """

    entity: Any
    descriptor: EntityDescriptor
    intent: AuditAction
    before: Optional[Dict[str, Any]] = None
    physical: bool = False


def to_json_value(value: Any, *, table: str, field: str) -> Any:
    """Convert a field value to a JSON-safe value or fail the write."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, enum.Enum):
        return to_json_value(value.value, table=table, field=field)
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, (uuid.UUID, Decimal)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [to_json_value(v, table=table, field=field) for v in value]
    if isinstance(value, dict) and all(isinstance(k, str) for k in value):
        return {k: to_json_value(v, table=table, field=field) for k, v in value.items()}
    raise AuditSerializationError(
        f"Cannot audit {table}.{field}: value of type {type(value).__name__} is not JSON-serializable"
    )


def _serialize(values: Optional[Dict[str, Any]], table: str) -> Optional[Dict[str, Any]]:
    if values is None:
        return None
    return {k: to_json_value(v, table=table, field=k) for k, v in values.items()}


class ChangeAuditCapture:
    """
    One AuditRecord per auditable entity whose observable state changed.

    Creates carry the full field map, updates only the changed fields (old and
    new under the same keys), physical deletes only the key values.
    """

    def __init__(self, actor_resolver: ActorContextResolver) -> None:
        self._actor_resolver = actor_resolver

    def capture(
        self,
        changes: Iterable[PendingChange],
        request_context: Optional[RequestContext],
        timestamp: Optional[dt.datetime] = None,
    ) -> List[AuditRecord]:
        actor = self._actor_resolver.resolve_actor(request_context)
        timestamp = timestamp or dt.datetime.now(dt.timezone.utc)
        records: List[AuditRecord] = []
        for change in changes:
            if not change.descriptor.is_auditable:
                continue
            record = self._build(change, actor, timestamp, request_context)
            if record is not None:
                records.append(record)
        return records

    def _build(
        self,
        change: PendingChange,
        actor: str,
        timestamp: dt.datetime,
        request_context: Optional[RequestContext],
    ) -> Optional[AuditRecord]:
        descriptor = change.descriptor
        table = descriptor.table
        # A physically deleted row is only known through its last persisted state.
        current = change.before if change.physical else descriptor.values(change.entity)
        key_values = {k: current[k] for k in descriptor.primary_key}

        if change.intent is AuditAction.CREATE:
            old_values, new_values = None, current
        elif change.physical:
            old_values, new_values = None, None
        else:
            # Updates, and deletes rewritten into updates: only fields that changed.
            before = change.before or {}
            changed = [k for k in descriptor.field_names if k in before and before[k] != current[k]]
            if not changed:
                return None
            old_values = {k: before[k] for k in changed}
            new_values = {k: current[k] for k in changed}

        tenant_id = current.get("tenant_id")
        if tenant_id is None and request_context is not None:
            tenant_id = request_context.tenant_id

        return AuditRecord(
            table=table,
            action=change.intent,
            key_values=_serialize(key_values, table),
            old_values=_serialize(old_values, table),
            new_values=_serialize(new_values, table),
            actor=actor,
            timestamp=timestamp,
            correlation_id=request_context.correlation_id if request_context else None,
            tenant_id=tenant_id,
        )
