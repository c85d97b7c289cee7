"""Immutable audit record model. Domain-level immutability."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class AuditAction(str, Enum):
    """What the caller intended. A soft delete is stored as an update but audited as DELETE."""

    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"


@dataclass(frozen=True)
class AuditRecord:
    """
    Immutable ledger entry for one changed entity in one write:
    which row, what changed, who, when (UTC), and the request it came from.
    """

    table: str
    action: AuditAction
    key_values: Dict[str, Any]
    old_values: Optional[Dict[str, Any]]
    new_values: Optional[Dict[str, Any]]
    actor: str
    timestamp: datetime
    correlation_id: Optional[str] = None
    tenant_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for JSON logging."""
        return {
            "table": self.table,
            "action": self.action.value,
            "key_values": self.key_values,
            "old_values": self.old_values,
            "new_values": self.new_values,
            "actor": self.actor,
            "timestamp": self.timestamp.isoformat(),
            "correlation_id": self.correlation_id,
            "tenant_id": self.tenant_id,
        }
