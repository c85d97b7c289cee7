"""SQLAlchemy-backed audit ledger. Stages AuditEntry rows in the caller's session."""

from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from baseline_api.governance.audit_models import AuditRecord
from baseline_api.infrastructure.database.models import AuditEntry


class SqlAuditLedger:
    """Implements AuditLedger. Rows are only added, in the same transaction as the business write."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def append(self, records: Sequence[AuditRecord]) -> None:
        self._session.add_all(
            AuditEntry(
                table_name=r.table,
                action=r.action.value,
                key_values=r.key_values,
                old_values=r.old_values,
                new_values=r.new_values,
                actor=r.actor,
                timestamp=r.timestamp,
                correlation_id=r.correlation_id,
                tenant_id=r.tenant_id,
            )
            for r in records
        )
