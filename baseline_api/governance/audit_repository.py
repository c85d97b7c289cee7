"""Audit ledger protocol. Governance layer depends on this; infrastructure implements it."""

from typing import Protocol, Sequence

from baseline_api.governance.audit_models import AuditRecord


class AuditLedger(Protocol):
    """Appends audit records to the write that produced them. Never updates or deletes."""

    def append(self, records: Sequence[AuditRecord]) -> None:
        """Stage records in the caller's pending write; they commit or roll back with it."""
        ...
