"""Unit of work: one transaction shared by the business mutation and its audit rows."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from baseline_api.application.exceptions import TransactionFailedError
from baseline_api.core.context import RequestContext
from baseline_api.core.exceptions import ConfigurationError
from baseline_api.governance.audit_capture import ChangeAuditCapture, PendingChange
from baseline_api.governance.audit_models import AuditAction, AuditRecord
from baseline_api.governance.audit_repository import AuditLedger
from baseline_api.governance.exceptions import AppendOnlyViolationError
from baseline_api.infrastructure.database.audit_ledger import SqlAuditLedger
from baseline_api.infrastructure.database.exceptions import UntrackedEntityError
from baseline_api.infrastructure.database.registry import (
    EntityDescriptor,
    EntityDescriptorRegistry,
)
from baseline_api.infrastructure.database.soft_delete import SoftDeleteFilterEngine
from baseline_api.security.actor import ActorContextResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UnitOfWork:
    """
    Wraps an AsyncSession for one logical write.

    Entities are read through get()/scalars() so their persisted state can be
    snapshotted, added with add() and removed with delete(). flush()/commit()
    stamp actors and timestamps, rewrite soft deletes, write the business rows,
    then stage the audit rows for the same changes in the same transaction.
    Entities modified or deleted without having been loaded here fail the write.
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: EntityDescriptorRegistry,
        actor_resolver: ActorContextResolver,
        request_context: Optional[RequestContext] = None,
        *,
        filter_engine: Optional[SoftDeleteFilterEngine] = None,
        audit_capture: Optional[ChangeAuditCapture] = None,
        ledger: Optional[AuditLedger] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session = session
        self._registry = registry
        self._actor_resolver = actor_resolver
        self._request_context = request_context
        self._filter_engine = filter_engine or SoftDeleteFilterEngine(registry)
        self._audit_capture = audit_capture or ChangeAuditCapture(actor_resolver)
        self._ledger = ledger or SqlAuditLedger(session)
        self._clock = clock
        self._snapshots: Dict[Any, Dict[str, Any]] = {}
        self._delete_intents: List[Any] = []
        self._filter_engine.install(session)

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            await self.rollback()

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def request_context(self) -> Optional[RequestContext]:
        return self._request_context

    # --- reads ---

    async def scalars(self, stmt: Select) -> List[Any]:
        """Run an ORM select under the default scope and track the returned entities."""
        result = await self._session.execute(stmt)
        entities = list(result.scalars().all())
        for entity in entities:
            self._track(entity)
        return entities

    async def get(self, entity_type: Type[T], key: Any, *, tenant_id: Optional[str] = None) -> Optional[T]:
        descriptor = self._registry.describe(entity_type)
        if len(descriptor.primary_key) != 1:
            raise ConfigurationError(f"get() needs a single-column key; '{descriptor.table}' has {descriptor.primary_key}")
        stmt = select(entity_type).where(getattr(entity_type, descriptor.primary_key[0]) == key)
        if tenant_id is not None and "tenant_id" in descriptor.field_names:
            stmt = stmt.where(entity_type.tenant_id == tenant_id)
        found = await self.scalars(stmt)
        return found[0] if found else None

    def _track(self, entity: Any) -> None:
        descriptor = self._registry.find(type(entity))
        if descriptor is not None and entity not in self._snapshots:
            self._snapshots[entity] = descriptor.values(entity)

    # --- writes ---

    def add(self, entity: Any) -> None:
        descriptor = self._registry.describe_entity(entity)
        if descriptor.is_append_only:
            raise AppendOnlyViolationError(f"'{descriptor.table}' rows are written by audit capture only")
        self._session.add(entity)

    def delete(self, entity: Any) -> None:
        """Record a delete intent. Soft-deletable entities are flagged at flush, others removed."""
        descriptor = self._registry.describe_entity(entity)
        if descriptor.is_append_only:
            raise AppendOnlyViolationError(f"'{descriptor.table}' rows cannot be deleted")
        if entity in self._session.new:
            # Never written; nothing to delete or audit.
            self._session.expunge(entity)
            return
        if entity not in self._session or entity not in self._snapshots:
            raise UntrackedEntityError(
                f"Deleted {descriptor.table} entity was not loaded through the unit of work"
            )
        if entity not in self._delete_intents:
            self._delete_intents.append(entity)

    async def flush(self) -> List[AuditRecord]:
        """Write pending changes and their audit rows without committing."""
        self._check_modifications()
        now = self._clock()
        actor = self._actor_resolver.resolve_actor(self._request_context)
        changes: List[PendingChange] = []

        for entity in list(self._session.new):
            descriptor = self._registry.describe_entity(entity)
            if descriptor.is_append_only:
                continue
            self._stamp_created(entity, descriptor, actor, now)
            changes.append(PendingChange(entity, descriptor, AuditAction.CREATE))

        for entity in self._delete_intents:
            descriptor = self._registry.describe_entity(entity)
            before = self._snapshots.get(entity) or descriptor.values(entity)
            if self._filter_engine.intercept_delete(entity, descriptor, actor, now):
                changes.append(PendingChange(entity, descriptor, AuditAction.DELETE, before))
            else:
                await self._session.delete(entity)
                changes.append(PendingChange(entity, descriptor, AuditAction.DELETE, before, physical=True))

        for entity, before in self._snapshots.items():
            if entity in self._delete_intents:
                continue
            descriptor = self._registry.describe_entity(entity)
            if descriptor.values(entity) != before:
                self._stamp_updated(entity, descriptor, actor, now)
                changes.append(PendingChange(entity, descriptor, AuditAction.UPDATE, before))

        await self._session.flush()
        records = self._audit_capture.capture(changes, self._request_context, now)
        if records:
            self._ledger.append(records)
            await self._session.flush()

        # What was just written is the baseline for the next flush in this unit.
        for change in changes:
            if change.physical:
                self._snapshots.pop(change.entity, None)
            else:
                self._snapshots[change.entity] = change.descriptor.values(change.entity)
        self._delete_intents.clear()
        return records

    async def commit(self) -> List[AuditRecord]:
        """Flush and commit. Any failure rolls back business rows and audit rows together."""
        try:
            records = await self.flush()
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self.rollback()
            logger.error("Write rolled back: %s", exc.__class__.__name__)
            raise TransactionFailedError(f"Write failed and was rolled back ({exc.__class__.__name__})") from exc
        except Exception:
            await self.rollback()
            raise
        if records:
            logger.info(
                "Committed write with %d audit record(s) by %s",
                len(records),
                records[0].actor,
            )
        return records

    async def rollback(self) -> None:
        await self._session.rollback()
        self._snapshots.clear()
        self._delete_intents.clear()

    # --- helpers ---

    def _check_modifications(self) -> None:
        for entity in self._session.dirty:
            descriptor = self._registry.find(type(entity))
            if descriptor is None or not self._session.is_modified(entity):
                continue
            if descriptor.is_append_only:
                raise AppendOnlyViolationError(f"'{descriptor.table}' rows cannot be modified")
            if entity not in self._snapshots:
                raise UntrackedEntityError(
                    f"Modified {descriptor.table} entity was not loaded through the unit of work"
                )

    def _stamp_created(self, entity: Any, descriptor: EntityDescriptor, actor: str, now: datetime) -> None:
        fields = descriptor.field_names
        if "created_at" in fields and entity.created_at is None:
            entity.created_at = now
        if "created_by" in fields and entity.created_by is None:
            entity.created_by = actor
        if "tenant_id" in fields and entity.tenant_id is None and self._request_context is not None:
            entity.tenant_id = self._request_context.tenant_id
        if descriptor.is_soft_deletable and entity.is_deleted is None:
            entity.is_deleted = False

    def _stamp_updated(self, entity: Any, descriptor: EntityDescriptor, actor: str, now: datetime) -> None:
        fields = descriptor.field_names
        if "updated_at" in fields:
            entity.updated_at = now
        if "updated_by" in fields:
            entity.updated_by = actor
