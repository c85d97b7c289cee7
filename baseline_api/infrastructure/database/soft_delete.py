"""Default soft-delete scope for reads and delete-intent rewriting for writes."""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import ORMExecuteState, with_loader_criteria

from baseline_api.infrastructure.database.registry import (
    EntityDescriptor,
    EntityDescriptorRegistry,
)

logger = logging.getLogger(__name__)


class SoftDeleteFilterEngine:
    """
    Hides rows with is_deleted = true from every ORM SELECT on a session, and turns
    deletes of soft-deletable entities into flagged updates.
    """

    def __init__(self, registry: EntityDescriptorRegistry) -> None:
        self._registry = registry
        self._scoped_types = tuple(d.entity_type for d in registry.soft_deletable())

    def install(self, session: AsyncSession) -> None:
        """Attach the default predicate to the session's query path."""
        sync_session = session.sync_session
        if not event.contains(sync_session, "do_orm_execute", self._apply_default_scope):
            event.listen(sync_session, "do_orm_execute", self._apply_default_scope)

    def _apply_default_scope(self, orm_execute_state: ORMExecuteState) -> None:
        if (
            not orm_execute_state.is_select
            or orm_execute_state.is_column_load
            or orm_execute_state.is_relationship_load
        ):
            return
        # Criteria propagate to lazy/relationship loads issued from these results.
        orm_execute_state.statement = orm_execute_state.statement.options(
            *(
                with_loader_criteria(entity_type, entity_type.is_deleted == False, include_aliases=True)  # noqa: E712
                for entity_type in self._scoped_types
            )
        )

    def intercept_delete(
        self,
        entity: Any,
        descriptor: EntityDescriptor,
        actor: str,
        now: datetime,
    ) -> bool:
        """
        Rewrite a delete of a soft-deletable entity into an update.
        Returns False when the entity must be physically deleted instead.
        """
        if not descriptor.is_soft_deletable:
            return False
        if entity.is_deleted:
            return True
        entity.is_deleted = True
        entity.deleted_at = now
        entity.deleted_by = actor
        logger.debug("Soft-deleted %s %s", descriptor.table, descriptor.key_values(entity))
        return True
