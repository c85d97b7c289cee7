# baseline_api/infrastructure/database/models.py

import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB

from baseline_api.infrastructure.database.session import Base

JsonDocument = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")


class BaseModel(Base):
    """Tenant-scoped entity. created_*/updated_* are stamped by the unit of work, not the database."""

    __abstract__ = True
    __auditable__ = True
    __soft_deletable__ = False

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    tenant_id = Column(String, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)


class SoftDeleteMixin:
    """Soft-delete state. Rows carrying it are flagged on delete, never removed."""

    __soft_deletable__ = True

    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(String, nullable=True)


class Todo(SoftDeleteMixin, BaseModel):
    __tablename__ = "todos"

    title = Column(String(200), nullable=False)
    done = Column(Boolean, nullable=False, default=False)


class Label(BaseModel):
    """Auditable but hard-deleted."""

    __tablename__ = "labels"

    name = Column(String(100), nullable=False)
    color = Column(String(20), nullable=True)


class AuditEntry(Base):
    """Append-only change ledger row. Written only by the unit of work."""

    __tablename__ = "audit_entries"
    __auditable__ = False
    __soft_deletable__ = False
    __append_only__ = True

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    table_name = Column("table", String, nullable=False, index=True)
    action = Column(String, nullable=False)
    key_values = Column(JsonDocument, nullable=False)
    old_values = Column(JsonDocument, nullable=True)
    new_values = Column(JsonDocument, nullable=True)
    actor = Column(String, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    correlation_id = Column(String, nullable=True, index=True)
    tenant_id = Column(String, nullable=True, index=True)
