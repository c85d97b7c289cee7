"""Entity descriptors: field accessors, primary keys and capability flags per mapped type.

Built once at startup from the mapped classes; the unit of work, the soft-delete
filter and audit capture consult descriptors instead of inspecting entities at
write time.
"""

from dataclasses import dataclass
from operator import attrgetter
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Tuple, Type

from sqlalchemy import inspect

from baseline_api.infrastructure.database.exceptions import (
    CapabilityConfigurationError,
    UnregisteredEntityError,
)
from baseline_api.infrastructure.database.session import Base

SOFT_DELETE_FIELDS = ("is_deleted", "deleted_at", "deleted_by")


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    accessor: Callable[[Any], Any]
    is_primary_key: bool = False


@dataclass(frozen=True)
class EntityDescriptor:
    """Immutable metadata for one entity type."""

    entity_type: type
    table: str
    fields: Tuple[FieldDescriptor, ...]
    is_soft_deletable: bool = False
    is_auditable: bool = False
    is_append_only: bool = False

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    @property
    def primary_key(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.is_primary_key)

    def values(self, entity: Any) -> Dict[str, Any]:
        """Current value of every field, in declaration order."""
        return {f.name: f.accessor(entity) for f in self.fields}

    def key_values(self, entity: Any) -> Dict[str, Any]:
        return {f.name: f.accessor(entity) for f in self.fields if f.is_primary_key}


def describe_model(model: type) -> EntityDescriptor:
    """Build a descriptor from a mapped class. Called at startup only."""
    mapper = inspect(model)
    pk_columns = set(mapper.primary_key)
    fields = tuple(
        FieldDescriptor(
            name=attr.key,
            accessor=attrgetter(attr.key),
            is_primary_key=any(col in pk_columns for col in attr.columns),
        )
        for attr in mapper.column_attrs
    )
    descriptor = EntityDescriptor(
        entity_type=model,
        table=mapper.local_table.name,
        fields=fields,
        is_soft_deletable=bool(getattr(model, "__soft_deletable__", False)),
        is_auditable=bool(getattr(model, "__auditable__", False)),
        is_append_only=bool(getattr(model, "__append_only__", False)),
    )
    _validate(descriptor)
    return descriptor


def _validate(descriptor: EntityDescriptor) -> None:
    if not descriptor.primary_key:
        raise CapabilityConfigurationError(
            f"Entity '{descriptor.entity_type.__name__}' has no primary key"
        )
    if descriptor.is_soft_deletable:
        missing = [f for f in SOFT_DELETE_FIELDS if f not in descriptor.field_names]
        if missing:
            raise CapabilityConfigurationError(
                f"Entity '{descriptor.entity_type.__name__}' is soft-deletable "
                f"but lacks fields: {', '.join(missing)}"
            )


class EntityDescriptorRegistry:
    """Read-only lookup of entity descriptors. Safe for concurrent reads."""

    def __init__(self, descriptors: Iterable[EntityDescriptor]) -> None:
        self._by_type: Dict[type, EntityDescriptor] = {d.entity_type: d for d in descriptors}

    @classmethod
    def from_models(cls, models: Iterable[type]) -> "EntityDescriptorRegistry":
        return cls(describe_model(m) for m in models)

    def describe(self, entity_type: Type[Any]) -> EntityDescriptor:
        """Raises UnregisteredEntityError for unknown types."""
        descriptor = self._by_type.get(entity_type)
        if descriptor is None:
            raise UnregisteredEntityError(
                f"No entity descriptor registered for '{getattr(entity_type, '__name__', entity_type)}'"
            )
        return descriptor

    def describe_entity(self, entity: Any) -> EntityDescriptor:
        return self.describe(type(entity))

    def find(self, entity_type: Type[Any]) -> Optional[EntityDescriptor]:
        return self._by_type.get(entity_type)

    def soft_deletable(self) -> Tuple[EntityDescriptor, ...]:
        return tuple(d for d in self._by_type.values() if d.is_soft_deletable)

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._by_type

    def __iter__(self) -> Iterator[EntityDescriptor]:
        return iter(self._by_type.values())

    def __len__(self) -> int:
        return len(self._by_type)


def build_entity_registry() -> EntityDescriptorRegistry:
    """Walk every mapped class of the service. Configuration errors surface here, at startup."""
    # Importing models registers them on Base.
    from baseline_api.infrastructure.database import models  # noqa: F401

    return EntityDescriptorRegistry.from_models(
        mapper.class_ for mapper in Base.registry.mappers
    )
