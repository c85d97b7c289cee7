# baseline_api/infrastructure/database/repository.py

from typing import Generic, List, Optional, Type, TypeVar

from sqlalchemy import select

from baseline_api.infrastructure.database.unit_of_work import UnitOfWork

T = TypeVar("T")


class TenantRepository(Generic[T]):
    """Tenant-scoped reads and writes through a unit of work. Soft-deleted rows are never returned."""

    def __init__(self, model: Type[T]):
        self.model = model

    async def get_by_id(
        self,
        uow: UnitOfWork,
        id,
        tenant_id: str,
    ) -> Optional[T]:
        return await uow.get(self.model, id, tenant_id=tenant_id)

    async def list_by_tenant(
        self,
        uow: UnitOfWork,
        tenant_id: str,
        limit: int = 100,
    ) -> List[T]:
        stmt = (
            select(self.model)
            .where(self.model.tenant_id == tenant_id)
            .order_by(self.model.created_at)
            .limit(limit)
        )
        return await uow.scalars(stmt)

    async def create(
        self,
        uow: UnitOfWork,
        obj: T,
    ) -> T:
        uow.add(obj)
        await uow.commit()
        return obj

    async def delete(
        self,
        uow: UnitOfWork,
        obj: T,
    ) -> None:
        uow.delete(obj)
        await uow.commit()
