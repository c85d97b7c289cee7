"""Todo and label application service. Each method is one unit of work; audit rows ride along."""

import logging
from typing import List
from uuid import UUID

from baseline_api.domain.exceptions import EntityNotFoundError
from baseline_api.domain.schemas.todo import (
    LabelCreateRequest,
    TodoCreateRequest,
    TodoUpdateRequest,
)
from baseline_api.infrastructure.database.models import Label, Todo
from baseline_api.infrastructure.database.repository import TenantRepository
from baseline_api.infrastructure.database.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

_todos = TenantRepository(Todo)
_labels = TenantRepository(Label)


class TodoService:
    """
    Application-layer orchestration only. No HTTP, no FastAPI.
    Deletes go through the unit of work, so todos are soft-deleted and labels removed.
    """

    def __init__(self, uow: UnitOfWork, tenant_id: str) -> None:
        self._uow = uow
        self._tenant_id = tenant_id

    async def list_todos(self, limit: int = 100) -> List[Todo]:
        return await _todos.list_by_tenant(self._uow, self._tenant_id, limit=limit)

    async def get_todo(self, todo_id: UUID) -> Todo:
        todo = await _todos.get_by_id(self._uow, todo_id, self._tenant_id)
        if todo is None:
            raise EntityNotFoundError(f"Todo {todo_id} not found")
        return todo

    async def create_todo(self, req: TodoCreateRequest) -> Todo:
        todo = Todo(tenant_id=self._tenant_id, title=req.title, done=False)
        return await _todos.create(self._uow, todo)

    async def update_todo(self, todo_id: UUID, req: TodoUpdateRequest) -> Todo:
        todo = await self.get_todo(todo_id)
        todo.title = req.title
        todo.done = req.done
        await self._uow.commit()
        return todo

    async def mark_done(self, todo_id: UUID) -> None:
        todo = await self.get_todo(todo_id)
        todo.done = True
        await self._uow.commit()

    async def delete_todo(self, todo_id: UUID) -> None:
        todo = await self.get_todo(todo_id)
        await _todos.delete(self._uow, todo)
        logger.info("Todo %s deleted", todo_id)

    async def create_label(self, req: LabelCreateRequest) -> Label:
        label = Label(tenant_id=self._tenant_id, name=req.name, color=req.color)
        return await _labels.create(self._uow, label)

    async def get_label(self, label_id: UUID) -> Label:
        label = await _labels.get_by_id(self._uow, label_id, self._tenant_id)
        if label is None:
            raise EntityNotFoundError(f"Label {label_id} not found")
        return label

    async def delete_label(self, label_id: UUID) -> None:
        label = await self.get_label(label_id)
        await _labels.delete(self._uow, label)
        logger.info("Label %s deleted", label_id)
