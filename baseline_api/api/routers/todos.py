"""Todos API router: list, get, create, update, mark done, delete (soft)."""

from typing import Annotated, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from baseline_api.api.dependencies import get_tenant_id, get_unit_of_work
from baseline_api.application.todo_service import TodoService
from baseline_api.domain.schemas.todo import (
    TodoCreateRequest,
    TodoResponse,
    TodoUpdateRequest,
)
from baseline_api.infrastructure.database.unit_of_work import UnitOfWork

router = APIRouter()


def get_todo_service(
    uow: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    tenant_id: Annotated[str, Depends(get_tenant_id)],
) -> TodoService:
    return TodoService(uow, tenant_id)


@router.get("", response_model=List[TodoResponse])
async def list_todos(
    service: Annotated[TodoService, Depends(get_todo_service)],
    limit: Annotated[int, Query(ge=1, le=100)] = 100,
):
    return await service.list_todos(limit=limit)


@router.get("/{todo_id}", response_model=TodoResponse)
async def get_todo(todo_id: UUID, service: Annotated[TodoService, Depends(get_todo_service)]):
    return await service.get_todo(todo_id)


@router.post("", response_model=TodoResponse, status_code=status.HTTP_201_CREATED)
async def create_todo(
    body: TodoCreateRequest,
    response: Response,
    service: Annotated[TodoService, Depends(get_todo_service)],
):
    todo = await service.create_todo(body)
    response.headers["Location"] = f"/api/v1/todos/{todo.id}"
    return todo


@router.put("/{todo_id}", response_model=TodoResponse)
async def update_todo(
    todo_id: UUID,
    body: TodoUpdateRequest,
    service: Annotated[TodoService, Depends(get_todo_service)],
):
    return await service.update_todo(todo_id, body)


@router.post("/{todo_id}/done", status_code=status.HTTP_204_NO_CONTENT)
async def mark_done(todo_id: UUID, service: Annotated[TodoService, Depends(get_todo_service)]):
    await service.mark_done(todo_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{todo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_todo(todo_id: UUID, service: Annotated[TodoService, Depends(get_todo_service)]):
    await service.delete_todo(todo_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
