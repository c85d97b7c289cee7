"""Labels API router: create, get, delete (hard)."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from baseline_api.api.routers.todos import get_todo_service
from baseline_api.application.todo_service import TodoService
from baseline_api.domain.schemas.todo import LabelCreateRequest, LabelResponse

router = APIRouter()


@router.post("", response_model=LabelResponse, status_code=status.HTTP_201_CREATED)
async def create_label(body: LabelCreateRequest, service: Annotated[TodoService, Depends(get_todo_service)]):
    return await service.create_label(body)


@router.get("/{label_id}", response_model=LabelResponse)
async def get_label(label_id: UUID, service: Annotated[TodoService, Depends(get_todo_service)]):
    return await service.get_label(label_id)


@router.delete("/{label_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_label(label_id: UUID, service: Annotated[TodoService, Depends(get_todo_service)]):
    await service.delete_label(label_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
