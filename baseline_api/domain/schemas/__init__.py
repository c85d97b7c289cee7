"""Domain schemas. Request/response and validation."""

from baseline_api.domain.schemas.todo import (
    LabelCreateRequest,
    LabelResponse,
    TodoCreateRequest,
    TodoResponse,
    TodoUpdateRequest,
)

__all__ = [
    "LabelCreateRequest",
    "LabelResponse",
    "TodoCreateRequest",
    "TodoResponse",
    "TodoUpdateRequest",
]
