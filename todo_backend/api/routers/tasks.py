"""Task endpoints.

Handlers only translate store results into responses. Ownership is decided
inside :class:`TaskStore`, which is always bound to the authenticated caller.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlmodel import Session

from ...core import get_session
from ...errors import InvalidInput
from ...schemas import TaskCreate, TaskPatch
from ...services.tasks import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    TaskQuery,
    TaskStore,
    stats_to_dict,
    task_to_dict,
)
from ..guard import CallerContext, require_caller

router = APIRouter(prefix="/api/tasks", tags=["tasks"])

_TASK_NOT_FOUND = "Task not found"


def get_task_store(
    caller: CallerContext = Depends(require_caller),
    session: Session = Depends(get_session),
) -> TaskStore:
    return TaskStore(session, caller.account_id)


@router.get("")
def list_tasks(
    completed: Optional[bool] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    store: TaskStore = Depends(get_task_store),
) -> Dict[str, Any]:
    """List the caller's tasks with filters, sorting and pagination."""

    query = TaskQuery(
        completed=completed,
        category=category,
        search=search,
        sort_by=sort_by,
        page=page,
        limit=limit,
    )
    try:
        result = store.list(query)
    except InvalidInput as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(exc)) from exc
    return {"tasks": [task_to_dict(task) for task in result.tasks], "total": result.total}


@router.get("/stats")
def task_stats(store: TaskStore = Depends(get_task_store)) -> Dict[str, Any]:
    return stats_to_dict(store.stats())


@router.get("/{task_id}")
def get_task(task_id: str, store: TaskStore = Depends(get_task_store)) -> Dict[str, Any]:
    task = store.get(task_id)
    if task is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, _TASK_NOT_FOUND)
    return task_to_dict(task)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(
    body: TaskCreate, store: TaskStore = Depends(get_task_store)
) -> Dict[str, Any]:
    try:
        task = store.create(body)
    except InvalidInput as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(exc)) from exc
    return task_to_dict(task)


@router.put("/{task_id}")
def update_task(
    task_id: str, body: TaskPatch, store: TaskStore = Depends(get_task_store)
) -> Dict[str, Any]:
    """Apply a partial update; fields missing from the body keep their values."""

    task = store.update(task_id, body)
    if task is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, _TASK_NOT_FOUND)
    return task_to_dict(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(task_id: str, store: TaskStore = Depends(get_task_store)) -> Response:
    if not store.delete(task_id):
        raise HTTPException(status.HTTP_404_NOT_FOUND, _TASK_NOT_FOUND)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{task_id}/toggle")
def toggle_task(task_id: str, store: TaskStore = Depends(get_task_store)) -> Dict[str, Any]:
    task = store.toggle(task_id)
    if task is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, _TASK_NOT_FOUND)
    return task_to_dict(task)


__all__ = ["router"]
