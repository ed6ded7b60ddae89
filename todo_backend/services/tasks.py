"""Ownership-scoped task storage and queries."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import delete, not_, or_, update
from sqlmodel import Session, func, select

from ..core.time import isoformat_utc, utcnow
from ..errors import InvalidInput
from ..models import Task
from ..schemas import TaskCreate, TaskPatch

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"
DEFAULT_PAGE_SIZE = 1000
MAX_PAGE_SIZE = 1000
# Largest OFFSET a 64-bit SQL integer can hold.
MAX_OFFSET = 2**63 - 1

SORT_COLUMNS = {
    "createdAt": Task.created_at,
    "updatedAt": Task.updated_at,
    "dueDate": Task.due_date,
    "title": Task.title,
    "category": Task.category,
    "completed": Task.completed,
}


@dataclass(frozen=True)
class TaskQuery:
    completed: Optional[bool] = None
    category: Optional[str] = None
    search: Optional[str] = None
    sort_by: str = "createdAt"
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE


@dataclass
class TaskPage:
    tasks: List[Task]
    total: int


@dataclass
class TaskStats:
    total: int = 0
    completed: int = 0
    pending: int = 0
    by_category: Dict[str, int] = field(default_factory=dict)


def task_to_dict(task: Task) -> Dict[str, Any]:
    """Serialise a task model to API-friendly dict."""

    return {
        "id": str(task.id),
        "userId": str(task.user_id),
        "title": task.title,
        "description": task.description,
        "category": task.category,
        "dueDate": isoformat_utc(task.due_date),
        "completed": task.completed,
        "createdAt": isoformat_utc(task.created_at),
        "updatedAt": isoformat_utc(task.updated_at),
    }


def _parse_id(task_id: Union[str, uuid.UUID]) -> Optional[uuid.UUID]:
    if isinstance(task_id, uuid.UUID):
        return task_id
    try:
        return uuid.UUID(str(task_id))
    except ValueError:
        return None


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class TaskStore:
    """Task operations bound to a single owning account.

    Every statement built here starts from ``user_id == account_id``; there
    is no way to reach another account's rows through this class. Tasks that
    do not exist and tasks owned by someone else are reported the same way.
    """

    def __init__(self, session: Session, account_id: uuid.UUID) -> None:
        self.session = session
        self.account_id = account_id

    def _owned(self):
        return Task.user_id == self.account_id

    def _owned_task(self, task_id: uuid.UUID):
        return (self._owned(), Task.id == task_id)

    def create(self, data: TaskCreate) -> Task:
        title = (data.title or "").strip()
        if not title:
            raise InvalidInput("Title is required")
        task = Task(
            user_id=self.account_id,
            title=title,
            description=data.description,
            category=data.category,
            due_date=data.due_date,
            completed=False,
        )
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        logger.debug("Account %s created task %s", self.account_id, task.id)
        return task

    def get(self, task_id: Union[str, uuid.UUID]) -> Optional[Task]:
        parsed = _parse_id(task_id)
        if parsed is None:
            return None
        return self.session.exec(select(Task).where(*self._owned_task(parsed))).first()

    def list(self, query: TaskQuery) -> TaskPage:
        sort_column = SORT_COLUMNS.get(query.sort_by)
        if sort_column is None:
            raise InvalidInput(
                f"Unsupported sortBy '{query.sort_by}'. "
                f"Use one of: {', '.join(SORT_COLUMNS)}"
            )
        if query.page < 1:
            raise InvalidInput("page must be at least 1")
        if not 1 <= query.limit <= MAX_PAGE_SIZE:
            raise InvalidInput(f"limit must be between 1 and {MAX_PAGE_SIZE}")

        conditions = [self._owned()]
        if query.completed is not None:
            conditions.append(Task.completed == query.completed)
        if query.category:
            conditions.append(Task.category == query.category)
        terms = (query.search or "").split()
        if terms:
            conditions.append(
                or_(
                    *(
                        or_(
                            Task.title.ilike(_like_pattern(term), escape="\\"),
                            Task.description.ilike(_like_pattern(term), escape="\\"),
                        )
                        for term in terms
                    )
                )
            )

        total = self.session.exec(
            select(func.count(Task.id)).where(*conditions)
        ).one()
        offset = (query.page - 1) * query.limit
        if offset > MAX_OFFSET:
            return TaskPage(tasks=[], total=total)
        tasks = self.session.exec(
            select(Task)
            .where(*conditions)
            .order_by(sort_column.desc(), Task.id.desc())
            .offset(offset)
            .limit(query.limit)
        ).all()
        return TaskPage(tasks=list(tasks), total=total)

    def update(self, task_id: Union[str, uuid.UUID], patch: TaskPatch) -> Optional[Task]:
        parsed = _parse_id(task_id)
        if parsed is None:
            return None
        values = patch.changes()
        if not values:
            return self.get(parsed)
        values["updated_at"] = utcnow()
        result = self.session.execute(
            update(Task)
            .where(*self._owned_task(parsed))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.session.rollback()
            return None
        self.session.commit()
        logger.debug("Account %s updated task %s: %s", self.account_id, parsed, sorted(values))
        return self.get(parsed)

    def delete(self, task_id: Union[str, uuid.UUID]) -> bool:
        parsed = _parse_id(task_id)
        if parsed is None:
            return False
        result = self.session.execute(
            delete(Task)
            .where(*self._owned_task(parsed))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.session.rollback()
            return False
        self.session.commit()
        logger.debug("Account %s deleted task %s", self.account_id, parsed)
        return True

    def toggle(self, task_id: Union[str, uuid.UUID]) -> Optional[Task]:
        parsed = _parse_id(task_id)
        if parsed is None:
            return None
        result = self.session.execute(
            update(Task)
            .where(*self._owned_task(parsed))
            .values(completed=not_(Task.completed), updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.session.rollback()
            return None
        self.session.commit()
        return self.get(parsed)

    def stats(self) -> TaskStats:
        rows = self.session.exec(
            select(Task.category, Task.completed, func.count(Task.id))
            .where(self._owned())
            .group_by(Task.category, Task.completed)
        ).all()

        stats = TaskStats()
        for category, completed, count in rows:
            stats.total += count
            if completed:
                stats.completed += count
            else:
                stats.pending += count
            label = category or UNCATEGORIZED
            stats.by_category[label] = stats.by_category.get(label, 0) + count
        return stats


def stats_to_dict(stats: TaskStats) -> Dict[str, Any]:
    return {
        "total": stats.total,
        "completed": stats.completed,
        "pending": stats.pending,
        "byCategory": stats.by_category,
    }


__all__ = [
    "SORT_COLUMNS",
    "TaskPage",
    "TaskQuery",
    "TaskStats",
    "TaskStore",
    "UNCATEGORIZED",
    "stats_to_dict",
    "task_to_dict",
]
