"""Service layer for task operations.

Every per-task operation confirms the task exists before asking the access
gate, so callers see 404 for missing tasks and 403 only for tasks that exist
but belong to someone else.
"""

import logging
from typing import List, Optional, Union

from prometheus_client import Counter
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .access import ensure_can_access
from .errors import Forbidden, InternalError, NotFound, TaskHubError, ValidationError
from .models.task import Task
from .schemas import (
    DEFAULT_PAGE_SIZE,
    PageMeta,
    TaskCreate,
    TaskFilters,
    TaskOut,
    TaskPage,
    TaskUpdate,
    parse,
)
from .stores import TaskStore
from .tokens import Principal

logger = logging.getLogger(__name__)

TASK_CREATED_COUNTER = Counter("tasks_created_total", "Total tasks created")
TASK_DELETED_COUNTER = Counter("tasks_deleted_total", "Total tasks deleted")


def _handle_service_error(session: Session, exc: Exception) -> None:
    """Rollback the transaction and re-raise as a service error."""
    session.rollback()
    if isinstance(exc, TaskHubError):
        raise exc
    logger.exception("service layer error", exc_info=exc)
    if isinstance(exc, SQLAlchemyError):
        raise InternalError("Database error") from exc
    raise InternalError() from exc


def _load_accessible(store: TaskStore, principal: Principal, task_id: int) -> Task:
    task = store.get(task_id)
    if task is None:
        raise NotFound("Task not found")
    ensure_can_access(principal.id, principal.role, task.user_id)
    return task


def create_task(
    session: Session,
    owner_id: int,
    title: str,
    description: Optional[str] = None,
    status: Optional[str] = None,
) -> TaskOut:
    """Persist a new task owned by ``owner_id``."""
    data = {"title": title, "description": description}
    if status is not None:
        data["status"] = status
    payload = parse(TaskCreate, data)

    try:
        task = TaskStore(session).insert(
            owner_id, payload.title, payload.description, payload.status.value
        )
        TASK_CREATED_COUNTER.inc()
        logger.info("created task id=%s owner=%s", task.id, owner_id)
        return TaskOut.model_validate(task)
    except Exception as exc:
        _handle_service_error(session, exc)


def list_tasks(
    session: Session,
    principal: Principal,
    status: Optional[str] = None,
    all: Union[bool, str] = False,
    page: Union[int, str] = 1,
    limit: Union[int, str] = DEFAULT_PAGE_SIZE,
) -> TaskPage:
    """Return a page of tasks visible to ``principal``.

    ``all`` widens the query to every owner only for admins; for anyone else
    it is ignored.
    """
    filters = parse(
        TaskFilters, {"status": status, "all": all, "page": page, "limit": limit}
    )
    owner_id = None if (filters.all and principal.is_admin) else principal.id

    try:
        rows, total = TaskStore(session).query_page(
            owner_id=owner_id,
            status=filters.status.value if filters.status else None,
            offset=filters.offset,
            limit=filters.limit,
        )
        return TaskPage(
            data=[TaskOut.model_validate(row) for row in rows],
            meta=PageMeta(page=filters.page, limit=filters.limit, total=total),
        )
    except Exception as exc:
        _handle_service_error(session, exc)


def list_all_tasks(session: Session, principal: Principal) -> List[TaskOut]:
    """Every task newest first, admins only."""
    if not principal.is_admin:
        logger.warning("non-admin %s asked for all tasks", principal.id)
        raise Forbidden("Access denied. Required role: admin")
    try:
        return [TaskOut.model_validate(row) for row in TaskStore(session).all()]
    except Exception as exc:
        _handle_service_error(session, exc)


def get_task(session: Session, principal: Principal, task_id: int) -> TaskOut:
    try:
        task = _load_accessible(TaskStore(session), principal, task_id)
        return TaskOut.model_validate(task)
    except Exception as exc:
        _handle_service_error(session, exc)


def update_task(
    session: Session, principal: Principal, task_id: int, patch: Optional[dict]
) -> TaskOut:
    """Apply the fields present in ``patch``; omitted fields are untouched."""
    changes = parse(TaskUpdate, patch or {}).model_dump(mode="json", exclude_unset=True)

    try:
        store = TaskStore(session)
        task = _load_accessible(store, principal, task_id)
        if not changes:
            raise ValidationError("No fields to update")
        task = store.update(task, changes)
        logger.info("updated task id=%s fields=%s", task_id, sorted(changes))
        return TaskOut.model_validate(task)
    except Exception as exc:
        _handle_service_error(session, exc)


def delete_task(session: Session, principal: Principal, task_id: int) -> None:
    try:
        store = TaskStore(session)
        task = _load_accessible(store, principal, task_id)
        store.delete(task)
        TASK_DELETED_COUNTER.inc()
        logger.info("deleted task id=%s by=%s", task_id, principal.id)
    except Exception as exc:
        _handle_service_error(session, exc)
