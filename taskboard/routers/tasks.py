# PURPOSE: /api/task CRUD. Every route sits behind the auth gate and only
# ever touches rows owned by the caller.

import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..api.deps import parse_task_id
from ..api.errors import NotFoundOrForbiddenError
from ..auth import get_current_identity
from ..models import Task, TaskIn, TokenClaims
from ..store_db import (
    get_db,
    list_tasks as db_list_tasks,
    create_task as db_create_task,
    get_task as db_get_task,
    replace_task as db_replace_task,
    delete_task as db_delete_task,
)

logger = logging.getLogger("taskboard.tasks")

router = APIRouter(
    prefix="/task",
    tags=["tasks"],
    dependencies=[Depends(get_current_identity)],
)


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
def create_task(
    item: TaskIn,
    response: Response,
    db: Session = Depends(get_db),
    identity: TokenClaims = Depends(get_current_identity),
):
    task = db_create_task(db, item, owner_id=identity.identity_id)
    logger.info("task created id=%s owner=%s", task.id, identity.identity_id)
    response.headers["Location"] = f"/api/task/{task.id}"
    return task


@router.get("", response_model=List[Task])
def list_tasks(
    db: Session = Depends(get_db),
    identity: TokenClaims = Depends(get_current_identity),
):
    return db_list_tasks(db, owner_id=identity.identity_id)


@router.get("/{task_id}", response_model=Task)
def get_task(
    task_id: int = Depends(parse_task_id),
    db: Session = Depends(get_db),
    identity: TokenClaims = Depends(get_current_identity),
):
    task = db_get_task(db, task_id, owner_id=identity.identity_id)
    if not task:
        raise NotFoundOrForbiddenError("Task not found or you are not authorized to view it.")
    return task


@router.put("/{task_id}", response_model=Task)
def put_task(
    item: TaskIn,
    task_id: int = Depends(parse_task_id),
    db: Session = Depends(get_db),
    identity: TokenClaims = Depends(get_current_identity),
):
    updated = db_replace_task(db, task_id, item, owner_id=identity.identity_id)
    if not updated:
        raise NotFoundOrForbiddenError("Task not found or you are not authorized to update it.")
    logger.info("task updated id=%s owner=%s", task_id, identity.identity_id)
    return updated


@router.delete("/{task_id}", response_model=Task)
def delete_task(
    task_id: int = Depends(parse_task_id),
    db: Session = Depends(get_db),
    identity: TokenClaims = Depends(get_current_identity),
):
    deleted = db_delete_task(db, task_id, owner_id=identity.identity_id)
    if not deleted:
        raise NotFoundOrForbiddenError("Task not found or you are not authorized to delete it.")
    logger.info("task deleted id=%s owner=%s", task_id, identity.identity_id)
    return deleted
