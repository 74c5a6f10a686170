from __future__ import annotations

from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .db_models import TaskDB, UserDB, now_utc
from .models import Task


# --- Session dependency ----------------------------------------------------


def get_db():
    """Yield a SQLAlchemy session (used as a FastAPI dependency)."""
    from .db import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# --- Users -----------------------------------------------------------------


def get_user_by_email(db: Session, email: str) -> Optional[UserDB]:
    return db.query(UserDB).filter(UserDB.email == email).one_or_none()


def get_user(db: Session, user_id: int) -> Optional[UserDB]:
    return db.get(UserDB, user_id)


def create_user(db: Session, *, username: str, email: str, password_hash: str, role: str) -> UserDB:
    """Insert a user; the unique index on email raises IntegrityError on a duplicate."""
    row = UserDB(
        username=username,
        email=email,
        password_hash=password_hash,
        role=role,
        created_at=now_utc(),
    )
    db.add(row)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(row)
    return row


# --- CRUD: Tasks (always scoped by owner) ----------------------------------


def list_tasks(db: Session, *, owner_id: int) -> List[TaskDB]:
    """Return every task owned by `owner_id`, oldest first."""
    return (
        db.query(TaskDB)
        .filter(TaskDB.owner_id == owner_id)
        .order_by(TaskDB.created_at.asc(), TaskDB.id.asc())
        .all()
    )


def create_task(db: Session, data, *, owner_id: int) -> TaskDB:
    """Create a task from a TaskIn-like object; the owner comes from the caller's identity."""
    now = now_utc()
    row = TaskDB(
        title=data.title,
        description=data.description,
        responsible=data.responsible,
        status=data.status,
        start_date=data.start_date,
        end_date=data.end_date,
        deadline=data.deadline,
        owner_id=owner_id,
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def get_task(db: Session, task_id: int, *, owner_id: int) -> Optional[TaskDB]:
    """Fetch a task only if it exists AND belongs to `owner_id`."""
    return (
        db.query(TaskDB)
        .filter(TaskDB.id == task_id, TaskDB.owner_id == owner_id)
        .one_or_none()
    )


def replace_task(db: Session, task_id: int, data, *, owner_id: int) -> Optional[TaskDB]:
    """Full replace of a task (PUT). Returns updated row or None if not found/not owned.

    Last write wins; owner_id is never touched.
    """
    row = get_task(db, task_id, owner_id=owner_id)
    if not row:
        return None
    row.title = data.title
    row.description = data.description
    row.responsible = data.responsible
    row.status = data.status
    row.start_date = data.start_date
    row.end_date = data.end_date
    row.deadline = data.deadline
    row.updated_at = now_utc()
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def delete_task(db: Session, task_id: int, *, owner_id: int) -> Optional[Task]:
    """Delete a task; returns None if not found/not owned.

    Unlike the other task helpers this returns a `Task` schema, not a `TaskDB` row:
    the snapshot is taken before the delete so the caller can echo the removed record.
    """
    row = get_task(db, task_id, owner_id=owner_id)
    if not row:
        return None
    snapshot = Task.model_validate(row)
    db.delete(row)
    db.commit()
    return snapshot
