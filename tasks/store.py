"""
tasks/store.py -- SQLAlchemy-backed persistence layer for tasks.

Uses SQLAlchemy Core (not ORM) so the dataclasses in tasks/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. TaskStore is the repository; the _row_to_*
functions are the mappers. Route handlers never touch SQL directly.

Ownership scoping: every per-user mutation filters on (id, owner_id) in a
single statement. A task owned by someone else is indistinguishable from a
task that does not exist -- both come back as None.

This store is the system of record. Caching lives one level up in
tasks/service.py; nothing here knows the cache exists.

Security: all queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text, select
from sqlalchemy.engine import Engine

from auth.store import users
from core.database import metadata, now_iso
from tasks.models import STATUS_PENDING, Task, TaskOwner

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

tasks = Table(
    "tasks",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(100), nullable=False),
    Column("description", Text, nullable=False),
    Column("status", String(20), nullable=False, server_default=STATUS_PENDING),
    Column("owner_id", Integer, ForeignKey("users.id"), nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class TaskStore:
    """Repository for Task entities.

    Usage:
        store = TaskStore(engine)
        task = store.create_task(Task(title="Buy milk", description="2%", owner_id=1))
        store.list_tasks(owner_id=1)
        store.update_task(task.id, owner_id=1, status="completed")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_task(self, task: Task) -> Task:
        """Insert a task and return it with id and created_at filled in."""
        created_at = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                tasks.insert().values(
                    title=task.title,
                    description=task.description,
                    status=task.status,
                    owner_id=task.owner_id,
                    created_at=created_at,
                )
            )
            conn.commit()
        return Task(
            id=result.inserted_primary_key[0],
            title=task.title,
            description=task.description,
            status=task.status,
            owner_id=task.owner_id,
            created_at=created_at,
        )

    def list_tasks(self, owner_id: int) -> list[Task]:
        """Return every task owned by owner_id, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(tasks.select().where(tasks.c.owner_id == owner_id).order_by(tasks.c.id)).fetchall()
        return [_row_to_task(r) for r in rows]

    def get_task(self, task_id: int, owner_id: Optional[int] = None) -> Optional[Task]:
        """Fetch one task, optionally scoped to an owner. Returns None if not found."""
        stmt = tasks.select().where(tasks.c.id == task_id)
        if owner_id is not None:
            stmt = stmt.where(tasks.c.owner_id == owner_id)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_task(row) if row is not None else None

    def update_task(self, task_id: int, owner_id: int, **fields) -> Optional[Task]:
        """Apply fields to the task if (and only if) owner_id owns it.

        Returns the updated Task, or None when no row matched (absent or not
        owned -- deliberately the same answer).
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                tasks.update().where((tasks.c.id == task_id) & (tasks.c.owner_id == owner_id)).values(**fields)
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_task(task_id, owner_id=owner_id)

    def delete_task(self, task_id: int, owner_id: Optional[int] = None) -> Optional[Task]:
        """Delete a task and return what was deleted, or None if nothing matched.

        owner_id=None deletes without ownership scoping (admin path).
        """
        condition = tasks.c.id == task_id
        if owner_id is not None:
            condition = condition & (tasks.c.owner_id == owner_id)
        with self.engine.begin() as conn:
            row = conn.execute(tasks.select().where(condition)).fetchone()
            if row is None:
                return None
            result = conn.execute(tasks.delete().where(condition))
        if result.rowcount == 0:
            return None
        return _row_to_task(row)

    def list_all_tasks(self) -> list[Task]:
        """Return every task with its owner's info joined in. Admin only."""
        stmt = (
            select(
                tasks,
                users.c.username.label("owner_username"),
                users.c.email.label("owner_email"),
                users.c.role.label("owner_role"),
            )
            .select_from(tasks.outerjoin(users, tasks.c.owner_id == users.c.id))
            .order_by(tasks.c.id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_task_with_owner(r) for r in rows]


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_task(row) -> Task:
    return Task(
        id=row.id,
        title=row.title,
        description=row.description,
        status=row.status,
        owner_id=row.owner_id,
        created_at=row.created_at,
    )


def _row_to_task_with_owner(row) -> Task:
    task = _row_to_task(row)
    if row.owner_username is not None:
        task.owner = TaskOwner(
            id=row.owner_id,
            username=row.owner_username,
            email=row.owner_email,
            role=row.owner_role,
        )
    return task
