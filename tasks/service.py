"""
tasks/service.py -- Task operations with a per-user read-through cache.

Protocol:
  read   list_tasks(U): cache hit -> return the snapshot verbatim (possibly up
         to TTL seconds stale). Miss -> query the store, write the snapshot
         back with a fresh TTL, return it.
  write  create/update/delete for U: mutate the store, then delete U's cache
         entry. The entry is dropped, never patched in place.

update_task and delete_task invalidate even when the task was not found.
Deleting a key that was never populated is harmless, and it keeps the write
path to one shape: store call, invalidate, then decide the response.

No locking: a list_tasks miss that reads the store just before a concurrent
write can repopulate the cache with the pre-write list right after that
write's invalidation. The stale snapshot lives at most one TTL.

Admin views (list_all_tasks) bypass the cache entirely.
"""

from __future__ import annotations

import logging
from typing import Optional

from cache.store import TaskCache
from core.errors import NotFoundError, ValidationError
from tasks.models import (
    MUTABLE_FIELDS,
    STATUS_PENDING,
    STATUSES,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
    Task,
)
from tasks.store import TaskStore

logger = logging.getLogger("taskboard.tasks")


class TaskService:
    def __init__(self, store: TaskStore, cache: TaskCache) -> None:
        self.store = store
        self.cache = cache

    # ------------------------------------------------------------------
    # Per-user operations
    # ------------------------------------------------------------------

    def list_tasks(self, user_id: int) -> list[Task]:
        """Return the user's tasks, from cache when a snapshot is live."""
        cached = self.cache.get(user_id)
        if cached is not None:
            try:
                return [Task.from_dict(item) for item in cached]
            except (KeyError, TypeError):
                logger.warning("Cached task list for user %s has an unexpected shape; refetching", user_id)

        tasks = self.store.list_tasks(user_id)
        self.cache.set(user_id, [t.to_dict() for t in tasks])
        return tasks

    def create_task(self, user_id: int, title: str, description: str, status: Optional[str] = None) -> Task:
        """Validate, persist, and invalidate the owner's cached list."""
        fields = _validate_fields({"title": title, "description": description, "status": status or STATUS_PENDING})
        task = self.store.create_task(Task(owner_id=user_id, **fields))
        self.cache.invalidate(user_id)
        return task

    def update_task(self, user_id: int, task_id: int, **fields) -> Task:
        """Change only the supplied fields of a task the user owns.

        Raises ValidationError (no_fields) when nothing is supplied -- the
        store is not touched. Raises NotFoundError when the task does not
        exist or belongs to someone else.
        """
        changes = {k: v for k, v in fields.items() if v is not None}
        if not changes:
            raise ValidationError("At least one field required to update.", code="no_fields")
        changes = _validate_fields(changes)

        task = self.store.update_task(task_id, owner_id=user_id, **changes)
        self.cache.invalidate(user_id)
        if task is None:
            raise NotFoundError("Task not found.")
        return task

    def delete_task(self, user_id: int, task_id: int) -> Task:
        """Delete a task the user owns and return it. NotFoundError otherwise."""
        task = self.store.delete_task(task_id, owner_id=user_id)
        self.cache.invalidate(user_id)
        if task is None:
            raise NotFoundError("Task not found.")
        return task

    # ------------------------------------------------------------------
    # Admin operations (never cached)
    # ------------------------------------------------------------------

    def list_all_tasks(self) -> list[Task]:
        return self.store.list_all_tasks()

    def delete_any_task(self, task_id: int) -> Task:
        """Delete any task regardless of owner, then drop the owner's cached list."""
        task = self.store.delete_task(task_id)
        if task is None:
            raise NotFoundError("Task not found.")
        self.cache.invalidate(task.owner_id)
        logger.info("Task %s (owner %s) deleted by admin", task.id, task.owner_id)
        return task


def _validate_fields(fields: dict) -> dict:
    """Check task field rules and return the fields unchanged.

    Only keys present in fields are checked, so the same rules serve both a
    full create and a partial update.
    """
    unknown = set(fields) - MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown task fields: {sorted(unknown)!r}")
    if "title" in fields:
        title = fields["title"]
        if not isinstance(title, str) or not TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH:
            raise ValidationError(f"Title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters.")
    if "description" in fields:
        description = fields["description"]
        if not isinstance(description, str) or not description:
            raise ValidationError("Description is required.")
    if "status" in fields and fields["status"] not in STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(STATUSES)}.")
    return fields
