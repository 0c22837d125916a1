"""
tasks/models.py -- Domain dataclasses and field rules for tasks.

These are pure data containers. Field rules live here as constants so the
service (tasks/service.py) and the API models (api/models.py) enforce the
same limits without importing each other.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional

STATUS_PENDING = "pending"
STATUS_IN_PROGRESS = "in-progress"
STATUS_COMPLETED = "completed"
STATUSES: tuple[str, ...] = (STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_COMPLETED)

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 100

# Fields a task owner may change through update_task().
MUTABLE_FIELDS: frozenset[str] = frozenset({"title", "description", "status"})


@dataclass
class TaskOwner:
    """Owner info joined onto tasks in the admin listing."""

    id: int
    username: str
    email: str
    role: str


@dataclass
class Task:
    """A to-do item belonging to exactly one user.

    id is None before the record is written to the database.
    owner is only populated by the admin listing (TaskStore.list_all_tasks).
    """

    title: str
    description: str
    owner_id: int
    status: str = STATUS_PENDING
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    owner: Optional[TaskOwner] = None

    def to_dict(self) -> dict:
        """Flat dict used for cache snapshots (owner is never cached)."""
        data = asdict(self)
        data.pop("owner")
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        return cls(
            id=data["id"],
            title=data["title"],
            description=data["description"],
            status=data["status"],
            owner_id=data["owner_id"],
            created_at=data.get("created_at", ""),
        )
