"""Unit tests for auth/store.py and tasks/store.py.

Covers:
- Email uniqueness (case-insensitive) raises ConflictError
- change_role() validates before writing; unknown users are NotFoundError
- Task mutations are scoped to (id, owner_id) in one statement
- list_all_tasks() joins owner info
"""

import pytest

from auth.models import User
from conftest import make_user
from core.errors import ConflictError, NotFoundError, ValidationError
from tasks.models import Task


class TestUserStore:
    def test_create_and_fetch(self, user_store) -> None:
        uid = user_store.create_user(User(username="ada", email="Ada@Example.com", hashed_password="h"))
        user = user_store.get_by_id(uid)
        assert user.email == "ada@example.com"
        assert user.role == "user"
        assert user.created_at

    def test_duplicate_email_is_conflict(self, user_store) -> None:
        user_store.create_user(User(username="ada", email="ada@example.com", hashed_password="h"))
        with pytest.raises(ConflictError):
            user_store.create_user(User(username="other", email="ADA@example.com", hashed_password="h"))
        assert user_store.count_users() == 1

    def test_update_username(self, user_store) -> None:
        uid = make_user(user_store, "before")
        assert user_store.update_username(uid, "after").username == "after"

    def test_update_username_unknown_user(self, user_store) -> None:
        with pytest.raises(NotFoundError):
            user_store.update_username(9999, "ghost")

    def test_change_role(self, user_store) -> None:
        uid = make_user(user_store)
        assert user_store.change_role(uid, "admin").role == "admin"

    def test_invalid_role_leaves_record_unchanged(self, user_store) -> None:
        uid = make_user(user_store)
        with pytest.raises(ValidationError) as excinfo:
            user_store.change_role(uid, "superuser")
        assert excinfo.value.code == "invalid_role"
        assert user_store.get_by_id(uid).role == "user"

    def test_change_role_unknown_user(self, user_store) -> None:
        with pytest.raises(NotFoundError):
            user_store.change_role(9999, "admin")

    def test_list_users_in_id_order(self, user_store) -> None:
        first = make_user(user_store, "first")
        second = make_user(user_store, "second")
        assert [u.id for u in user_store.list_users()] == [first, second]


class TestTaskStore:
    def test_list_is_scoped_to_owner(self, user_store, task_store) -> None:
        a = make_user(user_store, "usera")
        b = make_user(user_store, "userb")
        task_store.create_task(Task(title="Mine", description="a", owner_id=a))
        task_store.create_task(Task(title="Theirs", description="b", owner_id=b))
        assert [t.title for t in task_store.list_tasks(a)] == ["Mine"]

    def test_update_requires_ownership(self, user_store, task_store) -> None:
        a = make_user(user_store, "usera")
        b = make_user(user_store, "userb")
        task = task_store.create_task(Task(title="Mine", description="a", owner_id=a))
        assert task_store.update_task(task.id, owner_id=b, title="Stolen") is None
        assert task_store.get_task(task.id).title == "Mine"

    def test_delete_requires_ownership(self, user_store, task_store) -> None:
        a = make_user(user_store, "usera")
        b = make_user(user_store, "userb")
        task = task_store.create_task(Task(title="Mine", description="a", owner_id=a))
        assert task_store.delete_task(task.id, owner_id=b) is None
        assert task_store.get_task(task.id) is not None

    def test_unscoped_delete_returns_deleted_task(self, user_store, task_store) -> None:
        a = make_user(user_store, "usera")
        task = task_store.create_task(Task(title="Mine", description="a", owner_id=a))
        deleted = task_store.delete_task(task.id)
        assert deleted.owner_id == a
        assert task_store.get_task(task.id) is None

    def test_owner_delete_is_committed_once(self, user_store, task_store) -> None:
        a = make_user(user_store, "usera")
        task = task_store.create_task(Task(title="Mine", description="a", owner_id=a))
        deleted = task_store.delete_task(task.id, owner_id=a)
        assert (deleted.id, deleted.title) == (task.id, "Mine")
        assert task_store.list_tasks(a) == []
        assert task_store.delete_task(task.id, owner_id=a) is None

    def test_list_all_tasks_joins_owner(self, user_store, task_store) -> None:
        a = make_user(user_store, "usera")
        task_store.create_task(Task(title="Mine", description="a", owner_id=a))
        [task] = task_store.list_all_tasks()
        assert task.owner.id == a
        assert task.owner.username == "usera"
        assert task.owner.role == "user"
