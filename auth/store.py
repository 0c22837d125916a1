"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as tasks/store.py).
UserStore is the repository; _row_to_user is the mapper. Route and
dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Email uniqueness is a UNIQUE constraint, so two concurrent registrations
  for the same address cannot both succeed -- the loser gets ConflictError.

Layer rule: no imports from api/, tasks/, or cache/.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, String, Table, Text, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import ROLE_USER, ROLES, User
from core.database import metadata, now_iso
from core.errors import ConflictError, NotFoundError, ValidationError

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(20), nullable=False, server_default=ROLE_USER),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(engine)
        user_id = store.create_user(User(username="ada", email="ada@example.com",
                                         hashed_password=hash_password("S3cret!pw")))
        user = store.get_by_email("ada@example.com")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises ConflictError if the email is already registered.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    users.insert().values(
                        username=user.username,
                        email=user.email.lower(),
                        hashed_password=user.hashed_password,
                        role=user.role,
                        created_at=now_iso(),
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise ConflictError("User already exists.") from exc
        return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by email (case-insensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.email == email.lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(users.select().where(users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by id. Admin-only operation, never cached."""
        with self.engine.connect() as conn:
            rows = conn.execute(users.select().order_by(users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(users)).scalar() or 0

    def update_username(self, user_id: int, username: str) -> User:
        """Change the display name. Raises NotFoundError if user_id is unknown."""
        return self._update(user_id, username=username)

    def change_role(self, user_id: int, role: str) -> User:
        """Set a user's role.

        The role is checked against ROLES before any write, so an invalid
        value leaves the record untouched.
        """
        if role not in ROLES:
            raise ValidationError("Invalid role.", code="invalid_role")
        return self._update(user_id, role=role)

    def _update(self, user_id: int, **fields) -> User:
        with self.engine.connect() as conn:
            result = conn.execute(users.update().where(users.c.id == user_id).values(**fields))
            conn.commit()
        if result.rowcount == 0:
            raise NotFoundError("User not found.")
        updated = self.get_by_id(user_id)
        if updated is None:
            raise NotFoundError("User not found.")
        return updated


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.hashed_password,
        role=row.role,
        created_at=row.created_at,
    )
