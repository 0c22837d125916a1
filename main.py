#!/usr/bin/env python3
"""
Taskboard -- multi-user task tracking API.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000
  python main.py serve --reload
  python main.py create-user alice alice@example.com
  python main.py create-user root root@example.com --admin

Environment variables (see core/config.py for the full list):
  SECRET_KEY    Token signing key, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL  SQLAlchemy URL. Defaults to a SQLite file next to this script.
  REDIS_URL     Optional. Without it the API runs without the task list cache.
"""

import argparse
import getpass
import sys

_MIN_PASSWORD_LENGTH = 8


def _prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("  [!] Passwords do not match. Try again.", file=sys.stderr)
            continue
        if len(password) < _MIN_PASSWORD_LENGTH:
            print(f"  [!] Password must be at least {_MIN_PASSWORD_LENGTH} characters long.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_create_user(args: argparse.Namespace) -> int:
    """Create an account directly in the database.

    This is how the first administrator is bootstrapped: the HTTP API only
    lets an existing admin promote other users.
    """
    from auth.models import ROLE_ADMIN, ROLE_USER, User
    from auth.store import UserStore
    from auth.tokens import hash_password
    from core.config import get_settings
    from core.database import create_schema, make_engine
    from core.errors import ConflictError

    # Registers the tasks table on the shared metadata so the schema is complete.
    import tasks.store  # noqa: F401

    password = _prompt_for_password()
    engine = make_engine(get_settings().database_url)
    create_schema(engine)
    store = UserStore(engine)
    role = ROLE_ADMIN if args.admin else ROLE_USER
    try:
        user_id = store.create_user(
            User(
                username=args.username.strip(),
                email=args.email.strip().lower(),
                role=role,
                hashed_password=hash_password(password),
            )
        )
    except ConflictError:
        print(f"  [!] A user with email '{args.email}' already exists.", file=sys.stderr)
        return 1
    finally:
        engine.dispose()

    print(f"Created {role} #{user_id}: {args.username} <{args.email.lower()}>")
    return 0


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Taskboard -- multi-user task tracking API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development)")
    serve.set_defaults(func=cmd_serve)

    create = sub.add_parser("create-user", help="Create a user account (prompts for a password)")
    create.add_argument("username", help="Display name")
    create.add_argument("email", help="Unique email address used to log in")
    create.add_argument("--admin", action="store_true", help="Grant the admin role")
    create.set_defaults(func=cmd_create_user)

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
