#!/usr/bin/env python3
"""
ExamBank -- question bank and exam backend.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000 --reload
  python main.py init-db
  python main.py create-user alice --real-name "Alice A" --role student

Environment variables (see core/config.py for the full list):
  DATABASE_URL     SQLAlchemy URL. Default: sqlite:///exambank.db
  BCRYPT_ROUNDS    bcrypt cost factor. Default: 12
  SECURE_COOKIES   Set true behind HTTPS so the session cookie is Secure.
"""

import argparse
import getpass
import logging
import sys

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from core.config import get_settings
from core.schema import USER_ROLES

logger = logging.getLogger("exambank.cli")


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _cmd_init_db(args: argparse.Namespace) -> int:
    from auth.store import UserStore

    settings = get_settings()
    store = UserStore(db_url=settings.database_url)
    try:
        print(f"  Schema ready at {store.engine.url.render_as_string(hide_password=True)}")
        if not store.has_users():
            print("  No users yet. Create one with: python main.py create-user <username> ...")
    finally:
        store.close()
    return 0


def _cmd_create_user(args: argparse.Namespace) -> int:
    """Create an account from the terminal, with the same rules as POST /auth/register."""
    from api.models import RegisterRequest
    from auth.models import User
    from auth.store import UserStore
    from auth.tokens import hash_password

    password = args.password or getpass.getpass("  Password: ")
    if not args.password and password != getpass.getpass("  Confirm password: "):
        print("  [!] Passwords do not match.", file=sys.stderr)
        return 1

    try:
        body = RegisterRequest(username=args.username, password=password, real_name=args.real_name, role=args.role)
    except ValidationError as exc:
        for err in exc.errors():
            field = ".".join(str(p) for p in err["loc"])
            print(f"  [!] {field}: {err['msg'].removeprefix('Value error, ')}", file=sys.stderr)
        return 1

    store = UserStore(db_url=get_settings().database_url)
    try:
        user_id = store.create_user(
            User(
                username=body.username,
                role=body.role,
                real_name=body.real_name,
                hashed_password=hash_password(body.password),
            )
        )
    except IntegrityError:
        print(f"  [!] Username '{body.username}' already exists.", file=sys.stderr)
        return 1
    finally:
        store.close()

    logger.info("Created user id=%d role=%s from CLI", user_id, body.role)
    print(f"  Created {body.role} '{body.username}' (id={user_id})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="exambank", description="ExamBank backend")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API under uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes (development)")
    serve.set_defaults(func=_cmd_serve)

    init_db = sub.add_parser("init-db", help="Create the database schema")
    init_db.set_defaults(func=_cmd_init_db)

    create_user = sub.add_parser("create-user", help="Create a user account")
    create_user.add_argument("username")
    create_user.add_argument("--real-name", required=True)
    create_user.add_argument("--role", required=True, choices=USER_ROLES)
    create_user.add_argument(
        "--password",
        help="Password (prompted for when omitted; passing it here leaves it in shell history)",
    )
    create_user.set_defaults(func=_cmd_create_user)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=get_settings().log_level.upper(), format="%(levelname)-5s %(name)s %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
