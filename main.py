#!/usr/bin/env python3
"""
JobBoard -- operator command line.

Usage:
  python main.py serve [--host 127.0.0.1] [--port 8000] [--reload]
  python main.py create-user --name "Rita Recruiter" --email rita@example.com --role recruiter
  python main.py issue-token --user-id 3

Self-registration over HTTP always creates candidates. Recruiter accounts are
provisioned here. The password is read with getpass (or from the
JOBBOARD_PASSWORD environment variable for scripted setups) and is never
accepted as a command-line argument, where it would land in shell history.

Environment variables:
  DATABASE_URL, SECRET_KEY, DEBUG, BCRYPT_ROUNDS -- see core/config.py
  JOBBOARD_PASSWORD  Optional non-interactive password for create-user.
"""

import argparse
import getpass
import os
import sys
from typing import Optional

from auth.models import Role, User, validate_user
from auth.passwords import Password
from auth.store import DuplicateEmail, UserStore
from auth.tokens import TokenService
from core.config import get_settings
from core.validator import Validator


def _read_password() -> Optional[str]:
    env_password = os.environ.get("JOBBOARD_PASSWORD")
    if env_password:
        return env_password
    first = getpass.getpass("  Password: ")
    second = getpass.getpass("  Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return None
    return first


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_create_user(args: argparse.Namespace) -> int:
    """Validate, hash and insert one account. Returns a process exit code."""
    password = _read_password()
    if password is None:
        return 1

    user = User(
        name=args.name.strip(),
        email=args.email.strip(),
        role=Role(args.role),
        password=Password(plaintext=password),
    )
    v = Validator()
    validate_user(v, user)
    if not v.valid():
        for field, message in v.errors.items():
            print(f"  [!] {field}: {message}")
        return 1

    user.password.set(password)
    store = UserStore()
    try:
        store.create_user(user)
    except DuplicateEmail:
        print(f"  [!] A user with email '{user.email}' already exists.")
        return 1
    finally:
        store.close()

    print(f"  Created {user.role.value} #{user.id} <{user.email}>")
    return 0


def cmd_issue_token(args: argparse.Namespace) -> int:
    """Print a bearer token for an existing account."""
    settings = get_settings()
    store = UserStore()
    try:
        user = store.get_by_id(args.user_id)
    finally:
        store.close()
    if user is None:
        print(f"  [!] No user with id {args.user_id}.")
        return 1
    tokens = TokenService(settings.secret_key, settings.token_expire_seconds)
    print(tokens.issue(user.id, user.role))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jobboard", description="JobBoard operator commands.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(func=cmd_serve)

    create = sub.add_parser("create-user", help="Create an account (e.g. a recruiter).")
    create.add_argument("--name", required=True)
    create.add_argument("--email", required=True)
    create.add_argument("--role", choices=[r.value for r in Role], default=Role.candidate.value)
    create.set_defaults(func=cmd_create_user)

    token = sub.add_parser("issue-token", help="Print a bearer token for an existing account.")
    token.add_argument("--user-id", type=int, required=True)
    token.set_defaults(func=cmd_issue_token)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
