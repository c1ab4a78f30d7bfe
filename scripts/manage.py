"""Operator commands for the storefront database.

Usage:
    python scripts/manage.py init-db
    python scripts/manage.py create-user --username alice --email alice@example.com --password '...' --role admin
    python scripts/manage.py promote --email alice@example.com --role editor
"""
from __future__ import annotations
import argparse
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from werkzeug.security import generate_password_hash

from storefront.extensions import db
from storefront.core import validators
from storefront.core.storage import users as user_store


def init_db(app) -> None:
    with app.app_context():
        db.create_all()
    print("[manage] Tables created", file=sys.stderr)


def create_user(app, username: str, email: str, password: str, role: str = "user") -> int:
    with app.app_context():
        username = validators.normalize_username(username)
        email = validators.validate_email(email)
        role = validators.validate_role(role)
        if user_store.get_user_by_username(username) or user_store.get_user_by_email(email):
            raise SystemExit(f"[manage] User '{username}' or email '{email}' already exists")
        user = user_store.insert_user(
            username,
            email,
            generate_password_hash(validators.validate_password(password)),
            role=role,
        )
        print(f"[manage] Created user '{username}' (id={user.id}, role={role})", file=sys.stderr)
        return user.id


def promote(app, email: str, role: str) -> None:
    with app.app_context():
        role = validators.validate_role(role)
        user = user_store.get_user_by_email(email)
        if user is None:
            raise SystemExit(f"[manage] No user with email '{email}'")
        user_store.update_user(user.id, role=role)
        print(f"[manage] Role of '{user.username}' set to {role}", file=sys.stderr)


def main(argv=None) -> None:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Storefront database helper")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init-db", help="Create all tables")

    cu = sub.add_parser("create-user", help="Create a local account")
    cu.add_argument("--username", required=True)
    cu.add_argument("--email", required=True)
    cu.add_argument("--password", required=True)
    cu.add_argument("--role", default="user")

    pr = sub.add_parser("promote", help="Change the role of an account")
    pr.add_argument("--email", required=True)
    pr.add_argument("--role", required=True)

    args = parser.parse_args(argv)

    from storefront.flask_app import app

    try:
        if args.cmd == "init-db":
            init_db(app)
        elif args.cmd == "create-user":
            create_user(app, args.username, args.email, args.password, args.role)
        elif args.cmd == "promote":
            promote(app, args.email, args.role)
    except ValueError as exc:
        raise SystemExit(f"[manage] {exc}")


if __name__ == "__main__":
    main()
