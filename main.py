#!/usr/bin/env python3
"""
Donation portal -- management CLI.

Operates on the same database the API uses (DATABASE_URL) and goes through
the same services, so every rule the API enforces applies here too.

Usage:
  python main.py create-user admin@example.org --role admin
  python main.py create-user donor@example.org --full-name "Ada Donor" --blood-group O+
  python main.py list-users
  python main.py list-donations --status pending
  python main.py list-donations --json
  python main.py list-messages --limit 20
  python main.py serve --port 3000

Environment variables:
  SECRET_KEY    Signing key (>= 32 chars). Required unless DEBUG=true.
  DATABASE_URL  SQLAlchemy URL. Defaults to donation_portal.db in the repo root.
"""

import argparse
import getpass
import json
import sys
from dataclasses import asdict
from typing import Optional

from auth.models import PROFILE_FIELDS, ROLES, Principal
from auth.service import CredentialService
from auth.store import UserStore
from contact.store import ContactStore
from core.config import get_settings
from core.errors import PortalError
from donations.lifecycle import DonationLifecycle
from donations.models import STATUSES
from donations.store import DonationStore

# The CLI acts with admin rights; it is not a user and has no id of its own.
_OPERATOR = Principal(subject_id=0, role="admin")


def _print_rows(rows: list[dict], columns: list[str]) -> None:
    if not rows:
        print("  (none)")
        return
    widths = {c: max(len(c), *(len(str(r.get(c) or "")) for r in rows)) for c in columns}
    print("  " + "  ".join(c.upper().ljust(widths[c]) for c in columns))
    for r in rows:
        print("  " + "  ".join(str(r.get(c) or "").ljust(widths[c]) for c in columns))


def _cmd_create_user(args: argparse.Namespace, user_store: UserStore) -> int:
    password = args.password or getpass.getpass("Password: ")
    profile = {f: getattr(args, f) for f in PROFILE_FIELDS if getattr(args, f) is not None}
    credentials = CredentialService(user_store, get_settings())
    # ADMIN_SIGNUP_ENABLED only governs the public signup route.
    user = credentials.register_credential(args.email, password, args.role, profile, self_service=False)
    print(f"  Created {user.role} {user.email} (id={user.id})")
    return 0


def _cmd_list_users(args: argparse.Namespace, user_store: UserStore) -> int:
    rows = [{k: v for k, v in asdict(u).items() if k != "hashed_password"} for u in user_store.list_users()]
    if args.json:
        print(json.dumps(rows, indent=2))
    else:
        _print_rows(rows, ["id", "email", "role", "full_name", "blood_group", "created_at"])
    return 0


def _cmd_list_donations(args: argparse.Namespace, user_store: UserStore) -> int:
    donation_store = DonationStore(get_settings().database_url)
    try:
        lifecycle = DonationLifecycle(donation_store, user_store)
        rows = [asdict(d) for d in lifecycle.list_all_requests(_OPERATOR, status=args.status)]
    finally:
        donation_store.close()
    if args.json:
        print(json.dumps(rows, indent=2))
    else:
        _print_rows(rows, ["id", "status", "type", "email", "hospital", "preferred_date", "time", "created_at"])
    return 0


def _cmd_list_messages(args: argparse.Namespace, user_store: UserStore) -> int:
    contact_store = ContactStore(get_settings().database_url)
    try:
        rows = [asdict(m) for m in contact_store.list_messages(limit=args.limit)]
    finally:
        contact_store.close()
    if args.json:
        print(json.dumps(rows, indent=2))
    else:
        _print_rows(rows, ["id", "created_at", "name", "email", "subject", "message"])
    return 0


def _cmd_serve(args: argparse.Namespace, user_store: UserStore) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="donation-portal",
        description="Manage the donation portal database and run the API server.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("create-user", help="Create a donor or admin account")
    p.add_argument("email")
    p.add_argument("--role", choices=sorted(ROLES), default="donor")
    p.add_argument("--password", help="Omit to be prompted (keeps it out of shell history)")
    p.add_argument("--full-name", dest="full_name")
    p.add_argument("--contact")
    p.add_argument("--address")
    p.add_argument("--blood-group", dest="blood_group")
    p.set_defaults(func=_cmd_create_user)

    p = sub.add_parser("list-users", help="List accounts (password hashes omitted)")
    p.add_argument("--json", action="store_true", help="Output JSON")
    p.set_defaults(func=_cmd_list_users)

    p = sub.add_parser("list-donations", help="List donation requests, newest first")
    p.add_argument("--status", choices=sorted(STATUSES))
    p.add_argument("--json", action="store_true", help="Output JSON")
    p.set_defaults(func=_cmd_list_donations)

    p = sub.add_parser("list-messages", help="List contact-form messages, newest first")
    p.add_argument("--limit", type=int, default=50)
    p.add_argument("--json", action="store_true", help="Output JSON")
    p.set_defaults(func=_cmd_list_messages)

    p = sub.add_parser("serve", help="Run the API with uvicorn")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=3000)
    p.add_argument("--reload", action="store_true")
    p.set_defaults(func=_cmd_serve)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    user_store = UserStore(get_settings().database_url)
    try:
        return args.func(args, user_store)
    except PortalError as exc:
        print(f"  [!] {exc.message}", file=sys.stderr)
        return 1
    finally:
        user_store.close()


if __name__ == "__main__":
    sys.exit(main())
