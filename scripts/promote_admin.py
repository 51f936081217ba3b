"""Grant or revoke admin for an existing user.

Usage:
  python scripts/promote_admin.py --email alice@example.com [--permission manage_admins ...]
  python scripts/promote_admin.py --email alice@example.com --demote

Without --permission the default admin permissions are granted.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from qr_portal.admin.crud import demote_from_admin, promote_to_admin
from qr_portal.auth.crud import find_user_by_email, find_user_by_id, public_user
from qr_portal.config import load_config
from qr_portal.db import get_database
from qr_portal.models import DEFAULT_ADMIN_PERMISSIONS, AdminPermission


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True)
    ap.add_argument(
        "--permission",
        action="append",
        choices=[p.value for p in AdminPermission],
        help="repeatable; defaults to the standard admin set",
    )
    ap.add_argument("--demote", action="store_true")
    args = ap.parse_args()

    cfg = load_config()
    db = get_database(cfg)

    user = find_user_by_email(db, args.email)
    if user is None:
        print(f"No user with email {args.email}")
        sys.exit(1)

    if args.demote:
        demote_from_admin(db, user["_id"])
        print(f"Demoted: {user['email']}")
    else:
        perms = [AdminPermission(p) for p in args.permission] if args.permission else DEFAULT_ADMIN_PERMISSIONS
        promote_to_admin(db, user["_id"], perms)
        print(f"Promoted: {user['email']} ({', '.join(p.value for p in perms)})")

    refreshed = find_user_by_id(db, user["_id"])
    if refreshed is not None:
        print(public_user(refreshed))


if __name__ == "__main__":
    main()
