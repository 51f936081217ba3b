"""Create a user in the MongoDB users collection.

Usage:
  python scripts/create_user.py --email alice@example.com --password '...' [--name Alice] [--admin]

--admin promotes the new account with the default admin permissions.
NOTE: This is intended for local/dev and for bootstrapping the first admin.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from qr_portal.admin.crud import promote_to_admin
from qr_portal.auth.crud import create_user, find_user_by_id, public_user
from qr_portal.auth.security import hash_password
from qr_portal.config import load_config
from qr_portal.db import get_database, init_db
from qr_portal.util.validation import is_valid_email, validate_password


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--name", default=None)
    ap.add_argument("--admin", action="store_true", help="grant admin with the default permissions")
    args = ap.parse_args()

    if not is_valid_email(args.email):
        ap.error("invalid email address")
    ok, reason = validate_password(args.password)
    if not ok:
        ap.error(reason or "weak password")

    cfg = load_config()
    db = get_database(cfg)
    init_db(db)

    u = create_user(db, email=args.email, password_hash=hash_password(args.password), name=args.name)
    if args.admin:
        promote_to_admin(db, u["_id"])
        u = find_user_by_id(db, u["_id"]) or u

    print("Created user:")
    print(public_user(u))


if __name__ == "__main__":
    main()
