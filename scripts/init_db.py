"""Create the MongoDB indexes (users, qrcodes, audit_logs).

Usage:
  python scripts/init_db.py

Safe to re-run: existing indexes are left as they are.
"""

import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from qr_portal.config import load_config
from qr_portal.db import get_database, init_db
from qr_portal.schema import get_index_specs


def main() -> None:
    cfg = load_config()
    db = get_database(cfg)
    init_db(db)

    print(f"DB initialized: {db.name}")
    for collection, specs in get_index_specs().items():
        keys = ", ".join(
            "(" + ", ".join(f"{field} {direction}" for field, direction in k) + ")" + (" unique" if opts.get("unique") else "")
            for k, opts in specs
        )
        print(f"  {collection}: {keys}")


if __name__ == "__main__":
    main()
