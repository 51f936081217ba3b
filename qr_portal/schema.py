"""Collections and indexes for the QR Portal database.

MongoDB creates collections lazily, so "schema" here is just the index set.
`init_db` applies it idempotently (create_index is a no-op when the index exists).

NOTE: `qrcodes.userId` is unique, i.e. one QR code per user. This mirrors the
existing deployments; see DESIGN.md before relaxing it.
"""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

from pymongo import ASCENDING, DESCENDING


USERS = "users"
QRCODES = "qrcodes"
AUDIT_LOGS = "audit_logs"

# collection -> [(keys, options)]
INDEXES: Dict[str, List[Tuple[List[Tuple[str, int]], Dict[str, Any]]]] = {
    USERS: [
        ([("email", ASCENDING)], {"unique": True}),
        ([("createdAt", ASCENDING)], {}),
        ([("isAdmin", ASCENDING)], {}),
    ],
    QRCODES: [
        ([("userId", ASCENDING)], {"unique": True}),
        ([("isPremium", ASCENDING)], {}),
    ],
    AUDIT_LOGS: [
        ([("adminId", ASCENDING), ("createdAt", DESCENDING)], {}),
        ([("createdAt", DESCENDING)], {}),
        ([("action", ASCENDING)], {}),
    ],
}


def get_index_specs() -> Dict[str, List[Tuple[List[Tuple[str, int]], Dict[str, Any]]]]:
    return INDEXES
