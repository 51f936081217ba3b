"""Admin-side data access: user moderation and the audit trail.

Authorization for these operations lives in `qr_portal.auth.deps`
(`require_admin`); the functions here assume the caller has been checked.
"""

from .audit import create_audit_log, get_audit_logs
from .crud import (
    demote_from_admin,
    find_admin_by_id,
    get_all_users,
    get_user_count,
    promote_to_admin,
    update_user_verification_status,
)

__all__ = [
    "create_audit_log",
    "get_audit_logs",
    "demote_from_admin",
    "find_admin_by_id",
    "get_all_users",
    "get_user_count",
    "promote_to_admin",
    "update_user_verification_status",
]
