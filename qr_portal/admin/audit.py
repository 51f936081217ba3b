"""Append-only audit trail of admin actions.

Writes are best-effort: a failed write is logged locally and reported as False,
never raised, so the admin operation that triggered it still succeeds. Routes
schedule `create_audit_log` as a background task after the response.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from pymongo import DESCENDING
from pymongo.database import Database

from qr_portal.admin.crud import touch_last_admin_action
from qr_portal.db import audit_logs
from qr_portal.models import AuditAction, AuditStatus
from qr_portal.util import log
from qr_portal.util.time import utcnow
from qr_portal.util.validation import to_object_id


MAX_AUDIT_LIMIT = 1000


def _debug(msg: str) -> None:
    log.debug("audit", msg)


def _error(msg: str) -> None:
    log.error("audit", msg)


def create_audit_log(
    db: Database,
    action: AuditAction,
    admin_id: Any,
    target_id: Any,
    details: Optional[Mapping[str, Any]],
    ip_address: Optional[str],
    *,
    user_agent: Optional[str] = None,
    status: AuditStatus = AuditStatus.SUCCESS,
) -> bool:
    try:
        admin_oid = to_object_id(admin_id)
        if admin_oid is None:
            raise ValueError(f"invalid admin id: {admin_id!r}")
        target_oid = None
        if target_id is not None:
            target_oid = to_object_id(target_id)
            if target_oid is None:
                raise ValueError(f"invalid target id: {target_id!r}")

        entry: Dict[str, Any] = {
            "adminId": admin_oid,
            "action": AuditAction(action).value,
            "targetUserId": target_oid,
            "details": dict(details or {}),
            "ipAddress": ip_address,
            "status": AuditStatus(status).value,
            "createdAt": utcnow(),
        }
        if user_agent:
            entry["userAgent"] = user_agent
        audit_logs(db).insert_one(entry)
    except Exception as e:
        _error(f"Error creating audit log ({action}): {e}")
        return False

    try:
        touch_last_admin_action(db, admin_oid)
    except Exception as e:
        _error(f"Error updating lastAdminAction for {admin_oid}: {e}")

    _debug(f"{entry['action']} by {admin_oid} target={target_oid}")
    return True


def get_audit_logs(
    db: Database,
    admin_id: Any = None,
    action: Optional[str] = None,
    limit: int = 100,
) -> List[Dict[str, Any]]:
    """Newest first. An unknown admin id or action simply matches nothing."""
    query: Dict[str, Any] = {}
    if admin_id:
        oid = to_object_id(admin_id)
        if oid is None:
            return []
        query["adminId"] = oid
    if action:
        query["action"] = action

    capped = max(1, min(int(limit), MAX_AUDIT_LIMIT))
    return list(audit_logs(db).find(query).sort("createdAt", DESCENDING).limit(capped))
