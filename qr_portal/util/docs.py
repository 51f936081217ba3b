"""JSON-safe views of MongoDB documents."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Mapping

from bson import ObjectId

from qr_portal.util.time import to_iso


def jsonable(value: Any) -> Any:
    """ObjectIds become hex strings, datetimes ISO-8601; containers recurse."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    if isinstance(value, Mapping):
        return {str(k): jsonable(v) for k, v in value.items()}
    return value


def public_doc(doc: Mapping[str, Any], *, exclude: Iterable[str] = ()) -> Dict[str, Any]:
    """Rename `_id` to `id` and drop `exclude` keys."""
    skip = {"_id", *exclude}
    out: Dict[str, Any] = {}
    if doc.get("_id") is not None:
        out["id"] = str(doc["_id"])
    out.update(jsonable({k: v for k, v in doc.items() if k not in skip}))
    return out
