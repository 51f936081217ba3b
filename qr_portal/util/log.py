"""Local diagnostic output.

Modules keep the usual `_debug(msg)` helper; it forwards here so that every
line is redacted and nothing is printed outside development.
"""

from __future__ import annotations

import re
import sys
from typing import Any

from qr_portal.config import current_env


_SENSITIVE_PATTERNS = [
    re.compile(r"mongodb(?:\+srv)?://[^@\s/]+@", re.IGNORECASE),  # credentials in connection strings
    re.compile(r"Bearer\s+[A-Za-z0-9._~+/=-]+", re.IGNORECASE),
    re.compile(r"password['\":\s=]+[^,\n}]+", re.IGNORECASE),
    re.compile(r"JWT['\":\s=]+[^,\n}]+", re.IGNORECASE),
    re.compile(r"api[_-]?key['\":\s=]+[^,\n}]+", re.IGNORECASE),
]

_REDACTED = "[REDACTED]"


def redact(message: Any) -> str:
    """Stringify `message` and mask connection strings, tokens and password-like fields."""
    text = message if isinstance(message, str) else str(message)
    for pattern in _SENSITIVE_PATTERNS:
        text = pattern.sub(_REDACTED, text)
    return text


def enabled() -> bool:
    return current_env() == "development"


def emit(prefix: str, msg: Any, *, level: str = "info") -> None:
    if not enabled():
        return
    line = f"[{prefix}] {redact(msg)}"
    if level == "error":
        print(line, file=sys.stderr)
    elif level == "warn":
        print(f"{line} (warning)", file=sys.stderr)
    else:
        print(line)


def debug(prefix: str, msg: Any) -> None:
    emit(prefix, msg)


def warn(prefix: str, msg: Any) -> None:
    emit(prefix, msg, level="warn")


def error(prefix: str, msg: Any) -> None:
    emit(prefix, msg, level="error")
