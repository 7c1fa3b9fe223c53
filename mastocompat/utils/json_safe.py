from __future__ import annotations

import base64
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from typing import Any, Mapping

from mastocompat.core.helpers import NotLoaded, format_datetime


def to_jsonable(obj: Any) -> Any:
    """
    Convert an error reason or diagnostic payload to JSON-serializable data.

    Used for the "details" attached to error bodies outside production.

    Security considerations:
    - bytes are base64-encoded to avoid binary injection / encoding issues.
    - exceptions expose only their type name and message, never tracebacks.
    - does NOT execute or import anything dynamically.

    """
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj

    if isinstance(obj, NotLoaded):
        return None

    if isinstance(obj, datetime):
        return format_datetime(obj)
    if isinstance(obj, date):
        return obj.isoformat()

    if isinstance(obj, (bytes, bytearray)):
        return {"__bytes_b64__": base64.b64encode(bytes(obj)).decode("ascii")}

    if isinstance(obj, BaseException):
        return {"type": type(obj).__name__, "message": str(obj)}

    if is_dataclass(obj) and not isinstance(obj, type):
        return to_jsonable(asdict(obj))

    if isinstance(obj, Mapping):
        return {str(k): to_jsonable(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple, set, frozenset)):
        return [to_jsonable(x) for x in obj]

    # fallback: string representation
    return repr(obj)
