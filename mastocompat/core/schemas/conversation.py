from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ._base import ValidationResult, build, check_required

REQUIRED_FIELDS = ("id", "accounts", "unread")

_DEFAULTS: Dict[str, Any] = {
    "id": None,
    "accounts": [],
    "unread": False,
    "last_status": None,
}


def defaults() -> Dict[str, Any]:
    return build(_DEFAULTS, None)


def new(overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return build(_DEFAULTS, overrides)


def validate(record: Any) -> ValidationResult:
    return check_required(record, REQUIRED_FIELDS)
