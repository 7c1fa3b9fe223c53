"""Notification wire entity.

Besides required-field presence, the type must be one Mastodon clients
know how to render.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ._base import INVALID_TYPE, ValidationResult, build, check_enum, check_required

REQUIRED_FIELDS = ("id", "type", "created_at", "account")

VALID_TYPES = frozenset(
    {
        "follow",
        "follow_request",
        "mention",
        "reblog",
        "favourite",
        "poll",
        "status",
        "update",
        "admin.report",
    }
)

_DEFAULTS: Dict[str, Any] = {
    "id": None,
    "type": None,
    "created_at": None,
    "account": None,
    "status": None,
}


def defaults() -> Dict[str, Any]:
    return build(_DEFAULTS, None)


def new(overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return build(_DEFAULTS, overrides)


def validate(record: Any) -> ValidationResult:
    return check_enum(check_required(record, REQUIRED_FIELDS), "type", VALID_TYPES, INVALID_TYPE)
