from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ._base import ValidationResult, build, check_required

REQUIRED_FIELDS = ("id", "username", "acct", "url")

_DEFAULTS: Dict[str, Any] = {
    "id": None,
    "username": "",
    "acct": "",
    "url": "",
    "display_name": "",
    "note": "",
    "avatar": "",
    "avatar_static": "",
    "header": "",
    "header_static": "",
    "locked": False,
    "fields": [],
    "emojis": [],
    "bot": False,
    "group": False,
    "discoverable": True,
    "noindex": False,
    "suspended": False,
    "limited": False,
    "created_at": None,
    "last_status_at": None,
    "statuses_count": 0,
    "followers_count": 0,
    "following_count": 0,
}


def defaults() -> Dict[str, Any]:
    return build(_DEFAULTS, None)


def new(overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return build(_DEFAULTS, overrides)


def validate(record: Any) -> ValidationResult:
    return check_required(record, REQUIRED_FIELDS)
