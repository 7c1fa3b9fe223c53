from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ._base import ValidationResult, build, check_required

REQUIRED_FIELDS = (
    "id",
    "action_taken",
    "category",
    "comment",
    "forwarded",
    "created_at",
    "target_account",
)

CATEGORIES = ("spam", "legal", "violation", "other")

_DEFAULTS: Dict[str, Any] = {
    "id": None,
    "action_taken": False,
    "action_taken_at": None,
    "category": "other",
    "comment": "",
    "forwarded": False,
    "created_at": None,
    "status_ids": None,
    "rule_ids": None,
    "target_account": None,
}


def defaults() -> Dict[str, Any]:
    return build(_DEFAULTS, None)


def new(overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return build(_DEFAULTS, overrides)


def validate(record: Any) -> ValidationResult:
    return check_required(record, REQUIRED_FIELDS)
