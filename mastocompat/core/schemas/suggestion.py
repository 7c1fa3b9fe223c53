from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ._base import INVALID_SOURCE, ValidationResult, build, check_enum, check_required

REQUIRED_FIELDS = ("source", "account")

VALID_SOURCES = frozenset(
    {
        "staff",
        "past_interactions",
        "global",
        "featured",
        "most_followed",
        "most_interactions",
        "similar_to_recently_followed",
        "friends_of_friends",
    }
)

_DEFAULTS: Dict[str, Any] = {
    "source": "global",
    "sources": [],
    "account": None,
}


def defaults() -> Dict[str, Any]:
    return build(_DEFAULTS, None)


def new(overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return build(_DEFAULTS, overrides)


def validate(record: Any) -> ValidationResult:
    return check_enum(
        check_required(record, REQUIRED_FIELDS), "source", VALID_SOURCES, INVALID_SOURCE
    )
