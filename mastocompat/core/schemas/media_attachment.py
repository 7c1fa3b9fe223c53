"""MediaAttachment wire entity.

Mastodon marks nothing here as mandatory; the mapper drops media it cannot
give an id and a URL.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ._base import ValidationResult, build, check_required

REQUIRED_FIELDS = ()

TYPES = ("image", "gifv", "video", "audio", "unknown")

_DEFAULTS: Dict[str, Any] = {
    "id": None,
    "type": "unknown",
    "url": None,
    "preview_url": None,
    "remote_url": None,
    "meta": None,
    "description": None,
    "blurhash": None,
}


def defaults() -> Dict[str, Any]:
    return build(_DEFAULTS, None)


def new(overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    return build(_DEFAULTS, overrides)


def validate(record: Any) -> ValidationResult:
    return check_required(record, REQUIRED_FIELDS)
