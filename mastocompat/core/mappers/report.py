from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from mastocompat.core.helpers import (
    date_from_ulid,
    format_datetime,
    get_field,
    get_in,
    to_string_safe,
    uid,
    validate_and_return,
)
from mastocompat.core.options import MapOptions
from mastocompat.core.schemas import report as schema

from . import account as account_mapper

log = logging.getLogger("mastocompat.mappers")

_IDENTITY_TYPES = {"User", "Character"}


def is_identity(flagged: Any) -> bool:
    """True when the flagged object is a user rather than a piece of content."""

    kind = get_field(flagged, "__typename") or get_field(flagged, "object_type")
    if kind is None and not isinstance(flagged, dict):
        kind = type(flagged).__name__
    if kind in _IDENTITY_TYPES:
        return True
    has_identity = get_field(flagged, "character") is not None or get_field(flagged, "username")
    return bool(has_identity) and get_field(flagged, "post_content") is None


def _created_at(flag_id: Optional[str]) -> Optional[str]:
    if not flag_id:
        return None
    return format_datetime(date_from_ulid(flag_id) or datetime.now(timezone.utc))


def from_flag(flag: Any, opts: Optional[MapOptions] = None) -> Optional[Dict[str, Any]]:
    """Map a platform Flag to a Mastodon Report.

    Flags on users target that user and disclose no status ids. Flags on
    content target the content's creator and list the content id.

    """

    opts = opts or MapOptions()
    if flag is None:
        return None
    edge = get_field(flag, "edge")
    flagged = get_field(edge, "object") or get_field(flag, "object")
    flag_id = to_string_safe(get_field(flag, "id") or get_field(edge, "id"))

    status_ids: Optional[List[str]] = None
    if flagged is None:
        target = None
    elif is_identity(flagged):
        target = flagged
    else:
        target = get_in(flagged, ("created", "creator")) or get_field(flagged, "creator")
        flagged_id = uid(flagged)
        status_ids = [flagged_id] if flagged_id else None

    account_opts = opts.for_nested_account().derive(skip_expensive_stats=True)
    record = schema.new(
        {
            "id": flag_id,
            "comment": get_in(flag, ("named", "name")) or get_field(flag, "comment") or "",
            "category": get_field(flag, "category") or "other",
            "created_at": _created_at(flag_id),
            "status_ids": status_ids,
            "target_account": account_mapper.from_user(target, account_opts),
        }
    )
    return validate_and_return(record, schema)


def from_flags(flags: Any, opts: Optional[MapOptions] = None) -> List[Dict[str, Any]]:
    if not isinstance(flags, (list, tuple)):
        return []
    return [r for r in (from_flag(f, opts) for f in flags) if r is not None]
