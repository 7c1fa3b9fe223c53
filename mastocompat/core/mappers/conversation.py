from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from mastocompat.core.errors import PlatformError
from mastocompat.core.helpers import get_field, get_in, uid, validate_and_return
from mastocompat.core.options import MapOptions
from mastocompat.core.schemas import conversation as schema

from . import account as account_mapper
from . import status as status_mapper

log = logging.getLogger("mastocompat.mappers")


def thread_id(message: Any) -> Optional[str]:
    """A message without a thread reference is the root of its own thread."""

    return uid(get_in(message, ("replied", "thread_id"))) or uid(get_field(message, "id"))


def is_unread(seen: Any) -> bool:
    if seen is None or seen is False:
        return True
    if isinstance(seen, (Mapping, list, tuple)) and len(seen) == 0:
        return True
    return False


def _participants(message: Any, tid: str, opts: MapOptions) -> List[Any]:
    loaded = get_field(message, "participants")
    if loaded is not None:
        return list(loaded)
    platform = opts.platform
    if platform is None:
        return []
    try:
        return list(platform.thread_participants(tid, opts.current_user) or [])
    except PlatformError:
        log.warning("thread_participants_query_failed", extra={"thread_id": tid}, exc_info=True)
        return []


def from_thread(message: Any, opts: Optional[MapOptions] = None) -> Optional[Dict[str, Any]]:
    """Map the latest message of a DM thread to a Mastodon Conversation."""

    opts = opts or MapOptions()
    if message is None:
        return None
    tid = thread_id(message)
    if not tid:
        log.warning("conversation_without_thread_id")
        return None

    account_opts = opts.for_nested_account().derive(skip_expensive_stats=True)
    accounts = [
        a
        for a in account_mapper.from_users(_participants(message, tid, opts), account_opts)
        if a["id"] != opts.current_user
    ]
    record = schema.new(
        {
            "id": tid,
            "accounts": accounts,
            "unread": is_unread(get_in(message, ("activity", "seen"))),
            "last_status": status_mapper.from_post(message, opts.derive(for_conversation=True)),
        }
    )
    return validate_and_return(record, schema)


def from_threads(messages: Any, opts: Optional[MapOptions] = None) -> List[Dict[str, Any]]:
    if not isinstance(messages, (list, tuple)):
        return []
    return [c for c in (from_thread(m, opts) for m in messages) if c is not None]
