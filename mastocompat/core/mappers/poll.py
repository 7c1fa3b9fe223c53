from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from mastocompat.core.errors import PlatformError
from mastocompat.core.helpers import (
    format_datetime,
    get_field,
    get_in,
    to_int,
    uid,
    validate_and_return,
)
from mastocompat.core.options import MapOptions
from mastocompat.core.schemas import poll as schema

log = logging.getLogger("mastocompat.mappers")

_POLL_TYPENAMES = {"Question", "Poll"}


def is_poll(obj: Any) -> bool:
    if obj is None:
        return False
    typename = get_field(obj, "__typename") or get_field(obj, "object_type")
    if typename in _POLL_TYPENAMES:
        return True
    if type(obj).__name__ == "Question":
        return True
    return get_field(obj, "choices") is not None and get_field(obj, "voting_dates") is not None


def ordered_choices(question: Any) -> List[Any]:
    """Choices sorted by id so option indexes stay stable between requests."""

    choices = get_field(question, "choices") or []
    if not isinstance(choices, (list, tuple)):
        choices = [choices]
    return sorted(choices, key=lambda c: str(uid(c) or ""))


def _close_at(question: Any) -> Any:
    dates = get_field(question, "voting_dates")
    if isinstance(dates, (list, tuple)) and len(dates) >= 2:
        return dates[1]
    return None


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        formatted = format_datetime(value)
        if formatted and formatted.endswith("Z"):
            return datetime.fromisoformat(formatted[:-1] + "+00:00")
    return None


def poll_expired(question: Any, now: Optional[datetime] = None) -> bool:
    close_at = _as_datetime(_close_at(question))
    if close_at is None:
        return False
    return (now or datetime.now(timezone.utc)) > close_at


def _choice_title(choice: Any) -> str:
    content = get_field(choice, "post_content")
    return (
        get_field(content, "name")
        or get_field(content, "html_body")
        or get_field(content, "summary")
        or get_field(choice, "title")
        or ""
    )


def _voted_ids(question: Any, choices: List[Any], opts: MapOptions) -> List[str]:
    if opts.user_votes is not None:
        out = []
        for vote in opts.user_votes:
            voted = get_in(vote, ("edge", "object_id")) or get_field(vote, "object_id")
            voted = uid(voted) if voted is not None else uid(vote)
            if voted:
                out.append(voted)
        return out

    platform = opts.platform
    choice_ids = [c for c in (uid(choice) for choice in choices) if c]
    if platform is None or not choice_ids or opts.lightweight:
        return []
    try:
        return [str(v) for v in platform.voted_choice_ids(opts.current_user, choice_ids)]
    except PlatformError:
        log.warning(
            "poll_votes_query_failed",
            extra={"question_id": uid(question)},
            exc_info=True,
        )
        return []


def _vote_info(question: Any, choices: List[Any], opts: MapOptions) -> Tuple[bool, List[int]]:
    if not opts.current_user:
        return False, []
    voted = set(_voted_ids(question, choices, opts))
    if not voted:
        return False, []
    return True, [i for i, choice in enumerate(choices) if uid(choice) in voted]


def from_question(question: Any, opts: Optional[MapOptions] = None) -> Optional[Dict[str, Any]]:
    opts = opts or MapOptions()
    question_id = uid(get_field(question, "id"))
    if not question_id:
        return None
    choices = ordered_choices(question)
    voted, own_votes = _vote_info(question, choices, opts)
    options = [
        {"title": _choice_title(c), "votes_count": to_int(get_field(c, "votes_count"))}
        for c in choices
    ]

    record = schema.new(
        {
            "id": question_id,
            "expires_at": format_datetime(_close_at(question)),
            "expired": poll_expired(question),
            "multiple": (get_field(question, "voting_format") or "single") != "single",
            "votes_count": opts.votes_count
            if opts.votes_count is not None
            else sum(o["votes_count"] for o in options),
            "voters_count": opts.voters_count,
            "voted": voted,
            "own_votes": own_votes,
            "options": options,
            "emojis": [],
        }
    )
    return validate_and_return(record, schema)
