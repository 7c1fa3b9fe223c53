"""Account mapper.

Users arrive as ORM-like objects with profile/character associations, as
GraphQL results shaped the same way, or as already-flat mappings. The
username is the identity anchor: without one there is no account.

Stats use one of three strategies, in priority order:
1. skip_expensive_stats -> zeros (timelines, nested accounts)
2. batch maps from the batch loader -> lookups
3. a live per-user query through the platform gateway
"""

from __future__ import annotations

import html
import logging
from typing import Any, Dict, List, Optional, Tuple

from mastocompat.core.errors import NotFound, PlatformError
from mastocompat.core.helpers import (
    build_acct,
    date_from_ulid,
    format_datetime,
    get_field,
    get_fields,
    get_in,
    render_html,
    to_int,
    uid,
    validate_and_return,
)
from mastocompat.core.options import MapOptions
from mastocompat.core.schemas import account as schema

log = logging.getLogger("mastocompat.mappers")


def _media_url(media: Any) -> Optional[str]:
    if isinstance(media, str):
        return media or None
    return get_fields(media, ["path", "url"])


def _parts(user: Any) -> Tuple[Any, Any]:
    profile = get_field(user, "profile")
    character = get_field(user, "character")
    return profile, character


def _username(user: Any, character: Any) -> Optional[str]:
    username = get_field(character, "username") or get_field(user, "username")
    if not username:
        acct = get_field(user, "acct")
        if isinstance(acct, str) and acct:
            username = acct.split("@", 1)[0]
    return username or None


def _canonical_uri(user: Any, character: Any) -> Optional[str]:
    return (
        get_fields(character, ["canonical_uri", "url"])
        or get_in(character, ("peered", "canonical_uri"))
        or get_in(user, ("peered", "canonical_uri"))
        or get_field(user, "canonical_uri")
    )


def _fields(website: Any) -> List[Dict[str, Any]]:
    if not isinstance(website, str) or not website.strip():
        return []
    href = website.strip()
    if "://" not in href:
        href = f"https://{href}"
    value = (
        f'<a href="{html.escape(href)}" rel="me nofollow noopener" target="_blank">'
        f"{html.escape(website.strip())}</a>"
    )
    return [{"name": "Website", "value": value, "verified_at": None}]


def _live_stats(user_id: str, opts: MapOptions) -> Dict[str, int]:
    stats: Dict[str, int] = {}
    platform = opts.platform
    if platform is None:
        return stats
    try:
        counts = platform.follow_counts([user_id]).get(user_id) or {}
        stats["followers_count"] = to_int(counts.get("followers"))
        stats["following_count"] = to_int(counts.get("following"))
        stats["statuses_count"] = to_int(platform.status_counts([user_id]).get(user_id))
    except PlatformError:
        log.warning("account_stats_query_failed", extra={"user_id": user_id}, exc_info=True)
    return stats


def compute_stats(user_id: Optional[str], opts: MapOptions) -> Dict[str, int]:
    """Account counters from the first strategy that applies.

    Skipping wins, then batch maps (either one present means no live query),
    then a live query for this one user.

    """

    stats = {"statuses_count": 0, "followers_count": 0, "following_count": 0}
    if opts.skip_expensive_stats or not user_id:
        return stats

    if opts.follow_counts is not None or opts.status_count is not None:
        counts = (opts.follow_counts or {}).get(user_id) or {}
        stats["followers_count"] = to_int(counts.get("followers"))
        stats["following_count"] = to_int(counts.get("following"))
        stats["statuses_count"] = to_int((opts.status_count or {}).get(user_id))
        return stats

    stats.update(_live_stats(user_id, opts))
    return stats


def from_user(user: Any, opts: Optional[MapOptions] = None) -> Optional[Dict[str, Any]]:
    """Map a platform user to a Mastodon Account, or None if it has no identity."""

    opts = opts or MapOptions()
    if user is None:
        return None
    profile, character = _parts(user)

    username = _username(user, character)
    user_id = uid(get_field(user, "id")) or uid(get_field(character, "id")) or uid(get_field(profile, "id"))
    if not username or not user_id:
        log.debug("account_without_identity", extra={"user_id": user_id})
        return None

    canonical_uri = _canonical_uri(user, character)
    url = canonical_uri or get_field(user, "url") or f"{opts.config.base_url}/@{username}"

    acct = get_field(user, "acct")
    if not (isinstance(acct, str) and "@" in acct):
        acct = build_acct(username, canonical_uri, opts.config)

    raw_note = get_fields(profile, ["summary", "bio", "note"])
    note = render_html(raw_note) if raw_note is not None else (get_field(user, "note") or "")

    avatar = _media_url(get_fields(profile, ["icon", "icon_url", "avatar"])) or get_field(user, "avatar") or ""
    header = _media_url(get_fields(profile, ["image", "image_url", "header"])) or get_field(user, "header") or ""

    created_at = format_datetime(get_field(user, "created_at")) or format_datetime(date_from_ulid(user_id))
    website = get_field(profile, "website")
    fields = _fields(website) or list(get_field(user, "fields") or [])

    record = schema.new(
        {
            "id": user_id,
            "username": username,
            "acct": acct,
            "url": url,
            "display_name": get_fields(profile, ["name", "display_name"]) or get_field(user, "display_name") or username,
            "note": note,
            "avatar": avatar,
            "avatar_static": avatar,
            "header": header,
            "header_static": header,
            "locked": bool(get_field(user, "locked") or get_field(character, "locked")),
            "bot": bool(get_field(user, "bot") or get_field(profile, "bot")),
            "fields": fields,
            "created_at": created_at,
            "last_status_at": format_datetime(get_field(user, "last_status_at")),
        }
    )
    record.update(compute_stats(user_id, opts))

    if opts.include_source:
        record["source"] = {
            "privacy": "public",
            "sensitive": False,
            "language": None,
            "note": raw_note if isinstance(raw_note, str) else "",
            "fields": fields,
            "follow_requests_count": 0,
        }

    return validate_and_return(record, schema)


def from_users(users: Any, opts: Optional[MapOptions] = None) -> List[Dict[str, Any]]:
    if not isinstance(users, (list, tuple)):
        return []
    return [a for a in (from_user(u, opts) for u in users) if a is not None]


def from_user_or_raise(user: Any, opts: Optional[MapOptions] = None) -> Dict[str, Any]:
    account = from_user(user, opts)
    if account is None:
        raise NotFound()
    return account
