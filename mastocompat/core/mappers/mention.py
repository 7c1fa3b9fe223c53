from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from mastocompat.core.helpers import build_acct, get_field, uid, validate_and_return
from mastocompat.core.options import MapOptions
from mastocompat.core.schemas import mention as schema

log = logging.getLogger("mastocompat.mappers")


def _non_empty(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, dict) and not value:
        return None
    return value


def extract_character(tag: Any) -> Any:
    """Locate the identity a tag points at.

    Depending on how the tag was loaded the identity sits on the tag itself,
    behind its pointer, or on a profile.

    """

    character = _non_empty(get_field(tag, "character"))
    if character is not None:
        return character

    pointer = get_field(tag, "tag") or get_field(tag, "pointer")
    if pointer is not None:
        nested = _non_empty(get_field(pointer, "character"))
        if nested is not None:
            return nested
        if get_field(pointer, "username"):
            return pointer

    profile = get_field(tag, "profile")
    if profile is not None and get_field(profile, "username"):
        return profile
    if get_field(tag, "username"):
        return tag
    return None


def is_mention_tag(tag: Any) -> bool:
    return extract_character(tag) is not None


def _user_id(tag: Any, character: Any = None) -> Optional[str]:
    """User a mention tag points at: its tag_id, then the identity's id, then the tag's own id."""

    if character is None:
        character = extract_character(tag)
    return uid(get_field(tag, "tag_id") or get_field(character, "id") or get_field(tag, "id"))


def from_tag(tag: Any, opts: Optional[MapOptions] = None) -> Optional[Dict[str, Any]]:
    opts = opts or MapOptions()
    if tag is None:
        return None
    character = extract_character(tag)
    if character is None:
        return None

    user_id = _user_id(tag, character)
    username = get_field(character, "username")
    if not user_id or not username:
        log.warning(
            "mention_missing_identity",
            extra={"tag_id": uid(get_field(tag, "id")), "has_username": bool(username)},
        )
        return None

    canonical_uri = get_field(character, "canonical_uri")
    record = schema.new(
        {
            "id": user_id,
            "username": username,
            "acct": build_acct(username, canonical_uri, opts.config),
            "url": canonical_uri or f"{opts.config.base_url}/@{username}",
        }
    )
    return validate_and_return(record, schema)


def from_tags(tags: Any, opts: Optional[MapOptions] = None) -> List[Dict[str, Any]]:
    """Mentions among a post's tags, leaving out the current user."""

    opts = opts or MapOptions()
    if not isinstance(tags, (list, tuple)):
        return []
    out: List[Dict[str, Any]] = []
    for tag in tags:
        if not is_mention_tag(tag):
            continue
        tag_user = _user_id(tag)
        if not tag_user or tag_user == opts.current_user:
            continue
        mapped = from_tag(tag, opts)
        if mapped is not None:
            out.append(mapped)
    return out
