"""Aggregate loaders that keep list endpoints free of per-item queries.

Load once for the whole page, then hand the resulting maps to the mappers
through MapOptions. Every requested id gets an entry, so an empty value
means "loaded, nothing there" and never triggers a fallback query.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from mastocompat.core.helpers import get_field, uid
from mastocompat.core.options import MapOptions

from . import account as account_mapper

log = logging.getLogger("mastocompat.mappers")

_NO_INTERACTIONS = {"favourited": False, "reblogged": False, "bookmarked": False}


def _unique_ids(values: Any) -> List[str]:
    out: List[str] = []
    seen = set()
    for value in values or ():
        item_id = uid(value)
        if item_id and item_id not in seen:
            seen.add(item_id)
            out.append(item_id)
    return out


def object_ids(activities: Any) -> List[str]:
    """Ids of the objects a page of activities (or edges) points at."""

    found = []
    for activity in activities or ():
        activity = get_field(activity, "node") or activity
        found.append(
            uid(get_field(activity, "object_id"))
            or uid(get_field(get_field(activity, "object"), "id"))
            or uid(get_field(activity, "id"))
        )
    return _unique_ids(found)


def preload_follow_counts(users: Sequence[Any], opts: MapOptions) -> Dict[str, Mapping[str, int]]:
    """One aggregate query: {user_id: {"followers": n, "following": n}}."""

    user_ids = _unique_ids(users)
    if not user_ids or opts.platform is None:
        return {}
    return dict(opts.platform.follow_counts(user_ids))


def preload_status_counts(users: Sequence[Any], opts: MapOptions) -> Dict[str, int]:
    user_ids = _unique_ids(users)
    if not user_ids or opts.platform is None:
        return {}
    return dict(opts.platform.status_counts(user_ids))


def preload_account_stats(
    users: Sequence[Any], opts: MapOptions
) -> Tuple[Dict[str, Mapping[str, int]], Dict[str, int]]:
    return preload_follow_counts(users, opts), preload_status_counts(users, opts)


def map_accounts(users: Sequence[Any], opts: Optional[MapOptions] = None) -> List[Dict[str, Any]]:
    """Map many users with at most two stats queries in total."""

    opts = opts or MapOptions()
    if not isinstance(users, (list, tuple)):
        return []
    if opts.skip_expensive_stats:
        return account_mapper.from_users(users, opts)
    follow_counts, status_counts = preload_account_stats(users, opts)
    return account_mapper.from_users(
        users, opts.derive(follow_counts=follow_counts, status_count=status_counts)
    )


def preload_mentions(activities: Sequence[Any], opts: MapOptions) -> Dict[str, List[Any]]:
    ids = object_ids(activities)
    if not ids or opts.platform is None:
        return {}
    loaded = opts.platform.mentions_by_objects(ids, opts.current_user) or {}
    return {object_id: list(loaded.get(object_id) or []) for object_id in ids}


def preload_interaction_states(
    activities: Sequence[Any], opts: MapOptions
) -> Dict[str, Mapping[str, bool]]:
    ids = object_ids(activities)
    if not ids or not opts.current_user or opts.platform is None:
        return {}
    loaded = opts.platform.interaction_states(opts.current_user, ids) or {}
    return {object_id: dict(loaded.get(object_id) or _NO_INTERACTIONS) for object_id in ids}


def feed_options(activities: Sequence[Any], opts: MapOptions) -> MapOptions:
    """Options for mapping a whole feed page: batch maps in, account stats off."""

    mentions = preload_mentions(activities, opts)
    states = preload_interaction_states(activities, opts)
    log.debug(
        "feed_batch_loaded",
        extra={"objects": len(mentions), "interaction_states": len(states)},
    )
    return opts.derive(
        skip_expensive_stats=True,
        mentions_by_object=mentions or None,
        interaction_states=states or None,
    )
