"""Mappers from platform objects to Mastodon wire entities.

Every public entry point returns a schema-valid dict or None; list variants
silently drop the items that did not map.
"""

from . import (
    account,
    batch_loader,
    conversation,
    fragments,
    list,
    media_attachment,
    mention,
    notification,
    poll,
    preview_card,
    report,
    status,
    suggestion,
    tag,
)

__all__ = [
    "account",
    "batch_loader",
    "conversation",
    "fragments",
    "list",
    "media_attachment",
    "mention",
    "notification",
    "poll",
    "preview_card",
    "report",
    "status",
    "suggestion",
    "tag",
]
