"""Wire-format contracts for the Mastodon entities this package emits.

Each module exposes defaults(), new(overrides), validate(record) and
REQUIRED_FIELDS. Schemas are pure values: no I/O, no cross-references.
"""

from . import (
    account,
    conversation,
    list,
    media_attachment,
    mention,
    notification,
    poll,
    preview_card,
    relationship,
    report,
    status,
    suggestion,
    tag,
)
from ._base import (
    INVALID_INPUT,
    INVALID_SOURCE,
    INVALID_TYPE,
    MISSING_FIELDS,
    ValidationResult,
)

__all__ = [
    "account",
    "conversation",
    "list",
    "media_attachment",
    "mention",
    "notification",
    "poll",
    "preview_card",
    "relationship",
    "report",
    "status",
    "suggestion",
    "tag",
    "ValidationResult",
    "MISSING_FIELDS",
    "INVALID_TYPE",
    "INVALID_SOURCE",
    "INVALID_INPUT",
]
