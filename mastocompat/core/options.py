from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, List, Mapping, Optional

from .config import CompatConfig


@dataclass(frozen=True)
class MapOptions:
    """Per-call options threaded through the mappers.

    Batch maps are keyed by object or user id. A key that is present with an
    empty value means "loaded, nothing there"; only an absent key lets a
    mapper fall back to a live platform query.

    """

    config: CompatConfig = field(default_factory=CompatConfig)
    current_user: Optional[str] = None

    # Account stats
    skip_expensive_stats: bool = False
    follow_counts: Optional[Mapping[str, Mapping[str, int]]] = None
    status_count: Optional[Mapping[str, int]] = None
    include_source: bool = False

    # Status assembly
    is_reblog: bool = False
    for_notification: bool = False
    for_conversation: bool = False
    lightweight: bool = False
    mentions_by_object: Optional[Mapping[str, List[Any]]] = None
    interaction_states: Optional[Mapping[str, Mapping[str, bool]]] = None

    # Notifications
    subjects_by_id: Optional[Mapping[str, Any]] = None
    post_content_by_id: Optional[Mapping[str, Any]] = None

    # Polls
    user_votes: Optional[List[str]] = None
    votes_count: Optional[int] = None
    voters_count: Optional[int] = None

    # Tags and suggestions
    following: bool = False
    source: Optional[str] = None
    sources: Optional[List[str]] = None

    @property
    def platform(self):
        return self.config.platform

    def derive(self, **changes: Any) -> "MapOptions":
        return replace(self, **changes)

    def for_nested_account(self) -> "MapOptions":
        """Options for an account embedded in another entity."""

        return replace(self, include_source=False)
