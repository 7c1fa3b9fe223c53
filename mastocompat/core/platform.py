from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence


class PlatformGateway(Protocol):
    """Read/write access to the social platform this layer sits in front of.

    Implementations raise mastocompat.core.errors exceptions (NotFound,
    Forbidden, PlatformError, ...) on failure. Every method is synchronous.

    Objects returned may be attribute objects, GraphQL-shaped mappings or
    flattened mappings; the mappers accept all three.

    """

    # Aggregates used by the batch loader and the account stats fallback.
    def follow_counts(self, user_ids: Sequence[str]) -> Dict[str, Mapping[str, int]]:
        """Return {user_id: {"followers": n, "following": n}}."""

    def status_counts(self, user_ids: Sequence[str]) -> Dict[str, int]:
        """Return {user_id: number_of_posts}."""

    def mentions_by_objects(
        self, object_ids: Sequence[str], current_user: Optional[str]
    ) -> Dict[str, List[Any]]:
        """Return {object_id: [mention tags]} for every id that has mentions."""

    def list_mentions(self, object_id: str, current_user: Optional[str]) -> List[Any]: ...

    def interaction_states(
        self, current_user: str, object_ids: Sequence[str]
    ) -> Dict[str, Mapping[str, bool]]:
        """Return {object_id: {"favourited", "reblogged", "bookmarked"}}."""

    def liked(self, current_user: str, object_id: str) -> bool: ...

    def boosted(self, current_user: str, object_id: str) -> bool: ...

    def bookmarked(self, current_user: str, object_id: str) -> bool: ...

    def voted_choice_ids(self, current_user: str, choice_ids: Sequence[str]) -> List[str]:
        """Ids among choice_ids the user has voted for."""

    def thread_participants(self, thread_id: str, current_user: Optional[str]) -> List[Any]: ...

    # Reads used by the HTTP layer.
    def execute(
        self, query: str, variables: Mapping[str, Any], current_user: Optional[str]
    ) -> Any:
        """Run a GraphQL document; return {"data": ..., "errors": [...]}."""

    def get_user(self, user_id: str) -> Any: ...

    def read_object(self, object_id: str, current_user: Optional[str]) -> Any:
        """Return a fully preloaded activity for object_id, or None."""

    def feed(
        self, feed_name: str, params: Mapping[str, Any], current_user: Optional[str]
    ) -> Mapping[str, Any]:
        """Return {"edges": [activities], "page_info": {...}}."""

    def notifications(self, current_user: str, params: Mapping[str, Any]) -> Mapping[str, Any]: ...

    def conversations(self, current_user: str, params: Mapping[str, Any]) -> List[Any]: ...

    def relationships(self, current_user: str, user_ids: Sequence[str]) -> List[Mapping[str, Any]]: ...

    def circles(self, current_user: str) -> List[Any]: ...

    def get_circle(self, current_user: str, circle_id: str) -> Any: ...

    def flags(self, current_user: str) -> List[Any]: ...

    def get_flag(self, current_user: str, flag_id: str) -> Any: ...

    def create_flag(
        self,
        current_user: str,
        *,
        account_id: str,
        status_ids: Sequence[str],
        comment: str,
        category: str,
    ) -> Any: ...

    def get_question(self, question_id: str, current_user: Optional[str]) -> Any: ...

    def get_hashtag(self, name: str) -> Any: ...

    def suggestions(self, current_user: str, limit: int) -> List[Any]: ...

    def markers(self, current_user: str, timelines: Sequence[str]) -> Dict[str, Any]: ...

    def save_marker(self, current_user: str, timeline: str, last_read_id: str) -> Any: ...

    # Side effects.
    def like(self, current_user: str, object_id: str) -> Any: ...

    def unlike(self, current_user: str, object_id: str) -> Any: ...

    def boost(self, current_user: str, object_id: str) -> Any: ...

    def unboost(self, current_user: str, object_id: str) -> Any: ...

    def bookmark(self, current_user: str, object_id: str) -> Any: ...

    def unbookmark(self, current_user: str, object_id: str) -> Any: ...
