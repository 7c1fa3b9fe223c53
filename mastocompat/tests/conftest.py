from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Optional

import pytest

from mastocompat.core.config import CompatConfig
from mastocompat.core.errors import NotFound
from mastocompat.core.options import MapOptions


class FakePlatform:
    """In-memory gateway that counts every call it receives."""

    def __init__(self) -> None:
        self.calls: Counter = Counter()
        self.users: Dict[str, Any] = {}
        self.objects: Dict[str, Any] = {}
        self.follow: Dict[str, Dict[str, int]] = {}
        self.posts_by_user: Dict[str, int] = {}
        self.mentions: Dict[str, List[Any]] = {}
        self.states: Dict[str, Dict[str, bool]] = {}
        self.votes: List[str] = []
        self.participants: Dict[str, List[Any]] = {}
        self.feed_page: Dict[str, Any] = {"edges": [], "page_info": {}}
        self.notification_page: Dict[str, Any] = {"edges": [], "page_info": {}}
        self.threads: List[Any] = []
        self.graphql: Dict[str, Any] = {}
        self.circle_list: List[Any] = []
        self.flag_list: List[Any] = []
        self.questions: Dict[str, Any] = {}
        self.hashtags: Dict[str, Any] = {}
        self.suggested: List[Any] = []
        self.saved_markers: Dict[str, Any] = {}
        self.effect_result: Any = None
        self.effect_error: Optional[Exception] = None
        self.last_feed_params: Optional[Dict[str, Any]] = None

    # Aggregates

    def follow_counts(self, user_ids):
        self.calls["follow_counts"] += 1
        return {u: self.follow[u] for u in user_ids if u in self.follow}

    def status_counts(self, user_ids):
        self.calls["status_counts"] += 1
        return {u: self.posts_by_user[u] for u in user_ids if u in self.posts_by_user}

    def mentions_by_objects(self, object_ids, current_user):
        self.calls["mentions_by_objects"] += 1
        return {o: self.mentions[o] for o in object_ids if o in self.mentions}

    def list_mentions(self, object_id, current_user):
        self.calls["list_mentions"] += 1
        return list(self.mentions.get(object_id, []))

    def interaction_states(self, current_user, object_ids):
        self.calls["interaction_states"] += 1
        return {o: self.states[o] for o in object_ids if o in self.states}

    def liked(self, current_user, object_id):
        self.calls["liked"] += 1
        return self.states.get(object_id, {}).get("favourited", False)

    def boosted(self, current_user, object_id):
        self.calls["boosted"] += 1
        return self.states.get(object_id, {}).get("reblogged", False)

    def bookmarked(self, current_user, object_id):
        self.calls["bookmarked"] += 1
        return self.states.get(object_id, {}).get("bookmarked", False)

    def voted_choice_ids(self, current_user, choice_ids):
        self.calls["voted_choice_ids"] += 1
        return [c for c in choice_ids if c in self.votes]

    def thread_participants(self, thread_id, current_user):
        self.calls["thread_participants"] += 1
        return list(self.participants.get(thread_id, []))

    # Reads

    def execute(self, query, variables, current_user):
        self.calls["execute"] += 1
        missing = {"data": None, "errors": [{"message": "not found", "code": "not_found"}]}
        return self.graphql.get(variables["filter"]["id"], missing)

    def get_user(self, user_id):
        self.calls["get_user"] += 1
        if user_id not in self.users:
            raise NotFound()
        return self.users[user_id]

    def read_object(self, object_id, current_user):
        self.calls["read_object"] += 1
        return self.objects.get(object_id)

    def feed(self, feed_name, params, current_user):
        self.calls["feed"] += 1
        self.last_feed_params = dict(params, feed_name=feed_name)
        return self.feed_page

    def notifications(self, current_user, params):
        self.calls["notifications"] += 1
        return self.notification_page

    def conversations(self, current_user, params):
        self.calls["conversations"] += 1
        return list(self.threads)

    def relationships(self, current_user, user_ids):
        self.calls["relationships"] += 1
        return [{"id": u, "following": u in self.follow} for u in user_ids]

    def circles(self, current_user):
        return list(self.circle_list)

    def get_circle(self, current_user, circle_id):
        for circle in self.circle_list:
            if circle.get("id") == circle_id:
                return circle
        raise NotFound()

    def flags(self, current_user):
        return list(self.flag_list)

    def get_flag(self, current_user, flag_id):
        for flag in self.flag_list:
            if flag.get("id") == flag_id:
                return flag
        return None

    def create_flag(self, current_user, *, account_id, status_ids, comment, category):
        self.calls["create_flag"] += 1
        flag = {
            "id": f"flag-{len(self.flag_list) + 1}",
            "comment": comment,
            "category": category,
            "object": self.users[account_id],
        }
        self.flag_list.append(flag)
        return flag

    def get_question(self, question_id, current_user):
        return self.questions.get(question_id)

    def get_hashtag(self, name):
        return self.hashtags.get(name)

    def suggestions(self, current_user, limit):
        return list(self.suggested)[:limit]

    def markers(self, current_user, timelines):
        return {t: self.saved_markers[t] for t in (timelines or self.saved_markers) if t in self.saved_markers}

    def save_marker(self, current_user, timeline, last_read_id):
        self.saved_markers[timeline] = {"last_read_id": last_read_id, "version": 1}
        return self.saved_markers[timeline]

    # Side effects

    def _effect(self, name, object_id):
        self.calls[name] += 1
        if self.effect_error is not None:
            raise self.effect_error
        return self.effect_result

    def like(self, current_user, object_id):
        return self._effect("like", object_id)

    def unlike(self, current_user, object_id):
        return self._effect("unlike", object_id)

    def boost(self, current_user, object_id):
        return self._effect("boost", object_id)

    def unboost(self, current_user, object_id):
        return self._effect("unboost", object_id)

    def bookmark(self, current_user, object_id):
        return self._effect("bookmark", object_id)

    def unbookmark(self, current_user, object_id):
        return self._effect("unbookmark", object_id)


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def config(platform: FakePlatform) -> CompatConfig:
    return CompatConfig(base_url="https://social.example", environment="test", platform=platform)


@pytest.fixture
def opts(config: CompatConfig) -> MapOptions:
    return MapOptions(config=config, current_user="me")
