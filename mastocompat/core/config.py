from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Callable, FrozenSet, Mapping, Optional
from urllib.parse import urlparse

from .platform import PlatformGateway

# Verb name -> platform verb id. Deployments whose verbs are ULIDs override this.
DEFAULT_VERBS: Mapping[str, str] = {
    "like": "like",
    "boost": "boost",
    "follow": "follow",
    "request": "request",
    "create": "create",
    "reply": "reply",
    "flag": "flag",
}

# ActivityPub activity types that federated objects carry instead of verb ids.
_VERB_ALIASES: Mapping[str, FrozenSet[str]] = {
    "like": frozenset({"Like"}),
    "boost": frozenset({"Announce", "announce"}),
    "follow": frozenset({"Follow"}),
    "create": frozenset({"Create"}),
    "flag": frozenset({"Flag"}),
}

DEFAULT_REMOTE_PUBLIC_ACLS: FrozenSet[str] = frozenset(
    {"remote_publics_may_see_read", "remote_publics_may_interact", "remote_publics_may_reply"}
)
DEFAULT_PUBLIC_ACLS: FrozenSet[str] = frozenset(
    {"guests_may_see_read", "guests_may_see", "guests_may_read"}
)
DEFAULT_LOCAL_ACLS: FrozenSet[str] = frozenset(
    {"locals_may_read", "locals_may_interact", "locals_may_reply"}
)


@dataclass(frozen=True)
class CompatConfig:
    """Startup configuration for the mapping pipeline.

    Optional collaborators (the platform gateway, the event adapter) are
    either present here or absent; mappers never probe for them.

    """

    base_url: str = "http://localhost:4000"
    environment: str = "prod"
    verbs: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_VERBS))
    remote_public_acls: FrozenSet[str] = DEFAULT_REMOTE_PUBLIC_ACLS
    public_acls: FrozenSet[str] = DEFAULT_PUBLIC_ACLS
    local_acls: FrozenSet[str] = DEFAULT_LOCAL_ACLS
    followers_circle_id: str = "followers"
    default_limit: int = 20
    max_limit: int = 40
    platform: Optional[PlatformGateway] = None
    event_adapter: Optional[Callable[[Any, Any], Optional[dict]]] = None

    def __post_init__(self) -> None:
        base = (self.base_url or "").strip().rstrip("/")
        if not base:
            raise ValueError("base_url must be non-empty")
        object.__setattr__(self, "base_url", base)

    @property
    def local_domain(self) -> Optional[str]:
        return urlparse(self.base_url).hostname

    @property
    def exposes_error_details(self) -> bool:
        return self.environment in {"dev", "test"}

    def verb_id(self, name: str) -> Optional[str]:
        return self.verbs.get(name)

    def verb_is(self, verb_id: Any, name: str) -> bool:
        """True if verb_id designates the named verb (platform id or AP type)."""

        if verb_id is None:
            return False
        if verb_id == self.verbs.get(name):
            return True
        return verb_id in _VERB_ALIASES.get(name, frozenset())


def env_int(name: str, default: int) -> int:
    """Read an integer environment variable.

    Unparseable values fall back to the default.

    """

    raw = os.environ.get(name, "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


def load_config(*, platform: Optional[PlatformGateway] = None) -> CompatConfig:
    """Build a CompatConfig from environment variables.

    Reads:
    - MASTOCOMPAT_BASE_URL
    - MASTOCOMPAT_ENV (prod, dev, test)
    - MASTOCOMPAT_DEFAULT_LIMIT / MASTOCOMPAT_MAX_LIMIT

    """

    return CompatConfig(
        base_url=os.environ.get("MASTOCOMPAT_BASE_URL", "").strip() or "http://localhost:4000",
        environment=(os.environ.get("MASTOCOMPAT_ENV", "prod").strip().lower() or "prod"),
        default_limit=env_int("MASTOCOMPAT_DEFAULT_LIMIT", 20),
        max_limit=env_int("MASTOCOMPAT_MAX_LIMIT", 40),
        platform=platform,
    )
