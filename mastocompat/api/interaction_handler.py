from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from starlette.responses import Response

from mastocompat.core.config import CompatConfig
from mastocompat.core.errors import (
    CompatError,
    DomainValidationError,
    Forbidden,
    NotFound,
    PlatformError,
    Unauthorized,
)
from mastocompat.core.helpers import format_datetime, get_field, uid
from mastocompat.core.mappers import account as account_mapper
from mastocompat.core.mappers import status as status_mapper
from mastocompat.core.options import MapOptions
from mastocompat.core.platform import PlatformGateway
from mastocompat.core.schemas import status as status_schema

from .rest_adapter import RestAdapter

log = logging.getLogger("mastocompat.api")


@dataclass(frozen=True)
class Interaction:
    """A side-effecting status action and the flag it is responsible for.

    effect is called as effect(platform, current_user, object_id).

    """

    type: str
    effect: Callable[[PlatformGateway, str, str], Any]
    flag: str
    flag_value: bool


FAVOURITE = Interaction("favourite", lambda p, u, o: p.like(u, o), "favourited", True)
UNFAVOURITE = Interaction("unfavourite", lambda p, u, o: p.unlike(u, o), "favourited", False)
REBLOG = Interaction("reblog", lambda p, u, o: p.boost(u, o), "reblogged", True)
UNREBLOG = Interaction("unreblog", lambda p, u, o: p.unboost(u, o), "reblogged", False)
BOOKMARK = Interaction("bookmark", lambda p, u, o: p.bookmark(u, o), "bookmarked", True)
UNBOOKMARK = Interaction("unbookmark", lambda p, u, o: p.unbookmark(u, o), "bookmarked", False)

INTERACTIONS: Dict[str, Interaction] = {
    i.type: i for i in (FAVOURITE, UNFAVOURITE, REBLOG, UNREBLOG, BOOKMARK, UNBOOKMARK)
}

# Errors whose meaning the client needs; everything else reads as not found.
_SURFACED = (Unauthorized, Forbidden, DomainValidationError)


class InteractionHandler:
    """Perform an interaction, re-read the target and return it as a Status.

    The re-read status has the interaction's own flag forced to the value
    just applied. A reblog answers with a wrapper Status whose reblog is the
    original, since that is what a boost is on the wire.

    """

    def __init__(self, config: CompatConfig, adapter: Optional[RestAdapter] = None):
        self._config = config
        self._adapter = adapter or RestAdapter(config)

    def handle(self, object_id: str, current_user: Optional[str], interaction: Interaction) -> Response:
        if not current_user:
            return self._adapter.error_response(Unauthorized())
        platform = self._config.platform
        if platform is None:
            return self._adapter.error_response(PlatformError("no platform configured"))

        try:
            result = interaction.effect(platform, current_user, object_id)
            activity = platform.read_object(object_id, current_user)
        except _SURFACED as e:
            return self._adapter.error_response(e)
        except CompatError as e:
            log.info(
                "interaction_failed",
                extra={"interaction": interaction.type, "object_id": object_id, "error": type(e).__name__},
            )
            return self._adapter.error_response(NotFound())
        except Exception:
            log.warning(
                "interaction_crashed",
                extra={"interaction": interaction.type, "object_id": object_id},
                exc_info=True,
            )
            return self._adapter.error_response(NotFound())

        opts = MapOptions(config=self._config, current_user=current_user)
        try:
            status = status_mapper.from_activity(activity, opts) if activity is not None else None
        except Exception:
            log.warning(
                "interaction_remap_failed",
                extra={"interaction": interaction.type, "object_id": object_id},
                exc_info=True,
            )
            return self._adapter.error_response(NotFound())
        if status is None:
            return self._adapter.error_response(NotFound())
        status[interaction.flag] = interaction.flag_value

        if interaction.type == REBLOG.type:
            status = self._boost_wrapper(result, object_id, status, opts)
        return self._adapter.success_response(status)

    def _boost_wrapper(
        self, result: Any, object_id: str, original: Dict[str, Any], opts: MapOptions
    ) -> Dict[str, Any]:
        boost_id = uid(get_field(result, "id")) or object_id
        uri = get_field(result, "uri") or f"{self._config.base_url}/post/{boost_id}"
        try:
            user = self._config.platform.get_user(opts.current_user)
        except CompatError:
            log.warning("boost_wrapper_user_lookup_failed", extra={"user_id": opts.current_user})
            user = None
        account = account_mapper.from_user(user, opts.derive(skip_expensive_stats=True))
        return status_schema.new(
            {
                "id": boost_id,
                "created_at": format_datetime(datetime.now(timezone.utc)),
                "uri": uri,
                "url": uri,
                "account": account,
                "content": "",
                "reblog": original,
                "reblogged": True,
            }
        )
