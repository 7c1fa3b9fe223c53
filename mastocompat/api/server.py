from __future__ import annotations

import dataclasses
import importlib
import logging
import os
from typing import Any, Dict, List, Mapping, Optional

from fastapi import Depends, FastAPI, Header, Response
from fastapi.exceptions import RequestValidationError
from starlette.requests import Request

from mastocompat.api.auth import Actor, authenticate, bearer_token, load_auth_config
from mastocompat.api.interaction_handler import INTERACTIONS, InteractionHandler
from mastocompat.api.middleware import AccessLogMiddleware, RequestIdMiddleware
from mastocompat.api.models import ApiError, MarkersIn, ReportIn
from mastocompat.api.pagination import (
    add_link_headers,
    add_simple_link_headers,
    build_feed_params,
    build_pagination_opts,
    validate_limit,
)
from mastocompat.api.rate_limit import TokenBucketRateLimiter
from mastocompat.api.rest_adapter import RestAdapter
from mastocompat.core.config import CompatConfig, load_config
from mastocompat.core.errors import (
    CompatError,
    DomainValidationError,
    NotFound,
    PlatformError,
    RateLimited,
    Unauthorized,
)
from mastocompat.core.helpers import format_datetime, get_field, normalize_hashtag, uid, validate_and_return
from mastocompat.core.mappers import (
    account,
    batch_loader,
    conversation,
    fragments,
    notification,
    poll,
    report,
    status,
    suggestion,
    tag,
)
from mastocompat.core.mappers import list as list_mapper
from mastocompat.core.options import MapOptions
from mastocompat.core.platform import PlatformGateway
from mastocompat.core.schemas import relationship as relationship_schema
from mastocompat.core.schemas.report import CATEGORIES

log = logging.getLogger("mastocompat.api")

# Mastodon timeline -> platform feed name.
FEEDS = {"home": "my", "public": "explore", "local": "local"}

_ERRORS = {401: {"model": ApiError}, 404: {"model": ApiError}}


def _query_list(request: Request, name: str) -> List[str]:
    """Array query param, accepting both ``name[]=`` and ``name=`` spellings."""

    values = request.query_params.getlist(f"{name}[]") + request.query_params.getlist(name)
    return [v for v in values if v]


def _marker(value: Any) -> Dict[str, Any]:
    return {
        "last_read_id": uid(get_field(value, "last_read_id")) or "",
        "version": int(get_field(value, "version") or 0),
        "updated_at": format_datetime(get_field(value, "updated_at")),
    }


def _instance(config: CompatConfig, version: int) -> Dict[str, Any]:
    domain = config.local_domain or ""
    if version == 1:
        return {
            "uri": domain,
            "title": domain,
            "short_description": "",
            "description": "",
            "version": "4.0.0 (compatible; mastocompat 0.1)",
            "urls": {},
            "languages": ["en"],
            "registrations": False,
            "approval_required": False,
            "configuration": {"statuses": {"max_characters": 5000}},
        }
    return {
        "domain": domain,
        "title": domain,
        "version": "4.0.0 (compatible; mastocompat 0.1)",
        "source_url": "",
        "description": "",
        "languages": ["en"],
        "configuration": {
            "urls": {},
            "statuses": {"max_characters": 5000},
            "polls": {"max_options": 20},
        },
        "registrations": {"enabled": False, "approval_required": False},
    }


def create_app(
    config: Optional[CompatConfig] = None,
    platform: Optional[PlatformGateway] = None,
    *,
    tokens: Optional[Dict[str, Actor]] = None,
    rate_limiter: Optional[TokenBucketRateLimiter] = None,
) -> FastAPI:
    """Create the FastAPI app.

    ``platform`` overrides the gateway in ``config``. ``tokens`` overrides the
    MASTOCOMPAT_API_TOKENS mapping.

    """

    config = config or load_config(platform=platform)
    if platform is not None and config.platform is not platform:
        config = dataclasses.replace(config, platform=platform)
    mapping = load_auth_config() if tokens is None else dict(tokens)

    # Logging: host apps may reconfigure handlers; only the level is ours.
    for name in ("mastocompat.api", "mastocompat.mappers", "mastocompat.pagination"):
        logging.getLogger(name).setLevel(os.environ.get("MASTOCOMPAT_LOG_LEVEL", "INFO").upper())

    app = FastAPI(title="mastocompat", version="0.1")

    adapter = RestAdapter(config)
    interactions = InteractionHandler(config, adapter)

    app.state.config = config
    app.state.adapter = adapter
    app.state.rate_limiter = rate_limiter or TokenBucketRateLimiter.from_env()

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(AccessLogMiddleware)

    @app.exception_handler(CompatError)
    async def compat_error_handler(request: Request, exc: CompatError) -> Response:
        return adapter.error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> Response:
        fields = sorted({".".join(str(p) for p in e.get("loc", ())[1:]) for e in exc.errors()})
        return adapter.error_response(DomainValidationError(", ".join(f for f in fields if f) or "invalid request"))

    def get_actor(request: Request, authorization: Optional[str] = Header(default=None)) -> Optional[Actor]:
        """Resolve the bearer token, if any, and apply the rate limit.

        A token that is present but unknown fails closed (401).

        """

        token = bearer_token(authorization)
        actor = authenticate(token, mapping) if token else None
        if token and actor is None:
            raise Unauthorized()

        ident = actor.user_id if actor else None
        if ident:
            request.state.user_id = ident
        else:
            client = getattr(request, "client", None)
            ident = f"ip:{client.host}" if client and getattr(client, "host", None) else "anonymous"

        decision = app.state.rate_limiter.check(ident)
        request.state.rate_limit_headers = decision.headers()
        if not decision.allowed:
            raise RateLimited(decision.retry_after_seconds, decision.headers())
        return actor

    def require_actor(actor: Optional[Actor] = Depends(get_actor)) -> Actor:
        if actor is None:
            raise Unauthorized()
        return actor

    def gateway() -> PlatformGateway:
        if config.platform is None:
            raise PlatformError("no platform configured")
        return config.platform

    def opts_for(actor: Optional[Actor], **changes: Any) -> MapOptions:
        return MapOptions(config=config, current_user=actor.user_id if actor else None, **changes)

    def respond(request: Request, data: Any) -> Response:
        return adapter.success_response(data, headers=getattr(request.state, "rate_limit_headers", None))

    @app.get("/livez")
    def livez() -> Response:
        return Response(status_code=200)

    @app.get("/readyz")
    def readyz() -> Response:
        return Response(status_code=200)

    # Accounts

    @app.get("/api/v1/accounts/verify_credentials", responses=_ERRORS)
    def verify_credentials(request: Request, actor: Actor = Depends(require_actor)) -> Response:
        user = gateway().get_user(actor.user_id)
        return respond(request, account.from_user_or_raise(user, opts_for(actor, include_source=True)))

    @app.get("/api/v1/accounts/relationships", responses=_ERRORS)
    def relationships(request: Request, actor: Actor = Depends(require_actor)) -> Response:
        ids = _query_list(request, "id")
        if not ids:
            return respond(request, [])
        rows = gateway().relationships(actor.user_id, ids)
        out = []
        for row in rows or []:
            record = relationship_schema.new({k: v for k, v in dict(row).items() if v is not None})
            valid = validate_and_return(record, relationship_schema)
            if valid is not None:
                out.append(valid)
        return respond(request, out)

    @app.get("/api/v1/accounts/{account_id}", responses=_ERRORS)
    def get_account(account_id: str, actor: Optional[Actor] = Depends(get_actor)) -> Response:
        result = gateway().execute(
            fragments.USER_QUERY, {"filter": {"id": account_id}}, actor.user_id if actor else None
        )
        return adapter.respond("user", result, lambda user: account.from_user_or_raise(user, opts_for(actor)))

    # Statuses

    @app.get("/api/v1/statuses/{status_id}", responses=_ERRORS)
    def get_status(status_id: str, actor: Optional[Actor] = Depends(get_actor)) -> Response:
        result = gateway().execute(
            fragments.POST_QUERY, {"filter": {"id": status_id}}, actor.user_id if actor else None
        )

        def to_status(post: Any) -> Dict[str, Any]:
            mapped = status.from_post(post, opts_for(actor))
            if mapped is None:
                raise NotFound()
            return mapped

        return adapter.respond("post", result, to_status)

    @app.post("/api/v1/statuses/{status_id}/{action}", responses=_ERRORS)
    def status_action(status_id: str, action: str, actor: Optional[Actor] = Depends(get_actor)) -> Response:
        interaction = INTERACTIONS.get(action)
        if interaction is None:
            raise NotFound()
        return interactions.handle(status_id, actor.user_id if actor else None, interaction)

    # Timelines

    def timeline(request: Request, actor: Optional[Actor], feed_name: str) -> Response:
        params = build_feed_params(
            dict(request.query_params),
            {"feed_name": feed_name},
            default_limit=config.default_limit,
            max_limit=config.max_limit,
        )
        page = gateway().feed(feed_name, params, actor.user_id if actor else None) or {}
        edges = list(get_field(page, "edges") or [])
        opts = batch_loader.feed_options(edges, opts_for(actor))
        response = respond(request, status.from_activities(edges, opts))
        activities = [get_field(e, "node") or e for e in edges]
        return add_link_headers(response, request, get_field(page, "page_info") or {}, activities)

    @app.get("/api/v1/timelines/home", responses=_ERRORS)
    def home_timeline(request: Request, actor: Actor = Depends(require_actor)) -> Response:
        return timeline(request, actor, FEEDS["home"])

    @app.get("/api/v1/timelines/public")
    def public_timeline(request: Request, actor: Optional[Actor] = Depends(get_actor)) -> Response:
        local = request.query_params.get("local", "").lower() in {"1", "true"}
        return timeline(request, actor, FEEDS["local" if local else "public"])

    @app.get("/api/v1/timelines/local")
    def local_timeline(request: Request, actor: Optional[Actor] = Depends(get_actor)) -> Response:
        return timeline(request, actor, FEEDS["local"])

    # Notifications and conversations

    @app.get("/api/v1/notifications", responses=_ERRORS)
    def notifications(request: Request, actor: Actor = Depends(require_actor)) -> Response:
        params = dict(request.query_params)
        limit = validate_limit(params.get("limit"), default=config.default_limit, max_limit=config.max_limit)
        page = gateway().notifications(actor.user_id, build_pagination_opts(params, limit)) or {}
        edges = list(get_field(page, "edges") or [])
        opts = opts_for(actor, mentions_by_object=batch_loader.preload_mentions(edges, opts_for(actor)))
        items = notification.from_activities(edges, opts)

        excluded = set(_query_list(request, "exclude_types"))
        wanted = set(_query_list(request, "types"))
        items = [n for n in items if n["type"] not in excluded and (not wanted or n["type"] in wanted)]

        response = respond(request, items)
        return add_simple_link_headers(response, request, get_field(page, "page_info") or {}, items)

    @app.get("/api/v1/conversations", responses=_ERRORS)
    def conversations(request: Request, actor: Actor = Depends(require_actor)) -> Response:
        params = dict(request.query_params)
        limit = validate_limit(params.get("limit"), default=config.default_limit, max_limit=config.max_limit)
        threads = gateway().conversations(actor.user_id, build_pagination_opts(params, limit)) or []
        items = conversation.from_threads(list(threads), opts_for(actor, skip_expensive_stats=True))
        response = respond(request, items)
        return add_simple_link_headers(response, request, {}, items)

    # Lists

    @app.get("/api/v1/lists", responses=_ERRORS)
    def lists(request: Request, actor: Actor = Depends(require_actor)) -> Response:
        return respond(request, list_mapper.from_circles(list(gateway().circles(actor.user_id) or [])))

    @app.get("/api/v1/lists/{list_id}", responses=_ERRORS)
    def get_list(request: Request, list_id: str, actor: Actor = Depends(require_actor)) -> Response:
        mapped = list_mapper.from_circle(gateway().get_circle(actor.user_id, list_id))
        if mapped is None:
            raise NotFound()
        return respond(request, mapped)

    # Reports

    @app.get("/api/v1/reports", responses=_ERRORS)
    def reports(request: Request, actor: Actor = Depends(require_actor)) -> Response:
        flags = list(gateway().flags(actor.user_id) or [])
        return respond(request, report.from_flags(flags, opts_for(actor, skip_expensive_stats=True)))

    @app.post("/api/v1/reports", responses=_ERRORS)
    def create_report(request: Request, body: ReportIn, actor: Actor = Depends(require_actor)) -> Response:
        if body.category not in CATEGORIES:
            raise DomainValidationError(f"category must be one of {', '.join(CATEGORIES)}")
        flag = gateway().create_flag(
            actor.user_id,
            account_id=body.account_id,
            status_ids=body.status_ids,
            comment=body.comment,
            category=body.category,
        )
        mapped = report.from_flag(flag, opts_for(actor, skip_expensive_stats=True))
        if mapped is None:
            raise PlatformError("flag could not be mapped")
        return respond(request, mapped)

    @app.get("/api/v1/reports/{report_id}", responses=_ERRORS)
    def get_report(request: Request, report_id: str, actor: Actor = Depends(require_actor)) -> Response:
        mapped = report.from_flag(
            gateway().get_flag(actor.user_id, report_id), opts_for(actor, skip_expensive_stats=True)
        )
        if mapped is None:
            raise NotFound()
        return respond(request, mapped)

    # Polls, tags, suggestions

    @app.get("/api/v1/polls/{poll_id}", responses=_ERRORS)
    def get_poll(request: Request, poll_id: str, actor: Optional[Actor] = Depends(get_actor)) -> Response:
        question = gateway().get_question(poll_id, actor.user_id if actor else None)
        mapped = poll.from_question(question, opts_for(actor)) if question is not None else None
        if mapped is None:
            raise NotFound()
        return respond(request, mapped)

    @app.get("/api/v1/tags/{name}", responses=_ERRORS)
    def get_tag(request: Request, name: str, actor: Optional[Actor] = Depends(get_actor)) -> Response:
        hashtag = gateway().get_hashtag(normalize_hashtag(name))
        mapped = tag.from_hashtag(hashtag, opts_for(actor)) if hashtag is not None else None
        if mapped is None:
            raise NotFound()
        return respond(request, mapped)

    @app.get("/api/v2/suggestions", responses=_ERRORS)
    def suggestions(request: Request, actor: Actor = Depends(require_actor)) -> Response:
        limit = validate_limit(request.query_params.get("limit"), default=40, max_limit=80)
        users = list(gateway().suggestions(actor.user_id, limit) or [])
        opts = opts_for(actor)
        follow_counts, status_counts = batch_loader.preload_account_stats(users, opts)
        opts = opts.derive(follow_counts=follow_counts, status_count=status_counts)
        return respond(request, suggestion.from_users(users, opts))

    # Markers

    @app.get("/api/v1/markers", responses=_ERRORS)
    def get_markers(request: Request, actor: Actor = Depends(require_actor)) -> Response:
        timelines = [t for t in _query_list(request, "timeline") if t in ("home", "notifications")]
        saved: Mapping[str, Any] = gateway().markers(actor.user_id, timelines) or {}
        return respond(request, {k: _marker(v) for k, v in saved.items() if v is not None})

    @app.post("/api/v1/markers", responses=_ERRORS)
    def save_markers(request: Request, body: MarkersIn, actor: Actor = Depends(require_actor)) -> Response:
        positions = body.positions()
        if not positions:
            raise DomainValidationError("home or notifications is required")
        platform = gateway()
        out = {}
        for timeline_name, last_read_id in positions.items():
            out[timeline_name] = _marker(platform.save_marker(actor.user_id, timeline_name, last_read_id))
        return respond(request, out)

    # Instance

    @app.get("/api/v1/instance")
    def instance_v1(request: Request) -> Response:
        return respond(request, _instance(config, 1))

    @app.get("/api/v2/instance")
    def instance_v2(request: Request) -> Response:
        return respond(request, _instance(config, 2))

    return app


def _platform_from_env() -> Optional[PlatformGateway]:
    """Build the gateway named by MASTOCOMPAT_PLATFORM ("package.module:factory")."""

    target = os.environ.get("MASTOCOMPAT_PLATFORM", "").strip()
    if not target:
        return None
    module_name, _, attr = target.partition(":")
    factory = getattr(importlib.import_module(module_name), attr or "create_platform")
    return factory()


def app_from_env() -> FastAPI:
    """Factory used by Uvicorn entrypoints.

    Reads:
    - MASTOCOMPAT_PLATFORM: optional "module:factory" returning a PlatformGateway

    """

    return create_app(platform=_platform_from_env())


# Default ASGI app (importable as mastocompat.api.server:app)
app = app_from_env()
