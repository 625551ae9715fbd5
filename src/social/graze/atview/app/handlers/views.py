import logging
from typing import Any, Dict, List, Optional

from aiohttp import web
import aiohttp_jinja2

from social.graze.atview.app.config import (
    IdentityResolverAppKey,
    SessionAppKey,
    SettingsAppKey,
)
from social.graze.atview.app.handlers.helpers import (
    THEME_COOKIE,
    load_record_view,
    process_input,
    resolve_service,
    view_store,
)
from social.graze.atview.app.state import ViewStateStore
from social.graze.atview.atproto.pds import (
    FetchError,
    describe_repo,
    list_records,
    list_repos,
)
from social.graze.atview.resolve.coordinate import (
    Coordinate,
    NormalizationError,
    NormalizationErrorKind,
)
from social.graze.atview.resolve.handle import ResolutionError

logger = logging.getLogger(__name__)

EXAMPLES = [
    {
        "label": "PDS URL",
        "hint": "(https:// required)",
        "text": "https://pds.bsky.mom",
        "href": "/pds.bsky.mom",
    },
    {
        "label": "AT URI",
        "hint": "(at:// optional, DID or handle alone also works)",
        "text": "at://did:plc:oisofpd7lj26yvgiivf3lxsi/app.bsky.feed.post/3l2zpbbhuvw2h",
        "href": "/at/did:plc:oisofpd7lj26yvgiivf3lxsi/app.bsky.feed.post/3l2zpbbhuvw2h",
    },
    {
        "label": "Bluesky Link",
        "hint": "(posts and profiles)",
        "text": "https://bsky.app/profile/mary.my.id/post/3kenlltlvus2u",
        "href": "/at/did:plc:ia76kvnndjutgedggx2ibrem/app.bsky.feed.post/3kenlltlvus2u",
    },
]


def view_context(store: ViewStateStore, **kwargs: Any) -> Dict[str, Any]:
    return {"state": store.state, **kwargs}


def did_document_links(did: str, plc_hostname: str) -> List[Dict[str, str]]:
    if did.startswith("did:plc:"):
        return [
            {"label": "DID document", "href": f"https://{plc_hostname}/{did}"},
            {
                "label": "PLC operation logs",
                "href": f"https://boat.kelinci.net/plc-oplogs?q={did}",
            },
        ]
    host = did.removeprefix("did:web:")
    return [{"label": "DID document", "href": f"https://{host}/.well-known/did.json"}]


async def handle_index(request: web.Request):
    store = view_store(request)
    store.begin_view()
    return await aiohttp_jinja2.render_template_async(
        "index.html", request, context=view_context(store, examples=EXAMPLES)
    )


async def handle_index_submit(request: web.Request):
    store = view_store(request)
    token = store.begin_view()
    data = await request.post()
    value = str(data.get("input", ""))

    try:
        route = await process_input(request.app[IdentityResolverAppKey], value)
    except NormalizationError as e:
        if e.kind != NormalizationErrorKind.empty:
            store.set_notice(token, "Could not parse input")
    except ResolutionError as e:
        logger.info("Input %r did not resolve: %s", value, e)
        store.set_notice(token, e.notice)
    else:
        raise web.HTTPFound(route)

    return await aiohttp_jinja2.render_template_async(
        "index.html", request, context=view_context(store, examples=EXAMPLES)
    )


async def handle_theme(request: web.Request):
    store = view_store(request)
    theme = store.toggle_theme()
    destination = request.query.get("next", "/")
    if not destination.startswith("/") or destination.startswith("//"):
        destination = "/"
    response = web.HTTPFound(destination)
    response.set_cookie(THEME_COOKIE, theme, max_age=31536000, samesite="Lax")
    raise response


async def handle_pds(request: web.Request):
    store = view_store(request)
    token = store.begin_view()
    pds = request.match_info["pds"]
    cursor: Optional[str] = request.query.get("cursor", None)
    store.set_pds(token, pds)

    repos = None
    try:
        repos = await list_repos(
            request.app[SessionAppKey],
            await resolve_service(request.app[IdentityResolverAppKey], pds, None),
            limit=request.app[SettingsAppKey].page_size,
            cursor=cursor,
        )
    except FetchError as e:
        store.set_notice(token, e.message or e.detail or "Could not list repositories")

    return await aiohttp_jinja2.render_template_async(
        "pds.html", request, context=view_context(store, pds=pds, repos=repos)
    )


async def handle_repo(request: web.Request):
    store = view_store(request)
    token = store.begin_view()
    pds = request.match_info["pds"]
    repo = request.match_info["repo"]
    settings = request.app[SettingsAppKey]
    store.set_pds(token, pds)
    store.set_notice(token, "Loading...")

    description = None
    links: List[Dict[str, str]] = []
    try:
        endpoint = await resolve_service(request.app[IdentityResolverAppKey], pds, repo)
        description = await describe_repo(request.app[SessionAppKey], endpoint, repo)
        links = did_document_links(description.did, settings.plc_hostname)
        store.set_notice(token, "")
    except ResolutionError as e:
        store.set_notice(token, e.notice)
    except FetchError as e:
        store.set_notice(token, e.message or e.detail or "Could not describe repository")

    return await aiohttp_jinja2.render_template_async(
        "repo.html",
        request,
        context=view_context(
            store,
            coordinate=Coordinate(authority=repo),
            description=description,
            did_links=links,
        ),
    )


async def handle_collection(request: web.Request):
    store = view_store(request)
    token = store.begin_view()
    pds = request.match_info["pds"]
    coordinate = Coordinate(
        authority=request.match_info["repo"],
        collection=request.match_info["collection"],
    )
    cursor: Optional[str] = request.query.get("cursor", None)
    store.set_pds(token, pds)

    listing = None
    try:
        endpoint = await resolve_service(
            request.app[IdentityResolverAppKey], pds, coordinate.authority
        )
        listing = await list_records(
            request.app[SessionAppKey],
            endpoint,
            coordinate.authority,
            coordinate.collection,
            limit=request.app[SettingsAppKey].page_size,
            cursor=cursor,
        )
    except ResolutionError as e:
        store.set_notice(token, e.notice)
    except FetchError as e:
        store.set_notice(token, e.message or e.detail or "Could not list records")

    return await aiohttp_jinja2.render_template_async(
        "collection.html",
        request,
        context=view_context(store, coordinate=coordinate, listing=listing),
    )


async def handle_record(request: web.Request):
    store = view_store(request)
    token = store.begin_view()
    coordinate = Coordinate(
        authority=request.match_info["repo"],
        collection=request.match_info["collection"],
        rkey=request.match_info["rkey"],
    )
    view = await load_record_view(
        request.app, store, token, request.match_info["pds"], coordinate
    )
    return await aiohttp_jinja2.render_template_async(
        "record.html",
        request,
        context=view_context(store, coordinate=coordinate, view=view),
    )
