"""
Shared view logic for the HTML and JSON handlers.

The record view follows a fixed order: the serving endpoint is resolved
before the dependent record fetch is issued, the record is then checked by the
external verifier, rendered, and matched against the deep-link table. Progress
and outcome are written to a ViewStateStore under the view's token.
"""

from dataclasses import dataclass
import logging
from typing import Optional

from aiohttp import web

from social.graze.atview.app.config import (
    IdentityResolverAppKey,
    LinkTemplateRegistryAppKey,
    MetricsClientAppKey,
    RecordAuthenticatorAppKey,
    SessionAppKey,
    SettingsAppKey,
)
from social.graze.atview.app.state import Theme, ViewStateStore, ViewToken
from social.graze.atview.atproto.authenticity import authenticate_record
from social.graze.atview.atproto.pds import FetchError, RecordOutput, get_record, service_url
from social.graze.atview.render.links import ExternalLink
from social.graze.atview.render.value import PresentationNode, render_record
from social.graze.atview.resolve.coordinate import (
    Coordinate,
    EndpointReference,
    normalize,
)
from social.graze.atview.resolve.handle import IdentityResolver, ResolutionError

logger = logging.getLogger(__name__)

RESOLVE_VIA_IDENTITY = "at"
"""PDS route segment meaning "find the repository's PDS through its DID document"."""

THEME_COOKIE = "theme"


@dataclass(repr=False, eq=False)
class RecordView:
    """Outcome of loading a record for display."""

    coordinate: Coordinate
    record: Optional[RecordOutput] = None
    tree: Optional[PresentationNode] = None
    external_link: Optional[ExternalLink] = None
    valid_record: Optional[bool] = None


def request_theme(request: web.Request) -> Theme:
    return "dark" if request.cookies.get(THEME_COOKIE, "") == "dark" else "light"


def view_store(request: web.Request) -> ViewStateStore:
    store = ViewStateStore()
    store.set_theme(request_theme(request))
    return store


async def process_input(resolver: IdentityResolver, value: str) -> str:
    """
    Turn raw user input into the route to navigate to.

    Endpoint references go straight to the PDS view. Coordinates are resolved
    first, both to validate that the authority has a serving endpoint and to
    canonicalize handles into DIDs.

    Raises:
        NormalizationError: If the input is empty or malformed
        ResolutionError: If the authority cannot be resolved
    """
    normalized = normalize(value)
    if isinstance(normalized, EndpointReference):
        return normalized.route

    identity = await resolver.resolve_serving_endpoint(normalized.authority)
    return normalized.with_authority(identity.did).route


async def resolve_service(
    resolver: IdentityResolver, pds: str, repo: Optional[str]
) -> str:
    """Base URL of the PDS for a route's ``{pds}`` segment.

    Raises:
        ResolutionError: If the PDS has to be resolved and resolution fails
    """
    if pds == RESOLVE_VIA_IDENTITY and repo is not None:
        identity = await resolver.resolve_serving_endpoint(repo)
        return identity.serving_endpoint
    return service_url(pds)


async def load_record_view(
    app: web.Application,
    store: ViewStateStore,
    token: ViewToken,
    pds: str,
    coordinate: Coordinate,
) -> RecordView:
    """
    Resolve, fetch, verify and render one record.

    Resolution and fetch failures are written to the store as notices and
    leave the returned view without a record. A failed verification still
    returns the rendered record, flagged invalid.
    """
    resolver = app[IdentityResolverAppKey]
    settings = app[SettingsAppKey]
    metrics_client = app[MetricsClientAppKey]
    view = RecordView(coordinate=coordinate)

    store.set_notice(token, "Loading...")
    store.set_valid_record(token, None)
    store.set_pds(token, pds)

    if coordinate.collection is None or coordinate.rkey is None:
        store.set_notice(token, "Invalid Record: missing collection or record key")
        return view

    try:
        endpoint = await resolve_service(resolver, pds, coordinate.authority)
    except ResolutionError as e:
        logger.info("Resolving %s failed: %s", coordinate.authority, e)
        store.set_notice(token, e.notice)
        return view

    try:
        record = await get_record(
            app[SessionAppKey],
            endpoint,
            coordinate.authority,
            coordinate.collection,
            coordinate.rkey,
        )
    except FetchError as e:
        metrics_client.increment("atview.record.fetch_error", 1)
        store.set_notice(token, e.notice)
        store.set_valid_record(token, False)
        return view

    store.set_notice(token, "Validating...")
    view.record = record

    did_document = None
    try:
        did_document = await resolver.did_document(await resolver.resolve_did(record.repo))
    except ResolutionError as e:
        logger.info("No DID document to verify %s against: %s", record.uri, e)

    view.valid_record = await authenticate_record(
        app.get(RecordAuthenticatorAppKey), record, did_document
    )
    store.set_valid_record(token, view.valid_record)
    if view.valid_record is False:
        metrics_client.increment("atview.record.invalid", 1)

    view.external_link = app[LinkTemplateRegistryAppKey].apply_uri(record.uri)
    view.tree = render_record(record, max_depth=settings.render_max_depth)
    store.set_notice(token, "")
    return view
