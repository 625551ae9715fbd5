import logging

from aiohttp import web

from social.graze.atview.app.config import IdentityResolverAppKey
from social.graze.atview.app.handlers.helpers import (
    RESOLVE_VIA_IDENTITY,
    load_record_view,
    view_store,
)
from social.graze.atview.resolve.coordinate import (
    Coordinate,
    EndpointReference,
    NormalizationError,
    normalize,
)
from social.graze.atview.resolve.handle import ResolutionError

logger = logging.getLogger(__name__)


def normalization_error_response(e: NormalizationError) -> web.Response:
    return web.json_response(
        status=400, data={"error": "InvalidInput", "kind": e.kind.value, "message": str(e)}
    )


async def handle_api_normalize(request: web.Request):
    try:
        normalized = normalize(request.query.get("input", ""))
    except NormalizationError as e:
        return normalization_error_response(e)

    if isinstance(normalized, EndpointReference):
        return web.json_response(
            {"type": "endpoint", "host": normalized.host, "route": normalized.route}
        )
    return web.json_response(
        {
            "type": "coordinate",
            **normalized.model_dump(exclude_none=True),
            "uri": normalized.uri,
            "route": normalized.route,
        }
    )


async def handle_api_resolve(request: web.Request):
    subjects = request.query.getall("subject", [])
    if len(subjects) == 0:
        return web.json_response([])

    resolver = request.app[IdentityResolverAppKey]

    # Subjects that fail to resolve are left out of the response.
    results = []
    for subject in subjects:
        try:
            resolved = await resolver.resolve_serving_endpoint(subject)
        except ResolutionError as e:
            logger.info("Subject %s did not resolve: %s", subject, e)
            continue
        results.append(resolved.model_dump())
    return web.json_response(results)


async def handle_api_record(request: web.Request):
    try:
        normalized = normalize(request.query.get("uri", ""))
    except NormalizationError as e:
        return normalization_error_response(e)

    if not isinstance(normalized, Coordinate) or normalized.rkey is None:
        return web.json_response(
            status=400,
            data={"error": "InvalidInput", "message": "A full record AT URI is required"},
        )

    store = view_store(request)
    token = store.begin_view()
    view = await load_record_view(
        request.app,
        store,
        token,
        request.query.get("pds", RESOLVE_VIA_IDENTITY),
        normalized,
    )

    if view.record is None:
        return web.json_response(
            status=502, data={"error": "RecordUnavailable", "message": store.state.notice}
        )

    return web.json_response(
        {
            "uri": view.record.uri,
            "cid": view.record.cid,
            "valid": view.valid_record,
            "external_link": (
                view.external_link.model_dump() if view.external_link else None
            ),
            "tree": view.tree.model_dump() if view.tree is not None else None,
        }
    )
