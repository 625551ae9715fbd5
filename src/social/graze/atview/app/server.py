import asyncio
import contextlib
import os
import logging
from time import time
from typing import Optional

import jinja2
from aiohttp import web
import aiohttp_jinja2
import aiohttp
import redis.asyncio as redis
import sentry_sdk
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

from social.graze.atview.app.config import (
    HealthGaugeAppKey,
    IdentityResolverAppKey,
    LinkTemplateRegistryAppKey,
    MetricsClientAppKey,
    RedisClientAppKey,
    SessionAppKey,
    Settings,
    SettingsAppKey,
    TickHealthTaskAppKey,
)
from social.graze.atview.app.handlers.api import (
    handle_api_normalize,
    handle_api_record,
    handle_api_resolve,
)
from social.graze.atview.app.handlers.internal import (
    handle_internal_alive,
    handle_internal_ready,
)
from social.graze.atview.app.handlers.views import (
    handle_collection,
    handle_index,
    handle_index_submit,
    handle_pds,
    handle_record,
    handle_repo,
    handle_theme,
)
from social.graze.atview.app.health import HealthGauge
from social.graze.atview.app.metrics import create_metrics_client
from social.graze.atview.app.tasks import tick_health_task
from social.graze.atview.render.links import default_registry
from social.graze.atview.resolve.cache import (
    DidDocumentCache,
    MemoryDidDocumentCache,
    RedisDidDocumentCache,
)
from social.graze.atview.resolve.handle import IdentityResolver

logger = logging.getLogger(__name__)

TEMPLATES_PATH = os.path.join(os.path.dirname(__file__), "templates")


def create_client_session(settings: Settings) -> aiohttp.ClientSession:
    trace_config = aiohttp.TraceConfig()

    if settings.debug:

        async def on_request_start(
            session, trace_config_ctx, params: aiohttp.TraceRequestStartParams
        ):
            logging.info("Starting request: %s", params)

        async def on_request_end(session, trace_config_ctx, params):
            logging.info("Ending request: %s", params)

        trace_config.on_request_start.append(on_request_start)
        trace_config.on_request_end.append(on_request_end)

    return aiohttp.ClientSession(
        trace_configs=[trace_config],
        timeout=aiohttp.ClientTimeout(total=settings.http_timeout),
    )


def create_did_document_cache(app: web.Application, settings: Settings) -> DidDocumentCache:
    if settings.did_cache_backend == "redis":
        if settings.redis_dsn is None:
            raise ValueError("REDIS_DSN is required for the redis DID cache backend")
        app[RedisClientAppKey] = redis.Redis.from_url(str(settings.redis_dsn))
        return RedisDidDocumentCache(app[RedisClientAppKey], ttl=settings.did_cache_ttl)
    return MemoryDidDocumentCache()


async def background_tasks(app):
    logger.info("Starting up")
    settings: Settings = app[SettingsAppKey]

    if SessionAppKey not in app:
        app[SessionAppKey] = create_client_session(settings)

    if MetricsClientAppKey not in app:
        metrics_client = create_metrics_client(
            settings.metrics_backend,
            host=settings.statsd_host,
            port=settings.statsd_port,
            debug=settings.debug,
        )
        await metrics_client.connect()
        app[MetricsClientAppKey] = metrics_client

    if IdentityResolverAppKey not in app:
        app[IdentityResolverAppKey] = IdentityResolver(
            app[SessionAppKey],
            plc_hostname=settings.plc_hostname,
            cache=create_did_document_cache(app, settings),
            metrics_client=app[MetricsClientAppKey],
        )

    logger.info("Startup complete")

    app[TickHealthTaskAppKey] = asyncio.create_task(tick_health_task(app))

    yield

    logger.info("Shutting down background tasks")

    app[TickHealthTaskAppKey].cancel()

    with contextlib.suppress(asyncio.exceptions.CancelledError):
        await app[TickHealthTaskAppKey]

    await app[IdentityResolverAppKey].cache.close()
    await app[SessionAppKey].close()
    await app[MetricsClientAppKey].close()


@web.middleware
async def sentry_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        sentry_sdk.capture_exception(e)
        await request.app[HealthGaugeAppKey].womp()
        raise e


@web.middleware
async def statsd_middleware(request: web.Request, handler):
    metrics_client = request.app[MetricsClientAppKey]
    request_method: str = request.method
    route = request.match_info.route.resource
    request_path = route.canonical if route is not None else request.path

    start_time: float = time()
    response_status_code = 0

    try:
        response = await handler(request)
        response_status_code = response.status
        return response
    except web.HTTPException as e:
        response_status_code = e.status
        raise e
    except Exception as e:
        metrics_client.increment(
            "atview.server.request.exception",
            1,
            tag_dict={
                "exception": type(e).__name__,
                "path": request_path,
                "method": request_method,
            },
        )
        raise e
    finally:
        metrics_client.timer(
            "atview.server.request.time",
            time() - start_time,
            tag_dict={"path": request_path, "method": request_method},
        )
        metrics_client.increment(
            "atview.server.request.count",
            1,
            tag_dict={
                "path": request_path,
                "method": request_method,
                "status": response_status_code,
            },
        )


async def start_web_server(settings: Optional[Settings] = None) -> web.Application:

    if settings is None:
        settings = Settings()  # type: ignore
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            send_default_pii=True,
            integrations=[AioHttpIntegration()],
        )
    app = web.Application(middlewares=[statsd_middleware, sentry_middleware])

    app[SettingsAppKey] = settings
    app[HealthGaugeAppKey] = HealthGauge()
    app[LinkTemplateRegistryAppKey] = default_registry()

    app.add_routes(
        [
            web.get("/internal/alive", handle_internal_alive),
            web.get("/internal/ready", handle_internal_ready),
            web.get("/api/normalize", handle_api_normalize),
            web.get("/api/resolve", handle_api_resolve),
            web.get("/api/record", handle_api_record),
            web.get("/theme", handle_theme),
        ]
    )

    app.add_routes(
        [
            web.get("/", handle_index),
            web.post("/", handle_index_submit),
            web.get("/{pds}", handle_pds),
            web.get("/{pds}/{repo}", handle_repo),
            web.get("/{pds}/{repo}/{collection}", handle_collection),
            web.get("/{pds}/{repo}/{collection}/{rkey}", handle_record),
        ]
    )

    _ = aiohttp_jinja2.setup(
        app,
        enable_async=True,
        context_processors=[aiohttp_jinja2.request_processor],
        loader=jinja2.FileSystemLoader(TEMPLATES_PATH),
        autoescape=jinja2.select_autoescape(["html"]),
    )

    app.cleanup_ctx.append(background_tasks)

    return app
