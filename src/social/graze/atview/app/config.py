"""
Configuration Module for the atview service

Settings are loaded from environment variables through pydantic-settings, with
defaults suitable for local development. Shared resources (HTTP session,
resolver, caches, metrics) are attached to the aiohttp application through
typed AppKeys so handlers never reach for module-level globals.

Configuration areas:
- Service networking and debugging
- Identity resolution (PLC directory, DID document cache backend)
- Rendering limits and listing page sizes
- Monitoring (Sentry, StatsD)
"""

import asyncio
from typing import Final, Literal, Optional
import logging

from aiohttp import ClientSession, web
from pydantic import AliasChoices, Field, RedisDsn, field_validator
from pydantic_settings import BaseSettings
from redis import asyncio as redis

from social.graze.atview.app.health import HealthGauge
from social.graze.atview.app.metrics import MetricsClient
from social.graze.atview.atproto.authenticity import RecordAuthenticator
from social.graze.atview.render.links import LinkTemplateRegistry
from social.graze.atview.resolve.handle import IdentityResolver


logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings for the atview service.

    Every field maps to an environment variable of the same name (case
    insensitive), e.g. PLC_HOSTNAME or DID_CACHE_BACKEND. The Redis
    connection string can be set with either REDIS_DSN or REDIS_URL.
    """

    debug: bool = False
    """
    Enable debug mode: request tracing on the outbound HTTP session and
    detailed error bodies.
    """

    http_port: int = Field(alias="port", default=5100)
    """HTTP port for the service to listen on. Set with PORT."""

    plc_hostname: str = "plc.directory"
    """Hostname of the PLC directory used for did:plc resolution."""

    http_timeout: float = 15.0
    """Total timeout in seconds for outbound HTTP requests."""

    did_cache_backend: Literal["memory", "redis"] = "memory"
    """
    Where resolved DID documents are cached. The memory cache lives for the
    process lifetime and never evicts; the redis cache expires entries after
    did_cache_ttl seconds.
    """

    did_cache_ttl: int = 3600
    """Seconds a DID document stays in the redis cache."""

    redis_dsn: Optional[RedisDsn] = Field(
        None,
        validation_alias=AliasChoices("redis_dsn", "redis_url"),
    )
    """Redis connection string, required when did_cache_backend is redis."""

    render_max_depth: int = 64
    """Nesting ceiling for record rendering."""

    page_size: int = 100
    """Number of records or repositories requested per listing page."""

    sentry_dsn: Optional[str] = None
    """Sentry DSN for error reporting. No error reporting if not set."""

    metrics_backend: Literal["telegraf", "none"] = "none"
    """Metrics backend: telegraf (StatsD) or none."""

    statsd_host: str = Field(alias="TELEGRAF_HOST", default="telegraf")
    """StatsD/Telegraf host. Set with TELEGRAF_HOST."""

    statsd_port: int = Field(alias="TELEGRAF_PORT", default=8125)
    """StatsD/Telegraf port. Set with TELEGRAF_PORT."""

    @field_validator("render_max_depth", "page_size")
    @classmethod
    def positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v


# Application context keys for dependency injection
SettingsAppKey: Final = web.AppKey("settings", Settings)
"""AppKey for accessing the application settings"""

SessionAppKey: Final = web.AppKey("http_session", ClientSession)
"""AppKey for accessing the shared aiohttp client session"""

RedisClientAppKey: Final = web.AppKey("redis_client", redis.Redis)
"""AppKey for the Redis client, present only with the redis DID cache backend"""

IdentityResolverAppKey: Final = web.AppKey("identity_resolver", IdentityResolver)
"""AppKey for the shared identity resolver and its DID document cache"""

LinkTemplateRegistryAppKey: Final = web.AppKey(
    "link_template_registry", LinkTemplateRegistry
)
"""AppKey for the external deep-link table"""

RecordAuthenticatorAppKey: Final = web.AppKey(
    "record_authenticator", RecordAuthenticator
)
"""AppKey for the optional external record verifier"""

HealthGaugeAppKey: Final = web.AppKey("health_gauge", HealthGauge)
"""AppKey for accessing the health monitoring gauge"""

MetricsClientAppKey: Final = web.AppKey("metrics_client", MetricsClient)
"""AppKey for the metrics client"""

TickHealthTaskAppKey: Final = web.AppKey("tick_health_task", asyncio.Task[None])
"""AppKey for the background task that decays the health gauge"""
