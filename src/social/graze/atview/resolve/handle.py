"""AT Protocol handle and DID resolution.

Resolves handles to DIDs using DNS TXT records and HTTPS well-known endpoints,
fetches DID documents for did:plc and did:web identities, and extracts the
repository-hosting service (PDS) from them. DID documents are cached by DID
through a DidDocumentCache.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from aiodns import DNSResolver
from aiohttp import ClientError, ClientSession
from pydantic import BaseModel
import sentry_sdk

from social.graze.atview.app.metrics import MetricsClient, NoOpMetricsClient
from social.graze.atview.resolve.cache import (
    DidDocument,
    DidDocumentCache,
    MemoryDidDocumentCache,
)

logger = logging.getLogger(__name__)

RESOLUTION_NOTICE = "Could not resolve AT URI"
"""User-facing notice shown for every resolution failure."""


class ResolutionError(Exception):
    """Base class for identity resolution failures.

    All resolution errors are reported to users with the same notice.
    """

    notice = RESOLUTION_NOTICE


class HandleNotFound(ResolutionError):
    def __init__(self, handle: str) -> None:
        self.handle = handle
        super().__init__(f"Handle {handle} did not resolve to a DID")


class DidDocumentUnavailable(ResolutionError):
    def __init__(self, did: str) -> None:
        self.did = did
        super().__init__(f"DID document for {did} is unavailable")


class NoServingEndpoint(ResolutionError):
    def __init__(self, did: str) -> None:
        self.did = did
        super().__init__(f"DID document for {did} declares no PDS service")


class ResolvedIdentity(BaseModel):
    """Resolved repository identity.

    Contains the DID, the serving endpoint (PDS) and, when the DID document
    declares one, the handle.
    """

    did: str
    serving_endpoint: str
    handle: Optional[str] = None


async def resolve_handle_dns(handle: str) -> Optional[str]:
    """Resolve AT Protocol handle to DID using DNS TXT record.

    Queries _atproto.{handle} TXT record and extracts DID from did= prefix.

    Args:
        handle: AT Protocol handle to resolve

    Returns:
        DID string if found, None if resolution fails
    """
    resolver = DNSResolver()
    try:
        results = await resolver.query(f"_atproto.{handle}", "TXT")
    except Exception as e:
        sentry_sdk.capture_exception(e)
        return None
    first_result = next(iter(results or []), None)
    if first_result is not None:
        text = first_result.text
        if isinstance(text, bytes):
            text = text.decode()
        return text.removeprefix("did=")
    return None


async def resolve_handle_http(session: ClientSession, handle: str) -> Optional[str]:
    """Resolve AT Protocol handle to DID using HTTPS well-known endpoint.

    Fetches DID from https://{handle}/.well-known/atproto-did endpoint.

    Args:
        session: HTTP client session
        handle: AT Protocol handle to resolve

    Returns:
        DID string if found, None if resolution fails
    """
    try:
        async with session.get(f"https://{handle}/.well-known/atproto-did") as resp:
            if resp.status != 200:
                return None
            body = await resp.text()
            if body is not None and body.strip().startswith("did:"):
                return body.strip()
            return None
    except Exception as e:
        sentry_sdk.capture_exception(e)
        return None


async def resolve_handle(session: ClientSession, handle: str) -> Optional[str]:
    """Resolve AT Protocol handle to DID using DNS and HTTPS concurrently.

    Attempts both DNS TXT and HTTPS well-known resolution, preferring DNS.

    Args:
        session: HTTP client session
        handle: AT Protocol handle to resolve

    Returns:
        DID string if found via either method, None if both fail
    """
    async with asyncio.TaskGroup() as tg:
        dns_result = tg.create_task(resolve_handle_dns(handle))
        http_result = tg.create_task(resolve_handle_http(session, handle))
    dns_result = dns_result.result()
    http_result = http_result.result()
    if dns_result is not None:
        return dns_result
    return http_result


def handle_predicate(value: str) -> bool:
    """Check if an alsoKnownAs entry is an AT Protocol handle reference."""
    return value is not None and value.startswith("at://")


def pds_predicate(value: Dict[str, Any]) -> bool:
    """Check if service entry is the repository-hosting service.

    Args:
        value: Service dictionary from DID document

    Returns:
        True if service is an AtprotoPersonalDataServer (or #atproto_pds) with endpoint
    """
    if value is None or "serviceEndpoint" not in value:
        return False
    return value.get("type", None) == "AtprotoPersonalDataServer" or str(
        value.get("id", "")
    ).endswith("#atproto_pds")


def did_web_document_url(did: str) -> Optional[str]:
    """Build the did.json URL for a did:web DID.

    A bare host maps to /.well-known/did.json, a host with path segments maps
    to /{path}/did.json.
    """
    parts = did.removeprefix("did:web:").split(":")
    if len(parts) == 0 or len(parts[0]) == 0:
        return None

    if len(parts) == 1:
        parts.append(".well-known")

    return "https://{inner}/did.json".format(inner="/".join(parts))


def did_document_url(plc_hostname: str, did: str) -> Optional[str]:
    if did.startswith("did:plc:"):
        return f"https://{plc_hostname}/{did}"
    elif did.startswith("did:web:"):
        return did_web_document_url(did)
    return None


async def fetch_did_document(
    session: ClientSession, plc_hostname: str, did: str
) -> Optional[DidDocument]:
    """Fetch the DID document for a did:plc or did:web DID.

    Args:
        session: HTTP client session
        plc_hostname: PLC directory hostname for did:plc resolution
        did: DID to resolve

    Returns:
        The DID document, None if the method is unsupported or the fetch fails
    """
    url = did_document_url(plc_hostname, did)
    if url is None:
        return None

    async with session.get(url) as resp:
        if resp.status != 200:
            return None
        body = await resp.json(content_type=None)
        if not isinstance(body, dict):
            return None
        return body


def serving_endpoint(document: DidDocument) -> Optional[str]:
    service = next(filter(pds_predicate, document.get("service", None) or []), None)
    if service is None:
        return None
    return str(service.get("serviceEndpoint")).rstrip("/")


def document_handle(document: DidDocument) -> Optional[str]:
    handle = next(filter(handle_predicate, document.get("alsoKnownAs", None) or []), None)
    if handle is None:
        return None
    return handle.removeprefix("at://")


def parse_subject(subject: str) -> str:
    """Normalize a bare subject (handle or DID) for resolution."""
    subject = subject.strip()
    subject = subject.removeprefix("at://")
    subject = subject.removeprefix("@")
    return subject


class IdentityResolver:
    """
    Resolves authorities (handles or DIDs) to a DID and a serving endpoint.

    DID documents are fetched once per DID and kept in the cache; subsequent
    resolutions of the same DID reuse the cached document. Failures are
    raised as ResolutionError subclasses and never retried.
    """

    def __init__(
        self,
        session: ClientSession,
        plc_hostname: str = "plc.directory",
        cache: Optional[DidDocumentCache] = None,
        metrics_client: Optional[MetricsClient] = None,
    ) -> None:
        self._session = session
        self._plc_hostname = plc_hostname
        self.cache = cache if cache is not None else MemoryDidDocumentCache()
        self._metrics_client = metrics_client or NoOpMetricsClient()

    async def resolve_did(self, authority: str) -> str:
        """Resolve an authority to a DID, skipping handle resolution for DIDs.

        Raises:
            HandleNotFound: If the handle does not resolve
        """
        authority = parse_subject(authority)
        if authority.startswith("did:"):
            return authority

        did = await resolve_handle(self._session, authority)
        if did is None:
            self._metrics_client.increment("atview.resolve.handle.not_found", 1)
            raise HandleNotFound(authority)
        return did

    async def did_document(self, did: str) -> DidDocument:
        """Return the DID document for a DID, from the cache when present.

        Raises:
            DidDocumentUnavailable: If the document cannot be fetched
        """
        document = await self.cache.get(did)
        if document is not None:
            self._metrics_client.increment("atview.resolve.cache.hit", 1)
            return document

        self._metrics_client.increment("atview.resolve.cache.miss", 1)
        try:
            document = await fetch_did_document(self._session, self._plc_hostname, did)
        except (ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("Fetching DID document for %s failed: %s", did, e)
            raise DidDocumentUnavailable(did) from e

        if document is None:
            raise DidDocumentUnavailable(did)

        await self.cache.set(did, document)
        return document

    async def resolve_serving_endpoint(self, authority: str) -> ResolvedIdentity:
        """Resolve an authority to its DID and serving endpoint.

        Raises:
            ResolutionError: HandleNotFound, DidDocumentUnavailable or NoServingEndpoint
        """
        did = await self.resolve_did(authority)
        document = await self.did_document(did)

        endpoint = serving_endpoint(document)
        if endpoint is None:
            raise NoServingEndpoint(did)

        return ResolvedIdentity(
            did=did, serving_endpoint=endpoint, handle=document_handle(document)
        )
