"""DID document caches.

Resolved DID documents are cached by DID so that repeated views of records
from the same repository cost a single identity round trip. The in-memory
cache never evicts; the Redis cache is meant for long-running deployments and
expires entries after a TTL.
"""

from abc import ABC, abstractmethod
import json
import logging
from typing import Any, Dict, Optional

from redis import asyncio as redis

logger = logging.getLogger(__name__)

DidDocument = Dict[str, Any]


class DidDocumentCache(ABC):
    """Storage for DID documents keyed by DID."""

    @abstractmethod
    async def get(self, did: str) -> Optional[DidDocument]:
        pass

    @abstractmethod
    async def set(self, did: str, document: DidDocument) -> None:
        pass

    async def close(self) -> None:
        pass


class MemoryDidDocumentCache(DidDocumentCache):
    """
    Process-wide DID document cache with no eviction and no TTL.

    Writes are not locked. Concurrent resolutions of the same DID may both
    insert; the last write wins, which is safe because the document for a DID
    does not change within a session.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, DidDocument] = {}

    async def get(self, did: str) -> Optional[DidDocument]:
        return self._documents.get(did)

    async def set(self, did: str, document: DidDocument) -> None:
        self._documents[did] = document

    def __contains__(self, did: str) -> bool:
        return did in self._documents

    def __len__(self) -> int:
        return len(self._documents)


class RedisDidDocumentCache(DidDocumentCache):
    """DID document cache stored in Redis as JSON with a per-entry TTL."""

    def __init__(
        self,
        redis_client: redis.Redis,
        ttl: int,
        key_prefix: str = "atview:did_doc:",
    ) -> None:
        self._redis_client = redis_client
        self._ttl = ttl
        self._key_prefix = key_prefix

    def _key(self, did: str) -> str:
        return f"{self._key_prefix}{did}"

    async def get(self, did: str) -> Optional[DidDocument]:
        value = await self._redis_client.get(self._key(did))
        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode()
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable cached DID document for %s", did)
            await self._redis_client.delete(self._key(did))
            return None

    async def set(self, did: str, document: DidDocument) -> None:
        await self._redis_client.set(
            self._key(did), json.dumps(document), ex=self._ttl
        )

    async def close(self) -> None:
        await self._redis_client.aclose()
