"""Read-only XRPC calls against a PDS.

Each call returns a pydantic model of the response body or raises FetchError.
XRPC error bodies carry an ``error`` code and an optional ``message``; the
message is surfaced verbatim when present.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from aiohttp import ClientError, ClientSession
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """A PDS request failed or returned an error body."""

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message or detail or "fetch failed")

    @property
    def notice(self) -> str:
        if self.message:
            return self.message
        return f"Invalid Record: {self.detail or 'unknown error'}"


class RecordOutput(BaseModel):
    uri: str
    cid: Optional[str] = None
    value: Any = None

    @property
    def repo(self) -> str:
        parts = self.uri.split("/")
        return parts[2] if len(parts) > 2 else ""


class DescribeRepoOutput(BaseModel):
    handle: Optional[str] = None
    did: str
    did_doc: Dict[str, Any] = Field(default_factory=dict, alias="didDoc")
    collections: List[str] = Field(default_factory=list)
    handle_is_correct: Optional[bool] = Field(default=None, alias="handleIsCorrect")


class ListRecordsOutput(BaseModel):
    cursor: Optional[str] = None
    records: List[RecordOutput] = Field(default_factory=list)


class RepoSummary(BaseModel):
    did: str
    head: Optional[str] = None
    rev: Optional[str] = None
    active: Optional[bool] = None


class ListReposOutput(BaseModel):
    cursor: Optional[str] = None
    repos: List[RepoSummary] = Field(default_factory=list)


def service_url(pds: str) -> str:
    """Turn a PDS route segment into a base URL.

    Hosts starting with localhost are reached over plain http, everything
    else over https. Values that already carry a scheme are kept.
    """
    if pds.startswith("https://") or pds.startswith("http://"):
        return pds.rstrip("/")
    if pds.startswith("localhost"):
        return f"http://{pds}"
    return f"https://{pds}"


async def xrpc_query(
    session: ClientSession, pds: str, method: str, params: Dict[str, Any]
) -> Dict[str, Any]:
    """Issue an XRPC query (GET) and return the decoded JSON body.

    Raises:
        FetchError: On transport failures, non-JSON bodies and XRPC errors
    """
    url = f"{pds.rstrip('/')}/xrpc/{method}"
    query = {k: str(v) for k, v in params.items() if v is not None}
    try:
        async with session.get(url, params=query) as resp:
            try:
                body = await resp.json(content_type=None)
            except ValueError:
                body = None
            if resp.status != 200:
                if isinstance(body, dict):
                    raise FetchError(
                        message=body.get("message", None),
                        detail=body.get("error", None) or f"HTTP {resp.status}",
                    )
                raise FetchError(detail=f"HTTP {resp.status}")
            if not isinstance(body, dict):
                raise FetchError(detail="response body is not a JSON object")
            return body
    except (ClientError, asyncio.TimeoutError) as e:
        logger.warning("XRPC %s against %s failed: %s", method, pds, e)
        raise FetchError(detail=str(e) or type(e).__name__) from e


def parse_output(model, body: Dict[str, Any]):
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise FetchError(detail=f"unexpected response shape: {e.error_count()} errors") from e


async def get_record(
    session: ClientSession, pds: str, repo: str, collection: str, rkey: str
) -> RecordOutput:
    body = await xrpc_query(
        session,
        pds,
        "com.atproto.repo.getRecord",
        {"repo": repo, "collection": collection, "rkey": rkey},
    )
    return parse_output(RecordOutput, body)


async def describe_repo(session: ClientSession, pds: str, repo: str) -> DescribeRepoOutput:
    body = await xrpc_query(session, pds, "com.atproto.repo.describeRepo", {"repo": repo})
    return parse_output(DescribeRepoOutput, body)


async def list_records(
    session: ClientSession,
    pds: str,
    repo: str,
    collection: str,
    limit: int = 100,
    cursor: Optional[str] = None,
) -> ListRecordsOutput:
    body = await xrpc_query(
        session,
        pds,
        "com.atproto.repo.listRecords",
        {"repo": repo, "collection": collection, "limit": limit, "cursor": cursor},
    )
    return parse_output(ListRecordsOutput, body)


async def list_repos(
    session: ClientSession, pds: str, limit: int = 100, cursor: Optional[str] = None
) -> ListReposOutput:
    body = await xrpc_query(
        session, pds, "com.atproto.sync.listRepos", {"limit": limit, "cursor": cursor}
    )
    return parse_output(ListReposOutput, body)
