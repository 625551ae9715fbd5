"""AT Protocol record coordinate parsing.

Normalizes free-form user input (handles, DIDs, AT URIs and first-party web
links) into a repository coordinate. Absolute URLs that point anywhere other
than a first-party front-end are treated as a reference to a network node.
"""

from enum import Enum
from typing import Optional, Union
from urllib.parse import urlsplit

from pydantic import BaseModel


FIRST_PARTY_ORIGINS = ("https://bsky.app/", "https://main.bsky.dev/")
"""Web front-ends whose profile and post links are rewritten into coordinates."""

PROFILE_PREFIXES = tuple(f"{origin}profile/" for origin in FIRST_PARTY_ORIGINS)

POST_COLLECTION = "app.bsky.feed.post"

AT_URI_SCHEME = "at://"


class NormalizationErrorKind(str, Enum):
    empty = "empty"
    malformed = "malformed"


class NormalizationError(ValueError):
    """Input could not be turned into a coordinate or endpoint."""

    def __init__(self, kind: NormalizationErrorKind, value: str = "") -> None:
        self.kind = kind
        self.value = value
        super().__init__(f"{kind.value} input: {value!r}")

    @staticmethod
    def empty() -> "NormalizationError":
        return NormalizationError(NormalizationErrorKind.empty)

    @staticmethod
    def malformed(value: str) -> "NormalizationError":
        return NormalizationError(NormalizationErrorKind.malformed, value)


class Coordinate(BaseModel, frozen=True):
    """A repository coordinate: an authority and an optional collection and record key."""

    authority: str
    collection: Optional[str] = None
    rkey: Optional[str] = None

    def segments(self) -> list[str]:
        return [
            segment
            for segment in (self.authority, self.collection, self.rkey)
            if segment is not None
        ]

    @property
    def is_did(self) -> bool:
        return self.authority.startswith("did:")

    @property
    def uri(self) -> str:
        return AT_URI_SCHEME + "/".join(self.segments())

    @property
    def route(self) -> str:
        return "/at/" + "/".join(self.segments())

    def with_authority(self, authority: str) -> "Coordinate":
        return self.model_copy(update={"authority": authority})

    def __str__(self) -> str:
        return self.uri


class EndpointReference(BaseModel, frozen=True):
    """A network node (PDS) named directly by URL, rather than a record."""

    host: str

    @property
    def route(self) -> str:
        return f"/{self.host}"

    def __str__(self) -> str:
        return f"https://{self.host}"


NormalizedInput = Union[Coordinate, EndpointReference]


def is_endpoint_url(value: str) -> bool:
    """Check if value is an absolute http(s) URL outside the first-party front-ends.

    Args:
        value: Stripped user input

    Returns:
        True if the input names a network node rather than a record
    """
    if value.startswith(FIRST_PARTY_ORIGINS):
        return False
    return value.startswith("https://") or value.startswith("http://")


def normalize(value: str) -> NormalizedInput:
    """Parse free-form input into a coordinate or an endpoint reference.

    Accepts bare DIDs and handles, AT URIs with or without the ``at://``
    scheme, and first-party profile and post links. Performs no network access.

    Args:
        value: Raw user input

    Returns:
        Coordinate for record input, EndpointReference for other absolute URLs

    Raises:
        NormalizationError: If the input is empty or cannot be split into a coordinate
    """
    value = value.strip()
    if len(value) == 0:
        raise NormalizationError.empty()

    if is_endpoint_url(value):
        host = urlsplit(value).netloc
        if len(host) == 0:
            raise NormalizationError.malformed(value)
        return EndpointReference(host=host)

    uri = value.removeprefix(AT_URI_SCHEME)
    for prefix in PROFILE_PREFIXES:
        uri = uri.removeprefix(prefix)
    uri = uri.replace("/post/", f"/{POST_COLLECTION}/", 1)

    # First-party links other than profiles have no coordinate form.
    if uri.startswith("https://") or uri.startswith("http://"):
        raise NormalizationError.malformed(value)

    uri = uri.removesuffix("/")
    segments = uri.split("/")
    segments[0] = segments[0].removeprefix("@")

    if len(segments[0]) == 0 and len(segments) == 1:
        raise NormalizationError.empty()
    if len(segments) > 3 or any(len(segment) == 0 for segment in segments):
        raise NormalizationError.malformed(value)

    authority, *rest = segments
    return Coordinate(
        authority=authority,
        collection=rest[0] if len(rest) > 0 else None,
        rkey=rest[1] if len(rest) > 1 else None,
    )


def parse_at_uri(uri: str) -> Optional[Coordinate]:
    """Parse a full ``at://repo/collection/rkey`` URI.

    Unlike normalize, only the exact three-segment AT URI form is accepted.
    """
    parts = uri.split("/")
    if len(parts) != 5:
        return None
    if parts[0] != "at:" or parts[1] != "":
        return None
    if any(len(part) == 0 for part in parts[2:]):
        return None
    return Coordinate(authority=parts[2], collection=parts[3], rkey=parts[4])
