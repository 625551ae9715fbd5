"""Record value rendering.

Walks an arbitrary JSON value (a repository record) depth-first and produces
a presentation tree. Strings are classified as internal cross-references (AT
URIs and DIDs), external hyperlinks or plain text. Mappings are classified
once for blob descriptors: image blobs get an inline thumbnail and video blobs
an inline player, always alongside the raw key/value listing. Mapping keys are
listed in ascending lexicographic order, so the textual content of a tree is
fully determined by its input.

Rendering never fails: any value that matches no recognized shape falls back
to the generic sequence, mapping or literal rendering, and nesting beyond the
depth ceiling is replaced by a truncated leaf.
"""

from enum import Enum
import json
import math
import re
from typing import Annotated, Any, List, Literal, Optional, Tuple, Union
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, ValidationError

from social.graze.atview.atproto.pds import RecordOutput

DEFAULT_MAX_DEPTH = 64

IMAGE_THUMBNAIL_URL = "https://cdn.bsky.app/img/feed_thumbnail/plain/{did}/{cid}@jpeg"
IMAGE_FULLSIZE_URL = "https://cdn.bsky.app/img/feed_fullsize/plain/{did}/{cid}@jpeg"
VIDEO_PLAYLIST_URL = "https://video.bsky.app/watch/{did}/{cid}/playlist.m3u8"

VIDEO_MIME_TYPE = "video/mp4"

TRUNCATED_TEXT = "…"

_SCHEME_RE = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*")
_SPECIAL_SCHEMES = frozenset(("http", "https", "ws", "wss", "ftp", "file"))


class TextNode(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class ReferenceNode(BaseModel):
    """Navigable cross-reference to a route inside this application."""

    kind: Literal["reference"] = "reference"
    text: str
    href: str


class HyperlinkNode(BaseModel):
    """External link, opened in a new browsing context."""

    kind: Literal["hyperlink"] = "hyperlink"
    text: str
    href: str


class NumberNode(BaseModel):
    kind: Literal["number"] = "number"
    text: str


class BooleanNode(BaseModel):
    kind: Literal["boolean"] = "boolean"
    text: str


class NullNode(BaseModel):
    kind: Literal["null"] = "null"
    text: str = "null"


class TruncatedNode(BaseModel):
    kind: Literal["truncated"] = "truncated"
    text: str = TRUNCATED_TEXT


class ImageNode(BaseModel):
    kind: Literal["image"] = "image"
    thumbnail: str
    href: str
    mime_type: str


class VideoNode(BaseModel):
    kind: Literal["video"] = "video"
    did: str
    cid: str
    playlist: str


class SequenceNode(BaseModel):
    kind: Literal["sequence"] = "sequence"
    items: List["PresentationNode"] = Field(default_factory=list)


class MappingEntry(BaseModel):
    key: str
    copy_text: str
    """Clipboard text for the key: the entry's value as compact JSON, unquoted for strings."""
    value: "PresentationNode"


class MappingNode(BaseModel):
    kind: Literal["mapping"] = "mapping"
    entries: List[MappingEntry] = Field(default_factory=list)
    media: Optional[Annotated[Union[ImageNode, VideoNode], Field(discriminator="kind")]] = None


PresentationNode = Annotated[
    Union[
        TextNode,
        ReferenceNode,
        HyperlinkNode,
        NumberNode,
        BooleanNode,
        NullNode,
        TruncatedNode,
        SequenceNode,
        MappingNode,
        ImageNode,
        VideoNode,
    ],
    Field(discriminator="kind"),
]

SequenceNode.model_rebuild()
MappingEntry.model_rebuild()
MappingNode.model_rebuild()


class MappingShape(str, Enum):
    image_blob = "image_blob"
    video_blob = "video_blob"
    blob = "blob"
    plain = "plain"


class BlobRef(BaseModel):
    link: str = Field(alias="$link")


class BlobDescriptor(BaseModel):
    """``{"$type": "blob", "ref": {"$link": ...}, "mimeType": ...}``"""

    type: Literal["blob"] = Field(alias="$type")
    ref: BlobRef
    mime_type: str = Field(alias="mimeType")


def classify_mapping(data: dict) -> Tuple[MappingShape, Optional[BlobDescriptor]]:
    """Classify a mapping once, before generic rendering."""
    if data.get("$type", None) != "blob":
        return MappingShape.plain, None
    try:
        blob = BlobDescriptor.model_validate(data)
    except ValidationError:
        return MappingShape.plain, None
    if blob.mime_type.startswith("image/"):
        return MappingShape.image_blob, blob
    if blob.mime_type == VIDEO_MIME_TYPE:
        return MappingShape.video_blob, blob
    return MappingShape.blob, blob


def is_at_uri_reference(value: str) -> bool:
    # A space anywhere disqualifies the value; this is not a full AT URI syntax check.
    return value.startswith("at://") and len(value.split(" ")) == 1


def is_absolute_url(value: str) -> bool:
    """Check if value parses as an absolute URL with a scheme and a body."""
    if any(c.isspace() for c in value):
        return False
    scheme, sep, rest = value.partition(":")
    if len(sep) == 0 or _SCHEME_RE.fullmatch(scheme) is None or len(rest) == 0:
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    if parts.scheme in _SPECIAL_SCHEMES and parts.scheme != "file":
        return len(parts.netloc) > 0
    return True


def render_string(value: str) -> PresentationNode:
    if is_at_uri_reference(value):
        return ReferenceNode(text=value, href=value.replace("at://", "/at/", 1))
    if value.startswith("did:"):
        return ReferenceNode(text=value, href=f"/at/{value}")
    if is_absolute_url(value):
        return HyperlinkNode(text=value, href=value)
    return TextNode(text=value)


def format_number(value: Union[int, float]) -> str:
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def copy_text(value: Any) -> str:
    """Clipboard text for a mapping entry."""
    try:
        text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    except (RecursionError, TypeError, ValueError):
        return TRUNCATED_TEXT
    unquoted = re.fullmatch(r'"(.+)"', text)
    if unquoted is not None:
        return unquoted.group(1)
    return text


def blob_media(
    shape: MappingShape, blob: Optional[BlobDescriptor], repo_did: str
) -> Optional[Union[ImageNode, VideoNode]]:
    if blob is None:
        return None
    if shape == MappingShape.image_blob:
        return ImageNode(
            thumbnail=IMAGE_THUMBNAIL_URL.format(did=repo_did, cid=blob.ref.link),
            href=IMAGE_FULLSIZE_URL.format(did=repo_did, cid=blob.ref.link),
            mime_type=blob.mime_type,
        )
    if shape == MappingShape.video_blob:
        return VideoNode(
            did=repo_did,
            cid=blob.ref.link,
            playlist=VIDEO_PLAYLIST_URL.format(did=repo_did, cid=blob.ref.link),
        )
    return None


def render_value(
    value: Any, repo_did: str, max_depth: int = DEFAULT_MAX_DEPTH, depth: int = 0
) -> PresentationNode:
    """
    Render a JSON value into a presentation tree.

    Args:
        value: Any JSON value (str, int, float, bool, None, list, dict)
        repo_did: DID of the repository the value belongs to, used for blob URLs
        max_depth: Container nesting ceiling; deeper containers become truncated leaves
        depth: Current nesting depth

    Returns:
        The root PresentationNode
    """
    if isinstance(value, str):
        return render_string(value)
    # bool before number: bool is a subclass of int.
    if isinstance(value, bool):
        return BooleanNode(text="true" if value else "false")
    if isinstance(value, (int, float)):
        return NumberNode(text=format_number(value))
    if value is None:
        return NullNode()

    if depth >= max_depth:
        return TruncatedNode()

    if isinstance(value, (list, tuple)):
        return SequenceNode(
            items=[render_value(item, repo_did, max_depth, depth + 1) for item in value]
        )

    if isinstance(value, dict):
        shape, blob = classify_mapping(value)
        entries = [
            MappingEntry(
                key=str(key),
                copy_text=copy_text(item),
                value=render_value(item, repo_did, max_depth, depth + 1),
            )
            for key, item in sorted(value.items(), key=lambda kv: str(kv[0]))
        ]
        return MappingNode(entries=entries, media=blob_media(shape, blob, repo_did))

    return TextNode(text=str(value))


def render_record(record: RecordOutput, max_depth: int = DEFAULT_MAX_DEPTH) -> PresentationNode:
    """Render a full getRecord output (uri, cid and value) for its repository."""
    return render_value(
        record.model_dump(exclude_none=True), record.repo, max_depth=max_depth
    )


def to_text(node: PresentationNode, indent: int = 0) -> List[str]:
    """Flatten a presentation tree into indented text lines."""
    pad = "  " * indent
    if isinstance(node, MappingNode):
        lines = []
        if isinstance(node.media, ImageNode):
            lines.append(f"{pad}[image {node.media.href}]")
        elif isinstance(node.media, VideoNode):
            lines.append(f"{pad}[video {node.media.playlist}]")
        for entry in node.entries:
            if isinstance(entry.value, (MappingNode, SequenceNode)):
                lines.append(f"{pad}{entry.key}:")
                lines.extend(to_text(entry.value, indent + 1))
            else:
                lines.append(f"{pad}{entry.key}: {entry.value.text}")
        return lines
    if isinstance(node, SequenceNode):
        lines = []
        for item in node.items:
            lines.extend(to_text(item, indent))
        return lines
    if isinstance(node, (ImageNode, VideoNode)):
        return []
    return [f"{pad}{node.text}"]
