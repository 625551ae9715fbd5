"""External deep links for known record collections.

Maps a collection NSID to a template producing a link to the record on a
third-party site. Lookup is an exact match on the collection; records of
unlisted collections simply have no external link.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from pydantic import BaseModel

from social.graze.atview.resolve.coordinate import Coordinate, parse_at_uri


class ExternalLink(BaseModel):
    label: str
    link: str


@dataclass(frozen=True)
class LinkTemplate:
    """A labelled link pattern with ``{authority}`` and ``{rkey}`` placeholders."""

    label: str
    pattern: str

    @property
    def needs_rkey(self) -> bool:
        return "{rkey}" in self.pattern

    def __call__(self, coordinate: Coordinate) -> Optional[ExternalLink]:
        if self.needs_rkey and coordinate.rkey is None:
            return None
        return ExternalLink(
            label=self.label,
            link=self.pattern.format(
                authority=coordinate.authority, rkey=coordinate.rkey
            ),
        )


class LinkTemplateRegistry:
    """Append-only table of collection NSID to LinkTemplate."""

    def __init__(self, templates: Optional[Dict[str, LinkTemplate]] = None) -> None:
        self._templates: Dict[str, LinkTemplate] = {}
        for collection, template in (templates or {}).items():
            self.register(collection, template)

    def register(self, collection: str, template: LinkTemplate) -> None:
        if collection in self._templates:
            raise KeyError(f"A link template for {collection} is already registered")
        self._templates[collection] = template

    def lookup(self, collection: str) -> Optional[LinkTemplate]:
        return self._templates.get(collection)

    def apply(self, coordinate: Coordinate) -> Optional[ExternalLink]:
        if coordinate.collection is None:
            return None
        template = self.lookup(coordinate.collection)
        if template is None:
            return None
        return template(coordinate)

    def apply_uri(self, uri: str) -> Optional[ExternalLink]:
        """Deep link for a full ``at://repo/collection/rkey`` URI."""
        coordinate = parse_at_uri(uri)
        if coordinate is None:
            return None
        return self.apply(coordinate)

    def __contains__(self, collection: str) -> bool:
        return collection in self._templates

    def __len__(self) -> int:
        return len(self._templates)


BLUESKY = "Bluesky"

DEFAULT_TEMPLATES: Dict[str, LinkTemplate] = {
    "app.bsky.actor.profile": LinkTemplate(
        BLUESKY, "https://bsky.app/profile/{authority}"
    ),
    "app.bsky.feed.post": LinkTemplate(
        BLUESKY, "https://bsky.app/profile/{authority}/post/{rkey}"
    ),
    "app.bsky.graph.list": LinkTemplate(
        BLUESKY, "https://bsky.app/profile/{authority}/lists/{rkey}"
    ),
    "app.bsky.feed.generator": LinkTemplate(
        BLUESKY, "https://bsky.app/profile/{authority}/feed/{rkey}"
    ),
    "fyi.unravel.frontpage.post": LinkTemplate(
        "Frontpage", "https://frontpage.fyi/post/{authority}/{rkey}"
    ),
    "com.whtwnd.blog.entry": LinkTemplate(
        "WhiteWind", "https://whtwnd.com/{authority}/{rkey}"
    ),
    "com.shinolabs.pinksea.oekaki": LinkTemplate(
        "PinkSea", "https://pinksea.art/{authority}/oekaki/{rkey}"
    ),
    "blue.linkat.board": LinkTemplate("Linkat", "https://linkat.blue/{authority}"),
}


def default_registry() -> LinkTemplateRegistry:
    return LinkTemplateRegistry(DEFAULT_TEMPLATES)
