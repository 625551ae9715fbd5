from typing import List
import argparse
import aiohttp
import asyncio
import logging

from social.graze.atview.atproto.pds import FetchError, get_record
from social.graze.atview.render.links import default_registry
from social.graze.atview.render.value import render_record, to_text
from social.graze.atview.resolve.coordinate import (
    EndpointReference,
    NormalizationError,
    normalize,
)
from social.graze.atview.resolve.handle import IdentityResolver, ResolutionError

logger = logging.getLogger(__name__)


async def realMain() -> None:
    parser = argparse.ArgumentParser(
        prog="resolve", description="Resolve handles, DIDs and AT URIs"
    )
    parser.add_argument("subject", nargs="+", help="The input(s) to resolve.")
    parser.add_argument(
        "--plc-hostname",
        default="plc.directory",
        help="The PLC hostname to use for resolving did-method-plc DIDs.",
    )
    parser.add_argument(
        "--render",
        action="store_true",
        help="Fetch and print records for inputs naming a single record.",
    )

    args = vars(parser.parse_args())

    subjects: List[str] = args.get("subject", [])
    registry = default_registry()

    async with aiohttp.ClientSession() as session:
        resolver = IdentityResolver(session, plc_hostname=args.get("plc_hostname"))
        for subject in subjects:
            try:
                normalized = normalize(subject)
            except NormalizationError as e:
                print(f"invalid input {subject!r}: {e.kind.value}")
                continue

            if isinstance(normalized, EndpointReference):
                print(f"endpoint {normalized}")
                continue

            print(f"coordinate {normalized}")
            try:
                identity = await resolver.resolve_serving_endpoint(normalized.authority)
            except ResolutionError as e:
                print(f"{e.notice}: {e}")
                continue
            print(f"resolved_identity {identity}")

            external_link = registry.apply(normalized)
            if external_link is not None:
                print(f"{external_link.label} {external_link.link}")

            if not args.get("render") or normalized.rkey is None:
                continue
            try:
                record = await get_record(
                    session,
                    identity.serving_endpoint,
                    identity.did,
                    normalized.collection,
                    normalized.rkey,
                )
            except FetchError as e:
                print(e.notice)
                continue
            print("\n".join(to_text(render_record(record))))


def main() -> None:
    asyncio.run(realMain())


if __name__ == "__main__":
    main()
