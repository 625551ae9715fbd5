"""Record authenticity boundary.

Cryptographic verification of a fetched record against the repository's DID
document is delegated to an external verifier. This module defines the shape
of that verifier and turns its outcome into the validity flag shown to users.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import sentry_sdk

from social.graze.atview.atproto.pds import RecordOutput

logger = logging.getLogger(__name__)

RecordAuthenticator = Callable[[str, str, Any, Dict[str, Any]], Awaitable[bool]]
"""Async predicate ``(uri, cid, value, did_document) -> bool``."""


async def authenticate_record(
    authenticator: Optional[RecordAuthenticator],
    record: RecordOutput,
    did_document: Optional[Dict[str, Any]],
) -> Optional[bool]:
    """
    Run the external verifier against a fetched record.

    Returns None when no verifier is configured or there is nothing to check
    against, so no validity indicator is shown. A verifier that raises is
    reported and counts as a failed verification; the record is still shown.
    """
    if authenticator is None or did_document is None or record.cid is None:
        return None
    try:
        return bool(
            await authenticator(record.uri, record.cid, record.value, did_document)
        )
    except Exception as e:
        logger.info("Record %s failed verification: %s", record.uri, e)
        sentry_sdk.capture_exception(e)
        return False
