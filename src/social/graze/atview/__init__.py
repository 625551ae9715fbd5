"""
atview - AT Protocol record viewer

Locates and inspects records stored in the AT Protocol repository network.
Input may be a handle, a DID, an AT URI, or a Bluesky profile/post link; it is
normalized into a repository coordinate, the repository's PDS is resolved
through its DID document, and the fetched record is rendered into an
annotated presentation tree.

Key Components:
- resolve: input normalization and identity resolution (handles, DIDs, PDS)
- atproto: read-only XRPC calls against a PDS and the record verifier boundary
- render: record value rendering and external deep-link templates
- app: aiohttp web application, JSON API, configuration and metrics

Request Flow:
1. Normalize the input into a coordinate (or a PDS endpoint reference)
2. Resolve the authority to a DID and its serving endpoint
3. Fetch the record from the PDS
4. Verify the record with the external verifier, if one is configured
5. Render the record and look up its external deep link
"""
