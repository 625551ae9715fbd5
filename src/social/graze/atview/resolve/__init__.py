"""
Input Normalization and Identity Resolution

Key Components:
- coordinate.py: parses free-form input into a repository coordinate
- handle.py: handle to DID resolution, DID document retrieval and PDS lookup
- cache.py: DID document caches (in-memory and Redis)
- __main__.py: CLI interface for resolution

Resolution Types:
1. Handle Resolution
   - DNS-based resolution via TXT records (_atproto.{handle})
   - HTTP-based resolution via well-known endpoints (.well-known/atproto-did)

2. DID Resolution
   - did:plc method resolution via PLC directory
   - did:web method resolution via well-known endpoints

Resolved DID documents are cached by DID, so repeated lookups for the same
repository cost a single round trip.
"""
