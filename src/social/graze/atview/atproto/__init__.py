"""
AT Protocol Integration

Read-only communication with Personal Data Server (PDS) instances.

Key Components:
- pds.py: XRPC queries (getRecord, describeRepo, listRecords, listRepos)
- authenticity.py: boundary to the external record verifier
"""
