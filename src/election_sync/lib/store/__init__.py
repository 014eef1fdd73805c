"""Store library: PocketBase access for the sync jobs.

Public API:
    - StoreClient: Async PocketBase records/auth client
    - StoreAuthenticator: User → superuser login with session reuse
    - StoreSession: Authenticated session details
    - StoreError: PocketBase call failure
    - AuthError: Both login tiers rejected
    - build_filter: Equality filter expression builder
"""

from election_sync.lib.store.auth import AuthError, StoreAuthenticator, StoreSession, token_is_valid
from election_sync.lib.store.client import StoreClient, StoreError, build_filter

__all__ = [
    "AuthError",
    "StoreAuthenticator",
    "StoreClient",
    "StoreError",
    "StoreSession",
    "build_filter",
    "token_is_valid",
]
