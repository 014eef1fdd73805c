"""Store authentication with user → superuser fallback.

Reuses a still-valid session instead of logging in again.  PocketBase tokens
are JWTs; validity is judged from the unverified ``exp`` claim.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import jwt
from loguru import logger

from election_sync.lib.store.client import StoreClient, StoreError


class AuthError(Exception):
    """Raised when neither the user nor the superuser login succeeds."""


@dataclass
class StoreSession:
    """An authenticated PocketBase session."""

    token: str
    collection: str
    record: dict[str, Any] = field(default_factory=dict)


def token_is_valid(token: str | None) -> bool:
    """Return True when ``token`` is a JWT that has not expired.

    Tokens without an ``exp`` claim are treated as valid.
    """
    if not token:
        return False
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return False
    exp = claims.get("exp")
    if exp is None:
        return True
    return datetime.fromtimestamp(exp, tz=UTC) > datetime.now(UTC)


class StoreAuthenticator:
    """Authenticates a :class:`StoreClient`, once per process.

    Args:
        client: Store client whose token is set on success.
        identity: Login email or username.
        password: Login password.
        user_collection: Auth collection tried first.
        admin_collection: Elevated auth collection tried when the first login fails.
    """

    def __init__(
        self,
        client: StoreClient,
        identity: str,
        password: str,
        *,
        user_collection: str = "users",
        admin_collection: str = "_superusers",
    ) -> None:
        self._client = client
        self._identity = identity
        self._password = password
        self._user_collection = user_collection
        self._admin_collection = admin_collection
        self._session: StoreSession | None = None

    @property
    def session(self) -> StoreSession | None:
        return self._session

    async def authenticate(self) -> StoreSession:
        """Return a valid session, logging in only when needed.

        Raises:
            AuthError: If both credential tiers are rejected.
        """
        if self._session is not None and self._client.token == self._session.token and token_is_valid(
            self._session.token
        ):
            return self._session

        logger.info("Authenticating with PocketBase...")
        self._client.clear_auth()
        try:
            data = await self._client.auth_with_password(self._user_collection, self._identity, self._password)
            collection = self._user_collection
            logger.info("User authentication successful")
        except StoreError as user_exc:
            logger.warning("User auth failed ({}), trying {}", user_exc, self._admin_collection)
            try:
                data = await self._client.auth_with_password(self._admin_collection, self._identity, self._password)
            except StoreError as admin_exc:
                logger.error("Admin auth failed: {}", admin_exc)
                msg = f"Authentication failed: {admin_exc}"
                raise AuthError(msg) from admin_exc
            collection = self._admin_collection
            logger.info("Admin authentication successful")

        self._session = StoreSession(token=data["token"], collection=collection, record=data.get("record") or {})
        return self._session
