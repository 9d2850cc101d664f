"""
Identity service for Taskboard.

This module provides:
- Session resolution from an initial auth token, or anonymous sign-in
- A local provider backed by the document store (default, works offline)
- A REST provider for a hosted identity service (Identity Toolkit style API)

Resolution Flow:
1. If an initial token is configured, sign in with it
2. Otherwise sign in anonymously (the same client keeps the same user id)
3. A rejected token is an error - it never falls back to anonymous
"""
import base64
import json
import logging
from typing import Any, Dict, Optional

import httpx

from config import DEFAULT_IDENTITY_BASE_URL, IDENTITY_TIMEOUT_SECONDS
from models.entities import Session
from store import DocumentStore, StoreError

logger = logging.getLogger(__name__)

SETTING_ANONYMOUS_USER_ID = "anonymous_user_id"


class IdentityError(Exception):
    """Raised when a session cannot be established."""
    pass


class IdentityProvider:
    """Base class for identity providers."""

    async def sign_in_with_token(self, token: str) -> Session:
        raise NotImplementedError

    async def sign_in_anonymously(self) -> Session:
        raise NotImplementedError

    async def resolve(self, token: Optional[str] = None) -> Session:
        """Sign in with the token if one is given, else anonymously."""
        if token:
            return await self.sign_in_with_token(token)
        return await self.sign_in_anonymously()


class LocalIdentityProvider(IdentityProvider):
    """Identity provider backed by the local document store."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def sign_in_with_token(self, token: str) -> Session:
        try:
            user_id = await self.store.lookup_token(token)
        except StoreError as e:
            raise IdentityError(f"Token sign-in failed: {e}") from e
        if user_id is None:
            raise IdentityError("Session token was rejected")
        logger.info(f"Signed in with token as {user_id}")
        return Session(user_id=user_id, is_anonymous=False, id_token=token)

    async def sign_in_anonymously(self) -> Session:
        try:
            user_id = await self.store.get_setting(SETTING_ANONYMOUS_USER_ID)
            if not user_id or not await self.store.identity_exists(user_id):
                user_id = await self.store.create_identity(is_anonymous=True)
                await self.store.set_setting(SETTING_ANONYMOUS_USER_ID, user_id)
                logger.info(f"Created anonymous identity {user_id}")
        except StoreError as e:
            raise IdentityError(f"Anonymous sign-in failed: {e}") from e
        return Session(user_id=user_id, is_anonymous=True)

    async def issue_token(self, user_id: Optional[str] = None) -> str:
        """Issue a token for a user, creating a named user when none is given."""
        try:
            if user_id is None:
                user_id = await self.store.create_identity(is_anonymous=False)
            elif not await self.store.identity_exists(user_id):
                raise IdentityError(f"Unknown user {user_id}")
            return await self.store.issue_token(user_id)
        except StoreError as e:
            raise IdentityError(f"Could not issue token: {e}") from e


def _decode_jwt_claims(token: str) -> Dict[str, Any]:
    """Read the payload of a JWT without verifying its signature."""
    try:
        payload = token.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        return json.loads(base64.urlsafe_b64decode(payload))
    except (IndexError, ValueError) as e:
        raise IdentityError(f"Malformed id token: {e}") from e


class RestIdentityProvider(IdentityProvider):
    """Identity provider for a hosted Identity Toolkit style REST API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_IDENTITY_BASE_URL,
        timeout: float = IDENTITY_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{endpoint}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(url, params={"key": self.api_key}, json=payload)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.error(f"Identity request {endpoint} failed: {message}")
            raise IdentityError(f"Identity service rejected request: {message}") from e
        except (httpx.TransportError, ValueError) as e:
            logger.error(f"Identity request {endpoint} failed: {e}")
            raise IdentityError(f"Identity service unreachable: {e}") from e

    @staticmethod
    def _session_from(data: Dict[str, Any], is_anonymous: bool) -> Session:
        id_token = data.get("idToken")
        user_id = data.get("localId")
        if not user_id and id_token:
            claims = _decode_jwt_claims(id_token)
            user_id = claims.get("user_id") or claims.get("sub")
        if not user_id:
            raise IdentityError("Identity response did not contain a user id")
        return Session(user_id=user_id, is_anonymous=is_anonymous, id_token=id_token)

    async def sign_in_with_token(self, token: str) -> Session:
        data = await self._post(
            "accounts:signInWithCustomToken",
            {"token": token, "returnSecureToken": True},
        )
        session = self._session_from(data, is_anonymous=False)
        logger.info(f"Signed in with custom token as {session.user_id}")
        return session

    async def sign_in_anonymously(self) -> Session:
        data = await self._post("accounts:signUp", {"returnSecureToken": True})
        session = self._session_from(data, is_anonymous=True)
        logger.info(f"Signed in anonymously as {session.user_id}")
        return session


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return f"HTTP {response.status_code}"
