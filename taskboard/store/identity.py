import secrets
import sqlite3
import logging
import uuid
from datetime import datetime
from typing import Optional

from store.core import _wrap_sqlite_error

logger = logging.getLogger(__name__)


class IdentityMixin:
    """Identity records used by the local identity provider."""

    async def create_identity(self, is_anonymous: bool = True) -> str:
        """Create a new user record. Returns its user id."""
        user_id = uuid.uuid4().hex
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    "INSERT INTO identities (user_id,is_anonymous,created_at) VALUES (?,?,?)",
                    (user_id, 1 if is_anonymous else 0, datetime.now().isoformat()),
                )
                await conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error creating identity: {e}")
            raise _wrap_sqlite_error("create identity", e) from e
        return user_id

    async def identity_exists(self, user_id: str) -> bool:
        try:
            async with self._get_connection() as conn:
                async with conn.execute(
                    "SELECT 1 FROM identities WHERE user_id=?", (user_id,)
                ) as cursor:
                    return await cursor.fetchone() is not None
        except sqlite3.Error as e:
            logger.error(f"Error checking identity {user_id}: {e}")
            raise _wrap_sqlite_error("check identity", e) from e

    async def issue_token(self, user_id: str) -> str:
        """Create a session token bound to an existing user."""
        token = secrets.token_urlsafe(32)
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    "INSERT INTO identity_tokens (token,user_id,created_at) VALUES (?,?,?)",
                    (token, user_id, datetime.now().isoformat()),
                )
                await conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Error issuing token for {user_id}: {e}")
            raise _wrap_sqlite_error("issue token", e) from e
        return token

    async def lookup_token(self, token: str) -> Optional[str]:
        """Return the user id a token belongs to, or None."""
        try:
            async with self._get_connection() as conn:
                async with conn.execute(
                    "SELECT user_id FROM identity_tokens WHERE token=?", (token,)
                ) as cursor:
                    row = await cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Error looking up token: {e}")
            raise _wrap_sqlite_error("look up token", e) from e
        return row["user_id"] if row else None
