"""
Session store: the authenticated identity and bearer token of one console
session, persisted so that a page reload keeps the user logged in.
"""
from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from meditrack.models import StoredSession
from meditrack.schemas import Identity, Role
from meditrack.security import token_expired

logger = logging.getLogger(__name__)


class SessionContext(BaseModel):
    """
    Immutable snapshot handed to every screen. Login replaces it wholly,
    logout replaces it with the empty context.
    """
    model_config = ConfigDict(frozen=True)

    identity: Optional[Identity] = None
    token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None and bool(self.token)

    @property
    def role(self) -> Optional[Role]:
        return self.identity.role if self.identity else None

    @property
    def user_id(self) -> Optional[int]:
        return self.identity.id if self.identity else None


EMPTY_SESSION = SessionContext()


class SessionStore:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession], key: str):
        self._sessionmaker = sessionmaker
        self.key = key
        self._context = EMPTY_SESSION

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def token(self) -> Optional[str]:
        return self._context.token

    def current_user(self) -> Optional[Identity]:
        """The logged-in identity, or None when there is no session."""
        return self._context.identity

    async def load(self) -> SessionContext:
        """Restore the persisted session for this key, dropping expired tokens."""
        async with self._sessionmaker() as db:
            row = await db.scalar(select(StoredSession).where(StoredSession.key == self.key))
            if row is None:
                self._context = EMPTY_SESSION
                return self._context

            if token_expired(row.token):
                logger.info("Discarding expired session", extra={"session_key": self.key[:8]})
                await db.delete(row)
                await db.commit()
                self._context = EMPTY_SESSION
                return self._context

            identity = Identity(id=row.user_id, name=row.name, email=row.email, role=row.role)
            self._context = SessionContext(identity=identity, token=row.token)
            return self._context

    async def login(self, identity: Identity, token: str) -> SessionContext:
        async with self._sessionmaker() as db:
            row = await db.get(StoredSession, self.key)
            if row is None:
                row = StoredSession(key=self.key, token=token)
                db.add(row)
            row.user_id = identity.id
            row.name = identity.name
            row.email = identity.email
            row.role = identity.role.value if identity.role else None
            row.token = token
            await db.commit()

        self._context = SessionContext(identity=identity, token=token)
        logger.info("Session started", extra={"user_id": identity.id, "role": row.role})
        return self._context

    async def logout(self) -> None:
        async with self._sessionmaker() as db:
            await db.execute(delete(StoredSession).where(StoredSession.key == self.key))
            await db.commit()

        if self._context.is_authenticated:
            logger.info("Session ended", extra={"user_id": self._context.user_id})
        self._context = EMPTY_SESSION
