"""Server-side sessions: request-scoped key/value bags persisted behind an opaque cookie token.

Two stores are available: a SQL table sharing the application's database, and
Redis. Store failures propagate to the caller; a session that cannot be read
or written is a server error.
"""

import json
import secrets
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional, Protocol

from redis import asyncio as aioredis
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.responses import Response

from .logger import logger
from .models import SessionRecord
from .utils import utcnow

SESSION_KEY_PREFIX = "session"


def generate_token() -> str:
    """32 random bytes, URL-safe base64 (43 characters)."""
    return secrets.token_urlsafe(32)


# ==================== Stores ====================


class SessionStore(Protocol):
    async def find(self, token: str) -> Optional[dict]: ...

    async def commit(self, token: str, data: dict, expiry: datetime) -> None: ...

    async def delete(self, token: str) -> None: ...


class DatabaseSessionStore:
    """Sessions kept in the ``sessions`` table.

    Expired rows are ignored on read and purged whenever a session is written.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find(self, token: str) -> Optional[dict]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(SessionRecord.data).where(
                    SessionRecord.token == token, SessionRecord.expiry > utcnow()
                )
            )
            data = result.scalar()
        return json.loads(data) if data is not None else None

    async def commit(self, token: str, data: dict, expiry: datetime) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(delete(SessionRecord).where(SessionRecord.expiry <= utcnow()))
                await session.merge(SessionRecord(token=token, data=json.dumps(data), expiry=expiry))

    async def delete(self, token: str) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(delete(SessionRecord).where(SessionRecord.token == token))


class RedisSessionStore:
    """Sessions kept in Redis under ``session:<token>`` with a matching TTL."""

    def __init__(self, url: str):
        self._url = url
        self._redis: Optional[aioredis.Redis] = None

    async def connect(self):
        """Create the connection pool and verify connectivity with ping."""
        if self._redis is None:
            self._redis = aioredis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
            )
            await self._redis.ping()
            logger.info("[sessions] Connected to Redis")

    async def disconnect(self):
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            logger.info("[sessions] Disconnected from Redis")

    def _client(self) -> aioredis.Redis:
        if self._redis is None:
            raise RuntimeError("Redis session store is not connected")
        return self._redis

    @staticmethod
    def _key(token: str) -> str:
        return f"{SESSION_KEY_PREFIX}:{token}"

    async def find(self, token: str) -> Optional[dict]:
        value = await self._client().get(self._key(token))
        return json.loads(value) if value else None

    async def commit(self, token: str, data: dict, expiry: datetime) -> None:
        ttl = int((expiry - utcnow()).total_seconds())
        if ttl <= 0:
            await self.delete(token)
            return
        await self._client().setex(self._key(token), ttl, json.dumps(data))

    async def delete(self, token: str) -> None:
        await self._client().delete(self._key(token))


# ==================== Session ====================


class SessionStatus(Enum):
    UNMODIFIED = "unmodified"
    MODIFIED = "modified"
    DESTROYED = "destroyed"


class Session:
    """Key/value state for a single request, committed by the session middleware."""

    def __init__(self, store: SessionStore, token: Optional[str] = None, data: Optional[dict] = None):
        self._store = store
        self.token = token
        self._data: dict[str, Any] = dict(data or {})
        self.status = SessionStatus.UNMODIFIED

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def exists(self, key: str) -> bool:
        return key in self._data

    def put(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.status = SessionStatus.MODIFIED

    def pop(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        self.status = SessionStatus.MODIFIED
        return self._data.pop(key)

    def pop_string(self, key: str) -> str:
        """Remove and return a string value; '' when absent or not a string."""
        value = self.pop(key)
        return value if isinstance(value, str) else ""

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self.status = SessionStatus.MODIFIED

    def items(self) -> dict[str, Any]:
        return dict(self._data)

    async def renew_token(self) -> None:
        """Swap the token for a fresh one, keeping the data.

        Called when privilege changes (login, logout) so that a token planted
        before the change is useless afterwards.
        """
        if self.token is not None:
            await self._store.delete(self.token)
        self.token = generate_token()
        self.status = SessionStatus.MODIFIED

    async def destroy(self) -> None:
        if self.token is not None:
            await self._store.delete(self.token)
        self.token = None
        self._data.clear()
        self.status = SessionStatus.DESTROYED


# ==================== Manager ====================


class SessionManager:
    """Loads the session named by the request cookie and writes it back afterwards."""

    def __init__(
        self,
        store: SessionStore,
        lifetime: timedelta = timedelta(hours=12),
        cookie_name: str = "session",
        cookie_secure: bool = False,
    ):
        self.store = store
        self.lifetime = lifetime
        self.cookie_name = cookie_name
        self.cookie_secure = cookie_secure

    async def load(self, token: Optional[str]) -> Session:
        if token:
            data = await self.store.find(token)
            if data is not None:
                return Session(self.store, token=token, data=data)
        return Session(self.store)

    async def commit(self, session: Session, response: Response) -> None:
        """Persist a modified session and point the cookie at it."""
        if session.status is SessionStatus.DESTROYED:
            response.delete_cookie(self.cookie_name, path="/")
        elif session.status is SessionStatus.MODIFIED:
            if session.token is None:
                session.token = generate_token()
            expiry = utcnow() + self.lifetime
            await self.store.commit(session.token, session.items(), expiry)
            response.set_cookie(
                self.cookie_name,
                session.token,
                max_age=int(self.lifetime.total_seconds()),
                path="/",
                secure=self.cookie_secure,
                httponly=True,
                samesite="lax",
            )
        response.headers.append("Vary", "Cookie")
