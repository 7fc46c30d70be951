"""Database operations for snippets and users."""

import asyncio
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .auth import DEFAULT_ROUNDS, dummy_hash, hash_password, verify_password
from .errors import ErrorKind, ModelError
from .logger import logger
from .models import Snippet, User
from .utils import utcnow

LATEST_LIMIT = 10


# ==================== Snippets ====================


class SnippetStore:
    """Insert and read snippets; expired rows behave as if they never existed."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def insert(self, title: str, content: str, expires_days: int) -> int:
        """Insert a new snippet expiring ``expires_days`` from now and return its id."""
        created = utcnow()
        async with self._session_factory() as session:
            async with session.begin():
                snippet = Snippet(
                    title=title,
                    content=content,
                    created=created,
                    expires=created + timedelta(days=expires_days),
                )
                session.add(snippet)
                await session.flush()
                snippet_id = snippet.id
        logger.debug(f"Snippet inserted: id={snippet_id} expires_days={expires_days}")
        return snippet_id

    async def get(self, snippet_id: int) -> Snippet:
        """Return a live snippet by id. Raises ModelError(NO_RECORD) if absent or expired."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Snippet).where(Snippet.id == snippet_id, Snippet.expires > utcnow())
            )
            snippet = result.scalars().first()
        if snippet is None:
            raise ModelError(ErrorKind.NO_RECORD)
        return snippet

    async def latest(self, limit: int = LATEST_LIMIT) -> list[Snippet]:
        """Most recently created live snippets, newest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(Snippet)
                .where(Snippet.expires > utcnow())
                .order_by(Snippet.created.desc(), Snippet.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())


# ==================== Users ====================


class UserStore:
    """Account creation and credential checks."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], bcrypt_rounds: int = DEFAULT_ROUNDS):
        self._session_factory = session_factory
        self._bcrypt_rounds = bcrypt_rounds
        # Same cost as real accounts so unknown emails take as long to reject
        self._dummy_hash = dummy_hash(bcrypt_rounds)

    async def insert(self, name: str, email: str, password: str) -> None:
        """Create a user with a bcrypt-hashed password. Raises ModelError(DUPLICATE_EMAIL)."""
        hashed_password = await asyncio.to_thread(hash_password, password, self._bcrypt_rounds)
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    session.add(User(
                        name=name,
                        email=email,
                        hashed_password=hashed_password,
                        created=utcnow(),
                    ))
            except IntegrityError as e:
                if "email" not in str(e.orig).lower():
                    raise
                logger.debug(f"Duplicate email rejected: {email}")
                raise ModelError(ErrorKind.DUPLICATE_EMAIL) from e

    async def authenticate(self, email: str, password: str) -> int:
        """Return the id of the user owning these credentials.

        Unknown email and wrong password both raise ModelError(INVALID_CREDENTIALS).
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(User.id, User.hashed_password).where(User.email == email)
            )
            row = result.first()

        if row is None:
            await asyncio.to_thread(verify_password, password, self._dummy_hash)
            raise ModelError(ErrorKind.INVALID_CREDENTIALS)

        user_id, hashed_password = row
        if not await asyncio.to_thread(verify_password, password, hashed_password):
            raise ModelError(ErrorKind.INVALID_CREDENTIALS)
        return user_id

    async def exists(self, user_id: int) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(select(User.id).where(User.id == user_id))
            return result.first() is not None
