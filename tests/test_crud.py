"""
Unit tests for the database layer (snippet and user stores).
Runs against the per-test SQLite database.
"""

import pytest

from snippetbox.crud import LATEST_LIMIT
from snippetbox.errors import ErrorKind, ModelError
from snippetbox.utils import human_date


@pytest.mark.asyncio
class TestSnippetStore:
    """Test SnippetStore insert/get/latest."""

    async def test_insert_returns_increasing_ids(self, context):
        first = await context.snippets.insert("one", "content", 1)
        second = await context.snippets.insert("two", "content", 1)

        assert first >= 1
        assert second > first

    @pytest.mark.parametrize("expires_days", [1, 7, 365])
    async def test_get_returns_snippet(self, context, expires_days):
        snippet_id = await context.snippets.insert("An old silent pond", "A frog jumps in", expires_days)

        snippet = await context.snippets.get(snippet_id)

        assert snippet.id == snippet_id
        assert snippet.title == "An old silent pond"
        assert snippet.content == "A frog jumps in"
        assert (snippet.expires - snippet.created).days == expires_days

    async def test_get_unknown_id(self, context):
        with pytest.raises(ModelError) as exc_info:
            await context.snippets.get(12345)
        assert exc_info.value.kind is ErrorKind.NO_RECORD

    async def test_get_expired_snippet(self, context):
        """Test an expired snippet is reported the same as a missing one."""
        snippet_id = await context.snippets.insert("gone", "content", -1)

        with pytest.raises(ModelError) as exc_info:
            await context.snippets.get(snippet_id)
        assert exc_info.value.kind is ErrorKind.NO_RECORD

    async def test_latest_empty(self, context):
        assert await context.snippets.latest() == []

    async def test_latest_newest_first_and_limited(self, context):
        ids = [await context.snippets.insert(f"snippet {i}", "content", 7) for i in range(LATEST_LIMIT + 2)]

        latest = await context.snippets.latest()

        assert len(latest) == LATEST_LIMIT
        assert [s.id for s in latest] == list(reversed(ids))[:LATEST_LIMIT]

    async def test_latest_skips_expired(self, context):
        live = await context.snippets.insert("live", "content", 1)
        await context.snippets.insert("expired", "content", -1)

        latest = await context.snippets.latest()

        assert [s.id for s in latest] == [live]

    async def test_created_renders_as_human_date(self, context):
        snippet_id = await context.snippets.insert("title", "content", 1)

        snippet = await context.snippets.get(snippet_id)

        assert " at " in human_date(snippet.created)


@pytest.mark.asyncio
class TestUserStore:
    """Test UserStore insert/authenticate/exists."""

    async def test_insert_and_authenticate(self, context):
        await context.users.insert("Alice", "alice@example.com", "pa55word!")

        user_id = await context.users.authenticate("alice@example.com", "pa55word!")

        assert user_id >= 1
        assert await context.users.exists(user_id) is True

    async def test_insert_duplicate_email(self, context):
        await context.users.insert("Alice", "alice@example.com", "pa55word!")

        with pytest.raises(ModelError) as exc_info:
            await context.users.insert("Another Alice", "alice@example.com", "different1")
        assert exc_info.value.kind is ErrorKind.DUPLICATE_EMAIL

    async def test_password_is_stored_hashed(self, context):
        from sqlalchemy import select
        from snippetbox.models import User

        await context.users.insert("Alice", "alice@example.com", "pa55word!")

        async with context.session_factory() as session:
            stored = (await session.execute(select(User.hashed_password))).scalar_one()

        assert stored != "pa55word!"
        assert stored.startswith("$2")
        assert len(stored) == 60

    async def test_authenticate_wrong_password(self, context):
        await context.users.insert("Alice", "alice@example.com", "pa55word!")

        with pytest.raises(ModelError) as exc_info:
            await context.users.authenticate("alice@example.com", "wrong-password")
        assert exc_info.value.kind is ErrorKind.INVALID_CREDENTIALS

    async def test_authenticate_unknown_email(self, context):
        """Test an unknown email fails the same way as a wrong password."""
        with pytest.raises(ModelError) as exc_info:
            await context.users.authenticate("nobody@example.com", "pa55word!")
        assert exc_info.value.kind is ErrorKind.INVALID_CREDENTIALS

    async def test_exists_unknown_user(self, context):
        assert await context.users.exists(999) is False
