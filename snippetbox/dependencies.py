"""Application context and FastAPI dependencies for sessions, authentication and CSRF."""

import hmac
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from .config import Settings
from .crud import SnippetStore, UserStore
from .errors import LoginRequired
from .sessions import Session, SessionManager
from .templates import CSRF_SESSION_KEY, TemplateRenderer

AUTHENTICATED_USER_ID_KEY = "authenticatedUserID"


class CSRFError(Exception):
    """POST without a matching anti-forgery token."""


@dataclass(frozen=True)
class AppContext:
    """Everything a handler needs, built once by create_app and never mutated."""
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    snippets: SnippetStore
    users: UserStore
    sessions: SessionManager
    templates: TemplateRenderer


# ==================== Context & Session ====================


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_session(request: Request) -> Session:
    """The session loaded for this request by the session middleware."""
    return request.state.session


# ==================== Authentication Dependencies ====================


async def get_authenticated_user_id(
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
) -> Optional[int]:
    """ID of the logged-in user, or None.

    The session value is only trusted while the account still exists.
    """
    user_id = session.get(AUTHENTICATED_USER_ID_KEY)
    if not isinstance(user_id, int):
        return None
    if not await ctx.users.exists(user_id):
        return None
    return user_id


async def require_authentication(
    user_id: Optional[int] = Depends(get_authenticated_user_id),
) -> int:
    """Gate for routes that need a logged-in user; redirects to the login page otherwise."""
    if user_id is None:
        raise LoginRequired()
    return user_id


# ==================== CSRF ====================


async def verify_csrf(request: Request, session: Session = Depends(get_session)) -> None:
    """Reject state-changing requests whose form token does not match the session's."""
    expected = session.get(CSRF_SESSION_KEY)
    try:
        form = await request.form()
    except Exception as e:
        raise CSRFError("unreadable form body") from e
    submitted = form.get("csrf_token")
    if not expected or not isinstance(submitted, str):
        raise CSRFError("missing token")
    if not hmac.compare_digest(expected.encode(), submitted.encode()):
        raise CSRFError("token mismatch")
