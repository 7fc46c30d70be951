# HTML route definitions (HTTP layer)
# Each handler decodes and validates input, calls a store, updates the
# session and renders a page or redirects.

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from . import db
from .auth import MAX_PASSWORD_BYTES
from .dependencies import (
    AUTHENTICATED_USER_ID_KEY,
    AppContext,
    get_authenticated_user_id,
    get_context,
    get_session,
    require_authentication,
    verify_csrf,
)
from .errors import ErrorKind, ModelError, client_error, not_found, server_error
from .schemas import (
    FormDecodeError,
    SnippetCreateForm,
    UserLoginForm,
    UserSignupForm,
    decode_post_form,
)
from .sessions import Session
from .templates import FLASH_SESSION_KEY
from .utils import normalize_email
from .validator import EMAIL_RX, allowed_value, matches, max_chars, min_chars, not_blank

router = APIRouter()

# Shared by every route below; create_app sets the rate and switches it on or off
limiter = Limiter(key_func=get_remote_address)
_rate_limit = {"default": "100/minute"}

BLANK = "This field cannot be blank"


def _see_other(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)


def default_rate_limit() -> str:
    return _rate_limit["default"]


def configure_rate_limit(enabled: bool, default: str) -> Limiter:
    """Apply the per-client rate to every route and clear the counters."""
    limiter.enabled = enabled
    _rate_limit["default"] = default
    limiter.reset()
    return limiter


# ============================================================================
# Operational Endpoints
# ============================================================================

@router.get("/ping", response_class=PlainTextResponse)
@limiter.limit(default_rate_limit)
async def ping(request: Request):
    return "OK"


@router.get("/health")
@limiter.limit(default_rate_limit)
async def health_check(request: Request, ctx: AppContext = Depends(get_context)):
    """Health check endpoint for load balancers and monitoring.

    Returns:
        - 200 OK if the database answers
        - 503 Service Unavailable otherwise
    """
    health_status = {
        "status": "healthy",
        "service": ctx.settings.APP_NAME,
        "environment": ctx.settings.APP_ENV,
        "database": "connected",
    }
    if not await db.check_db_connection(ctx.session_factory):
        health_status["status"] = "unhealthy"
        health_status["database"] = "disconnected"
        return JSONResponse(health_status, status_code=503)
    return health_status


# ============================================================================
# Snippets
# ============================================================================

@router.get("/")
@limiter.limit(default_rate_limit)
async def home(
    request: Request,
    ctx: AppContext = Depends(get_context),
    session: Session = Depends(get_session),
    user_id: Optional[int] = Depends(get_authenticated_user_id),
):
    try:
        snippets = await ctx.snippets.latest()
    except Exception as e:
        return server_error(e)

    data = ctx.templates.new_template_data(session, user_id)
    data.snippets = snippets
    return ctx.templates.render(200, "home.html", data)


@router.get("/snippet/view/{snippet_id}")
@limiter.limit(default_rate_limit)
async def snippet_view(
    request: Request,
    snippet_id: str,
    ctx: AppContext = Depends(get_context),
    session: Session = Depends(get_session),
    user_id: Optional[int] = Depends(get_authenticated_user_id),
):
    try:
        parsed_id = int(snippet_id)
    except ValueError:
        return not_found()
    if parsed_id < 1:
        return not_found()

    try:
        snippet = await ctx.snippets.get(parsed_id)
    except ModelError as e:
        if e.kind is ErrorKind.NO_RECORD:
            return not_found()
        return server_error(e)
    except Exception as e:
        return server_error(e)

    data = ctx.templates.new_template_data(session, user_id)
    data.snippet = snippet
    return ctx.templates.render(200, "view.html", data)


@router.get("/snippet/create")
@limiter.limit(default_rate_limit)
async def snippet_create(
    request: Request,
    ctx: AppContext = Depends(get_context),
    session: Session = Depends(get_session),
    user_id: int = Depends(require_authentication),
):
    data = ctx.templates.new_template_data(session, user_id)
    data.form = SnippetCreateForm(expires=365)
    return ctx.templates.render(200, "create.html", data)


@router.post("/snippet/create", dependencies=[Depends(verify_csrf)])
@limiter.limit(default_rate_limit)
async def snippet_create_post(
    request: Request,
    ctx: AppContext = Depends(get_context),
    session: Session = Depends(get_session),
    user_id: int = Depends(require_authentication),
):
    try:
        form = await decode_post_form(request, SnippetCreateForm)
    except FormDecodeError:
        return client_error(400)

    v = form.validator
    v.check_field(not_blank(form.title), "title", BLANK)
    v.check_field(max_chars(form.title, 100), "title", "This field cannot be more than 100 characters long")
    v.check_field(not_blank(form.content), "content", BLANK)
    v.check_field(allowed_value(form.expires, 1, 7, 365), "expires", "This field must equal 1, 7 or 365")

    if not v.valid():
        data = ctx.templates.new_template_data(session, user_id)
        data.form = form
        return ctx.templates.render(422, "create.html", data)

    try:
        snippet_id = await ctx.snippets.insert(form.title, form.content, form.expires)
    except Exception as e:
        return server_error(e)

    session.put(FLASH_SESSION_KEY, "Snippet successfully created!")
    return _see_other(f"/snippet/view/{snippet_id}")


# ============================================================================
# Accounts
# ============================================================================

@router.get("/user/signup")
@limiter.limit(default_rate_limit)
async def user_signup(
    request: Request,
    ctx: AppContext = Depends(get_context),
    session: Session = Depends(get_session),
    user_id: Optional[int] = Depends(get_authenticated_user_id),
):
    data = ctx.templates.new_template_data(session, user_id)
    data.form = UserSignupForm()
    return ctx.templates.render(200, "signup.html", data)


@router.post("/user/signup", dependencies=[Depends(verify_csrf)])
@limiter.limit(default_rate_limit)
async def user_signup_post(
    request: Request,
    ctx: AppContext = Depends(get_context),
    session: Session = Depends(get_session),
    user_id: Optional[int] = Depends(get_authenticated_user_id),
):
    try:
        form = await decode_post_form(request, UserSignupForm)
    except FormDecodeError:
        return client_error(400)
    form.email = normalize_email(form.email)

    v = form.validator
    v.check_field(not_blank(form.name), "name", BLANK)
    v.check_field(max_chars(form.name, 255), "name", "This field cannot be more than 255 characters long")
    v.check_field(not_blank(form.email), "email", BLANK)
    v.check_field(matches(form.email, EMAIL_RX), "email", "This field must be a valid email address")
    v.check_field(max_chars(form.email, 255), "email", "This field cannot be more than 255 characters long")
    v.check_field(not_blank(form.password), "password", BLANK)
    v.check_field(min_chars(form.password, 8), "password", "This field must be at least 8 characters long")
    v.check_field(len(form.password.encode("utf-8")) <= MAX_PASSWORD_BYTES, "password", "This field cannot be more than 72 bytes long")

    if not v.valid():
        data = ctx.templates.new_template_data(session, user_id)
        data.form = form
        return ctx.templates.render(422, "signup.html", data)

    try:
        await ctx.users.insert(form.name, form.email, form.password)
    except ModelError as e:
        if e.kind is not ErrorKind.DUPLICATE_EMAIL:
            return server_error(e)
        v.add_field_error("email", "Email address is already in use")
        data = ctx.templates.new_template_data(session, user_id)
        data.form = form
        return ctx.templates.render(422, "signup.html", data)
    except Exception as e:
        return server_error(e)

    session.put(FLASH_SESSION_KEY, "Your signup was successful. Please log in.")
    return _see_other("/user/login")


@router.get("/user/login")
@limiter.limit(default_rate_limit)
async def user_login(
    request: Request,
    ctx: AppContext = Depends(get_context),
    session: Session = Depends(get_session),
    user_id: Optional[int] = Depends(get_authenticated_user_id),
):
    data = ctx.templates.new_template_data(session, user_id)
    data.form = UserLoginForm()
    return ctx.templates.render(200, "login.html", data)


@router.post("/user/login", dependencies=[Depends(verify_csrf)])
@limiter.limit(default_rate_limit)
async def user_login_post(
    request: Request,
    ctx: AppContext = Depends(get_context),
    session: Session = Depends(get_session),
    user_id: Optional[int] = Depends(get_authenticated_user_id),
):
    try:
        form = await decode_post_form(request, UserLoginForm)
    except FormDecodeError:
        return client_error(400)
    form.email = normalize_email(form.email)

    v = form.validator
    v.check_field(not_blank(form.email), "email", BLANK)
    v.check_field(matches(form.email, EMAIL_RX), "email", "This field must be a valid email address")
    v.check_field(not_blank(form.password), "password", BLANK)

    if not v.valid():
        data = ctx.templates.new_template_data(session, user_id)
        data.form = form
        return ctx.templates.render(422, "login.html", data)

    try:
        authenticated_id = await ctx.users.authenticate(form.email, form.password)
    except ModelError as e:
        if e.kind is not ErrorKind.INVALID_CREDENTIALS:
            return server_error(e)
        v.add_non_field_error("Email or password is incorrect")
        data = ctx.templates.new_template_data(session, user_id)
        data.form = form
        return ctx.templates.render(422, "login.html", data)
    except Exception as e:
        return server_error(e)

    try:
        await session.renew_token()
    except Exception as e:
        return server_error(e)

    session.put(AUTHENTICATED_USER_ID_KEY, authenticated_id)
    return _see_other("/snippet/create")


@router.post("/user/logout", dependencies=[Depends(verify_csrf), Depends(require_authentication)])
@limiter.limit(default_rate_limit)
async def user_logout_post(request: Request, session: Session = Depends(get_session)):
    try:
        await session.renew_token()
    except Exception as e:
        return server_error(e)

    session.remove(AUTHENTICATED_USER_ID_KEY)
    session.put(FLASH_SESSION_KEY, "You've been logged out successfully!")
    return _see_other("/")
