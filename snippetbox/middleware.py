"""HTTP middleware for request handling, logging, security, and sessions."""

from fastapi import Request
from fastapi.responses import PlainTextResponse
import time
import uuid
from .logger import logger


# ==================== Graceful Shutdown Middleware ====================

async def graceful_shutdown_middleware(request: Request, call_next):
    """Track active requests and reject new requests during shutdown."""
    shutdown_manager = request.app.state.shutdown_manager
    if shutdown_manager.is_shutting_down:
        logger.warning(
            f"Rejecting request {request.method} {request.url.path} - service is shutting down"
        )
        return PlainTextResponse(
            "Service Unavailable",
            status_code=503,
            headers={"Retry-After": "10"}
        )

    shutdown_manager.request_started()
    try:
        response = await call_next(request)
        return response
    finally:
        shutdown_manager.request_finished()


# ==================== Request ID Middleware ====================

MAX_REQUEST_ID_LENGTH = 128


async def add_request_id_middleware(request: Request, call_next):
    """Tag each request with an id for tracing across logs.

    A caller-supplied X-Request-ID is kept when it is short enough to log.
    """
    request_id = request.headers.get("X-Request-ID", "")
    if not request_id or len(request_id) > MAX_REQUEST_ID_LENGTH:
        request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ==================== Request Logging Middleware ====================

async def request_logging_middleware(request: Request, call_next):
    """Log one line per request: client, protocol, method, URI, status and duration."""
    started = time.perf_counter()
    request_id = getattr(request.state, "request_id", "-")
    client = request.client.host if request.client else "-"
    proto = f"HTTP/{request.scope.get('http_version', '1.1')}"
    uri = request.url.path + (f"?{request.url.query}" if request.url.query else "")

    try:
        response = await call_next(request)
    except Exception:
        logger.error(
            f"[{request_id}] {client} {proto} {request.method} {uri} - "
            f"unhandled error after {time.perf_counter() - started:.3f}s",
            exc_info=True,
        )
        raise

    logger.info(
        f"[{request_id}] {client} {proto} {request.method} {uri} - "
        f"{response.status_code} in {time.perf_counter() - started:.3f}s"
    )
    return response


# ==================== Security Headers Middleware ====================

async def security_headers_middleware(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)

    # Prevent MIME type sniffing
    response.headers["X-Content-Type-Options"] = "nosniff"

    # Prevent clickjacking attacks
    response.headers["X-Frame-Options"] = "DENY"

    response.headers["X-XSS-Protection"] = "0"

    # Enforce HTTPS in production
    if request.app.state.context.settings.APP_ENV == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    response.headers["Referrer-Policy"] = "origin-when-cross-origin"

    # Pages only load their own stylesheets and scripts
    response.headers["Content-Security-Policy"] = (
        "default-src 'self'; "
        "style-src 'self'; "
        "script-src 'self'; "
        "img-src 'self' data:"
    )

    response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

    return response


# ==================== Session Middleware ====================

async def session_middleware(request: Request, call_next):
    """Load the session named by the cookie, run the handler, then write the session back."""
    manager = request.app.state.context.sessions
    session = await manager.load(request.cookies.get(manager.cookie_name))
    request.state.session = session

    response = await call_next(request)

    await manager.commit(session, response)
    return response
