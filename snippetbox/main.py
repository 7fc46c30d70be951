"""FastAPI application factory with lifecycle management."""

from contextlib import asynccontextmanager
from datetime import timedelta
import asyncio

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .crud import SnippetStore, UserStore
from .db import create_engine, create_sessionmaker, dispose_engine
from .dependencies import AppContext, CSRFError
from .errors import LoginRequired, client_error, server_error
from .logger import configure_logging, logger
from .middleware import (
    add_request_id_middleware,
    graceful_shutdown_middleware,
    request_logging_middleware,
    security_headers_middleware,
    session_middleware,
)
from .monitoring import setup_monitoring
from .routes import configure_rate_limit, router
from .sessions import DatabaseSessionStore, RedisSessionStore, SessionManager
from .templates import TemplateRenderer

# ==================== Graceful Shutdown ====================


class GracefulShutdownManager:
    """Counts in-flight requests so that shutdown can let them drain.

    Once shutdown starts the middleware refuses new requests; the lifespan
    then waits up to ``shutdown_timeout`` seconds for the rest to finish.
    """

    def __init__(self, shutdown_timeout: float = 30):
        self.is_shutting_down = False
        self.active_requests = 0
        self.shutdown_timeout = shutdown_timeout
        self._drained = asyncio.Event()
        self._drained.set()

    def request_started(self):
        if not self.is_shutting_down:
            self.active_requests += 1
            self._drained.clear()

    def request_finished(self):
        self.active_requests -= 1
        if self.active_requests <= 0:
            self._drained.set()

    async def initiate_shutdown(self):
        if self.is_shutting_down:
            return
        self.is_shutting_down = True

        if self.active_requests == 0:
            logger.info("Graceful shutdown: no requests in flight")
            return

        logger.info(f"Graceful shutdown: waiting for {self.active_requests} request(s)")
        try:
            await asyncio.wait_for(self._drained.wait(), timeout=self.shutdown_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Graceful shutdown: gave up after {self.shutdown_timeout}s with "
                f"{self.active_requests} request(s) still running"
            )
        else:
            logger.info("Graceful shutdown: all requests finished")


# ==================== Application Context ====================


def build_context(settings: Settings) -> AppContext:
    """Construct the stores, session manager and template cache.

    Raises if the templates fail to compile.
    """
    engine = create_engine(settings)
    session_factory = create_sessionmaker(engine)

    if settings.SESSION_STORE == "redis":
        session_store = RedisSessionStore(settings.REDIS_URL)
    else:
        session_store = DatabaseSessionStore(session_factory)

    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        snippets=SnippetStore(session_factory),
        users=UserStore(session_factory, bcrypt_rounds=settings.BCRYPT_ROUNDS),
        sessions=SessionManager(
            session_store,
            lifetime=timedelta(hours=settings.SESSION_LIFETIME_HOURS),
            cookie_name=settings.SESSION_COOKIE_NAME,
            cookie_secure=settings.SESSION_COOKIE_SECURE,
        ),
        templates=TemplateRenderer.from_directory(settings.TEMPLATE_DIR),
    )

# ==================== Application Lifecycle ====================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - handles startup and graceful shutdown."""
    ctx: AppContext = app.state.context
    shutdown_manager: GracefulShutdownManager = app.state.shutdown_manager
    session_store = ctx.sessions.store

    logger.info(f"Starting {ctx.settings.APP_NAME} in {ctx.settings.APP_ENV} mode")
    logger.info("Database schema managed by Alembic migrations")

    if isinstance(session_store, RedisSessionStore):
        await session_store.connect()

    logger.info(f"{ctx.settings.APP_NAME} started successfully - ready to accept requests")

    yield

    logger.info(f"Shutting down {ctx.settings.APP_NAME}...")

    await shutdown_manager.initiate_shutdown()

    if isinstance(session_store, RedisSessionStore):
        await session_store.disconnect()

    await dispose_engine(ctx.engine)

    logger.info(f"{ctx.settings.APP_NAME} shutdown complete")

# ==================== Exception Handlers ====================


async def _login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse("/user/login", status_code=303)


async def _csrf_error_handler(request: Request, exc: CSRFError):
    return client_error(400)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = client_error(exc.status_code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    return client_error(400)


async def _unhandled_exception_handler(request: Request, exc: Exception):
    return server_error(exc)

# ==================== Application Setup ====================


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the web application from ``settings`` (read from the environment if omitted)."""
    settings = settings or Settings()
    configure_logging(settings)

    context = build_context(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.context = context
    app.state.shutdown_manager = GracefulShutdownManager(settings.GRACEFUL_SHUTDOWN_TIMEOUT)

    # Innermost first: each registration wraps the ones before it
    app.middleware("http")(session_middleware)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(add_request_id_middleware)
    app.middleware("http")(graceful_shutdown_middleware)

    # Rate limiting
    app.state.limiter = configure_rate_limit(settings.RATE_LIMIT_ENABLED, settings.RATE_LIMIT_DEFAULT)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_exception_handler(LoginRequired, _login_required_handler)
    app.add_exception_handler(CSRFError, _csrf_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    app.mount("/static", StaticFiles(directory=settings.STATIC_DIR), name="static")
    app.include_router(router)

    # Setup Prometheus monitoring
    setup_monitoring(app)

    return app
