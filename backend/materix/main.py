"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from materix import __version__
from materix.config import settings
from materix.database import Base, engine
from materix.errors import register_exception_handlers
from materix.logging_config import configure_logging
from materix.middleware import RateLimitMiddleware, RequestContextMiddleware
from materix.routers import auth, friends, free_times, users

# Import all models so Base.metadata knows about them
import materix.models  # noqa: F401

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables for SQLite dev mode; release the connection pool on shutdown."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    logger.info("Materix %s starting in %s mode", __version__, settings.ENV)
    yield
    engine.dispose()
    logger.info("Database connection pool closed")


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    app = FastAPI(
        title="Materix",
        description="Friends, friend requests and shared free time",
        version=__version__,
        lifespan=lifespan,
    )
    register_exception_handlers(app)

    # Added innermost first: request context wraps CORS, which wraps the limiter.
    if settings.LIMITER_ENABLED:
        app.add_middleware(
            RateLimitMiddleware,
            requests=settings.LIMITER_REQUESTS,
            window_seconds=settings.LIMITER_WINDOW_SECONDS,
        )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.include_router(auth.router, prefix=f"{API_PREFIX}/auth", tags=["Auth"])
    app.include_router(users.router, prefix=f"{API_PREFIX}/users", tags=["Users"])
    app.include_router(friends.router, prefix=f"{API_PREFIX}/friends", tags=["Friends"])
    app.include_router(free_times.router, prefix=API_PREFIX, tags=["FreeTime"])

    @app.get(f"{API_PREFIX}/healthcheck")
    def healthcheck():
        return {"status": "available", "environment": settings.ENV, "version": __version__}

    return app


app = create_app()
