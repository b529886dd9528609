"""FastAPI application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crmdash import __version__
from crmdash.auth.gate import RequestGateMiddleware
from crmdash.auth.jwt import TokenCodec
from crmdash.db.engine import Database
from crmdash.errors import register_error_handlers
from crmdash.rest.routes.auth import router as auth_router
from crmdash.rest.routes.contacts import router as contacts_router
from crmdash.rest.routes.deals import router as deals_router
from crmdash.rest.routes.documents import router as documents_router
from crmdash.rest.routes.health import router as health_router
from crmdash.rest.routes.invitations import router as invitations_router
from crmdash.rest.routes.meetings import router as meetings_router
from crmdash.rest.routes.organizations import router as organizations_router
from crmdash.rest.routes.properties import router as properties_router
from crmdash.rest.routes.tasks import router as tasks_router
from crmdash.rest.routes.team import router as team_router
from crmdash.settings import Settings, get_settings

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    db = Database(settings.database_url)
    await db.connect(create_tables=settings.create_tables)
    app.state.db = db
    logger.info("app_started", environment=settings.environment)
    yield
    await db.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    codec = TokenCodec(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        default_ttl=settings.token_ttl_seconds,
    )

    app = FastAPI(
        title="CRMDash API",
        description="Multi-tenant real-estate CRM service",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.token_codec = codec

    register_error_handlers(app)

    # Added first so CORS ends up outermost.
    app.add_middleware(RequestGateMiddleware, codec=codec, cookie_name=settings.cookie_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Public routes
    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router, prefix="/api")
    app.include_router(invitations_router, prefix="/api")

    # Protected API routes
    app.include_router(organizations_router, prefix="/api")
    app.include_router(contacts_router, prefix="/api")
    app.include_router(properties_router, prefix="/api")
    app.include_router(deals_router, prefix="/api")
    app.include_router(team_router, prefix="/api")
    app.include_router(tasks_router, prefix="/api")
    app.include_router(meetings_router, prefix="/api")
    app.include_router(documents_router, prefix="/api")

    return app
