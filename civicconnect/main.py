"""
CivicConnect — application entry point.

This is the **only** file that assembles the app.  The workflow rules
live in `services/`; `api/` only translates HTTP to service calls.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from civicconnect.api.v1.api import api_router
from civicconnect.core.config import settings
from civicconnect.core.exceptions import register_exception_handlers
from civicconnect.core.rate_limit import limiter
from civicconnect.db.base import Base
from civicconnect.db.session import async_session_factory, engine

# Ensure all models are imported so metadata.create_all can see them
from civicconnect.models.issue import Issue, IssueVote, TimelineEntry  # noqa: F401
from civicconnect.models.payment import PaymentRecord  # noqa: F401
from civicconnect.models.staff_application import (  # noqa: F401
    StaffApplication, StaffApplicationEvent)
from civicconnect.models.user import User
from civicconnect.repositories.users import UserRepository

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    # Seed the first admin so someone can review staff applications
    async with async_session_factory() as session:
        users = UserRepository(session)
        if await users.get_by_email(settings.FIRST_ADMIN_EMAIL) is None:
            await users.insert(
                User(
                    email=settings.FIRST_ADMIN_EMAIL,
                    display_name="System Administrator",
                    role="admin",
                )
            )
            await session.commit()
            logger.info("Default admin created: %s", settings.FIRST_ADMIN_EMAIL)

    logger.info("CivicConnect v%s started", settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Civic issue reporting and resolution",
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # slowapi reads the limiter from app state
    application.state.limiter = limiter

    # Global exception handlers (prevent stack-trace leakage)
    register_exception_handlers(application)

    # Mount API v1
    application.include_router(api_router, prefix=settings.API_V1_PREFIX)

    return application


app = create_app()
