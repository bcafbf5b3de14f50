"""FastAPI application: main entry point."""

import os

import structlog
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.config import get_settings
from app.infrastructure.database import engine, Base
from app.core.logging import configure_logging
from app.core.middleware import setup_middleware
from app.core.exceptions import register_exception_handlers

# Import all models so SQLAlchemy knows about them
from app.domain.models.user import User
from app.domain.models.community import Community, CommunityBan, CommunityCategory, CommunityMember
from app.domain.models.post import Post, PostUpvote
from app.domain.models.notification import Notification

# Import routers
from app.interfaces.api.auth import router as auth_router
from app.interfaces.api.communities import router as communities_router
from app.interfaces.api.posts import router as posts_router
from app.interfaces.api.notifications import router as notifications_router
from app.interfaces.websockets.community_feed import router as community_feed_router

settings = get_settings()

# Configure logging immediately
configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    # Startup
    logger.info("Starting Huddle API...", env=settings.ENVIRONMENT)

    # Create DB tables (dev only, migrations belong in a real deployment)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    if settings.ENABLE_SCHEDULER:
        from app.scheduler.jobs import start_scheduler
        start_scheduler()

    yield

    # Shutdown
    if settings.ENABLE_SCHEDULER:
        from app.scheduler.jobs import stop_scheduler
        stop_scheduler()
    logger.info("Huddle API stopped")


app = FastAPI(
    title="Huddle: Community Platform API",
    description="Accounts, communities, posts, votes and notifications",
    version="1.0.0",
    lifespan=lifespan,
)

# Setup Middleware (Correlation ID, Logging)
setup_middleware(app)

# AppError subclasses, request validation, HTTP errors and the catch-all
register_exception_handlers(app)

# CORS is added last so it wraps everything else
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Uploaded media is served straight from disk
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

# Include routers
app.include_router(auth_router)
app.include_router(communities_router)
app.include_router(posts_router)
app.include_router(notifications_router)
app.include_router(community_feed_router)


@app.get("/")
def root():
    return {
        "name": "Huddle API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "healthy"}
