"""
FastAPI application for the AIQuiz manager back-office.

create_app() builds an app around explicit settings, storage and email
backend; the module-level `app` is the production instance served by
uvicorn.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from aiquiz.api import account, files, subjects, topics
from aiquiz.api.errors import register_exception_handlers
from aiquiz.auth.routes import router as auth_router
from aiquiz.auth.users import UserStore
from aiquiz.config import Settings, configure_logging, get_settings
from aiquiz.integrations.email import EmailBackend, EmailService
from aiquiz.integrations.sentry import init_sentry
from aiquiz.services.bootstrap import seed_admin, super_admin_configured
from aiquiz.services.subjects import SubjectStore
from aiquiz.services.topics import TopicStore
from aiquiz.storage import StorageProvider, create_local_storage

logger = logging.getLogger(__name__)

SERVICE_NAME = "aiquiz-manager"


def create_app(
    settings: Settings | None = None,
    storage: StorageProvider | None = None,
    email_backend: EmailBackend | None = None,
) -> FastAPI:
    """
    Build the API.

    Args:
        settings: Defaults to get_settings()
        storage: Defaults to local filesystem + METADATA_BACKEND
        email_backend: Defaults to the backend named by EMAIL_BACKEND
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build process-wide collaborators once and hang them on app.state."""
        configure_logging(settings)
        if init_sentry(settings):
            logger.info("Sentry error tracking enabled")

        app.state.settings = settings
        app.state.storage = storage or create_local_storage(
            settings.content_dir,
            settings.metadata_backend,
            settings.metadata_path,
        )
        app.state.users = UserStore(app.state.storage.metadata)
        app.state.subjects = SubjectStore(app.state.storage.metadata)
        app.state.topics = TopicStore(app.state.storage.metadata)
        app.state.email = EmailService(settings, backend=email_backend)

        if super_admin_configured(settings):
            await seed_admin(app.state.users, settings)

        logger.info(
            f"AIQuiz manager API starting in {settings.environment} mode "
            f"(email backend: {type(app.state.email.backend).__name__})"
        )

        yield

        logger.info("AIQuiz manager API shutting down")
        for name in ("email", "topics", "subjects", "users", "storage"):
            delattr(app.state, name)

    app = FastAPI(
        title="AIQuiz Manager API",
        description="Back-office API: authentication, subjects, professors and course files",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app, settings)

    app.include_router(auth_router)
    app.include_router(account.router)
    app.include_router(subjects.router)
    app.include_router(topics.router)
    app.include_router(files.router)

    @app.get("/api/manager/health", tags=["health"])
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "service": SERVICE_NAME}

    return app


app = create_app()
