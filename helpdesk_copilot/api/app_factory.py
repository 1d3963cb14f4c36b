from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from helpdesk_copilot.api.dependencies import build_exemplar_index, cached_completion_factory
from helpdesk_copilot.api.routers import (
    drafts_router,
    exemplars_router,
    guardrails_router,
    health_router,
    knowledge_router,
    tickets_router,
)
from helpdesk_copilot.core.errors import HelpdeskError
from helpdesk_copilot.core.logging import configure_logging
from helpdesk_copilot.core.settings import Settings, ensure_directories, get_settings
from helpdesk_copilot.integrations.embeddings import Embedder, StyleExemplarIndex
from helpdesk_copilot.integrations.llm import CompletionClient
from helpdesk_copilot.repositories.sqlite import init_db
from helpdesk_copilot.services.presence import TypingPresence

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    embedder: Embedder | None = None,
    exemplar_index: StyleExemplarIndex | None = None,
    completion_factory: Callable[[], CompletionClient] | None = None,
) -> FastAPI:
    resolved_settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ensure_directories(resolved_settings)
        configure_logging(resolved_settings)
        init_db(resolved_settings)
        if app.state.exemplar_index is None:
            app.state.exemplar_index = build_exemplar_index(resolved_settings)
        logger.info("%s started (db=%s)", resolved_settings.app_name, resolved_settings.db_file)
        yield

    app = FastAPI(title=resolved_settings.app_name, lifespan=lifespan)
    app.state.settings = resolved_settings
    app.state.presence = TypingPresence(resolved_settings.typing_expiry_seconds)
    app.state.embedder = embedder or Embedder(resolved_settings)
    app.state.exemplar_index = exemplar_index
    app.state.completion_factory = completion_factory or cached_completion_factory(resolved_settings)

    @app.exception_handler(HelpdeskError)
    async def helpdesk_error_handler(_: Request, exc: HelpdeskError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error": type(exc).__name__},
        )

    app.include_router(health_router)
    app.include_router(tickets_router)
    app.include_router(drafts_router)
    app.include_router(knowledge_router)
    app.include_router(guardrails_router)
    app.include_router(exemplars_router)

    return app
