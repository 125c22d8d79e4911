from __future__ import annotations

"""Application factory for FastAPI app.

Builds the app and its collaborators (rate limiter, AI client, knowledge
base, chat service) explicitly. Anything passed in is used as-is, so tests
can run isolated instances without touching global state.
"""

import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.adapters.llm.base import AbstractLLMClient
from app.adapters.llm.factory import create_llm_client
from app.api.routes import chat_router, health_router, info_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.rate_limit import build_rate_limiter
from app.services.chat_service import ChatService
from app.services.knowledge_base import FilesystemKnowledgeProvider, KnowledgeBaseService
from app.services.rate_limit_service import RateLimitService

EXPOSED_HEADERS = [
    "X-Request-ID",
    "X-Request-Duration-ms",
    "X-RateLimit-Limit",
    "X-RateLimit-Remaining",
    "X-RateLimit-Reset",
    "Retry-After",
]


def create_app(
    *,
    rate_limiter: RateLimitService | None = None,
    llm_client: AbstractLLMClient | None = None,
    knowledge_service: KnowledgeBaseService | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Prebuilt limiter; built from settings when omitted.
        llm_client: Prebuilt AI client; built from settings when omitted.
        knowledge_service: Prebuilt knowledge base; built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title=settings.app.name,
        description=(
            "Chatbot API answering questions from a Markdown knowledge base through "
            "a generative AI provider, protected by a per-IP sliding-window rate limit."
        ),
        version=settings.app.version,
    )

    app.state.started_at = time.monotonic()
    app.state.rate_limiter = rate_limiter or build_rate_limiter(settings)
    app.state.llm_client = llm_client or create_llm_client(settings)
    app.state.knowledge_service = knowledge_service or KnowledgeBaseService(
        FilesystemKnowledgeProvider(settings.knowledge.path),
        cache_enabled=settings.knowledge.cache_enabled,
        cache_ttl_seconds=settings.knowledge.cache_ttl_seconds,
    )
    app.state.chat_service = ChatService(
        app.state.llm_client,
        app.state.knowledge_service,
        max_message_chars=settings.app.max_message_chars,
    )

    # Middleware (last added runs first)
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=EXPOSED_HEADERS,
    )

    setup_exception_handlers(app)

    app.include_router(info_router)
    app.include_router(chat_router)
    app.include_router(health_router)

    return app
