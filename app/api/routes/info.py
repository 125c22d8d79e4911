from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from app.core.config import settings

router = APIRouter(tags=["Info"])

ENDPOINTS = {
    "POST /api/v1/chat": "Chat with AI",
    "POST /chat": "Chat with AI (legacy)",
    "GET /api/v1/health": "Health check",
    "GET /health": "Health check (legacy)",
    "GET /": "API information",
}


@router.get("/")
def api_info() -> dict:
    """Describe the service and list its endpoints."""

    return {
        "service": settings.app.name,
        "version": settings.app.version,
        "status": "running",
        "environment": settings.app.environment,
        "endpoints": ENDPOINTS,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
