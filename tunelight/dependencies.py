"""FastAPI dependencies for dependency injection."""

import httpx
from fastapi import Request

from tunelight.services.sync_orchestrator import SyncOrchestrator


async def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    Get the shared HTTP client from app state.

    Args:
        request: The FastAPI request object.

    Returns:
        The shared AsyncClient instance.

    Raises:
        RuntimeError: If HTTP client is not initialized.
    """
    client: httpx.AsyncClient | None = getattr(request.app.state, "http_client", None)

    if client is None:
        raise RuntimeError("HTTP client not initialized. This should never happen.")

    return client


async def get_orchestrator(request: Request) -> SyncOrchestrator:
    """
    Get the sync orchestrator from app state.

    Args:
        request: The FastAPI request object.

    Returns:
        The shared SyncOrchestrator instance.

    Raises:
        RuntimeError: If the orchestrator is not initialized.
    """
    orchestrator: SyncOrchestrator | None = getattr(request.app.state, "orchestrator", None)

    if orchestrator is None:
        raise RuntimeError("Sync orchestrator not initialized.")

    return orchestrator

