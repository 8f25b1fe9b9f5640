"""
Health check endpoints.

Provides / (ping, kept for existing Wharf deployments) and /health (liveness).
"""

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def ping() -> dict[str, str]:
    """Ping endpoint. Answers "pong"."""
    return {"message": "pong"}


@router.get("/health", status_code=status.HTTP_200_OK)
async def health() -> dict[str, str]:
    """Liveness probe endpoint.

    Returns 200 if the server is running. The service has no backing
    stores, so there is no separate readiness check.
    """
    return {"status": "healthy"}
