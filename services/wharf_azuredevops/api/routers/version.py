"""Version endpoint.

Endpoints:
    GET /import/azuredevops/version
"""

from fastapi import APIRouter

from wharf_azuredevops.version import load_version

router = APIRouter(prefix="/import/azuredevops", tags=["meta"])


@router.get("/version")
async def get_version() -> dict:
    """Version and build information of this provider."""
    return load_version().model_dump(by_alias=True)
