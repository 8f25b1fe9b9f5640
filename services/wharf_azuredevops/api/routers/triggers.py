"""Azure DevOps service hook receiver.

Endpoints:
    POST /import/azuredevops/triggers/{project_id}/pr/created?environment=
"""

from typing import Any

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse

from wharf_azuredevops.api.dependencies import get_wharf_client
from wharf_azuredevops.azure.models import PullRequestEvent
from wharf_azuredevops.services.trigger import relay_pull_request_created
from wharf_azuredevops.wharfapi.client import WharfClient

router = APIRouter(prefix="/import/azuredevops", tags=["triggers"])


@router.post(
    "/triggers/{project_id}/pr/created",
    responses={
        200: {"description": "Build started; body is the Wharf API response"},
        400: {"description": "Bad request"},
        401: {"description": "Unauthorized or missing jwt token"},
    },
)
async def pr_created_trigger(
    event: PullRequestEvent,
    project_id: int = Path(..., gt=0, description="Wharf project ID"),
    environment: str = Query(..., min_length=1, description="Wharf build environment"),
    wharf_client: WharfClient = Depends(get_wharf_client),
) -> JSONResponse:
    """Start the prcreated stage in Wharf for a newly created pull request."""
    body: Any = await relay_pull_request_created(wharf_client, project_id, environment, event)
    return JSONResponse(content=body)
