"""Import endpoint.

Endpoints:
    POST /import/azuredevops   (import or refresh projects from Azure DevOps)
"""

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict, Field

from wharf_azuredevops.api.dependencies import get_importer
from wharf_azuredevops.errors import ValidationError
from wharf_azuredevops.logging_config import get_logger
from wharf_azuredevops.services.importer import AzureImporter

router = APIRouter(prefix="/import", tags=["import"])
logger = get_logger(__name__)


class ImportRequest(BaseModel):
    """What to import, and with which credentials.

    tokenId and providerId select records that already exist in Wharf.
    projectId is accepted for compatibility with older Wharf clients and ignored.
    """

    model_config = ConfigDict(populate_by_name=True)

    token_id: int = Field(default=0, alias="tokenId", examples=[0])
    token: str = Field(default="", examples=["sample token"])
    user: str = Field(default="", examples=["sample user name"])
    url: str = Field(default="", examples=["https://dev.azure.com"])
    upload_url: str = Field(default="", alias="uploadUrl", examples=[""])
    provider_id: int = Field(default=0, alias="providerId", examples=[0])
    project_id: int = Field(default=0, alias="projectId", examples=[0])
    project: str = Field(default="", examples=["sample project name"])
    group: str = Field(default="", examples=["default"])


@router.post(
    "/azuredevops",
    status_code=status.HTTP_201_CREATED,
    response_class=Response,
    responses={
        201: {"description": "Successfully imported"},
        400: {"description": "Bad request"},
        401: {"description": "Unauthorized or missing jwt token"},
        502: {"description": "Azure DevOps or the Wharf API failed"},
    },
)
async def import_azuredevops(
    body: ImportRequest,
    importer: AzureImporter = Depends(get_importer),
) -> Response:
    """Import projects from Azure DevOps or refresh existing ones."""
    if not body.group:
        raise ValidationError("group", "Unable to import due to empty group.")

    await importer.init(
        token_id=body.token_id,
        user_name=body.user,
        secret=body.token,
        provider_id=body.provider_id,
        url=body.url,
        upload_url=body.upload_url,
    )
    result = await importer.import_group(body.group, body.project)

    logger.info(
        "Import finished",
        group=body.group,
        project=body.project,
        projects=result.projects,
        branches=result.branches,
    )
    return Response(status_code=status.HTTP_201_CREATED)
