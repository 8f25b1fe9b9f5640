"""FastAPI dependencies.

Every request gets its own Wharf client carrying the caller's Authorization
header; nothing is shared between requests.
"""

from fastapi import Depends, Header

from wharf_azuredevops.config import settings
from wharf_azuredevops.services.importer import AzureImporter
from wharf_azuredevops.wharfapi.client import WharfClient


def get_wharf_client(authorization: str | None = Header(default=None)) -> WharfClient:
    return WharfClient(
        settings.api_url,
        authorization,
        verify=settings.wharf.verify_tls,
        timeout=settings.wharf.timeout_seconds,
    )


def get_importer(wharf_client: WharfClient = Depends(get_wharf_client)) -> AzureImporter:
    return AzureImporter(wharf_client, settings.provider)
