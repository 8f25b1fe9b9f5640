"""Mirror Azure DevOps repositories into Wharf projects.

One importer serves one inbound request. It resolves the Wharf token and
provider records first (creating them when missing), then walks the
requested scope and creates or updates one Wharf project per Azure DevOps
repository, replacing that project's branch list each time.

Scope granularity comes from the Wharf group/project names (see naming):

  - organization only: every repository of every project
  - organization + project: every repository of that project
  - organization + project + repository: that repository

Repositories are imported one at a time in listing order. The first failure
aborts the whole import; work already written to Wharf is kept.
"""

from dataclasses import dataclass

import httpx

from wharf_azuredevops.azure import models as azure
from wharf_azuredevops.azure.client import AzureDevOpsClient, parse_base_url
from wharf_azuredevops.config import AzureDevOpsConfig
from wharf_azuredevops.errors import (
    DataConsistencyError,
    ProviderNotFoundError,
    ValidationError,
    WharfClientError,
)
from wharf_azuredevops.logging_config import get_logger
from wharf_azuredevops.naming import Scope, translate
from wharf_azuredevops.wharfapi import models as wharf
from wharf_azuredevops.wharfapi.client import WharfClient

logger = get_logger(__name__)

PROVIDER_NAME = "azuredevops"


def check_provider_url(url: str) -> None:
    """Reject a missing or unusable Azure DevOps URL before anything is written."""
    if not url:
        raise ValidationError("url", "Unable to import without the Azure DevOps URL.")
    parse_base_url(url)


@dataclass
class ImportResult:
    """Counts of what one import wrote to Wharf."""

    projects: int = 0
    branches: int = 0

    def add(self, other: "ImportResult") -> None:
        self.projects += other.projects
        self.branches += other.branches


class AzureImporter:
    """Imports Azure DevOps repositories into Wharf for a single request."""

    def __init__(
        self,
        wharf_client: WharfClient,
        config: AzureDevOpsConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.wharf = wharf_client
        self.config = config or AzureDevOpsConfig()
        self._transport = transport
        self.token: wharf.Token | None = None
        self.provider: wharf.Provider | None = None
        self.azure: AzureDevOpsClient | None = None

    # --- Identity ---

    async def resolve_token(self, token_id: int, user_name: str, secret: str) -> wharf.Token:
        """Get the token by ID, or find or create it by user name and secret."""
        if token_id:
            token = await self.wharf.get_token(token_id)
            if not token.token_id:
                raise WharfClientError(f"Unable to get token by ID {token_id}.")
            return token

        if not user_name:
            raise ValidationError("user", "Unable to import when both user and token are omitted.")
        if not secret:
            raise ValidationError("token", "Unable to import without a token for the user.")

        for candidate in await self.wharf.search_tokens(user_name):
            if candidate.token_id and candidate.token == secret:
                return candidate

        logger.info("Creating token", user=user_name)
        created = await self.wharf.create_token(wharf.Token(token=secret, user_name=user_name))
        if not created.token_id:
            raise WharfClientError(f"Wharf returned no ID for the new token of user {user_name!r}.")
        return created

    async def resolve_provider(self, provider_id: int, url: str, upload_url: str) -> wharf.Provider:
        """Get the provider by ID, or find or create it by name and URL."""
        if self.token is None:
            raise RuntimeError("resolve_token must run before resolve_provider")

        if provider_id:
            provider = await self.wharf.get_provider(provider_id)
            if not provider.provider_id:
                raise WharfClientError(f"Unable to get provider by ID {provider_id}.")
            return provider

        check_provider_url(url)

        for candidate in await self.wharf.search_providers(PROVIDER_NAME, url):
            if candidate.provider_id and candidate.name == PROVIDER_NAME and candidate.url == url:
                return candidate

        logger.info("Creating provider", url=url)
        created = await self.wharf.create_provider(
            wharf.Provider(
                name=PROVIDER_NAME,
                url=url,
                upload_url=upload_url,
                token_id=self.token.token_id,
            )
        )
        if not created.provider_id:
            raise WharfClientError(f"Wharf returned no ID for the new provider at {url!r}.")
        return created

    async def init(
        self,
        *,
        token_id: int = 0,
        user_name: str = "",
        secret: str = "",
        provider_id: int = 0,
        url: str = "",
        upload_url: str = "",
    ) -> None:
        """Resolve token and provider, then connect to Azure DevOps."""
        if not provider_id:
            # validated before any Wharf write
            check_provider_url(url)
        self.token = await self.resolve_token(token_id, user_name, secret)
        logger.debug("Token from Wharf", token_id=self.token.token_id, user=self.token.user_name)

        self.provider = await self.resolve_provider(provider_id, url, upload_url)
        logger.debug(
            "Provider from Wharf",
            provider_id=self.provider.provider_id,
            name=self.provider.name,
            url=self.provider.url,
        )

        self.azure = AzureDevOpsClient(
            self.provider.url,
            self.token.user_name,
            self.token.token,
            api_version=self.config.api_version,
            verify=self.config.verify_tls,
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        )

    def _require_azure(self) -> AzureDevOpsClient:
        if self.azure is None:
            raise RuntimeError("init must run before importing")
        return self.azure

    def _require_identity(self) -> tuple[wharf.Token, wharf.Provider]:
        if self.token is None or self.provider is None:
            raise RuntimeError("init must run before importing")
        return self.token, self.provider

    # --- Fan-out by scope ---

    async def import_group(self, group_name: str, project_name: str) -> ImportResult:
        """Import everything a Wharf (group, project) pair refers to."""
        scope = translate(group_name, project_name)
        logger.info(
            "Importing from Azure DevOps",
            organization=scope.organization,
            project=scope.project,
            repository=scope.repository,
        )
        return await self.import_scope(scope)

    async def import_scope(self, scope: Scope) -> ImportResult:
        if not scope.project:
            return await self.import_organization(scope.organization)
        if not scope.repository:
            return await self.import_project(scope.organization, scope.project)
        return await self.import_single_repository(
            scope.organization, scope.project, scope.repository
        )

    async def import_organization(self, org: str) -> ImportResult:
        """Import every repository of every project in an organization."""
        result = ImportResult()
        for project in await self._require_azure().get_projects(org):
            result.add(await self._import_project_repositories(org, project))
        return result

    async def import_project(self, org: str, project_name: str) -> ImportResult:
        """Import every repository of one project."""
        project = await self._require_azure().get_project(org, project_name)
        return await self._import_project_repositories(org, project)

    async def import_single_repository(
        self, org: str, project_name: str, repo_name: str
    ) -> ImportResult:
        azure_client = self._require_azure()
        project = await azure_client.get_project(org, project_name)
        repository = await azure_client.get_repository(org, project_name, repo_name)
        return await self.import_repository(org, project, repository)

    async def _import_project_repositories(
        self, org: str, project: azure.Project
    ) -> ImportResult:
        result = ImportResult()
        repositories = await self._require_azure().get_repositories(org, project.name)
        logger.debug(
            "Repositories in project",
            organization=org,
            project=project.name,
            count=len(repositories),
        )
        for repository in repositories:
            result.add(await self.import_repository(org, project, repository))
        return result

    # --- Single repository ---

    async def import_repository(
        self, org: str, project: azure.Project, repository: azure.Repository
    ) -> ImportResult:
        """Create or update the Wharf project and branches for one repository."""
        token, _ = self._require_identity()
        if repository.project.id != project.id:
            raise DataConsistencyError(
                f"Repository {repository.name!r} belongs to project ID "
                f"{repository.project.id!r}, expected {project.id!r} ({project.name!r})."
            )

        azure_client = self._require_azure()
        build_definition = await self._get_build_definition(org, project, repository)
        branches = await azure_client.get_branches(org, project.name, repository.name)

        project_in_wharf = await self._put_project(org, project, repository, build_definition)

        wharf_branches = [
            wharf.Branch(
                name=branch.name,
                project_id=project_in_wharf.project_id,
                default=branch.ref == repository.default_branch_ref,
                token_id=token.token_id,
            )
            for branch in branches
        ]
        await self.wharf.replace_branches(project_in_wharf.project_id, wharf_branches)

        logger.info(
            "Imported repository",
            project_id=project_in_wharf.project_id,
            group=project_in_wharf.group_name,
            name=project_in_wharf.name,
            branches=len(wharf_branches),
        )
        return ImportResult(projects=1, branches=len(wharf_branches))

    async def _get_build_definition(
        self, org: str, project: azure.Project, repository: azure.Repository
    ) -> str:
        try:
            return await self._require_azure().get_file(
                org, project.name, repository.name, self.config.build_definition_file
            )
        except ProviderNotFoundError:
            logger.debug(
                "Build definition not found",
                organization=org,
                project=project.name,
                repository=repository.name,
                file=self.config.build_definition_file,
            )
            return ""

    async def _put_project(
        self,
        org: str,
        project: azure.Project,
        repository: azure.Repository,
        build_definition: str,
    ) -> wharf.Project:
        token, provider = self._require_identity()
        group_name = f"{org}/{project.name}"
        desired = wharf.Project(
            name=repository.name,
            group_name=group_name,
            token_id=token.token_id,
            build_definition=build_definition,
            description=project.description,
            provider_id=provider.provider_id,
            git_url=repository.ssh_url,
        )

        existing = await self.wharf.search_projects(
            repository.name, group_name, provider.provider_id
        )
        if len(existing) == 1:
            project_id = existing[0].project_id
            logger.debug("Updating project", project_id=project_id, group=group_name)
            updated = await self.wharf.update_project(project_id, desired)
            if not updated.project_id:
                updated.project_id = project_id
            return updated

        desired.remote_project_id = repository.id
        logger.debug("Creating project", group=group_name, name=repository.name)
        created = await self.wharf.create_project(desired)
        if not created.project_id:
            raise WharfClientError(
                f"Wharf returned no ID for the new project {group_name}/{repository.name}."
            )
        return created
