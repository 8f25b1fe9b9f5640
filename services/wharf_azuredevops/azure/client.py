"""Azure DevOps REST API client.

Read-only access to projects, repositories, files and branch refs using
HTTP Basic authentication (user name + personal access token). Supports
Azure DevOps Services and self-hosted Azure DevOps Server instances.
"""

from typing import Any, TypeVar
from urllib.parse import quote as url_quote

import httpx
from pydantic import BaseModel

from wharf_azuredevops.azure.models import Branch, GitRef, Project, Repository
from wharf_azuredevops.errors import (
    InvalidConfigError,
    ProviderNotFoundError,
    ProviderResponseError,
)
from wharf_azuredevops.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_API_VERSION = "5.0"
REFS_BRANCH_FILTER = "heads/"

_INCOMPATIBLE_HINT = (
    "Could be caused by invalid JSON data structure. "
    "Might be the result of an incompatible version of Azure DevOps."
)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _segment(value: str) -> str:
    return url_quote(value, safe="")


def parse_base_url(base_url: str) -> str:
    """Normalize an Azure DevOps server URL. Raises InvalidConfigError if unusable."""
    try:
        parsed = httpx.URL(base_url)
    except httpx.InvalidURL as e:
        raise InvalidConfigError(f"Unable to parse provider URL {base_url!r}: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise InvalidConfigError(f"Provider URL {base_url!r} must be an absolute http(s) URL")
    return str(parsed).rstrip("/")


class AzureDevOpsClient:
    """Client bound to one Azure DevOps server and one set of credentials."""

    def __init__(
        self,
        base_url: str,
        user_name: str,
        token: str,
        *,
        api_version: str = DEFAULT_API_VERSION,
        verify: bool = True,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = parse_base_url(base_url)
        self.user_name = user_name
        self._token = token
        self.api_version = api_version
        self._verify = verify
        self._timeout = timeout
        self._transport = transport

    def _url(self, *segments: str) -> str:
        return "/".join([self.base_url, *segments])

    def _client(self) -> httpx.AsyncClient:
        kwargs: dict[str, Any] = {
            "auth": httpx.BasicAuth(self.user_name, self._token),
            "verify": self._verify,
        }
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    async def _get(
        self,
        url: str,
        params: dict[str, str],
        what: str,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        logger.debug("Azure DevOps request", url=url, params=params)
        try:
            async with self._client() as client:
                resp = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.error("Azure DevOps request failed", url=url, error=str(e))
            raise ProviderResponseError(f"Unable to fetch {what}: {e}") from e

        if resp.status_code == 404:
            raise ProviderNotFoundError(f"Unable to fetch {what}: not found (404).")
        if not resp.is_success:
            logger.warning(
                "Azure DevOps returned non-2xx status",
                url=url,
                status=resp.status_code,
            )
            raise ProviderResponseError(
                f"Unable to fetch {what}: HTTP {resp.status_code}.",
                status_code=resp.status_code,
            )
        return resp

    async def _get_model(
        self, model: type[ModelT], url: str, params: dict[str, str], what: str
    ) -> ModelT:
        resp = await self._get(url, params, what)
        try:
            return model.model_validate(resp.json())
        except ValueError as e:
            raise ProviderResponseError(
                f"Invalid response getting {what}. {_INCOMPATIBLE_HINT}"
            ) from e

    async def _get_list(
        self, model: type[ModelT], url: str, params: dict[str, str], what: str
    ) -> list[ModelT]:
        resp = await self._get(url, params, what)
        try:
            body = resp.json()
            return [model.model_validate(item) for item in body.get("value") or []]
        except (ValueError, AttributeError) as e:
            raise ProviderResponseError(
                f"Invalid response getting {what}. {_INCOMPATIBLE_HINT}"
            ) from e

    # --- Projects ---

    async def get_projects(self, org: str) -> list[Project]:
        """List all projects in an organization."""
        return await self._get_list(
            Project,
            self._url(_segment(org), "_apis/projects"),
            {"api-version": self.api_version},
            f"projects from organization {org!r}",
        )

    async def get_project(self, org: str, project: str) -> Project:
        """Get one project by name or ID."""
        return await self._get_model(
            Project,
            self._url(_segment(org), "_apis/projects", _segment(project)),
            {"api-version": self.api_version},
            f"project {project!r} from organization {org!r}",
        )

    # --- Repositories ---

    async def get_repositories(self, org: str, project: str) -> list[Repository]:
        """List all Git repositories in a project."""
        return await self._get_list(
            Repository,
            self._url(_segment(org), _segment(project), "_apis/git/repositories"),
            {"api-version": self.api_version},
            f"repositories from project {project!r} in organization {org!r}",
        )

    async def get_repository(self, org: str, project: str, repo: str) -> Repository:
        """Get one Git repository by name or ID."""
        return await self._get_model(
            Repository,
            self._url(
                _segment(org), _segment(project), "_apis/git/repositories", _segment(repo)
            ),
            {"api-version": self.api_version},
            f"repository {repo!r} from project {project!r} in organization {org!r}",
        )

    # --- Contents ---

    async def get_file(self, org: str, project: str, repo: str, path: str) -> str:
        """Get the raw contents of a file in the repository's default branch.

        Raises ProviderNotFoundError when the file does not exist.
        """
        url = self._url(
            _segment(org), _segment(project), "_apis/git/repositories", _segment(repo), "items"
        )
        params = {"scopePath": f"/{path.lstrip('/')}", "api-version": self.api_version}
        resp = await self._get(
            url,
            params,
            f"file {path!r} from repository {repo!r} in project {project!r}",
            headers={"Accept": "text/plain"},
        )
        return resp.text

    async def get_branches(self, org: str, project: str, repo: str) -> list[Branch]:
        """List branches of a repository from its refs/heads/ refs."""
        refs = await self._get_list(
            GitRef,
            self._url(
                _segment(org),
                _segment(project),
                "_apis/git/repositories",
                _segment(repo),
                "refs",
            ),
            {"api-version": self.api_version, "filter": REFS_BRANCH_FILTER},
            f"branches of repository {repo!r} in project {project!r} "
            f"using refs filter {REFS_BRANCH_FILTER!r}",
        )
        return [Branch.from_ref(ref) for ref in refs]
