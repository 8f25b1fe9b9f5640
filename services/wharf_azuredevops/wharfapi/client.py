"""Wharf API client.

Thin typed wrapper over the Wharf REST endpoints used when importing
projects and starting builds. The caller's Authorization header is forwarded
as-is; this service never holds Wharf credentials of its own.
"""

import json
from typing import Any, TypeVar

import httpx

from wharf_azuredevops.errors import WharfAuthError, WharfClientError
from wharf_azuredevops.logging_config import get_logger, redact_text
from wharf_azuredevops.wharfapi.models import (
    Branch,
    Project,
    ProjectRun,
    Provider,
    Token,
    WharfModel,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=WharfModel)


def _list_items(body: Any) -> list[dict]:
    """Accept both a bare list and a paginated {"list": [...]} response."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        return body.get("list") or []
    raise ValueError("expected a JSON list or object")


class WharfClient:
    """Client for one Wharf API instance, scoped to one inbound request."""

    def __init__(
        self,
        api_url: str,
        auth_header: str | None = None,
        *,
        verify: bool = True,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self._auth_header = auth_header
        self._verify = verify
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        kwargs: dict[str, Any] = {"verify": self._verify}
        if self._auth_header:
            kwargs["headers"] = {"Authorization": self._auth_header}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    async def _request(
        self,
        method: str,
        path: str,
        what: str,
        *,
        params: dict[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        url = f"{self.api_url}/api{path}"
        logger.debug(
            "Wharf API request",
            method=method,
            url=url,
            params=params,
            body=redact_text(json.dumps(body)) if body is not None else None,
        )
        try:
            async with self._client() as client:
                resp = await client.request(method, url, params=params, json=body)
        except httpx.HTTPError as e:
            logger.error("Wharf API request failed", method=method, url=url, error=str(e))
            raise WharfClientError(f"Unable to {what}: {e}") from e

        if resp.status_code == 401:
            realm = resp.headers.get("WWW-Authenticate", "")
            logger.error("Wharf API rejected credentials", url=url, realm=realm)
            raise WharfAuthError(f"Unauthorized to {what}.", realm=realm)
        if not resp.is_success:
            logger.debug(
                "Wharf API returned non-2xx status",
                url=url,
                status=resp.status_code,
                response_body=resp.text,
            )
            raise WharfClientError(
                f"Unable to {what}: HTTP {resp.status_code}.",
                status_code=resp.status_code,
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise WharfClientError(f"Unable to {what}: invalid JSON response.") from e

    async def _one(
        self, model: type[ModelT], method: str, path: str, what: str, **kw: Any
    ) -> ModelT:
        data = await self._request(method, path, what, **kw)
        try:
            return model.model_validate(data or {})
        except ValueError as e:
            raise WharfClientError(f"Unable to {what}: unexpected response shape.") from e

    async def _many(
        self, model: type[ModelT], method: str, path: str, what: str, **kw: Any
    ) -> list[ModelT]:
        data = await self._request(method, path, what, **kw)
        try:
            return [model.model_validate(item) for item in _list_items(data or [])]
        except ValueError as e:
            raise WharfClientError(f"Unable to {what}: unexpected response shape.") from e

    # --- Tokens ---

    async def get_token(self, token_id: int) -> Token:
        return await self._one(Token, "GET", f"/token/{token_id}", f"get token by ID {token_id}")

    async def search_tokens(self, user_name: str) -> list[Token]:
        return await self._many(
            Token,
            "GET",
            "/token",
            f"search tokens for user {user_name!r}",
            params={"userName": user_name},
        )

    async def create_token(self, token: Token) -> Token:
        return await self._one(
            Token,
            "POST",
            "/token",
            "create token",
            body=token.model_dump(by_alias=True, exclude={"token_id"}),
        )

    # --- Providers ---

    async def get_provider(self, provider_id: int) -> Provider:
        return await self._one(
            Provider, "GET", f"/provider/{provider_id}", f"get provider by ID {provider_id}"
        )

    async def search_providers(self, name: str, url: str) -> list[Provider]:
        return await self._many(
            Provider,
            "GET",
            "/provider",
            f"search providers named {name!r} at {url!r}",
            params={"name": name, "url": url},
        )

    async def create_provider(self, provider: Provider) -> Provider:
        return await self._one(
            Provider,
            "POST",
            "/provider",
            f"create provider for {provider.url!r}",
            body=provider.model_dump(by_alias=True, exclude={"provider_id"}),
        )

    # --- Projects ---

    async def search_projects(self, name: str, group_name: str, provider_id: int) -> list[Project]:
        return await self._many(
            Project,
            "GET",
            "/project",
            f"search projects named {name!r} in group {group_name!r}",
            params={"name": name, "groupName": group_name, "providerId": provider_id},
        )

    async def create_project(self, project: Project) -> Project:
        return await self._one(
            Project,
            "POST",
            "/project",
            f"create project {project.group_name}/{project.name}",
            body=project.model_dump(by_alias=True, exclude={"project_id"}, exclude_none=True),
        )

    async def update_project(self, project_id: int, project: Project) -> Project:
        return await self._one(
            Project,
            "PUT",
            f"/project/{project_id}",
            f"update project {project_id}",
            body=project.model_dump(by_alias=True, exclude={"project_id"}, exclude_none=True),
        )

    # --- Branches ---

    async def replace_branches(self, project_id: int, branches: list[Branch]) -> list[Branch]:
        """Replace the full branch list of a project."""
        return await self._many(
            Branch,
            "PUT",
            f"/project/{project_id}/branch",
            f"replace branches of project {project_id}",
            body=[b.model_dump(by_alias=True, exclude_none=True) for b in branches],
        )

    # --- Builds ---

    async def start_project_run(self, run: ProjectRun) -> Any:
        """Start a build. Returns the Wharf response body unchanged."""
        return await self._request(
            "POST",
            f"/project/{run.project_id}/{run.stage}/run",
            f"start {run.stage!r} build for project {run.project_id}",
            params={"branch": run.branch, "environment": run.environment},
        )
