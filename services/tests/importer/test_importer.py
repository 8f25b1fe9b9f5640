"""Tests for the Azure DevOps to Wharf importer."""

from unittest.mock import AsyncMock

import httpx
import pytest

from wharf_azuredevops.errors import (
    DataConsistencyError,
    InvalidConfigError,
    ProviderResponseError,
    ValidationError,
    WharfClientError,
)
from wharf_azuredevops.services.importer import PROVIDER_NAME, AzureImporter
from wharf_azuredevops.wharfapi import models as wharf

AZURE_URL = "https://dev.azure.test"


class FakeAzure:
    """In-memory Azure DevOps organization served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.projects: dict[str, dict] = {}
        self.repositories: dict[str, list[dict]] = {}
        self.files: dict[tuple[str, str], str] = {}
        self.refs: dict[tuple[str, str], list[str]] = {}
        self.requests: list[httpx.Request] = []

    def add_project(self, name: str, project_id: str, description: str = "") -> None:
        self.projects[name] = {"id": project_id, "name": name, "description": description}
        self.repositories.setdefault(name, [])

    def add_repository(
        self,
        project: str,
        name: str,
        repo_id: str,
        *,
        branches: tuple[str, ...] = ("main",),
        default: str = "main",
        build_definition: str | None = None,
        owner_id: str | None = None,
    ) -> None:
        owner = self.projects[project]
        self.repositories[project].append(
            {
                "id": repo_id,
                "name": name,
                "project": {"id": owner_id or owner["id"], "name": project},
                "defaultBranch": f"refs/heads/{default}",
                "sshUrl": f"git@ssh.dev.azure.test:v3/Org/{project}/{name}",
            }
        )
        self.refs[(project, name)] = [f"refs/heads/{b}" for b in branches]
        if build_definition is not None:
            self.files[(project, name)] = build_definition

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.strip("/").split("/")
        # {org}/_apis/projects[/{project}]
        if parts[1:3] == ["_apis", "projects"]:
            if len(parts) == 3:
                return httpx.Response(200, json={"value": list(self.projects.values())})
            project = self.projects.get(parts[3])
            return httpx.Response(200, json=project) if project else httpx.Response(404)
        # {org}/{project}/_apis/git/repositories[/{repo}[/items|/refs]]
        project_name = parts[1]
        repos = self.repositories.get(project_name)
        if repos is None:
            return httpx.Response(404)
        if len(parts) == 5:
            return httpx.Response(200, json={"value": repos})
        repo_name = parts[5]
        repo = next((r for r in repos if r["name"] == repo_name), None)
        if repo is None:
            return httpx.Response(404)
        if len(parts) == 6:
            return httpx.Response(200, json=repo)
        if parts[6] == "items":
            content = self.files.get((project_name, repo_name))
            return httpx.Response(200, text=content) if content is not None else httpx.Response(404)
        refs = self.refs.get((project_name, repo_name))
        if refs is None:
            return httpx.Response(500, text="ref lookup failed")
        return httpx.Response(200, json={"value": [{"name": r} for r in refs]})


class FakeWharf:
    """In-memory stand-in for WharfClient."""

    def __init__(self) -> None:
        self.tokens: list[wharf.Token] = []
        self.providers: list[wharf.Provider] = []
        self.projects: dict[int, wharf.Project] = {}
        self.branches: dict[int, list[wharf.Branch]] = {}
        self.calls: list[str] = []

    async def get_token(self, token_id):
        self.calls.append("get_token")
        return next((t for t in self.tokens if t.token_id == token_id), wharf.Token())

    async def search_tokens(self, user_name):
        self.calls.append("search_tokens")
        return [t for t in self.tokens if t.user_name == user_name]

    async def create_token(self, token):
        self.calls.append("create_token")
        created = token.model_copy(update={"token_id": len(self.tokens) + 1})
        self.tokens.append(created)
        return created

    async def get_provider(self, provider_id):
        self.calls.append("get_provider")
        return next((p for p in self.providers if p.provider_id == provider_id), wharf.Provider())

    async def search_providers(self, name, url):
        self.calls.append("search_providers")
        return [p for p in self.providers if p.name == name]

    async def create_provider(self, provider):
        self.calls.append("create_provider")
        created = provider.model_copy(update={"provider_id": len(self.providers) + 1})
        self.providers.append(created)
        return created

    async def search_projects(self, name, group_name, provider_id):
        self.calls.append("search_projects")
        return [
            p
            for p in self.projects.values()
            if p.name == name and p.group_name == group_name and p.provider_id == provider_id
        ]

    async def create_project(self, project):
        self.calls.append("create_project")
        created = project.model_copy(update={"project_id": len(self.projects) + 1})
        self.projects[created.project_id] = created
        return created

    async def update_project(self, project_id, project):
        self.calls.append("update_project")
        existing = self.projects[project_id]
        updated = project.model_copy(
            update={"project_id": project_id, "remote_project_id": existing.remote_project_id}
        )
        self.projects[project_id] = updated
        return updated

    async def replace_branches(self, project_id, branches):
        self.calls.append("replace_branches")
        self.branches[project_id] = list(branches)
        return branches


@pytest.fixture
def azure() -> FakeAzure:
    fake = FakeAzure()
    fake.add_project("Proj", "p-1", description="Main project")
    fake.add_repository(
        "Proj", "Repo", "r-1", branches=["main", "dev"], build_definition="inputs: []\n"
    )
    fake.add_repository("Proj", "Tools", "r-2", branches=["master"], default="master")
    fake.add_project("Other", "p-2")
    fake.add_repository("Other", "Lib", "r-3")
    return fake


@pytest.fixture
def wharf_api() -> FakeWharf:
    return FakeWharf()


async def _importer(wharf_api: FakeWharf, azure: FakeAzure) -> AzureImporter:
    importer = AzureImporter(wharf_api, transport=azure.transport)  # type: ignore[arg-type]
    await importer.init(user_name="alice", secret="pat", url=AZURE_URL)
    return importer


class TestResolveToken:
    async def test_creates_token_when_missing(self, wharf_api):
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]

        token = await importer.resolve_token(0, "alice", "pat")

        assert token.token_id == 1
        assert wharf_api.calls == ["search_tokens", "create_token"]

    async def test_reuses_exact_secret_match(self, wharf_api):
        wharf_api.tokens = [
            wharf.Token(token_id=4, token="old", user_name="alice"),
            wharf.Token(token_id=5, token="pat", user_name="alice"),
        ]
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]

        token = await importer.resolve_token(0, "alice", "pat")

        assert token.token_id == 5
        assert "create_token" not in wharf_api.calls

    async def test_by_id(self, wharf_api):
        wharf_api.tokens = [wharf.Token(token_id=7, token="pat", user_name="alice")]
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]

        token = await importer.resolve_token(7, "", "")

        assert token.user_name == "alice"
        assert wharf_api.calls == ["get_token"]

    async def test_unknown_id_raises(self, wharf_api):
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]

        with pytest.raises(WharfClientError):
            await importer.resolve_token(99, "", "")

    async def test_requires_user(self, wharf_api):
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]

        with pytest.raises(ValidationError) as exc_info:
            await importer.resolve_token(0, "", "pat")

        assert exc_info.value.field == "user"
        assert wharf_api.calls == []

    async def test_requires_secret(self, wharf_api):
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]

        with pytest.raises(ValidationError) as exc_info:
            await importer.resolve_token(0, "alice", "")

        assert exc_info.value.field == "token"


class TestResolveProvider:
    async def test_creates_provider_with_token(self, wharf_api):
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]
        importer.token = wharf.Token(token_id=3, token="pat", user_name="alice")

        provider = await importer.resolve_provider(0, AZURE_URL, "https://upload.test")

        assert provider.name == PROVIDER_NAME
        assert provider.token_id == 3
        assert provider.upload_url == "https://upload.test"

    async def test_only_exact_url_match_counts(self, wharf_api):
        wharf_api.providers = [
            wharf.Provider(provider_id=1, name=PROVIDER_NAME, url="https://elsewhere.test"),
            wharf.Provider(provider_id=2, name=PROVIDER_NAME, url=AZURE_URL),
        ]
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]
        importer.token = wharf.Token(token_id=3)

        provider = await importer.resolve_provider(0, AZURE_URL, "")

        assert provider.provider_id == 2
        assert "create_provider" not in wharf_api.calls

    async def test_by_id_uses_stored_url(self, wharf_api, azure):
        wharf_api.tokens = [wharf.Token(token_id=1, token="pat", user_name="alice")]
        wharf_api.providers = [
            wharf.Provider(provider_id=8, name=PROVIDER_NAME, url=AZURE_URL, token_id=1)
        ]
        importer = AzureImporter(wharf_api, transport=azure.transport)  # type: ignore[arg-type]

        await importer.init(token_id=1, provider_id=8, url="https://ignored.test")

        assert importer.azure is not None
        assert importer.azure.base_url == AZURE_URL

    async def test_requires_url(self, wharf_api):
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]
        importer.token = wharf.Token(token_id=3)

        with pytest.raises(ValidationError) as exc_info:
            await importer.resolve_provider(0, "", "")

        assert exc_info.value.field == "url"

    async def test_ignores_other_provider_kind_at_same_url(self, wharf_api):
        wharf_api.search_providers = AsyncMock(
            return_value=[wharf.Provider(provider_id=1, name="gitlab", url=AZURE_URL)]
        )
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]
        importer.token = wharf.Token(token_id=3)

        provider = await importer.resolve_provider(0, AZURE_URL, "")

        assert provider.name == PROVIDER_NAME
        assert wharf_api.calls == ["create_provider"]

    async def test_created_provider_without_id_raises(self, wharf_api):
        wharf_api.create_provider = AsyncMock(return_value=wharf.Provider())
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]
        importer.token = wharf.Token(token_id=3)

        with pytest.raises(WharfClientError):
            await importer.resolve_provider(0, AZURE_URL, "")


class TestInit:
    async def test_unusable_url_writes_nothing(self, wharf_api):
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]

        with pytest.raises(InvalidConfigError):
            await importer.init(user_name="alice", secret="pat", url="dev.azure.com/org")

        assert "create_token" not in wharf_api.calls
        assert "create_provider" not in wharf_api.calls
        assert wharf_api.tokens == []
        assert wharf_api.providers == []

    async def test_missing_url_writes_nothing(self, wharf_api):
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]

        with pytest.raises(ValidationError) as exc_info:
            await importer.init(user_name="alice", secret="pat")

        assert exc_info.value.field == "url"
        assert wharf_api.calls == []

    async def test_created_token_without_id_raises(self, wharf_api):
        wharf_api.create_token = AsyncMock(return_value=wharf.Token())
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]

        with pytest.raises(WharfClientError):
            await importer.init(user_name="alice", secret="pat", url=AZURE_URL)

        assert "create_provider" not in wharf_api.calls



class TestImportScopes:
    async def test_organization_and_project(self, wharf_api, azure):
        """{group: "Org", project: "Proj"} imports every repository of Proj."""
        importer = await _importer(wharf_api, azure)

        result = await importer.import_group("Org", "Proj")

        assert result.projects == 2
        assert result.branches == 3
        names = sorted((p.group_name, p.name) for p in wharf_api.projects.values())
        assert names == [("Org/Proj", "Repo"), ("Org/Proj", "Tools")]

    async def test_single_repository(self, wharf_api, azure):
        """{group: "Org/Proj", project: "Repo"} imports exactly one repository."""
        importer = await _importer(wharf_api, azure)

        result = await importer.import_group("Org/Proj", "Repo")

        assert result.projects == 1
        (project,) = wharf_api.projects.values()
        assert project.name == "Repo"
        assert project.group_name == "Org/Proj"
        assert project.description == "Main project"
        assert project.git_url == "git@ssh.dev.azure.test:v3/Org/Proj/Repo"
        assert project.build_definition == "inputs: []\n"
        assert project.remote_project_id == "r-1"
        assert project.token_id == importer.token.token_id
        assert project.provider_id == importer.provider.provider_id

    async def test_whole_organization(self, wharf_api, azure):
        importer = await _importer(wharf_api, azure)

        result = await importer.import_group("Org", "")

        assert result.projects == 3
        groups = {p.group_name for p in wharf_api.projects.values()}
        assert groups == {"Org/Proj", "Org/Other"}

    async def test_missing_build_definition_is_empty(self, wharf_api, azure):
        importer = await _importer(wharf_api, azure)

        await importer.import_group("Org/Proj", "Tools")

        (project,) = wharf_api.projects.values()
        assert project.build_definition == ""

    async def test_branches_and_default_flag(self, wharf_api, azure):
        importer = await _importer(wharf_api, azure)

        await importer.import_group("Org/Proj", "Repo")

        (project_id,) = wharf_api.branches
        branches = wharf_api.branches[project_id]
        assert [(b.name, b.default) for b in branches] == [("main", True), ("dev", False)]
        assert all(b.project_id == project_id for b in branches)

    async def test_requires_init(self, wharf_api):
        importer = AzureImporter(wharf_api)  # type: ignore[arg-type]

        with pytest.raises(RuntimeError):
            await importer.import_group("Org", "Proj")


class TestIdempotence:
    async def test_reimport_updates_existing_project(self, wharf_api, azure):
        importer = await _importer(wharf_api, azure)
        await importer.import_group("Org/Proj", "Repo")
        azure.projects["Proj"]["description"] = "Renamed"

        await importer.import_group("Org/Proj", "Repo")

        assert len(wharf_api.projects) == 1
        (project,) = wharf_api.projects.values()
        assert project.project_id == 1
        assert project.description == "Renamed"
        assert wharf_api.calls.count("create_project") == 1
        assert wharf_api.calls.count("update_project") == 1

    async def test_reimport_replaces_branches(self, wharf_api, azure):
        importer = await _importer(wharf_api, azure)
        await importer.import_group("Org/Proj", "Repo")
        azure.refs[("Proj", "Repo")] = ["refs/heads/main", "refs/heads/release"]

        await importer.import_group("Org/Proj", "Repo")

        assert [b.name for b in wharf_api.branches[1]] == ["main", "release"]


class TestFailures:
    async def test_project_id_mismatch_writes_nothing(self, wharf_api, azure):
        azure.add_repository("Proj", "Stray", "r-9", owner_id="p-999")
        importer = await _importer(wharf_api, azure)

        with pytest.raises(DataConsistencyError):
            await importer.import_group("Org/Proj", "Stray")

        assert wharf_api.projects == {}
        assert "search_projects" not in wharf_api.calls

    async def test_first_failure_aborts_remaining(self, wharf_api, azure):
        azure.repositories["Proj"].insert(
            1,
            {
                "id": "r-5",
                "name": "Broken",
                "project": {"id": "p-1", "name": "Proj"},
                "defaultBranch": "refs/heads/main",
            },
        )
        importer = await _importer(wharf_api, azure)

        with pytest.raises(ProviderResponseError) as exc_info:
            await importer.import_group("Org", "Proj")

        assert exc_info.value.remote_status == 500

        assert [p.name for p in wharf_api.projects.values()] == ["Repo"]

    async def test_unknown_project_raises_provider_error(self, wharf_api, azure):
        importer = await _importer(wharf_api, azure)

        with pytest.raises(ProviderResponseError):
            await importer.import_group("Org", "Nope")

    async def test_created_project_without_id_writes_no_branches(self, wharf_api, azure):
        importer = await _importer(wharf_api, azure)
        wharf_api.create_project = AsyncMock(return_value=wharf.Project())

        with pytest.raises(WharfClientError):
            await importer.import_group("Org/Proj", "Repo")

        assert "replace_branches" not in wharf_api.calls
