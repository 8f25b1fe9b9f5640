"""Azure DevOps REST API data shapes (api-version 5.0)."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

BRANCH_REF_PREFIX = "refs/heads/"


class _AzureModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # empty repositories report "defaultBranch": null and similar
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class Project(_AzureModel):
    """Team project."""

    id: str = ""
    name: str = ""
    description: str = ""
    url: str = ""
    state: str = ""
    revision: int = 0
    visibility: str = ""


class Repository(_AzureModel):
    """Git repository inside a team project."""

    id: str = ""
    name: str = ""
    url: str = ""
    project: Project = Field(default_factory=Project)
    default_branch_ref: str = Field(default="", alias="defaultBranch")
    size: int = 0
    remote_url: str = Field(default="", alias="remoteUrl")
    ssh_url: str = Field(default="", alias="sshUrl")


class Creator(_AzureModel):
    id: str = ""
    display_name: str = Field(default="", alias="displayName")
    url: str = ""
    unique_name: str = Field(default="", alias="uniqueName")
    image_url: str = Field(default="", alias="imageUrl")
    descriptor: str = ""


class GitRef(_AzureModel):
    object_id: str = Field(default="", alias="objectId")
    name: str = ""
    creator: Creator = Field(default_factory=Creator)
    url: str = ""


class Branch(_AzureModel):
    """Branch derived from a refs/heads/ ref."""

    name: str
    ref: str
    default: bool = False

    @classmethod
    def from_ref(cls, ref: GitRef) -> "Branch":
        return cls(name=ref.name.removeprefix(BRANCH_REF_PREFIX), ref=ref.name)


class PullRequestResource(_AzureModel):
    pull_request_id: int = Field(default=0, alias="pullRequestId")
    source_ref_name: str = Field(default="", alias="sourceRefName")


class PullRequestEvent(_AzureModel):
    """Service hook payload for pull request events."""

    event_type: str = Field(default="", alias="eventType")
    resource: PullRequestResource = Field(default_factory=PullRequestResource)

    @property
    def source_branch(self) -> str:
        return self.resource.source_ref_name.removeprefix(BRANCH_REF_PREFIX)
