"""Wharf API resource shapes consumed by the importer and trigger relay."""

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class WharfModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # Wharf sends null for unset optional columns
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class Token(WharfModel):
    """Stored credential for a remote provider."""

    token_id: int = 0
    token: str = ""
    user_name: str = ""


class Provider(WharfModel):
    """Registration of a remote provider instance."""

    provider_id: int = 0
    name: str = ""
    url: str = ""
    upload_url: str = ""
    token_id: int = 0


class Project(WharfModel):
    project_id: int = 0
    name: str = ""
    group_name: str = ""
    token_id: int = 0
    build_definition: str = ""
    description: str = ""
    provider_id: int = 0
    git_url: str = ""
    remote_project_id: str | None = None


class Branch(WharfModel):
    branch_id: int | None = None
    name: str = ""
    project_id: int = 0
    default: bool = False
    token_id: int = 0


class ProjectRun(WharfModel):
    """Request to start a build stage of a project."""

    project_id: int
    stage: str
    branch: str
    environment: str

