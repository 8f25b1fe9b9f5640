"""Mapping between Wharf group/project names and Azure DevOps names.

Wharf names a project by (group, project). Azure DevOps needs
(organization, project, repository). Two conventions exist:

  - legacy:  group="Org",      project="Proj"  ->  ("Org", "Proj", "")
  - current: group="Org/Proj", project="Repo"  ->  ("Org", "Proj", "Repo")

An empty repository means "every repository in the project".
"""

from typing import NamedTuple


class Scope(NamedTuple):
    """Azure DevOps coordinates of an import."""

    organization: str
    project: str
    repository: str


def split_once(value: str, delimiter: str) -> tuple[str, str]:
    """Split on the first delimiter. Missing delimiter yields (value, "")."""
    before, _, after = value.partition(delimiter)
    return before, after


def translate(group_name: str, project_name: str) -> Scope:
    """Translate a Wharf (group, project) pair into an Azure DevOps scope."""
    organization, remainder = split_once(group_name, "/")
    if not remainder:
        return Scope(organization, project_name, "")
    return Scope(organization, remainder, project_name)
