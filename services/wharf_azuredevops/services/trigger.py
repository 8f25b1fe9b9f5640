"""Relay Azure DevOps pull request service hooks into Wharf builds.

Only git.pullrequest.created is handled. The event's source branch is built
with the "prcreated" stage of the given Wharf project.
"""

from typing import Any

from wharf_azuredevops.azure.models import PullRequestEvent
from wharf_azuredevops.errors import (
    TriggerDispatchError,
    UnsupportedEventError,
    WharfAuthError,
    WharfClientError,
)
from wharf_azuredevops.logging_config import get_logger
from wharf_azuredevops.wharfapi.client import WharfClient
from wharf_azuredevops.wharfapi.models import ProjectRun

logger = get_logger(__name__)

PR_CREATED_EVENT = "git.pullrequest.created"
PR_CREATED_STAGE = "prcreated"


def validate_event(event: PullRequestEvent) -> None:
    if event.event_type != PR_CREATED_EVENT:
        raise UnsupportedEventError(
            f"Expected {PR_CREATED_EVENT} trigger, got: {event.event_type!r}."
        )


async def relay_pull_request_created(
    wharf_client: WharfClient,
    project_id: int,
    environment: str,
    event: PullRequestEvent,
) -> Any:
    """Start the prcreated stage for the PR's source branch.

    Returns the Wharf response body unchanged.
    """
    validate_event(event)

    run = ProjectRun(
        project_id=project_id,
        stage=PR_CREATED_STAGE,
        branch=event.source_branch,
        environment=environment,
    )
    logger.info(
        "Relaying pull request trigger",
        project_id=project_id,
        pull_request_id=event.resource.pull_request_id,
        branch=run.branch,
        environment=environment,
    )

    try:
        return await wharf_client.start_project_run(run)
    except WharfAuthError:
        raise
    except WharfClientError as e:
        raise TriggerDispatchError(f"Unable to send trigger to Wharf: {e.detail}") from e
