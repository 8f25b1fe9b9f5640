"""
Exceptions raised while importing from Azure DevOps or relaying triggers.

Every exception maps to one problem response (RFC 7807 style). The API layer
renders them; services only raise.
"""

PROBLEM_TYPE_PREFIX = "prob/provider/azuredevops/"


class AdapterError(Exception):
    """Base exception for all classified failures."""

    problem_type = "unexpected"
    title = "Unexpected error."
    status_code = 500

    def __init__(self, detail: str, *, field: str | None = None) -> None:
        self.detail = detail
        self.field = field
        super().__init__(detail)

    @property
    def type_uri(self) -> str:
        return PROBLEM_TYPE_PREFIX + self.problem_type


class ValidationError(AdapterError):
    """Caller input was malformed or incomplete."""

    problem_type = "invalid-param"
    title = "Invalid parameter."
    status_code = 400

    def __init__(self, field: str, detail: str) -> None:
        super().__init__(detail, field=field)


class InvalidConfigError(AdapterError):
    """A configured or supplied URL could not be used."""

    problem_type = "invalid-config"
    title = "Invalid configuration."
    status_code = 400


# --- Azure DevOps ---


class ProviderResponseError(AdapterError):
    """Azure DevOps failed, answered non-2xx, or returned unparseable data."""

    problem_type = "provider-response"
    title = "Invalid response from provider."
    status_code = 502

    def __init__(self, detail: str, *, status_code: int | None = None) -> None:
        self.remote_status = status_code
        super().__init__(detail)


class ProviderNotFoundError(ProviderResponseError):
    """Azure DevOps answered 404."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail, status_code=404)


class DataConsistencyError(AdapterError):
    """Azure DevOps returned data that contradicts the requested scope."""

    problem_type = "provider-data-consistency"
    title = "Inconsistent provider data."
    status_code = 502


# --- Wharf API ---


class WharfClientError(AdapterError):
    """The Wharf API failed or answered non-2xx."""

    problem_type = "api-client"
    title = "Error talking to the Wharf API."
    status_code = 502

    def __init__(self, detail: str, *, status_code: int | None = None) -> None:
        self.remote_status = status_code
        super().__init__(detail)


class WharfAuthError(WharfClientError):
    """The Wharf API rejected the forwarded credentials."""

    problem_type = "unauthorized"
    title = "Unauthorized."
    status_code = 401

    def __init__(self, detail: str, *, realm: str = "") -> None:
        self.realm = realm
        super().__init__(detail, status_code=401)


# --- Triggers ---


class UnsupportedEventError(AdapterError):
    """The webhook event type is not handled."""

    problem_type = "invalid-event-type"
    title = "Invalid event type."
    status_code = 400


class TriggerDispatchError(AdapterError):
    """Starting the build in Wharf failed."""

    problem_type = "send-trigger"
    title = "Error sending trigger."
    status_code = 502
