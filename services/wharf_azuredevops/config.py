"""
Configuration management for the Wharf Azure DevOps provider.

Non-secret configuration loaded from YAML file, overridden by environment
variables (prefix WHARF_, nested delimiter __).
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_PATH = Path("/etc/wharf-provider-azuredevops/config.yaml")


def yaml_config_settings_source() -> dict[str, Any]:
    """Load configuration from YAML file."""
    if CONFIG_PATH.exists():
        with open(CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


# --- Outbound client configuration ---


class AzureDevOpsConfig(BaseModel):
    """Settings for requests sent to Azure DevOps."""

    verify_tls: bool = Field(
        default=True,
        description="Verify TLS certificates of the Azure DevOps server",
    )
    timeout_seconds: float | None = Field(
        default=None,
        description="Request timeout in seconds. None keeps the httpx default.",
    )
    api_version: str = Field(default="5.0", description="Azure DevOps REST API version")
    build_definition_file: str = Field(
        default=".wharf-ci.yml",
        description="Build definition file fetched from each repository root",
    )


class WharfAPIConfig(BaseModel):
    """Settings for requests sent to the Wharf API."""

    verify_tls: bool = Field(default=True)
    timeout_seconds: float | None = Field(default=None)


# --- CORS Configuration ---


class CORSConfig(BaseModel):
    """CORS (Cross-Origin Resource Sharing) configuration."""

    allow_all: bool = Field(
        default=False,
        description="Allow any origin. Equivalent to the legacy ALLOW_CORS=YES.",
    )
    allow_origins: list[str] = Field(
        default_factory=list,
        description="Allowed origins. Empty list (and allow_all off) disables CORS.",
    )
    allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
    )
    allow_headers: list[str] = Field(
        default=["Origin", "Content-Length", "Content-Type", "Authorization", "X-Request-ID"],
    )

    @property
    def enabled(self) -> bool:
        return self.allow_all or bool(self.allow_origins)

    @property
    def origins(self) -> list[str]:
        return ["*"] if self.allow_all else self.allow_origins


# --- Main Settings ---


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="WHARF_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="wharf-provider-azuredevops")
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True, description="JSON logging in production")
    bind_address: str = Field(default="0.0.0.0:8080")

    # Wharf API
    api_url: str = Field(
        default="http://wharf-api",
        description="Base URL of the Wharf API (WHARF_API_URL)",
    )
    wharf: WharfAPIConfig = Field(default_factory=WharfAPIConfig)

    # Azure DevOps
    provider: AzureDevOpsConfig = Field(default_factory=AzureDevOpsConfig)

    # CORS
    cors: CORSConfig = Field(default_factory=CORSConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Customize settings sources: env vars override YAML config."""
        return (
            init_settings,
            env_settings,
            yaml_config_settings_source,
            dotenv_settings,
            file_secret_settings,
        )

    def bind_host_port(self) -> tuple[str, int]:
        """Split bind_address into (host, port)."""
        host, _, port = self.bind_address.rpartition(":")
        if not host:
            host = "0.0.0.0"
        return host, int(port or 8080)


# Global settings instance
settings = Settings()
