"""Configuration management for the Aidbox FHIR MCP server.

This module defines the ``AidboxConfig`` model for the upstream FHIR server and
the ``ServerSettings`` model for the MCP transport, plus helpers to load both
from environment variables.
"""

from __future__ import annotations

import os
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

# Load variables from a local .env file for development convenience
load_dotenv()

DEFAULT_BASE_URL = "http://localhost:8888"
DEFAULT_HTTP_PORT = 3002

AuthType = Literal["basic", "oauth2"]


def _collect_env(mapping: dict[str, str]) -> dict[str, Any]:
    """Read the given environment variables, dropping the unset ones."""
    raw: dict[str, Any] = {}
    for field_name, env_name in mapping.items():
        value = os.getenv(env_name)
        if value is not None and value != "":
            raw[field_name] = value
    return raw


def _format_validation_error(exc: ValidationError) -> str:
    return "; ".join(err["msg"] for err in exc.errors())


class AidboxConfig(BaseModel):
    """Connection parameters for one Aidbox deployment.

    Instances are immutable; a client is built from exactly one config for its
    whole lifetime.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = DEFAULT_BASE_URL
    auth_type: AuthType = "basic"
    username: str | None = None
    password: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    verify_ssl: bool = True
    timeout_ms: int = Field(default=10000, ge=1000, le=600000)
    fhir_path_prefix: str = "/fhir"
    probe_path: str = "/$version"
    skip_connection_check: bool = False

    @field_validator("base_url")
    @classmethod
    def _normalize_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            msg = "Aidbox url is required"
            raise ValueError(msg)
        if not value.startswith(("http://", "https://")):
            msg = f"Invalid Aidbox url: {value}"
            raise ValueError(msg)
        return value

    @field_validator("fhir_path_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        value = value.strip().strip("/")
        return f"/{value}" if value else ""

    @field_validator("probe_path")
    @classmethod
    def _normalize_probe_path(cls, value: str) -> str:
        return "/" + value.strip().lstrip("/")

    @model_validator(mode="after")
    def _validate_credentials(self) -> AidboxConfig:
        if self.auth_type == "oauth2" and not (self.client_id and self.client_secret):
            msg = "Set AIDBOX_CLIENT_ID and AIDBOX_CLIENT_SECRET when AIDBOX_AUTH_TYPE is oauth2."
            raise ValueError(msg)
        return self

    @property
    def token_url(self) -> str:
        """Return the OAuth2 client-credentials token endpoint."""
        return f"{self.base_url}/auth/token"

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    def resource_path(self, resource_type: str, resource_id: str | None = None) -> str:
        """Return the request path for a resource type, optionally for one instance."""
        path = f"{self.fhir_path_prefix}/{resource_type}"
        if resource_id is not None:
            path = f"{path}/{resource_id}"
        return path

    @classmethod
    def from_env(cls) -> AidboxConfig:
        """Build a configuration object from environment variables."""
        raw_config = _collect_env(
            {
                "base_url": "AIDBOX_URL",
                "auth_type": "AIDBOX_AUTH_TYPE",
                "username": "AIDBOX_USERNAME",
                "password": "AIDBOX_PASSWORD",
                "client_id": "AIDBOX_CLIENT_ID",
                "client_secret": "AIDBOX_CLIENT_SECRET",
                "verify_ssl": "AIDBOX_VERIFY_SSL",
                "timeout_ms": "AIDBOX_TIMEOUT_MS",
                "probe_path": "AIDBOX_PROBE_PATH",
                "skip_connection_check": "SKIP_AIDBOX_CONNECTION",
            }
        )
        # An empty prefix is meaningful here (bare /{resourceType} paths).
        prefix = os.getenv("AIDBOX_FHIR_PATH_PREFIX")
        if prefix is not None:
            raw_config["fhir_path_prefix"] = prefix
        try:
            return cls(**raw_config)
        except ValidationError as exc:
            msg = f"Invalid Aidbox configuration: {_format_validation_error(exc)}"
            raise RuntimeError(msg) from exc


class ServerSettings(BaseModel):
    """Transport settings for the MCP server process."""

    http_mode: bool = False
    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(default=DEFAULT_HTTP_PORT, ge=1, le=65535)

    @classmethod
    def from_env(cls) -> ServerSettings:
        """Build server settings from ``MCP_HTTP_*`` environment variables."""
        raw_settings = _collect_env(
            {
                "http_mode": "MCP_HTTP_MODE",
                "host": "MCP_HTTP_HOST",
                "port": "MCP_HTTP_PORT",
            }
        )
        try:
            return cls(**raw_settings)
        except ValidationError as exc:
            msg = f"Invalid server settings: {_format_validation_error(exc)}"
            raise RuntimeError(msg) from exc


__all__ = ["DEFAULT_BASE_URL", "DEFAULT_HTTP_PORT", "AidboxConfig", "AuthType", "ServerSettings"]
