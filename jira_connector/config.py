"""Connector configuration.

Values are merged with the following precedence (highest to lowest):
1. Explicit overrides passed to ``load_config``
2. Environment variables (``JIRA_CONNECTOR_*``)
3. Defaults
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .connector_logging import get_logger

logger = get_logger()

ENV_PREFIX = "JIRA_CONNECTOR_"


class ConnectorConfig(BaseModel):
    """Settings for the Jira connector plugin."""

    model_config = ConfigDict(extra="forbid")

    plugin_url_path: str = Field(
        default="/plugins/jira", description="URL path the plugin is served under"
    )
    site_url: str = Field(
        default="http://localhost:8065", description="Public URL of the chat server"
    )
    user_id_header: str = Field(
        default="Mattermost-User-Id",
        description="Request header carrying the authenticated local user id",
    )
    plugin_version: str = Field(default="1.0.0", description="Stamped on connections")
    request_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Timeout for Jira REST calls"
    )
    temporary_credential_ttl_seconds: float = Field(
        default=900.0, gt=0, description="Lifetime of an unconsumed request token"
    )
    rsa_private_key_path: Path | None = Field(
        default=None, description="PEM private key used to sign OAuth1 requests"
    )
    strict_create_meta: bool = Field(
        default=False,
        description="Raise instead of returning partially aggregated create metadata",
    )
    log_level: str = Field(default="INFO", description="Connector log level")

    @property
    def plugin_url(self) -> str:
        """Absolute URL of the plugin's HTTP root."""
        return self.site_url.rstrip("/") + "/" + self.plugin_url_path.strip("/")


def _env_overrides(environ: dict[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for field_name in ConnectorConfig.model_fields:
        env_key = ENV_PREFIX + field_name.upper()
        if env_key in environ:
            values[field_name] = environ[env_key]
    return values


def load_config(
    environ: dict[str, str] | None = None, **overrides: Any
) -> ConnectorConfig:
    """Load configuration from the environment and explicit overrides.

    Args:
        environ: Environment mapping (defaults to ``os.environ``)
        **overrides: Explicit values, taking precedence over the environment

    Returns:
        Validated ConnectorConfig
    """
    environ = dict(os.environ if environ is None else environ)
    values = _env_overrides(environ)
    if values:
        logger.debug(f"Applied {len(values)} settings from environment")
    values.update(overrides)
    return ConnectorConfig(**values)
