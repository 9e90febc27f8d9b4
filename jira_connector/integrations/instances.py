"""Installed Jira instances and client construction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from ..errors import UnsupportedInstanceType
from .cloud import JiraCloudClient
from .models import DeploymentKind
from .oauth1 import OAuth1Config
from .server import JiraServerClient

if TYPE_CHECKING:
    from ..config import ConnectorConfig
    from .base import JiraClient
    from .models import LongLivedCredential
    from .oauth1 import KeyStore

CLIENT_CLASSES: dict[DeploymentKind, type[JiraClient]] = {
    DeploymentKind.CLOUD: JiraCloudClient,
    DeploymentKind.SERVER: JiraServerClient,
}

ROUTE_OAUTH1_CONNECT = "/oauth1/connect"
ROUTE_OAUTH1_COMPLETE = "/oauth1/complete.html"
ROUTE_USER_DISCONNECT = "/user/disconnect"


@dataclass(frozen=True)
class JiraInstance:
    """A Jira site installed in the plugin.

    ``kind`` is fixed when the instance is loaded and decides which client
    class serves it. ``consumer_key`` is the application-link consumer key;
    instances without one cannot run the OAuth1a handshake.
    """

    id: str
    kind: DeploymentKind
    base_url: str
    consumer_key: str = ""

    @property
    def supports_oauth1(self) -> bool:
        return bool(self.consumer_key)

    def oauth1_config(
        self, key_store: KeyStore, config: ConnectorConfig, **kwargs: Any
    ) -> OAuth1Config:
        """OAuth1 settings for this instance.

        Raises:
            UnsupportedInstanceType: If no consumer key is configured
        """
        if not self.supports_oauth1:
            raise UnsupportedInstanceType(
                f"OAuth1 is not supported for {self.kind.value} instance {self.id}"
            )
        return OAuth1Config(
            base_url=self.base_url,
            consumer_key=self.consumer_key,
            key_store=key_store,
            callback_url=config.plugin_url + instance_path(ROUTE_OAUTH1_COMPLETE, self.id),
            timeout=config.request_timeout_seconds,
            **kwargs,
        )


def instance_path(route: str, instance_id: str) -> str:
    """Plugin-relative path of an instance-scoped route."""
    return f"/instance/{quote(instance_id, safe='')}{route}"


def create_client(
    instance: JiraInstance,
    credential: LongLivedCredential,
    key_store: KeyStore,
    config: ConnectorConfig,
) -> JiraClient:
    """Build the client for ``instance`` acting as the credential's owner.

    Raises:
        UnsupportedInstanceType: If the instance kind has no client
    """
    client_class = CLIENT_CLASSES.get(instance.kind)
    if client_class is None:
        raise UnsupportedInstanceType(f"not supported for instance type {instance.kind}")

    auth = instance.oauth1_config(key_store, config).auth_for(credential)
    kwargs: dict[str, Any] = {"auth": auth, "timeout": config.request_timeout_seconds}
    if client_class is JiraServerClient:
        kwargs["strict_create_meta"] = config.strict_create_meta
    return client_class(instance.base_url, **kwargs)
