"""HTTP routes for connecting and disconnecting Jira accounts.

Paths are relative to the plugin URL:

    GET /instance/{id}/oauth1/connect        redirect to Jira for approval
    GET /instance/{id}/oauth1/complete.html  authorization callback
    GET /instance/{id}/user/disconnect       remove the user's connection
    GET /public-key                          application-link public key
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote

from .connector_logging import get_logger, setup_logging
from .errors import ConnectorError
from .handshake import DelegatedAuthHandshake
from .integrations.instances import (
    ROUTE_OAUTH1_COMPLETE,
    ROUTE_OAUTH1_CONNECT,
    ROUTE_USER_DISCONNECT,
)
from .web import (
    MESSAGE_TEMPLATE,
    OAUTH1_COMPLETE_TEMPLATE,
    JinjaViewRenderer,
    PluginResponse,
)

if TYPE_CHECKING:
    from .config import ConnectorConfig
    from .stores import ConnectionStore, InstanceStore, LocalIdentityProvider
    from .web import PluginRequest, ViewRenderer

logger = get_logger()

ROUTE_PUBLIC_KEY = "/public-key"

_INSTANCE_ROUTE = re.compile(r"^/instance/(?P<instance_id>[^/]+)(?P<route>/.+)$")

CONNECT_FAILED_HEADER = "Failed to connect to Jira."


def format_error_message(error: Exception) -> str:
    """Render an error as one sentence for the end user.

    The first letter is capitalized and trailing punctuation is dropped, e.g.
    ``"request token mismatch."`` becomes ``"Request token mismatch"``.
    """
    text = str(error).strip().rstrip(".!?").rstrip()
    if text:
        text = text[0].upper() + text[1:]
    return text


class OAuth1Routes:
    """Dispatches plugin requests to the handshake."""

    def __init__(
        self, handshake: DelegatedAuthHandshake, renderer: ViewRenderer | None = None
    ):
        self.handshake = handshake
        self.renderer = renderer or JinjaViewRenderer()

    def handle(self, request: PluginRequest) -> PluginResponse:
        """Route ``request`` by path; unknown paths get 404."""
        if request.path == ROUTE_PUBLIC_KEY:
            return self.public_key(request)

        match = _INSTANCE_ROUTE.match(request.path)
        if match:
            instance_id = unquote(match.group("instance_id"))
            route = match.group("route")
            if route == ROUTE_OAUTH1_CONNECT:
                return self.connect(request, instance_id)
            if route == ROUTE_OAUTH1_COMPLETE:
                return self.complete(request, instance_id)
            if route == ROUTE_USER_DISCONNECT:
                return self.disconnect(request, instance_id)

        return PluginResponse(status=404, content_type="text/plain", body="not found")

    def _message(self, status: int, header: str, message: str) -> PluginResponse:
        return self.renderer.render(
            MESSAGE_TEMPLATE, {"header": header, "message": message}, status, "text/html"
        )

    def connect(self, request: PluginRequest, instance_id: str) -> PluginResponse:
        try:
            url = self.handshake.start(request, instance_id)
        except ConnectorError as e:
            logger.warning(f"Failed to start OAuth1 handshake: {e}")
            return self._message(
                e.status_code or 500, CONNECT_FAILED_HEADER, format_error_message(e)
            )
        return PluginResponse(status=302, body="", headers={"Location": url})

    def complete(self, request: PluginRequest, instance_id: str) -> PluginResponse:
        outcome = self.handshake.complete(request, instance_id)
        if outcome.ok:
            return self.renderer.render(
                OAUTH1_COMPLETE_TEMPLATE, outcome.payload or {}, 200, "text/html"
            )
        return self._message(
            outcome.status, CONNECT_FAILED_HEADER, format_error_message(outcome.error)
        )

    def disconnect(self, request: PluginRequest, instance_id: str) -> PluginResponse:
        try:
            self.handshake.disconnect(request, instance_id)
        except ConnectorError as e:
            return PluginResponse(
                status=e.status_code or 500, content_type="text/plain", body=str(e)
            )
        return self._message(
            200,
            "Disconnected from Jira.",
            "It is now safe to close this browser window.",
        )

    def public_key(self, request: PluginRequest) -> PluginResponse:
        try:
            pem = self.handshake.key_store.public_key_pem()
        except ConnectorError as e:
            return PluginResponse(status=500, content_type="text/plain", body=str(e))
        return PluginResponse(status=200, content_type="text/plain", body=pem.decode("ascii"))


def build_routes(
    config: ConnectorConfig,
    instance_store: InstanceStore,
    connection_store: ConnectionStore,
    identity_provider: LocalIdentityProvider,
    renderer: ViewRenderer | None = None,
    **kwargs: Any,
) -> OAuth1Routes:
    """Wire logging, the handshake and its routes from one configuration.

    Extra keyword arguments are passed to the handshake, e.g.
    ``client_factory`` or ``oauth_session_factory``.
    """
    setup_logging(config.log_level)
    handshake = DelegatedAuthHandshake.from_config(
        config, instance_store, connection_store, identity_provider, **kwargs
    )
    logger.info(f"Serving Jira OAuth1 routes under {config.plugin_url_path}")
    return OAuth1Routes(handshake, renderer)
