"""OAuth1a three-legged handshake binding a Jira account to a local user.

The handshake moves through these states::

    INITIATED -> CALLBACK_RECEIVED -> TOKEN_EXCHANGED -> USER_BOUND -> COMPLETE

and reaches FAILED from any of the first four. ``complete`` never raises for
a handshake problem; it returns a HandshakeOutcome that the route layer turns
into a confirmation or failure page.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from .connector_logging import get_logger
from .errors import (
    ConnectorError,
    MethodNotAllowed,
    NoPendingHandshake,
    RESTError,
    TokenMismatch,
    Unauthenticated,
)
from .integrations.instances import (
    ROUTE_USER_DISCONNECT,
    create_client,
    instance_path,
)
from .integrations.models import ConnectionRecord, ConnectionSettings
from .integrations.oauth1 import KeyStore, parse_authorization_callback
from .stores import MemoryTemporaryCredentialStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from .config import ConnectorConfig
    from .integrations.base import JiraClient
    from .integrations.instances import JiraInstance
    from .integrations.models import LongLivedCredential
    from .integrations.oauth1 import OAuth1Config
    from .stores import (
        ConnectionStore,
        InstanceStore,
        LocalIdentityProvider,
        LocalUser,
        TemporaryCredentialStore,
    )
    from .web import PluginRequest

logger = get_logger()


class HandshakeState(Enum):
    """Stages of the OAuth1a handshake."""

    INITIATED = "initiated"
    CALLBACK_RECEIVED = "callback_received"
    TOKEN_EXCHANGED = "token_exchanged"
    USER_BOUND = "user_bound"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class HandshakeOutcome:
    """Result of one handshake completion attempt.

    On success ``payload`` holds the confirmation view data. On failure
    ``error`` holds the cause and ``failed_in`` the last state reached.
    """

    state: HandshakeState
    status: int
    payload: dict[str, Any] | None = None
    error: ConnectorError | None = None
    failed_in: HandshakeState | None = None

    @property
    def ok(self) -> bool:
        return self.state is HandshakeState.COMPLETE


class DelegatedAuthHandshake:
    """Starts and completes OAuth1a connections, and disconnects users."""

    def __init__(
        self,
        config: ConnectorConfig,
        key_store: KeyStore,
        instance_store: InstanceStore,
        connection_store: ConnectionStore,
        credential_store: TemporaryCredentialStore,
        identity_provider: LocalIdentityProvider,
        client_factory: Callable[..., JiraClient] = create_client,
        oauth_session_factory: Callable[..., Any] | None = None,
    ):
        """Initialize the handshake.

        Args:
            config: Connector configuration
            key_store: RSA key used to sign OAuth1 requests
            instance_store: Installed Jira instances
            connection_store: Where completed connections are saved
            credential_store: Pending request tokens
            identity_provider: Resolves local users
            client_factory: Builds a Jira client for a new credential
            oauth_session_factory: Overrides the OAuth1 session class
        """
        self.config = config
        self.key_store = key_store
        self.instance_store = instance_store
        self.connection_store = connection_store
        self.credential_store = credential_store
        self.identity_provider = identity_provider
        self._client_factory = client_factory
        self._oauth_kwargs: dict[str, Any] = {}
        if oauth_session_factory is not None:
            self._oauth_kwargs["session_factory"] = oauth_session_factory

    @classmethod
    def from_config(
        cls,
        config: ConnectorConfig,
        instance_store: InstanceStore,
        connection_store: ConnectionStore,
        identity_provider: LocalIdentityProvider,
        **kwargs: Any,
    ) -> DelegatedAuthHandshake:
        """Build a handshake whose key and request-token store follow ``config``.

        The signing key is read from ``rsa_private_key_path`` (generated when
        unset) and pending request tokens expire after
        ``temporary_credential_ttl_seconds``.
        """
        key_store = KeyStore.load(config.rsa_private_key_path)
        credential_store = MemoryTemporaryCredentialStore(
            ttl_seconds=config.temporary_credential_ttl_seconds
        )
        return cls(
            config=config,
            key_store=key_store,
            instance_store=instance_store,
            connection_store=connection_store,
            credential_store=credential_store,
            identity_provider=identity_provider,
            **kwargs,
        )

    def user_id_from(self, request: PluginRequest) -> str:
        """Return the authenticated local user id, or raise Unauthenticated."""
        user_id = request.header(self.config.user_id_header)
        if not user_id:
            raise Unauthenticated()
        return user_id

    def _oauth1_config(self, instance: JiraInstance) -> OAuth1Config:
        return instance.oauth1_config(self.key_store, self.config, **self._oauth_kwargs)

    def _load_local_user(self, user_id: str) -> LocalUser:
        user = self.identity_provider.get_user(user_id)
        if user is None:
            raise ConnectorError(f"failed to load user {user_id}")
        return user

    def revoke_url(self, instance_id: str) -> str:
        """Plugin URL path that disconnects the user from the instance."""
        return self.config.plugin_url_path.rstrip("/") + instance_path(
            ROUTE_USER_DISCONNECT, instance_id
        )

    def start(self, request: PluginRequest, instance_id: str) -> str:
        """Begin a handshake and return the Jira authorization URL.

        Any request token pending for the user is replaced.

        Raises:
            Unauthenticated: If no local user is attached to the request
            InstanceNotFound, UnsupportedInstanceType: For unusable instances
            ConnectorError: If Jira refuses a request token
        """
        user_id = self.user_id_from(request)
        instance = self.instance_store.load_instance(instance_id)
        oauth = self._oauth1_config(instance)

        credential = oauth.request_token()
        self.credential_store.store(user_id, credential)
        logger.info(f"Started OAuth1 handshake for user {user_id} on {instance.id}")
        return oauth.authorization_url(credential.token)

    def complete(self, request: PluginRequest, instance_id: str) -> HandshakeOutcome:
        """Finish a handshake from Jira's authorization callback.

        The pending request token is consumed before it is compared, so a
        replayed or concurrent duplicate callback finds nothing and fails
        with NoPendingHandshake.
        """
        state = HandshakeState.INITIATED
        try:
            instance = self.instance_store.load_instance(instance_id)
            oauth = self._oauth1_config(instance)

            request_token, verifier = parse_authorization_callback(request.query)
            state = HandshakeState.CALLBACK_RECEIVED

            user_id = self.user_id_from(request)
            local_user = self._load_local_user(user_id)

            pending = self.credential_store.consume_once(user_id)
            if pending is None or not pending.token:
                raise NoPendingHandshake(
                    f"failed to get temporary credentials for {user_id}"
                )
            if pending.token != request_token:
                raise TokenMismatch()

            credential = oauth.access_token(request_token, pending.secret, verifier)
            state = HandshakeState.TOKEN_EXCHANGED

            record = self._bind(instance, user_id, credential)
            state = HandshakeState.USER_BOUND

        except ConnectorError as e:
            return self._failed(state, e)
        except Exception as e:
            logger.exception(f"Unexpected error completing OAuth1 handshake: {e}")
            return self._failed(state, ConnectorError(str(e)))

        logger.info(f"Connected Jira user {record.user.display_label} to {user_id}")
        return HandshakeOutcome(
            state=HandshakeState.COMPLETE,
            status=200,
            payload={
                "jira_display_name": record.user.display_label,
                "local_display_name": local_user.display_name,
                "revoke_url": self.revoke_url(instance.id),
            },
        )

    def _bind(
        self, instance: JiraInstance, user_id: str, credential: LongLivedCredential
    ) -> ConnectionRecord:
        client = self._client_factory(instance, credential, self.key_store, self.config)
        jira_user = client.get_self()
        record = ConnectionRecord(
            credential=credential,
            user=jira_user,
            # Notifications are on by default the first time a user connects
            settings=ConnectionSettings(notifications=True),
            plugin_version=self.config.plugin_version,
        )
        self.connection_store.save(user_id, instance.id, record)
        return record

    def _failed(self, state: HandshakeState, error: ConnectorError) -> HandshakeOutcome:
        logger.warning(f"OAuth1 handshake failed after {state.value}: {error}")
        # A remote status from Jira is not this endpoint's status
        status = 500 if isinstance(error, RESTError) else error.status_code
        return HandshakeOutcome(
            state=HandshakeState.FAILED,
            status=status or 500,
            error=error,
            failed_in=state,
        )

    def disconnect(
        self, request: PluginRequest, instance_id: str
    ) -> ConnectionRecord | None:
        """Remove the calling user's connection to the instance.

        Raises:
            MethodNotAllowed: For anything but GET
            Unauthenticated: If no local user is attached to the request
        """
        if request.method.upper() != "GET":
            raise MethodNotAllowed(
                f"method {request.method} is not allowed, must be GET"
            )
        user_id = self.user_id_from(request)
        removed = self.connection_store.remove(user_id, instance_id)
        if removed is None:
            logger.info(f"User {user_id} had no connection to {instance_id}")
        else:
            logger.info(f"Disconnected user {user_id} from {instance_id}")
        return removed
