"""Tests for installed instances and client construction."""

import pytest
from requests_oauthlib import OAuth1

from jira_connector.config import ConnectorConfig
from jira_connector.errors import UnsupportedInstanceType
from jira_connector.integrations.cloud import JiraCloudClient
from jira_connector.integrations.instances import (
    CLIENT_CLASSES,
    ROUTE_OAUTH1_COMPLETE,
    ROUTE_USER_DISCONNECT,
    JiraInstance,
    create_client,
    instance_path,
)
from jira_connector.integrations.models import DeploymentKind, LongLivedCredential
from jira_connector.integrations.server import JiraServerClient


@pytest.fixture
def config() -> ConnectorConfig:
    """Create a configuration with a public site URL."""
    return ConnectorConfig(site_url="https://chat.example.com", request_timeout_seconds=7)


class TestInstancePath:
    """Test instance-scoped route paths."""

    def test_path(self):
        """Test the instance id is embedded in the path."""
        assert instance_path(ROUTE_USER_DISCONNECT, "jira-1") == "/instance/jira-1/user/disconnect"

    def test_id_is_escaped(self):
        """Test URLs used as ids are percent-encoded."""
        path = instance_path(ROUTE_OAUTH1_COMPLETE, "https://jira.example.com")
        assert path == "/instance/https%3A%2F%2Fjira.example.com/oauth1/complete.html"


class TestJiraInstance:
    """Test JiraInstance."""

    def test_supports_oauth1_requires_consumer_key(self):
        """Test OAuth1 support follows the application link."""
        assert JiraInstance("a", DeploymentKind.SERVER, "https://j", "key").supports_oauth1
        assert not JiraInstance("a", DeploymentKind.CLOUD, "https://j").supports_oauth1

    def test_oauth1_config_callback(self, key_store, config):
        """Test the callback URL points at the completion route."""
        instance = JiraInstance("jira-1", DeploymentKind.SERVER, "https://j", "key")
        oauth = instance.oauth1_config(key_store, config)

        assert oauth.callback_url == (
            "https://chat.example.com/plugins/jira/instance/jira-1/oauth1/complete.html"
        )
        assert oauth.consumer_key == "key"
        assert oauth.timeout == 7

    def test_oauth1_config_unsupported(self, key_store, config):
        """Test an instance without a consumer key."""
        instance = JiraInstance("jira-1", DeploymentKind.CLOUD, "https://j")
        with pytest.raises(UnsupportedInstanceType):
            instance.oauth1_config(key_store, config)


class TestCreateClient:
    """Test client construction by deployment kind."""

    def test_every_kind_has_a_client(self):
        """Test the client table covers all kinds."""
        assert set(CLIENT_CLASSES) == set(DeploymentKind)

    def test_server_client(self, key_store, config):
        """Test a server instance gets a signed server client."""
        instance = JiraInstance("s", DeploymentKind.SERVER, "https://jira.example.com", "key")
        client = create_client(instance, LongLivedCredential("at", "as"), key_store, config)

        assert isinstance(client, JiraServerClient)
        assert isinstance(client._session.auth, OAuth1)
        assert client.timeout == 7
        assert client.strict_create_meta is False

    def test_server_client_strict(self, key_store):
        """Test strict create metadata is passed to server clients."""
        config = ConnectorConfig(strict_create_meta=True)
        instance = JiraInstance("s", DeploymentKind.SERVER, "https://jira.example.com", "key")
        client = create_client(instance, LongLivedCredential("at", "as"), key_store, config)
        assert client.strict_create_meta is True

    def test_cloud_client(self, key_store, config):
        """Test a cloud instance gets a cloud client."""
        instance = JiraInstance("c", DeploymentKind.CLOUD, "https://x.atlassian.net", "key")
        client = create_client(instance, LongLivedCredential("at", "as"), key_store, config)
        assert isinstance(client, JiraCloudClient)
        assert client.kind == DeploymentKind.CLOUD
