"""Tests for the Jira client base class."""

from unittest.mock import MagicMock

import pytest
import requests

from jira_connector.errors import RESTError
from jira_connector.integrations.base import JiraClient, search_users_assignable
from jira_connector.integrations.models import (
    CreateMetaInfo,
    DeploymentKind,
    GetQueryOptions,
)


class ConcreteClient(JiraClient):
    """Concrete implementation for testing abstract base class."""

    @property
    def kind(self) -> DeploymentKind:
        return DeploymentKind.SERVER

    def list_projects(self, query="", limit=-1, expand_issue_types=False):
        return []

    def get_issue_types(self, project_id):
        return []

    def get_create_meta_info(self, options=None):
        return CreateMetaInfo()

    def search_users_assignable_to_issue(self, issue_key, query, max_results):
        return []

    def search_users_assignable_in_project(self, project_key, query, max_results):
        return []

    def get_user_groups(self, connection):
        return []


class TestJiraClientInit:
    """Test JiraClient initialization."""

    def test_cannot_instantiate_abstract(self):
        """Test the base class is abstract."""
        with pytest.raises(TypeError):
            JiraClient("https://jira.example.com")

    def test_strips_trailing_slash(self, fake_session):
        """Test base URL normalization."""
        client = ConcreteClient("https://jira.example.com/", session=fake_session)
        assert client.base_url == "https://jira.example.com"

    def test_sets_auth_and_accept_header(self, fake_session):
        """Test the session is prepared for JSON requests."""
        auth = MagicMock()
        ConcreteClient("https://jira.example.com", session=fake_session, auth=auth)
        assert fake_session.auth is auth
        assert fake_session.headers["Accept"] == "application/json"


class TestRestGet:
    """Test the REST transport helper."""

    @pytest.fixture
    def client(self, fake_session) -> ConcreteClient:
        """Create a client over the fake session."""
        return ConcreteClient("https://jira.example.com", session=fake_session)

    def test_returns_json(self, client, fake_session):
        """Test a successful call returns the decoded body."""
        fake_session.route("2/myself", {"name": "jdoe"})
        assert client.rest_get("2/myself") == {"name": "jdoe"}
        assert fake_session.calls == [("2/myself", {})]

    def test_empty_body_returns_none(self, client, fake_session):
        """Test an empty body decodes to None."""
        fake_session.route("2/empty")
        assert client.rest_get("2/empty") is None

    def test_error_status_raises_with_jira_messages(self, client, fake_session):
        """Test Jira error messages are carried into RESTError."""
        fake_session.route(
            "2/project",
            {"errorMessages": ["Project does not exist"], "errors": {"key": "bad"}},
            status=404,
        )
        with pytest.raises(RESTError) as exc_info:
            client.rest_get("2/project")
        assert exc_info.value.status_code == 404
        assert "Project does not exist" in str(exc_info.value)
        assert "key: bad" in str(exc_info.value)

    def test_error_status_without_body(self, client, fake_session):
        """Test the status line is used when Jira sends no JSON."""
        fake_session.route("2/project", status=502, reason="Bad Gateway")
        with pytest.raises(RESTError, match="status 502 Bad Gateway"):
            client.rest_get("2/project")

    def test_non_json_body_raises(self, client, fake_session):
        """Test an HTML page served with 200 becomes RESTError."""
        fake_session.route_text("2/myself", "<html>Log in</html>")
        with pytest.raises(RESTError, match="invalid JSON response") as exc_info:
            client.rest_get("2/myself")
        assert exc_info.value.status_code == 200

    def test_transport_failure_has_no_status(self):
        """Test connection errors become RESTError without a status."""
        session = MagicMock()
        session.headers = {}
        session.get.side_effect = requests.ConnectionError("refused")
        client = ConcreteClient("https://jira.example.com", session=session)

        with pytest.raises(RESTError) as exc_info:
            client.rest_get("2/myself")
        assert exc_info.value.status_code is None


class TestSharedOperations:
    """Test operations implemented on the base class."""

    @pytest.fixture
    def client(self, fake_session) -> ConcreteClient:
        """Create a client over the fake session."""
        return ConcreteClient("https://jira.example.com", session=fake_session)

    def test_get_self(self, client, fake_session):
        """Test get_self parses the profile."""
        fake_session.route("2/myself", {"name": "jdoe", "displayName": "Jane Doe"})
        user = client.get_self()
        assert user.name == "jdoe"
        assert user.display_name == "Jane Doe"

    def test_native_create_meta_passes_options(self, client, fake_session):
        """Test query options are forwarded to createmeta."""
        fake_session.route("2/issue/createmeta", {"expand": "projects", "projects": []})
        meta = client.get_native_create_meta(GetQueryOptions(project_keys=("HEY",)))

        assert meta.expand == "projects"
        assert fake_session.calls == [("2/issue/createmeta", {"projectKeys": "HEY"})]


class TestSearchUsersAssignable:
    """Test the shared assignable-user search."""

    @pytest.fixture
    def client(self, fake_session) -> ConcreteClient:
        """Create a client over the fake session."""
        return ConcreteClient("https://jira.example.com", session=fake_session)

    def test_builds_params(self, client, fake_session):
        """Test scope, query key and max results are sent."""
        fake_session.route("2/user/assignable/search", [{"name": "jdoe"}])
        users = search_users_assignable(client, "issueKey", "HEY-1", "username", "jd", 5)

        assert [u.name for u in users] == ["jdoe"]
        assert fake_session.calls == [
            (
                "2/user/assignable/search",
                {"issueKey": "HEY-1", "username": "jd", "maxResults": 5},
            )
        ]

    def test_omits_non_positive_max_results(self, client, fake_session):
        """Test maxResults is left out when not positive."""
        fake_session.route("2/user/assignable/search", [])
        search_users_assignable(client, "project", "HEY", "query", "", 0)
        assert "maxResults" not in fake_session.calls[0][1]

    def test_non_list_body_returns_empty(self, client, fake_session):
        """Test an unexpected body yields no users."""
        fake_session.route("2/user/assignable/search", {"unexpected": True})
        assert search_users_assignable(client, "project", "HEY", "query", "x", 1) == []
