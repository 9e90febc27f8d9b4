"""Abstract base class for Jira deployment clients.

This module provides the capability interface that the cloud and server
clients implement, the shared REST transport helper, and the assignable-user
search routine both variants delegate to.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import requests

from ..connector_logging import get_logger
from ..errors import RESTError
from .models import (
    CreateMetaInfo,
    GetQueryOptions,
    JiraUser,
)

if TYPE_CHECKING:
    from requests.auth import AuthBase

    from .models import (
        ConnectionRecord,
        DeploymentKind,
        IssueTypeDescriptor,
        ProjectDescriptor,
        UserGroup,
    )

logger = get_logger()

CREATE_META_PATH = "2/issue/createmeta"


class JiraClient(ABC):
    """Uniform operations over a Jira deployment.

    Subclasses implement the variant-specific REST shapes; every request goes
    through ``rest_get`` so failures surface as ``RESTError`` with the remote
    status attached.
    """

    API_PREFIX = "rest/api"

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        auth: AuthBase | None = None,
        timeout: float = 30.0,
    ):
        """Initialize the client.

        Args:
            base_url: Jira base URL, e.g. ``https://jira.example.com``
            session: Session to issue requests with (a new one by default)
            auth: Request signer, typically an OAuth1 auth for the user
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        if auth is not None:
            self._session.auth = auth
        self._session.headers.update({"Accept": "application/json"})

    @property
    @abstractmethod
    def kind(self) -> DeploymentKind:
        """Return the deployment variant this client speaks to."""

    def rest_get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET a Jira REST resource.

        Args:
            path: Path below ``rest/api``, including the API version (``2/myself``)
            params: Query parameters

        Returns:
            Decoded JSON body, or None for an empty body

        Raises:
            RESTError: If the request fails or Jira answers with an error status
        """
        url = f"{self.base_url}/{self.API_PREFIX}/{path.lstrip('/')}"
        logger.debug(f"GET {url} params={params}")
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise RESTError(f"request to {path} failed: {e}") from e

        if response.status_code >= 400:
            raise RESTError.from_response(response, f"GET {path}")
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            # Login and proxy pages come back as 200 with an HTML body
            raise RESTError(
                f"GET {path}: invalid JSON response: {e}", response.status_code
            ) from e

    def get_self(self) -> JiraUser:
        """Return the profile of the account the client is authenticated as."""
        data = self.rest_get("2/myself")
        return JiraUser.from_dict(data if isinstance(data, dict) else {})

    def get_native_create_meta(
        self, options: GetQueryOptions | None = None
    ) -> CreateMetaInfo:
        """Call Jira's own ``issue/createmeta`` endpoint."""
        params = (options or GetQueryOptions()).to_params()
        data = self.rest_get(CREATE_META_PATH, params or None)
        return CreateMetaInfo.from_dict(data)

    @abstractmethod
    def list_projects(
        self, query: str = "", limit: int = -1, expand_issue_types: bool = False
    ) -> list[ProjectDescriptor]:
        """List projects visible to the user.

        Args:
            query: Text filter, where the variant supports one
            limit: Keep only the first ``limit`` projects when positive
            expand_issue_types: Include each project's issue types

        Returns:
            Projects in the order Jira returned them; empty when there are none
        """

    @abstractmethod
    def get_issue_types(self, project_id: str) -> list[IssueTypeDescriptor]:
        """Return the issue types of a project."""

    @abstractmethod
    def get_create_meta_info(
        self, options: GetQueryOptions | None = None
    ) -> CreateMetaInfo:
        """Return the metadata needed to build and validate an issue-creation form."""

    @abstractmethod
    def search_users_assignable_to_issue(
        self, issue_key: str, query: str, max_results: int
    ) -> list[JiraUser]:
        """Find users that can be assigned to an issue."""

    @abstractmethod
    def search_users_assignable_in_project(
        self, project_key: str, query: str, max_results: int
    ) -> list[JiraUser]:
        """Find users that can be assigned to some issue in a project."""

    @abstractmethod
    def get_user_groups(self, connection: ConnectionRecord) -> list[UserGroup]:
        """Return the groups the connected user belongs to."""


def search_users_assignable(
    client: JiraClient,
    scope_param: str,
    scope_value: str,
    query_key: str,
    query: str,
    max_results: int,
) -> list[JiraUser]:
    """Search assignable users, shared by both deployment variants.

    Args:
        client: Client to issue the request with
        scope_param: ``issueKey`` or ``project``
        scope_value: Issue key or project key
        query_key: Name of the text-query parameter (``username`` on server,
            ``query`` on cloud)
        query: Text to match
        max_results: Cap on returned users; ignored when not positive

    Returns:
        Matching users
    """
    params: dict[str, Any] = {scope_param: scope_value, query_key: query}
    if max_results > 0:
        params["maxResults"] = max_results

    data = client.rest_get("2/user/assignable/search", params)
    if not isinstance(data, list):
        return []
    return [JiraUser.from_dict(u) for u in data]


def search_users_assignable_to_issue(
    client: JiraClient, issue_key: str, query_key: str, query: str, max_results: int
) -> list[JiraUser]:
    """Assignable-user search scoped to one issue."""
    return search_users_assignable(
        client, "issueKey", issue_key, query_key, query, max_results
    )


def search_users_assignable_in_project(
    client: JiraClient, project_key: str, query_key: str, query: str, max_results: int
) -> list[JiraUser]:
    """Assignable-user search scoped to a project."""
    return search_users_assignable(
        client, "project", project_key, query_key, query, max_results
    )
