"""Jira Cloud client.

This module implements the capability interface against the Jira Cloud
REST API, which identifies users by account id and pages project listings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..errors import ConnectorError, translate_create_meta_error
from .base import (
    JiraClient,
    search_users_assignable_in_project,
    search_users_assignable_to_issue,
)
from .models import (
    CreateMetaInfo,
    DeploymentKind,
    IssueTypeDescriptor,
    JiraUser,
    ProjectDescriptor,
    UserGroup,
)

if TYPE_CHECKING:
    from .models import ConnectionRecord, GetQueryOptions


class JiraCloudClient(JiraClient):
    """Client for multi-tenant Jira Cloud sites."""

    USER_QUERY_KEY = "query"
    PROJECT_PAGE_SIZE = 50

    @property
    def kind(self) -> DeploymentKind:
        """Return the deployment variant."""
        return DeploymentKind.CLOUD

    def list_projects(
        self, query: str = "", limit: int = -1, expand_issue_types: bool = False
    ) -> list[ProjectDescriptor]:
        """List projects via the paginated ``project/search`` endpoint."""
        params: dict[str, Any] = {"startAt": 0, "maxResults": self.PROJECT_PAGE_SIZE}
        if query:
            params["query"] = query
        if expand_issue_types:
            params["expand"] = "issueTypes"
        if 0 < limit < self.PROJECT_PAGE_SIZE:
            params["maxResults"] = limit

        projects: list[ProjectDescriptor] = []
        while True:
            page = self.rest_get("3/project/search", params)
            if not isinstance(page, dict):
                break
            values = page.get("values") or []
            projects.extend(ProjectDescriptor.from_dict(p) for p in values)

            if page.get("isLast", True) or not values:
                break
            if limit > 0 and len(projects) >= limit:
                break
            params = {**params, "startAt": params["startAt"] + len(values)}

        if limit > 0:
            projects = projects[:limit]
        return projects

    def get_issue_types(self, project_id: str) -> list[IssueTypeDescriptor]:
        data = self.rest_get("3/issuetype/project", {"projectId": project_id})
        if not isinstance(data, list):
            return []
        return [IssueTypeDescriptor.from_dict(t) for t in data]

    def get_create_meta_info(
        self, options: GetQueryOptions | None = None
    ) -> CreateMetaInfo:
        """Return creation metadata from the native endpoint.

        Raises:
            NotAuthorizedToCreateIssues: On HTTP 401/403
            RESTError: On other REST failures
        """
        try:
            return self.get_native_create_meta(options)
        except ConnectorError as e:
            raise translate_create_meta_error(e, "failed to fetch create metadata") from e

    def search_users_assignable_to_issue(
        self, issue_key: str, query: str, max_results: int
    ) -> list[JiraUser]:
        return search_users_assignable_to_issue(
            self, issue_key, self.USER_QUERY_KEY, query, max_results
        )

    def search_users_assignable_in_project(
        self, project_key: str, query: str, max_results: int
    ) -> list[JiraUser]:
        return search_users_assignable_in_project(
            self, project_key, self.USER_QUERY_KEY, query, max_results
        )

    def get_user_groups(self, connection: ConnectionRecord) -> list[UserGroup]:
        """Return the groups of the connected account."""
        data = self.rest_get(
            "3/user/groups", {"accountId": connection.user.account_id}
        )
        if not isinstance(data, list):
            return []
        return [UserGroup.from_dict(g) for g in data]
