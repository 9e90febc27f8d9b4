"""Jira Server (self-hosted) client.

This module implements the capability interface against the Jira Server
REST API v2, routing creation-metadata requests by the deployment version.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..connector_logging import get_logger
from ..errors import ConnectorError, translate_create_meta_error
from .aggregator import MetadataAggregator
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
from .version import COMPATIBILITY_PIVOT, probe_version

if TYPE_CHECKING:
    from .models import ConnectionRecord, GetQueryOptions

logger = get_logger()

EXPAND_ISSUE_TYPES = "issueTypes"


class JiraServerClient(JiraClient):
    """Client for self-hosted Jira Server / Data Center."""

    # Server identifies users by username in assignable-user searches
    USER_QUERY_KEY = "username"

    def __init__(self, *args: Any, strict_create_meta: bool = False, **kwargs: Any):
        """Initialize the server client.

        Args:
            strict_create_meta: Raise when aggregated metadata is incomplete
                instead of returning the partial result
            *args, **kwargs: Passed to JiraClient
        """
        super().__init__(*args, **kwargs)
        self.strict_create_meta = strict_create_meta

    @property
    def kind(self) -> DeploymentKind:
        """Return the deployment variant."""
        return DeploymentKind.SERVER

    def list_projects(
        self, query: str = "", limit: int = -1, expand_issue_types: bool = False
    ) -> list[ProjectDescriptor]:
        """List projects via ``project``; ``query`` is not supported by Server."""
        params = {"expand": EXPAND_ISSUE_TYPES} if expand_issue_types else None
        data = self.rest_get("2/project", params)

        if not isinstance(data, list):
            return []
        projects = [ProjectDescriptor.from_dict(p) for p in data]
        if limit > 0:
            projects = projects[:limit]
        return projects

    def get_issue_types(self, project_id: str) -> list[IssueTypeDescriptor]:
        data = self.rest_get(f"2/project/{project_id}", {"expand": EXPAND_ISSUE_TYPES})
        if not isinstance(data, dict):
            return []
        return [IssueTypeDescriptor.from_dict(t) for t in data.get("issueTypes") or []]

    def get_create_meta_info(
        self, options: GetQueryOptions | None = None
    ) -> CreateMetaInfo:
        """Return creation metadata, whichever way this Jira version supports.

        Versions below ``COMPATIBILITY_PIVOT`` answer ``issue/createmeta``
        with fields expanded, so its result is returned unchanged. Newer
        versions go through MetadataAggregator.

        Raises:
            VersionUnavailable, VersionUnparseable: If the version lookup fails
            NotAuthorizedToCreateIssues: On HTTP 401/403
            RESTError: On other REST failures, with the failing call named
        """
        current = probe_version(self)

        if current < COMPATIBILITY_PIVOT:
            logger.info(f"Jira {current} < {COMPATIBILITY_PIVOT}: using native createmeta")
            try:
                return self.get_native_create_meta(options)
            except ConnectorError as e:
                raise translate_create_meta_error(
                    e, "failed to fetch create metadata"
                ) from e

        logger.info(f"Jira {current} >= {COMPATIBILITY_PIVOT}: aggregating createmeta")
        try:
            meta = MetadataAggregator(self).synthesize(options)
        except ConnectorError as e:
            raise translate_create_meta_error(e) from e

        if self.strict_create_meta:
            meta.raise_for_partial()
        return meta

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
        """Return the groups from ``myself?expand=groups``."""
        data = self.rest_get("2/myself", {"expand": "groups"})
        groups = data.get("groups") if isinstance(data, dict) else None
        if not isinstance(groups, dict):
            return []
        items = groups.get("items") or []
        return [UserGroup.from_dict(g) for g in items]
