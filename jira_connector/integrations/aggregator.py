"""Creation-metadata aggregation for Jira Server 9 and later.

From Jira Server 9.0 the ``issue/createmeta`` endpoint no longer returns
fields per issue type. The same information is rebuilt from the per-project
endpoints:

    createmeta/{projectId}/issuetypes               -> issue types
    createmeta/{projectId}/issuetypes/{issueTypeId} -> fields

and merged into the shape the old endpoint produced.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..connector_logging import get_logger
from ..errors import ConnectorError, RESTError
from .base import CREATE_META_PATH
from .models import (
    CreateMetaInfo,
    IssueTypeDescriptor,
    PartialFailure,
    ProjectDescriptor,
)

if TYPE_CHECKING:
    from .base import JiraClient
    from .models import GetQueryOptions

logger = get_logger()


def _values(data: Any) -> list[dict[str, Any]]:
    if not isinstance(data, dict):
        return []
    return list(data.get("values") or [])


def fold_fields(values: list[dict[str, Any]]) -> dict[str, Any]:
    """Key field entries by ``fieldId``; a later entry replaces an earlier one."""
    fields: dict[str, Any] = {}
    for value in values:
        fields[str(value.get("fieldId"))] = value
    return fields


class MetadataAggregator:
    """Builds CreateMetaInfo from project, issue-type and field listings.

    Sub-calls run one at a time in listing order. The first failing
    per-project or per-issue-type call ends the aggregation: the projects
    completed so far are returned with ``partial_failure`` describing the
    failure, instead of raising.
    """

    def __init__(self, client: JiraClient):
        self.client = client

    def get_issue_type_values(self, project_id: str) -> list[dict[str, Any]]:
        data = self.client.rest_get(f"{CREATE_META_PATH}/{project_id}/issuetypes")
        return _values(data)

    def get_field_values(
        self, project_id: str, issue_type_id: str
    ) -> list[dict[str, Any]]:
        data = self.client.rest_get(
            f"{CREATE_META_PATH}/{project_id}/issuetypes/{issue_type_id}"
        )
        return _values(data)

    def synthesize(self, options: GetQueryOptions | None = None) -> CreateMetaInfo:
        """Aggregate creation metadata for every project.

        ``options`` is accepted for signature parity with the native endpoint;
        the per-project endpoints take no filters, so all projects are listed.

        Raises:
            RESTError: If the project list itself cannot be fetched
        """
        try:
            project_list = self.client.list_projects("", -1, False)
        except RESTError as e:
            raise e.with_context("failed to list projects") from e

        expand = ""
        projects: list[ProjectDescriptor] = []

        for proj in project_list:
            expand = proj.expand
            try:
                type_values = self.get_issue_type_values(proj.id)
            except ConnectorError as e:
                return self._partial(expand, projects, "issue_types", proj.id, e)

            issue_types: list[IssueTypeDescriptor] = []
            for type_value in type_values:
                issue_type = IssueTypeDescriptor.from_dict(type_value)
                try:
                    field_values = self.get_field_values(proj.id, issue_type.id)
                except ConnectorError as e:
                    return self._partial(
                        expand, projects, "fields", proj.id, e, issue_type.id
                    )
                issue_types.append(issue_type.with_fields(fold_fields(field_values)))

            projects.append(
                ProjectDescriptor(
                    id=proj.id,
                    key=proj.key,
                    name=proj.name,
                    expand=proj.expand,
                    self_url=proj.self_url,
                    issue_types=tuple(issue_types),
                )
            )

        logger.debug(f"Aggregated create metadata for {len(projects)} projects")
        return CreateMetaInfo(expand=expand, projects=tuple(projects))

    def _partial(
        self,
        expand: str,
        projects: list[ProjectDescriptor],
        stage: str,
        project_id: str,
        error: Exception,
        issue_type_id: str | None = None,
    ) -> CreateMetaInfo:
        failure = PartialFailure(
            stage=stage,
            project_id=project_id,
            error=error,
            issue_type_id=issue_type_id,
        )
        logger.warning(
            f"Create metadata is partial ({len(projects)} projects): {failure.describe()}"
        )
        return CreateMetaInfo(
            expand=expand, projects=tuple(projects), partial_failure=failure
        )
