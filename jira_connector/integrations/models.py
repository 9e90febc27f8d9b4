"""Data models for the Jira integration.

This module defines the normalized shapes returned by both Jira deployment
variants (creation metadata, projects, users) and the credential types used
by the OAuth1a handshake.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import translate_create_meta_error


class DeploymentKind(Enum):
    """Jira deployment variants."""

    CLOUD = "cloud"
    SERVER = "server"


@dataclass(frozen=True)
class IssueTypeDescriptor:
    """An issue type and the fields available when creating one."""

    id: str
    name: str
    description: str = ""
    subtask: bool = False
    fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IssueTypeDescriptor:
        """Parse an issue type as returned by Jira."""
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            description=data.get("description", "") or "",
            subtask=bool(data.get("subtask", False)),
            fields=dict(data.get("fields") or {}),
        )

    def with_fields(self, fields: dict[str, Any]) -> IssueTypeDescriptor:
        """Return a copy carrying ``fields``."""
        return IssueTypeDescriptor(
            id=self.id,
            name=self.name,
            description=self.description,
            subtask=self.subtask,
            fields=fields,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "subtask": self.subtask,
            "fields": dict(self.fields),
        }


@dataclass(frozen=True)
class ProjectDescriptor:
    """A project together with its creatable issue types."""

    id: str
    key: str
    name: str
    expand: str = ""
    self_url: str = ""
    issue_types: tuple[IssueTypeDescriptor, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectDescriptor:
        """Parse a project from the project list or createmeta response.

        The project list spells issue types ``issueTypes`` while createmeta
        uses ``issuetypes``; both are accepted.
        """
        raw_types = data.get("issuetypes")
        if raw_types is None:
            raw_types = data.get("issueTypes") or []
        return cls(
            id=str(data.get("id", "")),
            key=data.get("key", ""),
            name=data.get("name", ""),
            expand=data.get("expand", "") or "",
            self_url=data.get("self", "") or "",
            issue_types=tuple(IssueTypeDescriptor.from_dict(t) for t in raw_types),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary in createmeta shape."""
        return {
            "id": self.id,
            "key": self.key,
            "name": self.name,
            "expand": self.expand,
            "self": self.self_url,
            "issuetypes": [t.to_dict() for t in self.issue_types],
        }


@dataclass(frozen=True)
class PartialFailure:
    """The sub-call that stopped an aggregation early."""

    stage: str  # "issue_types" or "fields"
    project_id: str
    error: Exception
    issue_type_id: str | None = None

    def describe(self) -> str:
        """Human-readable summary of the failed sub-call."""
        target = f"project {self.project_id}"
        if self.issue_type_id:
            target += f" issue type {self.issue_type_id}"
        return f"failed to fetch {self.stage.replace('_', ' ')} for {target}: {self.error}"


@dataclass(frozen=True)
class CreateMetaInfo:
    """Creation metadata, identical in shape for native and aggregated results.

    ``partial_failure`` is set when aggregation stopped before covering every
    project; ``projects`` then holds what was collected up to that point.
    """

    expand: str = ""
    projects: tuple[ProjectDescriptor, ...] = field(default_factory=tuple)
    partial_failure: PartialFailure | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CreateMetaInfo:
        """Parse a native ``issue/createmeta`` response."""
        if not isinstance(data, dict):
            data = {}
        return cls(
            expand=data.get("expand", "") or "",
            projects=tuple(
                ProjectDescriptor.from_dict(p) for p in data.get("projects") or []
            ),
        )

    @property
    def is_partial(self) -> bool:
        """True when some projects could not be aggregated."""
        return self.partial_failure is not None

    def raise_for_partial(self) -> None:
        """Raise the captured aggregation error, if any."""
        if self.partial_failure is not None:
            failure = self.partial_failure
            context = (
                f"failed to fetch {failure.stage.replace('_', ' ')} "
                f"for project {failure.project_id}"
            )
            raise translate_create_meta_error(failure.error, context) from failure.error

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary in createmeta shape."""
        return {
            "expand": self.expand,
            "projects": [p.to_dict() for p in self.projects],
        }


@dataclass(frozen=True)
class GetQueryOptions:
    """Query options for the native createmeta endpoint."""

    project_keys: tuple[str, ...] = ()
    project_ids: tuple[str, ...] = ()
    issue_type_names: tuple[str, ...] = ()
    issue_type_ids: tuple[str, ...] = ()
    expand: str = ""

    def to_params(self) -> dict[str, str]:
        """Convert to Jira query parameters, omitting empty options."""
        params: dict[str, str] = {}
        if self.project_keys:
            params["projectKeys"] = ",".join(self.project_keys)
        if self.project_ids:
            params["projectIds"] = ",".join(self.project_ids)
        if self.issue_type_names:
            params["issuetypeNames"] = ",".join(self.issue_type_names)
        if self.issue_type_ids:
            params["issuetypeIds"] = ",".join(self.issue_type_ids)
        if self.expand:
            params["expand"] = self.expand
        return params


@dataclass(frozen=True)
class JiraUser:
    """A Jira account."""

    account_id: str = ""  # cloud only
    name: str = ""  # server username
    key: str = ""
    display_name: str = ""
    email: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JiraUser:
        """Parse a user from ``myself`` or user search responses."""
        return cls(
            account_id=data.get("accountId", "") or "",
            name=data.get("name", "") or "",
            key=data.get("key", "") or "",
            display_name=data.get("displayName", "") or "",
            email=data.get("emailAddress", "") or "",
        )

    @property
    def display_label(self) -> str:
        """Display name followed by the login, e.g. ``"Jane Doe (jdoe)"``."""
        login = self.name or self.account_id
        if not login:
            return self.display_name
        return f"{self.display_name} ({login})"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "account_id": self.account_id,
            "name": self.name,
            "key": self.key,
            "display_name": self.display_name,
            "email": self.email,
        }


@dataclass(frozen=True)
class UserGroup:
    """A Jira group membership."""

    name: str
    group_id: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserGroup:
        return cls(name=data.get("name", ""), group_id=data.get("groupId", "") or "")


@dataclass(frozen=True)
class TemporaryCredential:
    """OAuth1 request token pair, valid for a single callback."""

    token: str
    secret: str


@dataclass(frozen=True)
class LongLivedCredential:
    """OAuth1 access token pair bound to one Jira account and one local user."""

    access_token: str
    access_secret: str


@dataclass(frozen=True)
class ConnectionSettings:
    """Per-user preferences stored with a connection."""

    notifications: bool = True


@dataclass(frozen=True)
class ConnectionRecord:
    """What gets persisted when a local user connects their Jira account."""

    credential: LongLivedCredential
    user: JiraUser
    settings: ConnectionSettings = field(default_factory=ConnectionSettings)
    plugin_version: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "oauth1_access_token": self.credential.access_token,
            "oauth1_access_secret": self.credential.access_secret,
            "user": self.user.to_dict(),
            "settings": {"notifications": self.settings.notifications},
            "plugin_version": self.plugin_version,
        }
