"""Jira deployment clients.

This package provides one client per Jira deployment variant (Cloud and
Server) behind a common interface, plus the version probing and metadata
aggregation the Server client needs on Jira 9 and later.
"""

from .aggregator import MetadataAggregator, fold_fields
from .base import JiraClient, search_users_assignable
from .cloud import JiraCloudClient
from .instances import CLIENT_CLASSES, JiraInstance, create_client, instance_path
from .models import (
    ConnectionRecord,
    ConnectionSettings,
    CreateMetaInfo,
    DeploymentKind,
    GetQueryOptions,
    IssueTypeDescriptor,
    JiraUser,
    LongLivedCredential,
    PartialFailure,
    ProjectDescriptor,
    TemporaryCredential,
    UserGroup,
)
from .oauth1 import KeyStore, OAuth1Config, parse_authorization_callback
from .server import JiraServerClient
from .version import COMPATIBILITY_PIVOT, parse_version, probe_version

__all__ = [
    # Clients
    "JiraClient",
    "JiraCloudClient",
    "JiraServerClient",
    "CLIENT_CLASSES",
    "create_client",
    "search_users_assignable",
    # Instances
    "JiraInstance",
    "instance_path",
    # Versions
    "COMPATIBILITY_PIVOT",
    "parse_version",
    "probe_version",
    # Aggregation
    "MetadataAggregator",
    "fold_fields",
    # OAuth1
    "KeyStore",
    "OAuth1Config",
    "parse_authorization_callback",
    # Models
    "ConnectionRecord",
    "ConnectionSettings",
    "CreateMetaInfo",
    "DeploymentKind",
    "GetQueryOptions",
    "IssueTypeDescriptor",
    "JiraUser",
    "LongLivedCredential",
    "PartialFailure",
    "ProjectDescriptor",
    "TemporaryCredential",
    "UserGroup",
]
