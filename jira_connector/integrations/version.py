"""Deployment version probing."""

from __future__ import annotations

from typing import TYPE_CHECKING

import semver

from ..connector_logging import get_logger
from ..errors import RESTError, VersionUnavailable, VersionUnparseable

if TYPE_CHECKING:
    from .base import JiraClient

logger = get_logger()

SERVER_INFO_PATH = "2/serverInfo"

# First Jira Server release whose issue/createmeta no longer expands fields
COMPATIBILITY_PIVOT = semver.Version.parse("9.0.0")


def parse_version(raw: str) -> semver.Version:
    """Parse a version string strictly as semver.

    Raises:
        VersionUnparseable: If ``raw`` is not MAJOR.MINOR.PATCH[-pre][+build]
    """
    try:
        return semver.Version.parse(raw)
    except (ValueError, TypeError) as e:
        raise VersionUnparseable(f"error while parsing version {raw!r}: {e}") from e


def probe_version(client: JiraClient) -> semver.Version:
    """Ask the deployment for its version.

    Raises:
        VersionUnavailable: If serverInfo cannot be read
        VersionUnparseable: If the reported version is not valid semver
    """
    try:
        info = client.rest_get(SERVER_INFO_PATH)
    except RESTError as e:
        raise VersionUnavailable(f"failed to fetch Jira server version: {e}") from e

    raw = info.get("version") if isinstance(info, dict) else None
    if not raw:
        raise VersionUnavailable("failed to fetch Jira server version: no version reported")

    version = parse_version(str(raw))
    logger.debug(f"Jira at {client.base_url} reports version {version}")
    return version
