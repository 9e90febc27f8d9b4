"""Jira connector for chat-platform plugins.

Version-adaptive access to Jira Cloud and Jira Server creation metadata, and
the OAuth1a handshake that connects a chat user to their Jira account.
"""

__version__ = "1.0.0"
__description__ = "Jira Cloud/Server client and OAuth1a account linking for chat plugins"

from .config import ConnectorConfig, load_config
from .connector_logging import get_logger, setup_logging
from .handshake import DelegatedAuthHandshake, HandshakeOutcome, HandshakeState
from .routes import OAuth1Routes, build_routes, format_error_message

__all__ = [
    "ConnectorConfig",
    "load_config",
    "get_logger",
    "setup_logging",
    "DelegatedAuthHandshake",
    "HandshakeOutcome",
    "HandshakeState",
    "OAuth1Routes",
    "build_routes",
    "format_error_message",
]
