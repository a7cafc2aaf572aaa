from __future__ import annotations

"""
Network Communication Infrastructure.

Facade over the HTTP collaborators that mirror the local directory lister,
file readers and dependency provider against a remote workspace server.
"""

from repoprompt.infra.network.common import DEFAULT_TIMEOUT, USER_AGENT, request_json
from repoprompt.infra.network.workspace_client import HttpWorkspaceClient

__all__ = [
    "HttpWorkspaceClient",
    "request_json",
    "DEFAULT_TIMEOUT",
    "USER_AGENT",
]
