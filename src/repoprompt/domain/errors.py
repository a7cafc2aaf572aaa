from __future__ import annotations

"""
Failure Taxonomy.

Exceptions raised by the I/O collaborators and caught at the session and
assembler boundaries, plus the per-file failure record collected during a
build. Nothing in the selection engine raises these.
"""

from dataclasses import dataclass


class RepoPromptError(Exception):
    """Base class for every recoverable failure of the application."""


class PathRejected(RepoPromptError):
    """The requested path lies outside the permitted root or is otherwise invalid."""


class NotFoundOrPermission(RepoPromptError):
    """The path exists in the request but cannot be found or read."""


class NetworkFailure(RepoPromptError):
    """A remote collaborator could not be reached or answered garbage."""


class MalformedPersistedState(RepoPromptError):
    """A persisted value could not be decoded into the expected shape."""


@dataclass(frozen=True)
class PartialContentFailure:
    """
    A single file that could not be resolved during a build.

    Attributes:
        path: Identifier of the file inside its directory.
        error: Human readable cause.
    """
    path: str
    error: str
