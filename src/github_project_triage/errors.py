"""Error taxonomy for project triage runs.

Nothing here is retried: every error aborts the run and surfaces to the caller.
"""

from __future__ import annotations


class TriageError(Exception):
    """Base exception for all triage failures."""


class NotFoundError(TriageError):
    """A human-readable name could not be resolved to an ID."""

    kind = "resource"

    def __init__(self, name: str) -> None:
        super().__init__(f"{self.kind} {name!r} not found")
        self.name = name


class ProjectNotFoundError(NotFoundError):
    """No project with the requested title exists in the organization."""

    kind = "project"


class ColumnNotFoundError(NotFoundError):
    """No status option with the requested name exists in the project."""

    kind = "column"


class GitHubTransportError(TriageError):
    """A REST or GraphQL call failed (network, auth, server or payload error)."""

    def __init__(
        self,
        message: str,
        *,
        cause: object = None,
        url: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.url = url
        self.status = status


class OperationCancelled(TriageError):
    """The caller's cancellation signal was set while work was in flight."""


class AssignmentError(TriageError):
    """Filing an item into a project column failed."""
