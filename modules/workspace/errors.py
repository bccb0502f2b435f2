"""Workspace error taxonomy.

Hard failures only. Invalid form input is not an error here: operations
return a ``TransitionResult`` with ``applied=False`` instead.
"""


class WorkspaceError(Exception):
    """Base class for workspace failures."""


class Unauthenticated(WorkspaceError):
    """No resolvable caller identity."""


class NotFound(WorkspaceError):
    """Project, or an entity scoped to it, does not exist."""


class Forbidden(WorkspaceError):
    """Caller lacks the role required on this project."""


class ProjectNotClosable(WorkspaceError):
    """Close requested before every milestone is approved."""


class ImmutableRecordError(WorkspaceError):
    """Attempted update or delete of an append-only row."""
