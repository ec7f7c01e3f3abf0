"""
Error types raised by central_sync.

GitPython exceptions are translated into these at the git_ops and scratch
boundaries so callers only need to handle SyncError.
"""


class SyncError(Exception):
    """Base class for all central_sync errors."""


class ModulePathConstraintViolation(SyncError):
    """A module path does not have exactly two segments."""


class TrackingNotFound(SyncError):
    """A remote-tracking ref does not exist after fetching."""


class RevisionParseError(SyncError):
    """A revision string could not be resolved."""


class NotACommit(SyncError):
    """A revision resolved to an object that is not a commit."""


class SubtreeLookupFailure(SyncError):
    """A required subtree is missing from a tree."""


class ObjectWriteError(SyncError):
    """Writing an object to the store failed."""


class AncestryViolation(SyncError):
    """A module revision does not descend from the tracked module branch."""


class RemoteCreationError(SyncError):
    """The host could not create a remote project."""


class NetworkError(SyncError):
    """A fetch or other transport operation failed."""


class PushError(NetworkError):
    """A push to a remote failed."""
