"""Exceptions raised by libvc."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .merge import MergeConflict


class RepositoryError(Exception):
    """Base class for all repository errors."""


class ValidationError(RepositoryError):
    """Raised when the caller violates an operation's preconditions."""


class NotFoundError(RepositoryError):
    """Raised when a branch or merge request does not exist."""

    def __init__(self, msg: str, name: str | None = None) -> None:
        super().__init__(msg)
        self.name = name


class StateError(RepositoryError):
    """Raised when the repository's state blocks an operation."""


class CommitReferenceError(RepositoryError):
    """Raised when a commit id does not resolve to a commit in the graph."""


class ConflictError(RepositoryError):
    """Raised when a merge cannot be completed automatically."""

    def __init__(self, conflicts: list['MergeConflict']) -> None:
        self.conflicts = conflicts
        msg = f'Merge conflicts detected in {len(conflicts)} files: {", ".join(self.paths)}'
        super().__init__(msg)

    @property
    def paths(self) -> list[str]:
        return [conflict.path for conflict in self.conflicts]
