"""Storage backends for commit objects."""

from collections.abc import Iterator
from typing import Protocol

from . import Commit
from .errors import CommitReferenceError


class CommitStore(Protocol):
    """Storage contract for immutable commit objects, addressed by commit id."""

    def save(self, commit: Commit) -> None:
        """Store a commit. Commits are never overwritten."""

    def load(self, commit_id: str) -> Commit:
        """Load a commit by id.

        :raises CommitReferenceError: If no commit with this id is stored."""

    def __contains__(self, commit_id: object) -> bool: ...

    def __iter__(self) -> Iterator[str]: ...

    def __len__(self) -> int: ...


class MemoryCommitStore:
    """A commit store that keeps every commit in a dictionary."""

    def __init__(self) -> None:
        self._commits: dict[str, Commit] = {}

    def save(self, commit: Commit) -> None:
        self._commits[commit.id] = commit

    def load(self, commit_id: str) -> Commit:
        try:
            return self._commits[commit_id]
        except KeyError as e:
            msg = f'Commit {commit_id} does not exist'
            raise CommitReferenceError(msg) from e

    def __contains__(self, commit_id: object) -> bool:
        return commit_id in self._commits

    def __iter__(self) -> Iterator[str]:
        return iter(self._commits)

    def __len__(self) -> int:
        return len(self._commits)
