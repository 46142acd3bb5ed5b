"""libvc: an in-memory version control engine for named text files."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .merge import MergeConflict


def now() -> int:
    """Return the current unix timestamp in seconds."""
    return int(datetime.now().timestamp())


@dataclass(frozen=True)
class Author:
    """The author of a commit or merge request. Opaque to the engine."""

    name: str
    email: str
    id: str


class ChangeType(StrEnum):
    ADDED = 'added'
    MODIFIED = 'modified'
    DELETED = 'deleted'


@dataclass(frozen=True)
class Change:
    """A single file change recorded in a commit.

    ``content`` is set for added and modified files, ``previous_content`` for
    modified and deleted files."""

    type: ChangeType
    path: str
    content: str | None = None
    previous_content: str | None = None


@dataclass(frozen=True)
class Commit:
    """An immutable commit in the commit graph."""

    id: str
    parent_ids: tuple[str, ...]
    message: str
    author: Author
    timestamp: int
    changes: tuple[Change, ...]
    branch: str | None = None

    @property
    def parent(self) -> str | None:
        """The first parent of the commit, or None for a root commit."""
        return self.parent_ids[0] if self.parent_ids else None

    @property
    def is_root(self) -> bool:
        return not self.parent_ids

    @property
    def is_merge(self) -> bool:
        return len(self.parent_ids) > 1


@dataclass
class Branch:
    """A named, movable pointer to a commit."""

    name: str
    head_commit_id: str | None
    is_default: bool = False
    is_protected: bool = False
    last_activity: int = field(default_factory=now)


class MergeRequestStatus(StrEnum):
    OPEN = 'open'
    MERGED = 'merged'
    CLOSED = 'closed'
    DRAFT = 'draft'


@dataclass
class MergeRequest:
    """A proposal to merge one branch into another.

    ``reviewers`` and ``approvals`` hold author ids. ``conflicts`` holds the
    conflicts of the last failed merge attempted through the request."""

    id: str
    title: str
    description: str
    source_branch: str
    target_branch: str
    author: Author
    status: MergeRequestStatus = MergeRequestStatus.OPEN
    commits: list[str] = field(default_factory=list)
    created_at: int = field(default_factory=now)
    updated_at: int = field(default_factory=now)
    merge_commit_id: str | None = None
    reviewers: list[str] = field(default_factory=list)
    approvals: list[str] = field(default_factory=list)
    conflicts: list['MergeConflict'] = field(default_factory=list)


@dataclass(frozen=True)
class RepositoryInfo:
    """A read-only view of the repository's identity and references."""

    id: str
    name: str
    description: str
    default_branch: str
    current_branch: str
    head: str | None
    branches: dict[str, Branch]
    merge_requests: dict[str, MergeRequest]


__all__ = [
    'Author',
    'Branch',
    'Change',
    'ChangeType',
    'Commit',
    'MergeRequest',
    'MergeRequestStatus',
    'RepositoryInfo',
    'now',
]
