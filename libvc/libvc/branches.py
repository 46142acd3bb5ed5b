"""Branch bookkeeping: branch names mapped to head commits."""

import logging
from collections.abc import Iterator

from . import Branch, now
from .errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class BranchManager:
    """Maps branch names to their head commits.

    The default branch is created with the manager and is protected."""

    def __init__(self, default_branch: str) -> None:
        self._branches: dict[str, Branch] = {}
        self.default_branch = default_branch
        self.create(default_branch, None, is_default=True)

    def __contains__(self, name: object) -> bool:
        return name in self._branches

    def __iter__(self) -> Iterator[Branch]:
        return iter(self._branches.values())

    def __len__(self) -> int:
        return len(self._branches)

    @property
    def default(self) -> Branch:
        return self._branches[self.default_branch]

    def names(self) -> list[str]:
        return list(self._branches)

    def exists(self, name: str) -> bool:
        return name in self._branches

    def create(self, name: str, head_commit_id: str | None, is_default: bool = False) -> Branch:
        """Create a new branch.

        :param name: The name of the branch.
        :param head_commit_id: The commit the branch points to, or None for an unborn branch.
        :param is_default: Whether this is the repository's default branch.
        :return: The new branch.
        :raises ValidationError: If the name is empty or already taken."""
        if not name:
            msg = 'Branch name is required'
            raise ValidationError(msg)
        if name in self._branches:
            msg = f'Branch {name} already exists'
            raise ValidationError(msg)

        branch = Branch(name, head_commit_id, is_default=is_default, is_protected=is_default)
        self._branches[name] = branch
        logger.debug('Created branch %s at %s', name, head_commit_id)
        return branch

    def get(self, name: str) -> Branch:
        """Get a branch by name.

        :raises NotFoundError: If the branch does not exist."""
        try:
            return self._branches[name]
        except KeyError as e:
            msg = f'Branch {name} does not exist'
            raise NotFoundError(msg, name) from e

    def set_head(self, name: str, commit_id: str) -> None:
        """Move a branch to a new head commit.

        :raises NotFoundError: If the branch does not exist."""
        branch = self.get(name)
        branch.head_commit_id = commit_id
        branch.last_activity = now()
