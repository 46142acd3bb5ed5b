"""The working tree and the staging area."""

import logging
from collections.abc import Iterable, Mapping

logger = logging.getLogger(__name__)


class WorkingTree:
    """The current file set plus the staging area of the next commit.

    A staged path maps to its staged content, or to None when the path is
    staged for deletion. Paths deleted with :meth:`remove` are remembered until
    the tree is replaced, so that their deletion can be staged."""

    def __init__(self) -> None:
        self._files: dict[str, str] = {}
        self._staging: dict[str, str | None] = {}
        self._removed: set[str] = set()

    def files(self) -> dict[str, str]:
        """Return a copy of the working tree's files."""
        return dict(self._files)

    def staged(self) -> dict[str, str | None]:
        """Return a copy of the staging area."""
        return dict(self._staging)

    @property
    def has_staged_changes(self) -> bool:
        return bool(self._staging)

    def read(self, path: str) -> str | None:
        return self._files.get(path)

    def write(self, path: str, content: str) -> None:
        """Create or overwrite a file in the working tree."""
        if not path:
            msg = 'Path is required'
            raise ValueError(msg)
        self._files[path] = content
        self._removed.discard(path)

    def remove(self, path: str) -> bool:
        """Delete a file from the working tree.

        :return: True if the file existed."""
        if path not in self._files:
            return False
        del self._files[path]
        self._removed.add(path)
        return True

    def replace(self, files: Mapping[str, str]) -> None:
        """Replace the whole working tree, forgetting removed paths."""
        self._files = dict(files)
        self._removed.clear()

    def stage(self, paths: Iterable[str]) -> list[str]:
        """Copy the current content of the given paths into the staging area.

        Removed paths are staged for deletion. Unknown paths are skipped.

        :param paths: The paths to stage.
        :return: The paths that were actually staged."""
        staged = []
        for path in paths:
            if path in self._files:
                self._staging[path] = self._files[path]
            elif path in self._removed:
                self._staging[path] = None
            else:
                logger.debug('Skipping unknown path %s', path)
                continue
            staged.append(path)
        return staged

    def unstage(self, paths: Iterable[str]) -> list[str]:
        """Remove the given paths from the staging area.

        :return: The paths that were staged before the call."""
        unstaged = []
        for path in paths:
            if path in self._staging:
                del self._staging[path]
                unstaged.append(path)
        return unstaged

    def clear_staging(self) -> None:
        self._staging.clear()
