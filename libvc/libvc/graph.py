"""The commit graph: an append-only DAG of commits addressed by id."""

import logging
from collections import OrderedDict, deque
from collections.abc import Generator

from . import Commit
from .constants import SNAPSHOT_CACHE_SIZE
from .errors import CommitReferenceError, RepositoryError
from .plumbing import apply_changes
from .store import CommitStore, MemoryCommitStore

logger = logging.getLogger(__name__)


class CommitGraph:
    """An append-only graph of immutable commits.

    Parent links are stored as commit ids, so every walk goes through the
    backing store. Each commit's changes are relative to its first parent,
    which makes the file set at a commit the result of replaying its
    first-parent chain from the root.

    Materialized file sets are kept in a least-recently-used cache of at
    most ``cache_size`` entries, so replays start from the nearest cached
    commit instead of the root."""

    def __init__(self, store: CommitStore | None = None, cache_size: int = SNAPSHOT_CACHE_SIZE) -> None:
        """Initialize the graph.

        :param store: The backing commit store. Defaults to an in-memory store.
        :param cache_size: The maximum number of materialized file sets to keep.
        :raises ValueError: If the cache size is not positive."""
        if cache_size < 1:
            msg = f'Snapshot cache size must be positive, got {cache_size}'
            raise ValueError(msg)
        self.store = store if store is not None else MemoryCommitStore()
        self.cache_size = cache_size
        self._snapshots: OrderedDict[str, dict[str, str]] = OrderedDict()

    def __contains__(self, commit_id: object) -> bool:
        return commit_id in self.store

    def __len__(self) -> int:
        return len(self.store)

    def add(self, commit: Commit) -> None:
        """Append a commit to the graph.

        :param commit: The commit to add. All of its parents must already be in the graph.
        :raises RepositoryError: If the commit id is taken or a parent is missing."""
        if commit.id in self.store:
            msg = f'Commit {commit.id} already exists'
            raise RepositoryError(msg)
        for parent_id in commit.parent_ids:
            if parent_id not in self.store:
                msg = f'Parent commit {parent_id} of {commit.id} does not exist'
                raise RepositoryError(msg)

        self.store.save(commit)

    def get(self, commit_id: str) -> Commit:
        """Load a commit by id.

        :raises CommitReferenceError: If the commit does not exist."""
        if commit_id not in self.store:
            msg = f'Commit {commit_id} does not exist'
            raise CommitReferenceError(msg)
        return self.store.load(commit_id)

    def snapshot(self, commit_id: str | None) -> dict[str, str]:
        """Materialize the file set at a commit.

        :param commit_id: The commit to materialize. None yields an empty file set.
        :return: A new mapping from path to content.
        :raises CommitReferenceError: If the commit does not exist."""
        if commit_id is None:
            return {}

        pending: list[Commit] = []
        current_id: str | None = commit_id
        while current_id is not None and current_id not in self._snapshots:
            commit = self.get(current_id)
            pending.append(commit)
            current_id = commit.parent

        files: dict[str, str] = {}
        if current_id is not None:
            self._snapshots.move_to_end(current_id)
            files = dict(self._snapshots[current_id])
        if pending:
            logger.debug('Replaying %d commits to materialize %s', len(pending), commit_id)
            for commit in reversed(pending):
                apply_changes(files, commit.changes)
            self._remember(commit_id, files)

        return dict(files)

    def _remember(self, commit_id: str, files: dict[str, str]) -> None:
        self._snapshots[commit_id] = dict(files)
        while len(self._snapshots) > self.cache_size:
            self._snapshots.popitem(last=False)

    def log(self, tip: str | None, limit: int | None = None) -> Generator[Commit, None, None]:
        """Walk the first-parent chain from ``tip``, newest first.

        :param tip: The commit to start from. None yields nothing.
        :param limit: The maximum number of commits to yield, or None for all of them.
        :raises CommitReferenceError: If a commit on the chain does not exist."""
        count = 0
        current_id = tip
        while current_id is not None and (limit is None or count < limit):
            commit = self.get(current_id)
            yield commit
            count += 1
            current_id = commit.parent

    def ancestors(self, commit_id: str) -> set[str]:
        """Return every commit reachable from ``commit_id`` through any parent, itself included."""
        seen = {commit_id}
        queue = deque([commit_id])
        while queue:
            for parent_id in self.get(queue.popleft()).parent_ids:
                if parent_id not in seen:
                    seen.add(parent_id)
                    queue.append(parent_id)
        return seen

    def is_ancestor(self, ancestor_id: str, descendant_id: str) -> bool:
        """Check whether ``ancestor_id`` is reachable from ``descendant_id``."""
        return ancestor_id in self.ancestors(descendant_id)

    def merge_base(self, commit_id1: str, commit_id2: str) -> str | None:
        """Find the lowest common ancestor of two commits.

        The second commit's history is searched breadth-first, parents in
        order, so the first common ancestor found is the nearest one and the
        result is deterministic.

        :return: The merge base, or None if the commits share no history.
        :raises CommitReferenceError: If either commit does not exist."""
        ancestors = self.ancestors(commit_id1)

        seen = {commit_id2}
        queue = deque([commit_id2])
        while queue:
            current_id = queue.popleft()
            if current_id in ancestors:
                logger.debug('Merge base of %s and %s is %s', commit_id1, commit_id2, current_id)
                return current_id
            for parent_id in self.get(current_id).parent_ids:
                if parent_id not in seen:
                    seen.add(parent_id)
                    queue.append(parent_id)

        return None

    def commits_between(self, source_tip: str | None, target_tip: str | None) -> list[Commit]:
        """Return the commits reachable from ``source_tip`` but not from ``target_tip``.

        Commits are listed breadth-first from ``source_tip``, so the tip comes first."""
        if source_tip is None:
            return []
        excluded = self.ancestors(target_tip) if target_tip is not None else set()
        if source_tip in excluded:
            return []

        commits = []
        seen = {source_tip}
        queue = deque([source_tip])
        while queue:
            commit = self.get(queue.popleft())
            commits.append(commit)
            for parent_id in commit.parent_ids:
                if parent_id not in seen and parent_id not in excluded:
                    seen.add(parent_id)
                    queue.append(parent_id)
        return commits
