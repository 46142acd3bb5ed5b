"""libvc repository management."""

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import replace
from functools import wraps
from typing import Concatenate, ParamSpec, TypeVar

from . import Author, Branch, Change, Commit, MergeRequest, MergeRequestStatus, RepositoryInfo, now
from .branches import BranchManager
from .constants import (DEFAULT_BRANCH, DIFF_CONTEXT_LINES, INITIAL_COMMIT_MESSAGE, SNAPSHOT_CACHE_SIZE,
                        SYSTEM_AUTHOR)
from .diff import FileDiff, diff_snapshots
from .errors import (CommitReferenceError, ConflictError, NotFoundError, RepositoryError, StateError,
                     ValidationError)
from .events import (BranchCreated, BranchesMerged, BranchSwitched, CommitCreated, Event, EventDispatcher,
                     FilesStaged, FilesUnstaged, Handler, MergeRequestCreated, RepositoryInitialized)
from .graph import CommitGraph
from .merge import merge_snapshots
from .merge_requests import MergeRequestTracker
from .plumbing import compute_changes, generate_commit_id
from .store import CommitStore
from .worktree import WorkingTree

logger = logging.getLogger(__name__)

P = ParamSpec('P')
R = TypeVar('R')


def _as_list(paths: str | Iterable[str]) -> list[str]:
    if isinstance(paths, str):
        return [paths]
    return list(paths)


def _copy_merge_request(merge_request: MergeRequest) -> MergeRequest:
    return replace(merge_request, commits=list(merge_request.commits), reviewers=list(merge_request.reviewers),
                   approvals=list(merge_request.approvals), conflicts=list(merge_request.conflicts))


class Repository:
    """Represents a libvc repository.

    A repository owns its commit graph, branches, working tree, staging area
    and merge requests. It is meant to be driven by a single writer: callers
    must not run two mutating operations on the same repository concurrently.

    Lifecycle events are delivered to handlers registered with
    :meth:`subscribe`."""

    def __init__(self, repository_id: str, name: str, *, description: str = '',
                 default_branch: str = DEFAULT_BRANCH, store: CommitStore | None = None,
                 context_lines: int = DIFF_CONTEXT_LINES, snapshot_cache_size: int = SNAPSHOT_CACHE_SIZE) -> None:
        """Initialize a Repository instance. No commit exists until `initialize()` is called.

        :param repository_id: The repository's identifier.
        :param name: The repository's display name.
        :param description: A free-form description.
        :param default_branch: The name of the default branch. Defaults to 'main'.
        :param store: The commit store backing the commit graph. Defaults to an in-memory store.
        :param context_lines: The number of unchanged lines around each diff hunk.
        :param snapshot_cache_size: The number of materialized file sets the commit graph keeps."""
        self.id = repository_id
        self.name = name
        self.description = description
        self.context_lines = context_lines

        self._graph = CommitGraph(store, snapshot_cache_size)
        self._branches = BranchManager(default_branch)
        self._worktree = WorkingTree()
        self._merge_requests = MergeRequestTracker()
        self._events = EventDispatcher()
        self._current_branch = default_branch

    @staticmethod
    def requires_initialized(func: Callable[Concatenate['Repository', P], Awaitable[R]]) -> \
            Callable[Concatenate['Repository', P], Awaitable[R]]:
        """Decorate a Repository coroutine to ensure that the repository has a root commit.

        :param func: The coroutine method to decorate.
        :return: A wrapper that checks for the root commit before awaiting the method."""

        @wraps(func)
        async def _verify_initialized(self: 'Repository', *args: P.args, **kwargs: P.kwargs) -> R:
            if not self.is_initialized:
                msg = f'Repository {self.id} has no commits. Call initialize() first.'
                raise StateError(msg)

            return await func(self, *args, **kwargs)

        return _verify_initialized

    @property
    def is_initialized(self) -> bool:
        return len(self._graph) > 0

    @property
    def default_branch(self) -> str:
        return self._branches.default_branch

    @property
    def current_branch(self) -> str:
        return self._current_branch

    @property
    def head(self) -> str | None:
        """The head commit of the current branch."""
        return self._branches.get(self._current_branch).head_commit_id

    @property
    def branches(self) -> list[Branch]:
        """Copies of the branches. Use the repository's methods to move them."""
        return [replace(branch) for branch in self._branches]

    @property
    def merge_requests(self) -> list[MergeRequest]:
        return [_copy_merge_request(merge_request) for merge_request in self._merge_requests.list_all()]

    @property
    def files(self) -> dict[str, str]:
        """A copy of the working tree."""
        return self._worktree.files()

    @property
    def staged(self) -> dict[str, str | None]:
        """A copy of the staging area. Paths staged for deletion map to None."""
        return self._worktree.staged()

    @property
    def info(self) -> RepositoryInfo:
        return RepositoryInfo(self.id, self.name, self.description, self.default_branch, self._current_branch,
                              self.head, {branch.name: branch for branch in self.branches},
                              {merge_request.id: merge_request for merge_request in self.merge_requests})

    def subscribe(self, event: Event | str, handler: Handler) -> Callable[[], None]:
        """Register a handler for a lifecycle event.

        :return: A function that removes the subscription."""
        return self._events.subscribe(event, handler)

    def unsubscribe(self, event: Event | str, handler: Handler) -> None:
        self._events.unsubscribe(event, handler)

    def unsubscribe_all(self, event: Event | str | None = None) -> None:
        self._events.unsubscribe_all(event)

    async def initialize(self, files: dict[str, str] | None = None) -> str:
        """Create the root commit from an initial set of files.

        :param files: A mapping from path to content. Defaults to no files.
        :return: The id of the root commit.
        :raises ValidationError: If the repository already has commits."""
        if self.is_initialized:
            msg = f'Repository {self.id} is already initialized'
            raise ValidationError(msg)

        files = files or {}
        for path, content in files.items():
            self._worktree.write(path, content)
        self._worktree.stage(files)

        commit_id = await self._commit(INITIAL_COMMIT_MESSAGE, SYSTEM_AUTHOR)

        logger.info('Initialized repository %s with %d files', self.id, len(files))
        self._events.emit(RepositoryInitialized(self.id, commit_id))
        return commit_id

    def write_file(self, path: str, content: str) -> None:
        """Create or overwrite a file in the working tree."""
        self._worktree.write(path, content)

    def read_file(self, path: str) -> str | None:
        """Read a file from the working tree, or None if it does not exist."""
        return self._worktree.read(path)

    def remove_file(self, path: str) -> None:
        """Delete a file from the working tree. Stage the path to record the deletion.

        :raises NotFoundError: If the file is not in the working tree."""
        if not self._worktree.remove(path):
            msg = f'File {path} does not exist'
            raise NotFoundError(msg, path)

    def add(self, paths: str | Iterable[str]) -> list[str]:
        """Stage files for the next commit.

        Paths that are not in the working tree are skipped, except for paths
        deleted with :meth:`remove_file`, which are staged for deletion.

        :param paths: A path or an iterable of paths.
        :return: The paths that were staged."""
        staged = self._worktree.stage(_as_list(paths))
        logger.debug('Staged %s', staged)
        self._events.emit(FilesStaged(staged))
        return staged

    def unstage(self, paths: str | Iterable[str]) -> list[str]:
        """Remove files from the staging area. Paths that are not staged are ignored.

        :param paths: A path or an iterable of paths.
        :return: The paths that were unstaged."""
        unstaged = self._worktree.unstage(_as_list(paths))
        logger.debug('Unstaged %s', unstaged)
        self._events.emit(FilesUnstaged(unstaged))
        return unstaged

    async def commit(self, message: str, author: Author) -> str:
        """Commit the staging area to the current branch.

        :param message: The commit message.
        :param author: The author of the commit.
        :return: The id of the new commit.
        :raises ValidationError: If nothing is staged or the message is empty."""
        if not self._worktree.has_staged_changes:
            msg = 'No changes staged for commit'
            raise ValidationError(msg)
        if not message:
            msg = 'Commit message is required'
            raise ValidationError(msg)

        return await self._commit(message, author)

    async def _commit(self, message: str, author: Author) -> str:
        head_id = self.head
        changes = compute_changes(self._graph.snapshot(head_id), self._worktree.staged())
        commit = self._build_commit((head_id,) if head_id else (), message, author, changes, self._current_branch)

        self._graph.add(commit)
        self._branches.set_head(self._current_branch, commit.id)
        self._worktree.clear_staging()

        logger.info('Created commit %s on %s with %d changes', commit.id, self._current_branch, len(changes))
        self._events.emit(CommitCreated(commit))
        return commit.id

    @staticmethod
    def _build_commit(parent_ids: tuple[str, ...], message: str, author: Author, changes: list[Change],
                      branch: str) -> Commit:
        timestamp = now()
        commit_id = generate_commit_id(parent_ids, message, author, timestamp, changes)
        return Commit(commit_id, parent_ids, message, author, timestamp, tuple(changes), branch)

    def create_branch(self, name: str, from_commit: str | None = None) -> Branch:
        """Create a new branch.

        :param name: The name of the branch.
        :param from_commit: The commit the branch starts at. Defaults to the current head.
        :return: A copy of the new branch.
        :raises ValidationError: If the name is empty or already taken.
        :raises CommitReferenceError: If `from_commit` does not exist."""
        if from_commit is not None and from_commit not in self._graph:
            msg = f'Commit {from_commit} does not exist'
            raise CommitReferenceError(msg)

        branch = replace(self._branches.create(name, from_commit or self.head))
        logger.info('Created branch %s at %s', name, branch.head_commit_id)
        self._events.emit(BranchCreated(replace(branch)))
        return branch

    @requires_initialized
    async def checkout(self, branch_name: str) -> None:
        """Switch to a branch, replacing the working tree with the branch's files.

        :param branch_name: The branch to switch to.
        :raises NotFoundError: If the branch does not exist.
        :raises StateError: If changes are staged."""
        branch = self._branches.get(branch_name)
        if self._worktree.has_staged_changes:
            msg = 'You have uncommitted changes. Please commit or unstage them first.'
            raise StateError(msg)

        self._worktree.replace(self._graph.snapshot(branch.head_commit_id))
        self._current_branch = branch_name

        logger.info('Switched to branch %s at %s', branch_name, branch.head_commit_id)
        self._events.emit(BranchSwitched(branch_name, branch.head_commit_id))

    @requires_initialized
    async def merge(self, source_branch: str, target_branch: str, message: str | None = None,
                    author: Author = SYSTEM_AUTHOR, merge_request_id: str | None = None) -> str:
        """Merge one branch into another with a 3-way merge.

        The merge commit's parents are the target head followed by the source
        head, and its changes are relative to the target head.

        :param source_branch: The branch to merge from.
        :param target_branch: The branch to merge into.
        :param message: The merge commit message. Defaults to 'Merge <source> into <target>'.
        :param author: The author of the merge commit. Defaults to the system author.
        :param merge_request_id: An open merge request to mark as merged on success.
        :return: The id of the merge commit.
        :raises NotFoundError: If either branch or the merge request does not exist.
        :raises ValidationError: If source and target are the same branch.
        :raises StateError: If the target is checked out and the working tree differs from its head, or the merge
            request is not open.
        :raises ConflictError: If the branches cannot be merged automatically. The conflicts are also recorded
            on the merge request, if one is given."""
        if not self._branches.exists(source_branch) or not self._branches.exists(target_branch):
            msg = 'Source or target branch does not exist'
            raise NotFoundError(msg, source_branch if not self._branches.exists(source_branch) else target_branch)
        if source_branch == target_branch:
            msg = f'Cannot merge branch {source_branch} into itself'
            raise ValidationError(msg)

        source_head = self._branches.get(source_branch).head_commit_id
        target_head = self._branches.get(target_branch).head_commit_id
        ours = self._graph.snapshot(target_head)
        if target_branch == self._current_branch:
            if self._worktree.has_staged_changes:
                msg = 'You have uncommitted changes. Please commit or unstage them first.'
                raise StateError(msg)
            if self._worktree.files() != ours:
                msg = (f'The working tree has edits that are not committed on {target_branch}. '
                       'Commit them or check out the branch again to discard them.')
                raise StateError(msg)
        if merge_request_id is not None:
            merge_request = self._merge_requests.get(merge_request_id)
            if merge_request.status != MergeRequestStatus.OPEN:
                msg = f'Merge request {merge_request_id} is {merge_request.status}, not open'
                raise StateError(msg)

        base_id = None
        if source_head is not None and target_head is not None:
            # Unrelated histories are merged as if both started from the root commit.
            base_id = self._graph.merge_base(target_head, source_head) or self._root_commit_id()

        result = merge_snapshots(self._graph.snapshot(base_id), ours, self._graph.snapshot(source_head))
        if not result.clean:
            logger.warning('Merge of %s into %s has conflicts in %s', source_branch, target_branch,
                           [conflict.path for conflict in result.conflicts])
            if merge_request_id is not None:
                self._merge_requests.record_conflicts(merge_request_id, result.conflicts)
            raise ConflictError(result.conflicts)

        touched = {path: result.files.get(path) for path in set(ours) | set(result.files)}
        changes = compute_changes(ours, touched)
        parent_ids = tuple(commit_id for commit_id in (target_head, source_head) if commit_id is not None)
        commit = self._build_commit(parent_ids, message or f'Merge {source_branch} into {target_branch}',
                                    author, changes, target_branch)

        self._graph.add(commit)
        self._branches.set_head(target_branch, commit.id)
        if target_branch == self._current_branch:
            self._worktree.replace(result.files)
        if merge_request_id is not None:
            self._merge_requests.mark_merged(merge_request_id, commit.id)

        logger.info('Merged %s into %s as %s (base %s)', source_branch, target_branch, commit.id, base_id)
        self._events.emit(BranchesMerged(source_branch, target_branch, commit.id))
        return commit.id

    def _root_commit_id(self) -> str | None:
        """The first commit on the default branch, created by `initialize()`."""
        root_id = None
        for commit in self._graph.log(self._branches.default.head_commit_id):
            root_id = commit.id
        return root_id

    def create_merge_request(self, title: str, description: str, source_branch: str, target_branch: str,
                             author: Author, draft: bool = False) -> str:
        """Record a proposal to merge one branch into another.

        The branches are not required to exist. When they do, the request
        lists the commits on the source branch that the target lacks.

        :return: The id of the merge request."""
        commits: list[str] = []
        if self._branches.exists(source_branch) and self._branches.exists(target_branch):
            source_head = self._branches.get(source_branch).head_commit_id
            target_head = self._branches.get(target_branch).head_commit_id
            commits = [commit.id for commit in self._graph.commits_between(source_head, target_head)]

        merge_request = self._merge_requests.create(title, description, source_branch, target_branch, author,
                                                    commits, draft)
        self._events.emit(MergeRequestCreated(_copy_merge_request(merge_request)))
        return merge_request.id

    def get_merge_request(self, merge_request_id: str) -> MergeRequest:
        """Get a copy of a merge request.

        :raises NotFoundError: If the merge request does not exist."""
        return _copy_merge_request(self._merge_requests.get(merge_request_id))

    def close_merge_request(self, merge_request_id: str) -> MergeRequest:
        """Close a merge request without merging it.

        :raises NotFoundError: If the merge request does not exist.
        :raises StateError: If the merge request is already merged."""
        return _copy_merge_request(self._merge_requests.close(merge_request_id))

    def reopen_merge_request(self, merge_request_id: str) -> MergeRequest:
        """Reopen a closed or draft merge request.

        :raises NotFoundError: If the merge request does not exist.
        :raises StateError: If the merge request is already merged."""
        return _copy_merge_request(self._merge_requests.reopen(merge_request_id))

    def add_reviewer(self, merge_request_id: str, reviewer: Author) -> MergeRequest:
        """Request a review of a merge request.

        :raises NotFoundError: If the merge request does not exist.
        :raises StateError: If the merge request is merged or closed."""
        return _copy_merge_request(self._merge_requests.add_reviewer(merge_request_id, reviewer.id))

    def approve_merge_request(self, merge_request_id: str, approver: Author) -> MergeRequest:
        """:raises NotFoundError: If the merge request does not exist.
        :raises StateError: If the merge request is merged or closed."""
        return _copy_merge_request(self._merge_requests.approve(merge_request_id, approver.id))

    def get_commit(self, commit_id: str) -> Commit:
        """:raises CommitReferenceError: If the commit does not exist."""
        return self._graph.get(commit_id)

    def get_commit_history(self, branch: str | None = None, limit: int | None = None) -> list[Commit]:
        """Get the history of a branch, most recent commit first.

        Merge commits are followed through their first parent.

        :param branch: The branch to walk. Defaults to the current branch.
        :param limit: The maximum number of commits to return. Defaults to all of them.
        :return: The list of commits.
        :raises NotFoundError: If the branch does not exist.
        :raises ValidationError: If the limit is negative."""
        if limit is not None and limit < 0:
            msg = f'Invalid history limit {limit}'
            raise ValidationError(msg)

        head = self._branches.get(branch or self._current_branch).head_commit_id
        return list(self._graph.log(head, limit))

    def get_diff(self, from_commit: str, to_commit: str, path: str | None = None) -> list[FileDiff]:
        """Generate a line-based diff between two commits.

        :param from_commit: The commit to diff from.
        :param to_commit: The commit to diff to.
        :param path: Restrict the diff to a single path.
        :return: One FileDiff per changed path, sorted by path.
        :raises CommitReferenceError: If either commit does not exist."""
        if from_commit not in self._graph or to_commit not in self._graph:
            msg = 'Invalid commit references'
            raise CommitReferenceError(msg)

        try:
            old_files = self._graph.snapshot(from_commit)
            new_files = self._graph.snapshot(to_commit)
        except CommitReferenceError as e:
            msg = 'Error loading commit history for diff'
            raise RepositoryError(msg) from e

        return diff_snapshots(old_files, new_files, path, self.context_lines)

    def merge_base(self, commit_id1: str, commit_id2: str) -> str | None:
        """Find the nearest common ancestor of two commits, if one exists.

        :raises CommitReferenceError: If either commit does not exist."""
        return self._graph.merge_base(commit_id1, commit_id2)
