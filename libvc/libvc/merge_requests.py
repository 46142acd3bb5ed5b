"""Bookkeeping for merge requests."""

import logging

from . import Author, MergeRequest, MergeRequestStatus, now
from .merge import MergeConflict
from .errors import NotFoundError, StateError
from .plumbing import generate_merge_request_id

logger = logging.getLogger(__name__)


class MergeRequestTracker:
    """Stores merge requests and tracks their status.

    Merge requests are proposals: creating one does not check that its
    branches exist, and merged requests can no longer change status."""

    def __init__(self) -> None:
        self._merge_requests: dict[str, MergeRequest] = {}

    def __len__(self) -> int:
        return len(self._merge_requests)

    def create(self, title: str, description: str, source_branch: str, target_branch: str, author: Author,
               commits: list[str] | None = None, draft: bool = False) -> MergeRequest:
        """Create and store a new merge request.

        :param commits: The ids of the commits the request would merge.
        :param draft: Create the request as a draft instead of open.
        :return: The new merge request."""
        status = MergeRequestStatus.DRAFT if draft else MergeRequestStatus.OPEN
        merge_request = MergeRequest(generate_merge_request_id(), title, description, source_branch, target_branch,
                                     author, status, list(commits or []))
        self._merge_requests[merge_request.id] = merge_request
        logger.info('Created merge request %s (%s -> %s)', merge_request.id, source_branch, target_branch)
        return merge_request

    def get(self, merge_request_id: str) -> MergeRequest:
        """Get a merge request by id.

        :raises NotFoundError: If the merge request does not exist."""
        try:
            return self._merge_requests[merge_request_id]
        except KeyError as e:
            msg = f'Merge request {merge_request_id} does not exist'
            raise NotFoundError(msg, merge_request_id) from e

    def list_all(self, status: MergeRequestStatus | None = None) -> list[MergeRequest]:
        return [mr for mr in self._merge_requests.values() if status is None or mr.status == status]

    def mark_merged(self, merge_request_id: str, merge_commit_id: str) -> MergeRequest:
        """Record that a merge request was merged.

        :raises StateError: If the merge request is not open."""
        merge_request = self.get(merge_request_id)
        if merge_request.status != MergeRequestStatus.OPEN:
            msg = f'Merge request {merge_request_id} is {merge_request.status}, not open'
            raise StateError(msg)
        self._transition(merge_request, MergeRequestStatus.MERGED)
        merge_request.merge_commit_id = merge_commit_id
        merge_request.conflicts = []
        return merge_request

    def close(self, merge_request_id: str) -> MergeRequest:
        """Close an open or draft merge request without merging it."""
        return self._transition(self.get(merge_request_id), MergeRequestStatus.CLOSED)

    def reopen(self, merge_request_id: str) -> MergeRequest:
        """Reopen a closed or draft merge request."""
        return self._transition(self.get(merge_request_id), MergeRequestStatus.OPEN)

    def add_reviewer(self, merge_request_id: str, reviewer_id: str) -> MergeRequest:
        """Request a review from an author. Adding the same reviewer twice has no effect.

        :raises StateError: If the merge request is merged or closed."""
        merge_request = self._editable(merge_request_id)
        if reviewer_id not in merge_request.reviewers:
            merge_request.reviewers.append(reviewer_id)
            merge_request.updated_at = now()
        return merge_request

    def approve(self, merge_request_id: str, approver_id: str) -> MergeRequest:
        """Record an approval. An approver is added to the reviewers if needed.

        :raises StateError: If the merge request is merged or closed."""
        merge_request = self.add_reviewer(merge_request_id, approver_id)
        if approver_id not in merge_request.approvals:
            merge_request.approvals.append(approver_id)
            merge_request.updated_at = now()
        logger.info('Merge request %s approved by %s', merge_request_id, approver_id)
        return merge_request

    def record_conflicts(self, merge_request_id: str, conflicts: list[MergeConflict]) -> MergeRequest:
        """Attach the conflicts of a failed merge to a merge request."""
        merge_request = self.get(merge_request_id)
        merge_request.conflicts = list(conflicts)
        merge_request.updated_at = now()
        return merge_request

    def _editable(self, merge_request_id: str) -> MergeRequest:
        merge_request = self.get(merge_request_id)
        if merge_request.status in (MergeRequestStatus.MERGED, MergeRequestStatus.CLOSED):
            msg = f'Merge request {merge_request_id} is {merge_request.status}'
            raise StateError(msg)
        return merge_request

    def _transition(self, merge_request: MergeRequest, status: MergeRequestStatus) -> MergeRequest:
        if merge_request.status == MergeRequestStatus.MERGED:
            msg = f'Merge request {merge_request.id} is already merged'
            raise StateError(msg)
        merge_request.status = status
        merge_request.updated_at = now()
        return merge_request
