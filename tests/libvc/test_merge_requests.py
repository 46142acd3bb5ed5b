from libvc import Author, MergeRequestStatus
from libvc.errors import NotFoundError, StateError
from libvc.merge import MergeConflict
from libvc.merge_requests import MergeRequestTracker
from pytest import raises


def test_create_and_get(author: Author) -> None:
    tracker = MergeRequestTracker()

    merge_request = tracker.create('Title', 'Description', 'feature', 'main', author, ['commit_a'])

    assert merge_request.id.startswith('mr_')
    assert tracker.get(merge_request.id) is merge_request
    assert merge_request.status == MergeRequestStatus.OPEN
    assert merge_request.commits == ['commit_a']
    assert len(tracker) == 1


def test_create_draft(author: Author) -> None:
    tracker = MergeRequestTracker()
    draft = tracker.create('Draft', '', 'feature', 'main', author, draft=True)
    tracker.create('Open', '', 'other', 'main', author)

    assert draft.status == MergeRequestStatus.DRAFT
    assert tracker.list_all(MergeRequestStatus.DRAFT) == [draft]
    assert len(tracker.list_all()) == 2


def test_get_missing_raises_error() -> None:
    with raises(NotFoundError):
        MergeRequestTracker().get('mr_missing')


def test_close_and_reopen(author: Author) -> None:
    tracker = MergeRequestTracker()
    merge_request = tracker.create('Title', '', 'feature', 'main', author)

    assert tracker.close(merge_request.id).status == MergeRequestStatus.CLOSED
    assert tracker.reopen(merge_request.id).status == MergeRequestStatus.OPEN


def test_mark_merged(author: Author) -> None:
    tracker = MergeRequestTracker()
    merge_request = tracker.create('Title', '', 'feature', 'main', author)

    tracker.mark_merged(merge_request.id, 'commit_merge')

    assert merge_request.status == MergeRequestStatus.MERGED
    assert merge_request.merge_commit_id == 'commit_merge'
    with raises(StateError):
        tracker.close(merge_request.id)
    with raises(StateError):
        tracker.mark_merged(merge_request.id, 'commit_other')


def test_mark_merged_requires_open(author: Author) -> None:
    tracker = MergeRequestTracker()
    merge_request = tracker.create('Title', '', 'feature', 'main', author, draft=True)

    with raises(StateError):
        tracker.mark_merged(merge_request.id, 'commit_merge')


def test_reviewers_and_approvals(author: Author) -> None:
    tracker = MergeRequestTracker()
    merge_request = tracker.create('Title', '', 'feature', 'main', author)

    tracker.add_reviewer(merge_request.id, 'user-2')
    tracker.add_reviewer(merge_request.id, 'user-2')
    tracker.approve(merge_request.id, 'user-3')

    assert merge_request.reviewers == ['user-2', 'user-3']
    assert merge_request.approvals == ['user-3']


def test_reviews_require_open_merge_request(author: Author) -> None:
    tracker = MergeRequestTracker()
    merge_request = tracker.create('Title', '', 'feature', 'main', author)
    tracker.close(merge_request.id)

    with raises(StateError):
        tracker.add_reviewer(merge_request.id, 'user-2')
    with raises(StateError):
        tracker.approve(merge_request.id, 'user-2')


def test_record_conflicts_until_merged(author: Author) -> None:
    tracker = MergeRequestTracker()
    merge_request = tracker.create('Title', '', 'feature', 'main', author)
    conflict = MergeConflict('a.sol', 'content', 'base', 'ours', 'theirs')

    tracker.record_conflicts(merge_request.id, [conflict])
    assert merge_request.conflicts == [conflict]

    tracker.mark_merged(merge_request.id, 'commit_merge')
    assert merge_request.conflicts == []
