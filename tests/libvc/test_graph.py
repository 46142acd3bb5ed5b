from libvc import Author, Change, ChangeType, Commit
from libvc.errors import CommitReferenceError, RepositoryError
from libvc.graph import CommitGraph
from libvc.plumbing import compute_changes, generate_commit_id, generate_merge_request_id
from libvc.store import MemoryCommitStore
from pytest import fixture, raises

AUTHOR = Author('Author', 'author@example.com', 'author')


def make_commit(commit_id: str, parents: tuple[str, ...], *changes: Change) -> Commit:
    return Commit(commit_id, parents, f'Commit {commit_id}', AUTHOR, 0, changes)


@fixture
def graph() -> CommitGraph:
    """A graph with a merge::

        root - a1 - a2 ---- merge
                \\         /
                  b1 - b2
    """
    graph = CommitGraph()
    graph.add(make_commit('root', (), Change(ChangeType.ADDED, 'f', content='root')))
    graph.add(make_commit('a1', ('root',), Change(ChangeType.MODIFIED, 'f', content='a1', previous_content='root')))
    graph.add(make_commit('a2', ('a1',), Change(ChangeType.ADDED, 'a', content='a')))
    graph.add(make_commit('b1', ('a1',), Change(ChangeType.ADDED, 'b', content='b')))
    graph.add(make_commit('b2', ('b1',), Change(ChangeType.DELETED, 'f', previous_content='a1')))
    graph.add(make_commit('merge', ('a2', 'b2'), Change(ChangeType.ADDED, 'b', content='b')))
    return graph


def test_add_and_get(graph: CommitGraph) -> None:
    assert 'a1' in graph
    assert len(graph) == 6
    assert graph.get('a1').parent == 'root'


def test_get_missing_commit_raises_error(graph: CommitGraph) -> None:
    with raises(CommitReferenceError):
        graph.get('missing')


def test_add_duplicate_raises_error(graph: CommitGraph) -> None:
    with raises(RepositoryError):
        graph.add(make_commit('a1', ('root',)))


def test_add_with_missing_parent_raises_error(graph: CommitGraph) -> None:
    with raises(RepositoryError):
        graph.add(make_commit('orphan', ('missing',)))


def test_snapshot(graph: CommitGraph) -> None:
    assert graph.snapshot(None) == {}
    assert graph.snapshot('root') == {'f': 'root'}
    assert graph.snapshot('b2') == {'b': 'b'}
    assert graph.snapshot('merge') == {'f': 'a1', 'a': 'a', 'b': 'b'}


def test_snapshot_returns_copies(graph: CommitGraph) -> None:
    graph.snapshot('a2')['f'] = 'mutated'

    assert graph.snapshot('a2')['f'] == 'a1'


def test_snapshot_cache_is_bounded() -> None:
    graph = CommitGraph(cache_size=2)
    graph.add(make_commit('c0', (), Change(ChangeType.ADDED, 'f', content='c0')))
    for i in range(1, 5):
        graph.add(make_commit(f'c{i}', (f'c{i - 1}',),
                              Change(ChangeType.MODIFIED, 'f', content=f'c{i}', previous_content=f'c{i - 1}')))

    for i in range(5):
        graph.snapshot(f'c{i}')

    assert list(graph._snapshots) == ['c3', 'c4']
    assert graph.snapshot('c1') == {'f': 'c1'}
    assert len(graph._snapshots) == 2


def test_snapshot_cache_size_must_be_positive() -> None:
    with raises(ValueError):
        CommitGraph(cache_size=0)


def test_log_follows_first_parent(graph: CommitGraph) -> None:
    assert [commit.id for commit in graph.log('merge')] == ['merge', 'a2', 'a1', 'root']
    assert [commit.id for commit in graph.log('merge', limit=2)] == ['merge', 'a2']
    assert list(graph.log(None)) == []


def test_ancestors(graph: CommitGraph) -> None:
    assert graph.ancestors('merge') == {'merge', 'a2', 'a1', 'root', 'b1', 'b2'}
    assert graph.is_ancestor('b1', 'merge')
    assert not graph.is_ancestor('b1', 'a2')


def test_merge_base(graph: CommitGraph) -> None:
    assert graph.merge_base('a2', 'b2') == 'a1'
    assert graph.merge_base('b2', 'a2') == 'a1'
    assert graph.merge_base('merge', 'b2') == 'b2'
    assert graph.merge_base('root', 'merge') == 'root'


def test_merge_base_no_common_root(graph: CommitGraph) -> None:
    graph.add(make_commit('other-root', ()))

    assert graph.merge_base('other-root', 'a2') is None


def test_commits_between(graph: CommitGraph) -> None:
    assert [commit.id for commit in graph.commits_between('b2', 'a2')] == ['b2', 'b1']
    assert graph.commits_between('a1', 'merge') == []
    assert graph.commits_between(None, 'a1') == []


def test_memory_store() -> None:
    store = MemoryCommitStore()
    commit = make_commit('root', ())
    store.save(commit)

    assert store.load('root') is commit
    assert list(store) == ['root']
    with raises(CommitReferenceError):
        store.load('missing')


def test_generated_ids_are_unique() -> None:
    commit_ids = {generate_commit_id((), 'message', AUTHOR, 0, ()) for _ in range(50)}
    merge_request_ids = {generate_merge_request_id() for _ in range(50)}

    assert len(commit_ids) == 50
    assert all(commit_id.startswith('commit_') for commit_id in commit_ids)
    assert len(merge_request_ids) == 50
    assert all(mr_id.startswith('mr_') for mr_id in merge_request_ids)


def test_compute_changes() -> None:
    changes = compute_changes({'same': '1', 'mod': '1', 'del': '1'},
                              {'same': '1', 'mod': '2', 'del': None, 'new': '1', 'never': None})

    assert changes == [
        Change(ChangeType.DELETED, 'del', previous_content='1'),
        Change(ChangeType.MODIFIED, 'mod', content='2', previous_content='1'),
        Change(ChangeType.ADDED, 'new', content='1'),
    ]
