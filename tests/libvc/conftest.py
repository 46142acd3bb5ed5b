from libvc import Author
from libvc.repository import Repository
from pytest import fixture


@fixture
def author() -> Author:
    return Author('John Doe', 'john@example.com', 'user-1')


@fixture
def empty_repo() -> Repository:
    return Repository('repo-1', 'Test Repository')


@fixture
async def temp_repo(empty_repo: Repository) -> Repository:
    await empty_repo.initialize({'test.sol': 'contract Test {}'})
    return empty_repo


@fixture
def events(temp_repo: Repository) -> list:
    """Every payload emitted by ``temp_repo`` after initialization."""
    received: list = []
    for event in ('files-staged', 'files-unstaged', 'commit-created', 'branch-created', 'branch-switched',
                  'branches-merged', 'merge-request-created'):
        temp_repo.subscribe(event, received.append)
    return received
