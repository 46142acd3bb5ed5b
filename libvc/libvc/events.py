"""Typed lifecycle notifications emitted by a repository."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, ClassVar

from . import Branch, Commit, MergeRequest

logger = logging.getLogger(__name__)


class Event(StrEnum):
    REPOSITORY_INITIALIZED = 'repository-initialized'
    FILES_STAGED = 'files-staged'
    FILES_UNSTAGED = 'files-unstaged'
    COMMIT_CREATED = 'commit-created'
    BRANCH_CREATED = 'branch-created'
    BRANCH_SWITCHED = 'branch-switched'
    BRANCHES_MERGED = 'branches-merged'
    MERGE_REQUEST_CREATED = 'merge-request-created'


@dataclass(frozen=True)
class RepositoryInitialized:
    event: ClassVar[Event] = Event.REPOSITORY_INITIALIZED

    repository_id: str
    commit_id: str


@dataclass(frozen=True)
class FilesStaged:
    event: ClassVar[Event] = Event.FILES_STAGED

    paths: list[str]


@dataclass(frozen=True)
class FilesUnstaged:
    event: ClassVar[Event] = Event.FILES_UNSTAGED

    paths: list[str]


@dataclass(frozen=True)
class CommitCreated:
    event: ClassVar[Event] = Event.COMMIT_CREATED

    commit: Commit


@dataclass(frozen=True)
class BranchCreated:
    event: ClassVar[Event] = Event.BRANCH_CREATED

    branch: Branch


@dataclass(frozen=True)
class BranchSwitched:
    event: ClassVar[Event] = Event.BRANCH_SWITCHED

    branch_name: str
    commit_id: str | None


@dataclass(frozen=True)
class BranchesMerged:
    event: ClassVar[Event] = Event.BRANCHES_MERGED

    source_branch: str
    target_branch: str
    merge_commit_id: str


@dataclass(frozen=True)
class MergeRequestCreated:
    event: ClassVar[Event] = Event.MERGE_REQUEST_CREATED

    merge_request: MergeRequest


EventPayload = (RepositoryInitialized | FilesStaged | FilesUnstaged | CommitCreated | BranchCreated
                | BranchSwitched | BranchesMerged | MergeRequestCreated)
Handler = Callable[[Any], None]


class EventDispatcher:
    """A registry of handlers keyed by event.

    Handlers run synchronously, in subscription order. An exception raised
    by a handler propagates to the code that emitted the event."""

    def __init__(self) -> None:
        self._handlers: dict[Event, list[Handler]] = {}

    def subscribe(self, event: Event | str, handler: Handler) -> Callable[[], None]:
        """Register a handler for an event.

        :param event: The event, or its name.
        :param handler: Called with the event's payload.
        :return: A function that removes the subscription.
        :raises ValueError: If the event name is unknown."""
        event = Event(event)
        self._handlers.setdefault(event, []).append(handler)
        return lambda: self.unsubscribe(event, handler)

    def unsubscribe(self, event: Event | str, handler: Handler) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(Event(event), [])
        if handler in handlers:
            handlers.remove(handler)

    def unsubscribe_all(self, event: Event | str | None = None) -> None:
        """Remove every handler of an event, or of all events when no event is given."""
        if event is None:
            self._handlers.clear()
        else:
            self._handlers.pop(Event(event), None)

    def handlers(self, event: Event | str) -> list[Handler]:
        return list(self._handlers.get(Event(event), []))

    def emit(self, payload: EventPayload) -> None:
        """Deliver a payload to every handler subscribed to its event."""
        handlers = self.handlers(payload.event)
        logger.debug('Emitting %s to %d handlers', payload.event, len(handlers))
        for handler in handlers:
            handler(payload)
