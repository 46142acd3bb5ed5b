"""Low-level helpers for building commits and identifiers."""

import hashlib
import json
import secrets
from collections.abc import Iterable, Mapping

from . import Author, Change, ChangeType
from .constants import COMMIT_ID_PREFIX, ID_LENGTH, MERGE_REQUEST_ID_PREFIX


def hash_string(data: str | bytes) -> str:
    """Return the hex SHA-1 digest of a string or bytes.

    :param data: The data to hash. Strings are encoded as UTF-8.
    :return: The hex digest."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha1(data).hexdigest()


def generate_commit_id(parent_ids: Iterable[str], message: str, author: Author, timestamp: int,
                       changes: Iterable[Change]) -> str:
    """Generate a unique commit id derived from the commit's content.

    A random nonce is mixed into the digest so that two commits with identical
    content made within the same second still get distinct ids.

    :return: An id of the form ``commit_<hex>``."""
    payload = json.dumps({
        'parents': list(parent_ids),
        'message': message,
        'author': [author.name, author.email, author.id],
        'timestamp': timestamp,
        'changes': [[change.type, change.path, change.content] for change in changes],
        'nonce': secrets.token_hex(8),
    }, sort_keys=True)
    return COMMIT_ID_PREFIX + hash_string(payload)[:ID_LENGTH]


def generate_merge_request_id() -> str:
    """Generate a unique merge request id of the form ``mr_<hex>``."""
    return MERGE_REQUEST_ID_PREFIX + secrets.token_hex(ID_LENGTH // 2)


def classify_change(path: str, old: str | None, new: str | None) -> Change | None:
    """Classify the change of a single path between two versions.

    :param path: The path of the file.
    :param old: The previous content, or None if the file did not exist.
    :param new: The new content, or None if the file was deleted.
    :return: The change, or None if the file is unchanged."""
    if old == new:
        return None
    if old is None:
        return Change(ChangeType.ADDED, path, content=new)
    if new is None:
        return Change(ChangeType.DELETED, path, previous_content=old)
    return Change(ChangeType.MODIFIED, path, content=new, previous_content=old)


def compute_changes(old_files: Mapping[str, str], new_files: Mapping[str, str | None]) -> list[Change]:
    """Compute the changes that turn ``old_files`` into ``new_files``.

    Only paths present in ``new_files`` are considered; a ``None`` value marks a
    deletion. Changes are returned sorted by path.

    :param old_files: The file set before the change.
    :param new_files: The new content of each touched path.
    :return: The list of changes, excluding unchanged paths."""
    changes = []
    for path in sorted(new_files):
        change = classify_change(path, old_files.get(path), new_files[path])
        if change is not None:
            changes.append(change)
    return changes


def apply_changes(files: dict[str, str], changes: Iterable[Change]) -> None:
    """Apply a sequence of changes to a file set in place."""
    for change in changes:
        if change.type == ChangeType.DELETED:
            files.pop(change.path, None)
        else:
            files[change.path] = change.content
