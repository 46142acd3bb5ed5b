"""Three-way merge of file sets."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from merge3 import Merge3

from .constants import CONFLICT_MARKER_OURS, CONFLICT_MARKER_SEPARATOR, CONFLICT_MARKER_THEIRS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeConflict:
    """A path that could not be merged automatically.

    ``kind`` is ``content`` when both sides edited overlapping lines, ``add``
    when both sides added the file with different content, and ``delete``
    when one side deleted a file the other side modified."""

    path: str
    kind: str
    base_content: str | None
    ours_content: str | None
    theirs_content: str | None
    merged_content: str | None = None


@dataclass
class MergeResult:
    """Represents the output of a 3-way merge."""

    files: dict[str, str]
    conflicts: list[MergeConflict] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.conflicts


def _with_newline(lines: list[str]) -> list[str]:
    if lines and not lines[-1].endswith('\n'):
        return [*lines[:-1], lines[-1] + '\n']
    return lines


def merge_text(base: str | None, ours: str, theirs: str) -> tuple[str, bool]:
    """Merge three versions of a text with merge3.

    Conflicting regions are written out with conflict markers.

    :param base: The common ancestor's text, or None if there is none.
    :param ours: Our version of the text.
    :param theirs: Their version of the text.
    :return: Tuple of (merged_text, has_conflict)"""
    if ours == theirs:
        return ours, False
    if base is not None and ours == base:
        return theirs, False
    if base is not None and theirs == base:
        return ours, False

    base_lines = (base or '').splitlines(keepends=True)
    ours_lines = ours.splitlines(keepends=True)
    theirs_lines = theirs.splitlines(keepends=True)

    merger = Merge3(base_lines, ours_lines, theirs_lines)

    merged: list[str] = []
    conflict = False
    for group in merger.merge_groups():
        group_type = group[0]
        if group_type in ('unchanged', 'same', 'a', 'b'):
            merged.extend(group[1])
        elif group_type == 'conflict':
            conflict = True
            _, _, ours_region, theirs_region = group
            merged.append(CONFLICT_MARKER_OURS)
            merged.extend(_with_newline(list(ours_region)))
            merged.append(CONFLICT_MARKER_SEPARATOR)
            merged.extend(_with_newline(list(theirs_region)))
            merged.append(CONFLICT_MARKER_THEIRS)

    return ''.join(merged), conflict


def merge_snapshots(base: Mapping[str, str], ours: Mapping[str, str], theirs: Mapping[str, str]) -> MergeResult:
    """Merge two file sets against their common ancestor.

    A path changed on one side only takes that side's version, a path changed
    identically on both sides takes either, and a path changed differently on
    both sides is merged line by line.

    :param base: The file set at the merge base.
    :param ours: The file set being merged into.
    :param theirs: The file set being merged in.
    :return: The merged file set and the list of conflicts."""
    merged: dict[str, str] = {}
    conflicts: list[MergeConflict] = []

    for path in sorted(set(base) | set(ours) | set(theirs)):
        base_content = base.get(path)
        ours_content = ours.get(path)
        theirs_content = theirs.get(path)

        if ours_content == theirs_content:
            resolved = ours_content
        elif base_content == ours_content:
            resolved = theirs_content
        elif base_content == theirs_content:
            resolved = ours_content
        elif ours_content is None or theirs_content is None:
            conflicts.append(MergeConflict(path, 'delete', base_content, ours_content, theirs_content))
            continue
        else:
            text, has_conflict = merge_text(base_content, ours_content, theirs_content)
            if has_conflict:
                kind = 'content' if base_content is not None else 'add'
                conflicts.append(MergeConflict(path, kind, base_content, ours_content, theirs_content, text))
                continue
            logger.debug('Merged concurrent edits to %s', path)
            resolved = text

        if resolved is not None:
            merged[path] = resolved

    return MergeResult(merged, conflicts)
