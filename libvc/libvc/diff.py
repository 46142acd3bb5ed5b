"""Line-based diffs between file sets."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from enum import StrEnum

from . import ChangeType
from .constants import DIFF_CONTEXT_LINES


class DiffLineKind(StrEnum):
    CONTEXT = 'context'
    ADDED = 'added'
    REMOVED = 'removed'


@dataclass(frozen=True)
class DiffLine:
    """A single line of a hunk, numbered on the side(s) it exists on."""

    kind: DiffLineKind
    text: str
    old_line_number: int | None = None
    new_line_number: int | None = None


@dataclass
class Hunk:
    """A contiguous block of changed lines with surrounding context.

    Start lines are 1-based. When one side of the hunk is empty, its start is
    the line preceding the change (0 at the beginning of the file), as in
    unified diffs."""

    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    lines: list[DiffLine] = field(default_factory=list)

    def header(self) -> str:
        return f'@@ -{self.old_start},{self.old_lines} +{self.new_start},{self.new_lines} @@'


@dataclass
class FileDiff:
    """The diff of a single file between two file sets."""

    type: ChangeType
    path: str
    hunks: list[Hunk]
    old_content: str | None = None
    new_content: str | None = None


def split_lines(text: str | None) -> list[str]:
    """Split text on line boundaries, keeping the line endings.

    Endings are kept so that a change to the final newline alone still shows
    up as a changed line."""
    if not text:
        return []
    return text.splitlines(keepends=True)


def _strip_eol(line: str) -> str:
    return line.rstrip('\r\n')


def _hunk_start(start: int, length: int) -> int:
    return start + 1 if length else start


def diff_lines(old: Iterable[str], new: Iterable[str], context: int = DIFF_CONTEXT_LINES) -> list[Hunk]:
    """Compute the hunks that turn ``old`` into ``new``.

    The alignment is a longest-matching-block diff with junk heuristics
    disabled, so equal inputs always yield equal hunks.

    :param old: The old lines.
    :param new: The new lines.
    :param context: The number of unchanged lines kept around each change.
    :return: The list of hunks, empty if both sides are equal."""
    old = list(old)
    new = list(new)
    matcher = SequenceMatcher(None, old, new, autojunk=False)

    hunks = []
    for group in matcher.get_grouped_opcodes(context):
        first, last = group[0], group[-1]
        old_begin, old_end = first[1], last[2]
        new_begin, new_end = first[3], last[4]

        lines: list[DiffLine] = []
        for tag, i1, i2, j1, j2 in group:
            if tag == 'equal':
                for offset in range(i2 - i1):
                    lines.append(DiffLine(DiffLineKind.CONTEXT, _strip_eol(old[i1 + offset]),
                                          i1 + offset + 1, j1 + offset + 1))
                continue
            # Replacements list every removed line before the added ones
            if tag in ('replace', 'delete'):
                for i in range(i1, i2):
                    lines.append(DiffLine(DiffLineKind.REMOVED, _strip_eol(old[i]), old_line_number=i + 1))
            if tag in ('replace', 'insert'):
                for j in range(j1, j2):
                    lines.append(DiffLine(DiffLineKind.ADDED, _strip_eol(new[j]), new_line_number=j + 1))

        old_length = old_end - old_begin
        new_length = new_end - new_begin
        hunks.append(Hunk(_hunk_start(old_begin, old_length), old_length,
                          _hunk_start(new_begin, new_length), new_length, lines))

    return hunks


def diff_text(old: str | None, new: str | None, context: int = DIFF_CONTEXT_LINES) -> list[Hunk]:
    """Compute the hunks between two texts. None is treated as an empty file."""
    return diff_lines(split_lines(old), split_lines(new), context)


def diff_snapshots(old_files: Mapping[str, str], new_files: Mapping[str, str], path: str | None = None,
                   context: int = DIFF_CONTEXT_LINES) -> list[FileDiff]:
    """Compare two file sets.

    :param old_files: The file set to diff from.
    :param new_files: The file set to diff to.
    :param path: Restrict the diff to this path.
    :param context: The number of context lines per hunk.
    :return: One FileDiff per added, deleted or modified path, sorted by path.
        Paths that are identical in both file sets are omitted."""
    if path is not None:
        paths = [path]
    else:
        paths = sorted(set(old_files) | set(new_files))

    file_diffs = []
    for current_path in paths:
        old = old_files.get(current_path)
        new = new_files.get(current_path)
        if old == new:
            continue

        if old is None:
            change_type = ChangeType.ADDED
        elif new is None:
            change_type = ChangeType.DELETED
        else:
            change_type = ChangeType.MODIFIED

        file_diffs.append(FileDiff(change_type, current_path, diff_text(old, new, context), old, new))

    return file_diffs


def format_unified(file_diffs: Iterable[FileDiff]) -> str:
    """Render file diffs as a unified diff."""
    output = []
    for file_diff in file_diffs:
        old_name = '/dev/null' if file_diff.type == ChangeType.ADDED else f'a/{file_diff.path}'
        new_name = '/dev/null' if file_diff.type == ChangeType.DELETED else f'b/{file_diff.path}'
        output.append(f'--- {old_name}')
        output.append(f'+++ {new_name}')
        for hunk in file_diff.hunks:
            output.append(hunk.header())
            for line in hunk.lines:
                prefix = {DiffLineKind.CONTEXT: ' ', DiffLineKind.ADDED: '+', DiffLineKind.REMOVED: '-'}[line.kind]
                output.append(prefix + line.text)
    return '\n'.join(output) + '\n' if output else ''
