"""Constants shared across libvc."""

from . import Author

DEFAULT_BRANCH = 'main'

COMMIT_ID_PREFIX = 'commit_'
MERGE_REQUEST_ID_PREFIX = 'mr_'
ID_LENGTH = 16

INITIAL_COMMIT_MESSAGE = 'Initial commit'
SYSTEM_AUTHOR = Author('System', 'system@libvc.local', 'system')

DIFF_CONTEXT_LINES = 3

CONFLICT_MARKER_OURS = '<<<<<<< ours\n'
CONFLICT_MARKER_SEPARATOR = '=======\n'
CONFLICT_MARKER_THEIRS = '>>>>>>> theirs\n'

SNAPSHOT_CACHE_SIZE = 64
