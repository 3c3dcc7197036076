"""Process-unique identifiers for temporary backing files."""

import itertools
import tempfile
import threading
import uuid
from pathlib import Path

# Token chosen once per process; combined with the counter it keeps names
# from colliding across processes sharing a repository.
UID = str(uuid.uuid4()).replace("-", "_")

_ID_LIMIT = 100_000_000
_counter = itertools.count()
_counter_lock = threading.Lock()


def unique_id() -> str:
    """Return the next counter value, zero-padded to 8 digits below 100 million."""
    with _counter_lock:
        current = next(_counter)
    if current < _ID_LIMIT:
        return f"{current:08d}"
    return str(current)


def temp_file_path(repository: str | Path | None = None) -> Path:
    """Return a fresh, never reused path for a backing file.

    Args:
        repository: Directory for the file; the system temp directory when None.
    """
    directory = Path(repository) if repository is not None else Path(tempfile.gettempdir())
    return directory / f"upload_{UID}_{unique_id()}.tmp"
