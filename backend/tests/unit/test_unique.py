"""Unit tests for temp file name generation."""

import tempfile
import threading
from pathlib import Path

from encrypted_upload.unique import UID, temp_file_path, unique_id


def test_unique_id_is_zero_padded_and_increasing():
    first = unique_id()
    second = unique_id()

    assert len(first) == 8
    assert first.isdigit()
    assert int(second) > int(first)


def test_temp_file_path_uses_repository(tmp_path):
    path = temp_file_path(tmp_path)

    assert path.parent == tmp_path
    assert path.name.startswith(f"upload_{UID}_")
    assert path.suffix == ".tmp"
    assert not path.exists()


def test_temp_file_path_defaults_to_system_temp_dir():
    path = temp_file_path()

    assert path.parent == Path(tempfile.gettempdir())


def test_process_token_has_no_hyphens():
    assert "-" not in UID


def test_temp_file_paths_never_collide_across_threads(tmp_path):
    paths = []
    lock = threading.Lock()

    def generate():
        local = [temp_file_path(tmp_path) for _ in range(200)]
        with lock:
            paths.extend(local)

    threads = [threading.Thread(target=generate) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(paths) == 1600
    assert len(set(paths)) == 1600
