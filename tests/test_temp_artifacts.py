from __future__ import annotations

import os
import time

from codefix.storage.temp_artifacts import TempArtifactStore


def test_artifact_paths_are_unique_per_run(store) -> None:
    a = store.artifact_path("run-a")
    b = store.artifact_path("run-b")
    assert a != b
    assert os.path.basename(a) == TempArtifactStore.ARTIFACT_NAME
    assert os.path.isdir(os.path.dirname(a))


def test_discard_is_idempotent(store) -> None:
    path = store.artifact_path("run-a")
    with open(path, "wb") as f:
        f.write(b"zip")
    assert store.discard(path) is True
    assert store.discard(path) is False
    assert not os.path.exists(path)
    assert not os.path.exists(os.path.dirname(path))


def test_staged_artifact_discards_on_error(store) -> None:
    captured = {}
    try:
        with store.staged_artifact("run-a") as path:
            captured["path"] = path
            with open(path, "wb") as f:
                f.write(b"zip")
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    assert not os.path.exists(captured["path"])


def test_cleanup_expired_removes_old_run_dirs(tmp_path) -> None:
    store = TempArtifactStore(base_dir=str(tmp_path), ttl_hours=1)
    old_dir = store.get_run_dir("old")
    new_dir = store.get_run_dir("new")
    past = time.time() - 2 * 3600
    os.utime(old_dir, (past, past))

    assert store.cleanup_expired() == 1
    assert not os.path.exists(old_dir)
    assert os.path.exists(new_dir)
