from __future__ import annotations

import threading

from markersync.models import ActionCode
from markersync.server import SyncServer


def _run_threads(count: int, target) -> None:  # type: ignore[no-untyped-def]
    barrier = threading.Barrier(count)

    def _worker(index: int) -> None:
        barrier.wait()
        target(index)

    threads = [threading.Thread(target=_worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
        assert not thread.is_alive()


def test_concurrent_inserts_commit_together() -> None:
    server = SyncServer()
    count = 64

    _run_threads(count, lambda i: server.insert(f"m{i}", {"i": i}))
    assert len(server) == 0

    report = server.commit()

    assert sorted(report.applied) == sorted(f"m{i}" for i in range(count))
    assert len(server) == count
    assert all(record.action == ActionCode.ADD for record in server.snapshot())


def test_inserts_racing_commits_are_never_lost() -> None:
    server = SyncServer()
    writers = 16
    per_writer = 50
    done = threading.Event()
    commit_errors: list[BaseException] = []

    def _committer() -> None:
        try:
            while not done.is_set():
                server.commit()
        except BaseException as exc:  # pragma: no cover - surfaced by the assert below
            commit_errors.append(exc)

    committer = threading.Thread(target=_committer)
    committer.start()

    def _write(index: int) -> None:
        for n in range(per_writer):
            server.insert(f"w{index}-{n}", {"n": n})

    _run_threads(writers, _write)
    done.set()
    committer.join(timeout=10)
    server.commit()

    assert commit_errors == []
    assert len(server) == writers * per_writer
    assert server.pending == 0


def test_each_commit_applies_a_whole_stage() -> None:
    # Every committed id appears in exactly one report: a commit never
    # leaves part of what it drained behind for a later pass.
    server = SyncServer()
    reports: list[list[str]] = []
    lock = threading.Lock()

    def _insert_and_commit(index: int) -> None:
        server.insert(f"m{index}", {})
        applied = server.commit().applied
        with lock:
            reports.append(applied)

    _run_threads(32, _insert_and_commit)

    flattened = [marker_id for applied in reports for marker_id in applied]
    assert sorted(flattened) == sorted(f"m{i}" for i in range(32))
    assert len(server) == 32


def test_concurrent_deletes_and_delete_all() -> None:
    server = SyncServer()
    for i in range(20):
        server.insert(f"m{i}", {})
    server.commit()

    def _act(index: int) -> None:
        if index == 0:
            server.delete_all()
        else:
            server.delete(f"m{index}")

    _run_threads(20, _act)
    server.commit()

    assert {record.action for record in server.snapshot()} == {ActionCode.DELETE_ALL}
