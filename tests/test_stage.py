from __future__ import annotations

import pytest

from markersync.models import PendingUpdate, UpdateKind
from markersync.state.stage import UpdateStage


def _add(marker_id: str, **payload: object) -> PendingUpdate:
    return PendingUpdate(id=marker_id, kind=UpdateKind.ADD, payload=payload)


def test_put_replaces_pending_update_for_same_id() -> None:
    stage = UpdateStage()

    assert stage.put(_add("a", v=1)) is None
    replaced = stage.put(PendingUpdate(id="a", kind=UpdateKind.DELETE))

    assert replaced is not None
    assert replaced.payload == {"v": 1}
    pending = stage.peek("a")
    assert pending is not None
    assert pending.kind == UpdateKind.DELETE
    assert len(stage) == 1


def test_delete_all_is_independent_of_per_id_updates() -> None:
    stage = UpdateStage()
    stage.put(_add("a"))
    stage.request_delete_all()
    stage.request_delete_all()

    with stage.drain() as batch:
        assert batch.delete_all is True
        assert [u.id for u in batch.updates] == ["a"]

    assert stage.is_empty


def test_drain_clears_stage_when_caller_fails() -> None:
    stage = UpdateStage()
    stage.put(_add("a"))
    stage.request_delete_all()

    with pytest.raises(RuntimeError), stage.drain():
        raise RuntimeError("apply blew up")

    assert stage.is_empty
    with stage.drain() as batch:
        assert batch.is_empty


def test_empty_stage_drains_empty_batch() -> None:
    stage = UpdateStage()
    with stage.drain() as batch:
        assert batch.updates == ()
        assert batch.delete_all is False
        assert batch.is_empty
