from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from flowform.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyStateUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)
from flowform.domain.model import Snapshot
from flowform.domain.ports.persistence import ResourceState

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyStateUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert is_started()


def test_repositories_unavailable_outside_context(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    uow = SqlAlchemyStateUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.snapshots


def test_exception_rolls_back_pending_changes(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    snapshot = Snapshot(kind="compute_key_pair", id=3, attributes={"name": "deploy"})

    with pytest.raises(RuntimeError), SqlAlchemyStateUnitOfWork() as uow:
        uow.snapshots.add(ResourceState.from_snapshot("deploy", snapshot))
        uow.session.flush()
        raise RuntimeError("boom")

    with SqlAlchemyStateUnitOfWork() as uow:
        assert uow.snapshots.get("compute_key_pair", "deploy") is None
