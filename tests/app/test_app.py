from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx
import pytest

from flowform.app import (
    apply_resource,
    destroy_resource,
    list_resources,
    lookup_resource,
    refresh_resource,
)
from flowform.domain.ports.persistence import ResourceState
from tests.helpers.flow_api import FakeFlowApi, make_api
from tests.helpers.flow_payloads import key_pair_payload, volume_payload
from tests.helpers.resources import FakeStateUnitOfWork, InMemorySnapshotRepository

if TYPE_CHECKING:
    from collections.abc import Callable

VOLUMES = "/v4/compute/volumes"


@pytest.fixture(autouse=True)
def fast_polling(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLOW_POLL_INTERVAL", "0.01")
    monkeypatch.setenv("FLOW_OPERATION_TIMEOUT", "5")


@pytest.fixture
def repository() -> InMemorySnapshotRepository:
    return InMemorySnapshotRepository()


@pytest.fixture
def uow_factory(repository: InMemorySnapshotRepository) -> Callable[[], FakeStateUnitOfWork]:
    return lambda: FakeStateUnitOfWork(repository)


def _record(
    repository: InMemorySnapshotRepository, resource_id: int = 42, **attributes: object
) -> None:
    base = {"name": "foo", "size": 10, "location": 1, "serial_number": "abc"}
    repository.add(
        ResourceState(
            kind="compute_volume",
            name="data",
            resource_id=resource_id,
            attributes={**base, "attach_to_server": None, **attributes},
        )
    )


def test_apply_creates_and_records_new_resource(
    repository: InMemorySnapshotRepository,
    uow_factory: Callable[[], FakeStateUnitOfWork],
) -> None:
    fake = FakeFlowApi()
    fake.add("POST", VOLUMES, volume_payload())
    fake.add("GET", f"{VOLUMES}/42", volume_payload())

    result = asyncio.run(
        apply_resource(
            "compute_volume",
            "data",
            {"name": "foo", "size": 10, "location": 1},
            api=make_api(fake),
            unit_of_work_factory=uow_factory,
        )
    )

    assert result.ok
    assert result.snapshot is not None
    assert result.snapshot.id == 42
    state = repository.get("compute_volume", "data")
    assert state is not None
    assert state.resource_id == 42
    assert state.attributes["serial_number"] == "abc"


def test_apply_refreshes_then_updates(
    repository: InMemorySnapshotRepository,
    uow_factory: Callable[[], FakeStateUnitOfWork],
) -> None:
    _record(repository)
    fake = FakeFlowApi()
    fake.add("GET", f"{VOLUMES}/42", volume_payload())
    fake.add("GET", f"{VOLUMES}/42", volume_payload(size=20))
    fake.add("POST", f"{VOLUMES}/42/expand", status=204)

    result = asyncio.run(
        apply_resource(
            "compute_volume",
            "data",
            {"size": 20},
            api=make_api(fake),
            unit_of_work_factory=uow_factory,
        )
    )

    assert result.ok
    assert fake.calls() == [
        ("GET", f"{VOLUMES}/42"),
        ("POST", f"{VOLUMES}/42/expand"),
        ("GET", f"{VOLUMES}/42"),
    ]
    state = repository.get("compute_volume", "data")
    assert state is not None
    assert state.attributes["size"] == 20


def test_apply_shrink_only_warns(
    repository: InMemorySnapshotRepository,
    uow_factory: Callable[[], FakeStateUnitOfWork],
) -> None:
    _record(repository)
    fake = FakeFlowApi()
    fake.add("GET", f"{VOLUMES}/42", volume_payload())

    result = asyncio.run(
        apply_resource(
            "compute_volume",
            "data",
            {"name": "foo", "size": 5},
            api=make_api(fake),
            unit_of_work_factory=uow_factory,
        )
    )

    assert result.ok
    assert fake.calls() == [("GET", f"{VOLUMES}/42")]
    assert result.snapshot is not None
    assert result.snapshot["size"] == 10
    assert [item.summary for item in result.diagnostics.warnings] == [
        "compute_volume size cannot shrink"
    ]


def test_apply_recreates_resource_that_vanished(
    repository: InMemorySnapshotRepository,
    uow_factory: Callable[[], FakeStateUnitOfWork],
) -> None:
    _record(repository, resource_id=41)
    fake = FakeFlowApi()
    fake.add("POST", VOLUMES, volume_payload())
    fake.add("GET", f"{VOLUMES}/42", volume_payload())

    result = asyncio.run(
        apply_resource(
            "compute_volume",
            "data",
            {"name": "foo", "size": 10, "location": 1},
            api=make_api(fake),
            unit_of_work_factory=uow_factory,
        )
    )

    assert result.ok
    assert fake.calls()[0] == ("GET", f"{VOLUMES}/41")
    state = repository.get("compute_volume", "data")
    assert state is not None
    assert state.resource_id == 42


def test_apply_replaces_on_immutable_change(
    repository: InMemorySnapshotRepository,
    uow_factory: Callable[[], FakeStateUnitOfWork],
) -> None:
    _record(repository, resource_id=41)
    fake = FakeFlowApi()
    fake.add("GET", f"{VOLUMES}/41", volume_payload(id=41))
    fake.add("DELETE", f"{VOLUMES}/41", status=204)
    fake.add("POST", VOLUMES, volume_payload(location={"id": 2}))
    fake.add("GET", f"{VOLUMES}/42", volume_payload(location={"id": 2}))

    result = asyncio.run(
        apply_resource(
            "compute_volume",
            "data",
            {"name": "foo", "size": 10, "location": 2},
            api=make_api(fake),
            unit_of_work_factory=uow_factory,
        )
    )

    assert result.ok
    assert fake.calls() == [
        ("GET", f"{VOLUMES}/41"),
        ("DELETE", f"{VOLUMES}/41"),
        ("POST", VOLUMES),
        ("GET", f"{VOLUMES}/42"),
    ]
    state = repository.get("compute_volume", "data")
    assert state is not None
    assert state.resource_id == 42
    assert state.attributes["location"] == 2


def test_apply_failure_becomes_error_diagnostic(
    repository: InMemorySnapshotRepository,
    uow_factory: Callable[[], FakeStateUnitOfWork],
) -> None:
    fake = FakeFlowApi()
    fake.add("POST", VOLUMES, {"message": {"en": "quota exceeded"}}, status=422)

    result = asyncio.run(
        apply_resource(
            "compute_volume",
            "data",
            {"name": "foo", "size": 10, "location": 1},
            api=make_api(fake),
            unit_of_work_factory=uow_factory,
        )
    )

    assert not result.ok
    assert result.snapshot is None
    assert [item.summary for item in result.diagnostics.errors] == ["Client Error"]
    assert "quota exceeded" in result.diagnostics.errors[0].detail
    assert repository.get("compute_volume", "data") is None


def test_apply_unknown_kind(uow_factory: Callable[[], FakeStateUnitOfWork]) -> None:
    result = asyncio.run(
        apply_resource(
            "compute_router",
            "web",
            {},
            api=make_api(FakeFlowApi()),
            unit_of_work_factory=uow_factory,
        )
    )

    assert [item.summary for item in result.diagnostics.errors] == ["Not Supported"]


def test_refresh_drops_state_of_vanished_resource(
    repository: InMemorySnapshotRepository,
    uow_factory: Callable[[], FakeStateUnitOfWork],
) -> None:
    _record(repository)

    result = asyncio.run(
        refresh_resource(
            "compute_volume", "data", api=make_api(FakeFlowApi()), unit_of_work_factory=uow_factory
        )
    )

    assert result.ok
    assert result.snapshot is None
    assert [item.summary for item in result.diagnostics.warnings] == ["Resource Gone"]
    assert repository.get("compute_volume", "data") is None


def test_refresh_unknown_resource_is_an_error(
    uow_factory: Callable[[], FakeStateUnitOfWork],
) -> None:
    result = asyncio.run(
        refresh_resource(
            "compute_volume", "data", api=make_api(FakeFlowApi()), unit_of_work_factory=uow_factory
        )
    )

    assert not result.ok


def test_refresh_reports_malformed_response_as_client_error(
    repository: InMemorySnapshotRepository,
    uow_factory: Callable[[], FakeStateUnitOfWork],
) -> None:
    _record(repository)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>gateway</html>")

    result = asyncio.run(
        refresh_resource(
            "compute_volume", "data", api=make_api(handler), unit_of_work_factory=uow_factory
        )
    )

    assert not result.ok
    assert [item.summary for item in result.diagnostics.errors] == ["Client Error"]
    assert repository.get("compute_volume", "data") is not None


def test_destroy_deletes_and_forgets(
    repository: InMemorySnapshotRepository,
    uow_factory: Callable[[], FakeStateUnitOfWork],
) -> None:
    _record(repository, attach_to_server=7)
    fake = FakeFlowApi()
    fake.add("DELETE", "/v4/compute/instances/7/volumes/42", status=204)
    fake.add("DELETE", f"{VOLUMES}/42", status=204)

    result = asyncio.run(
        destroy_resource(
            "compute_volume", "data", api=make_api(fake), unit_of_work_factory=uow_factory
        )
    )

    assert result.ok
    assert fake.calls() == [
        ("DELETE", "/v4/compute/instances/7/volumes/42"),
        ("DELETE", f"{VOLUMES}/42"),
    ]
    assert repository.get("compute_volume", "data") is None


def test_destroy_deletes_volume_whose_server_is_gone(
    repository: InMemorySnapshotRepository,
    uow_factory: Callable[[], FakeStateUnitOfWork],
) -> None:
    _record(repository, attach_to_server=7)
    fake = FakeFlowApi()
    fake.add("DELETE", f"{VOLUMES}/42", status=204)

    result = asyncio.run(
        destroy_resource(
            "compute_volume", "data", api=make_api(fake), unit_of_work_factory=uow_factory
        )
    )

    assert result.ok
    assert fake.calls()[-1] == ("DELETE", f"{VOLUMES}/42")
    assert repository.get("compute_volume", "data") is None


def test_destroy_keeps_state_when_delete_fails(
    repository: InMemorySnapshotRepository,
    uow_factory: Callable[[], FakeStateUnitOfWork],
) -> None:
    _record(repository)
    fake = FakeFlowApi()
    fake.add("DELETE", f"{VOLUMES}/42", {"message": "volume is busy"}, status=409)

    result = asyncio.run(
        destroy_resource(
            "compute_volume", "data", api=make_api(fake), unit_of_work_factory=uow_factory
        )
    )

    assert not result.ok
    assert repository.get("compute_volume", "data") is not None


def test_lookup_resource_finds_key_pair() -> None:
    fake = FakeFlowApi()
    key_pairs = [key_pair_payload(), key_pair_payload(id=4, name="ci")]
    fake.add("GET", "/v4/compute/key-pairs", key_pairs)

    result = asyncio.run(lookup_resource("compute_key_pair", {"name": "ci"}, api=make_api(fake)))

    assert result.ok
    assert result.snapshot is not None
    assert result.snapshot.id == 4


def test_lookup_resource_reports_ambiguity() -> None:
    fake = FakeFlowApi()
    fake.add("GET", "/v4/compute/key-pairs", [key_pair_payload(), key_pair_payload(id=4)])

    result = asyncio.run(
        lookup_resource("compute_key_pair", {"name": "deploy"}, api=make_api(fake))
    )

    assert result.snapshot is None
    assert [item.summary for item in result.diagnostics.errors] == ["Ambiguous Results"]


def test_list_resources(
    repository: InMemorySnapshotRepository,
    uow_factory: Callable[[], FakeStateUnitOfWork],
) -> None:
    _record(repository)

    states = list_resources("compute_volume", unit_of_work_factory=uow_factory)

    assert [state.name for state in states] == ["data"]
    assert list_resources("compute_key_pair", unit_of_work_factory=uow_factory) == []
