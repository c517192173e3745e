from __future__ import annotations

import asyncio
import logging

import httpx
import pytest

from flowform.adapters.flow import OrderService, log_response
from flowform.domain.errors import ClientError, NotFoundError
from flowform.domain.model import PendingOperation
from tests.helpers.flow_api import FakeFlowApi, make_api
from tests.helpers.flow_payloads import order_payload


def test_get_all_follows_total_pages_header() -> None:
    fake = FakeFlowApi()
    pages = {"X-Pagination-Total-Pages": "2"}
    fake.add("GET", "/v4/compute/volumes", [{"id": 1}, {"id": 2}], headers=pages)
    fake.add("GET", "/v4/compute/volumes", [{"id": 3}], headers=pages)

    items = asyncio.run(make_api(fake).get_all("/v4/compute/volumes", page_size=2))

    assert [item["id"] for item in items] == [1, 2, 3]
    assert [request.url.params["page"] for request in fake.requests] == ["1", "2"]
    assert {request.url.params["per_page"] for request in fake.requests} == {"2"}


def test_get_all_stops_on_short_page() -> None:
    fake = FakeFlowApi()
    fake.add("GET", "/v4/compute/key-pairs", [{"id": 1}])

    items = asyncio.run(make_api(fake).get_all("/v4/compute/key-pairs"))

    assert items == [{"id": 1}]
    assert len(fake.requests) == 1


def test_get_all_rejects_non_list_payload() -> None:
    fake = FakeFlowApi()
    fake.add("GET", "/v4/compute/key-pairs", {"id": 1})

    with pytest.raises(ClientError):
        asyncio.run(make_api(fake).get_all("/v4/compute/key-pairs"))


def test_non_json_body_maps_to_client_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>maintenance</html>")

    with pytest.raises(ClientError, match="malformed body") as exc:
        asyncio.run(make_api(handler).get("/v4/compute/volumes/42"))

    assert isinstance(exc.value.__cause__, ValueError)


def test_non_json_listing_maps_to_client_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>")

    with pytest.raises(ClientError, match="malformed body"):
        asyncio.run(make_api(handler).get_all("/v4/compute/volumes"))


def test_malformed_page_count_maps_to_client_error() -> None:
    fake = FakeFlowApi()
    fake.add("GET", "/v4/compute/volumes", [{"id": 1}], headers={"X-Pagination-Total-Pages": "x"})

    with pytest.raises(ClientError, match="page count"):
        asyncio.run(make_api(fake).get_all("/v4/compute/volumes"))


def test_missing_entity_maps_to_not_found() -> None:
    fake = FakeFlowApi()

    with pytest.raises(NotFoundError) as exc:
        asyncio.run(make_api(fake).get("/v4/compute/volumes/9"))

    assert "Not found" in str(exc.value)
    assert isinstance(exc.value.__cause__, httpx.HTTPStatusError)


def test_server_error_maps_to_client_error_with_message() -> None:
    fake = FakeFlowApi()
    fake.add("POST", "/v4/compute/volumes", {"message": {"en": "quota exceeded"}}, status=422)

    with pytest.raises(ClientError) as exc:
        asyncio.run(make_api(fake).post("/v4/compute/volumes", {"name": "foo"}))

    assert exc.value.status_code == 422
    assert "quota exceeded" in str(exc.value)
    assert fake.body("POST", "/v4/compute/volumes") == {"name": "foo"}


def test_transport_error_maps_to_client_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ClientError) as exc:
        asyncio.run(make_api(handler).get("/v4/compute/volumes"))

    assert exc.value.status_code is None
    assert isinstance(exc.value.__cause__, httpx.ConnectError)


def test_requests_carry_bearer_token() -> None:
    fake = FakeFlowApi()
    fake.add("GET", "/v4/compute/volumes/1", {"id": 1})
    api = make_api(fake)

    asyncio.run(api.get("/v4/compute/volumes/1"))

    assert api.config.resilience.default_headers is not None
    assert api.config.resilience.default_headers["Authorization"] == "Bearer test-token"


def test_empty_response_body_is_none() -> None:
    fake = FakeFlowApi()
    fake.add("PATCH", "/v4/compute/volumes/1", status=204)

    assert asyncio.run(make_api(fake).patch("/v4/compute/volumes/1", {"name": "x"})) is None


@pytest.mark.parametrize(
    ("order", "expected"),
    [
        (order_payload(2), None),
        (order_payload(3, product_id=5), 5),
    ],
)
def test_order_service_resolves_processed_orders(
    order: dict[str, object], expected: int | None
) -> None:
    fake = FakeFlowApi()
    fake.add("GET", "/v4/orders/900", order)
    orders = OrderService(make_api(fake))

    resolved = asyncio.run(orders.resolve(PendingOperation(kind="x", ref="/v4/orders/900")))

    assert resolved == expected


def test_order_service_raises_for_failed_order() -> None:
    fake = FakeFlowApi()
    fake.add("GET", "/v4/orders/900", order_payload(4))
    orders = OrderService(make_api(fake))

    with pytest.raises(ClientError, match="failed"):
        asyncio.run(orders.resolve(PendingOperation(kind="x", ref="/v4/orders/900")))


def test_log_response_traces_request_id(caplog: pytest.LogCaptureFixture) -> None:
    request = httpx.Request("GET", "https://api.flow.test/v4/compute/volumes")
    response = httpx.Response(200, headers={"X-Request-ID": "req-1"}, request=request)

    with caplog.at_level(logging.DEBUG, logger="flowform.adapters.flow.client"):
        asyncio.run(log_response(response))

    assert "req-1" in caplog.text
    assert "GET https://api.flow.test/v4/compute/volumes" in caplog.text
