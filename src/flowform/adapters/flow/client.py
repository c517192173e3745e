"""HTTP client for the Flow control-plane API."""

from __future__ import annotations

from dataclasses import dataclass, replace
from logging import getLogger
from typing import TYPE_CHECKING, Any, Unpack

import httpx
from pydantic import ValidationError

from flowform.adapters.http_resilience import ResilientClient
from flowform.domain.errors import ClientError, NotFoundError

from .schema import ErrorPayload, OrderingPayload, OrderPayload

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

    from flowform.adapters.http_resilience import RequestOptions
    from flowform.config.flow import FlowConfig
    from flowform.config.http_resilience import ResilienceConfig
    from flowform.domain.model import PendingOperation

log = getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
ORDER_STATUS_PROCESSED = 3
ORDER_STATUS_FAILED = 4


async def log_response(response: httpx.Response) -> None:
    """Trace every request with its outcome and the server-side request id."""

    request = response.request
    log.debug(
        "request to `%s %s` resulted in `%s` (request_id=%s)",
        request.method,
        request.url,
        response.status_code,
        response.headers.get("X-Request-ID"),
    )


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = ErrorPayload.model_validate(response.json())
    except (ValueError, ValidationError):
        return response.text.strip()[:200] or response.reason_phrase
    return payload.text() or response.reason_phrase


class FlowApiClient:
    """Thin JSON layer over :class:`ResilientClient` mapping failures to domain errors.

    One instance is shared by every driver of an operation; it is never mutated after
    construction.
    """

    def __init__(
        self,
        config: FlowConfig,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] = _default_client_factory,
    ) -> None:
        resilience = config.resilience
        if log_response not in resilience.response_hooks:
            hooks = (*resilience.response_hooks, log_response)
            resilience = replace(resilience, response_hooks=hooks)
        self.config = config
        self._client = client_factory(resilience)

    async def __aenter__(self) -> FlowApiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_all(
        self,
        path: str,
        *,
        params: Mapping[str, str | int] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[Any]:
        """Fetch every page of a collection endpoint."""

        items: list[Any] = []
        page = 1
        while True:
            query: dict[str, str | int] = {**(params or {}), "page": page, "per_page": page_size}
            response = await self._perform("GET", path, params=query)
            payload = _decode("GET", path, response)
            if not isinstance(payload, list):
                raise ClientError(f"GET {path} returned an unexpected payload")
            items.extend(payload)

            total_pages = _total_pages(path, response)
            if total_pages is not None:
                if page >= total_pages:
                    break
            elif len(payload) < page_size:
                break
            page += 1
        return items

    async def get(self, path: str) -> Any:
        response = await self._perform("GET", path)
        return _decode("GET", path, response)

    async def post(self, path: str, body: Mapping[str, Any] | None = None) -> Any:
        response = await self._perform("POST", path, json=dict(body or {}))
        return _json_or_none("POST", path, response)

    async def patch(self, path: str, body: Mapping[str, Any]) -> Any:
        response = await self._perform("PATCH", path, json=dict(body))
        return _json_or_none("PATCH", path, response)

    async def put(self, path: str, body: Mapping[str, Any]) -> Any:
        response = await self._perform("PUT", path, json=dict(body))
        return _json_or_none("PUT", path, response)

    async def delete(self, path: str) -> None:
        await self._perform("DELETE", path)

    async def _perform(
        self,
        method: str,
        path: str,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = _error_message(exc.response)
            if status == httpx.codes.NOT_FOUND:
                raise NotFoundError(f"{method} {path}: {message}") from exc
            raise ClientError(
                f"{method} {path} failed with {status}: {message}",
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            raise ClientError(f"{method} {path} failed: {exc}") from exc
        return response


def _decode(method: str, path: str, response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise ClientError(f"{method} {path} returned a malformed body: {exc}") from exc


def _json_or_none(method: str, path: str, response: httpx.Response) -> Any:
    if not response.content:
        return None
    return _decode(method, path, response)


def _total_pages(path: str, response: httpx.Response) -> int | None:
    raw = response.headers.get("X-Pagination-Total-Pages")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ClientError(f"GET {path} returned a malformed page count {raw!r}") from exc


@dataclass(slots=True)
class OrderService:
    """Resolves pending operations (orders) to the id of the entity they produce."""

    api: FlowApiClient

    async def resolve(self, operation: PendingOperation) -> int | None:
        order_id = OrderingPayload(ref=operation.ref).order_id
        payload = await self.api.get(f"/v4/orders/{order_id}")
        try:
            order = OrderPayload.model_validate(payload)
        except ValidationError as exc:
            raise ClientError(f"unexpected order payload: {exc}") from exc
        log.debug("Order %s for %s is %s", order.id, operation.kind, order.status.slug)

        if order.status.id == ORDER_STATUS_FAILED:
            raise ClientError(f"order {order.id} for {operation.kind} failed")
        if order.status.id != ORDER_STATUS_PROCESSED:
            return None
        if order.product_instance is None:
            raise ClientError(f"order {order.id} was processed without a product instance")
        return order.product_instance.id
