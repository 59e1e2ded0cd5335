from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx

from disaster_api.errors import ApiError

ClientFactory = Callable[[], httpx.AsyncClient]


def default_client_factory(timeout_seconds: float) -> ClientFactory:
    return lambda: httpx.AsyncClient(timeout=timeout_seconds)


async def request_json(
    factory: ClientFactory,
    method: str,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    json: Any | None = None,
) -> Any:
    try:
        async with factory() as client:
            response = await client.request(method, url, params=params, headers=headers, json=json)
            response.raise_for_status()
    except httpx.TimeoutException as exc:
        raise ApiError("UPSTREAM_TIMEOUT", "Upstream timeout", 504) from exc
    except httpx.HTTPStatusError as exc:
        raise ApiError(
            "UPSTREAM_HTTP_ERROR",
            f"Upstream returned {exc.response.status_code}",
            502,
        ) from exc
    except httpx.HTTPError as exc:
        raise ApiError("UPSTREAM_FAILURE", "Upstream request failed", 502) from exc

    try:
        return response.json()
    except ValueError as exc:
        raise ApiError("UPSTREAM_BAD_PAYLOAD", "Upstream returned invalid JSON", 502) from exc


async def fetch_bytes(factory: ClientFactory, url: str) -> tuple[bytes, str | None]:
    try:
        async with factory() as client:
            response = await client.get(url, follow_redirects=True)
            response.raise_for_status()
    except httpx.TimeoutException as exc:
        raise ApiError("UPSTREAM_TIMEOUT", "Upstream timeout", 504) from exc
    except httpx.HTTPStatusError as exc:
        raise ApiError("UPSTREAM_HTTP_ERROR", f"Upstream returned {exc.response.status_code}", 502) from exc
    except httpx.HTTPError as exc:
        raise ApiError("UPSTREAM_FAILURE", "Upstream request failed", 502) from exc
    return response.content, response.headers.get("content-type")
