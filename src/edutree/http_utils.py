"""HTTP utilities for talking to the hierarchy API with retry logic."""

from __future__ import annotations

import asyncio
from typing import Any, Final

import httpx

from edutree.config import EDUTREE_HTTP_BACKOFF_S, EDUTREE_HTTP_MAX_RETRIES
from edutree.exceptions import (
    EdutreeError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
)

RETRY_STATUS_CODES: Final[frozenset[int]] = frozenset({429, 500, 502, 503, 504})

ERROR_STATUS_CODES: Final[dict[int, type[EdutreeError]]] = {
    400: InvalidArgumentError,
    404: NotFoundError,
    409: InvalidStateError,
    422: InvalidArgumentError,
}


def error_from_response(response: httpx.Response) -> EdutreeError:
    """Translate an error response into the matching edutree exception."""
    try:
        detail = response.json().get("detail", response.text)
    except (ValueError, AttributeError):
        detail = response.text
    exc_class = ERROR_STATUS_CODES.get(response.status_code, PersistenceError)
    return exc_class(f"HTTP {response.status_code} from {response.request.url}: {detail}")


async def request_with_retries(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    json: Any = None,
    max_retries: int = EDUTREE_HTTP_MAX_RETRIES,
    backoff_s: float = EDUTREE_HTTP_BACKOFF_S,
) -> Any:
    """Send a request, retrying transient failures, and decode the JSON body.

    Args:
        client: Client carrying base URL, timeout and headers.
        method: HTTP method.
        url: URL relative to the client's base URL.
        json: Optional JSON request body.
        max_retries: Retries after the first attempt.
        backoff_s: Initial backoff, doubled after every attempt.

    Returns:
        The decoded JSON response body.

    Raises:
        NotFoundError, InvalidArgumentError, InvalidStateError: For the
            matching client error status codes. These are not retried.
        PersistenceError: If the request still fails after all retries.
    """
    last_exc: Exception | None = None

    for attempt in range(max_retries + 1):
        try:
            response = await client.request(method, url, json=json)
            if response.status_code in RETRY_STATUS_CODES:
                last_exc = PersistenceError(f"HTTP {response.status_code} from {url}")
            elif response.is_error:
                raise error_from_response(response)
            else:
                return response.json()
        except httpx.RequestError as exc:
            last_exc = exc

        if attempt < max_retries:
            await asyncio.sleep(backoff_s * (2**attempt))

    raise PersistenceError(f"Failed to {method} {url}: {last_exc}")
