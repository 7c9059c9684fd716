"""Map HTTP failures onto application errors."""
from __future__ import annotations

import logging
from typing import Any

import httpx

from exchange_chat.application.exceptions import (
    AppError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_ERRORS: dict[int, type[AppError]] = {
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
}


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs: Any,
) -> Any:
    """Send a request and return the decoded JSON body, raising an ``AppError`` on failure."""
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        logger.error("%s %s failed: %s", method, url, exc)
        raise TransportError(f"{method} {url} failed: {exc}") from exc

    if response.is_success:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.error("%s %s returned a non-JSON body: %.200s", method, url, response.text)
            raise TransportError(f"{method} {url} returned invalid JSON") from exc

    detail = _detail(response)
    logger.warning("%s %s -> %d: %s", method, url, response.status_code, detail)
    error_cls = _STATUS_ERRORS.get(response.status_code, TransportError)
    raise error_cls(detail)


def make_client(
    base_url: str,
    token: str,
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        transport=transport,
        headers={
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        },
        timeout=timeout,
    )
