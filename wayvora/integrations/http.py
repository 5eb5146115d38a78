"""Shared request helper for the upstream clients."""

import logging
import time
from typing import Any

import httpx

from wayvora.integrations.errors import (
    UpstreamResponseError,
    UpstreamTimeoutError,
    UpstreamTransportError,
    status_error,
)

logger = logging.getLogger(__name__)


async def request_json(
    service: str,
    method: str,
    url: str,
    *,
    timeout: float,
    headers: dict[str, str] | None = None,
    **kwargs: Any,
) -> Any:
    """Issue one request and return the decoded JSON body.

    Raises a typed UpstreamError on timeout, transport failure, non-2xx status
    or an undecodable body. Any other httpx error (a corrupt compressed body,
    a redirect loop) surfaces as UpstreamResponseError.
    """
    start = time.monotonic()
    try:
        async with httpx.AsyncClient(timeout=timeout, headers=headers) as client:
            response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as e:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.warning("%s timeout | %dms | %s", service, elapsed_ms, url)
        raise UpstreamTimeoutError(service, f"timeout after {elapsed_ms}ms") from e
    except httpx.TransportError as e:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.warning("%s transport error | %dms | %s", service, elapsed_ms, str(e)[:200])
        raise UpstreamTransportError(service, str(e)[:200] or type(e).__name__) from e
    except httpx.HTTPError as e:
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.warning("%s bad response | %s | %dms | %s", service, type(e).__name__, elapsed_ms, str(e)[:200])
        raise UpstreamResponseError(service, f"{type(e).__name__}: {str(e)[:200]}") from e

    elapsed_ms = int((time.monotonic() - start) * 1000)
    if not response.is_success:
        logger.warning("%s | status=%d | %dms", service, response.status_code, elapsed_ms)
        raise status_error(service, response.status_code, response.text[:200])

    try:
        data = response.json()
    except ValueError as e:
        logger.warning("%s | malformed JSON | %dms", service, elapsed_ms)
        raise UpstreamResponseError(service, "malformed JSON response") from e

    logger.info("%s OK | %dms", service, elapsed_ms)
    return data
