"""
Low-level HTTP helpers for the store's REST gateway.
Requests are retried on timeout; error statuses become ApiResponseError.
"""
import asyncio
import logging
import aiohttp

from .exceptions import ApiResponseError

_LOGGER = logging.getLogger(__name__)

REQUEST_TIMEOUT = 5  # seconds, multiplied by attempt number for each retry
REQUEST_ATTEMPTS = 3  # maximum number of retry attempts


def store_headers(api_key: str) -> dict:
    """Build the authentication headers expected by the store's REST gateway."""
    return {
        "apikey": api_key,
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


async def make_request(
    method: str,
    url: str,
    headers: dict,
    payload: dict | list | None = None,
    params: dict | None = None,
    timeout: int = REQUEST_TIMEOUT,
    max_attempts: int = REQUEST_ATTEMPTS,
):
    """
    Make an HTTP request with automatic retry on timeout.

    Args:
        method: HTTP method (GET, POST, PATCH)
        url: Target URL for the request
        headers: HTTP headers dictionary
        payload: JSON payload for POST/PATCH requests (optional)
        params: URL query parameters (optional)
        timeout: Base timeout in seconds (multiplied by attempt number for each retry)
        max_attempts: Maximum number of attempts

    Returns:
        Parsed JSON response, or None for empty responses

    Raises:
        asyncio.TimeoutError: If all attempts time out
        ApiResponseError: If the store answers with an error status
        ValueError: If the method is unsupported or the response is not JSON
    """
    method = method.upper()
    if method not in ("GET", "POST", "PATCH"):
        raise ValueError(f"Unsupported HTTP method: {method}")

    for attempt in range(max_attempts):
        timeout_config = aiohttp.ClientTimeout(total=timeout * (attempt + 1))
        try:
            async with aiohttp.ClientSession(timeout=timeout_config) as session:
                async with session.request(
                    method, url, headers=headers, json=payload, params=params
                ) as response:
                    return await _process_response(response, url)

        except (asyncio.TimeoutError, TimeoutError):
            if attempt < max_attempts - 1:
                _LOGGER.debug(
                    "Timeout on %s %s (attempt %s/%s), retrying",
                    method, url, attempt + 1, max_attempts,
                )
                continue
            _LOGGER.warning(
                "Timeout on %s request to %s after %s attempts",
                method, url, max_attempts,
            )
            raise

    return None


async def _process_response(response, url: str):
    """
    Process an HTTP response and extract JSON data.

    Raises:
        ApiResponseError: For error statuses
        ValueError: If a successful response is not JSON
    """
    content_type = response.headers.get("Content-Type", "")

    if response.status == 204:
        return None

    if 200 <= response.status < 300:
        if "application/json" in content_type:
            return await response.json()
        text = await response.text()
        if not text:
            return None
        _LOGGER.warning(
            "Unexpected content type in successful response: %s (status %s) from %s",
            content_type, response.status, url,
        )
        raise ValueError(f"Expected JSON but got {content_type}: {text[:200]}")

    if "application/json" in content_type:
        error_json = await response.json()
        raise ApiResponseError(response.status, error_json)

    text = await response.text()
    _LOGGER.warning(
        "Received non-JSON error response from %s: status %s, body preview: %s",
        url, response.status, text[:200],
    )
    raise ApiResponseError(response.status, {"message": text[:200]})
