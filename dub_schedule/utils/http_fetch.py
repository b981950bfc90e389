"""
HTTP utilities

This module handles JSON fetches from upstream feeds with retry logic.
"""
import logging
import asyncio
from typing import Any

import httpx


logger = logging.getLogger(__name__)


async def fetch_json(
    url: str,
    *,
    method: str = "GET",
    json_body: Any = None,
    headers: dict[str, str] | None = None,
    timeout: float = 30.0,
    max_retries: int = 3,
    backoff_factor: float = 2.0,
    client: httpx.AsyncClient | None = None,
) -> Any:
    """
    Fetch and decode a JSON document with exponential backoff retry logic

    Retries on transient network errors (timeouts, connection errors) and 5xx responses.
    Does NOT retry on 4xx HTTP errors (client errors).

    Args:
        url: URL to request
        method: HTTP method
        json_body: Optional JSON request body
        headers: Optional extra request headers
        timeout: HTTP timeout in seconds
        max_retries: Maximum number of attempts
        backoff_factor: Exponential backoff multiplier (wait = backoff_factor ^ attempt)
        client: Optional shared client; a short-lived one is created otherwise

    Returns:
        Decoded JSON payload

    Raises:
        httpx.HTTPError: If the request fails after all retries
        ValueError: If the response body is not valid JSON
    """
    logger.debug(f"Requesting {method} {url}...")

    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            if client is not None:
                response = await client.request(method, url, json=json_body, headers=headers, timeout=timeout)
            else:
                async with httpx.AsyncClient(timeout=timeout) as own_client:
                    response = await own_client.request(method, url, json=json_body, headers=headers)
            response.raise_for_status()

            payload = response.json()
            logger.debug(f"Fetched {len(response.content) / 1024:.1f} KB from {url}")
            return payload

        except (httpx.TimeoutException, httpx.ConnectError) as e:
            # Transient network errors - retry
            last_error = e
            if attempt < max_retries - 1:
                wait_time = backoff_factor ** attempt
                logger.warning(
                    f"Request attempt {attempt + 1}/{max_retries} failed (transient error): {type(e).__name__}. "
                    f"Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(f"Request failed after {max_retries} attempts (transient error)")

        except httpx.HTTPStatusError as e:
            # HTTP errors - don't retry on 4xx (client error), retry on 5xx (server error)
            if 400 <= e.response.status_code < 500:
                logger.error(f"HTTP {e.response.status_code} (client error): {e}")
                raise

            last_error = e
            if attempt < max_retries - 1:
                wait_time = backoff_factor ** attempt
                logger.warning(
                    f"Request attempt {attempt + 1}/{max_retries} failed "
                    f"(HTTP {e.response.status_code} server error). "
                    f"Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(f"Request failed after {max_retries} attempts (HTTP {e.response.status_code})")

    # If we exhausted all retries, raise the last error
    if last_error:
        raise last_error

    raise RuntimeError(f"Failed to fetch {url} after {max_retries} attempts")


async def post_json(
    url: str,
    payload: Any,
    *,
    timeout: float = 10.0,
    client: httpx.AsyncClient | None = None,
) -> bool:
    """
    Fire a single JSON POST without retries

    Args:
        url: Target URL
        payload: JSON-serializable body
        timeout: HTTP timeout in seconds
        client: Optional shared client

    Returns:
        True if the target answered with a 2xx status, False otherwise
    """
    try:
        if client is not None:
            response = await client.post(url, json=payload, timeout=timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                response = await own_client.post(url, json=payload)
        response.raise_for_status()
        return True
    except httpx.HTTPError as e:
        logger.warning(f"POST to {url} failed: {type(e).__name__}: {e}")
        return False
