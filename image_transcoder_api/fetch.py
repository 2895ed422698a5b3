import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from image_transcoder_api.errors import FetchFailed

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[bytes]]


async def _download(url: str, client: httpx.AsyncClient, max_bytes: int) -> bytes:
    async with client.stream("GET", url, follow_redirects=True) as resp:
        resp.raise_for_status()

        declared = resp.headers.get("Content-Length")
        if declared is not None and declared.isdigit() and int(declared) > max_bytes:
            raise FetchFailed(f"Image too large: {declared} bytes (max {max_bytes})")

        body = bytearray()
        async for chunk in resp.aiter_bytes():
            body.extend(chunk)
            if len(body) > max_bytes:
                raise FetchFailed(f"Image too large: more than {max_bytes} bytes")

    logger.debug("Fetched %d bytes from %s", len(body), url)
    return bytes(body)


async def fetch_bytes(
    url: str,
    client: httpx.AsyncClient,
    retries: int = 0,
    backoff: float = 0.5,
    max_bytes: int = 25 * 1024 * 1024,
) -> bytes:
    """
    Download `url` and return the body.

    Transport errors and 5xx responses are retried up to `retries` extra
    times, sleeping backoff * 2**attempt between tries. 4xx responses fail
    straight away.
    """
    attempt = 0
    while True:
        try:
            return await _download(url, client, max_bytes)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status < 500 or attempt >= retries:
                raise FetchFailed(f"Could not fetch image: HTTP {status} from {url}") from e
            logger.warning("Fetch of %s returned HTTP %d, retrying", url, status)
        except httpx.TimeoutException as e:
            if attempt >= retries:
                raise FetchFailed(f"Image download timeout: {url}") from e
            logger.warning("Fetch of %s timed out, retrying", url)
        except httpx.HTTPError as e:
            if attempt >= retries:
                raise FetchFailed(f"Could not fetch image: {e}") from e
            logger.warning("Fetch of %s failed (%s), retrying", url, e)

        await asyncio.sleep(backoff * 2 ** attempt)
        attempt += 1
