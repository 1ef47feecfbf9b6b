"""
Cadence CRM - Revenue Radar upstream HTTP helpers

All radar adapters share one httpx.AsyncClient per search request.
FAIL-OPEN: any transport error, timeout, non-2xx or invalid body -> None.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar

import httpx

from config import RADAR_HTTP_TIMEOUT, RADAR_UPSTREAM_CONCURRENCY

logger = logging.getLogger("radar_http")

T = TypeVar("T")


def new_radar_client() -> httpx.AsyncClient:
    """Client used by a search request; every call is bounded by RADAR_HTTP_TIMEOUT."""
    return httpx.AsyncClient(timeout=RADAR_HTTP_TIMEOUT, follow_redirects=True)


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    tag: str = "HTTP",
) -> Optional[Any]:
    try:
        resp = await client.get(url, params=params, headers=headers)
    except httpx.TimeoutException:
        logger.warning(f"[{tag}] Timeout {url}")
        return None
    except httpx.HTTPError as e:
        logger.warning(f"[{tag}] Transport error {url}: {e}")
        return None

    if resp.status_code >= 400:
        logger.warning(f"[{tag}] HTTP {resp.status_code} {url}")
        return None

    try:
        return resp.json()
    except ValueError:
        logger.warning(f"[{tag}] Invalid JSON from {url}")
        return None


async def fetch_text(
    client: httpx.AsyncClient,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    tag: str = "HTTP",
) -> Optional[str]:
    try:
        resp = await client.get(url, headers=headers)
    except httpx.HTTPError as e:
        logger.debug(f"[{tag}] {url}: {e}")
        return None
    if resp.status_code >= 400:
        return None
    return resp.text


async def bounded_gather(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[Any]],
    limit: int = RADAR_UPSTREAM_CONCURRENCY,
) -> List[Any]:
    """gather() with at most `limit` workers in flight."""
    semaphore = asyncio.Semaphore(max(1, limit))

    async def _run(item):
        async with semaphore:
            return await worker(item)

    return await asyncio.gather(*[_run(item) for item in items])


def evenly_spaced_indices(total: int, max_calls: int) -> List[int]:
    """Up to max_calls indices spread across range(total)."""
    if total <= 0 or max_calls <= 0:
        return []
    step = max(1, total // max_calls)
    indices = []
    i = 0
    while i < total and len(indices) < max_calls:
        indices.append(i)
        i += step
    return indices
