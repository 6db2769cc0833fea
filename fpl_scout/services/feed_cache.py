"""Shared cache for the raw FPL feed (bootstrap-static and fixtures).

This module provides singleton caches for the two payloads the engine is
derived from, to:
1. Avoid parsing the ~1.8MB bootstrap response once per request
2. Reduce FPL API calls (data rarely changes during a gameweek)
3. Handle concurrent requests without thundering herd via asyncio.Lock

Each payload is cached once (maxsize=1). TTLs come from settings
(defaults: bootstrap 5 minutes, fixtures 10 minutes).
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from cachetools import TTLCache

from fpl_scout.config import get_settings

logger = logging.getLogger(__name__)

_settings = get_settings()

# Cache configuration
BOOTSTRAP_CACHE_TTL = _settings.cache_ttl_bootstrap
FIXTURES_CACHE_TTL = _settings.cache_ttl_fixtures
FEED_CACHE_SIZE = 1  # Only cache one version (current)

BOOTSTRAP_KEY = "bootstrap"
FIXTURES_KEY = "fixtures"

Fetcher = Callable[[str], Awaitable[Any]]

# Module-level singleton caches
_bootstrap_cache: TTLCache[str, dict[str, Any]] = TTLCache(
    maxsize=FEED_CACHE_SIZE,
    ttl=BOOTSTRAP_CACHE_TTL,
)
_fixtures_cache: TTLCache[str, list[dict[str, Any]]] = TTLCache(
    maxsize=FEED_CACHE_SIZE,
    ttl=FIXTURES_CACHE_TTL,
)

# Locks to prevent thundering herd on cache miss
# Note: FastAPI uses a single event loop, so module-level locks are safe.
_bootstrap_lock = asyncio.Lock()
_fixtures_lock = asyncio.Lock()


async def _get_or_fetch(
    cache: TTLCache,
    lock: asyncio.Lock,
    key: str,
    url: str,
    fetcher: Fetcher,
    is_valid: Callable[[Any], bool],
) -> Any:
    """Return cached payload or fetch it once under the lock.

    Invalid payloads are returned to the caller but never cached.
    """
    # Fast path: check cache without lock
    cached = cache.get(key)
    if cached is not None:
        logger.debug(f"Feed cache hit: {key}")
        return cached

    async with lock:
        # Double-check after acquiring lock (another request may have populated)
        cached = cache.get(key)
        if cached is not None:
            logger.debug(f"Feed cache hit (after lock): {key}")
            return cached

        logger.info(f"Fetching {key} from FPL API (cache miss)")
        start = time.monotonic()

        try:
            data = await fetcher(url)
        except Exception as e:
            logger.error(
                f"Failed to fetch {key}: {type(e).__name__}: {e}. "
                "Request will fail, next request will retry."
            )
            raise

        elapsed = time.monotonic() - start

        if not is_valid(data):
            logger.error(
                f"Invalid {key} response, not caching. "
                f"Response sample: {str(data)[:200]}. "
                "API may be under maintenance or rate-limiting."
            )
            return data

        cache[key] = data
        entries = len(data) if isinstance(data, list) else len(data["elements"])
        logger.info(f"Cached {key}: {entries} entries, fetched in {elapsed:.2f}s")
        return data


def _is_valid_bootstrap(data: Any) -> bool:
    return isinstance(data, dict) and bool(data.get("elements"))


def _is_valid_fixtures(data: Any) -> bool:
    return isinstance(data, list)


async def get_cached_bootstrap(fetcher: Fetcher, url: str) -> dict[str, Any]:
    """Get bootstrap-static data from cache or fetch if expired/missing.

    Args:
        fetcher: Async function that takes a URL and returns parsed JSON.
                 This is the FplApiClient._get method.
        url: bootstrap-static URL

    Returns:
        Bootstrap-static data dict with elements, events, teams arrays

    Raises:
        httpx.HTTPError: If fetch fails
    """
    return await _get_or_fetch(
        _bootstrap_cache, _bootstrap_lock, BOOTSTRAP_KEY, url, fetcher, _is_valid_bootstrap
    )


async def get_cached_fixtures(fetcher: Fetcher, url: str) -> list[dict[str, Any]]:
    """Get the season fixtures list from cache or fetch if expired/missing."""
    return await _get_or_fetch(
        _fixtures_cache, _fixtures_lock, FIXTURES_KEY, url, fetcher, _is_valid_fixtures
    )


def clear_cache() -> None:
    """Clear both feed caches. Used by tests to ensure isolation."""
    _bootstrap_cache.clear()
    _fixtures_cache.clear()
