"""Player service: fetch → adapt → derive, with a TTL cache.

The derived player set is rebuilt at most once per TTL window. Concurrent
callers on a cold cache wait on one rebuild instead of each fetching and
deriving the feed.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import date

from cachetools import TTLCache

from fpl_scout.services.derivation import PlayerRecord, derive_players
from fpl_scout.services.feed_adapter import adapt_feed
from fpl_scout.services.fpl_client import FplApiClient

logger = logging.getLogger(__name__)

PLAYERS_CACHE_KEY = "players"
DEFAULT_PLAYERS_TTL = 300


@dataclass(slots=True)
class PlayerSet:
    """Derived players for one feed snapshot."""

    players: list[PlayerRecord]
    current_gameweek: int
    fetched_at: float = 0.0
    _by_id: dict[str, PlayerRecord] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self._by_id = {p.id: p for p in self.players}

    def get(self, player_id: str) -> PlayerRecord | None:
        return self._by_id.get(player_id)


class PlayerService:
    """Builds and caches the derived player set."""

    def __init__(self, client: FplApiClient, ttl: float = DEFAULT_PLAYERS_TTL) -> None:
        self.client = client
        self._cache: TTLCache[str, PlayerSet] = TTLCache(maxsize=1, ttl=ttl)
        self._lock = asyncio.Lock()

    async def _build(self, today: date | None = None) -> PlayerSet:
        bootstrap = await self.client.get_bootstrap_static()
        fixtures = await self.client.get_fixtures()

        feed = adapt_feed(bootstrap, fixtures)
        players = derive_players(feed, today)
        return PlayerSet(
            players=players,
            current_gameweek=feed.current_gameweek,
            fetched_at=time.time(),
        )

    async def get_player_set(self) -> PlayerSet:
        """Get the derived player set, rebuilding when the cache expired.

        Raises:
            httpx.HTTPError: If the feed cannot be fetched
        """
        cached = self._cache.get(PLAYERS_CACHE_KEY)
        if cached is not None:
            return cached

        async with self._lock:
            cached = self._cache.get(PLAYERS_CACHE_KEY)
            if cached is not None:
                return cached

            start = time.monotonic()
            player_set = await self._build()
            self._cache[PLAYERS_CACHE_KEY] = player_set
            logger.info(
                f"Built player set: {len(player_set.players)} players, "
                f"GW{player_set.current_gameweek}, {time.monotonic() - start:.2f}s"
            )
            return player_set

    async def get_players(self) -> list[PlayerRecord]:
        return (await self.get_player_set()).players

    async def get_player(self, player_id: str) -> PlayerRecord | None:
        return (await self.get_player_set()).get(player_id)

    def clear_cache(self) -> None:
        self._cache.clear()
