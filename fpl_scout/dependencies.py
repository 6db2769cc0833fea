"""Shared FastAPI dependencies for API routes."""

from functools import lru_cache

from fpl_scout.config import get_settings
from fpl_scout.services.fpl_client import FplApiClient
from fpl_scout.services.narrative import NarrativeService
from fpl_scout.services.narrative_client import NarrativeClient
from fpl_scout.services.players import PlayerService


@lru_cache
def get_fpl_client() -> FplApiClient:
    """Process-wide FPL client (one connection pool, one rate limiter)."""
    settings = get_settings()
    return FplApiClient(base_url=settings.fpl_api_base_url)


@lru_cache
def get_player_service() -> PlayerService:
    """FastAPI dependency providing the cached player service.

    Usage:
        @router.get("/endpoint")
        async def endpoint(service: PlayerService = Depends(get_player_service)):
            ...
    """
    settings = get_settings()
    return PlayerService(get_fpl_client(), ttl=settings.cache_ttl_players)


@lru_cache
def get_narrative_service() -> NarrativeService:
    """FastAPI dependency providing the narrative service.

    The external collaborator is attached only when a narrative URL is set.
    """
    settings = get_settings()
    return NarrativeService(
        client=NarrativeClient.from_settings(settings),
        ttl=settings.cache_ttl_narrative,
        external_timeout=settings.narrative_timeout,
    )
