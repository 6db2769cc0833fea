"""Service layer for business logic."""

from fpl_scout.services.fpl_client import FplApiClient
from fpl_scout.services.narrative import NarrativeService
from fpl_scout.services.players import PlayerService

__all__ = ["FplApiClient", "NarrativeService", "PlayerService"]
