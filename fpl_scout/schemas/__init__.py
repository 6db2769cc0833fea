"""API response schemas."""

from fpl_scout.schemas.narrative import NarrativeResponse
from fpl_scout.schemas.player import (
    HistoryMatchResponse,
    LastMatchResponse,
    PlayerPageResponse,
    PlayerResponse,
)
from fpl_scout.schemas.recommendation import (
    RecommendationCategoryResponse,
    RecommendationsResponse,
)

__all__ = [
    "HistoryMatchResponse",
    "LastMatchResponse",
    "NarrativeResponse",
    "PlayerPageResponse",
    "PlayerResponse",
    "RecommendationCategoryResponse",
    "RecommendationsResponse",
]
