"""Recommendation API response schemas."""

from pydantic import BaseModel, Field

from fpl_scout.schemas.player import PlayerResponse


class RecommendationCategoryResponse(BaseModel):
    """Top players for one recommendation category."""

    key: str
    title: str
    description: str
    confidence: int = Field(ge=0, le=100, description="Static confidence percentage")
    players: list[PlayerResponse] = Field(max_length=3)


class RecommendationsResponse(BaseModel):
    """Response for GET /api/v1/recommendations."""

    current_gameweek: int = Field(ge=1)
    categories: list[RecommendationCategoryResponse]
