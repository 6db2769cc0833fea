"""Narrative API response schema."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class NarrativeResponse(BaseModel):
    """Response for GET /api/v1/players/{player_id}/narrative."""

    model_config = ConfigDict(from_attributes=True)

    player_id: str
    narrative: str
    captain_rating: int = Field(ge=1, le=5)
    transfer_advice: str
    risk_factors: list[str]
    source: Literal["rules", "external"]
