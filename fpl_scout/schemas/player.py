"""Player API response schemas.

These Pydantic models are used for API serialization. They can be populated
directly from the engine dataclasses using model_validate(obj, from_attributes=True).
"""

from pydantic import BaseModel, ConfigDict, Field


class LastMatchResponse(BaseModel):
    """One entry of the last-5 gameweek series."""

    model_config = ConfigDict(from_attributes=True)

    gw: int
    minutes: int
    points: int
    xg: float
    xa: float
    xgi: float


class HistoryMatchResponse(BaseModel):
    """One past match against the next opponent."""

    model_config = ConfigDict(from_attributes=True)

    date: str
    minutes: int
    points: int
    xg: float
    xa: float
    shots: int
    chances: int


class PlayerResponse(BaseModel):
    """A derived player record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    team: str
    position: str
    price: float
    ownership: float = Field(ge=0, le=100)

    # Recent form (last 5 gameweeks)
    minutes_l5: int = Field(ge=0, le=450)
    form_l5: float
    xg_l5: float
    xa_l5: float
    xgi_l5: float

    # Season totals
    xg_season: float
    xa_season: float
    xgi_season: float
    total_points: int

    # Predictions
    pred_pts_gw: float
    pred_pts_3gw: float
    pred_pts_6gw: float

    # Next fixture
    next_opponent: str
    next_opponent_fdr: int = Field(ge=1, le=5)

    # Availability
    injury_status: str
    rotation_risk_pct: int = Field(ge=0, le=100)

    history_vs_next_opp: list[HistoryMatchResponse]
    last_matches: list[LastMatchResponse]
    news: list[str]
    photo_url: str | None


class PlayerPageResponse(BaseModel):
    """Response for GET /api/v1/players."""

    model_config = ConfigDict(from_attributes=True)

    players: list[PlayerResponse]
    page: int = Field(ge=1)
    per_page: int = Field(ge=1)
    total: int = Field(ge=0)
    total_pages: int = Field(ge=0)
