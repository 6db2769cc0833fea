"""API route definitions - Player explorer, recommendations and narratives."""

import dataclasses
import logging
from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import ValidationError
from tenacity import RetryError

from fpl_scout.dependencies import get_narrative_service, get_player_service
from fpl_scout.schemas import (
    NarrativeResponse,
    PlayerPageResponse,
    PlayerResponse,
    RecommendationCategoryResponse,
    RecommendationsResponse,
)
from fpl_scout.services.derivation import Position
from fpl_scout.services.filters import FilterSpec, evaluate, paginate, sort_players
from fpl_scout.services.narrative import NarrativeService
from fpl_scout.services.players import PlayerService, PlayerSet
from fpl_scout.services.recommendations import recommend

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["players"])


# =============================================================================
# Route Parameters
# =============================================================================

PlayerIdPath = Annotated[str, Path(min_length=1, description="FPL player id")]

# Optional bound for one end of a filter range (None = use the default)
Bound = Annotated[float | None, Query()]


def _range(field: str, low: float | None, high: float | None) -> tuple[float, float]:
    """Fill missing bounds of a range from the FilterSpec default."""
    default_low, default_high = FilterSpec.model_fields[field].default
    return (
        default_low if low is None else low,
        default_high if high is None else high,
    )


async def _load_player_set(service: PlayerService) -> PlayerSet:
    """Load players, mapping feed failures to 503."""
    try:
        return await service.get_player_set()
    except (httpx.HTTPError, RetryError) as e:
        logger.error(f"Player feed unavailable: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=503,
            detail="Player feed not available. Try again shortly.",
        ) from e


# =============================================================================
# Routes
# =============================================================================


@router.get("/players", response_model=PlayerPageResponse)
async def list_players(
    q: str = Query(default="", description="Search on player name or team code"),
    positions: list[Position] = Query(default=[]),
    teams: list[str] = Query(default=[]),
    min_price: Bound = None,
    max_price: Bound = None,
    min_ownership: Bound = None,
    max_ownership: Bound = None,
    min_minutes: Bound = None,
    max_minutes: Bound = None,
    min_form: Bound = None,
    max_form: Bound = None,
    min_pred_gw: Bound = None,
    max_pred_gw: Bound = None,
    min_pred_3gw: Bound = None,
    max_pred_3gw: Bound = None,
    min_pred_6gw: Bound = None,
    max_pred_6gw: Bound = None,
    min_fdr: Bound = None,
    max_fdr: Bound = None,
    injury_doubts: bool = Query(default=True, description="Include non-Fit players"),
    rotation_risk: bool = Query(
        default=True, description="Include players with rotation risk below 20%"
    ),
    sort: str | None = Query(default=None, description="Column to sort by"),
    descending: bool = False,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=25, ge=1, le=100),
    service: PlayerService = Depends(get_player_service),
) -> PlayerPageResponse:
    """
    Filter, sort and page the derived player set.

    Omitted range bounds default to the full domain of the field.
    """
    bounds = {
        "price_range": (min_price, max_price),
        "ownership_range": (min_ownership, max_ownership),
        "minutes_range": (min_minutes, max_minutes),
        "form_range": (min_form, max_form),
        "pred_pts_gw_range": (min_pred_gw, max_pred_gw),
        "pred_pts_3gw_range": (min_pred_3gw, max_pred_3gw),
        "pred_pts_6gw_range": (min_pred_6gw, max_pred_6gw),
        "fdr_range": (min_fdr, max_fdr),
    }
    try:
        spec = FilterSpec(
            positions=frozenset(positions),
            teams=frozenset(teams),
            injury_doubts=injury_doubts,
            rotation_risk=rotation_risk,
            **{field: _range(field, low, high) for field, (low, high) in bounds.items()},
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    player_set = await _load_player_set(service)
    players = evaluate(player_set.players, spec, q)

    if sort:
        try:
            players = sort_players(players, sort, descending=descending)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e

    result = paginate(players, page=page, per_page=per_page)
    return PlayerPageResponse.model_validate(result, from_attributes=True)


@router.get("/players/{player_id}", response_model=PlayerResponse)
async def get_player(
    player_id: PlayerIdPath,
    service: PlayerService = Depends(get_player_service),
) -> PlayerResponse:
    """Get one derived player record."""
    player_set = await _load_player_set(service)
    player = player_set.get(player_id)
    if player is None:
        raise HTTPException(status_code=404, detail=f"Player {player_id} not found")
    return PlayerResponse.model_validate(player, from_attributes=True)


@router.get("/recommendations", response_model=RecommendationsResponse)
async def get_recommendations(
    service: PlayerService = Depends(get_player_service),
) -> RecommendationsResponse:
    """
    Get the top players of every recommendation category.

    Categories with fewer than 3 eligible players return fewer.
    """
    player_set = await _load_player_set(service)
    results = recommend(player_set.players)
    return RecommendationsResponse(
        current_gameweek=player_set.current_gameweek,
        categories=[
            RecommendationCategoryResponse(
                key=result.key,
                title=result.category.title,
                description=result.category.description,
                confidence=result.confidence,
                players=[
                    PlayerResponse.model_validate(p, from_attributes=True)
                    for p in result.players
                ],
            )
            for result in results
        ],
    )


@router.get("/players/{player_id}/narrative", response_model=NarrativeResponse)
async def get_player_narrative(
    player_id: PlayerIdPath,
    service: PlayerService = Depends(get_player_service),
    narratives: NarrativeService = Depends(get_narrative_service),
) -> NarrativeResponse:
    """
    Get the narrative assessment for a player.

    Uses the external narrative generator when configured and falls back
    to the rule-based assessment when it fails.
    """
    player_set = await _load_player_set(service)
    player = player_set.get(player_id)
    if player is None:
        raise HTTPException(status_code=404, detail=f"Player {player_id} not found")

    narrative = await narratives.analyze(player)
    return NarrativeResponse(player_id=player.id, **dataclasses.asdict(narrative))
