"""Player recommendations engine.

Ranks derived players into fixed categories. Each category is an
eligibility predicate, a sort key, a result size and a static confidence:

- Best Value: nailed, fit starters ranked by predicted points per million
- Differentials: low-ownership (0.5-10%) fit players ranked by predicted points
- Budget Enablers: cheap (<= 5.0) regular starters ranked by rotation risk
- Captain Contenders: nailed premiums (>= 9.5) ranked by predicted points

Categories never pad: if fewer than 3 players qualify, fewer are returned.
The confidence values are fixed per category, not computed.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from fpl_scout.services.derivation import PlayerRecord

logger = logging.getLogger(__name__)

# =============================================================================
# Public API
# =============================================================================

__all__ = [
    # Types
    "RecommendationCategory",
    "RecommendationResult",
    # Constants
    "RECOMMENDATION_LIMIT",
    "VALUE_MAX_ROTATION_RISK",
    "VALUE_MIN_MINUTES",
    "VALUE_MIN_OWNERSHIP",
    "DIFFERENTIAL_MAX_OWNERSHIP",
    "DIFFERENTIAL_MIN_OWNERSHIP",
    "DIFFERENTIAL_MAX_ROTATION_RISK",
    "BUDGET_MAX_PRICE",
    "BUDGET_MIN_MINUTES",
    "PREMIUM_MIN_PRICE",
    "PREMIUM_MAX_ROTATION_RISK",
    "PREMIUM_MIN_PREDICTED_POINTS",
    "DEFAULT_CATEGORIES",
    # Eligibility
    "is_fit",
    "is_best_value",
    "is_differential",
    "is_budget_enabler",
    "is_captain_contender",
    # Scoring
    "points_per_million",
    # Ranking
    "get_top_players",
    "recommend",
]

# =============================================================================
# Constants
# =============================================================================

RECOMMENDATION_LIMIT = 3

# Best value
VALUE_MAX_ROTATION_RISK = 20
VALUE_MIN_MINUTES = 270  # 3 full matches in the last 5
VALUE_MIN_OWNERSHIP = 1.0  # Excludes players nobody has picked

# Differentials: below "popular", above statistical noise
DIFFERENTIAL_MAX_OWNERSHIP = 10.0
DIFFERENTIAL_MIN_OWNERSHIP = 0.5
DIFFERENTIAL_MAX_ROTATION_RISK = 35

# Budget enablers
BUDGET_MAX_PRICE = 5.0
BUDGET_MIN_MINUTES = 270

# Captain contenders
PREMIUM_MIN_PRICE = 9.5
PREMIUM_MAX_ROTATION_RISK = 10
PREMIUM_MIN_PREDICTED_POINTS = 6.0


# =============================================================================
# Types
# =============================================================================


@dataclass(frozen=True, slots=True)
class RecommendationCategory:
    """A named ranking rule applied to the whole player pool."""

    key: str
    title: str
    description: str
    confidence: int  # Static percentage shown next to the category
    eligible: Callable[[PlayerRecord], bool]
    sort_key: Callable[[PlayerRecord], Any]
    limit: int = RECOMMENDATION_LIMIT


@dataclass(frozen=True, slots=True)
class RecommendationResult:
    """Top players for one category."""

    category: RecommendationCategory
    players: list[PlayerRecord]

    @property
    def key(self) -> str:
        return self.category.key

    @property
    def confidence(self) -> int:
        return self.category.confidence


# =============================================================================
# 1. Eligibility Functions
# =============================================================================


def is_fit(player: PlayerRecord) -> bool:
    """Only fully available players are ever recommended."""
    return player.injury_status == "Fit"


def is_best_value(player: PlayerRecord) -> bool:
    """Check if player qualifies for Best Value.

    Criteria:
    - Fit
    - Rotation risk <= 20%
    - At least 270 minutes in the last 5
    - Owned by at least 1% (excludes total non-starters)
    - Positive price (points per million must be defined)
    """
    return (
        is_fit(player)
        and player.rotation_risk_pct <= VALUE_MAX_ROTATION_RISK
        and player.minutes_l5 >= VALUE_MIN_MINUTES
        and player.ownership >= VALUE_MIN_OWNERSHIP
        and player.price > 0
    )


def is_differential(player: PlayerRecord) -> bool:
    """Check if player qualifies as a differential.

    Criteria:
    - Fit
    - Ownership in [0.5%, 10%)
    - Rotation risk <= 35%
    """
    return (
        is_fit(player)
        and DIFFERENTIAL_MIN_OWNERSHIP <= player.ownership < DIFFERENTIAL_MAX_OWNERSHIP
        and player.rotation_risk_pct <= DIFFERENTIAL_MAX_ROTATION_RISK
    )


def is_budget_enabler(player: PlayerRecord) -> bool:
    """Check if player qualifies as a budget enabler.

    Criteria:
    - Fit
    - Price <= 5.0
    - At least 270 minutes in the last 5
    """
    return (
        is_fit(player)
        and player.price <= BUDGET_MAX_PRICE
        and player.minutes_l5 >= BUDGET_MIN_MINUTES
    )


def is_captain_contender(player: PlayerRecord) -> bool:
    """Check if player qualifies as a captain contender.

    Criteria:
    - Fit
    - Price >= 9.5
    - Rotation risk <= 10%
    - Predicted points next GW >= 6.0
    """
    return (
        is_fit(player)
        and player.price >= PREMIUM_MIN_PRICE
        and player.rotation_risk_pct <= PREMIUM_MAX_ROTATION_RISK
        and player.pred_pts_gw >= PREMIUM_MIN_PREDICTED_POINTS
    )


# =============================================================================
# 2. Scoring
# =============================================================================


def points_per_million(player: PlayerRecord) -> float:
    """Predicted points per £1m, or 0.0 for a zero price."""
    if player.price <= 0:
        return 0.0
    return player.pred_pts_gw / player.price


# =============================================================================
# 3. Categories
# =============================================================================

# Sort keys put the id last for stable ordering between runs

DEFAULT_CATEGORIES: tuple[RecommendationCategory, ...] = (
    RecommendationCategory(
        key="best_value",
        title="Best Value This Gameweek",
        description="High predicted points relative to price from nailed starters.",
        confidence=92,
        eligible=is_best_value,
        sort_key=lambda p: (-points_per_million(p), p.id),
    ),
    RecommendationCategory(
        key="differentials",
        title="Low Ownership Gems",
        description="Under 10% owned players with secure minutes and upside.",
        confidence=78,
        eligible=is_differential,
        sort_key=lambda p: (-p.pred_pts_gw, p.id),
    ),
    RecommendationCategory(
        key="budget_enablers",
        title="Cheap Starting Players",
        description="Affordable players who regularly start, safest first.",
        confidence=85,
        eligible=is_budget_enabler,
        sort_key=lambda p: (p.rotation_risk_pct, -p.pred_pts_gw, p.id),
    ),
    RecommendationCategory(
        key="captain_contenders",
        title="Captain Contenders",
        description="Nailed premium players with the highest predicted haul.",
        confidence=71,
        eligible=is_captain_contender,
        sort_key=lambda p: (-p.pred_pts_gw, p.id),
    ),
)


# =============================================================================
# 4. Ranking
# =============================================================================


def get_top_players(
    players: Iterable[PlayerRecord],
    category: RecommendationCategory,
) -> list[PlayerRecord]:
    """Apply one category: filter by eligibility, sort, take the limit.

    Args:
        players: Player pool
        category: Category to apply

    Returns:
        At most category.limit eligible players, best first
    """
    eligible = [p for p in players if category.eligible(p)]
    return sorted(eligible, key=category.sort_key)[: category.limit]


def recommend(
    players: Sequence[PlayerRecord],
    categories: Sequence[RecommendationCategory] = DEFAULT_CATEGORIES,
) -> list[RecommendationResult]:
    """Produce one ranked result per category.

    Args:
        players: Full derived player set (not modified)
        categories: Categories to apply, in output order

    Returns:
        List of RecommendationResult in category order
    """
    results = [
        RecommendationResult(category=category, players=get_top_players(players, category))
        for category in categories
    ]
    logger.debug(
        "Recommendations: "
        + ", ".join(f"{r.key}={len(r.players)}" for r in results)
    )
    return results
