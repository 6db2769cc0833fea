"""Player filter engine.

A FilterSpec describes the admitted region of player-space: allowed
positions and teams, inclusive [min, max] ranges for ten numeric
dimensions, and two relaxation flags. evaluate() applies it together with
a free-text query and returns the admitted players in their original order.

The relaxation flags work the other way round from every other filter:
switching them on widens the result.
- injury_doubts=False drops every player whose status is not Fit
- rotation_risk=False drops every player with rotation risk below 20%

Also contains the table helpers that sit on top of filtering: column
sorting and pagination.
"""

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from fpl_scout.services.derivation import PlayerRecord, Position

__all__ = [
    "ROTATION_RISK_THRESHOLD",
    "FilterSpec",
    "Page",
    "SORTABLE_FIELDS",
    "evaluate",
    "matches_query",
    "passes_filters",
    "sort_players",
    "paginate",
]

# Players below this rotation risk are dropped unless rotation_risk is on
ROTATION_RISK_THRESHOLD = 20

Range = tuple[float, float]


class FilterSpec(BaseModel):
    """Validated, immutable description of which players to admit.

    Empty position/team sets mean "no restriction". All ranges are
    inclusive on both ends. The defaults span the full domain of every
    field and enable both relaxation flags, so FilterSpec() admits all
    players.
    """

    model_config = ConfigDict(frozen=True)

    positions: frozenset[Position] = frozenset()
    teams: frozenset[str] = frozenset()
    price_range: Range = (0.0, 20.0)
    ownership_range: Range = (0.0, 100.0)
    minutes_range: Range = (0.0, 450.0)
    # Form (and predictions falling back to it) go negative after red cards
    form_range: Range = (-10.0, 30.0)
    pred_pts_gw_range: Range = (-10.0, 30.0)
    pred_pts_3gw_range: Range = (-30.0, 90.0)
    pred_pts_6gw_range: Range = (-60.0, 180.0)
    fdr_range: Range = (1.0, 5.0)
    injury_doubts: bool = True
    rotation_risk: bool = True

    @model_validator(mode="after")
    def _check_ranges(self) -> "FilterSpec":
        for name in RANGE_FIELDS:
            low, high = getattr(self, name)
            if low > high:
                raise ValueError(f"{name} min ({low}) must be <= max ({high})")
        return self

    def with_changes(self, **changes: Any) -> "FilterSpec":
        """Return a new spec with some fields replaced, re-validated."""
        return FilterSpec.model_validate({**self.model_dump(), **changes})


# Spec range field -> PlayerRecord attribute it bounds
RANGE_FIELDS: dict[str, str] = {
    "price_range": "price",
    "ownership_range": "ownership",
    "minutes_range": "minutes_l5",
    "form_range": "form_l5",
    "pred_pts_gw_range": "pred_pts_gw",
    "pred_pts_3gw_range": "pred_pts_3gw",
    "pred_pts_6gw_range": "pred_pts_6gw",
    "fdr_range": "next_opponent_fdr",
}


def matches_query(player: PlayerRecord, query: str) -> bool:
    """Case-insensitive substring match on name or team. Empty query matches."""
    needle = query.strip().lower()
    if not needle:
        return True
    return needle in player.name.lower() or needle in player.team.lower()


def passes_filters(player: PlayerRecord, spec: FilterSpec) -> bool:
    """Check one player against every predicate of the spec (no query)."""
    if spec.positions and player.position not in spec.positions:
        return False

    if spec.teams and player.team not in spec.teams:
        return False

    for range_field, attribute in RANGE_FIELDS.items():
        low, high = getattr(spec, range_field)
        value = getattr(player, attribute)
        if value < low or value > high:
            return False

    if not spec.injury_doubts and player.injury_status != "Fit":
        return False

    if not spec.rotation_risk and player.rotation_risk_pct < ROTATION_RISK_THRESHOLD:
        return False

    return True


def evaluate(
    players: Iterable[PlayerRecord],
    spec: FilterSpec,
    query: str = "",
) -> list[PlayerRecord]:
    """Return the players admitted by spec and query, preserving order.

    Args:
        players: Derived player records (not modified)
        spec: Filter specification
        query: Free-text search on name or team code

    Returns:
        New list with the admitted players
    """
    return [p for p in players if matches_query(p, query) and passes_filters(p, spec)]


# =============================================================================
# Sorting & Pagination
# =============================================================================

SORTABLE_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "team",
        "position",
        "price",
        "ownership",
        "minutes_l5",
        "form_l5",
        "xg_l5",
        "xa_l5",
        "xgi_l5",
        "xg_season",
        "xa_season",
        "xgi_season",
        "total_points",
        "pred_pts_gw",
        "pred_pts_3gw",
        "pred_pts_6gw",
        "next_opponent",
        "next_opponent_fdr",
        "injury_status",
        "rotation_risk_pct",
    }
)


def _sort_key(field: str) -> Callable[[PlayerRecord], Any]:
    def key(player: PlayerRecord) -> Any:
        value = getattr(player, field)
        return value.lower() if isinstance(value, str) else value

    return key


def sort_players(
    players: Sequence[PlayerRecord],
    key: str,
    descending: bool = False,
) -> list[PlayerRecord]:
    """Sort players by a column. Stable, strings compare case-insensitively.

    Raises:
        ValueError: If key is not a sortable field
    """
    if key not in SORTABLE_FIELDS:
        raise ValueError(f"Cannot sort by '{key}'")
    return sorted(players, key=_sort_key(key), reverse=descending)


@dataclass(slots=True)
class Page:
    """One page of a player list."""

    players: list[PlayerRecord]
    page: int
    per_page: int
    total: int
    total_pages: int


def paginate(players: Sequence[PlayerRecord], page: int = 1, per_page: int = 25) -> Page:
    """Slice a player list into a page.

    Pages are 1-based. Requests past the end clamp to the last page.

    Raises:
        ValueError: If per_page < 1
    """
    if per_page < 1:
        raise ValueError("per_page must be >= 1")

    total = len(players)
    total_pages = math.ceil(total / per_page)
    current = min(max(1, page), max(1, total_pages))
    start = (current - 1) * per_page

    return Page(
        players=list(players[start : start + per_page]),
        page=current,
        per_page=per_page,
        total=total,
        total_pages=total_pages,
    )
