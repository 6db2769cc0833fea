"""Squad builder state.

TeamSelection is the one mutable aggregate of the engine. It holds up to 15
players in insertion order, a remaining budget, the running predicted
points total and the captain/vice-captain armbands.

Rules enforced on every mutation (TeamSelectionError on violation):
- At most 15 players, no duplicates
- Squad quotas per position: GK 2, DEF 5, MID 5, FWD 3
- One captain, one vice-captain, never the same player

The budget is not a hard limit: it may go negative, which callers show
as an overspend.
"""

import logging
from dataclasses import dataclass, field

from fpl_scout.services.derivation import PlayerRecord, Position

logger = logging.getLogger(__name__)

__all__ = [
    "SQUAD_SIZE",
    "SQUAD_QUOTAS",
    "DEFAULT_BUDGET",
    "DEFAULT_FORMATION",
    "SelectedPlayer",
    "TeamSelection",
    "TeamSelectionError",
]

SQUAD_SIZE = 15
SQUAD_QUOTAS: dict[Position, int] = {"GK": 2, "DEF": 5, "MID": 5, "FWD": 3}
DEFAULT_BUDGET = 100.0
DEFAULT_FORMATION = "3-5-2"

# Starting eleven shape: (min, max) per position
STARTING_XI_LIMITS: dict[Position, tuple[int, int]] = {
    "GK": (1, 1),
    "DEF": (3, 5),
    "MID": (3, 5),
    "FWD": (1, 3),
}
OUTFIELD_PLAYERS = 10


class TeamSelectionError(ValueError):
    """A team selection mutation broke a squad rule."""


@dataclass(slots=True)
class SelectedPlayer:
    """A player in the squad with armband flags."""

    player: PlayerRecord
    is_captain: bool = False
    is_vice_captain: bool = False

    @property
    def id(self) -> str:
        return self.player.id


@dataclass
class TeamSelection:
    """In-memory squad with budget and captaincy."""

    budget_cap: float = DEFAULT_BUDGET
    formation: str = DEFAULT_FORMATION
    players: list[SelectedPlayer] = field(default_factory=list)
    budget: float = field(init=False, default=DEFAULT_BUDGET)
    total_pred_pts: float = field(init=False, default=0.0)

    def __post_init__(self) -> None:
        self.budget = self.budget_cap
        for selected in self.players:
            self.budget -= selected.player.price
            self.total_pred_pts += selected.player.pred_pts_gw
        self._round_totals()

    def _round_totals(self) -> None:
        # Prices are tenths, keep float drift out of the totals
        self.budget = round(self.budget, 1)
        self.total_pred_pts = round(self.total_pred_pts, 2)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.players)

    def __contains__(self, player_id: object) -> bool:
        return any(s.id == player_id for s in self.players)

    @property
    def is_full(self) -> bool:
        return len(self.players) >= SQUAD_SIZE

    @property
    def is_over_budget(self) -> bool:
        return self.budget < 0

    @property
    def captain(self) -> SelectedPlayer | None:
        return next((s for s in self.players if s.is_captain), None)

    @property
    def vice_captain(self) -> SelectedPlayer | None:
        return next((s for s in self.players if s.is_vice_captain), None)

    def position_counts(self) -> dict[Position, int]:
        """Number of selected players per position (all four keys present)."""
        counts: dict[Position, int] = {position: 0 for position in SQUAD_QUOTAS}
        for selected in self.players:
            counts[selected.player.position] += 1
        return counts

    def can_add(self, player: PlayerRecord) -> bool:
        """Whether add() would accept this player."""
        if self.is_full or player.id in self:
            return False
        return self.position_counts()[player.position] < SQUAD_QUOTAS[player.position]

    def is_formation_valid(self) -> bool:
        """Check the squad forms a legal starting eleven.

        Exactly 1 GK, 3-5 DEF, 3-5 MID, 1-3 FWD and 10 outfield players.
        """
        counts = self.position_counts()
        for position, (low, high) in STARTING_XI_LIMITS.items():
            if not low <= counts[position] <= high:
                return False
        return counts["DEF"] + counts["MID"] + counts["FWD"] == OUTFIELD_PLAYERS

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add(self, player: PlayerRecord) -> None:
        """Add a player, charging their price to the budget.

        Raises:
            TeamSelectionError: If the squad is full, the player is already
                selected, or the position quota is used up
        """
        if self.is_full:
            raise TeamSelectionError(f"Squad already has {SQUAD_SIZE} players")
        if player.id in self:
            raise TeamSelectionError(f"{player.name} is already in the squad")
        if self.position_counts()[player.position] >= SQUAD_QUOTAS[player.position]:
            raise TeamSelectionError(
                f"Squad already has {SQUAD_QUOTAS[player.position]} {player.position} players"
            )

        self.players.append(SelectedPlayer(player=player))
        self.budget -= player.price
        self.total_pred_pts += player.pred_pts_gw
        self._round_totals()
        if self.is_over_budget:
            logger.info(f"Squad over budget by {-self.budget:.1f} after adding {player.name}")

    def remove(self, player_id: str) -> PlayerRecord:
        """Remove a player and refund their price. Armbands go with them.

        Raises:
            TeamSelectionError: If the player is not selected
        """
        for index, selected in enumerate(self.players):
            if selected.id == player_id:
                del self.players[index]
                self.budget += selected.player.price
                self.total_pred_pts -= selected.player.pred_pts_gw
                self._round_totals()
                return selected.player
        raise TeamSelectionError(f"Player {player_id} is not in the squad")

    def _get(self, player_id: str) -> SelectedPlayer:
        for selected in self.players:
            if selected.id == player_id:
                return selected
        raise TeamSelectionError(f"Player {player_id} is not in the squad")

    def set_captain(self, player_id: str) -> None:
        """Give the armband to a player, taking it from anyone else.

        A vice-captain promoted to captain loses the vice role.
        """
        target = self._get(player_id)
        for selected in self.players:
            selected.is_captain = selected is target
        target.is_vice_captain = False

    def set_vice_captain(self, player_id: str) -> None:
        """Make a player vice-captain, taking the role from anyone else.

        A captain moved to vice-captain gives up the armband.
        """
        target = self._get(player_id)
        for selected in self.players:
            selected.is_vice_captain = selected is target
        target.is_captain = False

    def clear(self) -> None:
        """Empty the squad and restore the budget."""
        self.players.clear()
        self.budget = self.budget_cap
        self.total_pred_pts = 0.0
        self.formation = DEFAULT_FORMATION
