"""Explorer session state.

AppState holds everything a player-explorer session works with: the derived
player set, the active filters and search query, the filtered view with its
pagination, the compare list and the team selection. It is an ordinary
object owned by the caller and passed around explicitly.

Every mutator that changes the filter inputs recomputes the filtered view
with filters.evaluate() and resets to the first page.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from fpl_scout.services.derivation import PlayerRecord
from fpl_scout.services.filters import FilterSpec, Page, evaluate, paginate
from fpl_scout.services.team_selection import TeamSelection

logger = logging.getLogger(__name__)

COMPARE_LIMIT = 3
DEFAULT_ITEMS_PER_PAGE = 25


@dataclass
class AppState:
    """Mutable session state around the pure engine functions."""

    players: list[PlayerRecord] = field(default_factory=list)
    filters: FilterSpec = field(default_factory=FilterSpec)
    search_query: str = ""
    filtered_players: list[PlayerRecord] = field(default_factory=list)
    current_page: int = 1
    items_per_page: int = DEFAULT_ITEMS_PER_PAGE
    current_gameweek: int = 1
    selected_player: PlayerRecord | None = None
    compare_list: list[PlayerRecord] = field(default_factory=list)
    team: TeamSelection = field(default_factory=TeamSelection)

    def __post_init__(self) -> None:
        self._refilter()

    def _refilter(self) -> None:
        self.filtered_players = evaluate(self.players, self.filters, self.search_query)
        self.current_page = 1

    @property
    def total_pages(self) -> int:
        return self.page().total_pages

    # -------------------------------------------------------------------------
    # Data & filters
    # -------------------------------------------------------------------------

    def set_players(self, players: list[PlayerRecord], current_gameweek: int | None = None) -> None:
        """Replace the player set and recompute the filtered view."""
        self.players = list(players)
        if current_gameweek is not None:
            self.current_gameweek = current_gameweek
        self._refilter()
        logger.debug(f"Loaded {len(self.players)} players, {len(self.filtered_players)} match filters")

    def set_search_query(self, query: str) -> None:
        self.search_query = query
        self._refilter()

    def update_filters(self, **changes: Any) -> None:
        """Change some filter fields.

        Raises:
            pydantic.ValidationError: If the result is not a valid FilterSpec;
                the current filters are left untouched
        """
        self.filters = self.filters.with_changes(**changes)
        self._refilter()

    def clear_filters(self) -> None:
        """Reset to the default (admit everything) filters, keeping the query."""
        self.filters = FilterSpec()
        self._refilter()

    # -------------------------------------------------------------------------
    # Pagination
    # -------------------------------------------------------------------------

    def set_page(self, page: int) -> None:
        self.current_page = max(1, page)

    def set_items_per_page(self, items: int) -> None:
        if items < 1:
            raise ValueError("items_per_page must be >= 1")
        self.items_per_page = items
        self.current_page = 1

    def page(self) -> Page:
        """Current page of the filtered view."""
        return paginate(self.filtered_players, self.current_page, self.items_per_page)

    # -------------------------------------------------------------------------
    # Selection & compare
    # -------------------------------------------------------------------------

    def find_player(self, player_id: str) -> PlayerRecord | None:
        return next((p for p in self.players if p.id == player_id), None)

    def select_player(self, player_id: str | None) -> PlayerRecord | None:
        """Set (or clear with None) the player shown in detail."""
        self.selected_player = self.find_player(player_id) if player_id else None
        return self.selected_player

    def add_to_compare(self, player: PlayerRecord) -> bool:
        """Add to the compare list. Returns False when full or already there."""
        if len(self.compare_list) >= COMPARE_LIMIT:
            return False
        if any(p.id == player.id for p in self.compare_list):
            return False
        self.compare_list.append(player)
        return True

    def remove_from_compare(self, player_id: str) -> None:
        self.compare_list = [p for p in self.compare_list if p.id != player_id]

    def clear_compare(self) -> None:
        self.compare_list = []
