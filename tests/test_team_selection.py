"""Tests for the squad builder."""

import pytest

from fpl_scout.services.team_selection import (
    DEFAULT_BUDGET,
    SQUAD_QUOTAS,
    SQUAD_SIZE,
    SelectedPlayer,
    TeamSelection,
    TeamSelectionError,
)
from tests.conftest import make_player


def full_squad() -> list:
    """Fifteen players filling every quota, 5.0 each."""
    players = []
    for position, quota in SQUAD_QUOTAS.items():
        for i in range(quota):
            players.append(make_player(id=f"{position}{i}", position=position, price=5.0))
    return players


class TestAddRemove:
    """Tests for add and remove."""

    def test_new_team_is_empty(self):
        team = TeamSelection()

        assert len(team) == 0
        assert team.budget == DEFAULT_BUDGET
        assert team.total_pred_pts == 0.0
        assert team.captain is None

    def test_add_charges_budget(self):
        """Adding a player deducts price and adds predicted points."""
        team = TeamSelection()

        team.add(make_player(id="1", price=7.5, pred_pts_gw=5.2))
        team.add(make_player(id="2", price=4.3, pred_pts_gw=2.1))

        assert team.budget == 88.2
        assert team.total_pred_pts == 7.3
        assert "1" in team
        assert "3" not in team

    def test_remove_refunds(self):
        """Removing restores the budget and returns the player."""
        team = TeamSelection()
        team.add(make_player(id="1", price=7.5, pred_pts_gw=5.2))

        removed = team.remove("1")

        assert removed.id == "1"
        assert team.budget == DEFAULT_BUDGET
        assert team.total_pred_pts == 0.0

    def test_remove_unknown(self):
        with pytest.raises(TeamSelectionError):
            TeamSelection().remove("99")

    def test_duplicate_rejected(self):
        """A player can only be selected once."""
        team = TeamSelection()
        team.add(make_player(id="1"))

        with pytest.raises(TeamSelectionError, match="already in the squad"):
            team.add(make_player(id="1"))

        assert len(team) == 1

    def test_position_quota(self):
        """At most two goalkeepers."""
        team = TeamSelection()
        team.add(make_player(id="1", position="GK"))
        team.add(make_player(id="2", position="GK"))

        assert not team.can_add(make_player(id="3", position="GK"))
        with pytest.raises(TeamSelectionError, match="GK"):
            team.add(make_player(id="3", position="GK"))

    def test_squad_size_limit(self):
        """A full squad rejects further players."""
        team = TeamSelection()
        for player in full_squad():
            team.add(player)

        assert len(team) == SQUAD_SIZE
        assert team.is_full
        with pytest.raises(TeamSelectionError, match="15"):
            team.add(make_player(id="extra"))

    def test_budget_may_go_negative(self):
        """Overspending is allowed and reported."""
        team = TeamSelection(budget_cap=10.0)
        team.add(make_player(id="1", price=6.0))
        team.add(make_player(id="2", price=6.0))

        assert team.budget == -2.0
        assert team.is_over_budget

    def test_insertion_order_kept(self):
        team = TeamSelection()
        for pid in ("c", "a", "b"):
            team.add(make_player(id=pid))

        assert [s.id for s in team.players] == ["c", "a", "b"]

    def test_initial_players_charged(self):
        """Players passed to the constructor count against the budget."""
        team = TeamSelection(players=[SelectedPlayer(make_player(id="1", price=12.5, pred_pts_gw=8.0))])

        assert team.budget == 87.5
        assert team.total_pred_pts == 8.0


class TestCaptaincy:
    """Tests for captain and vice-captain."""

    @pytest.fixture
    def team(self):
        team = TeamSelection()
        for pid in ("1", "2", "3"):
            team.add(make_player(id=pid))
        return team

    def test_single_captain(self, team: TeamSelection):
        """Setting a new captain takes the armband from the old one."""
        team.set_captain("1")
        team.set_captain("2")

        assert team.captain.id == "2"
        assert sum(s.is_captain for s in team.players) == 1

    def test_vice_captain(self, team: TeamSelection):
        team.set_captain("1")
        team.set_vice_captain("2")

        assert team.vice_captain.id == "2"

    def test_captain_moved_to_vice(self, team: TeamSelection):
        """Making the captain vice-captain takes the armband off them."""
        team.set_captain("1")
        team.set_vice_captain("1")

        assert team.vice_captain.id == "1"
        assert team.captain is None
        assert not any(s.is_captain and s.is_vice_captain for s in team.players)

    def test_promoting_vice_clears_vice(self, team: TeamSelection):
        """A vice-captain made captain loses the vice role."""
        team.set_vice_captain("2")
        team.set_captain("2")

        assert team.captain.id == "2"
        assert team.vice_captain is None

    def test_unknown_player(self, team: TeamSelection):
        with pytest.raises(TeamSelectionError):
            team.set_captain("99")

    def test_removed_captain_leaves_no_armband(self, team: TeamSelection):
        team.set_captain("1")
        team.remove("1")

        assert team.captain is None


class TestFormation:
    """Tests for is_formation_valid and clear."""

    def test_valid_eleven(self):
        """1 GK, 3 DEF, 5 MID, 2 FWD is a legal 3-5-2."""
        team = TeamSelection()
        layout = {"GK": 1, "DEF": 3, "MID": 5, "FWD": 2}
        for position, count in layout.items():
            for i in range(count):
                team.add(make_player(id=f"{position}{i}", position=position))

        assert team.is_formation_valid()

    def test_two_keepers_not_a_starting_eleven(self):
        team = TeamSelection()
        team.add(make_player(id="g1", position="GK"))
        team.add(make_player(id="g2", position="GK"))

        assert not team.is_formation_valid()

    def test_full_squad_not_a_starting_eleven(self):
        team = TeamSelection()
        for player in full_squad():
            team.add(player)

        assert not team.is_formation_valid()

    def test_clear(self):
        """Clearing empties the squad and restores the budget."""
        team = TeamSelection(formation="4-4-2")
        team.add(make_player(id="1", price=9.0))
        team.set_captain("1")

        team.clear()

        assert len(team) == 0
        assert team.budget == DEFAULT_BUDGET
        assert team.captain is None
        assert team.formation == "3-5-2"
