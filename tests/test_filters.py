"""Tests for the filter engine, sorting and pagination."""

import pytest
from pydantic import ValidationError

from fpl_scout.services.derivation import derive_players
from fpl_scout.services.feed_adapter import adapt_feed
from fpl_scout.services.filters import (
    FilterSpec,
    evaluate,
    matches_query,
    paginate,
    passes_filters,
    sort_players,
)
from tests.conftest import make_player


@pytest.fixture
def squad():
    """A mixed pool covering positions, teams, availability and risk."""
    return [
        make_player(id="1", name="Salah", team="LIV", position="MID", price=13.0, rotation_risk_pct=5),
        make_player(id="2", name="Saka", team="ARS", position="MID", price=10.0, injury_status="Doubt"),
        make_player(id="3", name="Raya", team="ARS", position="GK", price=5.5, rotation_risk_pct=0),
        make_player(id="4", name="Wood", team="NFO", position="FWD", price=6.5, rotation_risk_pct=45),
        make_player(id="5", name="Gabriel", team="ARS", position="DEF", price=6.0, injury_status="Injured"),
        make_player(id="6", name="Mykolenko", team="EVE", position="DEF", price=4.5, rotation_risk_pct=25),
    ]


class TestFilterSpec:
    """Tests for FilterSpec validation."""

    def test_defaults_admit_everything(self, squad):
        """The default spec with an empty query returns the input unchanged."""
        assert evaluate(squad, FilterSpec(), "") == squad

    def test_defaults_admit_negative_form(self, bootstrap_payload, fixtures_payload):
        """A red-carded player with negative form passes the default spec."""
        salah = bootstrap_payload["elements"][0]
        salah["form"] = "-0.5"
        salah["ep_next"] = None
        players = derive_players(adapt_feed(bootstrap_payload, fixtures_payload))
        red_carded = next(p for p in players if p.id == "328")

        assert red_carded.form_l5 == -0.5
        assert red_carded.pred_pts_6gw == -3.0
        assert evaluate(players, FilterSpec(), "") == players

    def test_min_greater_than_max_rejected(self):
        """An inverted range is a validation error at construction."""
        with pytest.raises(ValidationError, match="price_range"):
            FilterSpec(price_range=(8.0, 5.0))

    def test_degenerate_range_allowed(self):
        """min == max is a valid single-value range."""
        spec = FilterSpec(fdr_range=(2, 2))

        assert spec.fdr_range == (2, 2)

    def test_frozen(self):
        """Specs are immutable."""
        spec = FilterSpec()

        with pytest.raises(ValidationError):
            spec.injury_doubts = False

    def test_with_changes_revalidates(self):
        """with_changes returns a new validated spec and leaves the original alone."""
        spec = FilterSpec()

        changed = spec.with_changes(price_range=(4.0, 6.0))

        assert changed.price_range == (4.0, 6.0)
        assert spec.price_range == (0.0, 20.0)
        with pytest.raises(ValidationError):
            spec.with_changes(minutes_range=(300, 100))

    def test_unknown_position_rejected(self):
        """Positions must be one of the four FPL positions."""
        with pytest.raises(ValidationError):
            FilterSpec(positions=frozenset({"GKP"}))


class TestEvaluate:
    """Tests for evaluate and its predicates."""

    def test_price_range_inclusive(self):
        """Both bounds are inclusive."""
        players = [make_player(id=str(i), price=p) for i, p in enumerate([4.0, 5.5, 5.6, 3.9])]

        result = evaluate(players, FilterSpec(price_range=(4.0, 5.5)))

        assert [p.price for p in result] == [4.0, 5.5]

    def test_positions(self, squad):
        """Only the selected positions are admitted."""
        result = evaluate(squad, FilterSpec(positions=frozenset({"DEF", "GK"})))

        assert [p.name for p in result] == ["Raya", "Gabriel", "Mykolenko"]

    def test_teams(self, squad):
        """Only the selected teams are admitted."""
        result = evaluate(squad, FilterSpec(teams=frozenset({"ARS"})))

        assert {p.team for p in result} == {"ARS"}
        assert len(result) == 3

    def test_injury_doubts_off_excludes_unavailable(self, squad):
        """With injury_doubts off no non-Fit player is admitted."""
        result = evaluate(squad, FilterSpec(injury_doubts=False))

        assert result
        assert all(p.injury_status == "Fit" for p in result)

    def test_injury_doubts_on_includes_unavailable(self, squad):
        """With injury_doubts on, doubtful and injured players may appear."""
        result = evaluate(squad, FilterSpec(injury_doubts=True))

        assert {"Doubt", "Injured"} <= {p.injury_status for p in result}

    def test_rotation_risk_off_excludes_low_risk(self, squad):
        """With rotation_risk off, players below 20% risk are dropped."""
        result = evaluate(squad, FilterSpec(rotation_risk=False))

        assert [p.name for p in result] == ["Wood", "Mykolenko"]

    def test_rotation_risk_threshold_is_inclusive_of_twenty(self):
        """Exactly 20% risk survives the rotation filter."""
        player = make_player(rotation_risk_pct=20)

        assert passes_filters(player, FilterSpec(rotation_risk=False))

    def test_query_matches_name_or_team(self, squad):
        """Search matches case-insensitively on name or team."""
        assert [p.name for p in evaluate(squad, FilterSpec(), "sa")] == ["Salah", "Saka"]
        assert [p.name for p in evaluate(squad, FilterSpec(), "nfo")] == ["Wood"]

    def test_blank_query_matches(self):
        """Whitespace-only queries match everything."""
        assert matches_query(make_player(), "   ")

    def test_fdr_range(self):
        """FDR range bounds next_opponent_fdr."""
        players = [make_player(id=str(f), next_opponent_fdr=f) for f in range(1, 6)]

        result = evaluate(players, FilterSpec(fdr_range=(2, 3)))

        assert [p.next_opponent_fdr for p in result] == [2, 3]

    def test_preserves_order_and_input(self, squad):
        """Result keeps input order and the input list is not mutated."""
        before = list(squad)

        result = evaluate(squad, FilterSpec(price_range=(5.0, 20.0)))

        assert squad == before
        assert result == [p for p in squad if p.price >= 5.0]

    def test_empty_input(self):
        """No players in, no players out."""
        assert evaluate([], FilterSpec(injury_doubts=False)) == []


class TestSortPlayers:
    """Tests for sort_players."""

    def test_numeric_descending(self, squad):
        """Numeric columns sort by value."""
        result = sort_players(squad, "price", descending=True)

        assert [p.price for p in result] == [13.0, 10.0, 6.5, 6.0, 5.5, 4.5]

    def test_string_case_insensitive(self):
        """String columns compare case-insensitively."""
        players = [make_player(id="1", name="bravo"), make_player(id="2", name="Alpha")]

        assert [p.name for p in sort_players(players, "name")] == ["Alpha", "bravo"]

    def test_stable(self):
        """Equal keys keep their input order."""
        players = [make_player(id=str(i), price=5.0) for i in range(4)]

        assert [p.id for p in sort_players(players, "price")] == ["0", "1", "2", "3"]

    def test_unknown_key(self, squad):
        """Unknown columns are rejected."""
        with pytest.raises(ValueError, match="Cannot sort"):
            sort_players(squad, "last_matches")


class TestPaginate:
    """Tests for paginate."""

    def test_first_page(self):
        """25 per page by default."""
        players = [make_player(id=str(i)) for i in range(60)]

        page = paginate(players)

        assert len(page.players) == 25
        assert page.total == 60
        assert page.total_pages == 3

    def test_last_partial_page(self):
        """The last page holds the remainder."""
        players = [make_player(id=str(i)) for i in range(60)]

        page = paginate(players, page=3)

        assert [p.id for p in page.players] == [str(i) for i in range(50, 60)]

    def test_clamps_out_of_range_page(self):
        """Pages past the end clamp to the last page."""
        players = [make_player(id=str(i)) for i in range(30)]

        assert paginate(players, page=9, per_page=10).page == 3

    def test_empty(self):
        """An empty list is page 1 of 0."""
        page = paginate([])

        assert page.players == []
        assert page.page == 1
        assert page.total_pages == 0

    def test_invalid_per_page(self):
        """per_page must be positive."""
        with pytest.raises(ValueError):
            paginate([], per_page=0)
