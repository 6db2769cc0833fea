"""Tests for the recommendations engine.

Tests cover:
- Eligibility rules per category
- Ranking and the 3-player limit
- No padding when few players qualify
- Static confidence values
"""

import pytest

from fpl_scout.services.recommendations import (
    DEFAULT_CATEGORIES,
    RECOMMENDATION_LIMIT,
    get_top_players,
    is_best_value,
    is_budget_enabler,
    is_captain_contender,
    is_differential,
    points_per_million,
    recommend,
)
from tests.conftest import make_player


def category(key: str):
    return next(c for c in DEFAULT_CATEGORIES if c.key == key)


class TestEligibility:
    """Tests for category eligibility predicates."""

    def test_best_value(self):
        """Nailed, fit, regular starter with some ownership."""
        assert is_best_value(make_player(rotation_risk_pct=20, minutes_l5=270, ownership=1.0))
        assert not is_best_value(make_player(rotation_risk_pct=21))
        assert not is_best_value(make_player(minutes_l5=269))
        assert not is_best_value(make_player(ownership=0.9))
        assert not is_best_value(make_player(injury_status="Doubt"))
        assert not is_best_value(make_player(price=0.0))

    @pytest.mark.parametrize(
        ("ownership", "expected"),
        [(0.4, False), (0.5, True), (5.0, True), (9.9, True), (10.0, False)],
    )
    def test_differential_ownership_band(self, ownership: float, expected: bool):
        """Differentials sit in [0.5%, 10%) ownership."""
        assert is_differential(make_player(ownership=ownership)) is expected

    def test_differential_rotation_limit(self):
        """Differentials need rotation risk of at most 35%."""
        assert is_differential(make_player(rotation_risk_pct=35))
        assert not is_differential(make_player(rotation_risk_pct=36))

    def test_budget_enabler(self):
        """Cheap regular starters."""
        assert is_budget_enabler(make_player(price=5.0, minutes_l5=270))
        assert not is_budget_enabler(make_player(price=5.1))
        assert not is_budget_enabler(make_player(price=4.5, minutes_l5=200))
        assert not is_budget_enabler(make_player(price=4.5, injury_status="Suspended"))

    def test_captain_contender(self):
        """Nailed premiums with a strong prediction."""
        assert is_captain_contender(make_player(price=9.5, rotation_risk_pct=10, pred_pts_gw=6.0))
        assert not is_captain_contender(make_player(price=9.4, pred_pts_gw=8.0))
        assert not is_captain_contender(make_player(price=12.0, rotation_risk_pct=11, pred_pts_gw=8.0))
        assert not is_captain_contender(make_player(price=12.0, pred_pts_gw=5.9))


class TestScoring:
    """Tests for points_per_million."""

    def test_ratio(self):
        assert points_per_million(make_player(price=5.0, pred_pts_gw=5.0)) == 1.0

    def test_zero_price(self):
        """Free players score 0 instead of dividing by zero."""
        assert points_per_million(make_player(price=0.0)) == 0.0


class TestRanking:
    """Tests for get_top_players and recommend."""

    def test_best_value_sorted_by_points_per_million(self):
        """Best value ranks by predicted points per million."""
        players = [
            make_player(id="a", price=10.0, pred_pts_gw=7.0),  # 0.70
            make_player(id="b", price=5.0, pred_pts_gw=5.0),  # 1.00
            make_player(id="c", price=8.0, pred_pts_gw=6.8),  # 0.85
            make_player(id="d", price=4.5, pred_pts_gw=4.0),  # 0.89
        ]

        result = get_top_players(players, category("best_value"))

        assert [p.id for p in result] == ["b", "d", "c"]

    def test_budget_enablers_sorted_by_rotation_risk(self):
        """Budget enablers put the safest starters first."""
        players = [
            make_player(id="a", price=4.5, rotation_risk_pct=30, pred_pts_gw=6.0),
            make_player(id="b", price=4.5, rotation_risk_pct=5, pred_pts_gw=3.0),
            make_player(id="c", price=5.0, rotation_risk_pct=5, pred_pts_gw=4.0),
        ]

        result = get_top_players(players, category("budget_enablers"))

        assert [p.id for p in result] == ["c", "b", "a"]

    def test_ties_broken_by_id(self):
        """Equal scores fall back to id order."""
        players = [make_player(id=i, ownership=3.0, pred_pts_gw=5.0) for i in ("z", "m", "a")]

        result = get_top_players(players, category("differentials"))

        assert [p.id for p in result] == ["a", "m", "z"]

    def test_limit_three(self):
        """At most three players per category, all eligible."""
        players = [
            make_player(id=str(i), ownership=3.0, pred_pts_gw=float(i)) for i in range(10)
        ]

        for result in recommend(players):
            assert len(result.players) <= RECOMMENDATION_LIMIT
            assert all(result.category.eligible(p) for p in result.players)

        differentials = next(r for r in recommend(players) if r.key == "differentials")
        assert [p.id for p in differentials.players] == ["9", "8", "7"]

    def test_no_padding(self):
        """A category with one eligible player returns exactly one."""
        players = [
            make_player(id="1", price=12.0, rotation_risk_pct=5, pred_pts_gw=8.0),
            make_player(id="2", price=12.0, rotation_risk_pct=50, pred_pts_gw=8.0),
        ]

        result = get_top_players(players, category("captain_contenders"))

        assert [p.id for p in result] == ["1"]

    def test_empty_pool(self):
        """No players gives empty categories, not errors."""
        results = recommend([])

        assert [r.key for r in results] == [
            "best_value",
            "differentials",
            "budget_enablers",
            "captain_contenders",
        ]
        assert all(r.players == [] for r in results)

    def test_unfit_players_never_recommended(self):
        """Injured players are excluded from every category."""
        players = [
            make_player(id="1", price=4.5, ownership=3.0, injury_status="Injured"),
            make_player(id="2", price=12.0, pred_pts_gw=9.0, injury_status="Doubt"),
        ]

        assert all(r.players == [] for r in recommend(players))

    def test_static_confidence(self):
        """Confidence is fixed per category."""
        confidences = {r.key: r.confidence for r in recommend([])}

        assert confidences == {
            "best_value": 92,
            "differentials": 78,
            "budget_enablers": 85,
            "captain_contenders": 71,
        }

    def test_input_not_mutated(self):
        """recommend never reorders the caller's list."""
        players = [make_player(id=str(i), ownership=3.0, pred_pts_gw=float(i)) for i in range(5)]
        before = list(players)

        recommend(players)

        assert players == before
