"""Shared pytest fixtures for backend tests."""

from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from fpl_scout.main import app
from fpl_scout.services.derivation import PlayerRecord
from fpl_scout.services.feed_cache import clear_cache


def make_player(**overrides: Any) -> PlayerRecord:
    """Build a PlayerRecord with sensible defaults (a fit, nailed midfielder)."""
    fields: dict[str, Any] = {
        "id": "1",
        "name": "Test Player",
        "team": "ARS",
        "position": "MID",
        "price": 6.0,
        "ownership": 5.0,
        "minutes_l5": 450,
        "form_l5": 5.0,
        "xg_l5": 1.0,
        "xa_l5": 0.5,
        "xgi_l5": 1.5,
        "xg_season": 3.0,
        "xa_season": 1.5,
        "xgi_season": 4.5,
        "total_points": 50,
        "pred_pts_gw": 5.0,
        "pred_pts_3gw": 15.0,
        "pred_pts_6gw": 30.0,
        "next_opponent": "CHE (H)",
        "next_opponent_fdr": 3,
        "injury_status": "Fit",
        "rotation_risk_pct": 10,
    }
    if "pred_pts_gw" in overrides:
        # Keep the longer horizons consistent with the single-gameweek figure
        fields["pred_pts_3gw"] = 3 * overrides["pred_pts_gw"]
        fields["pred_pts_6gw"] = 6 * overrides["pred_pts_gw"]
    fields.update(overrides)
    return PlayerRecord(**fields)


@pytest.fixture(autouse=True)
def clear_feed_cache():
    """Clear the shared feed cache before and after each test."""
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def bootstrap_payload() -> dict[str, Any]:
    """A small bootstrap-static payload (strings where FPL sends strings)."""
    return {
        "elements": [
            {
                "id": 328,
                "web_name": "Salah",
                "team": 12,
                "element_type": 3,
                "status": "a",
                "now_cost": 130,
                "selected_by_percent": "45.2",
                "minutes": 1530,
                "total_points": 150,
                "form": "8.5",
                "expected_goals": "12.30",
                "expected_assists": "6.10",
                "expected_goal_involvements": "18.40",
                "ep_next": "9.2",
                "news": "",
                "photo": "118748.jpg",
            },
            {
                "id": 1,
                "web_name": "Raya",
                "team": 1,
                "element_type": 1,
                "status": "a",
                "now_cost": 55,
                "selected_by_percent": "20.1",
                "minutes": 1530,
                "total_points": 80,
                "form": "4.0",
                "expected_goals": "0.00",
                "expected_assists": "0.00",
                "expected_goal_involvements": "0.00",
                "ep_next": "4.5",
                "news": "",
                "photo": "154561.jpg",
            },
            {
                "id": 2,
                "web_name": "Backup",
                "team": 1,
                "element_type": 1,
                "status": "d",
                "now_cost": 40,
                "selected_by_percent": "0.3",
                "minutes": 0,
                "total_points": 0,
                "form": "0.0",
                "expected_goals": "0.00",
                "expected_assists": "0.00",
                "expected_goal_involvements": "0.00",
                "ep_next": "0.0",
                "news": "Knock - 75% chance of playing",
                "photo": "",
            },
        ],
        "teams": [
            {"id": 1, "name": "Arsenal", "short_name": "ARS"},
            {"id": 12, "name": "Liverpool", "short_name": "LIV"},
        ],
        "element_types": [
            {"id": 1, "singular_name_short": "GKP"},
            {"id": 2, "singular_name_short": "DEF"},
            {"id": 3, "singular_name_short": "MID"},
            {"id": 4, "singular_name_short": "FWD"},
        ],
        "events": [
            {"id": 16, "is_current": False, "finished": True},
            {"id": 17, "is_current": True, "finished": False},
            {"id": 18, "is_current": False, "finished": False},
        ],
    }


@pytest.fixture
def fixtures_payload() -> list[dict[str, Any]]:
    """Fixtures: one finished, one upcoming ARS v LIV."""
    return [
        {
            "id": 160,
            "event": 16,
            "team_h": 12,
            "team_a": 1,
            "team_h_difficulty": 4,
            "team_a_difficulty": 5,
            "kickoff_time": "2024-12-14T15:00:00Z",
            "finished": True,
        },
        {
            "id": 171,
            "event": 17,
            "team_h": 1,
            "team_a": 12,
            "team_h_difficulty": 5,
            "team_a_difficulty": 4,
            "kickoff_time": "2024-12-21T17:30:00Z",
            "finished": False,
        },
    ]


@pytest.fixture
async def async_client():
    """Async HTTP client for testing the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
