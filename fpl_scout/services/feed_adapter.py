"""Raw feed adapter.

Normalizes the FPL bootstrap-static payload and the fixtures array into
typed, engine-neutral shapes. The provider sends most numeric fields as
strings ("7.5", "12.3") and occasionally nulls or empty strings, so every
field goes through a safe converter and degrades to a neutral default.

Nothing in here raises for a single malformed entry: bad player rows are
skipped with a warning, bad fields fall back to defaults.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)

__all__ = [
    "RawPlayer",
    "RawTeam",
    "RawPosition",
    "RawFixture",
    "RawFeed",
    "adapt_feed",
    "adapt_player",
    "adapt_fixture",
    "resolve_current_gameweek",
    "safe_int",
    "safe_float",
    "safe_optional_float",
]


def safe_int(val: Any, default: int = 0) -> int:
    """Safely convert API value to int, handling None and empty strings."""
    if val is None or val == "" or isinstance(val, bool):
        return default
    try:
        return int(float(val))
    except (ValueError, TypeError, OverflowError):
        return default


def safe_float(val: Any, default: float = 0.0) -> float:
    """Safely convert API value to float, handling None and empty strings."""
    result = safe_optional_float(val)
    return default if result is None else result


def safe_optional_float(val: Any) -> float | None:
    """Convert API value to float, returning None when absent or non-numeric."""
    if val is None or val == "" or isinstance(val, bool):
        return None
    try:
        result = float(val)
    except (ValueError, TypeError):
        return None
    # NaN and infinities are as useless as a missing value
    if result != result or result in (float("inf"), float("-inf")):
        return None
    return result


def _parse_kickoff(val: Any) -> datetime | None:
    """Parse an ISO-8601 kickoff time ("2024-08-16T19:00:00Z")."""
    if not isinstance(val, str) or not val:
        return None
    try:
        return datetime.fromisoformat(val.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(slots=True)
class RawTeam:
    """A Premier League team from bootstrap-static."""

    id: int
    name: str
    short_name: str


@dataclass(slots=True)
class RawPosition:
    """A position type (element_types) from bootstrap-static."""

    id: int
    singular_name_short: str


@dataclass(slots=True)
class RawFixture:
    """A fixture from the fixtures endpoint."""

    id: int
    event: int | None
    team_h: int
    team_a: int
    team_h_difficulty: int
    team_a_difficulty: int
    kickoff_time: datetime | None
    finished: bool


@dataclass(slots=True)
class RawPlayer:
    """A player element with numeric fields already parsed."""

    id: int
    web_name: str
    team: int
    element_type: int
    status: str
    now_cost: int
    selected_by_percent: float
    minutes: int
    total_points: int
    form: float
    expected_goals: float
    expected_assists: float
    expected_goal_involvements: float
    ep_next: float | None  # None when absent or non-numeric
    news: str
    photo: str


@dataclass
class RawFeed:
    """Normalized provider payload consumed by the derivation engine."""

    players: list[RawPlayer]
    teams: dict[int, RawTeam] = field(default_factory=dict)
    positions: dict[int, RawPosition] = field(default_factory=dict)
    fixtures: list[RawFixture] = field(default_factory=list)
    current_gameweek: int = 1

    def team_short_name(self, team_id: int) -> str | None:
        team = self.teams.get(team_id)
        return team.short_name if team is not None else None


def adapt_player(entry: dict[str, Any]) -> RawPlayer | None:
    """Convert one raw element into a RawPlayer.

    Returns None when the entry has no usable id; every other field
    falls back to a neutral default.
    """
    player_id = safe_int(entry.get("id"), default=-1)
    if player_id < 0:
        return None

    return RawPlayer(
        id=player_id,
        web_name=str(entry.get("web_name") or "Unknown"),
        team=safe_int(entry.get("team")),
        element_type=safe_int(entry.get("element_type")),
        status=str(entry.get("status") or "a"),
        now_cost=max(0, safe_int(entry.get("now_cost"))),
        selected_by_percent=min(100.0, max(0.0, safe_float(entry.get("selected_by_percent")))),
        minutes=max(0, safe_int(entry.get("minutes"))),
        total_points=safe_int(entry.get("total_points")),
        form=safe_float(entry.get("form")),
        expected_goals=max(0.0, safe_float(entry.get("expected_goals"))),
        expected_assists=max(0.0, safe_float(entry.get("expected_assists"))),
        expected_goal_involvements=max(
            0.0, safe_float(entry.get("expected_goal_involvements"))
        ),
        ep_next=safe_optional_float(entry.get("ep_next")),
        news=str(entry.get("news") or ""),
        photo=str(entry.get("photo") or ""),
    )


def adapt_fixture(entry: dict[str, Any]) -> RawFixture | None:
    """Convert one raw fixture. Fixtures without both teams are dropped."""
    team_h = safe_int(entry.get("team_h"), default=-1)
    team_a = safe_int(entry.get("team_a"), default=-1)
    if team_h < 0 or team_a < 0:
        return None

    event = entry.get("event")
    return RawFixture(
        id=safe_int(entry.get("id")),
        event=safe_int(event) if event is not None else None,
        team_h=team_h,
        team_a=team_a,
        # Default to neutral FDR (3) if missing or None
        team_h_difficulty=safe_int(entry.get("team_h_difficulty"), default=3),
        team_a_difficulty=safe_int(entry.get("team_a_difficulty"), default=3),
        kickoff_time=_parse_kickoff(entry.get("kickoff_time")),
        finished=bool(entry.get("finished", False)),
    )


def resolve_current_gameweek(events: list[dict[str, Any]]) -> int:
    """Current gameweek: is_current event, else last finished, else 1."""
    for event in events:
        if event.get("is_current") and event.get("id") is not None:
            return safe_int(event["id"], default=1)

    finished = [safe_int(e.get("id")) for e in events if e.get("finished")]
    if finished:
        return max(1, max(finished))
    return 1


def adapt_feed(
    bootstrap: dict[str, Any],
    fixtures: list[dict[str, Any]] | None = None,
) -> RawFeed:
    """Normalize a bootstrap-static payload plus fixtures into a RawFeed.

    Args:
        bootstrap: Raw bootstrap-static dict (elements, teams, element_types, events)
        fixtures: Raw fixtures array (may be None or empty)

    Returns:
        RawFeed with parsed players, teams, positions and fixtures
    """
    players: list[RawPlayer] = []
    skipped = 0
    for entry in bootstrap.get("elements") or []:
        if not isinstance(entry, dict):
            skipped += 1
            continue
        player = adapt_player(entry)
        if player is None:
            skipped += 1
            continue
        players.append(player)

    if skipped:
        logger.warning(f"Skipped {skipped} malformed player entries in bootstrap feed")

    teams: dict[int, RawTeam] = {}
    for entry in bootstrap.get("teams") or []:
        if not isinstance(entry, dict):
            continue
        team_id = safe_int(entry.get("id"), default=-1)
        if team_id < 0:
            continue
        teams[team_id] = RawTeam(
            id=team_id,
            name=str(entry.get("name") or ""),
            short_name=str(entry.get("short_name") or ""),
        )

    positions: dict[int, RawPosition] = {}
    for entry in bootstrap.get("element_types") or []:
        if not isinstance(entry, dict):
            continue
        position_id = safe_int(entry.get("id"), default=-1)
        if position_id < 0:
            continue
        positions[position_id] = RawPosition(
            id=position_id,
            singular_name_short=str(entry.get("singular_name_short") or ""),
        )

    parsed_fixtures: list[RawFixture] = []
    for entry in fixtures or []:
        if not isinstance(entry, dict):
            continue
        fixture = adapt_fixture(entry)
        if fixture is not None:
            parsed_fixtures.append(fixture)

    return RawFeed(
        players=players,
        teams=teams,
        positions=positions,
        fixtures=parsed_fixtures,
        current_gameweek=resolve_current_gameweek(bootstrap.get("events") or []),
    )
