"""Player derivation engine.

Turns normalized feed entries (see feed_adapter) into analytics-enriched
PlayerRecords:
- Position and availability mapping
- Next fixture and its difficulty (FDR)
- Rotation risk heuristic (0-100)
- Predicted points for 1, 3 and 6 gameweeks
- Synthetic last-5 match series and history vs the next opponent

Everything here is deterministic. The synthetic series use a random.Random
seeded from the player id, so re-deriving the same feed yields identical
records. The only wall-clock input is `today`, used for the display dates
of historical matches.
"""

import logging
import random
from dataclasses import dataclass
from datetime import date
from typing import Literal

from fpl_scout.services.feed_adapter import RawFeed, RawFixture, RawPlayer

logger = logging.getLogger(__name__)

__all__ = [
    "Position",
    "InjuryStatus",
    "POSITIONS",
    "POSITION_MAP",
    "STATUS_MAP",
    "DEFAULT_FDR",
    "UNKNOWN_OPPONENT",
    "LastMatch",
    "HistoryMatch",
    "PlayerRecord",
    "map_position",
    "map_status",
    "find_next_fixture",
    "resolve_next_opponent",
    "calculate_rotation_risk",
    "calculate_predicted_points",
    "estimate_games_played",
    "generate_last_matches",
    "generate_history_vs_opponent",
    "derive_player",
    "derive_players",
]

Position = Literal["GK", "DEF", "MID", "FWD"]
InjuryStatus = Literal["Fit", "Doubt", "Injured", "Suspended"]

# =============================================================================
# Constants
# =============================================================================

POSITIONS: tuple[Position, ...] = ("GK", "DEF", "MID", "FWD")

# FPL element_type -> position
POSITION_MAP: dict[int, Position] = {1: "GK", 2: "DEF", 3: "MID", 4: "FWD"}

# element_types.singular_name_short -> position (FPL uses "GKP")
POSITION_SHORT_NAME_MAP: dict[str, Position] = {
    "GKP": "GK",
    "GK": "GK",
    "DEF": "DEF",
    "MID": "MID",
    "FWD": "FWD",
}
FALLBACK_POSITION: Position = "MID"

# FPL status code -> availability. 'u' (unavailable/left club) stays Fit
# for display, rotation risk picks it up instead.
STATUS_MAP: dict[str, InjuryStatus] = {
    "a": "Fit",
    "d": "Doubt",
    "i": "Injured",
    "s": "Suspended",
    "u": "Fit",
}

DEFAULT_FDR = 3
FDR_MIN = 1
FDR_MAX = 5
UNKNOWN_OPPONENT = "TBD"
UNKNOWN_TEAM = "UNK"

PHOTO_URL_TEMPLATE = (
    "https://resources.premierleague.com/premierleague/photos/players/250x250/p{photo}"
)

# Recent-form window
L5_MATCHES = 5
L5_MAX_MINUTES = 90 * L5_MATCHES

# History vs next opponent is only generated for players with real minutes
HISTORY_MIN_MINUTES = 180
HISTORY_MAX_MATCHES = 3
HISTORY_MINUTES_PER_MATCH = 450

# Rotation risk policy.
# Base risk by share of available minutes played: (min_share, risk)
MINUTES_SHARE_TIERS: tuple[tuple[float, int], ...] = (
    (0.8, 5),  # Nailed starter
    (0.6, 15),  # Regular starter with occasional rest
    (0.4, 35),  # Rotation player
    (0.2, 65),  # Squad player
)
MINUTES_SHARE_FLOOR_RISK = 90  # Rarely plays

# Goalkeepers either play every minute or none
GK_STARTER_SHARE = 0.5
GK_SHARED_SHARE = 0.15
GK_STARTER_RISK = 5
GK_SHARED_RISK = 25
GK_BACKUP_RISK = 95

# Ownership tiers: (min_ownership_pct, adjustment), checked top-down
OWNERSHIP_TIERS: tuple[tuple[float, int], ...] = (
    (20.0, -10),
    (10.0, -5),
    (2.0, 0),
)
OWNERSHIP_FLOOR_ADJUSTMENT = 20  # Below 2% owned

# Points-per-gameweek tiers: (min_ppg, adjustment), checked top-down
POINTS_TIERS: tuple[tuple[float, int], ...] = (
    (5.0, -10),
    (3.5, -5),
    (1.0, 0),
)
POINTS_FLOOR_ADJUSTMENT = 10

# Price tiers
PREMIUM_PRICE = 10.0
PREMIUM_ADJUSTMENT = -5
BASEMENT_PRICE = 4.5
BASEMENT_ADJUSTMENT = 5

# Status penalties, never negative
STATUS_RISK_PENALTY: dict[str, int] = {
    "i": 30,
    "s": 30,
    "u": 30,
    "d": 10,
}

ROTATION_RISK_MIN = 0
ROTATION_RISK_MAX = 100

# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True, slots=True)
class LastMatch:
    """One entry of the synthetic last-5 series."""

    gw: int
    minutes: int
    points: int
    xg: float
    xa: float
    xgi: float


@dataclass(frozen=True, slots=True)
class HistoryMatch:
    """A past match against the upcoming opponent."""

    date: str  # ISO date, display only
    minutes: int
    points: int
    xg: float
    xa: float
    shots: int
    chances: int


@dataclass(frozen=True, slots=True)
class PlayerRecord:
    """Analytics-enriched player, immutable after derivation."""

    # Identity
    id: str
    name: str
    team: str
    position: Position

    # Market
    price: float
    ownership: float

    # Last 5 matches
    minutes_l5: int
    form_l5: float
    xg_l5: float
    xa_l5: float
    xgi_l5: float

    # Season totals
    xg_season: float
    xa_season: float
    xgi_season: float
    total_points: int

    # Predictions
    pred_pts_gw: float
    pred_pts_3gw: float
    pred_pts_6gw: float

    # Fixture context
    next_opponent: str
    next_opponent_fdr: int

    # Risk
    injury_status: InjuryStatus
    rotation_risk_pct: int

    # History
    history_vs_next_opp: tuple[HistoryMatch, ...] = ()
    last_matches: tuple[LastMatch, ...] = ()

    # Optional
    news: tuple[str, ...] = ()
    photo_url: str | None = None


# =============================================================================
# 1. Mapping
# =============================================================================


def map_position(element_type: int, feed: RawFeed | None = None) -> Position:
    """Map an FPL element_type to a position.

    Unknown codes are looked up in the feed's element_types, then fall
    back to MID.
    """
    position = POSITION_MAP.get(element_type)
    if position is not None:
        return position

    if feed is not None:
        raw_position = feed.positions.get(element_type)
        if raw_position is not None:
            mapped = POSITION_SHORT_NAME_MAP.get(raw_position.singular_name_short.upper())
            if mapped is not None:
                return mapped

    logger.debug(f"Unknown element_type {element_type}, defaulting to {FALLBACK_POSITION}")
    return FALLBACK_POSITION


def map_status(status: str) -> InjuryStatus:
    """Map an FPL status code to availability, failing closed to Fit."""
    return STATUS_MAP.get(status, "Fit")


# =============================================================================
# 2. Next Fixture
# =============================================================================


def find_next_fixture(team_id: int, fixtures: list[RawFixture]) -> RawFixture | None:
    """Earliest unfinished fixture for a team.

    Fixtures without a kickoff time sort last; ties keep feed order.
    """
    candidates = [
        (index, fixture)
        for index, fixture in enumerate(fixtures)
        if not fixture.finished and team_id in (fixture.team_h, fixture.team_a)
    ]
    if not candidates:
        return None

    def sort_key(item: tuple[int, RawFixture]) -> tuple[bool, float, int]:
        index, fixture = item
        if fixture.kickoff_time is None:
            return (True, 0.0, index)
        return (False, fixture.kickoff_time.timestamp(), index)

    return min(candidates, key=sort_key)[1]


def _valid_fdr(value: int) -> int:
    return value if FDR_MIN <= value <= FDR_MAX else DEFAULT_FDR


def resolve_next_opponent(team_id: int, feed: RawFeed) -> tuple[str, int, bool | None]:
    """Resolve the next opponent display string and FDR for a team.

    Returns:
        (display, fdr, is_home). Display is e.g. "LIV (H)". With no
        upcoming fixture: ("TBD", 3, None).
    """
    fixture = find_next_fixture(team_id, feed.fixtures)
    if fixture is None:
        return UNKNOWN_OPPONENT, DEFAULT_FDR, None

    is_home = fixture.team_h == team_id
    opponent_id = fixture.team_a if is_home else fixture.team_h
    opponent = feed.team_short_name(opponent_id) or UNKNOWN_OPPONENT
    difficulty = fixture.team_h_difficulty if is_home else fixture.team_a_difficulty

    return f"{opponent} ({'H' if is_home else 'A'})", _valid_fdr(difficulty), is_home


# =============================================================================
# 3. Rotation Risk
# =============================================================================


def _minutes_share_risk(minutes_share: float) -> int:
    for min_share, risk in MINUTES_SHARE_TIERS:
        if minutes_share >= min_share:
            return risk
    return MINUTES_SHARE_FLOOR_RISK


def _goalkeeper_risk(minutes_share: float) -> int:
    if minutes_share >= GK_STARTER_SHARE:
        return GK_STARTER_RISK
    if minutes_share >= GK_SHARED_SHARE:
        return GK_SHARED_RISK
    return GK_BACKUP_RISK


def _ownership_adjustment(ownership: float) -> int:
    for min_ownership, adjustment in OWNERSHIP_TIERS:
        if ownership >= min_ownership:
            return adjustment
    return OWNERSHIP_FLOOR_ADJUSTMENT


def _points_adjustment(points_per_gameweek: float) -> int:
    for min_ppg, adjustment in POINTS_TIERS:
        if points_per_gameweek >= min_ppg:
            return adjustment
    return POINTS_FLOOR_ADJUSTMENT


def _price_adjustment(price: float) -> int:
    if price >= PREMIUM_PRICE:
        return PREMIUM_ADJUSTMENT
    if price < BASEMENT_PRICE:
        return BASEMENT_ADJUSTMENT
    return 0


def calculate_rotation_risk(
    position: Position,
    minutes: int,
    gameweeks_played: int,
    ownership: float,
    total_points: int,
    price: float,
    status: str,
) -> int:
    """Estimate the chance (0-100) that a player does not start.

    Sums bounded tier adjustments on top of a minutes-share base:

    - Base: share of available minutes played (goalkeepers are bimodal)
    - Ownership: widely owned players are rarely benched
    - Points per gameweek: regular returners keep their place
    - Price: premiums start, basement players often don't
    - Status: injuries and suspensions only ever add risk

    Each adjustment is non-increasing in ownership and points, so the
    result is monotone in both. Clamped to [0, 100].

    Args:
        position: Player position
        minutes: Season minutes
        gameweeks_played: Gameweeks elapsed so far (>= 1)
        ownership: Selected-by percentage (0-100)
        total_points: Season total points
        price: Price in millions
        status: Raw FPL status code

    Returns:
        Rotation risk percentage
    """
    gameweeks = max(1, gameweeks_played)
    minutes_share = max(0, minutes) / (90 * gameweeks)

    if position == "GK":
        risk = _goalkeeper_risk(minutes_share)
    else:
        risk = _minutes_share_risk(minutes_share)

    risk += _ownership_adjustment(ownership)
    risk += _points_adjustment(total_points / gameweeks)
    risk += _price_adjustment(price)
    risk += STATUS_RISK_PENALTY.get(status, 0)

    return min(ROTATION_RISK_MAX, max(ROTATION_RISK_MIN, risk))


# =============================================================================
# 4. Predicted Points
# =============================================================================


def calculate_predicted_points(ep_next: float | None, form: float) -> tuple[float, float, float]:
    """Predicted points for the next 1, 3 and 6 gameweeks.

    Uses the feed's ep_next, falling back to form. The longer horizons
    are exact multiples, not separate forecasts.
    """
    gw = ep_next if ep_next is not None else form
    return gw, 3 * gw, 6 * gw


# =============================================================================
# 5. Synthetic Match Series
# =============================================================================


def estimate_games_played(minutes: int) -> int:
    """Full-match equivalents played, at least 1."""
    return max(1, minutes // 90)


def generate_last_matches(raw: RawPlayer, current_gameweek: int) -> tuple[LastMatch, ...]:
    """Build the 5-entry recent-match series, oldest first.

    Season totals are spread evenly over the estimated games played and
    nudged by a bounded, per-player reproducible perturbation. Players
    with no minutes get empty matches.
    """
    games = estimate_games_played(raw.minutes)
    avg_points = raw.total_points / games
    avg_minutes = min(90.0, raw.minutes / games)
    last_gw = max(current_gameweek, L5_MATCHES)

    matches = []
    for gw in range(last_gw - L5_MATCHES + 1, last_gw + 1):
        if raw.minutes <= 0:
            matches.append(LastMatch(gw=gw, minutes=0, points=0, xg=0.0, xa=0.0, xgi=0.0))
            continue

        rng = random.Random(f"{raw.id}:{gw}")
        points = max(0, round(avg_points + rng.uniform(-1.5, 1.5)))
        minutes = min(90, max(0, round(avg_minutes + rng.uniform(-15.0, 5.0))))
        matches.append(
            LastMatch(
                gw=gw,
                minutes=minutes,
                points=points,
                xg=round(raw.expected_goals / games + rng.uniform(0.0, 0.3), 2),
                xa=round(raw.expected_assists / games + rng.uniform(0.0, 0.2), 2),
                xgi=round(raw.expected_goal_involvements / games + rng.uniform(0.0, 0.4), 2),
            )
        )
    return tuple(matches)


def _months_before(day: date, months: int) -> date:
    total = day.year * 12 + (day.month - 1) - months
    return date(total // 12, total % 12 + 1, min(day.day, 28))


def generate_history_vs_opponent(
    raw: RawPlayer,
    position: Position,
    opponent: str,
    is_home: bool | None,
    today: date,
) -> tuple[HistoryMatch, ...]:
    """Past matches against the next opponent, most recent first.

    Empty when the opponent is unknown or the player has fewer than
    HISTORY_MIN_MINUTES. Up to 3 entries, more for regular starters.
    """
    if is_home is None or opponent.startswith(UNKNOWN_OPPONENT):
        return ()
    if raw.minutes < HISTORY_MIN_MINUTES:
        return ()

    num_matches = min(HISTORY_MAX_MATCHES, max(1, raw.minutes // HISTORY_MINUTES_PER_MATCH))
    avg_points = raw.total_points / estimate_games_played(raw.minutes)
    if position == "GK":
        avg_points = min(8.0, avg_points)
    elif position == "DEF":
        avg_points = min(12.0, avg_points)

    attacker = position in ("MID", "FWD")
    rng = random.Random(f"{raw.id}:vs:{opponent}")

    matches = []
    for i in range(num_matches):
        # Two meetings per season, alternating halves
        months_ago = (i // 2) * 12 + (i % 2) * 6 + rng.randrange(3)
        home_bonus = 1 if is_home and rng.random() > 0.3 else 0
        points = max(0, round(avg_points + home_bonus + rng.uniform(-1.5, 1.5)))
        minutes = rng.randint(70, 89) if points > 0 else rng.randint(0, 29)
        matches.append(
            HistoryMatch(
                date=_months_before(today, months_ago).isoformat(),
                minutes=minutes,
                points=points,
                xg=round(rng.random() * (0.8 if attacker else 0.1), 2),
                xa=round(rng.random() * 0.6, 2) if position != "GK" else 0.0,
                shots=rng.randrange(5) if attacker else 0,
                chances=rng.randrange(3) if position != "GK" else 0,
            )
        )
    return tuple(matches)


# =============================================================================
# 6. Derivation
# =============================================================================


def _photo_url(photo: str) -> str | None:
    if not photo:
        return None
    return PHOTO_URL_TEMPLATE.format(photo=photo.replace(".jpg", ".png"))


def derive_player(raw: RawPlayer, feed: RawFeed, today: date | None = None) -> PlayerRecord:
    """Derive one PlayerRecord from a normalized feed entry.

    Args:
        raw: Normalized player entry
        feed: The feed it came from (teams, positions, fixtures, gameweek)
        today: Reference date for historical match dates (display only)

    Returns:
        Fully populated PlayerRecord
    """
    position = map_position(raw.element_type, feed)
    team = feed.team_short_name(raw.team) or UNKNOWN_TEAM
    price = round(raw.now_cost / 10, 1)
    next_opponent, fdr, is_home = resolve_next_opponent(raw.team, feed)
    pred_gw, pred_3gw, pred_6gw = calculate_predicted_points(raw.ep_next, raw.form)

    # Scale season expected stats to a 5-match window
    l5_share = min(1.0, L5_MATCHES / estimate_games_played(raw.minutes))

    return PlayerRecord(
        id=str(raw.id),
        name=raw.web_name,
        team=team,
        position=position,
        price=price,
        ownership=raw.selected_by_percent,
        minutes_l5=min(L5_MAX_MINUTES, raw.minutes),
        form_l5=raw.form,
        xg_l5=round(raw.expected_goals * l5_share, 2),
        xa_l5=round(raw.expected_assists * l5_share, 2),
        xgi_l5=round(raw.expected_goal_involvements * l5_share, 2),
        xg_season=raw.expected_goals,
        xa_season=raw.expected_assists,
        xgi_season=raw.expected_goal_involvements,
        total_points=raw.total_points,
        pred_pts_gw=pred_gw,
        pred_pts_3gw=pred_3gw,
        pred_pts_6gw=pred_6gw,
        next_opponent=next_opponent,
        next_opponent_fdr=fdr,
        injury_status=map_status(raw.status),
        rotation_risk_pct=calculate_rotation_risk(
            position=position,
            minutes=raw.minutes,
            gameweeks_played=feed.current_gameweek,
            ownership=raw.selected_by_percent,
            total_points=raw.total_points,
            price=price,
            status=raw.status,
        ),
        history_vs_next_opp=generate_history_vs_opponent(
            raw, position, next_opponent, is_home, today or date.today()
        ),
        last_matches=generate_last_matches(raw, feed.current_gameweek),
        news=(raw.news,) if raw.news else (),
        photo_url=_photo_url(raw.photo),
    )


def derive_players(feed: RawFeed, today: date | None = None) -> list[PlayerRecord]:
    """Derive every player in the feed.

    A failure on one record is logged and skipped; the batch continues.
    """
    reference_day = today or date.today()
    players = []
    for raw in feed.players:
        try:
            players.append(derive_player(raw, feed, reference_day))
        except Exception as e:
            logger.warning(f"Failed to derive player {raw.id}: {type(e).__name__}: {e}")

    logger.info(f"Derived {len(players)}/{len(feed.players)} players (GW{feed.current_gameweek})")
    return players
