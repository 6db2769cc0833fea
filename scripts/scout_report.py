#!/usr/bin/env python
"""
Print a scouting report from the live FPL feed.

Fetches bootstrap-static and fixtures, derives player analytics, then prints
the filtered player table, the recommendation categories, or the narrative
for one player.

Usage:
    python -m scripts.scout_report                              # Top 20 by predicted points
    python -m scripts.scout_report --position MID --max-price 7.5
    python -m scripts.scout_report --query liv --sort form_l5
    python -m scripts.scout_report --fit-only --no-nailed       # Drop doubts and nailed starters
    python -m scripts.scout_report --recommendations            # Category picks
    python -m scripts.scout_report --narrative 328              # Narrative for one player
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fpl_scout.config import get_settings
from fpl_scout.services.derivation import POSITIONS, PlayerRecord
from fpl_scout.services.filters import SORTABLE_FIELDS, FilterSpec, evaluate, sort_players
from fpl_scout.services.fpl_client import FplApiClient
from fpl_scout.services.narrative import NarrativeService
from fpl_scout.services.narrative_client import NarrativeClient
from fpl_scout.services.players import PlayerService
from fpl_scout.services.recommendations import recommend

# Load environment
load_dotenv(".env.local")
load_dotenv(".env")

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def format_row(player: PlayerRecord) -> str:
    """One table row."""
    flag = "" if player.injury_status == "Fit" else f" [{player.injury_status}]"
    return (
        f"{player.name[:20]:<20} {player.team:<4} {player.position:<3} "
        f"£{player.price:>5.1f} {player.ownership:>5.1f}% "
        f"{player.form_l5:>5.1f} {player.pred_pts_gw:>5.1f} "
        f"{player.next_opponent:<9} {player.next_opponent_fdr} "
        f"{player.rotation_risk_pct:>3}%{flag}"
    )


def print_table(players: list[PlayerRecord]) -> None:
    print(
        f"\n{'Name':<20} {'Team':<4} {'Pos':<3} {'Price':>6} {'Own':>6} "
        f"{'Form':>5} {'Pred':>5} {'Next':<9} F {'Rot':>4}"
    )
    print("-" * 80)
    for player in players:
        print(format_row(player))
    print("-" * 80)


def build_filter_spec(args: argparse.Namespace) -> FilterSpec:
    """Translate CLI flags into a FilterSpec (defaults admit everything)."""
    spec = FilterSpec()
    low, high = spec.price_range
    return spec.with_changes(
        positions=frozenset(args.position or []),
        teams=frozenset(t.upper() for t in args.team or []),
        price_range=(
            args.min_price if args.min_price is not None else low,
            args.max_price if args.max_price is not None else high,
        ),
        injury_doubts=not args.fit_only,
        rotation_risk=not args.no_nailed,
    )


async def show_players(service: PlayerService, args: argparse.Namespace) -> None:
    player_set = await service.get_player_set()
    players = evaluate(player_set.players, build_filter_spec(args), args.query)
    players = sort_players(players, args.sort, descending=not args.ascending)

    print(f"\nGW{player_set.current_gameweek}: {len(players)} players match")
    print_table(players[: args.limit])


async def show_recommendations(service: PlayerService) -> None:
    player_set = await service.get_player_set()
    for result in recommend(player_set.players):
        print(f"\n{result.category.title} ({result.confidence}% confidence)")
        print(f"  {result.category.description}")
        if not result.players:
            print("  No eligible players")
            continue
        print_table(result.players)


async def show_narrative(service: PlayerService, player_id: str) -> None:
    settings = get_settings()
    player = await service.get_player(player_id)
    if player is None:
        print(f"\nError: Player {player_id} not found")
        sys.exit(1)

    narratives = NarrativeService(
        client=NarrativeClient.from_settings(settings),
        ttl=settings.cache_ttl_narrative,
        external_timeout=settings.narrative_timeout,
    )
    try:
        result = await narratives.analyze(player)
    finally:
        if narratives.client is not None:
            await narratives.client.close()

    print(f"\n{player.name} ({player.position}, {player.team}) - £{player.price}m")
    print("-" * 60)
    print(result.narrative)
    print(f"\nCaptain rating:  {'*' * result.captain_rating} ({result.captain_rating}/5)")
    print(f"Transfer advice: {result.transfer_advice}")
    if result.risk_factors:
        print("Risk factors:")
        for risk in result.risk_factors:
            print(f"  - {risk}")
    print(f"(source: {result.source})")


async def main() -> None:
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(description="FPL scouting report")
    parser.add_argument("--query", default="", help="Search on player name or team code")
    parser.add_argument(
        "--position", action="append", choices=POSITIONS, help="Position (repeatable)"
    )
    parser.add_argument("--team", action="append", help="Team short name (repeatable)")
    parser.add_argument("--min-price", type=float, help="Minimum price in £m")
    parser.add_argument("--max-price", type=float, help="Maximum price in £m")
    parser.add_argument(
        "--fit-only", action="store_true", help="Exclude doubtful, injured and suspended"
    )
    parser.add_argument(
        "--no-nailed",
        action="store_true",
        help="Exclude players with rotation risk below 20%%",
    )
    parser.add_argument(
        "--sort",
        default="pred_pts_gw",
        choices=sorted(SORTABLE_FIELDS),
        help="Column to sort by (default: pred_pts_gw)",
    )
    parser.add_argument("--ascending", action="store_true", help="Sort ascending")
    parser.add_argument("--limit", type=int, default=20, help="Rows to print")
    parser.add_argument(
        "--recommendations", action="store_true", help="Show recommendation categories"
    )
    parser.add_argument("--narrative", metavar="PLAYER_ID", help="Show narrative for a player")

    args = parser.parse_args()

    settings = get_settings()
    fpl_client = FplApiClient(base_url=settings.fpl_api_base_url)
    service = PlayerService(fpl_client, ttl=settings.cache_ttl_players)

    try:
        if args.narrative:
            await show_narrative(service, args.narrative)
        elif args.recommendations:
            await show_recommendations(service)
        else:
            await show_players(service, args)
    except Exception as e:
        logger.error(f"Scout report failed: {e}", exc_info=True)
        raise
    finally:
        await fpl_client.close()


if __name__ == "__main__":
    asyncio.run(main())
