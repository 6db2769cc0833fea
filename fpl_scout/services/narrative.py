"""Rule-based player narratives.

score_player() turns the numeric fields of a PlayerRecord into a short
assessment: narrative text, a 1-5 captaincy rating, transfer advice and a
list of risk factors. Rules are checked in order, first match wins:

1. Rotation risk >= 80           -> rating 1, avoid
2. Owned >= 15%, risk <= 20,
   predicted > 6                 -> rating 4-5, essential
3. Risk <= 20, predicted > 4     -> rating 2-3, consider
4. Owned < 2%, risk > 50         -> rating 1, avoid
5. Otherwise                     -> rating 2, monitor

NarrativeService adds a per-player TTL cache and, when configured, asks an
external collaborator for richer text. The collaborator only ever replaces
the narrative text and adds risk factors; rating and advice always come
from the rules.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, replace
from typing import Literal

from cachetools import TTLCache

from fpl_scout.services.derivation import PlayerRecord
from fpl_scout.services.narrative_client import NarrativeClient

logger = logging.getLogger(__name__)

__all__ = [
    "PlayerNarrative",
    "NarrativeService",
    "build_prompt",
    "score_player",
]

# Rule thresholds
VERY_HIGH_ROTATION_RISK = 80
LOW_ROTATION_RISK = 20
HIGH_ROTATION_RISK = 50
MODERATE_ROTATION_RISK = 40
GK_BACKUP_ROTATION_RISK = 30
HIGH_OWNERSHIP = 15.0
VERY_LOW_OWNERSHIP = 2.0
STRONG_PREDICTED_POINTS = 6.0
ELITE_PREDICTED_POINTS = 8.0
MODERATE_PREDICTED_POINTS = 4.0
DIFFICULT_FDR = 4

NARRATIVE_CACHE_SIZE = 2048
DEFAULT_NARRATIVE_TTL = 1800  # 30 minutes
DEFAULT_EXTERNAL_TIMEOUT = 10.0


@dataclass(frozen=True, slots=True)
class PlayerNarrative:
    """Assessment of one player."""

    narrative: str
    captain_rating: int  # 1-5
    transfer_advice: str
    risk_factors: tuple[str, ...]
    source: Literal["rules", "external"] = "rules"


def _unique(items: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


def score_player(player: PlayerRecord) -> PlayerNarrative:
    """Rule-based assessment of a player. Pure function of the record."""
    name = player.name
    ownership = player.ownership
    risk = player.rotation_risk_pct
    predicted = player.pred_pts_gw
    risk_factors: list[str] = []

    if risk >= VERY_HIGH_ROTATION_RISK:
        narrative = (
            f"{name} is a squad player with very limited game time. High rotation "
            "risk makes them unsuitable for regular selection."
        )
        rating = 1
        advice = "Avoid - rarely plays"
        risk_factors += ["Very high rotation risk", "Limited playing time"]
    elif (
        ownership >= HIGH_OWNERSHIP
        and risk <= LOW_ROTATION_RISK
        and predicted > STRONG_PREDICTED_POINTS
    ):
        narrative = (
            f"{name} is a premium template pick with excellent underlying stats. "
            "Strong captaincy potential with consistent returns expected."
        )
        rating = 5 if predicted > ELITE_PREDICTED_POINTS else 4
        advice = "Essential - template player"
    elif risk <= LOW_ROTATION_RISK and predicted > MODERATE_PREDICTED_POINTS:
        narrative = (
            f"{name} offers solid returns as a regular starter. Good value pick with "
            "decent underlying numbers and secure playing time."
        )
        rating = 3 if predicted > STRONG_PREDICTED_POINTS else 2
        advice = "Consider - reliable option"
    elif ownership < VERY_LOW_OWNERSHIP and risk > HIGH_ROTATION_RISK:
        narrative = (
            f"{name} is a fringe player with uncertain game time. Low ownership "
            "suggests limited appeal among FPL managers."
        )
        rating = 1
        advice = "Avoid - rotation concerns"
        risk_factors += ["High rotation risk", "Low ownership"]
    else:
        narrative = (
            f"{name} represents a moderate option with {predicted:.1f} predicted points. "
            "Monitor team news and form trends before selecting."
        )
        rating = 2
        advice = "Monitor - potential differential"
        if risk > MODERATE_ROTATION_RISK:
            risk_factors.append("Moderate rotation risk")

    if player.position == "GK" and risk > GK_BACKUP_ROTATION_RISK:
        risk_factors.append("Backup goalkeeper")
    if player.injury_status != "Fit":
        risk_factors.append(f"Injury status: {player.injury_status}")
    if player.next_opponent_fdr >= DIFFICULT_FDR:
        risk_factors.append("Difficult upcoming fixture")

    return PlayerNarrative(
        narrative=narrative,
        captain_rating=rating,
        transfer_advice=advice,
        risk_factors=_unique(risk_factors),
    )


def build_prompt(player: PlayerRecord) -> str:
    """Build the external narrative prompt for one player. Deterministic."""
    injury_warning = (
        f" (Currently {player.injury_status})" if player.injury_status != "Fit" else ""
    )
    news_alert = f" News: {'. '.join(player.news)}" if player.news else ""
    recent = ", ".join(f"GW{m.gw}: {m.points}pts" for m in player.last_matches)

    return f"""Analyze this Fantasy Premier League player for strategic decision making:

{player.name} ({player.position}) - {player.team}{injury_warning}
Price: £{player.price}m | Ownership: {player.ownership}%
Minutes Last 5 GWs: {player.minutes_l5} | Form: {player.form_l5:.1f}
Expected Goals (Season): {player.xg_season:.2f} | Expected Assists: {player.xa_season:.2f}
Predicted Points Next GW: {player.pred_pts_gw:.1f}
Next Opponent: {player.next_opponent} (Difficulty: {player.next_opponent_fdr}/5)
Rotation Risk: {player.rotation_risk_pct}%{news_alert}

Recent form (last 5 GWs): {recent}

Provide analysis in this exact JSON format:
{{
  "analysis": "2-3 sentence tactical analysis focusing on current form, fixtures, and role in team",
  "captainViability": 1-5,
  "transferAdvice": "Brief recommendation: essential/consider/avoid with reason",
  "riskFactors": ["list", "of", "key", "risks"]
}}

Be specific about their playing time security, fixture difficulty, and current form trajectory. Consider rotation risk and injury status."""


class NarrativeService:
    """Cached narratives with an optional external collaborator.

    The rule-based and externally enriched results live in separate TTL
    caches keyed by player id. Both are guarded by one lock; entries are
    pure memoization, so the only effect of expiry is recomputation.
    """

    def __init__(
        self,
        client: NarrativeClient | None = None,
        ttl: float = DEFAULT_NARRATIVE_TTL,
        external_timeout: float = DEFAULT_EXTERNAL_TIMEOUT,
        maxsize: int = NARRATIVE_CACHE_SIZE,
    ) -> None:
        self.client = client
        self.external_timeout = external_timeout
        self._rules_cache: TTLCache[str, PlayerNarrative] = TTLCache(maxsize=maxsize, ttl=ttl)
        self._external_cache: TTLCache[str, PlayerNarrative] = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = threading.Lock()

    def score(self, player: PlayerRecord) -> PlayerNarrative:
        """Rule-based narrative, cached by player id."""
        with self._lock:
            cached = self._rules_cache.get(player.id)
        if cached is not None:
            return cached

        result = score_player(player)
        with self._lock:
            self._rules_cache[player.id] = result
        return result

    async def analyze(self, player: PlayerRecord) -> PlayerNarrative:
        """Narrative enriched by the external collaborator when available.

        Falls back to the rule-based result on any collaborator failure.
        Cancellation is not caught: a superseded request just goes away.
        """
        baseline = self.score(player)
        if self.client is None:
            return baseline

        with self._lock:
            cached = self._external_cache.get(player.id)
        if cached is not None:
            return cached

        try:
            external = await asyncio.wait_for(
                self.client.generate(build_prompt(player)),
                timeout=self.external_timeout,
            )
        except TimeoutError:
            logger.warning(
                f"Narrative generation timed out for player {player.id} "
                f"after {self.external_timeout}s, using rule-based narrative"
            )
            return baseline
        except Exception as e:
            logger.warning(
                f"Narrative generation failed for player {player.id}: "
                f"{type(e).__name__}: {e}. Using rule-based narrative"
            )
            return baseline

        # Rating and advice always come from the rules; the reply only adds text and risks
        result = replace(
            baseline,
            narrative=external.analysis.strip() or baseline.narrative,
            risk_factors=_unique([*baseline.risk_factors, *external.risk_factors]),
            source="external",
        )
        with self._lock:
            self._external_cache[player.id] = result
        return result

    def clear(self) -> None:
        """Drop all cached narratives."""
        with self._lock:
            self._rules_cache.clear()
            self._external_cache.clear()
