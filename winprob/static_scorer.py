from __future__ import annotations

import logging
from typing import Dict, Optional

from winprob.config import EngineConfig, FactorWeights
from winprob.models import (
    FormRecord,
    HeadToHeadRecord,
    MatchContext,
    MatchOutcome,
    PitchProfile,
    PitchSuitedFor,
    StaticResult,
    TeamProfile,
    VenueRecord,
)
from winprob.utils import clamp, share_bounds

logger = logging.getLogger(__name__)

# Points team 1 would gain if every available factor favoured it completely.
MAX_SWING = 50.0

DEFAULT_RANKING = 10.0
RANK_SATURATION = 10.0  # rank positions; 1 position = 2.5 points of the ranking range
FORM_WINDOW = 5

PITCH_AMPLIFIERS = {
    PitchSuitedFor.BATTING: 1.0,
    PitchSuitedFor.BOWLING: 1.0,
    PitchSuitedFor.SPIN: 0.5,
    PitchSuitedFor.BALANCED: 0.0,
}
DECISIVE_SURFACES = ("green", "grassy", "dry", "dusty", "cracked", "turning")
DECISIVE_SURFACE_BONUS = 0.25

HOME_CITY_TOKENS = [
    "Mumbai", "Chennai", "Bangalore", "Bengaluru", "Kolkata", "Delhi",
    "Hyderabad", "Jaipur", "Lucknow", "Ahmedabad", "Punjab", "Mohali",
]

QUALITY_FACTORS = ("ranking", "h2h", "form", "venue", "pedigree")


def _outcome_points(outcome: MatchOutcome) -> float:
    if outcome == MatchOutcome.WIN:
        return 1.0
    if outcome == MatchOutcome.LOSS:
        return 0.0
    return 0.5


def form_score(form: Optional[FormRecord]) -> float:
    """Recency-weighted form in [0, 1]; the latest match carries the most weight."""
    if not form or len(form) == 0:
        return 0.5
    results = form.results[:FORM_WINDOW]
    weights = [len(results) - i for i in range(len(results))]
    total = sum(w * _outcome_points(r) for w, r in zip(weights, results))
    return total / sum(weights)


def _ranking_signal(team1: TeamProfile, team2: TeamProfile) -> Optional[float]:
    if team1.ranking is None and team2.ranking is None:
        return None
    rank1 = team1.ranking if team1.ranking is not None else DEFAULT_RANKING
    rank2 = team2.ranking if team2.ranking is not None else DEFAULT_RANKING
    return clamp((rank2 - rank1) / RANK_SATURATION, -1.0, 1.0)


def _h2h_signal(h2h: Optional[HeadToHeadRecord]) -> Optional[float]:
    if h2h is None:
        return None
    if h2h.matches_played <= 0:
        return 0.0
    return clamp((h2h.team1_wins - h2h.team2_wins) / h2h.matches_played, -1.0, 1.0)


def _form_signal(form1: Optional[FormRecord], form2: Optional[FormRecord]) -> Optional[float]:
    if not form1 and not form2:
        return None
    return form_score(form1) - form_score(form2)


def _venue_signal(venue: Optional[VenueRecord]) -> Optional[float]:
    if venue is None:
        return None
    pct1, pct2 = venue.team1_win_pct, venue.team2_win_pct
    if pct1 is None or pct2 is None:
        return 0.0
    return pct1 - pct2


def _pedigree_signal(team1: TeamProfile, team2: TeamProfile) -> Optional[float]:
    if team1.pedigree is None or team2.pedigree is None:
        return None
    return clamp(team1.pedigree - team2.pedigree, -1.0, 1.0)


def _is_home(team: TeamProfile, venue_name: str) -> bool:
    venue = venue_name.lower()
    if team.is_international:
        return bool(team.nationality) and team.nationality.lower() in venue
    city = next((word for word in team.name.split() if word in HOME_CITY_TOKENS), None)
    return bool(city) and city.lower() in venue


def host_team_id(context: MatchContext) -> Optional[str]:
    """Team id of the host side, or None for a neutral fixture."""
    if context.host_team_id in (context.team1.team_id, context.team2.team_id):
        return context.host_team_id
    if not context.venue_name:
        return None
    home1 = _is_home(context.team1, context.venue_name)
    home2 = _is_home(context.team2, context.venue_name)
    if home1 and not home2:
        return context.team1.team_id
    if home2 and not home1:
        return context.team2.team_id
    return None


def _home_signal(context: MatchContext) -> Optional[float]:
    if not context.venue_name and not context.host_team_id:
        return None
    host = host_team_id(context)
    if host == context.team1.team_id:
        return 1.0
    if host == context.team2.team_id:
        return -1.0
    return 0.0


def _pitch_signal(pitch: Optional[PitchProfile], strength_diff: float) -> Optional[float]:
    # Decisive conditions are assumed to favour whichever side is stronger overall.
    if pitch is None or (pitch.suited_for is None and not pitch.surface):
        return None
    amplifier = PITCH_AMPLIFIERS.get(pitch.suited_for, 0.0)
    surface = (pitch.surface or "").lower()
    if any(token in surface for token in DECISIVE_SURFACES):
        amplifier = min(1.0, amplifier + DECISIVE_SURFACE_BONUS)
    return clamp(amplifier * strength_diff, -1.0, 1.0)


def _strength_differential(signals: Dict[str, float], weights: FactorWeights) -> float:
    table = weights.as_dict()
    used = {name: table[name] for name in QUALITY_FACTORS if name in signals and table[name] > 0}
    total = sum(used.values())
    if total <= 0:
        return 0.0
    return sum(signals[name] * weight for name, weight in used.items()) / total


def neutral_result(context: Optional[MatchContext] = None) -> StaticResult:
    team1 = context.team1 if context else None
    team2 = context.team2 if context else None
    return StaticResult(team1=team1, team2=team2, team1_share=50.0, team2_share=50.0, factors={}, has_identity=False)


def _has_identity(context: Optional[MatchContext]) -> bool:
    if context is None or context.team1 is None or context.team2 is None:
        return False
    return bool(context.team1.team_id) and bool(context.team2.team_id)


def score_static(context: MatchContext, config: Optional[EngineConfig] = None) -> StaticResult:
    """Pre-match split from rankings, history, venue, conditions and home advantage.

    Every factor yields a team-1-relative signal in [-1, 1]. Factors whose
    data is missing drop out and the remaining weights are rescaled so they
    still cover the whole swing.
    """
    if not _has_identity(context):
        logger.warning("Static score requested without both team identities; returning neutral split")
        return neutral_result(context)

    config = config or EngineConfig()
    international = context.is_international
    weights = config.international_weights if international else config.franchise_weights
    table = weights.as_dict()

    signals: Dict[str, Optional[float]] = {
        "ranking": _ranking_signal(context.team1, context.team2) if international else None,
        "h2h": _h2h_signal(context.head_to_head),
        "form": _form_signal(context.team1_form, context.team2_form),
        "venue": _venue_signal(context.venue_record),
        "home": _home_signal(context),
        "pedigree": None if international else _pedigree_signal(context.team1, context.team2),
    }
    available = {name: value for name, value in signals.items() if value is not None and table[name] > 0}
    pitch_signal = _pitch_signal(context.pitch, _strength_differential(available, weights))
    if pitch_signal is not None and table["pitch"] > 0:
        available["pitch"] = pitch_signal

    available_weight = sum(table[name] for name in available)
    factors: Dict[str, float] = {}
    if available_weight > 0:
        for name, signal in available.items():
            nominal = config.home_advantage_bonus if name == "home" else table[name] * MAX_SWING
            factors[name] = signal * nominal / available_weight

    total_shift = sum(factors.values())
    low, high = share_bounds(config)
    team1_share = clamp(50.0 + total_shift, low, high)

    logger.info(
        "Static score: table=%s factors=%s total_shift=%.2f team1_share=%.2f",
        "international" if international else "franchise",
        ",".join(sorted(factors)), total_shift, team1_share,
    )
    return StaticResult(
        team1=context.team1,
        team2=context.team2,
        team1_share=team1_share,
        team2_share=100.0 - team1_share,
        factors={name: round(value, 2) for name, value in factors.items()},
        has_identity=True,
    )
