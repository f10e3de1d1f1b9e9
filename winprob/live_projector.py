from __future__ import annotations

import logging
from typing import Optional, Tuple

from winprob.config import EngineConfig
from winprob.models import (
    LiveProjection,
    LiveState,
    MatchContext,
    Phase,
    ProbabilityDetails,
    StaticResult,
)
from winprob.static_scorer import score_static
from winprob.utils import balls_to_overs, clamp, reconcile_shares

logger = logging.getLogger(__name__)

EARLY_PHASE_END = 0.30
MID_PHASE_END = 0.75

# 20 runs above a 170 par is worth roughly 10 points to the batting side.
FIRST_INNINGS_SENSITIVITY = 85.0
FIRST_INNINGS_CAP = 20.0
PHASE_SHARPNESS = {
    Phase.EARLY: 0.6,
    Phase.MID: 0.85,
    Phase.DEATH: 1.0,
}

CHASE_RATE_GAP_POINTS = 4.0  # points per run of required-minus-current rate
CHASE_CAP = 45.0
RESOLVED_SHIFT = 100.0  # pushes the blended share onto the floor or ceiling

CHASE_ON = "Chase On"
SETTING_TARGET = "Setting Target"


def phase_for_progress(progress: float) -> Phase:
    if progress < EARLY_PHASE_END:
        return Phase.EARLY
    if progress <= MID_PHASE_END:
        return Phase.MID
    return Phase.DEATH


def resource_factor(wickets: int) -> float:
    """Share of the remaining overs a side can still exploit with the wickets it has lost."""
    return max(0.1, 1 - wickets * (0.12 if wickets > 5 else 0.08))


def _wickets_pressure(wickets_in_hand: int) -> float:
    if wickets_in_hand >= 8:
        return 0.0
    elif wickets_in_hand >= 6:
        return 1.6
    elif wickets_in_hand >= 4:
        return 4.0
    elif wickets_in_hand >= 2:
        return 7.0
    return 11.0


def _first_innings(context: MatchContext, live: LiveState, balls: int, progress: float,
                   phase: Phase) -> Tuple[float, str, ProbabilityDetails]:
    fmt = context.fmt
    overs_done = balls_to_overs(balls)
    crr = live.runs / overs_done
    overs_left = max(0.0, fmt.overs - overs_done)
    resource = resource_factor(live.wickets)
    par = context.resolved_par_score

    if live.wickets >= 10 or balls >= fmt.balls:
        # Innings over: the total is final.
        projected = float(live.runs)
    else:
        extrapolated = live.runs + crr * overs_left * resource
        baseline = live.runs + (par / fmt.overs) * overs_left * resource
        crr_weight = 0.3 + 0.7 * progress
        projected = crr_weight * extrapolated + (1 - crr_weight) * baseline

    shift = (projected - par) / par * FIRST_INNINGS_SENSITIVITY * PHASE_SHARPNESS[phase]
    shift = clamp(shift, -FIRST_INNINGS_CAP, FIRST_INNINGS_CAP)

    logger.info("First innings projection: runs=%d balls=%d crr=%.2f projected=%.1f par=%.1f shift=%.2f",
                live.runs, balls, crr, projected, par, shift)
    details = ProbabilityDetails(projected_score=int(projected), par_score=int(round(par)), crr=round(crr, 2))
    return shift, SETTING_TARGET, details


def _chase(context: MatchContext, live: LiveState,
           balls: int) -> Optional[Tuple[float, Optional[str], ProbabilityDetails]]:
    target = live.target
    if not target or target <= 0:
        logger.warning("Chase snapshot without a target (innings=%d); skipping live adjustment", live.innings)
        return None

    allotted = context.fmt.balls
    crr = live.runs / balls_to_overs(balls)
    runs_needed = target - live.runs
    balls_remaining = max(0, allotted - balls)

    if runs_needed <= 0:
        details = ProbabilityDetails(runs_needed=0, balls_remaining=balls_remaining, rrr=0.0, crr=round(crr, 2))
        logger.info("Target %d reached with %d balls remaining", target, balls_remaining)
        return RESOLVED_SHIFT, None, details

    if live.wickets >= 10 or balls_remaining <= 0:
        details = ProbabilityDetails(runs_needed=runs_needed, balls_remaining=balls_remaining, crr=round(crr, 2))
        logger.info("Chase ended %d short (wickets=%d, balls_remaining=%d)", runs_needed, live.wickets, balls_remaining)
        return -RESOLVED_SHIFT, None, details

    rrr = runs_needed / balls_remaining * 6
    # The same rate gap hurts more late in the chase, when there is less time to recover it.
    urgency = 1 + (1 - balls_remaining / allotted)
    rate_shift = -(rrr - crr) * CHASE_RATE_GAP_POINTS * urgency
    shift = clamp(rate_shift - _wickets_pressure(10 - live.wickets), -CHASE_CAP, CHASE_CAP)

    logger.info("Chase: target=%d needed=%d balls_remaining=%d rrr=%.2f crr=%.2f shift=%.2f",
                target, runs_needed, balls_remaining, rrr, crr, shift)
    details = ProbabilityDetails(
        runs_needed=runs_needed,
        balls_remaining=balls_remaining,
        rrr=round(rrr, 2),
        crr=round(crr, 2),
    )
    return shift, CHASE_ON, details


def project_live(context: MatchContext, live: Optional[LiveState], config: Optional[EngineConfig] = None,
                 static: Optional[StaticResult] = None) -> Optional[LiveProjection]:
    """Live adjustment for the current innings, or None when there is nothing to adjust by.

    None covers no live state, no ball bowled yet, an unrecognised batting
    side and a chase without a target; callers fall back to the static split.
    """
    if live is None:
        return None

    if live.batting_team_id == context.team1.team_id:
        direction = 1.0
    elif live.batting_team_id == context.team2.team_id:
        direction = -1.0
    else:
        logger.warning("Batting team %r is not part of this fixture; skipping live adjustment", live.batting_team_id)
        return None

    balls = live.balls_bowled
    if balls <= 0:
        return None

    progress = min(1.0, balls / context.fmt.balls)
    phase = phase_for_progress(progress)

    if live.is_chase:
        outcome = _chase(context, live, balls)
        if outcome is None:
            return None
        batting_shift, message, details = outcome
    else:
        batting_shift, message, details = _first_innings(context, live, balls, progress, phase)

    config = config or EngineConfig()
    static = static or score_static(context, config)
    shift = direction * batting_shift
    return LiveProjection(
        shift=shift,
        adjusted_share=reconcile_shares(static.team1_share + shift, config)[0],
        phase=phase,
        innings=live.innings,
        message=message,
        details=details,
    )
